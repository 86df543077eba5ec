from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterable

import streamlit as st

from academy.schema import SCHEMA_SQL


def _connect(db_path: Path) -> sqlite3.Connection:
    # isolation_level=None: transactions are opened explicitly by the store.
    conn = sqlite3.connect(str(db_path), check_same_thread=False, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL;")
    return conn


@st.cache_resource
def get_conn(db_path: Path) -> sqlite3.Connection:
    return _connect(db_path)


@st.cache_resource
def get_store(db_path: Path):
    # One store per database so every session shares the same collection feeds.
    from academy.store import DocumentStore

    conn = get_conn(db_path)
    ensure_schema(conn)
    return DocumentStore(conn)


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    # Callers own the transaction; no commit here.
    cur = conn.execute(sql, tuple(params))
    last = cur.lastrowid
    cur.close()
    return int(last or 0)
