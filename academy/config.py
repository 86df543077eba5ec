from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "ACADEMY_HUB_DATA_DIR"
ENV_LOG_LEVEL = "ACADEMY_HUB_LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "INR"
    roll_prefix: str = "LLA"
    log_level: str = "INFO"


def _default_data_dir() -> Path:
    return Path.home() / ".academy_hub"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    # Always written to the default folder so the next start can find it.
    default_dir = _default_data_dir()
    default_dir.mkdir(parents=True, exist_ok=True)
    cfg = default_dir / CONFIG_FILE_NAME
    payload = _load_persisted_settings(default_dir)
    payload["data_dir"] = str(data_dir)
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    st.session_state["academy_hub_data_dir"] = str(data_dir)


def build_settings(data_dir: Path, persisted: dict | None = None) -> Settings:
    persisted = persisted or {}
    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "hub.db",
        currency=str(persisted.get("currency", "INR")),
        roll_prefix=str(persisted.get("roll_prefix", "LLA")).upper(),
        log_level=os.getenv(ENV_LOG_LEVEL, str(persisted.get("log_level", "INFO"))).upper(),
    )


@st.cache_resource
def get_settings() -> Settings:
    # Priority order:
    # 1) Session state (set via Settings page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    default_dir = _default_data_dir()
    persisted = _load_persisted_settings(default_dir)

    if "academy_hub_data_dir" in st.session_state:
        data_dir = Path(st.session_state["academy_hub_data_dir"]).expanduser().resolve()
    elif os.getenv(ENV_DATA_DIR):
        data_dir = Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    else:
        data_dir = Path(persisted.get("data_dir", default_dir)).expanduser().resolve()

    return build_settings(data_dir, persisted)
