"""
Pytest fixtures for the academy test suite.

Every test gets its own sqlite file under tmp_path, so no state leaks between
tests and no Streamlit runtime is needed.
"""

import pytest

from academy.db import _connect, ensure_schema
from academy.errors import StoreError
from academy.services.courses import add_course
from academy.services.inventory import add_material
from academy.store import DocumentStore


@pytest.fixture
def conn(tmp_path):
    c = _connect(tmp_path / "hub.db")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def store(conn):
    return DocumentStore(conn)


@pytest.fixture
def course_id(store):
    return add_course(store, name="Criminal Law Advanced", fee=50000)


@pytest.fixture
def material_id(store):
    return add_material(store, name="Notes A", price=150, initial_stock=40)


@pytest.fixture
def student_form(course_id):
    """Valid registration arguments; override per test."""
    return {
        "full_name": "Aarav Sharma",
        "fathers_name": "Rakesh Sharma",
        "mobile": "9876543210",
        "dob": "2001-05-14",
        "address": "12 Civil Lines, New Delhi",
        "course_id": course_id,
    }


class FailingLedgerStore(DocumentStore):
    """Store whose writes to the transactions collection always fail."""

    def add(self, collection, data):
        if collection == "transactions":
            raise StoreError("disk I/O error")
        return super().add(collection, data)


@pytest.fixture
def failing_store(conn):
    return FailingLedgerStore(conn)
