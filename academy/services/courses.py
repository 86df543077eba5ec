from __future__ import annotations

import logging
from typing import Optional

from academy.errors import ResolutionError
from academy.store import MAX_BATCH_WRITES, DocumentStore
from academy.validation import check_non_negative_amount, check_text, raise_if

logger = logging.getLogger(__name__)


def list_courses(store: DocumentStore) -> list[dict]:
    return store.feed("courses").snapshot(order_by="name")


def get_course(store: DocumentStore, course_id: str) -> dict:
    course = store.get("courses", course_id) if course_id else None
    if course is None:
        raise ResolutionError("Selected course no longer exists.")
    return course


def find_course_by_name(store: DocumentStore, name: str) -> Optional[dict]:
    key = str(name or "").strip().casefold()
    for c in store.query("courses"):
        if str(c.get("name", "")).strip().casefold() == key:
            return c
    return None


def _ensure_unique_name(store: DocumentStore, errors: dict, name: Optional[str], exclude_id: Optional[str] = None) -> None:
    if name is None:
        return
    existing = find_course_by_name(store, name)
    if existing is not None and existing["id"] != exclude_id:
        errors["name"] = "A course with this name already exists."


def add_course(store: DocumentStore, *, name: str, fee: float = 0) -> str:
    errors: dict[str, str] = {}
    name = check_text(errors, "name", name, "Course name", min_len=1)
    fee = check_non_negative_amount(errors, "fee", fee, "Course fee")
    _ensure_unique_name(store, errors, name)
    raise_if(errors)

    course_id = store.add("courses", {"name": name, "fee": fee})
    logger.info("Added course %s (%s)", name, course_id)
    return course_id


def update_course_fee(store: DocumentStore, course_id: str, fee: float) -> None:
    """
    Changes the current price only. Students keep the totalFee captured at
    enrollment.
    """
    errors: dict[str, str] = {}
    fee = check_non_negative_amount(errors, "fee", fee, "Course fee")
    raise_if(errors)

    get_course(store, course_id)
    store.update("courses", course_id, {"fee": fee})
    logger.info("Course %s fee set to %.2f", course_id, fee)


def rename_course(store: DocumentStore, course_id: str, new_name: str) -> int:
    """
    Renames a course and migrates the display name held by its students and
    enquiries. Records written before ids were used (matching the old name,
    no courseId) are attached to the course in the same pass.

    Writes go out in atomic batches of at most MAX_BATCH_WRITES; each batch is
    all-or-nothing and the first one carries the course itself. Returns the
    number of dependent records migrated.
    """
    errors: dict[str, str] = {}
    new_name = check_text(errors, "name", new_name, "Course name", min_len=1)
    _ensure_unique_name(store, errors, new_name, exclude_id=course_id)
    raise_if(errors)

    course = get_course(store, course_id)
    old_name = str(course.get("name", ""))
    if old_name == new_name:
        return 0

    writes: list[tuple[str, str, dict]] = [("courses", course_id, {"name": new_name})]
    for collection in ("students", "enquiries"):
        for doc in store.query(collection):
            if doc.get("courseId") == course_id or (not doc.get("courseId") and doc.get("course") == old_name):
                writes.append((collection, doc["id"], {"course": new_name, "courseId": course_id}))

    for start in range(0, len(writes), MAX_BATCH_WRITES):
        batch = store.batch()
        for collection, doc_id, fields in writes[start:start + MAX_BATCH_WRITES]:
            batch.update(collection, doc_id, fields)
        batch.commit()

    migrated = len(writes) - 1
    logger.info("Renamed course %s from %r to %r; migrated %d record(s)", course_id, old_name, new_name, migrated)
    return migrated


def delete_course(store: DocumentStore, course_id: str) -> None:
    # No cascade: enrolled students keep their course name and id.
    still_enrolled = store.count("students", [("courseId", "==", course_id)])
    store.delete("courses", course_id)
    logger.info("Deleted course %s (%d student(s) still reference it)", course_id, still_enrolled)
