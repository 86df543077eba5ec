from __future__ import annotations

import logging
from typing import Optional

from academy.errors import ResolutionError
from academy.services.courses import get_course
from academy.store import DocumentStore, server_timestamp
from academy.validation import ENQUIRY_STATUSES, check_choice, check_mobile, check_text, raise_if

logger = logging.getLogger(__name__)

PENDING = "Pending"


def next_status(status: str) -> Optional[str]:
    # Suggested flow only: Pending -> Followed-up -> Enrolled. Nothing enforces it.
    try:
        i = ENQUIRY_STATUSES.index(status)
    except ValueError:
        return PENDING
    return ENQUIRY_STATUSES[i + 1] if i + 1 < len(ENQUIRY_STATUSES) else None


def _validate(store: DocumentStore, name, mobile, course_id, notes, status) -> dict:
    errors: dict[str, str] = {}
    data = {
        "name": check_text(errors, "name", name, "Name"),
        "mobile": check_mobile(errors, "mobile", mobile),
        "status": check_choice(errors, "status", status, ENQUIRY_STATUSES, "Status"),
        "notes": str(notes or "").strip(),
    }
    if not course_id:
        errors["courseId"] = "Course is required."
    raise_if(errors)

    course = get_course(store, course_id)
    data["courseId"] = course_id
    data["course"] = course.get("name", "")
    return data


def add_enquiry(
    store: DocumentStore,
    *,
    name: str,
    mobile: str,
    course_id: str,
    notes: str = "",
    status: str = PENDING,
) -> str:
    data = _validate(store, name, mobile, course_id, notes, status)
    data["enquiryDate"] = server_timestamp()
    enquiry_id = store.add("enquiries", data)
    logger.info("Added enquiry %s for %s", enquiry_id, data["course"])
    return enquiry_id


def update_enquiry(
    store: DocumentStore,
    enquiry_id: str,
    *,
    name: str,
    mobile: str,
    course_id: str,
    notes: str,
    status: str,
) -> None:
    data = _validate(store, name, mobile, course_id, notes, status)
    if store.get("enquiries", enquiry_id) is None:
        raise ResolutionError("Enquiry no longer exists.")
    store.update("enquiries", enquiry_id, data)
    logger.info("Updated enquiry %s (%s)", enquiry_id, data["status"])


def delete_enquiry(store: DocumentStore, enquiry_id: str) -> None:
    store.delete("enquiries", enquiry_id)
    logger.info("Deleted enquiry %s", enquiry_id)


def filter_enquiries(enquiries: list[dict], search: str = "", status: str = "all") -> list[dict]:
    needle = str(search or "").strip().lower()
    out = []
    for e in enquiries:
        if status != "all" and e.get("status") != status:
            continue
        if needle and needle not in str(e.get("name", "")).lower() and needle not in str(e.get("mobile", "")):
            continue
        out.append(e)
    return out
