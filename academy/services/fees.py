"""
Fee ledger: student enrollment, fee payments, student edits and fee slips.

A student's paymentHistory is the source of truth for money received;
amountPaid is a cached sum rewritten from it on every payment. Each payment
is mirrored by exactly one Income / "Fee Collection" transaction carrying the
studentId and the payment's timestamp.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from academy.errors import ResolutionError
from academy.services.courses import get_course
from academy.services.ledger import OK, LedgerOutcome, record_linked_income
from academy.services.rolls import ROLL_PREFIX, next_roll_number
from academy.store import DocumentStore, server_timestamp
from academy.utils import iso_now_precise, iso_today, money
from academy.validation import (
    PAYMENT_MODES,
    check_choice,
    check_date,
    check_mobile,
    check_non_negative_amount,
    check_positive_amount,
    check_text,
    raise_if,
)

logger = logging.getLogger(__name__)

FEE_CATEGORY = "Fee Collection"

# Only changed by the payment operations or never at all.
PROTECTED_FIELDS = frozenset({"id", "roll", "paymentHistory", "amountPaid", "enrollmentYear", "lastUpdated"})


def _payment(amount: float, mode: str, on_date: str, collected_by: Optional[str]) -> dict:
    p = {"amount": money(amount), "mode": mode, "date": on_date, "timestamp": iso_now_precise()}
    if collected_by:
        p["collectedBy"] = str(collected_by).strip()
    return p


def paid_total(payment_history: list[dict]) -> float:
    return money(sum(float(p.get("amount") or 0) for p in payment_history or []))


def register_student(
    store: DocumentStore,
    *,
    full_name: str,
    fathers_name: str,
    mobile: str,
    dob: str,
    address: str,
    course_id: str,
    total_fee: Optional[float] = None,
    amount_paid: float = 0,
    payment_mode: str = "Cash",
    payment_date: Optional[str] = None,
    enrollment_date: Optional[str] = None,
    collected_by: Optional[str] = None,
    roll_prefix: str = ROLL_PREFIX,
) -> LedgerOutcome:
    errors: dict[str, str] = {}
    full_name = check_text(errors, "fullName", full_name, "Full name")
    fathers_name = check_text(errors, "fathersName", fathers_name, "Father's name")
    mobile = check_mobile(errors, "mobile", mobile)
    dob = check_date(errors, "dob", dob, "Date of birth")
    address = check_text(errors, "address", address, "Address", min_len=5)
    amount_paid = check_non_negative_amount(errors, "amountPaid", amount_paid, "Amount paid")
    if total_fee not in (None, ""):
        total_fee = check_non_negative_amount(errors, "totalFee", total_fee, "Total fee")
    else:
        total_fee = None
    enrollment_date = check_date(errors, "enrollmentDate", enrollment_date or iso_today(), "Enrollment date")
    if amount_paid:
        payment_mode = check_choice(errors, "paymentMode", payment_mode, PAYMENT_MODES, "Payment mode")
        payment_date = check_date(errors, "paymentDate", payment_date or iso_today(), "Payment date")
    if not course_id:
        errors["courseId"] = "Course is required."
    raise_if(errors)

    course = get_course(store, course_id)
    course_name = str(course.get("name", ""))
    if total_fee is None:
        # Snapshot of the course price at enrollment time.
        total_fee = money(course.get("fee"))

    year = date.today().year
    roll = next_roll_number(store, course_id=course_id, course_name=course_name, year=year, prefix=roll_prefix)

    history = [_payment(amount_paid, payment_mode, payment_date, collected_by)] if amount_paid else []
    student = {
        "fullName": full_name,
        "fathersName": fathers_name,
        "mobile": mobile,
        "dob": dob,
        "address": address,
        "roll": roll,
        "courseId": course_id,
        "course": course_name,
        "enrollmentYear": year,
        "enrollmentDate": enrollment_date,
        "totalFee": total_fee,
        "amountPaid": paid_total(history),
        "paymentMode": payment_mode if amount_paid else None,
        "paymentDate": payment_date if amount_paid else None,
        "paymentHistory": history,
        "lastUpdated": server_timestamp(),
    }
    student_id = store.add("students", student)
    logger.info("Enrolled %s as %s (%s)", full_name, roll, student_id)

    if not history:
        return LedgerOutcome(status=OK, record_id=student_id, reference=roll)

    payment = history[0]
    return record_linked_income(
        store,
        record_id=student_id,
        record_label=f"Student {full_name} ({roll})",
        amount=payment["amount"],
        category=FEE_CATEGORY,
        description=f"Fee from new enrollment: {full_name} (Roll: {roll})",
        on_date=payment["date"],
        reference=roll,
        studentId=student_id,
        paymentTimestamp=payment["timestamp"],
    )


def get_student(store: DocumentStore, student_id: str) -> dict:
    student = store.get("students", student_id) if student_id else None
    if student is None:
        raise ResolutionError("Student no longer exists.")
    return student


def record_payment(
    store: DocumentStore,
    student_id: str,
    *,
    amount: float,
    mode: str,
    payment_date: Optional[str] = None,
    collected_by: Optional[str] = None,
) -> LedgerOutcome:
    """
    Appends a payment, rewrites amountPaid from the full history, then writes
    the matching income transaction. The two writes are not atomic: a failure
    of the second one yields status "partial".
    """
    errors: dict[str, str] = {}
    amount = check_positive_amount(errors, "amount", amount)
    mode = check_choice(errors, "mode", mode, PAYMENT_MODES, "Payment mode")
    payment_date = check_date(errors, "date", payment_date or iso_today(), "Payment date")
    raise_if(errors)

    student = get_student(store, student_id)
    payment = _payment(amount, mode, payment_date, collected_by)
    history = list(student.get("paymentHistory") or []) + [payment]

    store.update(
        "students",
        student_id,
        {"paymentHistory": history, "amountPaid": paid_total(history), "lastUpdated": server_timestamp()},
    )
    name = student.get("fullName", "")
    roll = student.get("roll", "")
    logger.info("Payment of %.2f recorded for %s", amount, roll, extra={"student_id": student_id})

    return record_linked_income(
        store,
        record_id=student_id,
        record_label=f"Payment for {name} ({roll})",
        amount=amount,
        category=FEE_CATEGORY,
        description=f"Fee payment: {name} (Roll: {roll})",
        on_date=payment_date,
        reference=roll,
        studentId=student_id,
        paymentTimestamp=payment["timestamp"],
    )


_EDITABLE_TEXT = {
    "fullName": ("Full name", 2),
    "fathersName": ("Father's name", 2),
    "address": ("Address", 5),
}


def update_student(store: DocumentStore, student_id: str, changes: dict[str, Any]) -> None:
    """
    Direct field writes for identity, contact and fee fields.

    Roll number and payment fields are rejected: payments go through
    record_payment, and the roll is fixed once assigned.
    """
    errors: dict[str, str] = {}
    for f in sorted(set(changes) & PROTECTED_FIELDS):
        errors[f] = "This field cannot be edited here."

    fields: dict[str, Any] = {}
    for key, value in changes.items():
        if key in PROTECTED_FIELDS:
            continue
        if key in _EDITABLE_TEXT:
            label, min_len = _EDITABLE_TEXT[key]
            fields[key] = check_text(errors, key, value, label, min_len=min_len)
        elif key == "mobile":
            fields[key] = check_mobile(errors, key, value)
        elif key in ("dob", "enrollmentDate"):
            fields[key] = check_date(errors, key, value, "Date")
        elif key == "totalFee":
            fields[key] = check_non_negative_amount(errors, key, value, "Total fee")
        elif key != "course":
            # The course name always follows courseId.
            fields[key] = value
    raise_if(errors)

    get_student(store, student_id)
    if "courseId" in fields:
        fields["course"] = get_course(store, fields["courseId"]).get("name", "")

    fields["lastUpdated"] = server_timestamp()
    store.update("students", student_id, fields)
    logger.info("Updated student %s (%s)", student_id, ", ".join(sorted(changes)))


def delete_student(store: DocumentStore, student_id: str) -> None:
    # Fee transactions stay in the ledger; they are income already received.
    store.delete("students", student_id)
    logger.info("Deleted student %s", student_id)


def payment_history(student: dict, newest_first: bool = True) -> list[dict]:
    return sorted(
        student.get("paymentHistory") or [],
        key=lambda p: (str(p.get("date", "")), str(p.get("timestamp", ""))),
        reverse=newest_first,
    )


def due_amount(student: dict) -> float:
    return money(float(student.get("totalFee") or 0) - float(student.get("amountPaid") or 0))


def fee_slip(student: dict, payment_timestamp: str) -> dict:
    """
    Read-only data for a printed fee slip. The slip number is the 1-based
    position of the payment in creation order, so it never changes.
    """
    ordered = sorted(student.get("paymentHistory") or [], key=lambda p: str(p.get("timestamp", "")))
    for i, p in enumerate(ordered, start=1):
        if p.get("timestamp") == payment_timestamp:
            return {
                "slipNo": f"{student.get('roll', '')}-{i:02d}",
                "sequence": i,
                "roll": student.get("roll", ""),
                "fullName": student.get("fullName", ""),
                "fathersName": student.get("fathersName", ""),
                "course": student.get("course", ""),
                "amount": money(p.get("amount")),
                "mode": p.get("mode", ""),
                "date": p.get("date", ""),
                "collectedBy": p.get("collectedBy", ""),
                "totalFee": money(student.get("totalFee")),
                "amountPaid": money(student.get("amountPaid")),
                "dueAmount": due_amount(student),
            }
    raise ResolutionError("Payment not found on this student.")


def filter_students(students: list[dict], search: str = "", course_id: Optional[str] = None) -> list[dict]:
    needle = str(search or "").strip().lower()
    out = []
    for s in students:
        if course_id and s.get("courseId") != course_id:
            continue
        if needle and needle not in str(s.get("fullName", "")).lower() and needle not in str(s.get("roll", "")).lower():
            continue
        out.append(s)
    return out
