"""
Reconciliation between student payment histories and the transactions ledger.

Payment history is the source of truth for fees. Detection is pure and works
on snapshots; reconcile_student() is the explicit repair operation: it
rewrites the cached amountPaid and records every unmatched payment as income,
all in one atomic batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from academy.services.fees import FEE_CATEGORY, get_student, paid_total
from academy.store import DocumentStore
from academy.utils import money

logger = logging.getLogger(__name__)

CACHED_TOTAL = "cached_total"
UNRECORDED_PAYMENT = "unrecorded_payment"


@dataclass
class Discrepancy:
    student_id: str
    roll: str
    full_name: str
    kind: str
    amount: float
    detail: str


def _fee_transactions(student_id: str, transactions: list[dict]) -> list[dict]:
    return [
        t for t in transactions
        if t.get("studentId") == student_id and t.get("type") == "Income"
    ]


def unrecorded_payments(student: dict, transactions: list[dict]) -> list[dict]:
    """
    Payments with no matching income transaction. A transaction matches by
    paymentTimestamp; older entries without one match on amount and date.
    """
    linked = _fee_transactions(student["id"], transactions)
    by_ts = {t["paymentTimestamp"] for t in linked if t.get("paymentTimestamp")}
    loose = [t for t in linked if not t.get("paymentTimestamp")]

    missing = []
    for p in sorted(student.get("paymentHistory") or [], key=lambda p: str(p.get("timestamp", ""))):
        if p.get("timestamp") in by_ts:
            continue
        match = next(
            (
                t for t in loose
                if money(t.get("amount")) == money(p.get("amount")) and t.get("date") == p.get("date")
            ),
            None,
        )
        if match is not None:
            loose.remove(match)
            continue
        missing.append(p)
    return missing


def find_fee_discrepancies(students: list[dict], transactions: list[dict]) -> list[Discrepancy]:
    out: list[Discrepancy] = []
    for s in students:
        roll = str(s.get("roll", ""))
        name = str(s.get("fullName", ""))
        expected = paid_total(s.get("paymentHistory") or [])
        cached = money(s.get("amountPaid"))
        if cached != expected:
            out.append(
                Discrepancy(
                    student_id=s["id"],
                    roll=roll,
                    full_name=name,
                    kind=CACHED_TOTAL,
                    amount=money(expected - cached),
                    detail=f"amountPaid is {cached:,.2f} but payment history sums to {expected:,.2f}",
                )
            )
        for p in unrecorded_payments(s, transactions):
            out.append(
                Discrepancy(
                    student_id=s["id"],
                    roll=roll,
                    full_name=name,
                    kind=UNRECORDED_PAYMENT,
                    amount=money(p.get("amount")),
                    detail=f"{p.get('mode', '')} payment on {p.get('date', '')} has no income transaction",
                )
            )
    return out


def reconcile_student(store: DocumentStore, student_id: str, transactions: Optional[list[dict]] = None) -> int:
    """
    Brings one student in line with the ledger. Returns the number of income
    transactions written.
    """
    student = get_student(store, student_id)
    if transactions is None:
        transactions = store.query("transactions", [("studentId", "==", student_id)])

    history = student.get("paymentHistory") or []
    missing = unrecorded_payments(student, transactions)
    expected = paid_total(history)
    fix_total = money(student.get("amountPaid")) != expected

    if not missing and not fix_total:
        return 0

    name = student.get("fullName", "")
    roll = student.get("roll", "")
    with store.batch() as batch:
        if fix_total:
            batch.update("students", student_id, {"amountPaid": expected})
        for p in missing:
            batch.set(
                "transactions",
                store.new_id(),
                {
                    "description": f"Fee payment (reconciled): {name} (Roll: {roll})",
                    "amount": money(p.get("amount")),
                    "type": "Income",
                    "category": FEE_CATEGORY,
                    "date": p.get("date"),
                    "studentId": student_id,
                    "paymentTimestamp": p.get("timestamp"),
                },
            )
    logger.info(
        "Reconciled student %s: %d payment(s) recorded, amountPaid %s",
        student_id,
        len(missing),
        "rewritten" if fix_total else "unchanged",
    )
    return len(missing)


def orphaned_income(transactions: list[dict], sales: list[dict], students: list[dict]) -> list[dict]:
    """
    Income whose source sale or student has been deleted. Kept in the ledger
    on purpose; listed so it can be reviewed by hand.
    """
    sale_ids = {s["id"] for s in sales}
    student_ids = {s["id"] for s in students}
    out = []
    for t in transactions:
        if t.get("saleId") and t["saleId"] not in sale_ids:
            out.append({**t, "source": "sale"})
        elif t.get("studentId") and t["studentId"] not in student_ids:
            out.append({**t, "source": "student"})
    return out
