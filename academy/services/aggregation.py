"""
Dashboard and report numbers derived from an in-memory snapshot.

Everything here is a pure function of its arguments: no store access, no
caching, no side effects. `today` is injectable so windows are testable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from academy.utils import money, parse_date

WINDOWS = {
    "last_7_days": "Last 7 days",
    "last_30_days": "Last 30 days",
    "this_week": "This week",
    "this_month": "This month",
}


@dataclass(frozen=True)
class Totals:
    income: float
    expenses: float
    net: float


def _amount(t: dict) -> float:
    try:
        return float(t.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0


def totals(transactions: Iterable[dict]) -> Totals:
    income = 0.0
    expenses = 0.0
    for t in transactions:
        if t.get("type") == "Income":
            income += _amount(t)
        elif t.get("type") == "Expense":
            expenses += _amount(t)
    return Totals(income=money(income), expenses=money(expenses), net=money(income - expenses))


def window_bounds(window: str, today: Optional[date] = None) -> tuple[date, date]:
    """Inclusive first and last day of a named window."""
    today = today or date.today()
    if window == "last_7_days":
        return today - timedelta(days=6), today
    if window == "last_30_days":
        return today - timedelta(days=29), today
    if window == "this_week":
        # Weeks run Sunday to Saturday.
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if window == "this_month":
        return today.replace(day=1), today
    raise ValueError(f"Unknown window: {window!r}. Use one of {', '.join(WINDOWS)}.")


def in_window(transactions: Iterable[dict], window: str, today: Optional[date] = None) -> list[dict]:
    """Transactions whose date falls inside the window, by the same day rule as time_series."""
    start, end = window_bounds(window, today)
    out = []
    for t in transactions:
        d = parse_date(t.get("date"))
        if d is not None and start <= d <= end:
            out.append(t)
    return out


def time_series(transactions: Iterable[dict], window: str, today: Optional[date] = None) -> list[dict]:
    """
    One entry per calendar day in the window, oldest first. Days without
    transactions are present with zeros.
    """
    start, end = window_bounds(window, today)
    days = (end - start).days + 1
    buckets = {start + timedelta(days=i): [0.0, 0.0] for i in range(days)}

    for t in transactions:
        d = parse_date(t.get("date"))
        if d not in buckets:
            continue
        if t.get("type") == "Income":
            buckets[d][0] += _amount(t)
        elif t.get("type") == "Expense":
            buckets[d][1] += _amount(t)

    return [
        {"date": d, "income": money(inc), "expense": money(exp)}
        for d, (inc, exp) in sorted(buckets.items())
    ]


def new_entities_this_month(entities: Iterable[dict], date_field: str, today: Optional[date] = None) -> int:
    first = (today or date.today()).replace(day=1)
    n = 0
    for e in entities:
        d = parse_date(e.get(date_field))
        if d is not None and d >= first:
            n += 1
    return n


def revenue_breakdown(transactions: Iterable[dict]) -> dict[str, float]:
    transactions = list(transactions)
    t = totals(transactions)
    by_cat: dict[str, float] = {}
    for tx in transactions:
        if tx.get("type") == "Income":
            cat = str(tx.get("category", ""))
            by_cat[cat] = by_cat.get(cat, 0.0) + _amount(tx)
    return {
        "total_revenue": t.income,
        "sales_revenue": money(by_cat.get("Sales", 0)),
        "enrollment_revenue": money(by_cat.get("Fee Collection", 0)),
        "total_expenses": t.expenses,
        "net_balance": t.net,
    }


def dashboard_counts(students: list[Any], courses: list[Any], enquiries: Iterable[dict]) -> dict[str, int]:
    return {
        "students": len(students),
        "courses": len(courses),
        "pending_enquiries": sum(1 for e in enquiries if e.get("status") == "Pending"),
    }
