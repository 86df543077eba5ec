"""
The transactions collection: manual income/expense entries and the income
records written on behalf of fee payments and sales.

Income written for another record (a student payment, a sale) is a second,
separate write. When it fails after the first write succeeded, the caller gets
a LedgerOutcome with status "partial" instead of an exception, so the screen
can tell the user exactly what needs reconciling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from academy.errors import ResolutionError
from academy.store import DocumentStore
from academy.utils import iso_today
from academy.validation import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    TRANSACTION_TYPES,
    check_choice,
    check_date,
    check_positive_amount,
    check_text,
    raise_if,
)

logger = logging.getLogger(__name__)

INCOME = "Income"
EXPENSE = "Expense"

OK = "ok"
PARTIAL = "partial"


@dataclass
class LedgerOutcome:
    status: str
    record_id: str
    transaction_id: Optional[str] = None
    reference: Optional[str] = None
    warning: Optional[str] = None

    @property
    def partial(self) -> bool:
        return self.status == PARTIAL


def recommended_categories(tx_type: str) -> tuple[str, ...]:
    if tx_type == INCOME:
        return INCOME_CATEGORIES
    if tx_type == EXPENSE:
        return EXPENSE_CATEGORIES
    return ()


def _validate(description: Any, amount: Any, tx_type: Any, category: Any, on_date: Any) -> dict:
    errors: dict[str, str] = {}
    data = {
        "description": check_text(errors, "description", description, "Description", min_len=1),
        "amount": check_positive_amount(errors, "amount", amount),
        "type": check_choice(errors, "type", tx_type, TRANSACTION_TYPES, "Type"),
        # Free text; the recommended list is only a suggestion.
        "category": check_text(errors, "category", category, "Category", min_len=1),
        "date": check_date(errors, "date", on_date, "Date"),
    }
    raise_if(errors)
    return data


def add_transaction(
    store: DocumentStore,
    *,
    description: str,
    amount: float,
    tx_type: str,
    category: str,
    on_date: Optional[str] = None,
    **links: Any,
) -> str:
    data = _validate(description, amount, tx_type, category, on_date or iso_today())
    data.update({k: v for k, v in links.items() if v is not None})
    tx_id = store.add("transactions", data)
    logger.info("Recorded %s %.2f (%s) as %s", data["type"], data["amount"], data["category"], tx_id)
    return tx_id


def update_transaction(
    store: DocumentStore,
    tx_id: str,
    *,
    description: str,
    amount: float,
    tx_type: str,
    category: str,
    on_date: str,
) -> None:
    """
    Direct edit of a ledger entry. Does not touch the student or sale it may
    point at; use reconciliation to review the effect on fee records.
    """
    data = _validate(description, amount, tx_type, category, on_date)
    if store.get("transactions", tx_id) is None:
        raise ResolutionError("Transaction no longer exists.")
    store.update("transactions", tx_id, data)
    logger.info("Updated transaction %s", tx_id)


def delete_transaction(store: DocumentStore, tx_id: str) -> None:
    store.delete("transactions", tx_id)
    logger.info("Deleted transaction %s", tx_id)


def record_linked_income(
    store: DocumentStore,
    *,
    record_id: str,
    record_label: str,
    amount: float,
    category: str,
    description: str,
    on_date: str,
    reference: Optional[str] = None,
    **links: Any,
) -> LedgerOutcome:
    """
    Second write of a two-write operation. The first write (record_id) has
    already succeeded; any failure here is reported, not raised.
    """
    try:
        tx_id = add_transaction(
            store,
            description=description,
            amount=amount,
            tx_type=INCOME,
            category=category,
            on_date=on_date,
            **links,
        )
    except Exception as e:
        logger.warning(
            "%s %s saved but income of %.2f was not recorded: %s",
            record_label,
            record_id,
            float(amount),
            e,
            exc_info=e,
            extra={"record_id": record_id, "category": category},
        )
        return LedgerOutcome(
            status=PARTIAL,
            record_id=record_id,
            reference=reference,
            warning=(
                f"{record_label} saved, but the income of {float(amount):,.2f} was NOT recorded in "
                "transactions. Open Reports > Reconciliation to record it, or add it manually "
                f"under Income & Expenses (category '{category}')."
            ),
        )
    return LedgerOutcome(status=OK, record_id=record_id, transaction_id=tx_id, reference=reference)


def filter_transactions(transactions: list[dict], tx_type: str = "all") -> list[dict]:
    if tx_type == "all":
        return list(transactions)
    return [t for t in transactions if t.get("type") == tx_type]
