from __future__ import annotations

import logging
from typing import Optional

from academy.errors import ResolutionError
from academy.services.ledger import LedgerOutcome, record_linked_income
from academy.store import DocumentStore
from academy.utils import iso_today, money
from academy.validation import (
    SALE_MEDIUMS,
    check_choice,
    check_date,
    check_text,
    check_whole_number,
    raise_if,
)

logger = logging.getLogger(__name__)

SALES_CATEGORY = "Sales"

# Shown on the Sales screen; these are deliberate policies.
EDIT_POLICY_HELP = (
    "Editing a sale updates the sale record only. The income transaction recorded when the "
    "sale was created is not changed; correct it manually under Income & Expenses."
)
DELETE_POLICY_HELP = (
    "Deleting a sale removes the sale record only. Its income transaction stays in the ledger "
    "and is listed under Reports > Reconciliation as orphaned income."
)
STOCK_POLICY_HELP = (
    "Sales do not reduce available stock. Keep stock counts current from the Inventory screen."
)


def _normalize_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


def resolve_material(store: DocumentStore, material_id: str) -> dict:
    material = store.get("materials", material_id) if material_id else None
    if material is None:
        raise ResolutionError("Selected material no longer exists.")
    return material


def _validate(customer_name, material_id, quantity, medium, sale_date=None) -> dict:
    errors: dict[str, str] = {}
    data = {
        "customerName": check_text(errors, "customerName", customer_name, "Customer name"),
        "quantity": check_whole_number(errors, "quantity", quantity, "Quantity", minimum=1),
        "medium": check_choice(errors, "medium", medium, SALE_MEDIUMS, "Medium"),
    }
    if not material_id:
        errors["materialId"] = "Please select a material."
    if sale_date is not None:
        data["saleDate"] = check_date(errors, "saleDate", sale_date, "Sale date")
    raise_if(errors)
    return data


def _priced(material: dict, material_id: str, quantity: int) -> dict:
    # Price always comes from the catalog at submit time, never from the form.
    unit_price = money(material.get("price"))
    return {
        "materialId": material_id,
        "materialName": str(material.get("name", "")),
        "unitPrice": unit_price,
        "totalPrice": money(unit_price * int(quantity)),
    }


def create_sale(
    store: DocumentStore,
    *,
    customer_name: str,
    material_id: str,
    quantity: int,
    medium: str = "English",
    college_university: Optional[str] = None,
    sale_date: Optional[str] = None,
) -> LedgerOutcome:
    """
    Writes the sale (with a price snapshot) and then one linked Income /
    "Sales" transaction for totalPrice. An unknown material rejects the whole
    operation before any write, and so does a material without a price.
    """
    data = _validate(customer_name, material_id, quantity, medium, sale_date or iso_today())
    material = resolve_material(store, material_id)

    sale = {
        **data,
        **_priced(material, material_id, data["quantity"]),
        "collegeUniversity": _normalize_optional(college_university),
    }
    if sale["totalPrice"] <= 0:
        # The linked income must be > 0; reject before the sale is written.
        raise_if({"materialId": f"'{sale['materialName']}' has no price; set one under Materials & Inventory."})
    sale_id = store.add("sales", sale)
    logger.info(
        "Sale %s: %d x %s = %.2f",
        sale_id,
        sale["quantity"],
        sale["materialName"],
        sale["totalPrice"],
    )

    return record_linked_income(
        store,
        record_id=sale_id,
        record_label=f"Sale to {sale['customerName']}",
        amount=sale["totalPrice"],
        category=SALES_CATEGORY,
        description=f"Sale of {sale['quantity']} x {sale['materialName']} to {sale['customerName']}",
        on_date=sale["saleDate"],
        saleId=sale_id,
    )


def update_sale(
    store: DocumentStore,
    sale_id: str,
    *,
    customer_name: str,
    material_id: str,
    quantity: int,
    medium: str,
    college_university: Optional[str] = None,
) -> None:
    # See EDIT_POLICY_HELP: the linked transaction is left as is.
    data = _validate(customer_name, material_id, quantity, medium)
    if store.get("sales", sale_id) is None:
        raise ResolutionError("Sale no longer exists.")
    material = resolve_material(store, material_id)

    store.update(
        "sales",
        sale_id,
        {
            **data,
            **_priced(material, material_id, data["quantity"]),
            "collegeUniversity": _normalize_optional(college_university),
        },
    )
    logger.info("Updated sale %s (income transaction unchanged)", sale_id)


def delete_sale(store: DocumentStore, sale_id: str) -> None:
    # See DELETE_POLICY_HELP: the linked transaction is left as is.
    store.delete("sales", sale_id)
    logger.info("Deleted sale %s (income transaction kept)", sale_id)


def sales_revenue(sales: list[dict]) -> float:
    return money(sum(float(s.get("totalPrice") or 0) for s in sales))
