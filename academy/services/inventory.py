"""
Study material catalog and its stock ledger.

A material and its inventory item share one id (materials/<id> and
inventory/<id>). Every write touching both goes through one atomic batch, so
there is never a state where only one of the pair changed.
"""

from __future__ import annotations

import logging
from typing import Any

from academy.errors import ResolutionError
from academy.store import DocumentStore, increment
from academy.validation import check_non_negative_amount, check_text, check_whole_number, raise_if

logger = logging.getLogger(__name__)


def _validate_material(name: Any, price: Any) -> dict:
    errors: dict[str, str] = {}
    data = {
        "name": check_text(errors, "name", name, "Material name"),
        "price": check_non_negative_amount(errors, "price", price, "Price"),
    }
    raise_if(errors)
    return data


def add_material(store: DocumentStore, *, name: str, price: float, initial_stock: int = 0) -> str:
    data = _validate_material(name, price)
    errors: dict[str, str] = {}
    stock = check_whole_number(errors, "initialStock", initial_stock or 0, "Initial stock", minimum=0)
    raise_if(errors)

    material_id = store.new_id()
    with store.batch() as batch:
        batch.set("materials", material_id, data)
        batch.set(
            "inventory",
            material_id,
            {"title": data["name"], "totalStock": stock, "availableStock": stock},
        )
    logger.info("Added material %s (%s) with %d in stock", data["name"], material_id, stock)
    return material_id


def update_material(store: DocumentStore, material_id: str, *, name: str, price: float, stock_delta: int = 0) -> None:
    """
    Updates name/price and mirrors the name into the inventory title. A
    positive stock_delta tops up totalStock and availableStock in the same
    batch.
    """
    data = _validate_material(name, price)
    errors: dict[str, str] = {}
    delta = check_whole_number(errors, "stockDelta", stock_delta or 0, "Stock to add", minimum=0)
    raise_if(errors)

    if store.get("materials", material_id) is None:
        raise ResolutionError("Material no longer exists.")

    item: dict[str, Any] = {"title": data["name"]}
    if delta:
        item["totalStock"] = increment(delta)
        item["availableStock"] = increment(delta)

    with store.batch() as batch:
        batch.update("materials", material_id, data)
        # merge=True also recreates a missing inventory counterpart.
        batch.set("inventory", material_id, item, merge=True)
    logger.info("Updated material %s (stock +%d)", material_id, delta)


def delete_material(store: DocumentStore, material_id: str) -> None:
    with store.batch() as batch:
        batch.delete("materials", material_id)
        batch.delete("inventory", material_id)
    logger.info("Deleted material %s and its inventory item", material_id)


def add_stock(store: DocumentStore, item_id: str, quantity: int) -> None:
    errors: dict[str, str] = {}
    qty = check_whole_number(errors, "quantity", quantity, "Stock quantity", minimum=1)
    raise_if(errors)

    if store.get("inventory", item_id) is None:
        raise ResolutionError("Inventory item no longer exists.")
    store.update("inventory", item_id, {"totalStock": increment(qty), "availableStock": increment(qty)})
    logger.info("Added %d unit(s) to inventory item %s", qty, item_id)


def inventory_summary(materials: list[dict], inventory: list[dict]) -> list[dict]:
    """
    Catalog joined with stock, one row per material or stray inventory item.
    `in_sync` is False when the pair disagrees (missing half or title drift).
    """
    items = {i["id"]: i for i in inventory}
    rows: list[dict] = []
    for m in materials:
        i = items.pop(m["id"], None)
        rows.append(
            {
                "id": m["id"],
                "name": m.get("name", ""),
                "price": m.get("price", 0),
                "total_stock": (i or {}).get("totalStock", 0),
                "available_stock": (i or {}).get("availableStock", 0),
                "in_sync": i is not None and i.get("title") == m.get("name"),
            }
        )
    for i in items.values():
        rows.append(
            {
                "id": i["id"],
                "name": i.get("title", ""),
                "price": None,
                "total_stock": i.get("totalStock", 0),
                "available_stock": i.get("availableStock", 0),
                "in_sync": False,
            }
        )
    rows.sort(key=lambda r: str(r["name"]).lower())
    return rows
