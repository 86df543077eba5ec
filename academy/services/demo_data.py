from __future__ import annotations

import random
from datetime import date, timedelta

from academy.schema import COLLECTIONS
from academy.services.courses import add_course, find_course_by_name
from academy.services.enquiries import add_enquiry
from academy.services.fees import record_payment, register_student
from academy.services.inventory import add_material
from academy.services.ledger import EXPENSE, add_transaction
from academy.services.sales import create_sale
from academy.store import DocumentStore

DEFAULT_COURSES = [
    ("Criminal Law Advanced", 50000.0),
    ("Constitutional Law", 35000.0),
    ("Judiciary Foundation Course", 60000.0),
    ("CLAT Preparation", 25000.0),
]
DEFAULT_MATERIALS = [
    ("Notes A", 150.0, 40),
    ("Bare Acts Compilation", 450.0, 25),
    ("Previous Year Papers", 200.0, 60),
]

_FIRST = ["Aarav", "Priya", "Rohan", "Sneha", "Vikram", "Ananya", "Karan", "Meera"]
_LAST = ["Sharma", "Verma", "Gupta", "Singh", "Iyer", "Khan"]


def upsert_reference_data(store: DocumentStore) -> None:
    for name, fee in DEFAULT_COURSES:
        if find_course_by_name(store, name) is None:
            add_course(store, name=name, fee=fee)


def wipe_all(store: DocumentStore) -> None:
    # Keep schema, delete data.
    store.clear(*COLLECTIONS)
    store.reset_counters()


def load_demo_data(store: DocumentStore, *, seed: int = 7) -> None:
    rng = random.Random(seed)
    upsert_reference_data(store)

    courses = store.query("courses", order_by="name")
    if not store.count("materials"):
        for name, price, stock in DEFAULT_MATERIALS:
            add_material(store, name=name, price=price, initial_stock=stock)
    materials = store.query("materials", order_by="name")

    today = date.today()
    for i in range(8):
        c = rng.choice(courses)
        first, last = _FIRST[i % len(_FIRST)], rng.choice(_LAST)
        fee = float(c.get("fee") or 0)
        paid = round(fee * rng.choice([0, 0.2, 0.4, 0.5]), 2)
        outcome = register_student(
            store,
            full_name=f"{first} {last}",
            fathers_name=f"{rng.choice(_FIRST)} {last}",
            mobile=f"98{rng.randint(10000000, 99999999)}",
            dob=(today - timedelta(days=rng.randint(7000, 9500))).isoformat(),
            address=f"{rng.randint(1, 200)} Civil Lines, New Delhi",
            course_id=c["id"],
            amount_paid=paid,
            payment_mode=rng.choice(["Cash", "UPI", "Bank Transfer"]),
            payment_date=(today - timedelta(days=rng.randint(0, 20))).isoformat(),
        )
        if paid and rng.random() < 0.5:
            record_payment(
                store,
                outcome.record_id,
                amount=round(fee * 0.1, 2),
                mode="UPI",
                payment_date=(today - timedelta(days=rng.randint(0, 5))).isoformat(),
            )

    for i in range(6):
        m = rng.choice(materials)
        create_sale(
            store,
            customer_name=f"{rng.choice(_FIRST)} {rng.choice(_LAST)}",
            material_id=m["id"],
            quantity=rng.randint(1, 5),
            medium=rng.choice(["English", "Hindi"]),
            sale_date=(today - timedelta(days=rng.randint(0, 10))).isoformat(),
        )

    for category, amount in [("Rent", 25000.0), ("Utilities", 3200.0), ("Salaries", 40000.0), ("Supplies", 1800.0)]:
        add_transaction(
            store,
            description=f"{category} (demo)",
            amount=amount,
            tx_type=EXPENSE,
            category=category,
            on_date=(today - timedelta(days=rng.randint(0, 25))).isoformat(),
        )

    for i in range(4):
        add_enquiry(
            store,
            name=f"{rng.choice(_FIRST)} {rng.choice(_LAST)}",
            mobile=f"97{rng.randint(10000000, 99999999)}",
            course_id=rng.choice(courses)["id"],
            notes="Walk-in enquiry (demo)",
            status=rng.choice(["Pending", "Pending", "Followed-up"]),
        )
