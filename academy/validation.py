"""
Field-level validators.

Each check_* helper records a message under the field name in `errors` and
returns the normalized value (or None when invalid). Services collect all
messages first and then call raise_if(errors) before any write.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from academy.errors import ValidationError
from academy.utils import parse_date

PAYMENT_MODES = ("Cash", "UPI", "Bank Transfer")
TRANSACTION_TYPES = ("Income", "Expense")
INCOME_CATEGORIES = ("Fee Collection", "Sales", "Miscellaneous")
EXPENSE_CATEGORIES = ("Rent", "Utilities", "Salaries", "Marketing", "Supplies", "Miscellaneous")
SALE_MEDIUMS = ("English", "Hindi")
ENQUIRY_STATUSES = ("Pending", "Followed-up", "Enrolled")

_MOBILE_RE = re.compile(r"^\d{10}$")


def check_text(errors: dict, field: str, value: Any, label: str, min_len: int = 2) -> Optional[str]:
    s = str(value or "").strip()
    if len(s) < min_len:
        errors[field] = f"{label} is required." if not s else f"{label} must be at least {min_len} characters."
        return None
    return s


def check_mobile(errors: dict, field: str, value: Any) -> Optional[str]:
    s = str(value or "").strip()
    if not _MOBILE_RE.match(s):
        errors[field] = "Invalid mobile number (10 digits)."
        return None
    return s


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if f != f:  # NaN
        return None
    return f


def check_positive_amount(errors: dict, field: str, value: Any, label: str = "Amount") -> Optional[float]:
    f = _to_float(value)
    # Checked after rounding: 0.004 is stored as 0.00.
    if f is not None:
        f = round(f, 2)
    if f is None or f <= 0:
        errors[field] = f"{label} must be greater than 0."
        return None
    return f


def check_non_negative_amount(errors: dict, field: str, value: Any, label: str = "Amount") -> Optional[float]:
    f = _to_float(value if value not in (None, "") else 0)
    if f is not None:
        f = round(f, 2) + 0.0  # -0.004 rounds to -0.0
    if f is None or f < 0:
        errors[field] = f"{label} must be 0 or more."
        return None
    return f


def check_whole_number(errors: dict, field: str, value: Any, label: str, minimum: int = 1) -> Optional[int]:
    f = _to_float(value)
    if f is None or f != int(f) or int(f) < minimum:
        errors[field] = f"{label} must be a whole number of at least {minimum}."
        return None
    return int(f)


def check_choice(errors: dict, field: str, value: Any, choices: Iterable[str], label: str) -> Optional[str]:
    choices = tuple(choices)
    if value not in choices:
        errors[field] = f"{label} must be one of: {', '.join(choices)}."
        return None
    return str(value)


def check_date(errors: dict, field: str, value: Any, label: str, required: bool = True) -> Optional[str]:
    if value in (None, ""):
        if required:
            errors[field] = f"{label} is required."
        return None
    d = parse_date(value)
    if d is None:
        errors[field] = f"{label} must be a date (YYYY-MM-DD)."
        return None
    return d.isoformat()


def raise_if(errors: dict) -> None:
    if errors:
        raise ValidationError(errors)
