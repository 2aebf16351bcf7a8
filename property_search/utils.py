import hashlib
import json
import math
from typing import Any

TRUTHY = {"1", "true", "yes", "y", "on"}

# Range of a SQLite INTEGER; larger Python ints cannot be bound.
SQLITE_INT_MIN = -2**63
SQLITE_INT_MAX = 2**63 - 1

def split_csv(value: Any) -> list[str]:
    """'Boston, Cambridge' or ['Boston', ' Cambridge'] -> ['Boston', 'Cambridge']."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        parts = str(value).split(",")
    return [p.strip() for p in parts if p.strip()]

def to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None

def to_int(value: Any) -> int | None:
    # '2.5' -> 2, like an integer cast on the request value
    number = to_float(value)
    if number is None:
        return None
    number = int(number)
    return number if SQLITE_INT_MIN <= number <= SQLITE_INT_MAX else None

def is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value or "").strip().lower() in TRUTHY

def escape_like(value: str) -> str:
    # pairs with ESCAPE '\' in the generated LIKE
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

def digest(payload: Any) -> str:
    raw = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.md5(raw.encode("utf-8")).hexdigest()
