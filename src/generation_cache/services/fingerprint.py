"""Deterministic fingerprints for generation requests.

Canonicalization rules:
- mapping keys are sorted recursively (keys are stringified)
- numbers are normalized so 3, 3.0 and Decimal("3.00") compare equal
- string leaves are trimmed and lower-cased
- keys whose value is None are dropped
"""

import hashlib
import json
import math
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any


def canonicalize(value: Any) -> Any:
    """Return a JSON-compatible canonical form of a value."""
    if isinstance(value, Enum):
        value = value.value

    if isinstance(value, Mapping):
        return {
            str(key).strip().lower(): canonicalize(item)
            for key, item in sorted(value.items(), key=lambda kv: str(kv[0]).strip().lower())
            if item is not None
        }

    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]

    if isinstance(value, (set, frozenset)):
        return sorted((canonicalize(item) for item in value), key=_sort_key)

    if isinstance(value, bool) or value is None:
        return value

    if isinstance(value, (int, float, Decimal)):
        return _normalize_number(value)

    if isinstance(value, str):
        return value.strip().lower()

    return str(value).strip().lower()


def build_fingerprint(subject_id: str, request_type: str, domain_params: Mapping[str, Any]) -> str:
    """Derive the cache key of a logical request.

    Args:
        subject_id: Identity of the subject
        request_type: The request type
        domain_params: Domain parameters of the request

    Returns:
        A 64-character hex SHA-256 digest
    """
    canonical = canonicalize(
        {
            "subject_id": subject_id,
            "request_type": request_type,
            "domain_params": dict(domain_params),
        }
    )
    encoded = json.dumps(canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _normalize_number(value: int | float | Decimal) -> int | str:
    if isinstance(value, int):
        return value

    if isinstance(value, float) and not math.isfinite(value):
        return repr(value)

    number = Decimal(str(value)) if isinstance(value, float) else value
    if number == number.to_integral_value():
        return int(number)
    # Non-integral numbers as a normalized decimal string ("0.50" -> "0.5")
    return format(number.normalize(), "f")


def _sort_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)
