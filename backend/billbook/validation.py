from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from billbook.time_utils import parse_iso_date


ZERO = Decimal("0")

# Upper bound on any single price/rate/amount; guards against nonsense input
MAX_AMOUNT = Decimal("999999999.99")
MAX_GST_RATE = Decimal("100")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product id)."""


def coerce_decimal(value: Any, *, field: str = "value", default: Decimal = ZERO) -> Decimal:
    """
    Coerce JSON/document input to Decimal.

    - None / "" -> default
    - bool is rejected (True is not a quantity)
    - floats go through str() so 0.1 stays 0.1
    - "1,250.50" and "Rs. 99" style strings are cleaned first
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if text.lower().startswith("rs."):
            text = text[3:].strip()
        if not text:
            return default
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
        if not result.is_finite():
            raise ValidationError(f"{field} must be a finite number")
        return result
    raise ValidationError(f"{field} must be a number")


def coerce_optional_decimal(value: Any, *, field: str = "value") -> Decimal | None:
    if value is None or value == "":
        return None
    return coerce_decimal(value, field=field)


def coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def coerce_bool(value: Any, *, field: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off", ""}:
            return False
    if isinstance(value, int):
        return bool(value)
    raise ValidationError(f"{field} must be a boolean")


def coerce_date(value: Any, *, field: str = "date") -> str | None:
    """Normalize to an ISO date string (YYYY-MM-DD)."""
    try:
        parsed = parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 date")
    return parsed.isoformat() if parsed else None


_COERCERS = {
    "text": lambda v, k: coerce_text(v),
    "decimal": lambda v, k: coerce_decimal(v, field=k),
    "optional_decimal": lambda v, k: coerce_optional_decimal(v, field=k),
    "bool": lambda v, k: coerce_bool(v, field=k),
    "date": lambda v, k: coerce_date(v, field=k),
}


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Central policy layer:
    - field_kinds: writable fields and how each is coerced (security boundary)
    - required_on_create: fields required for POST
    """
    field_kinds: dict[str, str]
    required_on_create: frozenset[str] = frozenset()


def validate_payload(*, payload: Any, policy: PayloadPolicy, partial: bool) -> dict:
    """
    Validates + normalizes incoming JSON against a PayloadPolicy.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if coerce_text(payload.get(f)) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for k in payload.keys():
        if k not in policy.field_kinds:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        patch[k] = _COERCERS[policy.field_kinds[k]](raw, k)
    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by coercion alone.
    Keep these small and centralized.
    """
    price = patch.get("price")
    if price is not None:
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_AMOUNT:
            raise ValidationError(f"price cannot exceed {MAX_AMOUNT}")

    enforce_gst_rate(patch.get("gst_rate"))

    if "name" in patch and not patch["name"]:
        raise ValidationError("name cannot be blank")


def enforce_gst_rate(rate: Decimal | None, *, field: str = "gst_rate") -> None:
    if rate is None:
        return
    if rate < 0 or rate > MAX_GST_RATE:
        raise ValidationError(f"{field} must be between 0 and {MAX_GST_RATE}")
