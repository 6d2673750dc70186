from __future__ import annotations
from datetime import datetime
from clinicdesk.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any, Union

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.cash import CASH_RECORD_TYPES
from .models.finance import PAYMENT_METHODS
from .models.inventory import (
    IMPLANT_CATEGORIES,
    OUT_REASON_PATIENT_USE,
    OUT_REASONS,
    PRODUCT_LINE_IMPLANT,
    PRODUCT_LINES,
)


# Maximum single amount: 9,999,999,999 won
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT = 9_999_999_999

MAX_QUANTITY = 100_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_line", "category", "name", "manufacturer",
        "specification", "price", "purchase_price",
    },
    required_on_create={"product_line", "name", "price"},
)

# stock and product_line are never client-writable after creation
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"category", "name", "manufacturer", "specification", "price", "purchase_price"},
)

CASH_RECORD_POLICY = ModelValidationPolicy(
    writable_fields={"date", "type", "amount", "description"},
    required_on_create={"type", "amount"},
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"date", "category", "description", "amount", "method", "vendor", "notes"},
    required_on_create={"date", "category", "description", "amount", "method"},
)

EXTRA_INCOME_POLICY = ModelValidationPolicy(
    writable_fields={"date", "income_type", "description", "amount", "method", "notes"},
    required_on_create={"date", "income_type", "description", "amount", "method"},
)

VISIT_PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"date", "chart_number", "patient_name", "doctor", "treatment", "amount", "method", "notes"},
    required_on_create={"date", "chart_number", "patient_name", "amount", "method"},
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """Strict integer parsing: rejects floats, bools and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_amount(key: str, value: Any) -> int:
    """Integer won in [0, MAX_AMOUNT]."""
    amount = coerce_int(key, value)
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT:,}")
    return amount


def coerce_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{key} must be YYYY-MM-DD or an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{key} must be YYYY-MM-DD or an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{key} must be a datetime")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept dates and ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        return coerce_datetime(col.key, value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and k != "specification":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _enforce_amount(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        amount = patch[key]
        if amount < 0:
            raise ValidationError(f"{key} must be >= 0")
        if amount > MAX_AMOUNT:
            raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT:,}")


def _enforce_choice(patch: dict, key: str, choices) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key].upper()
        if value not in choices:
            raise ValidationError(f"{key} must be one of: {', '.join(choices)}")
        patch[key] = value


def enforce_rules_product(patch: dict, *, product_line: str | None = None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _enforce_choice(patch, "product_line", PRODUCT_LINES)
    _enforce_amount(patch, "price")
    _enforce_amount(patch, "purchase_price")

    line = patch.get("product_line", product_line)
    if line == PRODUCT_LINE_IMPLANT and "category" in patch:
        _enforce_choice(patch, "category", IMPLANT_CATEGORIES)
    if line == PRODUCT_LINE_IMPLANT and not patch.get("category") and "product_line" in patch:
        raise ValidationError("category is required for IMPLANT products")


def enforce_rules_cash_record(patch: dict) -> None:
    # type membership is checked here; whether the type may be written is the
    # ledger gate's decision (cash_service)
    _enforce_choice(patch, "type", CASH_RECORD_TYPES)
    _enforce_amount(patch, "amount")


def enforce_rules_finance(patch: dict) -> None:
    _enforce_choice(patch, "method", PAYMENT_METHODS)
    _enforce_amount(patch, "amount")


def parse_quantity(payload: dict, key: str = "quantity") -> int:
    if payload.get(key) is None:
        raise ValidationError(f"{key} is required")
    quantity = coerce_int(key, payload[key])
    if quantity <= 0:
        raise ValidationError(f"{key} must be > 0")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"{key} cannot exceed {MAX_QUANTITY:,}")
    return quantity


def _optional_text(payload: dict, key: str, max_length: int = 255) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value or None


def _optional_datetime(payload: dict, key: str = "date") -> datetime | None:
    if payload.get(key) in (None, ""):
        return None
    return coerce_datetime(key, payload[key])


# =============================================================================
# STOCK MOVEMENTS
# =============================================================================

@dataclass(frozen=True)
class StockIn:
    quantity: int
    unit_cost: int | None = None
    notes: str | None = None
    date: datetime | None = None


@dataclass(frozen=True)
class PatientUseOut:
    """Stock handed out for a patient's treatment; patient context is mandatory."""
    chart_number: str
    patient_name: str
    doctor: str
    out_reason: str = OUT_REASON_PATIENT_USE


@dataclass(frozen=True)
class DisposalOut:
    """Stock discarded or removed for another reason; carries no patient context."""
    out_reason: str


OutContext = Union[PatientUseOut, DisposalOut]

_PATIENT_FIELDS = ("chart_number", "patient_name", "doctor")


@dataclass(frozen=True)
class StockOut:
    quantity: int
    context: OutContext
    notes: str | None = None
    date: datetime | None = None


def parse_out_context(payload: dict) -> OutContext:
    raw_reason = payload.get("out_reason")
    if raw_reason is None or str(raw_reason).strip() == "":
        raise ValidationError("out_reason is required for stock-out")
    reason = str(raw_reason).strip().upper()
    if reason not in OUT_REASONS:
        raise ValidationError(f"out_reason must be one of: {', '.join(OUT_REASONS)}")

    if reason == OUT_REASON_PATIENT_USE:
        values = {key: _optional_text(payload, key, 128) for key in _PATIENT_FIELDS}
        missing = [key for key, value in values.items() if not value]
        if missing:
            raise ValidationError(f"Missing required fields for PATIENT_USE: {', '.join(missing)}")
        return PatientUseOut(**values)

    present = [key for key in _PATIENT_FIELDS if payload.get(key) not in (None, "")]
    if present:
        raise ValidationError(f"{', '.join(present)} only allowed when out_reason is PATIENT_USE")
    return DisposalOut(out_reason=reason)


def parse_stock_in(payload: dict) -> StockIn:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    unit_cost = payload.get("unit_cost", payload.get("purchase_price"))
    if unit_cost is not None:
        unit_cost = coerce_amount("unit_cost", unit_cost)
    return StockIn(
        quantity=parse_quantity(payload),
        unit_cost=unit_cost,
        notes=_optional_text(payload, "notes"),
        date=_optional_datetime(payload),
    )


def parse_stock_out(payload: dict) -> StockOut:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return StockOut(
        quantity=parse_quantity(payload),
        context=parse_out_context(payload),
        notes=_optional_text(payload, "notes"),
        date=_optional_datetime(payload),
    )


# =============================================================================
# SALES
# =============================================================================

@dataclass(frozen=True)
class SaleLineInput:
    product_id: int
    quantity: int
    sale_price: int


@dataclass(frozen=True)
class SaleInput:
    chart_number: str
    patient_name: str
    lines: tuple[SaleLineInput, ...]
    doctor: str | None = None
    date: datetime | None = None


def parse_sale(payload: dict) -> SaleInput:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    chart_number = _optional_text(payload, "chart_number", 32)
    patient_name = _optional_text(payload, "patient_name", 128)
    missing = [k for k, v in (("chart_number", chart_number), ("patient_name", patient_name)) if not v]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    raw_lines = payload.get("lines")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("lines must be a non-empty list")

    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{index}] must be an object")
        if raw.get("product_id") is None or raw.get("sale_price") is None:
            raise ValidationError(f"lines[{index}] requires product_id, quantity and sale_price")
        lines.append(SaleLineInput(
            product_id=coerce_int("product_id", raw["product_id"]),
            quantity=parse_quantity(raw),
            sale_price=coerce_amount("sale_price", raw["sale_price"]),
        ))

    return SaleInput(
        chart_number=chart_number,
        patient_name=patient_name,
        doctor=_optional_text(payload, "doctor", 128),
        date=_optional_datetime(payload),
        lines=tuple(lines),
    )
