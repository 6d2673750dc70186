# Overview: Service-layer operations for the cash ledger; encapsulates business logic and database work.

"""
Cash Ledger Invariants (authoritative)

- cash_records is append-only. INCOME and EXPENSE rows are written only by
  the visit-payment, expense and extra-income workflows (finance_service);
  the ledger API may create, edit and delete BANK_DEPOSIT rows and nothing else.
- A record's type never changes once written.
- Closing a local day stamps is_closed/closing_amount/closed_at on every row
  in [local 00:00, next local 00:00). Re-closing overwrites (last write wins).
- Closed rows, and rows on a closed day, are frozen: the ledger API refuses
  to edit or delete them and refuses to add deposits to a closed day.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import update

from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import CashRecord
from ..models.cash import CASH_BANK_DEPOSIT
from ..time_utils import local_date_of, local_day_bounds, utcnow
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)


# =============================================================================
# LEDGER STORE
# =============================================================================

def records_between(start: datetime | None, end: datetime) -> list[CashRecord]:
    """Rows with start <= date < end, oldest first."""
    q = db.session.query(CashRecord).filter(CashRecord.date < end)
    if start is not None:
        q = q.filter(CashRecord.date >= start)
    return q.order_by(CashRecord.date.asc(), CashRecord.id.asc()).all()


def list_records_for_day(day: date) -> list[CashRecord]:
    start, end = local_day_bounds(day)
    return records_between(start, end)


def get_record(record_id: int) -> CashRecord:
    record = db.session.get(CashRecord, record_id)
    if record is None:
        raise NotFoundError("Cash record not found")
    return record


def is_day_closed(day: date) -> bool:
    start, end = local_day_bounds(day)
    return db.session.query(CashRecord.id).filter(
        CashRecord.date >= start,
        CashRecord.date < end,
        CashRecord.is_closed.is_(True),
    ).first() is not None


def add_record(
    *,
    record_type: str,
    amount: int,
    record_date: datetime,
    description: str | None = None,
    user_id: int | None = None,
    expense_id: int | None = None,
    extra_income_id: int | None = None,
    visit_payment_id: int | None = None,
) -> CashRecord:
    """
    Append a row without committing. Callers own the transaction.

    Used by the ledger gate for deposits and by finance_service for the
    INCOME/EXPENSE rows owned by visit payments, expenses and extra income.
    """
    if is_day_closed(local_date_of(record_date)):
        raise PermissionDeniedError(
            f"Cash for {local_date_of(record_date).isoformat()} is already closed"
        )

    record = CashRecord(
        date=record_date,
        type=record_type,
        amount=amount,
        description=description,
        is_closed=False,
        created_by_user_id=user_id,
        expense_id=expense_id,
        extra_income_id=extra_income_id,
        visit_payment_id=visit_payment_id,
    )
    db.session.add(record)
    db.session.flush()
    return record


def ensure_mutable(record: CashRecord) -> None:
    if record.is_closed:
        raise PermissionDeniedError("Closed cash records cannot be modified")
    if is_day_closed(local_date_of(record.date)):
        raise PermissionDeniedError("Cash records on a closed day cannot be modified")


# =============================================================================
# MUTATION GATE (BANK_DEPOSIT only)
# =============================================================================

def _require_bank_deposit(record_type: str) -> None:
    if record_type != CASH_BANK_DEPOSIT:
        raise PermissionDeniedError(
            "Income and expense records are managed through visits, expenses and "
            "extra income. Only BANK_DEPOSIT records can be edited here."
        )


def create_bank_deposit(patch: dict, *, user_id: int | None = None) -> CashRecord:
    _require_bank_deposit(patch.get("type"))

    def _op():
        record = add_record(
            record_type=CASH_BANK_DEPOSIT,
            amount=patch["amount"],
            record_date=patch.get("date") or utcnow(),
            description=patch.get("description") or "Bank deposit",
            user_id=user_id,
        )
        db.session.commit()
        return record

    record = run_with_retry(_op)
    logger.info("Bank deposit %s recorded: %s", record.id, record.amount)
    return record


def update_bank_deposit(record_id: int, patch: dict) -> CashRecord:
    record = get_record(record_id)
    _require_bank_deposit(record.type)

    if "type" in patch and patch["type"] != record.type:
        raise PermissionDeniedError("type cannot be changed once set")

    ensure_mutable(record)

    new_date = patch.get("date")
    if new_date is not None and is_day_closed(local_date_of(new_date)):
        raise PermissionDeniedError("Cannot move a record onto a closed day")

    for key in ("amount", "description", "date"):
        if key in patch:
            if key in ("amount", "date") and patch[key] is None:
                raise ValidationError(f"{key} cannot be null")
            setattr(record, key, patch[key])

    db.session.commit()
    return record


def delete_bank_deposit(record_id: int) -> None:
    record = get_record(record_id)
    _require_bank_deposit(record.type)
    ensure_mutable(record)

    db.session.delete(record)
    db.session.commit()
    logger.info("Bank deposit %s deleted", record_id)


# =============================================================================
# CLOSING
# =============================================================================

def close_day(day: date, closing_amount: int) -> dict:
    """
    Reconcile one local day against the counted drawer amount.

    Bulk and idempotent: every row of the day is stamped; calling again with a
    different amount overwrites (last write wins). Opening balances of later
    days are derived on read from the most recent closing, so nothing further
    is recomputed here.
    """
    if closing_amount is None:
        raise ValidationError("closingAmount is required")
    if closing_amount < 0:
        raise ValidationError("closingAmount must be >= 0")

    start, end = local_day_bounds(day)
    closed_at = utcnow()

    def _op():
        result = db.session.execute(
            update(CashRecord)
            .where(CashRecord.date >= start, CashRecord.date < end)
            .values(is_closed=True, closing_amount=closing_amount, closed_at=closed_at)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount

    closed_count = run_with_retry(_op)
    # Rows already in the identity map must not keep pre-close values
    db.session.expire_all()

    if closed_count == 0:
        logger.warning("Closing %s matched no cash records; counted amount %s not stored", day, closing_amount)
    else:
        logger.info("Closed %s: %d records, closing amount %s", day, closed_count, closing_amount)

    return {
        "date": day.isoformat(),
        "closing_amount": closing_amount,
        "closed_count": closed_count,
        "closed_at": closed_at,
    }
