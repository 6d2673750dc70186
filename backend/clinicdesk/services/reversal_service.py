# Overview: Deleting stock activities (sales and inventory log entries) with compensation.

"""
Reversal Invariants (authoritative)

- Deleting an activity exactly inverts its stock effect:
    Sale             -> +quantity for every line
    InventoryLog IN  -> -quantity
    InventoryLog OUT -> +quantity
- Saga ordering: the compensating stock update runs first and the record is
  deleted only after every compensation succeeded, all in one transaction.
  If any compensation fails the transaction is rolled back, so the record and
  every stock counter are exactly as they were.
- Reversing an IN that would take stock below zero means the log is already
  inconsistent with the counter. It is reported as a conflict and never
  clamped to zero.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import ClinicError, InsufficientStockError, InternalFailure, NotFoundError, StockConflictError
from ..extensions import db
from ..models import InventoryLog, Sale
from . import inventory_service
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)

ACTIVITY_KINDS = ("sale", "log")


def _find_activity(activity_id: str, kind: str | None):
    if kind in (None, "sale"):
        sale = db.session.query(Sale).filter_by(activity_id=activity_id).first()
        if sale is not None:
            return sale
    if kind in (None, "log"):
        entry = db.session.query(InventoryLog).filter_by(activity_id=activity_id).first()
        if entry is not None:
            return entry
    return None


def _reverse_sale(sale: Sale) -> dict:
    restored = []
    for line in sale.lines:
        product = inventory_service.apply_stock_delta(line.product_id, line.quantity)
        restored.append({"product_id": line.product_id, "quantity": line.quantity, "stock": product.stock})

    db.session.delete(sale)
    return {"kind": "sale", "restored": restored}


def _reverse_log_entry(entry: InventoryLog) -> dict:
    delta = -entry.stock_delta
    try:
        product = inventory_service.apply_stock_delta(entry.product_id, delta)
    except InsufficientStockError as exc:
        raise StockConflictError(
            "Deleting this stock-in would make stock negative; the inventory log is inconsistent",
            details=exc.details,
        ) from exc

    db.session.delete(entry)
    return {
        "kind": "log",
        "restored": [{"product_id": entry.product_id, "quantity": delta, "stock": product.stock}],
    }


def delete_activity(activity_id: str, *, kind: str | None = None) -> dict:
    """
    Delete a sale or inventory log entry after compensating its stock effect.

    Raises NotFoundError when neither exists, StockConflictError when the
    inverse would go negative, InternalFailure when storage fails mid-saga.
    """
    def _op():
        activity = _find_activity(activity_id, kind)
        if activity is None:
            raise NotFoundError("Activity not found")

        if isinstance(activity, Sale):
            outcome = _reverse_sale(activity)
        else:
            outcome = _reverse_log_entry(activity)

        db.session.commit()
        return outcome

    try:
        outcome = run_with_retry(_op)
    except ClinicError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Compensation failed for activity %s; nothing was deleted", activity_id)
        raise InternalFailure("Stock update failed; the activity was not deleted") from exc

    logger.info("Activity %s (%s) deleted, stock restored: %s", activity_id, outcome["kind"], outcome["restored"])
    outcome["activity_id"] = activity_id
    return outcome
