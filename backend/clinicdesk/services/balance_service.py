# Overview: Read-only cash balance derivation from the cash ledger.

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from ..extensions import db
from ..models import CashRecord
from ..models.cash import CASH_BANK_DEPOSIT, CASH_EXPENSE, CASH_INCOME
from ..time_utils import local_date_of, local_day_bounds
from .cash_service import list_records_for_day, records_between


def signed_amount(record_type: str, amount: int) -> int:
    if record_type == CASH_INCOME:
        return amount
    if record_type in (CASH_EXPENSE, CASH_BANK_DEPOSIT):
        return -amount
    # Unknown types never move the balance
    return 0


def fold_balance(records: Iterable[CashRecord], initial: int = 0) -> int:
    acc = initial
    for record in records:
        acc += signed_amount(record.type, record.amount or 0)
    return acc


def compute_balance(cutoff_day: date) -> int:
    """Net cash accumulated strictly before the local cutoff day."""
    cutoff_start, _ = local_day_bounds(cutoff_day)
    return fold_balance(records_between(None, cutoff_start))


def _last_closed_record(*, before, on_or_after=None) -> CashRecord | None:
    q = db.session.query(CashRecord).filter(
        CashRecord.is_closed.is_(True),
        CashRecord.date < before,
    )
    if on_or_after is not None:
        q = q.filter(CashRecord.date >= on_or_after)
    return q.order_by(CashRecord.date.desc(), CashRecord.id.desc()).first()


def opening_balance(day: date) -> int:
    """
    Cash carried into `day`.

    A closed previous day answers with its counted closing amount. Otherwise
    the fold starts from the most recent closed day before it (its counted
    amount) and runs through the end of the previous day. Without any closing
    this is exactly compute_balance(day).
    """
    previous = day - timedelta(days=1)
    prev_start, prev_end = local_day_bounds(previous)

    closed_previous = _last_closed_record(before=prev_end, on_or_after=prev_start)
    if closed_previous is not None:
        return closed_previous.closing_amount or 0

    anchor = _last_closed_record(before=prev_start)
    if anchor is None:
        return fold_balance(records_between(None, prev_end))

    _, anchor_end = local_day_bounds(local_date_of(anchor.date))
    return fold_balance(records_between(anchor_end, prev_end), anchor.closing_amount or 0)


def day_summary(day: date) -> dict:
    records = list_records_for_day(day)

    totals = {CASH_INCOME: 0, CASH_EXPENSE: 0, CASH_BANK_DEPOSIT: 0}
    for record in records:
        if record.type in totals:
            totals[record.type] += record.amount

    opening = opening_balance(day)
    expected = fold_balance(records, opening)

    closed = [r for r in records if r.is_closed]
    closing_amount = closed[-1].closing_amount if closed else None

    return {
        "date": day.isoformat(),
        "opening_balance": opening,
        "income_total": totals[CASH_INCOME],
        "expense_total": totals[CASH_EXPENSE],
        "bank_deposit_total": totals[CASH_BANK_DEPOSIT],
        "expected_balance": expected,
        "is_closed": bool(closed),
        "closing_amount": closing_amount,
        "difference": (closing_amount - expected) if closing_amount is not None else None,
        "record_count": len(records),
    }
