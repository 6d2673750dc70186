# Overview: Service-layer operations for visit payments, expenses and extra income, and the cash records they own.

"""
Cash ownership:
- A CASH visit payment owns exactly one INCOME cash record (cash_records.visit_payment_id).
- A CASH expense owns exactly one EXPENSE cash record (cash_records.expense_id).
- A CASH extra income owns exactly one INCOME cash record (cash_records.extra_income_id).
- Non-cash entries own none.
- The owner and its cash record change in the same transaction.
- A closed cash record (or one on a closed day) freezes the owner's cash
  fields: method, amount, date, and whatever feeds the record's description.
  Edits that leave the cash record as it is (notes, vendor, doctor) go through.
"""

from __future__ import annotations

import logging
from datetime import date

from ..errors import NotFoundError, PermissionDeniedError
from ..extensions import db
from ..models import CashRecord, Expense, ExtraIncome, VisitPayment
from ..models.cash import CASH_EXPENSE, CASH_INCOME
from ..models.finance import METHOD_CASH
from ..time_utils import local_date_of, local_day_bounds
from .cash_service import add_record, ensure_mutable, is_day_closed
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)

# owner model -> (link column on cash_records, cash record type)
_CASH_LINKS = {
    VisitPayment: ("visit_payment_id", CASH_INCOME),
    Expense: ("expense_id", CASH_EXPENSE),
    ExtraIncome: ("extra_income_id", CASH_INCOME),
}


def _linked_record(owner) -> CashRecord | None:
    link_field, _ = _CASH_LINKS[type(owner)]
    return db.session.query(CashRecord).filter(
        getattr(CashRecord, link_field) == owner.id
    ).first()


def _cash_description(owner) -> str:
    if isinstance(owner, VisitPayment):
        return f"{owner.patient_name} cash payment"
    if isinstance(owner, Expense):
        return f"Expense: {owner.description}"
    return f"Extra income: {owner.description}"


def _sync_cash_record(owner, *, user_id: int | None = None) -> None:
    """Bring the owner's cash record in line with its method, amount and date. Does not commit."""
    link_field, cash_type = _CASH_LINKS[type(owner)]
    linked = _linked_record(owner)

    if owner.method != METHOD_CASH:
        if linked is not None:
            ensure_mutable(linked)
            db.session.delete(linked)
            db.session.flush()
        return

    if linked is None:
        add_record(
            record_type=cash_type,
            amount=owner.amount,
            record_date=owner.date,
            description=_cash_description(owner),
            user_id=user_id,
            **{link_field: owner.id},
        )
        return

    description = _cash_description(owner)
    if (linked.amount, linked.date, linked.description) == (owner.amount, owner.date, description):
        return

    ensure_mutable(linked)
    if local_date_of(owner.date) != local_date_of(linked.date) and is_day_closed(local_date_of(owner.date)):
        raise PermissionDeniedError("Cannot move a cash entry onto a closed day")
    linked.amount = owner.amount
    linked.date = owner.date
    linked.description = description
    db.session.flush()


def _list(model, start: date | None, end: date | None, **filters):
    q = db.session.query(model).filter_by(**filters)
    if start is not None:
        q = q.filter(model.date >= local_day_bounds(start)[0])
    if end is not None:
        q = q.filter(model.date < local_day_bounds(end)[1])
    return q.order_by(model.date.desc(), model.id.desc()).all()


def _get(model, entry_id: int, label: str):
    entry = db.session.get(model, entry_id)
    if entry is None:
        raise NotFoundError(f"{label} not found")
    return entry


def _create(model, patch: dict, user_id: int | None):
    def _op():
        entry = model(created_by_user_id=user_id, **patch)
        db.session.add(entry)
        db.session.flush()
        _sync_cash_record(entry, user_id=user_id)
        db.session.commit()
        return entry

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def _update(entry, patch: dict, user_id: int | None):
    def _op():
        for key, value in patch.items():
            setattr(entry, key, value)
        _sync_cash_record(entry, user_id=user_id)
        db.session.commit()
        return entry

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def _delete(entry) -> None:
    def _op():
        linked = _linked_record(entry)
        if linked is not None:
            ensure_mutable(linked)
            db.session.delete(linked)
            db.session.flush()
        db.session.delete(entry)
        db.session.commit()

    try:
        run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


# =============================================================================
# VISIT PAYMENTS
# =============================================================================

def list_visit_payments(
    *,
    start: date | None = None,
    end: date | None = None,
    chart_number: str | None = None,
) -> list[VisitPayment]:
    filters = {"chart_number": chart_number} if chart_number else {}
    return _list(VisitPayment, start, end, **filters)


def get_visit_payment(payment_id: int) -> VisitPayment:
    return _get(VisitPayment, payment_id, "Visit payment")


def create_visit_payment(patch: dict, *, user_id: int | None = None) -> VisitPayment:
    payment = _create(VisitPayment, patch, user_id)
    logger.info(
        "Visit payment %s recorded: chart=%s %s %s",
        payment.id, payment.chart_number, payment.method, payment.amount,
    )
    return payment


def update_visit_payment(payment_id: int, patch: dict, *, user_id: int | None = None) -> VisitPayment:
    return _update(get_visit_payment(payment_id), patch, user_id)


def delete_visit_payment(payment_id: int) -> None:
    _delete(get_visit_payment(payment_id))
    logger.info("Visit payment %s deleted", payment_id)


# =============================================================================
# EXPENSES
# =============================================================================

def list_expenses(*, start: date | None = None, end: date | None = None) -> list[Expense]:
    return _list(Expense, start, end)


def get_expense(expense_id: int) -> Expense:
    return _get(Expense, expense_id, "Expense")


def create_expense(patch: dict, *, user_id: int | None = None) -> Expense:
    expense = _create(Expense, patch, user_id)
    logger.info("Expense %s recorded: %s %s", expense.id, expense.method, expense.amount)
    return expense


def update_expense(expense_id: int, patch: dict, *, user_id: int | None = None) -> Expense:
    return _update(get_expense(expense_id), patch, user_id)


def delete_expense(expense_id: int) -> None:
    _delete(get_expense(expense_id))
    logger.info("Expense %s deleted", expense_id)


# =============================================================================
# EXTRA INCOME
# =============================================================================

def list_extra_incomes(*, start: date | None = None, end: date | None = None) -> list[ExtraIncome]:
    return _list(ExtraIncome, start, end)


def get_extra_income(income_id: int) -> ExtraIncome:
    return _get(ExtraIncome, income_id, "Extra income")


def create_extra_income(patch: dict, *, user_id: int | None = None) -> ExtraIncome:
    income = _create(ExtraIncome, patch, user_id)
    logger.info("Extra income %s recorded: %s %s", income.id, income.method, income.amount)
    return income


def update_extra_income(income_id: int, patch: dict, *, user_id: int | None = None) -> ExtraIncome:
    return _update(get_extra_income(income_id), patch, user_id)


def delete_extra_income(income_id: int) -> None:
    _delete(get_extra_income(income_id))
    logger.info("Extra income %s deleted", income_id)
