from __future__ import annotations

from ..extensions import db
from ..time_utils import local_date_of, to_utc_z


CASH_INCOME = "INCOME"
CASH_EXPENSE = "EXPENSE"
CASH_BANK_DEPOSIT = "BANK_DEPOSIT"

CASH_RECORD_TYPES = (CASH_INCOME, CASH_EXPENSE, CASH_BANK_DEPOSIT)


class CashRecord(db.Model):
    """
    One movement of cash through the front-desk drawer.

    Rows are append-only. INCOME and EXPENSE rows mirror the cash payments and
    cash expenses recorded elsewhere (visit_payment_id / expense_id /
    extra_income_id link back to the owner); only BANK_DEPOSIT rows are edited
    directly. Closing a day stamps is_closed/closing_amount/closed_at on every
    row of that local day.
    """
    __tablename__ = "cash_records"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_cash_records_amount_nonneg"),
        db.Index("ix_cash_records_date_closed", "date", "is_closed"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Business time, UTC-naive
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    is_closed = db.Column(db.Boolean, nullable=False, default=False)
    closing_amount = db.Column(db.Integer, nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=True, index=True)
    extra_income_id = db.Column(db.Integer, db.ForeignKey("extra_incomes.id"), nullable=True, index=True)
    visit_payment_id = db.Column(db.Integer, db.ForeignKey("visit_payments.id"), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<CashRecord id={self.id} type={self.type} amount={self.amount} date={self.date}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "local_date": local_date_of(self.date).isoformat() if self.date else None,
            "type": self.type,
            "amount": self.amount,
            "description": self.description,
            "is_closed": self.is_closed,
            "closing_amount": self.closing_amount,
            "closed_at": to_utc_z(self.closed_at),
            "expense_id": self.expense_id,
            "extra_income_id": self.extra_income_id,
            "visit_payment_id": self.visit_payment_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
