from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


METHOD_CASH = "CASH"
METHOD_CARD = "CARD"
METHOD_TRANSFER = "TRANSFER"
PAYMENT_METHODS = (METHOD_CASH, METHOD_CARD, METHOD_TRANSFER)


class Expense(db.Model):
    """Clinic expense. A CASH expense owns exactly one EXPENSE cash record."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_expenses_amount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    vendor = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "category": self.category,
            "description": self.description,
            "amount": self.amount,
            "method": self.method,
            "vendor": self.vendor,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ExtraIncome(db.Model):
    """Income outside patient visits. A CASH entry owns one INCOME cash record."""
    __tablename__ = "extra_incomes"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_extra_incomes_amount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    income_type = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "income_type": self.income_type,
            "description": self.description,
            "amount": self.amount,
            "method": self.method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class VisitPayment(db.Model):
    """Payment collected at a patient visit. A CASH payment owns one INCOME cash record."""
    __tablename__ = "visit_payments"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_visit_payments_amount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    chart_number = db.Column(db.String(32), nullable=False, index=True)
    patient_name = db.Column(db.String(128), nullable=False)
    doctor = db.Column(db.String(128), nullable=True)
    treatment = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "chart_number": self.chart_number,
            "patient_name": self.patient_name,
            "doctor": self.doctor,
            "treatment": self.treatment,
            "amount": self.amount,
            "method": self.method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
