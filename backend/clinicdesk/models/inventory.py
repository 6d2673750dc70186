from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z


PRODUCT_LINE_IMPLANT = "IMPLANT"
PRODUCT_LINE_DENTAL = "DENTAL"
PRODUCT_LINES = (PRODUCT_LINE_IMPLANT, PRODUCT_LINE_DENTAL)

IMPLANT_CATEGORIES = ("FIXTURE", "GRAFT", "CONSUMABLE", "OTHER")

LOG_IN = "IN"
LOG_OUT = "OUT"

OUT_REASON_PATIENT_USE = "PATIENT_USE"
OUT_REASON_DISCARD = "DISCARD"
OUT_REASON_OTHER = "OTHER"
OUT_REASONS = (OUT_REASON_PATIENT_USE, OUT_REASON_DISCARD, OUT_REASON_OTHER)


def new_activity_id() -> str:
    return uuid.uuid4().hex


class Product(db.Model):
    """
    Implant or dental product master data.

    stock is a materialized counter. It is only ever changed by a conditional
    UPDATE issued from inventory_service together with the movement that
    explains it (log entry or sale line), and the CHECK constraint keeps it
    non-negative at the storage level as well.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("product_line", "name", "specification", name="uq_products_line_name_spec"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonneg"),
        db.CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        db.Index("ix_products_line_category", "product_line", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_line = db.Column(db.String(16), nullable=False, index=True)
    category = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    manufacturer = db.Column(db.String(255), nullable=True)
    specification = db.Column(db.String(255), nullable=False, default="")

    # Sale price in won
    price = db.Column(db.Integer, nullable=False, default=0)
    purchase_price = db.Column(db.Integer, nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} line={self.product_line} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_line": self.product_line,
            "category": self.category,
            "name": self.name,
            "manufacturer": self.manufacturer,
            "specification": self.specification,
            "price": self.price,
            "purchase_price": self.purchase_price,
            "stock": self.stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryLog(db.Model):
    """
    Append-only stock movement. Deleting a row is only allowed through the
    reversal path, which re-applies the inverse delta first.
    """
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_inventory_logs_quantity_pos"),
        db.Index("ix_inventory_logs_product_date", "product_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(db.String(32), nullable=False, unique=True, default=new_activity_id)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(8), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    unit_cost = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    # Outbound context (tagged by out_reason)
    out_reason = db.Column(db.String(16), nullable=True)
    chart_number = db.Column(db.String(32), nullable=True, index=True)
    patient_name = db.Column(db.String(128), nullable=True)
    doctor = db.Column(db.String(128), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("inventory_logs", lazy=True))

    @property
    def stock_delta(self) -> int:
        return self.quantity if self.type == LOG_IN else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "kind": "log",
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "date": to_utc_z(self.date),
            "unit_cost": self.unit_cost,
            "notes": self.notes,
            "out_reason": self.out_reason,
            "chart_number": self.chart_number,
            "patient_name": self.patient_name,
            "doctor": self.doctor,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }


class Sale(db.Model):
    """Dental product sale to a patient. total_amount is always derived from the lines."""
    __tablename__ = "dental_sales"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(db.String(32), nullable=False, unique=True, default=new_activity_id)

    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    chart_number = db.Column(db.String(32), nullable=False, index=True)
    patient_name = db.Column(db.String(128), nullable=False)
    doctor = db.Column(db.String(128), nullable=True)

    total_amount = db.Column(db.Integer, nullable=False, default=0)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "kind": "sale",
            "date": to_utc_z(self.date),
            "chart_number": self.chart_number,
            "patient_name": self.patient_name,
            "doctor": self.doctor,
            "total_amount": self.total_amount,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class SaleLine(db.Model):
    __tablename__ = "dental_sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_pos"),
        db.CheckConstraint("sale_price >= 0", name="ck_sale_lines_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("dental_sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    sale_price = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    @property
    def line_total(self) -> int:
        return self.quantity * self.sale_price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "sale_price": self.sale_price,
            "line_total": self.line_total,
        }
