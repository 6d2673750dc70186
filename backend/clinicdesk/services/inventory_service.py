# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/clinicdesk/services/inventory_service.py

from __future__ import annotations

import logging

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import InventoryLog, Product, SaleLine
from ..models.inventory import LOG_IN, LOG_OUT
from ..time_utils import to_utc_z, utcnow
from ..validation import PatientUseOut, StockIn, StockOut
from .concurrency import run_with_retry
"""
Inventory Invariants (authoritative)

Stock model:
- Product.stock is a materialized counter, never written from client input.
- stock == sum(IN log quantities) - sum(OUT log quantities) - sum(sale line quantities)
  over every movement that has not been reversed (see reconcile_stock).
- stock >= 0 at all times.

Atomicity:
- Every movement changes stock with ONE conditional UPDATE
  (stock = stock + delta WHERE stock + delta >= 0) and writes its log row in
  the same DB transaction. There is no read-then-write of stock, so two
  concurrent stock-outs cannot both pass a stale "enough stock" check.
- If the conditional UPDATE matches no row the movement is rejected and the
  transaction rolled back; a log row is never written without its delta.
"""


logger = logging.getLogger(__name__)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def list_products(*, product_line: str | None = None, category: str | None = None) -> list[Product]:
    q = db.session.query(Product)
    if product_line:
        q = q.filter(Product.product_line == product_line.upper())
    if category:
        q = q.filter(Product.category == category)
    return q.order_by(Product.name.asc(), Product.specification.asc()).all()


def create_product(patch: dict) -> Product:
    # New products always start empty; stock arrives through stock-in
    product = Product(stock=0, **patch)
    if product.specification is None:
        product.specification = ""
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A product with this name and specification already exists")
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)
    for key, value in patch.items():
        setattr(product, key, value)
    if product.specification is None:
        product.specification = ""
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A product with this name and specification already exists")
    return product


def delete_product(product_id: int) -> None:
    """Products with recorded movements are kept so their history stays explainable."""
    product = get_product(product_id)

    has_logs = db.session.query(InventoryLog.id).filter_by(product_id=product_id).first()
    has_sales = db.session.query(SaleLine.id).filter_by(product_id=product_id).first()
    if has_logs or has_sales:
        raise ConflictError("Product has inventory activity and cannot be deleted")

    db.session.delete(product)
    db.session.commit()


def apply_stock_delta(product_id: int, delta: int) -> Product:
    """
    Atomically add delta to a product's stock, refusing to go below zero.

    Does not commit. Raises NotFoundError or InsufficientStockError; in both
    cases nothing has been written.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock + delta >= 0)
        .values(stock=Product.stock + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        product = db.session.get(Product, product_id, populate_existing=True)
        if product is None:
            raise NotFoundError("Product not found")
        raise InsufficientStockError(
            f"Insufficient stock for {product.name} (current stock: {product.stock})",
            details={"product_id": product_id, "stock": product.stock, "requested_delta": delta},
        )

    return db.session.get(Product, product_id, populate_existing=True)


def stock_in(product_id: int, movement: StockIn, *, user_id: int | None = None) -> tuple[Product, InventoryLog]:
    """
    Receive stock: +quantity and an IN log entry in one transaction.

    A provided unit cost also becomes the product's current purchase price.
    """
    def _op():
        product = apply_stock_delta(product_id, movement.quantity)
        if movement.unit_cost is not None:
            product.purchase_price = movement.unit_cost

        entry = InventoryLog(
            product_id=product_id,
            type=LOG_IN,
            quantity=movement.quantity,
            date=movement.date or utcnow(),
            unit_cost=movement.unit_cost if movement.unit_cost is not None else product.purchase_price,
            notes=movement.notes,
            user_id=user_id,
        )
        db.session.add(entry)
        db.session.commit()
        return product, entry

    try:
        product, entry = run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise

    logger.info("Stock in: product=%s qty=%s stock=%s log=%s", product_id, movement.quantity, product.stock, entry.id)
    return product, entry


def stock_out(product_id: int, movement: StockOut, *, user_id: int | None = None) -> tuple[Product, InventoryLog]:
    """Issue stock: -quantity and an OUT log entry in one transaction."""
    def _op():
        product = apply_stock_delta(product_id, -movement.quantity)

        context = movement.context
        entry = InventoryLog(
            product_id=product_id,
            type=LOG_OUT,
            quantity=movement.quantity,
            date=movement.date or utcnow(),
            unit_cost=product.purchase_price,
            notes=movement.notes,
            out_reason=context.out_reason,
            user_id=user_id,
        )
        if isinstance(context, PatientUseOut):
            entry.chart_number = context.chart_number
            entry.patient_name = context.patient_name
            entry.doctor = context.doctor

        db.session.add(entry)
        db.session.commit()
        return product, entry

    try:
        product, entry = run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Stock out: product=%s qty=%s reason=%s stock=%s log=%s",
        product_id, movement.quantity, entry.out_reason, product.stock, entry.id,
    )
    return product, entry


def list_product_activities(product_id: int, *, limit: int = 200) -> list[dict]:
    """Log entries and sale lines for one product, newest first."""
    get_product(product_id)

    logs = db.session.query(InventoryLog).filter_by(product_id=product_id).order_by(
        InventoryLog.date.desc(), InventoryLog.id.desc()
    ).limit(limit).all()

    sale_lines = db.session.query(SaleLine).filter_by(product_id=product_id).order_by(
        SaleLine.id.desc()
    ).limit(limit).all()

    activities = [entry.to_dict() for entry in logs]
    for line in sale_lines:
        sale = line.sale
        activities.append({
            "activity_id": sale.activity_id,
            "kind": "sale",
            "product_id": product_id,
            "type": LOG_OUT,
            "quantity": line.quantity,
            "sale_price": line.sale_price,
            "date": to_utc_z(sale.date),
            "chart_number": sale.chart_number,
            "patient_name": sale.patient_name,
            "doctor": sale.doctor,
        })

    # ISO-8601 Z strings sort chronologically
    activities.sort(key=lambda item: item["date"] or "", reverse=True)
    return activities[:limit]


def reconcile_stock(product_id: int) -> dict:
    """
    Compare the materialized stock counter with the movements that explain it.

    drift != 0 means a movement was applied or reversed without its pair.
    """
    product = get_product(product_id)

    ins = db.session.query(func.coalesce(func.sum(InventoryLog.quantity), 0)).filter(
        InventoryLog.product_id == product_id, InventoryLog.type == LOG_IN
    ).scalar()
    outs = db.session.query(func.coalesce(func.sum(InventoryLog.quantity), 0)).filter(
        InventoryLog.product_id == product_id, InventoryLog.type == LOG_OUT
    ).scalar()
    sold = db.session.query(func.coalesce(func.sum(SaleLine.quantity), 0)).filter(
        SaleLine.product_id == product_id
    ).scalar()

    expected = int(ins) - int(outs) - int(sold)
    return {
        "product_id": product_id,
        "stock": product.stock,
        "expected_stock": expected,
        "drift": product.stock - expected,
    }
