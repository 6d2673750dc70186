# Overview: Service-layer operations for reporting; read-only aggregates over stock movements.

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import InventoryLog, Product, Sale, SaleLine
from ..models.inventory import LOG_IN, LOG_OUT, PRODUCT_LINES
from ..time_utils import local_day_bounds


def _date_filters(column, start: date | None, end: date | None) -> list:
    filters = []
    if start is not None:
        filters.append(column >= local_day_bounds(start)[0])
    if end is not None:
        filters.append(column < local_day_bounds(end)[1])
    return filters


def inventory_statistics(
    *,
    product_line: str | None = None,
    category: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """
    Per-product movement totals for local days start..end (inclusive).

    in_quantity / out_quantity come from the inventory log, sold_quantity and
    sales_amount from sales. Products without movement in the range are omitted.
    """
    if start is not None and end is not None and start > end:
        raise ValidationError("start must be on or before end")
    if product_line is not None:
        product_line = product_line.upper()
        if product_line not in PRODUCT_LINES:
            raise ValidationError(f"product_line must be one of: {', '.join(PRODUCT_LINES)}")

    product_q = db.session.query(Product)
    if product_line:
        product_q = product_q.filter(Product.product_line == product_line)
    if category:
        product_q = product_q.filter(Product.category == category)
    products = {p.id: p for p in product_q.all()}
    if not products:
        return {"products": [], "totals": _empty_totals()}

    log_rows = db.session.query(
        InventoryLog.product_id,
        InventoryLog.type,
        func.coalesce(func.sum(InventoryLog.quantity), 0),
        func.coalesce(func.sum(InventoryLog.quantity * func.coalesce(InventoryLog.unit_cost, 0)), 0),
    ).filter(
        InventoryLog.product_id.in_(products.keys()),
        *_date_filters(InventoryLog.date, start, end),
    ).group_by(InventoryLog.product_id, InventoryLog.type).all()

    sale_rows = db.session.query(
        SaleLine.product_id,
        func.coalesce(func.sum(SaleLine.quantity), 0),
        func.coalesce(func.sum(SaleLine.quantity * SaleLine.sale_price), 0),
    ).join(Sale, Sale.id == SaleLine.sale_id).filter(
        SaleLine.product_id.in_(products.keys()),
        *_date_filters(Sale.date, start, end),
    ).group_by(SaleLine.product_id).all()

    stats: dict[int, dict] = {}

    def _row(product_id: int) -> dict:
        if product_id not in stats:
            product = products[product_id]
            stats[product_id] = {
                "product_id": product_id,
                "name": product.name,
                "specification": product.specification,
                "category": product.category,
                "stock": product.stock,
                "in_quantity": 0,
                "in_cost": 0,
                "out_quantity": 0,
                "out_cost": 0,
                "sold_quantity": 0,
                "sales_amount": 0,
            }
        return stats[product_id]

    for product_id, log_type, quantity, cost in log_rows:
        row = _row(product_id)
        if log_type == LOG_IN:
            row["in_quantity"] += int(quantity)
            row["in_cost"] += int(cost)
        elif log_type == LOG_OUT:
            row["out_quantity"] += int(quantity)
            row["out_cost"] += int(cost)

    for product_id, quantity, amount in sale_rows:
        row = _row(product_id)
        row["sold_quantity"] += int(quantity)
        row["sales_amount"] += int(amount)

    rows = sorted(stats.values(), key=lambda r: (r["name"], r["specification"] or ""))
    totals = _empty_totals()
    for row in rows:
        for key in totals:
            totals[key] += row[key]

    return {
        "product_line": product_line,
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "products": rows,
        "totals": totals,
    }


def _empty_totals() -> dict:
    return {
        "in_quantity": 0,
        "in_cost": 0,
        "out_quantity": 0,
        "out_cost": 0,
        "sold_quantity": 0,
        "sales_amount": 0,
    }
