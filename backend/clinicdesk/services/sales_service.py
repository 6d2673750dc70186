# Overview: Service-layer operations for dental product sales.

from __future__ import annotations

import logging
from datetime import date

from ..errors import NotFoundError
from ..extensions import db
from ..models import Sale, SaleLine
from ..time_utils import local_day_bounds, utcnow
from ..validation import SaleInput
from .concurrency import run_with_retry
from .inventory_service import apply_stock_delta


logger = logging.getLogger(__name__)


def create_sale(data: SaleInput, *, user_id: int | None = None) -> Sale:
    """
    Record a sale and take every line out of stock.

    All-or-nothing: one insufficient line rolls back the stock already taken
    for the lines before it.
    """
    def _op():
        sale = Sale(
            date=data.date or utcnow(),
            chart_number=data.chart_number,
            patient_name=data.patient_name,
            doctor=data.doctor,
            user_id=user_id,
        )
        total = 0
        for line in data.lines:
            apply_stock_delta(line.product_id, -line.quantity)
            sale.lines.append(SaleLine(
                product_id=line.product_id,
                quantity=line.quantity,
                sale_price=line.sale_price,
            ))
            total += line.quantity * line.sale_price
        sale.total_amount = total

        db.session.add(sale)
        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise

    logger.info("Sale %s recorded: %d lines, total %s", sale.id, len(data.lines), sale.total_amount)
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(*, start: date | None = None, end: date | None = None) -> list[Sale]:
    """Sales between two local days (inclusive), newest first."""
    q = db.session.query(Sale)
    if start is not None:
        q = q.filter(Sale.date >= local_day_bounds(start)[0])
    if end is not None:
        q = q.filter(Sale.date < local_day_bounds(end)[1])
    return q.order_by(Sale.date.desc(), Sale.id.desc()).all()
