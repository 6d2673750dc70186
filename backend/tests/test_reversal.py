"""
Activity deletion (reversal) tests.

Verifies:
- Deleting an activity restores exactly the stock it moved
- A reversal that would make stock negative is a 409 and changes nothing
- When the stock update fails the activity is not deleted (500)
- Sale reversal is all-or-nothing across lines
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from clinicdesk.errors import InternalFailure, NotFoundError, StockConflictError
from clinicdesk.models import InventoryLog, Product, Sale
from clinicdesk.services import inventory_service, reversal_service, sales_service
from clinicdesk.validation import DisposalOut, SaleInput, SaleLineInput, StockIn, StockOut

from conftest import reload


def _receive(product_id, quantity):
    _, entry = inventory_service.stock_in(product_id, StockIn(quantity=quantity))
    return entry


def _discard(product_id, quantity):
    _, entry = inventory_service.stock_out(product_id, StockOut(quantity=quantity, context=DisposalOut("DISCARD")))
    return entry


def _sell(*lines):
    return sales_service.create_sale(SaleInput(
        chart_number="C-77",
        patient_name="Jung Hoseok",
        lines=tuple(SaleLineInput(product_id=pid, quantity=qty, sale_price=1000) for pid, qty in lines),
    ))


class TestReverseLogEntries:

    def test_delete_stock_in(self, db_session, product):
        first = _receive(product.id, 5)
        _receive(product.id, 3)

        outcome = reversal_service.delete_activity(first.activity_id)
        assert outcome["kind"] == "log"
        assert reload(Product, product.id).stock == 3
        assert reload(InventoryLog, first.id) is None

    def test_delete_stock_out(self, db_session, product):
        _receive(product.id, 5)
        out = _discard(product.id, 2)

        reversal_service.delete_activity(out.activity_id)
        assert reload(Product, product.id).stock == 5

    def test_stock_in_reversal_cannot_go_negative(self, db_session, product):
        entry = _receive(product.id, 5)
        _discard(product.id, 4)

        with pytest.raises(StockConflictError):
            reversal_service.delete_activity(entry.activity_id)

        assert reload(Product, product.id).stock == 1
        assert reload(InventoryLog, entry.id) is not None

    def test_unknown_activity(self, db_session):
        with pytest.raises(NotFoundError):
            reversal_service.delete_activity("0" * 32)

    def test_kind_restricts_lookup(self, db_session, product):
        entry = _receive(product.id, 1)
        with pytest.raises(NotFoundError):
            reversal_service.delete_activity(entry.activity_id, kind="sale")
        assert reload(InventoryLog, entry.id) is not None

    def test_storage_failure_keeps_record(self, db_session, product, monkeypatch):
        entry = _receive(product.id, 5)

        def failing_delta(product_id, delta):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(inventory_service, "apply_stock_delta", failing_delta)

        with pytest.raises(InternalFailure):
            reversal_service.delete_activity(entry.activity_id)

        assert reload(InventoryLog, entry.id) is not None
        assert reload(Product, product.id).stock == 5


class TestReverseSales:

    def test_delete_sale_restores_every_line(self, db_session, dental_products):
        brush, floss = dental_products
        _receive(brush.id, 10)
        _receive(floss.id, 10)
        sale = _sell((brush.id, 2), (floss.id, 3))
        sale_id = sale.id

        outcome = reversal_service.delete_activity(sale.activity_id)
        assert outcome["kind"] == "sale"
        assert reload(Product, brush.id).stock == 10
        assert reload(Product, floss.id).stock == 10
        assert reload(Sale, sale_id) is None

    def test_partial_compensation_rolls_back(self, db_session, dental_products, monkeypatch):
        brush, floss = dental_products
        _receive(brush.id, 10)
        _receive(floss.id, 10)
        sale = _sell((brush.id, 2), (floss.id, 3))

        real_delta = inventory_service.apply_stock_delta
        calls = []

        def fail_on_second_line(product_id, delta):
            calls.append(product_id)
            if len(calls) == 2:
                raise SQLAlchemyError("connection lost")
            return real_delta(product_id, delta)

        monkeypatch.setattr(inventory_service, "apply_stock_delta", fail_on_second_line)

        with pytest.raises(InternalFailure):
            reversal_service.delete_activity(sale.activity_id)

        assert reload(Product, brush.id).stock == 8
        assert reload(Product, floss.id).stock == 7
        assert reload(Sale, sale.id) is not None


class TestReversalRoutes:

    def test_conflict_maps_to_409(self, client, auth_headers, product):
        entry = _receive(product.id, 2)
        _discard(product.id, 2)

        resp = client.delete(f"/api/products/activities/{entry.activity_id}", headers=auth_headers)
        assert resp.status_code == 409

    def test_not_found_maps_to_404(self, client, auth_headers):
        resp = client.delete("/api/products/activities/missing", headers=auth_headers)
        assert resp.status_code == 404

    def test_failure_maps_to_500(self, client, auth_headers, product, monkeypatch):
        entry = _receive(product.id, 2)

        def failing_delta(product_id, delta):
            raise SQLAlchemyError("database is corrupt")

        monkeypatch.setattr(inventory_service, "apply_stock_delta", failing_delta)

        resp = client.delete(f"/api/products/activities/{entry.activity_id}", headers=auth_headers)
        assert resp.status_code == 500
        assert reload(InventoryLog, entry.id) is not None

    def test_invalid_kind(self, client, auth_headers):
        resp = client.delete("/api/products/activities/abc?kind=visit", headers=auth_headers)
        assert resp.status_code == 400
