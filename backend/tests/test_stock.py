"""
Product and stock movement tests.

Verifies:
- Stock is only changed by stock-in / stock-out, never by product payloads
- Stock-out never takes stock below zero and writes nothing when refused
- Out reasons carry patient context exactly when the reason is PATIENT_USE
- Stock-in 10, stock-out 4, delete the stock-out: stock goes 10 -> 6 -> 10
"""

import pytest

from clinicdesk.errors import InsufficientStockError, NotFoundError, ValidationError
from clinicdesk.models import InventoryLog, Product
from clinicdesk.services import inventory_service, reporting_service
from clinicdesk.validation import DisposalOut, PatientUseOut, StockIn, StockOut, parse_out_context

from conftest import DAY, local_time, reload


PATIENT = {"chart_number": "C-1024", "patient_name": "Kim Minji", "doctor": "Dr. Park"}


def _stock_in(client, headers, product_id, quantity, **extra):
    return client.post(f"/api/products/{product_id}/stock-in", json={"quantity": quantity, **extra}, headers=headers)


def _stock_out(client, headers, product_id, quantity, reason="PATIENT_USE", **extra):
    body = {"quantity": quantity, "out_reason": reason, **extra}
    if reason == "PATIENT_USE":
        body = {**PATIENT, **body}
    return client.post(f"/api/products/{product_id}/stock-out", json=body, headers=headers)


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProducts:

    def test_create_starts_empty(self, client, auth_headers):
        resp = client.post("/api/products", json={
            "product_line": "implant", "category": "GRAFT", "name": "Bio-Oss", "specification": "0.5g", "price": 90000,
        }, headers=auth_headers)
        assert resp.status_code == 201
        assert resp.json["stock"] == 0
        assert resp.json["product_line"] == "IMPLANT"

    def test_stock_is_not_client_writable(self, client, auth_headers, product):
        resp = client.post("/api/products", json={
            "product_line": "DENTAL", "name": "Floss", "price": 2000, "stock": 50,
        }, headers=auth_headers)
        assert resp.status_code == 400

        resp = client.put(f"/api/products/{product.id}", json={"stock": 99}, headers=auth_headers)
        assert resp.status_code == 400
        assert reload(Product, product.id).stock == 0

    def test_implant_requires_category(self, client, auth_headers):
        resp = client.post("/api/products", json={
            "product_line": "IMPLANT", "name": "Fixture", "price": 1000,
        }, headers=auth_headers)
        assert resp.status_code == 400

    def test_duplicate_conflict(self, client, auth_headers, product):
        resp = client.post("/api/products", json={
            "product_line": "IMPLANT", "category": "FIXTURE", "name": product.name,
            "specification": product.specification, "price": 1,
        }, headers=auth_headers)
        assert resp.status_code == 409

    def test_update_descriptive_fields(self, client, auth_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"price": 130000, "manufacturer": "Osstem"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json["price"] == 130000
        assert resp.json["manufacturer"] == "Osstem"

    def test_list_filters_by_line(self, client, auth_headers, product, dental_products):
        resp = client.get("/api/products?product_line=dental", headers=auth_headers)
        assert resp.status_code == 200
        assert {p["product_line"] for p in resp.json} == {"DENTAL"}
        assert len(resp.json) == 2

    def test_delete_unused_product(self, client, auth_headers, product):
        assert client.delete(f"/api/products/{product.id}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/products/{product.id}", headers=auth_headers).status_code == 404

    def test_delete_product_with_history_conflicts(self, client, auth_headers, product):
        _stock_in(client, auth_headers, product.id, 1)
        assert client.delete(f"/api/products/{product.id}", headers=auth_headers).status_code == 409


# =============================================================================
# STOCK-IN / STOCK-OUT
# =============================================================================


class TestStockMovements:

    def test_stock_in(self, client, auth_headers, product):
        resp = _stock_in(client, auth_headers, product.id, 10, unit_cost=70000)
        assert resp.status_code == 200
        assert resp.json["product"]["stock"] == 10
        assert resp.json["product"]["purchase_price"] == 70000
        assert resp.json["log"]["type"] == "IN"
        assert resp.json["log"]["quantity"] == 10
        assert resp.json["log"]["activity_id"]

    @pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5])
    def test_invalid_quantity(self, client, auth_headers, product, quantity):
        assert _stock_in(client, auth_headers, product.id, quantity).status_code == 400

    def test_unknown_product(self, client, auth_headers):
        assert _stock_in(client, auth_headers, 999, 1).status_code == 404
        assert _stock_out(client, auth_headers, 999, 1).status_code == 404

    def test_stock_out(self, client, auth_headers, product):
        _stock_in(client, auth_headers, product.id, 5)

        resp = _stock_out(client, auth_headers, product.id, 2)
        assert resp.status_code == 200
        assert resp.json["product"]["stock"] == 3
        assert resp.json["log"]["out_reason"] == "PATIENT_USE"
        assert resp.json["log"]["chart_number"] == "C-1024"

    def test_insufficient_stock_writes_nothing(self, client, auth_headers, product, db_session):
        _stock_in(client, auth_headers, product.id, 3)

        resp = _stock_out(client, auth_headers, product.id, 4)
        assert resp.status_code == 400
        assert reload(Product, product.id).stock == 3
        assert db_session.query(InventoryLog).filter_by(type="OUT").count() == 0

    def test_patient_use_requires_patient_context(self, client, auth_headers, product):
        _stock_in(client, auth_headers, product.id, 3)
        resp = client.post(f"/api/products/{product.id}/stock-out", json={
            "quantity": 1, "out_reason": "PATIENT_USE", "chart_number": "C-1",
        }, headers=auth_headers)
        assert resp.status_code == 400

    def test_disposal_rejects_patient_context(self, client, auth_headers, product):
        _stock_in(client, auth_headers, product.id, 3)
        resp = _stock_out(client, auth_headers, product.id, 1, reason="DISCARD", chart_number="C-1")
        assert resp.status_code == 400

    def test_disposal(self, client, auth_headers, product):
        _stock_in(client, auth_headers, product.id, 3)
        resp = _stock_out(client, auth_headers, product.id, 1, reason="discard", notes="expired")
        assert resp.status_code == 200
        assert resp.json["log"]["out_reason"] == "DISCARD"
        assert resp.json["log"]["chart_number"] is None

    def test_stock_in_out_then_delete_out(self, client, auth_headers, product):
        assert _stock_in(client, auth_headers, product.id, 10).json["product"]["stock"] == 10

        out = _stock_out(client, auth_headers, product.id, 4)
        assert out.json["product"]["stock"] == 6

        resp = client.delete(f"/api/products/activities/{out.json['log']['activity_id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert reload(Product, product.id).stock == 10
        assert reload(InventoryLog, out.json["log"]["id"]) is None

    def test_activities_newest_first(self, client, auth_headers, product):
        _stock_in(client, auth_headers, product.id, 5, date=local_time(DAY, 9).isoformat() + "Z")
        _stock_out(client, auth_headers, product.id, 1, date=local_time(DAY, 15).isoformat() + "Z")

        resp = client.get(f"/api/products/{product.id}/activities", headers=auth_headers)
        assert resp.status_code == 200
        assert [a["type"] for a in resp.json] == ["OUT", "IN"]
        assert all(a["kind"] == "log" for a in resp.json)


# =============================================================================
# SERVICE LAYER
# =============================================================================


class TestStockService:

    def test_apply_delta_refuses_negative(self, db_session, product):
        with pytest.raises(InsufficientStockError) as excinfo:
            inventory_service.apply_stock_delta(product.id, -1)
        assert excinfo.value.details["stock"] == 0
        db_session.rollback()

    def test_apply_delta_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.apply_stock_delta(12345, 1)
        db_session.rollback()

    def test_conservation(self, db_session, product):
        inventory_service.stock_in(product.id, StockIn(quantity=8))
        inventory_service.stock_out(product.id, StockOut(quantity=3, context=PatientUseOut("C-1", "Lee", "Dr. Choi")))
        inventory_service.stock_out(product.id, StockOut(quantity=1, context=DisposalOut("OTHER")))

        report = inventory_service.reconcile_stock(product.id)
        assert report["stock"] == 4
        assert report["expected_stock"] == 4
        assert report["drift"] == 0

    def test_out_context_is_tagged(self):
        assert isinstance(parse_out_context({"out_reason": "PATIENT_USE", **PATIENT}), PatientUseOut)
        assert parse_out_context({"out_reason": "OTHER"}) == DisposalOut("OTHER")
        with pytest.raises(ValidationError):
            parse_out_context({})
        with pytest.raises(ValidationError):
            parse_out_context({"out_reason": "LOST"})


# =============================================================================
# STATISTICS
# =============================================================================


class TestStatistics:

    def test_totals_in_range(self, db_session, product):
        inventory_service.stock_in(product.id, StockIn(quantity=10, unit_cost=50000, date=local_time(DAY, 9)))
        inventory_service.stock_out(
            product.id,
            StockOut(quantity=2, context=PatientUseOut("C-9", "Han", "Dr. Yoon"), date=local_time(DAY, 14)),
        )
        # outside the range
        inventory_service.stock_in(product.id, StockIn(quantity=1, date=local_time(DAY.replace(day=20), 9)))

        stats = reporting_service.inventory_statistics(product_line="IMPLANT", start=DAY, end=DAY)
        assert len(stats["products"]) == 1
        row = stats["products"][0]
        assert row["in_quantity"] == 10
        assert row["in_cost"] == 500000
        assert row["out_quantity"] == 2
        assert row["out_cost"] == 100000
        assert stats["totals"]["in_quantity"] == 10

    def test_route_validates_range(self, client, auth_headers):
        resp = client.get("/api/products/statistics?start=2026-02-01&end=2026-01-01", headers=auth_headers)
        assert resp.status_code == 400

        resp = client.get("/api/products/statistics?product_line=DENTAL", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json["products"] == []
