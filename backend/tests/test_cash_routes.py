"""
Cash ledger API tests.

Verifies:
- Only BANK_DEPOSIT records can be created, edited or deleted through /api/cash
- A record's type never changes
- Closing is idempotent (last write wins) and freezes the day
- GET /api/cash/previous reports the carried-over balance
"""

from datetime import timedelta

import pytest

from clinicdesk.models import CashRecord

from conftest import DAY, add_cash, local_time, reload


PREV = DAY - timedelta(days=1)


def _deposit(client, headers, amount=10000, day=DAY):
    return client.post("/api/cash", json={
        "type": "BANK_DEPOSIT",
        "amount": amount,
        "date": day.isoformat(),
        "description": "Morning deposit",
    }, headers=headers)


# =============================================================================
# LISTING
# =============================================================================


class TestListCash:

    def test_requires_auth(self, client, db_session):
        assert client.get(f"/api/cash?date={DAY}").status_code == 401

    def test_missing_date(self, client, auth_headers):
        resp = client.get("/api/cash", headers=auth_headers)
        assert resp.status_code == 400

    def test_malformed_date(self, client, auth_headers):
        resp = client.get("/api/cash?date=10/01/2026", headers=auth_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("day", ["0001-01-01", "0001-01-02", "9999-12-31", "0001-01-01T03:00:00"])
    def test_out_of_range_date(self, client, auth_headers, day):
        resp = client.get(f"/api/cash?date={day}", headers=auth_headers)
        assert resp.status_code == 400

        resp = client.get(f"/api/cash/previous?date={day}", headers=auth_headers)
        assert resp.status_code == 400

    def test_lists_only_that_local_day(self, client, auth_headers):
        add_cash("INCOME", 1000, local_time(DAY, 0, 0))
        add_cash("INCOME", 2000, local_time(DAY, 23, 59))
        add_cash("INCOME", 4000, local_time(PREV, 23, 59))

        resp = client.get(f"/api/cash?date={DAY}", headers=auth_headers)
        assert resp.status_code == 200
        assert sorted(r["amount"] for r in resp.json) == [1000, 2000]
        assert {r["local_date"] for r in resp.json} == {DAY.isoformat()}


# =============================================================================
# MUTATION GATE
# =============================================================================


class TestMutationGate:

    def test_create_bank_deposit(self, client, auth_headers):
        resp = _deposit(client, auth_headers, amount=25000)
        assert resp.status_code == 201
        assert resp.json["type"] == "BANK_DEPOSIT"
        assert resp.json["amount"] == 25000
        assert resp.json["local_date"] == DAY.isoformat()

    @pytest.mark.parametrize("record_type", ["INCOME", "EXPENSE"])
    def test_create_other_types_rejected(self, client, auth_headers, db_session, record_type):
        resp = client.post("/api/cash", json={
            "type": record_type, "amount": 1000, "date": DAY.isoformat(),
        }, headers=auth_headers)
        assert resp.status_code == 400
        assert db_session.query(CashRecord).count() == 0

    def test_create_negative_amount_rejected(self, client, auth_headers):
        resp = _deposit(client, auth_headers, amount=-5)
        assert resp.status_code == 400

    def test_update_bank_deposit(self, client, auth_headers):
        record_id = _deposit(client, auth_headers).json["id"]

        resp = client.put(f"/api/cash/{record_id}", json={"amount": 12000}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json["amount"] == 12000

    @pytest.mark.parametrize("record_type", ["INCOME", "EXPENSE"])
    def test_update_other_types_rejected(self, client, auth_headers, record_type):
        record = add_cash(record_type, 1000, local_time(DAY, 9))

        resp = client.put(f"/api/cash/{record.id}", json={"amount": 1}, headers=auth_headers)
        assert resp.status_code == 400
        assert reload(CashRecord, record.id).amount == 1000

    def test_type_is_immutable(self, client, auth_headers):
        record_id = _deposit(client, auth_headers).json["id"]

        resp = client.put(f"/api/cash/{record_id}", json={"type": "INCOME"}, headers=auth_headers)
        assert resp.status_code == 400
        assert reload(CashRecord, record_id).type == "BANK_DEPOSIT"

    def test_delete_bank_deposit(self, client, auth_headers):
        record_id = _deposit(client, auth_headers).json["id"]

        resp = client.delete(f"/api/cash/{record_id}", headers=auth_headers)
        assert resp.status_code == 200
        assert reload(CashRecord, record_id) is None

    def test_delete_income_rejected(self, client, auth_headers):
        record = add_cash("INCOME", 1000, local_time(DAY, 9))

        resp = client.delete(f"/api/cash/{record.id}", headers=auth_headers)
        assert resp.status_code == 400
        assert reload(CashRecord, record.id) is not None

    def test_unknown_record(self, client, auth_headers):
        assert client.put("/api/cash/999", json={"amount": 1}, headers=auth_headers).status_code == 404
        assert client.delete("/api/cash/999", headers=auth_headers).status_code == 404


# =============================================================================
# CLOSING
# =============================================================================


class TestClosing:

    def test_missing_fields(self, client, auth_headers):
        assert client.post("/api/cash/close", json={"date": DAY.isoformat()}, headers=auth_headers).status_code == 400
        assert client.post("/api/cash/close", json={"closingAmount": 100}, headers=auth_headers).status_code == 400

    def test_out_of_range_input(self, client, auth_headers):
        resp = client.post("/api/cash/close", json={"date": "0001-01-01", "closingAmount": 0}, headers=auth_headers)
        assert resp.status_code == 400

        resp = client.post("/api/cash/close", json={"date": DAY.isoformat(), "closingAmount": 10**30}, headers=auth_headers)
        assert resp.status_code == 400

        resp = client.post("/api/cash", json={"type": "BANK_DEPOSIT", "amount": 100, "date": "0001-01-01"}, headers=auth_headers)
        assert resp.status_code == 400

    def test_close_marks_every_record_of_the_day(self, client, auth_headers):
        inside = [
            add_cash("INCOME", 1000, local_time(DAY, 0, 0)).id,
            add_cash("EXPENSE", 200, local_time(DAY, 23, 59)).id,
        ]
        outside = add_cash("INCOME", 500, local_time(DAY + timedelta(days=1), 0, 0)).id

        resp = client.post("/api/cash/close", json={"date": DAY.isoformat(), "closingAmount": 800}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json["closed_count"] == 2

        for record_id in inside:
            record = reload(CashRecord, record_id)
            assert record.is_closed is True
            assert record.closing_amount == 800
            assert record.closed_at is not None
        assert reload(CashRecord, outside).is_closed is False

    def test_reclose_last_write_wins(self, client, auth_headers):
        ids = [add_cash("INCOME", 1000, local_time(DAY, h)).id for h in (9, 13, 18)]

        client.post("/api/cash/close", json={"date": DAY.isoformat(), "closingAmount": 1000}, headers=auth_headers)
        resp = client.post("/api/cash/close", json={"date": DAY.isoformat(), "closingAmount": 2500}, headers=auth_headers)
        assert resp.status_code == 200

        for record_id in ids:
            record = reload(CashRecord, record_id)
            assert record.is_closed is True
            assert record.closing_amount == 2500

    def test_closed_day_is_frozen(self, client, auth_headers):
        record_id = _deposit(client, auth_headers).json["id"]
        client.post("/api/cash/close", json={"date": DAY.isoformat(), "closingAmount": 0}, headers=auth_headers)

        assert client.put(f"/api/cash/{record_id}", json={"amount": 1}, headers=auth_headers).status_code == 400
        assert client.delete(f"/api/cash/{record_id}", headers=auth_headers).status_code == 400
        assert _deposit(client, auth_headers).status_code == 400
        assert reload(CashRecord, record_id).amount == 10000

    def test_summary(self, client, auth_headers):
        add_cash("INCOME", 3000, local_time(DAY, 9))

        resp = client.get(f"/api/cash/summary?date={DAY}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json["income_total"] == 3000
        assert resp.json["expected_balance"] == 3000


# =============================================================================
# PREVIOUS BALANCE
# =============================================================================


class TestPreviousBalance:

    def test_missing_date(self, client, auth_headers):
        assert client.get("/api/cash/previous", headers=auth_headers).status_code == 400

    def test_income_minus_expense_on_previous_day(self, client, auth_headers):
        add_cash("INCOME", 100000, local_time(PREV, 10))
        add_cash("EXPENSE", 30000, local_time(PREV, 16))

        resp = client.get(f"/api/cash/previous?date={DAY}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json == {"closingAmount": 70000}

    def test_empty_ledger(self, client, auth_headers):
        resp = client.get(f"/api/cash/previous?date={DAY}", headers=auth_headers)
        assert resp.json == {"closingAmount": 0}
