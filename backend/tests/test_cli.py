"""CLI command tests (flask clinic ...)."""

from clinicdesk.models import Product, User
from clinicdesk.services import inventory_service
from clinicdesk.validation import StockIn


def test_create_user(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["clinic", "create-user", "--username", "nurse", "--password", "Password123"])
    assert result.exit_code == 0, result.output
    assert db_session.query(User).filter_by(username="nurse").count() == 1


def test_create_user_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["clinic", "create-user", "--username", "nurse", "--password", "short"])
    assert result.exit_code != 0
    assert db_session.query(User).count() == 0


def test_check_stock_reports_drift(app, db_session, product):
    inventory_service.stock_in(product.id, StockIn(quantity=3))
    runner = app.test_cli_runner()

    assert runner.invoke(args=["clinic", "check-stock"]).exit_code == 0

    # counter changed without a movement
    db_session.get(Product, product.id).stock = 7
    db_session.commit()

    result = runner.invoke(args=["clinic", "check-stock"])
    assert result.exit_code != 0
    assert "drift=4" in result.output
