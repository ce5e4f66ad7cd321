"""
Stock update and audit trail tests.

Every committed stock change has exactly one StockTransaction; a failed or
rejected change leaves neither the new stock level nor an audit row.
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from umipos.extensions import db
from umipos.models import Product, StockTransaction
from umipos.services import inventory_service
from umipos.services.inventory_service import StockUpdateResult
from umipos.time_utils import utcnow


def _transactions(product_id):
    return db.session.query(StockTransaction).filter_by(product_id=product_id).all()


class TestUpdateStock:

    def test_records_one_transaction(self, db_session, product_a):
        assert inventory_service.update_stock(product_a.id, 5, "Damaged") is True

        product = db.session.get(Product, product_a.id)
        assert product.stock == 5

        rows = _transactions(product_a.id)
        assert len(rows) == 1
        tx = rows[0]
        assert tx.previous_stock == 10
        assert tx.new_stock == 5
        assert tx.quantity_change == -5
        assert tx.reason == "Damaged"
        assert tx.transaction_type == "ADJUSTMENT"

    def test_increase_records_positive_change(self, db_session, product_a):
        assert inventory_service.update_stock(product_a.id, 25, "Delivery", transaction_type="PURCHASE")
        tx = _transactions(product_a.id)[0]
        assert tx.quantity_change == 15
        assert tx.transaction_type == "PURCHASE"

    def test_same_level_still_audited(self, db_session, product_a):
        assert inventory_service.update_stock(product_a.id, 10, "Stock count")
        tx = _transactions(product_a.id)[0]
        assert tx.quantity_change == 0

    def test_unknown_product_writes_nothing(self, db_session, product_a):
        assert inventory_service.update_stock(99999, 5, "x") is False
        assert db.session.query(StockTransaction).count() == 0

    def test_unknown_product_result(self, db_session, tenant_a):
        assert inventory_service.apply_stock_update(99999, 5, "x") is StockUpdateResult.NOT_FOUND

    def test_inactive_product_not_found(self, db_session, make_product, tenant_a):
        product = make_product(tenant_a, is_active=False)
        assert inventory_service.apply_stock_update(product.id, 5, "x") is StockUpdateResult.NOT_FOUND

    def test_other_tenant_product_not_found(self, db_session, product_b, tenant_a):
        result = inventory_service.apply_stock_update(product_b.id, 1, "x", tenant_id=tenant_a.id)
        assert result is StockUpdateResult.NOT_FOUND
        assert db.session.get(Product, product_b.id).stock == 10

    def test_unknown_transaction_type_rejected(self, db_session, product_a):
        with pytest.raises(ValueError):
            inventory_service.update_stock(product_a.id, 5, "x", transaction_type="GIFT")

    def test_commit_failure_rolls_back_both_writes(self, db_session, product_a, monkeypatch, caplog):
        def failing_commit():
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(db.session, "commit", failing_commit)

        result = inventory_service.apply_stock_update(product_a.id, 3, "Count")

        assert result is StockUpdateResult.FAILED
        assert db.session.get(Product, product_a.id).stock == 10
        assert _transactions(product_a.id) == []
        assert "Stock update failed" in caplog.text

    def test_sequential_updates_chain(self, db_session, product_a):
        inventory_service.update_stock(product_a.id, 8, "a")
        inventory_service.update_stock(product_a.id, 12, "b")

        rows = inventory_service.list_stock_transactions_for_product(product_a.id)
        assert [(r.previous_stock, r.new_stock) for r in rows] == [(8, 12), (10, 8)]


class TestAuditQueries:

    def test_list_for_product_newest_first_with_limit(self, db_session, product_a):
        for level in (9, 8, 7):
            inventory_service.update_stock(product_a.id, level, "sold")

        rows = inventory_service.list_stock_transactions_for_product(product_a.id, limit=2)
        assert [r.new_stock for r in rows] == [7, 8]

    def test_list_for_product_is_tenant_scoped(self, db_session, product_a, tenant_b):
        inventory_service.update_stock(product_a.id, 9, "sold")
        assert inventory_service.list_stock_transactions_for_product(product_a.id, tenant_id=tenant_b.id) == []

    def test_list_between_is_inclusive(self, db_session, product_a):
        inventory_service.update_stock(product_a.id, 9, "sold")
        tx = _transactions(product_a.id)[0]

        rows = inventory_service.list_stock_transactions_between(tx.created_at, tx.created_at)
        assert [r.id for r in rows] == [tx.id]

    def test_list_between_excludes_outside_range(self, db_session, product_a):
        inventory_service.update_stock(product_a.id, 9, "sold")
        now = utcnow()
        rows = inventory_service.list_stock_transactions_between(
            now + timedelta(days=1), now + timedelta(days=2)
        )
        assert rows == []

    def test_list_between_tenant_scoped(self, db_session, product_a, product_b, tenant_a):
        inventory_service.update_stock(product_a.id, 9, "a")
        inventory_service.update_stock(product_b.id, 9, "b")
        now = utcnow()
        rows = inventory_service.list_stock_transactions_between(
            now - timedelta(hours=1), now + timedelta(hours=1), tenant_id=tenant_a.id
        )
        assert {r.product_id for r in rows} == {product_a.id}

    def test_list_between_rejects_inverted_range(self, db_session):
        now = utcnow()
        with pytest.raises(ValueError):
            inventory_service.list_stock_transactions_between(now, now - timedelta(seconds=1))
