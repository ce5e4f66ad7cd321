"""
Sales: atomic sale + items + SALE stock transactions.
"""

import pytest

from umipos.extensions import db
from umipos.models import Product, Sale, StockTransaction
from umipos.services import sales_service
from umipos.validation import ConflictError, ValidationError


class TestCreateSale:

    def test_sale_decrements_stock_and_audits(self, db_session, tenant_a, product_a, cashier_a):
        sale = sales_service.create_sale(
            tenant_id=tenant_a.id,
            items=[{"product_id": product_a.id, "quantity": 3}],
            payment_method="cash",
            cashier_user_id=cashier_a.id,
            cash_received_cents=1000,
        )

        assert sale.subtotal_cents == 750
        assert sale.total_cents == 750
        assert sale.change_cents == 250
        assert [i.quantity for i in sale.items] == [3]
        assert db.session.get(Product, product_a.id).stock == 7

        tx = db.session.query(StockTransaction).filter_by(sale_id=sale.id).one()
        assert tx.transaction_type == "SALE"
        assert (tx.previous_stock, tx.new_stock, tx.quantity_change) == (10, 7, -3)

    def test_duplicate_lines_are_merged(self, db_session, tenant_a, product_a):
        sale = sales_service.create_sale(
            tenant_id=tenant_a.id,
            items=[
                {"product_id": product_a.id, "quantity": 2},
                {"product_id": product_a.id, "quantity": 1},
            ],
            payment_method="card",
        )
        assert len(sale.items) == 1
        assert sale.items[0].quantity == 3

    def test_tax_half_up(self, db_session, tenant_a, product_a):
        sale = sales_service.create_sale(
            tenant_id=tenant_a.id,
            items=[{"product_id": product_a.id, "quantity": 1}],
            payment_method="card",
            tax_rate_bps=1600,
        )
        assert sale.tax_cents == 40
        assert sale.total_cents == 290

    def test_insufficient_stock_leaves_nothing(self, db_session, tenant_a, product_a, make_product):
        other = make_product(tenant_a, name="Ibuprofen 200mg", barcode="6001234500035", stock=50)

        with pytest.raises(ConflictError):
            sales_service.create_sale(
                tenant_id=tenant_a.id,
                items=[
                    {"product_id": other.id, "quantity": 5},
                    {"product_id": product_a.id, "quantity": 11},
                ],
                payment_method="cash",
            )

        assert db.session.query(Sale).count() == 0
        assert db.session.query(StockTransaction).count() == 0
        assert db.session.get(Product, other.id).stock == 50

    def test_foreign_product_rejected(self, db_session, tenant_a, product_b):
        with pytest.raises(ValidationError):
            sales_service.create_sale(
                tenant_id=tenant_a.id,
                items=[{"product_id": product_b.id, "quantity": 1}],
                payment_method="cash",
            )

    @pytest.mark.parametrize("items", [[], None, [{"product_id": 1, "quantity": 0}], [{"product_id": "1", "quantity": 1}]])
    def test_bad_lines(self, db_session, tenant_a, items):
        with pytest.raises(ValidationError):
            sales_service.create_sale(tenant_id=tenant_a.id, items=items, payment_method="cash")

    def test_bad_payment_method(self, db_session, tenant_a, product_a):
        with pytest.raises(ValidationError):
            sales_service.create_sale(
                tenant_id=tenant_a.id,
                items=[{"product_id": product_a.id, "quantity": 1}],
                payment_method="barter",
            )

    def test_short_cash_rejected(self, db_session, tenant_a, product_a):
        with pytest.raises(ValidationError):
            sales_service.create_sale(
                tenant_id=tenant_a.id,
                items=[{"product_id": product_a.id, "quantity": 1}],
                payment_method="cash",
                cash_received_cents=100,
            )
        assert db.session.get(Product, product_a.id).stock == 10


class TestSaleQueries:

    def test_sales_for_customer(self, db_session, tenant_a, product_a):
        from umipos.services import customers_service

        customer = customers_service.create_customer(tenant_id=tenant_a.id, patch={"name": "Jane Wanjiku"})
        sale = sales_service.create_sale(
            tenant_id=tenant_a.id,
            items=[{"product_id": product_a.id, "quantity": 1}],
            payment_method="mobile_money",
            customer_id=customer.id,
        )
        assert [s.id for s in sales_service.list_sales_for_customer(tenant_a.id, customer.id)] == [sale.id]

    def test_get_sale_tenant_scoped(self, db_session, tenant_a, tenant_b, product_a):
        sale = sales_service.create_sale(
            tenant_id=tenant_a.id,
            items=[{"product_id": product_a.id, "quantity": 1}],
            payment_method="cash",
        )
        assert sales_service.get_sale(tenant_a.id, sale.id) is not None
        assert sales_service.get_sale(tenant_b.id, sale.id) is None
