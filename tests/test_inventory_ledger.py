"""InventoryLedger: row-locked reads and guarded stock adjustments."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from dhakacart.data.models import ProductModel
from dhakacart.domain.exceptions import InsufficientStock, NotFound
from dhakacart.repos.inventory_repo import InventoryLedger, StockRow


def _stock_in_tx(db, product_id):
    return db.execute(select(ProductModel.stock).where(ProductModel.id == product_id)).scalar_one()


class TestLockAndRead:

    def test_returns_stock_row(self, db, make_product):
        product = make_product(name="Laptop", price="500.00", stock=5)
        row = InventoryLedger(db).lock_and_read(product.id)
        assert row == StockRow(id=product.id, name="Laptop", price=Decimal("500.00"), stock=5)

    def test_missing_product_is_none(self, db):
        assert InventoryLedger(db).lock_and_read(999) is None

    def test_lock_many_returns_only_existing(self, db, make_product):
        a = make_product(name="Phone", stock=3)
        b = make_product(name="Tablet", stock=7)
        rows = InventoryLedger(db).lock_many([b.id, 999, a.id, a.id])
        assert sorted(rows) == [a.id, b.id]
        assert rows[b.id].stock == 7

    def test_lock_many_with_no_ids(self, db):
        assert InventoryLedger(db).lock_many([]) == {}


class TestAdjustStock:

    def test_consumes_stock(self, db, make_product):
        product = make_product(stock=5)
        InventoryLedger(db).adjust_stock(product.id, -2)
        assert _stock_in_tx(db, product.id) == 3

    def test_can_consume_down_to_zero(self, db, make_product):
        product = make_product(stock=2)
        InventoryLedger(db).adjust_stock(product.id, -2)
        assert _stock_in_tx(db, product.id) == 0

    def test_refuses_to_go_negative(self, db, make_product):
        product = make_product(stock=2)
        with pytest.raises(InsufficientStock):
            InventoryLedger(db).adjust_stock(product.id, -3)
        assert _stock_in_tx(db, product.id) == 2

    def test_restores_stock(self, db, make_product):
        product = make_product(stock=0)
        InventoryLedger(db).adjust_stock(product.id, 4)
        assert _stock_in_tx(db, product.id) == 4

    def test_restore_on_missing_product(self, db):
        with pytest.raises(NotFound):
            InventoryLedger(db).adjust_stock(999, 1)

    def test_zero_delta_is_noop(self, db, make_product):
        product = make_product(stock=5)
        InventoryLedger(db).adjust_stock(product.id, 0)
        assert _stock_in_tx(db, product.id) == 5

    def test_never_commits(self, db, make_product, stock_of):
        product = make_product(stock=5)
        InventoryLedger(db).adjust_stock(product.id, -1)
        db.rollback()
        assert stock_of(product.id) == 5
