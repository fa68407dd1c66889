"""OrderService.create_order: validation, stock decrement, totals and rollback."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from dhakacart.data.models import OrderItemModel, OrderModel
from dhakacart.domain.exceptions import InsufficientStock, NotFound, ValidationError
from dhakacart.domain.schemas import OrderItemIn
from dhakacart.services.cache_service import product_key
from dhakacart.services.order_service import OrderService
from tests.fakes import FakeNotifier

ADDRESS = "House 12, Road 5, Dhanmondi, Dhaka"


def _count(session_factory, model):
    session = session_factory()
    try:
        return session.execute(select(func.count()).select_from(model)).scalar_one()
    finally:
        session.close()


class TestCreateOrderHappyPath:

    def test_total_includes_shipping_and_stock_is_decremented(self, order_service, customer, make_product, stock_of):
        laptop = make_product(name="Laptop", price="500.00", stock=5)

        order = order_service.create_order(
            customer.id, [{"product_id": laptop.id, "quantity": 2}], ADDRESS
        )

        assert order["total_amount"] == Decimal("1100.00")
        assert order["shipping_cost"] == Decimal("100.00")
        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert stock_of(laptop.id) == 3

    def test_items_carry_price_snapshot(self, order_service, customer, make_product):
        phone = make_product(name="Phone", price="250.50", stock=10)
        cable = make_product(name="Cable", price="9.99", stock=10)

        order = order_service.create_order(
            customer.id,
            [{"product_id": phone.id, "quantity": 1}, {"product_id": cable.id, "quantity": 3}],
            ADDRESS,
        )

        assert [i["product_id"] for i in order["items"]] == [phone.id, cable.id]
        assert order["items"][1] == {
            "product_id": cable.id,
            "product_name": "Cable",
            "quantity": 3,
            "price": Decimal("9.99"),
            "subtotal": Decimal("29.97"),
        }
        assert order["total_amount"] == Decimal("380.47")

    def test_persists_order_and_items(self, order_service, customer, make_product, session_factory):
        product = make_product(stock=5)
        order = order_service.create_order(customer.id, [{"product_id": product.id, "quantity": 1}], ADDRESS)

        session = session_factory()
        try:
            saved = session.get(OrderModel, order["id"])
            assert saved.user_id == customer.id
            assert saved.shipping_address == ADDRESS
            assert [(i.product_id, i.quantity) for i in saved.items] == [(product.id, 1)]
        finally:
            session.close()

    def test_accepts_schema_items(self, order_service, customer, make_product, stock_of):
        product = make_product(stock=4)
        order_service.create_order(customer.id, [OrderItemIn(product_id=product.id, quantity=4)], ADDRESS)
        assert stock_of(product.id) == 0

    def test_duplicate_lines_are_summed(self, order_service, customer, make_product, stock_of):
        product = make_product(stock=5)
        order = order_service.create_order(
            customer.id,
            [{"product_id": product.id, "quantity": 2}, {"product_id": product.id, "quantity": 3}],
            ADDRESS,
        )
        assert len(order["items"]) == 2
        assert stock_of(product.id) == 0

    def test_shipping_cost_is_configurable(self, db, customer, make_product):
        product = make_product(price="10.00", stock=1)
        svc = OrderService(db, notifier=FakeNotifier(), shipping_cost=Decimal("0"))
        order = svc.create_order(customer.id, [{"product_id": product.id, "quantity": 1}], ADDRESS)
        assert order["total_amount"] == Decimal("10.00")

    def test_invalidates_cache_and_notifies_after_commit(
        self, order_service, customer, make_product, fake_redis, notifier
    ):
        product = make_product(stock=5)
        other = make_product(name="Other", stock=5)
        fake_redis.store['products:{"page":1}'] = "[]"
        fake_redis.store[product_key(product.id)] = "{}"
        fake_redis.store[product_key(other.id)] = "{}"

        order = order_service.create_order(customer.id, [{"product_id": product.id, "quantity": 1}], ADDRESS)

        assert 'products:{"page":1}' not in fake_redis.store
        assert product_key(product.id) not in fake_redis.store
        assert product_key(other.id) in fake_redis.store
        assert notifier.sent == [(customer.id, order["id"], "placed")]


class TestCreateOrderRejected:

    def test_insufficient_stock_leaves_everything_untouched(
        self, order_service, customer, make_product, stock_of, session_factory, notifier
    ):
        product = make_product(name="Laptop", stock=5)

        with pytest.raises(InsufficientStock, match="Insufficient stock for Laptop"):
            order_service.create_order(customer.id, [{"product_id": product.id, "quantity": 10}], ADDRESS)

        assert stock_of(product.id) == 5
        assert _count(session_factory, OrderModel) == 0
        assert notifier.sent == []

    def test_failure_on_second_line_rolls_back_first(
        self, order_service, customer, make_product, stock_of, session_factory
    ):
        first = make_product(name="First", stock=5)
        second = make_product(name="Second", stock=1)

        with pytest.raises(InsufficientStock, match="Second"):
            order_service.create_order(
                customer.id,
                [{"product_id": first.id, "quantity": 2}, {"product_id": second.id, "quantity": 2}],
                ADDRESS,
            )

        assert stock_of(first.id) == 5
        assert stock_of(second.id) == 1
        assert _count(session_factory, OrderItemModel) == 0

    def test_duplicate_lines_over_stock(self, order_service, customer, make_product, stock_of):
        product = make_product(stock=4)
        with pytest.raises(InsufficientStock):
            order_service.create_order(
                customer.id,
                [{"product_id": product.id, "quantity": 3}, {"product_id": product.id, "quantity": 2}],
                ADDRESS,
            )
        assert stock_of(product.id) == 4

    def test_missing_product(self, order_service, customer, make_product, stock_of):
        product = make_product(stock=5)
        with pytest.raises(NotFound, match="Product 999 not found"):
            order_service.create_order(
                customer.id,
                [{"product_id": product.id, "quantity": 1}, {"product_id": 999, "quantity": 1}],
                ADDRESS,
            )
        assert stock_of(product.id) == 5

    def test_rejected_order_does_not_touch_cache(self, order_service, customer, make_product, fake_redis):
        product = make_product(stock=1)
        fake_redis.store[product_key(product.id)] = "{}"
        with pytest.raises(InsufficientStock):
            order_service.create_order(customer.id, [{"product_id": product.id, "quantity": 2}], ADDRESS)
        assert product_key(product.id) in fake_redis.store


class TestCreateOrderValidation:

    @pytest.mark.parametrize("items", [[], None])
    def test_empty_cart(self, order_service, customer, items):
        with pytest.raises(ValidationError, match="Cart is empty"):
            order_service.create_order(customer.id, items, ADDRESS)

    def test_zero_quantity(self, order_service, customer, make_product):
        product = make_product()
        with pytest.raises(ValidationError, match="Item 1: quantity must be at least 1"):
            order_service.create_order(customer.id, [{"product_id": product.id, "quantity": 0}], ADDRESS)

    def test_missing_product_id(self, order_service, customer):
        with pytest.raises(ValidationError, match="Item 2"):
            order_service.create_order(
                customer.id,
                [{"product_id": 1, "quantity": 1}, {"quantity": 1}],
                ADDRESS,
            )

    @pytest.mark.parametrize("address", ["", "   ", "Dhaka", "  short    "])
    def test_short_address(self, order_service, customer, make_product, address):
        product = make_product()
        with pytest.raises(ValidationError, match="at least 10 characters"):
            order_service.create_order(customer.id, [{"product_id": product.id, "quantity": 1}], address)

    def test_address_is_stripped(self, order_service, customer, make_product):
        product = make_product()
        order = order_service.create_order(
            customer.id, [{"product_id": product.id, "quantity": 1}], f"  {ADDRESS}  "
        )
        assert order["shipping_address"] == ADDRESS
