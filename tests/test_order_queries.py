"""Read-side of orders: listing, detail and per-user statistics."""

from decimal import Decimal

import pytest

from dhakacart.domain.exceptions import NotFound

ADDRESS = "House 12, Road 5, Dhanmondi, Dhaka"


@pytest.fixture
def placed(order_service, customer, make_product):
    laptop = make_product(name="Laptop", price="500.00", stock=10)
    phone = make_product(name="Phone", price="200.00", stock=10)
    first = order_service.create_order(customer.id, [{"product_id": laptop.id, "quantity": 1}], ADDRESS)
    second = order_service.create_order(
        customer.id,
        [{"product_id": phone.id, "quantity": 2}, {"product_id": laptop.id, "quantity": 1}],
        ADDRESS,
    )
    return first, second


class TestListUserOrders:

    def test_newest_first_with_items(self, order_service, customer, placed):
        first, second = placed
        orders = order_service.list_user_orders(customer.id)

        assert [o["id"] for o in orders] == [second["id"], first["id"]]
        assert [i["product_name"] for i in orders[0]["items"]] == ["Phone", "Laptop"]
        assert orders[0]["items"][0]["subtotal"] == Decimal("400.00")

    def test_only_own_orders(self, order_service, make_user, placed):
        assert order_service.list_user_orders(make_user(name="Other").id) == []


class TestGetOrder:

    def test_includes_customer(self, order_service, customer, placed):
        first, _ = placed
        order = order_service.get_order(customer.id, first["id"])

        assert order["customer_name"] == "Rahim Uddin"
        assert order["customer_email"] == customer.email
        assert order["total_amount"] == Decimal("600.00")
        assert len(order["items"]) == 1

    def test_foreign_order_is_not_found(self, order_service, make_user, placed):
        first, _ = placed
        with pytest.raises(NotFound):
            order_service.get_order(make_user(name="Other").id, first["id"])


class TestOrderStats:

    def test_counts_and_spent_exclude_cancelled(self, order_service, customer, placed):
        first, second = placed
        order_service.cancel_order(customer.id, first["id"])
        order_service.update_status(second["id"], "shipped")

        stats = order_service.get_order_stats(customer.id)

        assert stats["total_orders"] == 2
        assert stats["cancelled_orders"] == 1
        assert stats["shipped_orders"] == 1
        assert stats["pending_orders"] == 0
        assert stats["total_spent"] == Decimal("1000.00")

    def test_no_orders(self, order_service, customer):
        stats = order_service.get_order_stats(customer.id)
        assert stats["total_orders"] == 0
        assert stats["total_spent"] == Decimal("0.00")
