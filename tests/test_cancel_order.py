"""OrderService.cancel_order and admin status changes: stock is restored exactly once."""

import pytest

from dhakacart.domain.exceptions import InvalidState, NotFound, ValidationError
from dhakacart.services.cache_service import product_key

ADDRESS = "House 12, Road 5, Dhanmondi, Dhaka"


@pytest.fixture
def two_line_order(order_service, customer, make_product):
    a = make_product(name="Laptop", stock=10)
    b = make_product(name="Mouse", stock=10)
    order = order_service.create_order(
        customer.id,
        [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
        ADDRESS,
    )
    return order, a, b


class TestCancelOrder:

    def test_restores_every_line(self, order_service, customer, two_line_order, stock_of):
        order, a, b = two_line_order
        assert (stock_of(a.id), stock_of(b.id)) == (8, 9)

        result = order_service.cancel_order(customer.id, order["id"])

        assert result == {"id": order["id"], "status": "cancelled"}
        assert (stock_of(a.id), stock_of(b.id)) == (10, 10)

    def test_second_cancel_is_rejected(self, order_service, customer, two_line_order, stock_of):
        order, a, b = two_line_order
        order_service.cancel_order(customer.id, order["id"])

        with pytest.raises(InvalidState, match="cannot be cancelled"):
            order_service.cancel_order(customer.id, order["id"])

        assert (stock_of(a.id), stock_of(b.id)) == (10, 10)

    def test_other_users_order_is_not_found(self, order_service, make_user, two_line_order, stock_of):
        order, a, _ = two_line_order
        stranger = make_user(name="Stranger")

        with pytest.raises(NotFound, match="Order not found"):
            order_service.cancel_order(stranger.id, order["id"])

        assert stock_of(a.id) == 8

    def test_unknown_order(self, order_service, customer):
        with pytest.raises(NotFound):
            order_service.cancel_order(customer.id, 12345)

    def test_processing_order_can_be_cancelled(self, order_service, customer, two_line_order, stock_of):
        order, a, _ = two_line_order
        order_service.update_status(order["id"], "processing")

        order_service.cancel_order(customer.id, order["id"])
        assert stock_of(a.id) == 10

    @pytest.mark.parametrize("status", ["shipped", "delivered"])
    def test_shipped_or_delivered_cannot_be_cancelled(
        self, order_service, customer, two_line_order, stock_of, status
    ):
        order, a, _ = two_line_order
        order_service.update_status(order["id"], status)

        with pytest.raises(InvalidState):
            order_service.cancel_order(customer.id, order["id"])
        assert stock_of(a.id) == 8

    def test_invalidates_cache_and_notifies(self, order_service, customer, two_line_order, fake_redis, notifier):
        order, a, b = two_line_order
        fake_redis.store[product_key(a.id)] = "{}"
        fake_redis.store["products:{}"] = "{}"

        order_service.cancel_order(customer.id, order["id"])

        assert fake_redis.store == {}
        assert notifier.sent[-1] == (customer.id, order["id"], "cancelled")


class TestUpdateStatus:

    def test_moves_through_lifecycle(self, order_service, two_line_order, stock_of):
        order, a, _ = two_line_order
        for status in ("processing", "shipped", "delivered"):
            assert order_service.update_status(order["id"], status)["status"] == status
        assert stock_of(a.id) == 8

    def test_cancel_via_status_restores_stock_once(self, order_service, two_line_order, stock_of, notifier):
        order, a, b = two_line_order

        order_service.update_status(order["id"], "cancelled")
        # powtorzenie tego samego statusu nie zwraca stanu drugi raz
        order_service.update_status(order["id"], "cancelled")

        assert (stock_of(a.id), stock_of(b.id)) == (10, 10)
        assert [event for _, _, event in notifier.sent].count("cancelled") == 1

    def test_cancelled_order_is_terminal(self, order_service, two_line_order, stock_of):
        order, a, _ = two_line_order
        order_service.update_status(order["id"], "cancelled")

        with pytest.raises(InvalidState):
            order_service.update_status(order["id"], "pending")
        assert stock_of(a.id) == 10

    def test_delivered_order_cannot_be_cancelled(self, order_service, two_line_order, stock_of):
        order, a, _ = two_line_order
        order_service.update_status(order["id"], "delivered")

        with pytest.raises(InvalidState):
            order_service.update_status(order["id"], "cancelled")
        assert stock_of(a.id) == 8

    def test_unknown_status(self, order_service, two_line_order):
        order, _, _ = two_line_order
        with pytest.raises(ValidationError, match="Invalid status"):
            order_service.update_status(order["id"], "lost")

    def test_unknown_order(self, order_service):
        with pytest.raises(NotFound):
            order_service.update_status(4242, "shipped")


class TestStockLedger:

    def test_stock_matches_initial_minus_active_orders(self, order_service, customer, make_product, stock_of):
        initial = {"a": 20, "b": 15}
        a = make_product(name="A product", stock=initial["a"])
        b = make_product(name="B product", stock=initial["b"])

        carts = [
            [(a.id, 3), (b.id, 1)],
            [(a.id, 1)],
            [(b.id, 5), (a.id, 2)],
            [(a.id, 4), (b.id, 4)],
        ]
        placed = []
        for cart in carts:
            order = order_service.create_order(
                customer.id, [{"product_id": pid, "quantity": q} for pid, q in cart], ADDRESS
            )
            placed.append((order["id"], cart))

        cancelled = {placed[0][0], placed[2][0]}
        for order_id in cancelled:
            order_service.cancel_order(customer.id, order_id)

        def active_quantity(product_id):
            return sum(
                q for order_id, cart in placed if order_id not in cancelled
                for pid, q in cart if pid == product_id
            )

        assert stock_of(a.id) == initial["a"] - active_quantity(a.id)
        assert stock_of(b.id) == initial["b"] - active_quantity(b.id)
