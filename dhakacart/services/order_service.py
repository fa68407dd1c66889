# dhakacart/services/order_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dhakacart.data.models.order import OrderModel
from dhakacart.data.models.order_item import OrderItemModel
from dhakacart.domain.exceptions import (
    DomainError,
    InsufficientStock,
    InvalidState,
    NotFound,
    TransactionFailure,
    ValidationError,
)
from dhakacart.domain.schemas import CANCELLABLE_STATUSES, OrderStatus
from dhakacart.repos.inventory_repo import InventoryLedger
from dhakacart.repos.order_repo import OrderRepo
from dhakacart.services.cache_service import CacheService
from dhakacart.services.notification_service import NotificationService
from dhakacart.utils.settings import SHIPPING_COST
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")
MIN_ADDRESS_LENGTH = 10


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien.

    Komendy (create, cancel, update_status) sa jedynym miejscem, ktore zmienia
    products.stock - zawsze w jednej transakcji z zapisem zamowienia i pod
    blokada wierszy produktow. Zapytania (list, get, stats) tylko czytaja.
    """

    def __init__(
        self,
        db: Session,
        cache: CacheService | None = None,
        notifier: NotificationService | None = None,
        shipping_cost: Decimal = SHIPPING_COST,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.ledger = InventoryLedger(db)
        self.cache = cache
        self.notifier = notifier or NotificationService()
        self.shipping_cost = Decimal(shipping_cost)

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_order(
        self,
        user_id: int,
        items: Iterable[Any],
        shipping_address: str,
        payment_method: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: Tworzenie zamowienia z koszyka.

        1. Blokuje wiersze produktow (SELECT ... FOR UPDATE)
        2. Sprawdza stan i zmniejsza go dla kazdej pozycji
        3. Liczy total (suma pozycji + koszt wysylki)
        4. Zapisuje zamowienie i pozycje ze snapshotem ceny
        5. Commit albo rollback calosci
        """
        lines = self._validate_cart(items)
        address = self._validate_address(shipping_address)

        try:
            locked = self.ledger.lock_many(product_id for product_id, _ in lines)
            available = {product_id: row.stock for product_id, row in locked.items()}

            order_items: List[OrderItemModel] = []
            line_payloads: List[Dict[str, Any]] = []
            items_total = Decimal("0.00")

            for product_id, quantity in lines:
                product = locked.get(product_id)
                if product is None:
                    raise NotFound(f"Product {product_id} not found")

                # ten sam produkt w kilku pozycjach sprawdzany lacznie
                if available[product_id] < quantity:
                    raise InsufficientStock(f"Insufficient stock for {product.name}")

                self.ledger.adjust_stock(product_id, -quantity)
                available[product_id] -= quantity

                subtotal = (product.price * quantity).quantize(CENTS)
                items_total += subtotal

                order_items.append(
                    OrderItemModel(product_id=product_id, quantity=quantity, price=product.price)
                )
                line_payloads.append(
                    {
                        "product_id": product_id,
                        "product_name": product.name,
                        "quantity": quantity,
                        "price": product.price,
                        "subtotal": subtotal,
                    }
                )

            order = OrderModel(
                user_id=user_id,
                status=OrderStatus.PENDING.value,
                payment_status="pending",
                payment_method=payment_method,
                total_amount=(items_total + self.shipping_cost).quantize(CENTS),
                shipping_cost=self.shipping_cost,
                shipping_address=address,
            )
            self.repo.add_order(order, order_items)
            payload = self._order_payload(order, line_payloads)

            self.db.commit()

        except DomainError as e:
            self.db.rollback()
            logger.warning(f"Order for user {user_id} rejected: {e.message}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Order transaction for user {user_id} failed")
            raise TransactionFailure("Failed to create order") from e

        logger.info(
            f"Order {payload['id']} created for user {user_id}, "
            f"total {payload['total_amount']}, {len(lines)} line(s)"
        )

        self.after_commit(
            product_ids=[product_id for product_id, _ in lines],
            user_id=user_id,
            order_id=payload["id"],
            event="placed",
        )
        return payload

    def cancel_order(self, user_id: int, order_id: int) -> Dict[str, Any]:
        """
        Use Case: Anulowanie zamowienia przez wlasciciela.
        Przywraca stan wszystkich pozycji i ustawia status cancelled atomowo.
        """
        try:
            order = self.repo.get_order_for_update(order_id, user_id=user_id)
            if not order:
                raise NotFound("Order not found")

            self.ensure_cancellable(order)
            product_ids = self.release_stock(order)
            payload = {"id": order.id, "status": order.status}

            self.db.commit()

        except DomainError as e:
            self.db.rollback()
            logger.warning(f"Cancel of order {order_id} by user {user_id} rejected: {e.message}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Cancel transaction for order {order_id} failed")
            raise TransactionFailure("Failed to cancel order") from e

        logger.info(f"Order {order_id} cancelled by user {user_id}, stock restored for {product_ids}")

        self.after_commit(product_ids=product_ids, user_id=user_id, order_id=order_id, event="cancelled")
        return payload

    def update_status(self, order_id: int, status: str) -> Dict[str, Any]:
        """
        Use Case: Zmiana statusu przez admina.
        Przejscie na cancelled idzie ta sama sciezka co anulowanie (zwrot stanu raz).
        """
        valid = [s.value for s in OrderStatus]
        if status not in valid:
            raise ValidationError("Invalid status")

        product_ids: List[int] = []
        try:
            order = self.repo.get_order_for_update(order_id)
            if not order:
                raise NotFound("Order not found")

            if order.status == OrderStatus.CANCELLED.value and status != order.status:
                raise InvalidState("Cancelled orders cannot change status")

            if status == OrderStatus.CANCELLED.value and order.status != status:
                self.ensure_cancellable(order)
                product_ids = self.release_stock(order)
            else:
                self.repo.set_status(order, status)

            payload = self.order_summary(order)
            self.db.commit()

        except DomainError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Status update of order {order_id} failed")
            raise TransactionFailure("Failed to update order status") from e

        logger.info(f"Order {order_id} status set to {status}")

        if product_ids:
            self.after_commit(
                product_ids=product_ids,
                user_id=payload["user_id"],
                order_id=order_id,
                event="cancelled",
            )
        return payload

    def release_stock(self, order: OrderModel) -> List[int]:
        """
        Zwraca na stan wszystkie pozycje zamowienia i ustawia status cancelled.
        Wolajacy trzyma blokade zamowienia i odpowiada za commit.
        """
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidState("Order is already cancelled")

        quantities = self.repo.get_item_quantities(order.id)
        self.ledger.lock_many(product_id for product_id, _ in quantities)

        for product_id, quantity in quantities:
            self.ledger.adjust_stock(product_id, quantity)

        self.repo.set_status(order, OrderStatus.CANCELLED.value)
        return sorted({product_id for product_id, _ in quantities})

    # =====================================================
    # QUERY
    # =====================================================
    def list_user_orders(self, user_id: int) -> List[Dict[str, Any]]:
        orders = self.repo.list_user_orders(user_id)
        items = self.repo.get_items_with_products([o.id for o in orders])
        return [self._order_payload(o, items.get(o.id, [])) for o in orders]

    def get_order(self, user_id: int, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id, user_id=user_id)
        if not order:
            raise NotFound("Order not found")

        items = self.repo.get_items_with_products([order.id])
        payload = self._order_payload(order, items.get(order.id, []))

        customer = self.repo.get_customer(order.user_id)
        if customer:
            payload["customer_name"] = customer.name
            payload["customer_email"] = customer.email
        return payload

    def get_order_stats(self, user_id: int) -> Dict[str, Any]:
        stats = self.repo.get_user_stats(user_id)
        stats["total_spent"] = Decimal(str(stats["total_spent"])).quantize(CENTS)
        return stats

    # =====================================================
    # HELPERS
    # =====================================================
    @staticmethod
    def _validate_cart(items: Iterable[Any]) -> List[Tuple[int, int]]:
        lines: List[Tuple[int, int]] = []

        for index, item in enumerate(items or [], start=1):
            if isinstance(item, dict):
                product_id, quantity = item.get("product_id"), item.get("quantity")
            else:
                product_id = getattr(item, "product_id", None)
                quantity = getattr(item, "quantity", None)

            if not isinstance(product_id, int) or isinstance(product_id, bool) or product_id < 1:
                raise ValidationError(f"Item {index}: product_id and quantity required")
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise ValidationError(f"Item {index}: quantity must be at least 1")

            lines.append((product_id, quantity))

        if not lines:
            raise ValidationError("Cart is empty")
        return lines

    @staticmethod
    def _validate_address(shipping_address: str | None) -> str:
        address = (shipping_address or "").strip()
        if len(address) < MIN_ADDRESS_LENGTH:
            raise ValidationError(
                f"Shipping address must be at least {MIN_ADDRESS_LENGTH} characters"
            )
        return address

    @staticmethod
    def ensure_cancellable(order: OrderModel) -> None:
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidState("Order cannot be cancelled")

    def after_commit(self, product_ids: List[int], user_id: int, order_id: int, event: str) -> None:
        if self.cache is not None:
            self.cache.invalidate_products(product_ids)
        self.notifier.send_order_notification(user_id, order_id, event)

    @staticmethod
    def order_summary(order: OrderModel) -> Dict[str, Any]:
        return {
            "id": order.id,
            "user_id": order.user_id,
            "status": order.status,
            "payment_status": order.payment_status,
            "payment_method": order.payment_method,
            "total_amount": Decimal(order.total_amount),
            "shipping_cost": Decimal(order.shipping_cost),
            "shipping_address": order.shipping_address,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }

    def _order_payload(self, order: OrderModel, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        payload = self.order_summary(order)
        payload["items"] = items
        return payload
