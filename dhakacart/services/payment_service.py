# dhakacart/services/payment_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dhakacart.data.models.order import OrderModel
from dhakacart.data.models.payment import PaymentModel
from dhakacart.domain.exceptions import (
    DomainError,
    InvalidState,
    NotFound,
    TransactionFailure,
    ValidationError,
)
from dhakacart.domain.schemas import OrderStatus, PaymentOut
from dhakacart.repos.order_repo import OrderRepo
from dhakacart.repos.payment_repo import PaymentRepo
from dhakacart.services.cache_service import CacheService
from dhakacart.services.notification_service import NotificationService
from dhakacart.services.order_service import CENTS, OrderService
from dhakacart.services.payment_gateway import PaymentGateway, default_gateways
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

COD_METHOD = "cash_on_delivery"


class PaymentService:
    """
    Platnosci za zamowienia.

    Autoryzacja idzie przez PaymentGateway poza transakcja bazy (bramka moze
    trwac sekundy), zapis platnosci i zmiana statusu zamowienia - w jednej
    transakcji pod blokada wiersza zamowienia.
    """

    def __init__(
        self,
        db: Session,
        gateways: Dict[str, PaymentGateway] | None = None,
        cache: CacheService | None = None,
        notifier: NotificationService | None = None,
    ):
        self.db = db
        self.repo = PaymentRepo(db)
        self.orders = OrderRepo(db)
        self.gateways = gateways if gateways is not None else default_gateways()
        self.order_service = OrderService(db, cache=cache, notifier=notifier)

    # =====================================================
    # COMMANDS
    # =====================================================
    def pay_bkash(self, user_id: int, order_id: int, amount: Decimal, phone: str) -> Dict[str, Any]:
        if not order_id or not amount or not phone:
            raise ValidationError("Order ID, amount, and phone required")

        return self._pay_with_gateway(user_id, order_id, amount, method="bkash")

    def pay_card(
        self,
        user_id: int,
        order_id: int,
        amount: Decimal,
        card_number: str,
        card_holder: str,
        expiry: str,
        cvv: str,
    ) -> Dict[str, Any]:
        if not all([order_id, amount, card_number, card_holder, expiry, cvv]):
            raise ValidationError("All card details required")
        if len(card_number) < 16:
            raise ValidationError("Invalid card number")
        if len(cvv) < 3:
            raise ValidationError("Invalid CVV")

        # przechowujemy tylko 4 ostatnie cyfry
        return self._pay_with_gateway(user_id, order_id, amount, method="card", card_last4=card_number[-4:])

    def pay_cash_on_delivery(self, user_id: int, order_id: int) -> Dict[str, Any]:
        try:
            order = self._payable_order(user_id, order_id, lock=True)

            payment = self.repo.add_payment(
                PaymentModel(
                    order_id=order.id,
                    amount=order.total_amount,
                    payment_method=COD_METHOD,
                    status="pending",
                )
            )
            order.payment_method = COD_METHOD
            self.orders.set_status(order, OrderStatus.PROCESSING.value, payment_status="pending")

            result = self._payment_payload(payment)
            self.db.commit()
        except DomainError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"COD payment for order {order_id} failed")
            raise TransactionFailure("Failed to process cash on delivery") from e

        logger.info(f"Order {order_id} set to cash on delivery")
        return {
            "success": True,
            "message": "Order placed successfully. Pay when you receive the product.",
            "payment": result,
        }

    def refund(self, payment_id: int, reason: str | None) -> Dict[str, Any]:
        """
        Use Case: Zwrot platnosci (admin).
        Zamowienie przechodzi na cancelled; jesli jeszcze nie bylo anulowane,
        stan produktow wraca w tej samej transakcji. Wyslanego albo
        dostarczonego zamowienia nie da sie zwrocic (InvalidState).
        """
        product_ids: List[int] = []
        try:
            payment = self.repo.get_payment_for_update(payment_id)
            if not payment:
                raise NotFound("Payment not found")
            if payment.status == "refunded":
                raise InvalidState("Payment already refunded")

            order = self.orders.get_order_for_update(payment.order_id)
            if order.status != OrderStatus.CANCELLED.value:
                OrderService.ensure_cancellable(order)
                product_ids = self.order_service.release_stock(order)

            self.orders.set_status(order, OrderStatus.CANCELLED.value, payment_status="refunded")
            self.repo.mark_refunded(payment, reason)
            user_id = order.user_id

            self.db.commit()
        except DomainError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Refund of payment {payment_id} failed")
            raise TransactionFailure("Failed to process refund") from e

        logger.info(f"Payment {payment_id} refunded, order {payment.order_id} cancelled")

        self.order_service.after_commit(
            product_ids=product_ids,
            user_id=user_id,
            order_id=payment.order_id,
            event="refunded",
        )
        return {"success": True, "message": "Refund processed successfully"}

    # =====================================================
    # QUERY
    # =====================================================
    def get_payment_status(self, user_id: int, order_id: int) -> Dict[str, Any]:
        row = self.repo.get_latest_for_user_order(order_id, user_id)
        if not row:
            raise NotFound("Payment not found")

        payload = self._payment_payload(row["payment"])
        payload["total_amount"] = Decimal(row["total_amount"])
        payload["order_status"] = row["order_status"]
        return payload

    def payment_history(self, status: str | None, method: str | None, page: int, limit: int) -> List[Dict[str, Any]]:
        rows = self.repo.list_history(status, method, page, limit)
        history = []
        for row in rows:
            payload = self._payment_payload(row["payment"])
            payload.update(
                user_id=row["user_id"],
                customer_name=row["customer_name"],
                customer_email=row["customer_email"],
            )
            history.append(payload)
        return history

    # =====================================================
    # HELPERS
    # =====================================================
    def _pay_with_gateway(
        self,
        user_id: int,
        order_id: int,
        amount: Decimal,
        method: str,
        card_last4: str | None = None,
    ) -> Dict[str, Any]:
        gateway = self.gateways.get(method)
        if gateway is None:
            raise ValidationError(f"Unsupported payment method: {method}")

        order = self._payable_order(user_id, order_id, lock=False)
        total = Decimal(order.total_amount).quantize(CENTS)

        # porownanie w groszach, nie na floatach
        if Decimal(str(amount)).quantize(CENTS) != total:
            self.db.rollback()
            raise ValidationError("Amount mismatch")

        # zamknij transakcje odczytu zanim bramka zacznie czekac
        self.db.rollback()

        outcome = gateway.authorize(total)
        if not outcome.success:
            logger.info(f"{method} payment for order {order_id} declined")
            return {"success": False, "message": outcome.message}

        try:
            order = self._payable_order(user_id, order_id, lock=True)

            payment = self.repo.add_payment(
                PaymentModel(
                    order_id=order.id,
                    amount=total,
                    payment_method=method,
                    transaction_id=outcome.transaction_id,
                    status="completed",
                    card_last4=card_last4,
                )
            )
            order.payment_method = method
            self.orders.set_status(order, OrderStatus.PROCESSING.value, payment_status="paid")

            result = self._payment_payload(payment)
            self.db.commit()
        except DomainError:
            self.db.rollback()
            # TODO: void the gateway authorization once a real gateway supports it
            logger.error(
                f"Order {order_id} changed while {method} payment {outcome.transaction_id} was authorized"
            )
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Recording {method} payment for order {order_id} failed")
            raise TransactionFailure("Payment processing failed") from e

        logger.info(f"Order {order_id} paid via {method}, transaction {outcome.transaction_id}")
        return {
            "success": True,
            "message": "Payment successful",
            "payment": result,
            "transaction_id": outcome.transaction_id,
        }

    def _payable_order(self, user_id: int, order_id: int, lock: bool) -> OrderModel:
        if lock:
            order = self.orders.get_order_for_update(order_id, user_id=user_id)
        else:
            order = self.orders.get_order(order_id, user_id=user_id)

        if not order:
            raise NotFound("Order not found")
        if order.payment_status == "paid":
            raise InvalidState("Order is already paid")
        if order.status != OrderStatus.PENDING.value:
            raise InvalidState(f"Order in status {order.status} cannot be paid")
        return order

    @staticmethod
    def _payment_payload(payment: PaymentModel) -> Dict[str, Any]:
        return PaymentOut.model_validate(payment).model_dump()
