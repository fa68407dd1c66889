# dhakacart/repos/payment_repo.py
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from dhakacart.data.models.order import OrderModel
from dhakacart.data.models.payment import PaymentModel
from dhakacart.data.models.user import UserModel


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def get_payment_for_update(self, payment_id: int) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel)
            .where(PaymentModel.id == payment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def mark_refunded(self, payment: PaymentModel, reason: str | None) -> PaymentModel:
        now = datetime.now(timezone.utc)
        payment.status = "refunded"
        payment.refund_reason = reason
        payment.refund_date = now
        payment.updated_at = now
        self.db.flush()
        return payment

    def get_latest_for_user_order(self, order_id: int, user_id: int) -> Dict[str, Any] | None:
        row = self.db.execute(
            select(PaymentModel, OrderModel.total_amount, OrderModel.status)
            .join(OrderModel, OrderModel.id == PaymentModel.order_id)
            .where(PaymentModel.order_id == order_id, OrderModel.user_id == user_id)
            .order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc())
            .limit(1)
        ).first()

        if not row:
            return None

        payment, total_amount, order_status = row
        return {"payment": payment, "total_amount": total_amount, "order_status": order_status}

    def list_history(self, status: str | None, method: str | None, page: int, limit: int) -> List[Dict[str, Any]]:
        stmt = (
            select(PaymentModel, OrderModel.user_id, UserModel.name, UserModel.email)
            .join(OrderModel, OrderModel.id == PaymentModel.order_id)
            .join(UserModel, UserModel.id == OrderModel.user_id)
        )
        if status:
            stmt = stmt.where(PaymentModel.status == status)
        if method:
            stmt = stmt.where(PaymentModel.payment_method == method)

        rows = self.db.execute(
            stmt.order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        ).all()

        return [
            {
                "payment": payment,
                "user_id": user_id,
                "customer_name": name,
                "customer_email": email,
            }
            for payment, user_id, name, email in rows
        ]
