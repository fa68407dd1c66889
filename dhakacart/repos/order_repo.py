# dhakacart/repos/order_repo.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from dhakacart.data.models.order import OrderModel
from dhakacart.data.models.order_item import OrderItemModel
from dhakacart.data.models.product import ProductModel
from dhakacart.data.models.user import UserModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    # =====================================================
    # WRITE (w transakcji wolajacego)
    # =====================================================
    def add_order(self, order: OrderModel, items: List[OrderItemModel]) -> OrderModel:
        self.db.add(order)
        self.db.flush()  # potrzebne order.id dla pozycji

        for item in items:
            item.order_id = order.id
        self.db.add_all(items)
        self.db.flush()
        return order

    def get_order_for_update(self, order_id: int, user_id: int | None = None) -> OrderModel | None:
        stmt = select(OrderModel).where(OrderModel.id == order_id)
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)

        return self.db.execute(
            stmt.with_for_update().execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_item_quantities(self, order_id: int) -> List[Tuple[int, int]]:
        rows = self.db.execute(
            select(OrderItemModel.product_id, OrderItemModel.quantity)
            .where(OrderItemModel.order_id == order_id)
            .order_by(OrderItemModel.product_id)
        ).all()
        return [(product_id, quantity) for product_id, quantity in rows]

    def set_status(self, order: OrderModel, status: str, payment_status: str | None = None) -> OrderModel:
        order.status = status
        if payment_status is not None:
            order.payment_status = payment_status
        order.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return order

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: int, user_id: int | None = None) -> OrderModel | None:
        stmt = select(OrderModel).where(OrderModel.id == order_id)
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_user_orders(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def get_items_with_products(self, order_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
        if not order_ids:
            return {}

        rows = self.db.execute(
            select(
                OrderItemModel.order_id,
                OrderItemModel.product_id,
                ProductModel.name,
                OrderItemModel.quantity,
                OrderItemModel.price,
            )
            .outerjoin(ProductModel, ProductModel.id == OrderItemModel.product_id)
            .where(OrderItemModel.order_id.in_(order_ids))
            .order_by(OrderItemModel.order_id, OrderItemModel.id)
        ).all()

        items: Dict[int, List[Dict[str, Any]]] = {order_id: [] for order_id in order_ids}
        for order_id, product_id, name, quantity, price in rows:
            items[order_id].append(
                {
                    "product_id": product_id,
                    "product_name": name,
                    "quantity": quantity,
                    "price": price,
                    "subtotal": price * quantity,
                }
            )
        return items

    def get_customer(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_user_stats(self, user_id: int) -> Dict[str, Any]:
        def count_status(status: str):
            return func.count(case((OrderModel.status == status, 1)))

        row = self.db.execute(
            select(
                func.count(OrderModel.id).label("total_orders"),
                count_status("pending").label("pending_orders"),
                count_status("processing").label("processing_orders"),
                count_status("shipped").label("shipped_orders"),
                count_status("delivered").label("delivered_orders"),
                count_status("cancelled").label("cancelled_orders"),
                func.coalesce(
                    func.sum(case((OrderModel.status != "cancelled", OrderModel.total_amount), else_=0)),
                    0,
                ).label("total_spent"),
            ).where(OrderModel.user_id == user_id)
        ).one()
        return dict(row._mapping)

    def list_all_orders(self, status: str | None, page: int, limit: int) -> List[Dict[str, Any]]:
        stmt = (
            select(
                OrderModel,
                UserModel.name.label("customer_name"),
                UserModel.email.label("customer_email"),
                func.count(OrderItemModel.id).label("item_count"),
            )
            .outerjoin(UserModel, UserModel.id == OrderModel.user_id)
            .outerjoin(OrderItemModel, OrderItemModel.order_id == OrderModel.id)
        )
        if status and status != "all":
            stmt = stmt.where(OrderModel.status == status)

        rows = self.db.execute(
            stmt.group_by(OrderModel.id, UserModel.name, UserModel.email)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        ).all()

        return [
            {
                "order": order,
                "customer_name": customer_name,
                "customer_email": customer_email,
                "item_count": item_count,
            }
            for order, customer_name, customer_email, item_count in rows
        ]

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
