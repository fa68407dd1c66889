# dhakacart/repos/report_repo.py
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from dhakacart.data.models.order import OrderModel
from dhakacart.data.models.order_item import OrderItemModel
from dhakacart.data.models.product import ProductModel
from dhakacart.data.models.user import UserModel

LOW_STOCK_THRESHOLD = 10


class ReportRepo:
    """Zapytania agregujace dla panelu admina (tylko odczyt)."""

    def __init__(self, db: Session):
        self.db = db

    def _scalar(self, stmt):
        return self.db.execute(stmt).scalar_one()

    def _revenue_since(self, since: datetime | None):
        stmt = select(func.coalesce(func.sum(OrderModel.total_amount), 0)).where(
            OrderModel.status != "cancelled"
        )
        if since is not None:
            stmt = stmt.where(OrderModel.created_at >= since)
        return self._scalar(stmt)

    def _count_orders(self, status: str | None = None) -> int:
        stmt = select(func.count(OrderModel.id))
        if status is not None:
            stmt = stmt.where(OrderModel.status == status)
        return self._scalar(stmt)

    def summary(self, last_30_days: datetime, last_7_days: datetime) -> Dict[str, Any]:
        return {
            "total_customers": self._scalar(
                select(func.count(UserModel.id)).where(UserModel.role == "customer")
            ),
            "total_products": self._scalar(select(func.count(ProductModel.id))),
            "total_orders": self._count_orders(),
            "pending_orders": self._count_orders("pending"),
            "processing_orders": self._count_orders("processing"),
            "delivered_orders": self._count_orders("delivered"),
            "total_revenue": self._revenue_since(None),
            "revenue_last_30_days": self._revenue_since(last_30_days),
            "revenue_last_7_days": self._revenue_since(last_7_days),
            "average_order_value": self._scalar(
                select(func.coalesce(func.avg(OrderModel.total_amount), 0)).where(
                    OrderModel.status != "cancelled"
                )
            ),
        }

    def top_products(self, limit: int = 5) -> List[Dict[str, Any]]:
        total_sold = func.sum(OrderItemModel.quantity).label("total_sold")
        rows = self.db.execute(
            select(ProductModel.id, ProductModel.name, ProductModel.image, total_sold)
            .join(OrderItemModel, OrderItemModel.product_id == ProductModel.id)
            .group_by(ProductModel.id, ProductModel.name, ProductModel.image)
            .order_by(total_sold.desc(), ProductModel.id)
            .limit(limit)
        ).all()
        return [dict(r._mapping) for r in rows]

    def recent_orders(self, limit: int = 10) -> List[Dict[str, Any]]:
        rows = self.db.execute(
            select(
                OrderModel.id,
                OrderModel.total_amount,
                OrderModel.status,
                OrderModel.created_at,
                UserModel.name.label("customer_name"),
            )
            .join(UserModel, UserModel.id == OrderModel.user_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .limit(limit)
        ).all()
        return [dict(r._mapping) for r in rows]

    def low_stock_products(self, limit: int = 10) -> List[Dict[str, Any]]:
        rows = self.db.execute(
            select(ProductModel.id, ProductModel.name, ProductModel.stock, ProductModel.category)
            .where(ProductModel.stock < LOW_STOCK_THRESHOLD)
            .order_by(ProductModel.stock.asc(), ProductModel.id)
            .limit(limit)
        ).all()
        return [dict(r._mapping) for r in rows]

    def sales_by_category(self) -> List[Dict[str, Any]]:
        total_sales = func.sum(OrderItemModel.quantity * OrderItemModel.price).label("total_sales")
        rows = self.db.execute(
            select(
                ProductModel.category,
                func.count(distinct(OrderModel.id)).label("order_count"),
                total_sales,
            )
            .join(OrderItemModel, OrderItemModel.product_id == ProductModel.id)
            .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
            .where(OrderModel.status != "cancelled")
            .group_by(ProductModel.category)
            .order_by(total_sales.desc())
        ).all()
        return [dict(r._mapping) for r in rows]

    def sales_report(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        day = func.date(OrderModel.created_at).label("date")
        rows = self.db.execute(
            select(
                day,
                func.count(OrderModel.id).label("order_count"),
                func.sum(OrderModel.total_amount).label("total_sales"),
                func.avg(OrderModel.total_amount).label("average_order_value"),
            )
            .where(
                OrderModel.status != "cancelled",
                OrderModel.created_at >= start,
                OrderModel.created_at < end,
            )
            .group_by(day)
            .order_by(day.desc())
        ).all()
        return [dict(r._mapping) for r in rows]
