# dhakacart/services/admin_service.py
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from dhakacart.domain.exceptions import NotFound, ValidationError
from dhakacart.domain.schemas import Role, UserOut
from dhakacart.repos.order_repo import OrderRepo
from dhakacart.repos.report_repo import ReportRepo
from dhakacart.repos.user_repo import UserRepo
from dhakacart.services.cache_service import CacheService
from dhakacart.services.notification_service import NotificationService
from dhakacart.services.order_service import CENTS, OrderService
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

REPORT_START = date(2000, 1, 1)
REPORT_END = date(2099, 12, 31)


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


class AdminService:
    """
    Panel admina: statystyki, zamowienia, uzytkownicy, raport sprzedazy.
    Zmiany stanu magazynu (anulowanie) deleguje do OrderService.
    """

    def __init__(
        self,
        db: Session,
        cache: CacheService | None = None,
        notifier: NotificationService | None = None,
    ):
        self.db = db
        self.reports = ReportRepo(db)
        self.orders = OrderRepo(db)
        self.users = UserRepo(db)
        self.order_service = OrderService(db, cache=cache, notifier=notifier)

    def dashboard(self) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        today = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)

        stats = self.reports.summary(
            last_30_days=today - timedelta(days=30),
            last_7_days=today - timedelta(days=7),
        )
        for key in ("total_revenue", "revenue_last_30_days", "revenue_last_7_days", "average_order_value"):
            stats[key] = _money(stats[key])

        sales_by_category = self.reports.sales_by_category()
        for row in sales_by_category:
            row["total_sales"] = _money(row["total_sales"])

        return {
            "stats": stats,
            "topProducts": self.reports.top_products(),
            "recentOrders": self.reports.recent_orders(),
            "lowStockProducts": self.reports.low_stock_products(),
            "salesByCategory": sales_by_category,
        }

    def list_orders(self, status: str | None, page: int, limit: int) -> List[Dict[str, Any]]:
        rows = self.orders.list_all_orders(status, page, limit)
        result = []
        for row in rows:
            payload = OrderService.order_summary(row["order"])
            payload.update(
                customer_name=row["customer_name"],
                customer_email=row["customer_email"],
                item_count=row["item_count"],
            )
            result.append(payload)
        return result

    def update_order_status(self, order_id: int, status: str) -> Dict[str, Any]:
        return self.order_service.update_status(order_id, status)

    def list_users(self, role: str | None, page: int, limit: int) -> List[Dict[str, Any]]:
        return [UserOut.model_validate(u).model_dump() for u in self.users.list_users(role, page, limit)]

    def update_user_role(self, user_id: int, role: str) -> Dict[str, Any]:
        if role not in [r.value for r in Role]:
            raise ValidationError("Invalid role")

        user = self.users.update_role(user_id, role)
        if not user:
            raise NotFound("User not found")

        logger.info(f"User {user_id} role set to {role}")
        return UserOut.model_validate(user).model_dump()

    def sales_report(self, start_date: date | None, end_date: date | None) -> List[Dict[str, Any]]:
        start = datetime.combine(start_date or REPORT_START, time.min, tzinfo=timezone.utc)
        # end_date wlacznie z calym dniem
        end = datetime.combine((end_date or REPORT_END) + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if end <= start:
            raise ValidationError("endDate must not be before startDate")

        rows = self.reports.sales_report(start, end)
        for row in rows:
            row["total_sales"] = _money(row["total_sales"])
            row["average_order_value"] = _money(row["average_order_value"])
        return rows
