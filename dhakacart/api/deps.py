# dhakacart/api/deps.py
from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from dhakacart.data.database import get_db
from dhakacart.domain.exceptions import Forbidden, Unauthorized
from dhakacart.domain.schemas import Role
from dhakacart.services.admin_service import AdminService
from dhakacart.services.cache_service import CacheService
from dhakacart.services.notification_service import NotificationService
from dhakacart.services.order_service import OrderService
from dhakacart.services.payment_service import PaymentService
from dhakacart.services.product_service import ProductService


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def get_current_user(
    x_user_id: int | None = Header(None, gt=0),
    x_user_role: str = Header(Role.CUSTOMER.value),
) -> CurrentUser:
    """
    Tozsamosc dostarcza zewnetrzna warstwa auth (gateway po weryfikacji tokena).
    Tutaj tylko czytamy juz zweryfikowane naglowki.
    """
    if x_user_id is None:
        raise Unauthorized("Authentication required")
    return CurrentUser(user_id=x_user_id, role=x_user_role)


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise Forbidden("Admin access required")
    return user


def get_cache(request: Request) -> CacheService | None:
    return getattr(request.app.state, "cache", None)


def get_notifier(request: Request) -> NotificationService:
    return getattr(request.app.state, "notifier", None) or NotificationService()


def get_order_service(
    request: Request,
    db: Session = Depends(get_db),
) -> OrderService:
    return OrderService(db, cache=get_cache(request), notifier=get_notifier(request))


def get_product_service(
    request: Request,
    db: Session = Depends(get_db),
) -> ProductService:
    return ProductService(db, cache=get_cache(request))


def get_payment_service(
    request: Request,
    db: Session = Depends(get_db),
) -> PaymentService:
    return PaymentService(
        db,
        gateways=getattr(request.app.state, "payment_gateways", None),
        cache=get_cache(request),
        notifier=get_notifier(request),
    )


def get_admin_service(
    request: Request,
    db: Session = Depends(get_db),
) -> AdminService:
    return AdminService(db, cache=get_cache(request), notifier=get_notifier(request))
