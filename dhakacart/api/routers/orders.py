# dhakacart/api/routers/orders.py
from fastapi import APIRouter, Depends

from dhakacart.api.deps import CurrentUser, get_current_user, get_order_service
from dhakacart.domain.schemas import OrderCreate, OrderCreatedOut, OrderOut, OrderStatsOut
from dhakacart.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderCreatedOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    """
    Tworzy zamowienie z koszyka i rezerwuje stan produktow.
    """
    order = svc.create_order(
        user_id=user.user_id,
        items=payload.items,
        shipping_address=payload.shipping_address,
        payment_method=payload.payment_method,
    )
    return {"message": "Order created successfully", "order": order}


@router.get("")
def list_orders(
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    return {"orders": [OrderOut(**o) for o in svc.list_user_orders(user.user_id)]}


@router.get("/stats")
def order_stats(
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    return {"stats": OrderStatsOut(**svc.get_order_stats(user.user_id))}


@router.get("/{order_id}")
def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegoly zamowienia (tylko wlasciciel).
    """
    return {"order": OrderOut(**svc.get_order(user.user_id, order_id))}


@router.put("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    svc.cancel_order(user.user_id, order_id)
    return {"message": "Order cancelled successfully"}
