# dhakacart/api/routers/payments.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from dhakacart.api.deps import CurrentUser, get_current_user, get_payment_service, require_admin
from dhakacart.domain.schemas import (
    BkashPaymentIn,
    CardPaymentIn,
    CodPaymentIn,
    PaymentResultOut,
    RefundIn,
)
from dhakacart.services.payment_service import PaymentService

router = APIRouter(prefix="/api/payments", tags=["payments"])


def _result(result: dict):
    # odrzucona autoryzacja = 400 z success false, nic nie zapisane
    body = jsonable_encoder(PaymentResultOut(**result))
    return JSONResponse(status_code=200 if result["success"] else 400, content=body)


@router.post("/bkash")
def pay_bkash(
    payload: BkashPaymentIn,
    user: CurrentUser = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    return _result(svc.pay_bkash(user.user_id, payload.order_id, payload.amount, payload.phone))


@router.post("/card")
def pay_card(
    payload: CardPaymentIn,
    user: CurrentUser = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    return _result(
        svc.pay_card(
            user.user_id,
            payload.order_id,
            payload.amount,
            card_number=payload.card_number,
            card_holder=payload.card_holder,
            expiry=payload.expiry,
            cvv=payload.cvv,
        )
    )


@router.post("/cod")
def pay_cash_on_delivery(
    payload: CodPaymentIn,
    user: CurrentUser = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    return _result(svc.pay_cash_on_delivery(user.user_id, payload.order_id))


@router.get("/status/{order_id}")
def payment_status(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    return {"payment": svc.get_payment_status(user.user_id, order_id)}


@router.post("/refund")
def refund(
    payload: RefundIn,
    _admin: CurrentUser = Depends(require_admin),
    svc: PaymentService = Depends(get_payment_service),
):
    return svc.refund(payload.payment_id, payload.reason)


@router.get("/history")
def payment_history(
    status: str | None = Query(None),
    method: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: CurrentUser = Depends(require_admin),
    svc: PaymentService = Depends(get_payment_service),
):
    return {"payments": svc.payment_history(status, method, page, limit)}
