# dhakacart/api/routers/admin.py
from datetime import date

from fastapi import APIRouter, Depends, Query

from dhakacart.api.deps import get_admin_service, get_product_service, require_admin
from dhakacart.domain.schemas import (
    OrderOut,
    OrderStatusUpdate,
    ProductCreate,
    ProductUpdate,
    RoleUpdate,
    SalesReportRow,
)
from dhakacart.services.admin_service import AdminService
from dhakacart.services.product_service import ProductService

# wszystkie endpointy tylko dla roli admin
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard")
def dashboard(svc: AdminService = Depends(get_admin_service)):
    return svc.dashboard()


# =====================================================
# PRODUCTS
# =====================================================
@router.post("/products", status_code=201)
def create_product(payload: ProductCreate, svc: ProductService = Depends(get_product_service)):
    product = svc.create_product(payload)
    return {"message": "Product created successfully", "product": product}


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    svc: ProductService = Depends(get_product_service),
):
    product = svc.update_product(product_id, payload)
    return {"message": "Product updated successfully", "product": product}


@router.delete("/products/{product_id}")
def delete_product(product_id: int, svc: ProductService = Depends(get_product_service)):
    svc.delete_product(product_id)
    return {"message": "Product deleted successfully"}


# =====================================================
# ORDERS
# =====================================================
@router.get("/orders")
def list_orders(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: AdminService = Depends(get_admin_service),
):
    return {"orders": svc.list_orders(status, page, limit)}


@router.put("/orders/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    svc: AdminService = Depends(get_admin_service),
):
    order = svc.update_order_status(order_id, payload.status.value)
    return {"message": "Order status updated successfully", "order": OrderOut(**order)}


# =====================================================
# USERS
# =====================================================
@router.get("/users")
def list_users(
    role: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: AdminService = Depends(get_admin_service),
):
    return {"users": svc.list_users(role, page, limit)}


@router.put("/users/{user_id}/role")
def update_user_role(
    user_id: int,
    payload: RoleUpdate,
    svc: AdminService = Depends(get_admin_service),
):
    user = svc.update_user_role(user_id, payload.role.value)
    return {"message": "User role updated successfully", "user": user}


# =====================================================
# ANALYTICS
# =====================================================
@router.get("/sales-report")
def sales_report(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    svc: AdminService = Depends(get_admin_service),
):
    rows = svc.sales_report(start_date, end_date)
    return {"report": [SalesReportRow(**row) for row in rows]}
