# dhakacart/api/routers/products.py
from decimal import Decimal

from fastapi import APIRouter, Depends, Query

from dhakacart.api.deps import get_product_service
from dhakacart.domain.schemas import ProductListOut, ProductQuery
from dhakacart.services.product_service import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=ProductListOut)
def list_products(
    category: str | None = Query(None),
    search: str | None = Query(None),
    sort: str | None = Query(None),
    min_price: Decimal | None = Query(None, alias="minPrice", ge=0),
    max_price: Decimal | None = Query(None, alias="maxPrice", ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: ProductService = Depends(get_product_service),
):
    query = ProductQuery(
        category=category,
        search=search,
        sort=sort,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )
    return svc.list_products(query)


@router.get("/categories")
def list_categories(svc: ProductService = Depends(get_product_service)):
    return {"categories": svc.list_categories()}


@router.get("/{product_id}")
def get_product(product_id: int, svc: ProductService = Depends(get_product_service)):
    return svc.get_product(product_id)
