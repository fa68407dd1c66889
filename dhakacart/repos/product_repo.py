# dhakacart/repos/product_repo.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from dhakacart.data.models.product import ProductModel
from dhakacart.domain.schemas import ProductQuery

SORT_OPTIONS = {
    "price_asc": ProductModel.price.asc(),
    "price_desc": ProductModel.price.desc(),
    "name_asc": ProductModel.name.asc(),
    "name_desc": ProductModel.name.desc(),
    "newest": ProductModel.created_at.desc(),
}


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def _filters(self, query: ProductQuery) -> list:
        conditions = []

        if query.category and query.category != "all":
            conditions.append(ProductModel.category == query.category)

        if query.search:
            pattern = f"%{query.search}%"
            conditions.append(
                or_(ProductModel.name.ilike(pattern), ProductModel.description.ilike(pattern))
            )

        if query.min_price is not None:
            conditions.append(ProductModel.price >= query.min_price)

        if query.max_price is not None:
            conditions.append(ProductModel.price <= query.max_price)

        return conditions

    def list_products(self, query: ProductQuery) -> Tuple[List[ProductModel], int]:
        conditions = self._filters(query)

        order_by = SORT_OPTIONS.get(query.sort or "newest", SORT_OPTIONS["newest"])
        offset = (query.page - 1) * query.limit

        products = self.db.execute(
            select(ProductModel)
            .where(*conditions)
            .order_by(order_by, ProductModel.id.desc())
            .limit(query.limit)
            .offset(offset)
        ).scalars().all()

        total = self.db.execute(
            select(func.count(ProductModel.id)).where(*conditions)
        ).scalar_one()

        return list(products), total

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_product_for_update(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_categories(self) -> List[Dict[str, Any]]:
        rows = self.db.execute(
            select(ProductModel.category, func.count(ProductModel.id))
            .group_by(ProductModel.category)
            .order_by(ProductModel.category)
        ).all()
        return [{"category": category, "count": count} for category, count in rows]

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def update_product(self, product: ProductModel, fields: Dict[str, Any]) -> ProductModel:
        for name, value in fields.items():
            setattr(product, name, value)
        product.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return product

    def delete_product(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
