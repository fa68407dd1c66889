# dhakacart/services/product_service.py
import json
import math
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dhakacart.data.models.product import ProductModel
from dhakacart.domain.exceptions import NotFound, TransactionFailure, ValidationError
from dhakacart.domain.schemas import (
    CategoryOut,
    ProductCreate,
    ProductOut,
    ProductQuery,
    ProductUpdate,
)
from dhakacart.repos.product_repo import ProductRepo
from dhakacart.services.cache_service import PRODUCT_LIST_PREFIX, CacheService, product_key
from dhakacart.utils.settings import PRODUCT_DETAIL_TTL_SECONDS, PRODUCT_LIST_TTL_SECONDS
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)


def list_cache_key(query: ProductQuery) -> str:
    # kanoniczna postac zapytania, ta sama kolejnosc pol = ten sam klucz
    params = query.model_dump(mode="json", exclude_none=True)
    return PRODUCT_LIST_PREFIX + json.dumps(params, sort_keys=True, separators=(",", ":"))


class ProductService:
    """
    Katalog produktow.
    query: lista/szczegoly/kategorie przez cache
    commands (admin): create, update, delete + uniewaznienie cache
    """

    def __init__(self, db: Session, cache: CacheService | None = None):
        self.db = db
        self.repo = ProductRepo(db)
        self.cache = cache

    # =====================================================
    # QUERY
    # =====================================================
    def list_products(self, query: ProductQuery) -> Dict[str, Any]:
        key = list_cache_key(query)

        cached = self.cache.get_json(key) if self.cache else None
        if cached:
            return {"source": "cache", **cached}

        products, total = self.repo.list_products(query)
        response = {
            "products": [ProductOut.model_validate(p).model_dump(mode="json") for p in products],
            "pagination": {
                "page": query.page,
                "limit": query.limit,
                "total": total,
                "pages": math.ceil(total / query.limit),
            },
        }

        if self.cache:
            self.cache.set_json(key, PRODUCT_LIST_TTL_SECONDS, response)

        return {"source": "database", **response}

    def get_product(self, product_id: int) -> Dict[str, Any]:
        key = product_key(product_id)

        cached = self.cache.get_json(key) if self.cache else None
        if cached:
            return {"source": "cache", "product": cached}

        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product not found")

        data = ProductOut.model_validate(product).model_dump(mode="json")
        if self.cache:
            self.cache.set_json(key, PRODUCT_DETAIL_TTL_SECONDS, data)

        return {"source": "database", "product": data}

    def list_categories(self) -> List[Dict[str, Any]]:
        return [CategoryOut(**row).model_dump() for row in self.repo.list_categories()]

    # =====================================================
    # COMMANDS (admin)
    # =====================================================
    def create_product(self, payload: ProductCreate) -> ProductOut:
        try:
            product = self.repo.create_product(ProductModel(**payload.model_dump()))
            result = ProductOut.model_validate(product)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.exception("Create product failed")
            raise TransactionFailure("Failed to create product") from e

        logger.info(f"Product {result.id} created")
        self._invalidate(result.id)
        return result

    def update_product(self, product_id: int, payload: ProductUpdate) -> ProductOut:
        fields = payload.model_dump(exclude_unset=True, exclude_none=True)

        try:
            # blokada wiersza - stock moze zmieniac rownolegle transakcja zamowienia
            product = self.repo.get_product_for_update(product_id)
            if not product:
                raise NotFound("Product not found")

            self.repo.update_product(product, fields)
            result = ProductOut.model_validate(product)
            self.repo.commit()
        except NotFound:
            self.repo.rollback()
            raise
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.exception(f"Update of product {product_id} failed")
            raise TransactionFailure("Failed to update product") from e

        logger.info(f"Product {product_id} updated: {sorted(fields)}")
        self._invalidate(product_id)
        return result

    def delete_product(self, product_id: int) -> None:
        try:
            product = self.repo.get_product_for_update(product_id)
            if not product:
                raise NotFound("Product not found")

            self.repo.delete_product(product)
            self.repo.commit()
        except NotFound:
            self.repo.rollback()
            raise
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Product {product_id} is referenced by orders, not deleted")
            raise ValidationError("Product is referenced by existing orders") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.exception(f"Delete of product {product_id} failed")
            raise TransactionFailure("Failed to delete product") from e

        logger.info(f"Product {product_id} deleted")
        self._invalidate(product_id)

    def _invalidate(self, product_id: int) -> None:
        if self.cache:
            self.cache.invalidate_products([product_id])
