# dhakacart/repos/inventory_repo.py
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dhakacart.data.models.product import ProductModel
from dhakacart.domain.exceptions import InsufficientStock, NotFound


@dataclass(frozen=True)
class StockRow:
    id: int
    name: str
    price: Decimal
    stock: int


class InventoryLedger:
    """
    Stan magazynowy produktow.

    Wszystkie metody dzialaja w transakcji wolajacego (nigdy nie commituja).
    Blokady wierszy (SELECT ... FOR UPDATE) trzymane sa do commit/rollback.
    """

    def __init__(self, db: Session):
        self.db = db

    def _locked_select(self):
        # populate_existing: obiekty z identity map nadpisane wartoscia odczytana pod blokada
        return (
            select(ProductModel)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _row(product: ProductModel) -> StockRow:
        return StockRow(
            id=product.id,
            name=product.name,
            price=Decimal(product.price),
            stock=product.stock,
        )

    def lock_and_read(self, product_id: int) -> StockRow | None:
        product = self.db.execute(
            self._locked_select().where(ProductModel.id == product_id)
        ).scalar_one_or_none()

        return self._row(product) if product else None

    def lock_many(self, product_ids: Iterable[int]) -> Dict[int, StockRow]:
        # zawsze ta sama kolejnosc blokad (rosnace id), zeby uniknac deadlockow
        ids = sorted(set(product_ids))
        if not ids:
            return {}

        products = self.db.execute(
            self._locked_select()
            .where(ProductModel.id.in_(ids))
            .order_by(ProductModel.id)
        ).scalars().all()

        return {p.id: self._row(p) for p in products}

    def adjust_stock(self, product_id: int, delta: int) -> None:
        """
        delta < 0 zuzywa stan, delta > 0 przywraca.
        Warunek stock >= -delta jest czescia UPDATE, wiec stan nigdy nie spadnie ponizej zera.
        """
        if delta == 0:
            return

        stmt = update(ProductModel).where(ProductModel.id == product_id)
        if delta < 0:
            stmt = stmt.where(ProductModel.stock >= -delta)

        result = self.db.execute(
            stmt.values(
                stock=ProductModel.stock + delta,
                updated_at=datetime.now(timezone.utc),
            ).execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            if delta < 0:
                raise InsufficientStock(f"Insufficient stock for product {product_id}")
            raise NotFound(f"Product {product_id} not found")
