# dhakacart/data/seed.py
from decimal import Decimal

from dhakacart.data.database import SessionLocal, init_db
from dhakacart.data.models import ProductModel, UserModel
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    {"name": "ThinkPad X1 Carbon", "category": "laptops", "price": Decimal("185000.00"), "stock": 12},
    {"name": "MacBook Air M2", "category": "laptops", "price": Decimal("145000.00"), "stock": 8},
    {"name": "Galaxy S23", "category": "smartphones", "price": Decimal("98000.00"), "stock": 25},
    {"name": "Pixel 8", "category": "smartphones", "price": Decimal("82000.00"), "stock": 5},
    {"name": "iPad 10th Gen", "category": "tablets", "price": Decimal("62000.00"), "stock": 15},
    {"name": "USB-C Hub", "category": "accessories", "price": Decimal("2500.00"), "stock": 60},
]

USERS = [
    {"name": "Admin", "email": "admin@dhakacart.local", "role": "admin"},
    {"name": "Demo Customer", "email": "customer@dhakacart.local", "role": "customer"},
]


def seed(db=None):
    own_session = db is None
    db = db or SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return False

        db.add_all([UserModel(**u) for u in USERS])
        db.add_all([ProductModel(**p) for p in PRODUCTS])
        db.commit()

        logger.info(f"Seeded {len(USERS)} users and {len(PRODUCTS)} products")
        return True
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    init_db()
    seed()
