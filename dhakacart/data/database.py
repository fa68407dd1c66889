# dhakacart/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from dhakacart.utils.settings import DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    pool_size=20,
    pool_pre_ping=True,
    pool_recycle=30 * 60,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    # rejestracja wszystkich modeli w Base.metadata przed create_all
    import dhakacart.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
