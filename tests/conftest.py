import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PAYMENT_DELAY_SCALE", "0")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from dhakacart.data.database import Base
from dhakacart.data.models import ProductModel, UserModel
from dhakacart.services.cache_service import CacheService
from dhakacart.services.order_service import OrderService
from dhakacart.services.rate_limiter import RateLimiter
from tests.fakes import FakeNotifier, FakeRedis, FixedGateway


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'dhakacart-test.db'}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(client=fake_redis)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def order_service(db, cache, notifier):
    return OrderService(db, cache=cache, notifier=notifier, shipping_cost=Decimal("100"))


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(name="Customer", role="customer", email=None):
        counter["n"] += 1
        user = UserModel(
            name=name,
            email=email or f"user{counter['n']}@dhakacart.test",
            role=role,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(name="Laptop", price="500.00", stock=5, category="laptops", description=None):
        product = ProductModel(
            name=name,
            price=Decimal(price),
            stock=stock,
            category=category,
            description=description,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(name="Rahim Uddin")


@pytest.fixture
def stock_of(session_factory):
    """Reads stock through a fresh session, i.e. only committed state."""

    def _read(product_id):
        session = session_factory()
        try:
            return session.get(ProductModel, product_id).stock
        finally:
            session.close()

    return _read


@pytest.fixture
def gateways():
    return {"bkash": FixedGateway(prefix="BKS"), "card": FixedGateway(prefix="CARD")}


@pytest.fixture
def app(session_factory, cache, notifier, gateways):
    from dhakacart.data.database import get_db
    from dhakacart.main import create_app

    app = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.state.cache = cache
    app.state.rate_limiter = RateLimiter(client=FakeRedis(), max_requests=1000, window_seconds=900)
    app.state.payment_gateways = gateways
    app.state.notifier = notifier
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
