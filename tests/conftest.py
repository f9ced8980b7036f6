import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_ENABLED"] = "false"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from snooker_api.database import get_db  # noqa: E402
from snooker_api.db.base_class import Base  # noqa: E402
from snooker_api.db.models import Product, SnookerHouse, User  # noqa: E402
from snooker_api.main import app  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner(db) -> User:
    user = User(
        first_name="Sita",
        last_name="Shrestha",
        email="sita@example.com",
        hashed_password="not-a-real-hash",
        is_email_verified=True,
        failed_attempts=0,
        account_locked=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def house(db, owner) -> SnookerHouse:
    house = SnookerHouse(owner_id=owner.id, name="Break Point", address="Lakeside, Pokhara")
    db.add(house)
    db.commit()
    db.refresh(house)
    return house


@pytest.fixture
def cola(db, owner, house) -> Product:
    product = Product(
        snooker_house_id=house.id,
        owner_id=owner.id,
        name="Cola",
        description="",
        cost_price=Decimal("50.00"),
        selling_price=Decimal("80.00"),
        current_stock=10,
        min_stock_level=5,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product
