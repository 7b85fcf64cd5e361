"""Shared fixtures: in-memory database, seeded catalog, per-role API clients."""

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from grocery.auth import create_token, hash_password
from grocery.db import Base, get_db
from grocery.main import app
from grocery.models import Category, DeliveryZone, Offer, Product, ProductUnit, User


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
_PASSWORD_HASH = None


def _password_hash():
    # argon2 is slow on purpose; hash once per session
    global _PASSWORD_HASH
    if _PASSWORD_HASH is None:
        _PASSWORD_HASH = hash_password("secret123")
    return _PASSWORD_HASH


@pytest.fixture()
def make_user(db):
    def _make(username=None, role="customer", **extra):
        username = username or f"user-{uuid4().hex[:8]}"
        user = User(
            uid=uuid4().hex,
            username=username,
            email=f"{username}@grocery.local",
            display_name=extra.pop("display_name", username.title()),
            phone=extra.pop("phone", "0790000000"),
            password_hash=_password_hash(),
            role=role,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture()
def customer(make_user):
    return make_user("alice", role="customer")


@pytest.fixture()
def other_customer(make_user):
    return make_user("bob", role="customer")


@pytest.fixture()
def cashier(make_user):
    return make_user("carol", role="cashier")


@pytest.fixture()
def admin(make_user):
    return make_user("dana", role="admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user)}"}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalog(db):
    """Two categories, three products (one inactive), two zones (one inactive), two offers."""
    veg = Category(name_ar="خضار", name_en="Vegetables", sort_order=1)
    fruit = Category(name_ar="فواكه", name_en="Fruits", sort_order=0)
    hidden = Category(name_ar="مخفي", name_en="Hidden", sort_order=-1, active=False)
    db.add_all([veg, fruit, hidden])
    db.flush()

    tomatoes = Product(name_ar="بندورة", name_en="Tomatoes", category_id=veg.id, image_url="/img/tomato.png")
    tomatoes.units = [
        ProductUnit(unit="kg", price=Decimal("0.75"), is_default=True),
        ProductUnit(unit="box", price=Decimal("6.00")),
    ]
    bananas = Product(name_ar="موز", name_en="Bananas", category_id=fruit.id)
    bananas.units = [ProductUnit(unit="kg", price=Decimal("1.10"), is_default=True)]
    retired = Product(name_ar="قديم", name_en="Retired", category_id=veg.id, active=False)
    retired.units = [ProductUnit(unit="kg", price=Decimal("9.99"), is_default=True)]

    downtown = DeliveryZone(name_ar="وسط البلد", name_en="Downtown", fee=Decimal("1.00"), sort_order=2)
    abdoun = DeliveryZone(name_ar="عبدون", name_en="Abdoun", fee=Decimal("2.00"), sort_order=1)
    closed = DeliveryZone(name_ar="مغلق", name_en="Closed", fee=Decimal("0.50"), active=False)

    db.add_all([
        tomatoes,
        bananas,
        retired,
        downtown,
        abdoun,
        closed,
        Offer(title_ar="ب", title_en="Second", priority=5),
        Offer(title_ar="أ", title_en="First", priority=1),
        Offer(title_ar="ج", title_en="Expired", priority=0, active=False),
    ])
    db.commit()

    return {
        "tomatoes": tomatoes,
        "bananas": bananas,
        "retired": retired,
        "downtown": downtown,
        "abdoun": abdoun,
        "closed": closed,
        "veg": veg,
        "fruit": fruit,
    }


def order_payload(catalog, items=None, **address):
    addr = {
        "zoneId": catalog["downtown"].id,
        "street": "Rainbow St",
        "building": "12",
        "details": "3rd floor",
    }
    addr.update(address)
    if items is None:
        items = [{"productId": catalog["tomatoes"].id, "unit": "kg", "qty": 2}]
    return {"items": items, "address": addr}
