"""Pytest fixtures for storefront tests."""

import os

# musi byc przed importem storefront (engine i celery czytaja env przy imporcie)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["SMTP_HOST"] = ""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storefront.data.models  # noqa: F401
from storefront.api import create_app
from storefront.api.deps import get_lock_service
from storefront.celery_worker import celery_app
from storefront.data.database import Base, get_db
from storefront.data.models import CouponModel, ProductModel, UserModel
from helpers import FakeLockService

celery_app.conf.task_always_eager = True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def file_session_factory(tmp_path):
    """SQLite w pliku: kazdy watek dostaje wlasne polaczenie, blokady sa prawdziwe."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'storefront.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_lock():
    return FakeLockService()


@pytest.fixture
def client(session_factory, fake_lock):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: fake_lock

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_product(db):
    counter = {"id": 0}

    def _make(price="100.00", sale_price=None, stock=10, is_active=True, name=None):
        counter["id"] += 1
        product = ProductModel(
            id=counter["id"],
            name=name or f"Product {counter['id']}",
            price=Decimal(price),
            sale_price=Decimal(sale_price) if sale_price is not None else None,
            stock=stock,
            images=[f"/img/{counter['id']}.jpg"],
            is_active=is_active,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(
        code="SAVE10",
        type="percentage",
        value="10",
        min_order_amount="0",
        max_discount=None,
        usage_limit=0,
        per_user_limit=1,
        used_count=0,
        is_active=True,
        starts_at=None,
        expires_at=None,
    ):
        now = datetime.now(timezone.utc)
        coupon = CouponModel(
            code=code,
            description=f"Kupon {code}",
            type=type,
            value=Decimal(value),
            min_order_amount=Decimal(min_order_amount),
            max_discount=Decimal(max_discount) if max_discount is not None else None,
            usage_limit=usage_limit,
            per_user_limit=per_user_limit,
            used_count=used_count,
            is_active=is_active,
            starts_at=starts_at or now - timedelta(days=1),
            expires_at=expires_at or now + timedelta(days=30),
        )
        db.add(coupon)
        db.commit()
        return coupon

    return _make


@pytest.fixture
def make_user(db):
    def _make(user_id=1, name="Jan", email="jan@example.com", role="user"):
        user = UserModel(id=user_id, name=name, email=email, role=role)
        db.add(user)
        db.commit()
        return user

    return _make

