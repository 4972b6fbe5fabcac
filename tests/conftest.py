# tests/conftest.py
import os

# Settings are read at import time, so the test environment goes first
os.environ["SECRET_KEY"] = "test-secret-key-for-marketplace-suite"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_marketplace.db"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import uuid

import httpx
import pytest
from sqlalchemy.pool import NullPool

from marketplace import models  # noqa: F401
from marketplace.core.config import Settings, get_settings
from marketplace.core.enums import UserRole
from marketplace.core.security import sign_user_token
from marketplace.core.utils import new_object_id
from marketplace.database import Base, build_engine, build_session_factory
from marketplace.models.product import Product
from marketplace.models.user import SellerProfile, User
from marketplace.services.name_cache import NameCache

TEST_SECRET_KEY = "test-secret-key-for-marketplace-suite"


@pytest.fixture
def test_settings(tmp_path):
    """Provide test settings"""
    return Settings(
        SECRET_KEY=TEST_SECRET_KEY,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        SCHEDULER_ENABLED=False,
        ENVIRONMENT="test",
    )


@pytest.fixture
async def test_engine(test_settings):
    """A fresh SQLite database per test, with every table created."""
    engine = build_engine(test_settings.DATABASE_URL, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


class Seeder:
    """Writes users, seller profiles and products straight into the test database."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def add(self, obj):
        async with self.session_factory() as session:
            async with session.begin():
                session.add(obj)
        return obj

    async def user(self, name="Bob Buyer", role=UserRole.BUYER, **kwargs):
        kwargs.setdefault("email", f"{uuid.uuid4().hex[:10]}@campus.edu")
        return await self.add(User(id=new_object_id(), name=name, role=role, **kwargs))

    async def seller(self, name="Sam Account", student_name="Sam", business_name="Sam's Shop"):
        seller = await self.user(name=name, role=UserRole.SELLER)
        if student_name is not None or business_name is not None:
            await self.add(SellerProfile(
                id=new_object_id(),
                user_id=seller.id,
                student_name=student_name or "",
                business_name=business_name or "",
            ))
        return seller

    async def product(self, seller, title="Desk Lamp", price=10.0, stock=5):
        return await self.add(Product(
            id=new_object_id(),
            title=title,
            price=price,
            stock=stock,
            seller_id=seller.id,
        ))

    async def stock_of(self, product_id):
        async with self.session_factory() as session:
            product = await session.get(Product, product_id)
            return product.stock

    async def set_role(self, user_id, role):
        async with self.session_factory() as session:
            async with session.begin():
                user = await session.get(User, user_id)
                user.role = role


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def auth_headers():
    """Build the Authorization header the auth service would issue for a user"""
    def _headers(user):
        return {"Authorization": f"Bearer {sign_user_token(user.id, TEST_SECRET_KEY)}"}
    return _headers


@pytest.fixture
async def client(session_factory, test_settings):
    """HTTP client bound to the app, with the database and settings overridden"""
    from marketplace.dependencies import get_session_factory
    from marketplace.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.state.name_cache = NameCache(ttl_seconds=test_settings.NAME_CACHE_TTL_SECONDS)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
