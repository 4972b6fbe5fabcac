# marketplace/database.py

# type: ignore[misc]
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from marketplace.core.config import get_settings


def normalize_database_url(database_url: str) -> str:
    """Convert postgresql:// to postgresql+asyncpg:// for async support"""
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)
    if database_url.startswith('postgresql://'):
        database_url = database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return database_url


def build_engine(database_url: str, **kwargs):
    database_url = normalize_database_url(database_url)
    if not database_url.startswith('sqlite'):
        kwargs.setdefault('pool_size', 10)
        kwargs.setdefault('max_overflow', 20)
        kwargs.setdefault('pool_timeout', 30)
        kwargs.setdefault('pool_recycle', 1800)
    return create_async_engine(database_url, echo=False, future=True, **kwargs)


def build_session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


settings = get_settings()

engine = build_engine(settings.DATABASE_URL)

async_session = build_session_factory(engine)

Base = declarative_base()

