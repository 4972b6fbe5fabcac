# marketplace/dependencies.py
"""
FastAPI dependencies: database access, services wired from settings, and
the authenticated user.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import async_sessionmaker

from marketplace.core.config import Settings, get_settings
from marketplace.core.enums import UserRole
from marketplace.core.exceptions import AuthenticationError, ForbiddenError
from marketplace.core.security import verify_user_token
from marketplace.database import async_session
from marketplace.models.user import User
from marketplace.services.attempt_ledger import AttemptLedger
from marketplace.services.chat_service import ChatService
from marketplace.services.chat_store import ChatStore
from marketplace.services.checkout_notifier import CheckoutNotifier
from marketplace.services.name_cache import NameCache
from marketplace.services.stock_ledger import StockLedger
from marketplace.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_factory() -> async_sessionmaker:
    """Session factory for the configured database; overridden in tests."""
    return async_session


def get_user_directory(session_factory: async_sessionmaker = Depends(get_session_factory)) -> UserDirectory:
    return UserDirectory(session_factory)


def get_chat_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> ChatStore:
    return ChatStore(session_factory)


def get_name_cache(request: Request) -> NameCache:
    return request.app.state.name_cache


def get_checkout_notifier(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> CheckoutNotifier:
    return CheckoutNotifier(
        stock=StockLedger(session_factory),
        attempts=AttemptLedger(session_factory, ttl_seconds=settings.CHECKOUT_ATTEMPT_TTL_SECONDS),
        chats=ChatStore(session_factory),
        users=UserDirectory(session_factory),
        rate_limit=settings.CHECKOUT_RATE_LIMIT,
        rate_window_seconds=settings.CHECKOUT_RATE_WINDOW_SECONDS,
        duplicate_window_seconds=settings.DUPLICATE_MESSAGE_WINDOW_SECONDS,
    )


def get_chat_service(
    store: ChatStore = Depends(get_chat_store),
    directory: UserDirectory = Depends(get_user_directory),
    name_cache: NameCache = Depends(get_name_cache),
) -> ChatService:
    return ChatService(store, directory, name_cache)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
    directory: UserDirectory = Depends(get_user_directory),
) -> User:
    """Resolve the bearer token to an existing user, or fail with 401."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    user_id = verify_user_token(credentials.credentials, settings.SECRET_KEY)
    if user_id is None:
        raise AuthenticationError("Invalid token")

    user = await directory.get_user(user_id)
    if user is None:
        logger.warning(f"Valid token for unknown user {user_id}")
        raise AuthenticationError("Invalid token")
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Admin access required")
    return current_user
