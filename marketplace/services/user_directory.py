# marketplace/services/user_directory.py
import logging
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from marketplace.core.enums import UserRole
from marketplace.models.user import User, SellerProfile

logger = logging.getLogger(__name__)

DEFAULT_SELLER_NAME = "Seller"
DEFAULT_BUYER_NAME = "Buyer"


class UserDirectory:
    """Read access to users and seller profiles, plus display-name rules."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        async with self.session_factory() as session:
            return await session.get(User, user_id)

    async def get_seller_profile(self, user_id: str) -> Optional[SellerProfile]:
        async with self.session_factory() as session:
            return await session.scalar(
                select(SellerProfile)
                .where(SellerProfile.user_id == user_id)
                .order_by(SellerProfile.created_at.desc())
                .limit(1)
            )

    async def seller_display_name(self, seller: User) -> str:
        """Profile name if the seller filled one in, else the account name."""
        profile = await self.get_seller_profile(seller.id)
        if profile is not None and profile.display_name:
            return profile.display_name
        return seller.name or DEFAULT_SELLER_NAME

    @staticmethod
    def buyer_display_name(buyer: User) -> str:
        return buyer.name or DEFAULT_BUYER_NAME

    async def lookup_display_name(self, user_id: str) -> Optional[Tuple[str, UserRole]]:
        """
        Name and role for user_id, or None if there is no such user.

        Sellers are shown by their profile name; everyone else by the
        account name.
        """
        user = await self.get_user(user_id)
        if user is None:
            return None
        if user.role == UserRole.SELLER:
            return await self.seller_display_name(user), user.role
        return user.name or DEFAULT_BUYER_NAME, user.role
