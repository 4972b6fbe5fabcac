# marketplace/services/attempt_ledger.py
import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from marketplace.core.exceptions import DuplicateRequestError
from marketplace.core.utils import utcnow
from marketplace.models.checkout_attempt import CheckoutAttempt

logger = logging.getLogger(__name__)


class AttemptLedger:
    """
    Short-lived record of checkout submissions.

    Rows older than ttl_seconds count as expired: lookups and counts skip
    them even before the purge job has deleted them.
    """

    def __init__(self, session_factory: async_sessionmaker, ttl_seconds: int = 300):
        self.session_factory = session_factory
        self.ttl_seconds = ttl_seconds

    def _expiry_cutoff(self):
        return utcnow() - timedelta(seconds=self.ttl_seconds)

    async def exists(self, attempt_id: str) -> bool:
        async with self.session_factory() as session:
            found = await session.scalar(
                select(CheckoutAttempt.id).where(
                    CheckoutAttempt.attempt_id == attempt_id,
                    CheckoutAttempt.created_at > self._expiry_cutoff(),
                )
            )
        return found is not None

    async def count_recent(self, buyer_id: str, window_seconds: int) -> int:
        since = utcnow() - timedelta(seconds=window_seconds)
        async with self.session_factory() as session:
            count = await session.scalar(
                select(func.count(CheckoutAttempt.id)).where(
                    CheckoutAttempt.buyer_id == buyer_id,
                    CheckoutAttempt.created_at > since,
                )
            )
        return count or 0

    async def record(
        self,
        buyer_id: str,
        cart_items: List[Dict[str, Any]],
        attempt_id: Optional[str] = None,
    ) -> str:
        """
        Persist a new attempt and return its id, generating one if needed.

        Raises DuplicateRequestError if a live attempt with the same id was
        written concurrently.
        """
        attempt_id = attempt_id or secrets.token_hex(16)

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    # An expired row may still be waiting for the purge job
                    await session.execute(
                        delete(CheckoutAttempt).where(
                            CheckoutAttempt.attempt_id == attempt_id,
                            CheckoutAttempt.created_at <= self._expiry_cutoff(),
                        )
                    )
                    session.add(CheckoutAttempt(
                        attempt_id=attempt_id,
                        buyer_id=buyer_id,
                        cart_items=cart_items,
                        created_at=utcnow(),
                    ))
        except IntegrityError:
            logger.warning(f"Attempt {attempt_id} was recorded concurrently for buyer {buyer_id}")
            raise DuplicateRequestError("Duplicate request detected")

        logger.debug(f"Recorded checkout attempt {attempt_id} for buyer {buyer_id}")
        return attempt_id

    async def purge_expired(self) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(CheckoutAttempt).where(
                        CheckoutAttempt.created_at <= self._expiry_cutoff()
                    )
                )
                deleted = result.rowcount or 0

        if deleted:
            logger.info(f"Purged {deleted} expired checkout attempts")
        return deleted
