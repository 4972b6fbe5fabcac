# marketplace/services/chat_store.py
"""
Persistence for conversations.

Two independent projections live here: the append-only message log
(``chat_messages``) and the per-thread summary (``chat_threads``). They are
written with separate calls and separate transactions; callers decide how
to react when one of them fails.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from marketplace.core.enums import MessageType
from marketplace.models.chat import ChatMessage, ChatThread

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = {
    "users",
    "last_message",
    "last_timestamp",
    "product_id",
    "buyer_id",
    "seller_id",
    "buyer_name",
    "seller_name",
    "product_title",
    "quantity",
    "price",
}


class ChatStore:

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # --- Message log ---

    async def append_message(
        self,
        thread_id: str,
        sender_id: str,
        receiver_id: str,
        content: str,
        timestamp: int,
        message_type: MessageType = MessageType.TEXT,
        price: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> ChatMessage:
        message = ChatMessage(
            id=uuid.uuid4().hex,
            thread_id=thread_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            timestamp=timestamp,
            type=message_type,
            price=price,
            product_id=product_id,
            read=False,
        )
        async with self.session_factory() as session:
            async with session.begin():
                session.add(message)

        logger.debug(f"Appended {message_type.value} message {message.id} to thread {thread_id}")
        return message

    async def messages_since(self, thread_id: str, since_ms: int) -> List[ChatMessage]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ChatMessage)
                .where(ChatMessage.thread_id == thread_id, ChatMessage.timestamp >= since_ms)
                .order_by(ChatMessage.timestamp)
            )
            return list(result.scalars().all())

    async def messages_for_thread(self, thread_id: str) -> List[ChatMessage]:
        return await self.messages_for_threads([thread_id])

    async def messages_for_threads(self, thread_ids: Iterable[str]) -> List[ChatMessage]:
        thread_ids = list(thread_ids)
        if not thread_ids:
            return []
        async with self.session_factory() as session:
            result = await session.execute(
                select(ChatMessage)
                .where(ChatMessage.thread_id.in_(thread_ids))
                .order_by(ChatMessage.timestamp)
            )
            return list(result.scalars().all())

    async def thread_ids_containing(self, fragment: str) -> List[str]:
        """
        Every thread id, from either projection, whose key contains fragment.

        This is a coarse substring match; callers still have to check that
        fragment is really one of the two halves.
        """
        async with self.session_factory() as session:
            from_messages = await session.execute(
                select(ChatMessage.thread_id)
                .where(ChatMessage.thread_id.contains(fragment))
                .distinct()
            )
            from_summaries = await session.execute(
                select(ChatThread.thread_id).where(ChatThread.thread_id.contains(fragment))
            )
            thread_ids = set(from_messages.scalars().all())
            thread_ids.update(from_summaries.scalars().all())
        return sorted(thread_ids)

    async def unread_counts_for(self, receiver_id: str) -> Dict[str, int]:
        """Unread messages addressed to receiver_id, grouped by thread id"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(ChatMessage.thread_id, func.count(ChatMessage.id))
                .where(
                    ChatMessage.receiver_id == receiver_id,
                    ChatMessage.sender_id != receiver_id,
                    ChatMessage.read.is_(False),
                )
                .group_by(ChatMessage.thread_id)
            )
            return {thread_id: count for thread_id, count in result.all()}

    async def mark_read(self, thread_id: str, message_ids: List[str], read_at: datetime) -> int:
        """Flag the given messages of one thread as read. Returns rows updated."""
        if not message_ids:
            return 0
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(ChatMessage)
                    .where(ChatMessage.thread_id == thread_id, ChatMessage.id.in_(message_ids))
                    .values(read=True, read_at=read_at)
                    .execution_options(synchronize_session=False)
                )
                updated = result.rowcount or 0
        return updated

    # --- Thread summaries ---

    async def get_summary(self, thread_id: str) -> Optional[ChatThread]:
        async with self.session_factory() as session:
            return await session.get(ChatThread, thread_id)

    async def upsert_summary(self, thread_id: str, fields: Dict[str, Any]) -> bool:
        """
        Merge fields into the thread's summary row, creating it if needed.

        Returns True when the row was created. Two writers racing to create
        the same row is expected (one cart can hold several products from
        the same seller), so a lost insert is retried once as an update.
        """
        unknown = set(fields) - SUMMARY_FIELDS
        if unknown:
            raise ValueError(f"Unknown thread summary fields: {sorted(unknown)}")

        try:
            return await self._merge_summary(thread_id, fields)
        except IntegrityError:
            logger.debug(f"Summary for {thread_id} was created concurrently, merging again")
            return await self._merge_summary(thread_id, fields)

    async def _merge_summary(self, thread_id: str, fields: Dict[str, Any]) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                summary = await session.get(ChatThread, thread_id)
                created = summary is None
                if created:
                    summary = ChatThread(thread_id=thread_id, users=[])
                    session.add(summary)
                for name, value in fields.items():
                    setattr(summary, name, value)
        return created
