# marketplace/services/chat_service.py
"""
Read and write paths for buyer/seller conversations.

Every thread id is the two participants' ids joined by "_", so access is
decided from the id alone: a user may touch a thread only when they are
exactly one of its two halves.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from marketplace.core.enums import MessageType
from marketplace.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from marketplace.core.utils import is_thread_participant, other_participant, thread_id_for, utcnow
from marketplace.models.chat import ChatMessage
from marketplace.schemas.chat import (
    ChatMessageRead,
    CreateThreadResponse,
    ThreadDetailResponse,
    ThreadDigest,
    ThreadListResponse,
    ThreadRef,
    ThreadSummaryRead,
)
from marketplace.services.chat_store import ChatStore
from marketplace.services.name_cache import NameCache
from marketplace.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class ChatService:

    def __init__(
        self,
        store: ChatStore,
        directory: UserDirectory,
        name_cache: NameCache,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.directory = directory
        self.name_cache = name_cache
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _require_participant(thread_id: str, user_id: str) -> None:
        if not is_thread_participant(thread_id, user_id):
            logger.warning(f"User {user_id} denied access to thread {thread_id}")
            raise ForbiddenError("Access denied")

    async def _threads_for(self, user_id: str) -> List[str]:
        candidates = await self.store.thread_ids_containing(user_id)
        return [tid for tid in candidates if is_thread_participant(tid, user_id)]

    async def list_threads_for_user(self, user_id: str) -> ThreadListResponse:
        """
        Conversation list for user_id, most recent first.

        Each entry carries the latest message and how many messages addressed
        to the user are still unread. Threads without messages (opened but
        never written to) are kept, flagged ``is_empty`` and stamped with the
        current time, so they sort to the top.
        """
        thread_ids = await self._threads_for(user_id)
        messages = await self.store.messages_for_threads(thread_ids)

        by_thread: Dict[str, List[ChatMessage]] = defaultdict(list)
        for message in messages:
            by_thread[message.thread_id].append(message)

        now = self._now_ms()
        digests = []
        for thread_id in thread_ids:
            thread_messages = by_thread.get(thread_id, [])
            other_id = other_participant(thread_id, user_id)

            if not thread_messages:
                digests.append(ThreadDigest(
                    thread_id=thread_id,
                    other_user_id=other_id,
                    timestamp=now,
                    is_empty=True,
                ))
                continue

            last = max(thread_messages, key=lambda m: m.timestamp)
            unread = sum(
                1 for m in thread_messages
                if m.receiver_id == user_id and m.sender_id != user_id and not m.read
            )
            digests.append(ThreadDigest(
                thread_id=thread_id,
                other_user_id=other_id,
                last_message=ChatMessageRead.from_orm_model(last),
                timestamp=last.timestamp,
                unread_count=unread,
            ))

        digests.sort(key=lambda d: d.timestamp, reverse=True)
        users = await self.name_cache.resolve_many(
            (d.other_user_id for d in digests), self.directory
        )
        logger.debug(f"Listed {len(digests)} threads for user {user_id}")
        return ThreadListResponse(threads=digests, users=users)

    async def list_thread_refs(self, user_id: str) -> List[ThreadRef]:
        thread_ids = await self._threads_for(user_id)
        return [
            ThreadRef(thread_id=tid, other_user_id=other_participant(tid, user_id))
            for tid in thread_ids
        ]

    async def get_thread_messages(self, thread_id: str, requester_id: str) -> List[ChatMessageRead]:
        """Messages of a thread the requester sent or received, oldest first."""
        self._require_participant(thread_id, requester_id)
        messages = await self.store.messages_for_thread(thread_id)
        return [
            ChatMessageRead.from_orm_model(m)
            for m in messages
            if requester_id in (m.sender_id, m.receiver_id)
        ]

    async def get_thread_detail(self, thread_id: str, requester_id: str) -> ThreadDetailResponse:
        messages = await self.get_thread_messages(thread_id, requester_id)
        summary = await self.store.get_summary(thread_id)
        return ThreadDetailResponse(
            thread_id=thread_id,
            summary=ThreadSummaryRead.from_orm_model(summary) if summary else None,
            messages=messages,
        )

    async def get_thread_summary(self, thread_id: str, requester_id: str) -> ThreadSummaryRead:
        self._require_participant(thread_id, requester_id)
        summary = await self.store.get_summary(thread_id)
        if summary is None:
            raise NotFoundError("Thread not found")
        if requester_id not in (summary.users or []):
            raise ForbiddenError("Access denied")
        return ThreadSummaryRead.from_orm_model(summary)

    async def mark_read(self, thread_id: str, message_ids: List[str], requester_id: str) -> int:
        self._require_participant(thread_id, requester_id)
        updated = await self.store.mark_read(thread_id, message_ids, utcnow())
        logger.debug(f"Marked {updated}/{len(message_ids)} messages read in {thread_id}")
        return updated

    async def unread_count(self, user_id: str) -> int:
        counts = await self.store.unread_counts_for(user_id)
        return sum(
            count for thread_id, count in counts.items()
            if is_thread_participant(thread_id, user_id)
        )

    def clear_name_cache(self) -> int:
        return self.name_cache.clear()

    async def open_thread(self, requester_id: str, other_user_id: str) -> CreateThreadResponse:
        """Make sure a summary row exists for the pair; returns whether it was new."""
        if requester_id == other_user_id:
            raise InvalidInputError("Cannot start a chat with yourself")

        other = await self.directory.get_user(other_user_id)
        if other is None:
            raise NotFoundError("User not found")

        thread_id = thread_id_for(requester_id, other_user_id)
        created = await self.store.upsert_summary(
            thread_id, {"users": sorted([requester_id, other_user_id])}
        )
        if created:
            logger.info(f"Opened thread {thread_id}")
        return CreateThreadResponse(thread_id=thread_id, created=created)

    async def send_message(self, thread_id: str, sender_id: str, content: str) -> ChatMessageRead:
        self._require_participant(thread_id, sender_id)
        receiver_id = other_participant(thread_id, sender_id)
        sent_at = self._now_ms()

        message = await self.store.append_message(
            thread_id=thread_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            timestamp=sent_at,
            message_type=MessageType.TEXT,
        )

        try:
            await self.store.upsert_summary(thread_id, {
                "users": sorted([sender_id, receiver_id]),
                "last_message": content,
                "last_timestamp": sent_at,
            })
        except Exception as e:
            logger.warning(f"Thread summary update failed for {thread_id}: {e}")

        return ChatMessageRead.from_orm_model(message)
