"""
Utility functions for the application.
"""
import re
import secrets

from datetime import datetime, timezone
from typing import List, Optional, Tuple

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")
THREAD_SEPARATOR = "_"


def new_object_id() -> str:
    """Generate a 24 character hex identifier, the format the frontend already stores."""
    return secrets.token_hex(12)


def is_valid_object_id(value) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def thread_id_for(user_a: str, user_b: str) -> str:
    """
    Build the conversation key for two users.

    The ids are sorted first so both participants compute the same key
    regardless of who opened the conversation.
    """
    return THREAD_SEPARATOR.join(sorted([str(user_a), str(user_b)]))


def thread_participants(thread_id: str) -> Optional[Tuple[str, str]]:
    """Split a thread id into its two user ids, or None if it is malformed."""
    if not thread_id:
        return None
    parts: List[str] = thread_id.split(THREAD_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


def is_thread_participant(thread_id: str, user_id: str) -> bool:
    """
    True when user_id is exactly one of the two halves of thread_id.

    A plain substring test would also accept ids that merely overlap
    the key, so the halves are compared instead.
    """
    if not user_id or user_id not in (thread_id or ""):
        return False
    participants = thread_participants(thread_id)
    return participants is not None and user_id in participants


def other_participant(thread_id: str, user_id: str) -> Optional[str]:
    participants = thread_participants(thread_id)
    if participants is None or user_id not in participants:
        return None
    first, second = participants
    return second if first == user_id else first


def format_price(amount: float) -> str:
    return f"{amount:.2f}"
