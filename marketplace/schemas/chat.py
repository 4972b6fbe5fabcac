"""
Schemas for chat threads, messages and their read markers.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import Field, field_validator

from marketplace.core.enums import MessageType
from marketplace.schemas.base import BaseSchema


class ChatMessageRead(BaseSchema):
    id: str
    thread_id: str
    sender_id: str
    receiver_id: str
    content: str
    timestamp: int
    type: MessageType
    price: Optional[str] = None
    product_id: Optional[str] = None
    read: bool = False
    read_at: Optional[datetime] = None


class ThreadSummaryRead(BaseSchema):
    thread_id: str
    users: List[str]
    last_message: Optional[str] = None
    last_timestamp: Optional[int] = None
    product_id: Optional[str] = None
    buyer_id: Optional[str] = None
    seller_id: Optional[str] = None
    buyer_name: Optional[str] = None
    seller_name: Optional[str] = None
    product_title: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[str] = None


class ThreadDigest(BaseSchema):
    """One row of the conversation list"""
    thread_id: str
    other_user_id: str
    last_message: Optional[ChatMessageRead] = None
    timestamp: int
    unread_count: int = 0
    is_empty: bool = False


class ThreadListResponse(BaseSchema):
    threads: List[ThreadDigest]
    users: Dict[str, str]


class ThreadRef(BaseSchema):
    thread_id: str
    other_user_id: str


class ThreadDetailResponse(BaseSchema):
    thread_id: str
    summary: Optional[ThreadSummaryRead] = None
    messages: List[ChatMessageRead]


class MarkReadRequest(BaseSchema):
    thread_id: str = Field(..., min_length=1)
    message_ids: List[str] = Field(..., min_length=1)


class MarkReadResponse(BaseSchema):
    success: bool = True
    updated: int


class UnreadCountResponse(BaseSchema):
    unread_count: int


class ClearCacheResponse(BaseSchema):
    success: bool = True
    cleared: int


class CreateThreadRequest(BaseSchema):
    other_user_id: str = Field(..., min_length=1)


class CreateThreadResponse(BaseSchema):
    thread_id: str
    created: bool


class SendMessageRequest(BaseSchema):
    content: str = Field(..., min_length=1, max_length=4000)

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Message cannot be empty')
        return v.strip()
