# marketplace/models/chat.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, BigInteger, Enum, JSON, Text

from marketplace.core.enums import MessageType
from marketplace.core.utils import utcnow
from marketplace.database import Base


class ChatMessage(Base):
    """
    A single message in a buyer/seller conversation.

    The log is append-only: content is never rewritten, only the read
    markers change. ``timestamp`` is epoch milliseconds.
    """
    __tablename__ = "chat_messages"

    id = Column(String(32), primary_key=True)
    thread_id = Column(String(64), nullable=False, index=True)
    sender_id = Column(String(24), nullable=False, index=True)
    receiver_id = Column(String(24), nullable=False, index=True)
    content = Column(Text, nullable=False)
    timestamp = Column(BigInteger, nullable=False, index=True)
    type = Column(
        Enum(MessageType, name="messagetype", native_enum=False, length=20,
             values_callable=lambda e: [m.value for m in e]),
        default=MessageType.TEXT,
        nullable=False,
    )
    price = Column(String(32), nullable=True)
    product_id = Column(String(24), nullable=True, index=True)

    read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<ChatMessage {self.id} thread={self.thread_id} type={self.type}>"


class ChatThread(Base):
    """
    Denormalised summary of a conversation's latest activity.

    One row per thread, merged on every checkout or message; last write wins
    per field.
    """
    __tablename__ = "chat_threads"

    thread_id = Column(String(64), primary_key=True)
    users = Column(JSON, nullable=False, default=list)
    last_message = Column(Text, nullable=True)
    last_timestamp = Column(BigInteger, nullable=True)

    product_id = Column(String(24), nullable=True)
    buyer_id = Column(String(24), nullable=True)
    seller_id = Column(String(24), nullable=True)
    buyer_name = Column(String, nullable=True)
    seller_name = Column(String, nullable=True)
    product_title = Column(String, nullable=True)
    quantity = Column(Integer, nullable=True)
    price = Column(String(32), nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<ChatThread {self.thread_id}>"
