# marketplace/models/checkout_attempt.py
from sqlalchemy import Column, Integer, String, DateTime, JSON

from marketplace.core.utils import utcnow
from marketplace.database import Base


class CheckoutAttempt(Base):
    """
    One logical checkout submission.

    Rows are short lived: anything older than CHECKOUT_ATTEMPT_TTL_SECONDS is
    treated as gone by every read and deleted by the purge job.
    """
    __tablename__ = "checkout_attempts"

    id = Column(Integer, primary_key=True)
    attempt_id = Column(String(64), unique=True, nullable=False, index=True)
    buyer_id = Column(String(24), nullable=False, index=True)

    # [{"productId": "...", "quantity": 2}, ...] exactly as submitted
    cart_items = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<CheckoutAttempt {self.attempt_id} buyer={self.buyer_id}>"
