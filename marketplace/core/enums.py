"""
Shared enums and constants used across the application.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account roles, stored with the lowercase values the frontend expects"""
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"
    SELLER_PENDING = "seller_pending"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MessageType(str, Enum):
    TEXT = "text"
    CHECKOUT = "checkout"


class CheckoutStage(str, Enum):
    """Stages a single cart line moves through during checkout"""
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    SELLER_VALIDATED = "SELLER_VALIDATED"
    DUPLICATE_CHECKED = "DUPLICATE_CHECKED"
    COMMITTED = "COMMITTED"
    COMPENSATED = "COMPENSATED"
    FAILED = "FAILED"
