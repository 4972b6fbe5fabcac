"""
Core module exports.
"""
from .enums import (
    UserRole,
    VerificationStatus,
    MessageType,
    CheckoutStage
)

from .exceptions import (
    BaseServiceError,
    InvalidInputError,
    NotFoundError,
    DuplicateRequestError,
    RateLimitedError,
    ForbiddenError,
    AuthenticationError,
    ConflictError,
    InsufficientStockError,
    InvalidSellerError,
    UpstreamWriteError
)

from .utils import (
    thread_id_for,
    thread_participants,
    is_thread_participant,
    is_valid_object_id
)
