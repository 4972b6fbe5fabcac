from typing import Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    status_code = 500
    code = "service_error"

    def __init__(self, message: str, product_title: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.product_title = product_title


class InvalidInputError(BaseServiceError):
    """Raised when a request or one of its line items is malformed."""
    status_code = 400
    code = "invalid_input"


class NotFoundError(BaseServiceError):
    """Raised when a buyer, product, user or thread does not exist."""
    status_code = 404
    code = "not_found"


class DuplicateRequestError(BaseServiceError):
    """Raised when an attempt id is reused or a checkout message was just sent."""
    status_code = 429
    code = "duplicate_request"


class RateLimitedError(BaseServiceError):
    """Raised when a buyer exceeds the checkout attempt budget."""
    status_code = 429
    code = "rate_limited"


class ForbiddenError(BaseServiceError):
    """Raised when a user touches a thread they are not part of."""
    status_code = 403
    code = "forbidden"


class AuthenticationError(BaseServiceError):
    """Raised when a bearer token is missing, malformed or forged."""
    status_code = 401
    code = "not_authenticated"


class ConflictError(BaseServiceError):
    """Raised when the current state of a record prevents the operation."""
    status_code = 409
    code = "conflict"


class InsufficientStockError(ConflictError):
    """Raised when a reservation asks for more than the product holds."""
    code = "insufficient_stock"


class InvalidSellerError(ConflictError):
    """Raised when a product's owner no longer holds the seller role."""
    code = "invalid_seller"


class UpstreamWriteError(BaseServiceError):
    """Raised when the chat store rejects a write after stock was reserved."""
    status_code = 502
    code = "upstream_write_failure"
