from .user import User, SellerProfile
from .product import Product
from .checkout_attempt import CheckoutAttempt
from .chat import ChatMessage, ChatThread

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'User',
    'SellerProfile',
    'Product',
    'CheckoutAttempt',
    'ChatMessage',
    'ChatThread',
]
