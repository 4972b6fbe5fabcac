"""
Bearer token verification for marketplace users.

The auth service issues HS256 JWTs whose ``id`` claim is the user id, signed
with SECRET_KEY and valid for 30 days.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=30)


def sign_user_token(user_id: str, secret_key: str, expires_in: timedelta = TOKEN_LIFETIME) -> str:
    """Build the token the auth service hands to a logged in user"""
    payload = {
        "id": user_id,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, secret_key, algorithm=TOKEN_ALGORITHM)


def verify_user_token(token: str, secret_key: str) -> Optional[str]:
    """
    Return the user id carried by token, or None if the token is
    malformed, expired or was not signed with secret_key.
    """
    if not token:
        return None

    try:
        payload = jwt.decode(token, secret_key, algorithms=[TOKEN_ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        return None

    user_id = payload.get("id")
    if not isinstance(user_id, str) or not user_id:
        return None
    return user_id
