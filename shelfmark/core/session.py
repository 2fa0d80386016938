"""
    Session codec: turns a staff identity into the opaque value carried
    in the session cookie, and back.
"""

import logging
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature
from pydantic import BaseModel, ValidationError as ShapeError
from shelfmark import configs
from shelfmark.core.models import Role
from shelfmark.core.exceptions import InvalidSession

logger = logging.getLogger(__name__)

SERIALIZER = None  # Will be initialized lazily


class UserSession(BaseModel):
    user_id: int
    role: Role
    username: str

    @property
    def home(self) -> str:
        return self.role.home


def _get_serializer():
    """Get or initialize the SERIALIZER lazily."""
    global SERIALIZER
    if SERIALIZER is None:
        SERIALIZER = URLSafeTimedSerializer(configs.SEED, salt="user-session")
    return SERIALIZER


def encode(session: UserSession) -> str:
    """Returns a signed, timestamped token for the session."""
    return _get_serializer().dumps(session.model_dump(mode="json"))


def decode(token: Optional[str]) -> UserSession:
    """Verifies the token and rebuilds the session it carries.

    Raises InvalidSession when the signature is bad or expired, or when the
    payload is not a session (e.g. it has no ``role``).
    """
    if not token:
        raise InvalidSession("No session token")
    try:
        data = _get_serializer().loads(token, max_age=configs.SESSION_TTL)
    except BadSignature:
        raise InvalidSession("Session token failed verification")
    if not isinstance(data, dict) or not data.get("role"):
        raise InvalidSession("Invalid session: No role found")
    try:
        return UserSession.model_validate(data)
    except ShapeError as e:
        raise InvalidSession(f"Invalid session: {e.error_count()} malformed field(s)")


def set_session_cookie(response, session: UserSession):
    response.set_cookie(
        key=configs.SESSION_COOKIE,
        value=encode(session),
        max_age=configs.SESSION_TTL,
        httponly=True,
        secure=configs.COOKIE_SECURE,
        samesite="Lax",
        path="/"
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(
        key=configs.SESSION_COOKIE,
        path="/",
        secure=configs.COOKIE_SECURE,
        samesite="Lax"
    )
    return response
