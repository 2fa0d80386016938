"""
    Access gate for Shelfmark.

    Every request passes through ``evaluate`` before any route runs. The
    decision depends only on the path and the session cookie, so the gate
    holds no state of its own. Routes are either API-shaped (``/api/...``,
    answered with 401/403 JSON) or page-shaped (answered with redirects).
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from shelfmark import configs
from shelfmark.core import session as codec
from shelfmark.core.exceptions import AuthError, InvalidSession
from shelfmark.core.models import Role
from shelfmark.core.session import UserSession

logger = logging.getLogger(__name__)

LOGIN_PAGE = '/login'
PUBLIC_ROUTES = frozenset({LOGIN_PAGE, '/api/auth/login', '/api/auth/logout'})
EXEMPT_PREFIXES = ('/static/', '/favicon.ico')
PROTECTED_AREAS = (
    (('/admin', '/api/admin'), Role.ADMIN),
    (('/librarian', '/api/librarian'), Role.LIBRARIAN),
)


class Outcome(enum.Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"
    REJECT = "reject"


@dataclass(frozen=True)
class GateDecision:
    outcome: Outcome
    status_code: int = status.HTTP_200_OK
    location: Optional[str] = None
    session: Optional[UserSession] = None
    clear_cookie: bool = False
    kind: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def allow(cls, session=None):
        return cls(Outcome.ALLOW, session=session)

    @classmethod
    def redirect(cls, location, clear_cookie=False):
        return cls(Outcome.REDIRECT, status.HTTP_307_TEMPORARY_REDIRECT,
                   location=location, clear_cookie=clear_cookie)

    @classmethod
    def reject(cls, status_code, kind, message, clear_cookie=False):
        return cls(Outcome.REJECT, status_code, kind=kind, message=message,
                   clear_cookie=clear_cookie)


def is_api(path: str) -> bool:
    return path == '/api' or path.startswith('/api/')


def _within(path: str, prefixes) -> bool:
    return any(path == p or path.startswith(p + '/') for p in prefixes)


def evaluate(path: str, token: Optional[str]) -> GateDecision:
    """Decides what happens to a request for `path` carrying `token`."""
    if path.startswith(EXEMPT_PREFIXES):
        return GateDecision.allow()

    if path in PUBLIC_ROUTES:
        # Signed-in staff don't need the login page
        if path == LOGIN_PAGE and token:
            try:
                return GateDecision.redirect(codec.decode(token).home)
            except InvalidSession:
                pass
        return GateDecision.allow()

    api = is_api(path)
    if not token:
        if api:
            return GateDecision.reject(
                status.HTTP_401_UNAUTHORIZED, AuthError.kind,
                "Unauthorized: No active session")
        return GateDecision.redirect(LOGIN_PAGE)

    try:
        user = codec.decode(token)
    except InvalidSession as e:
        logger.info(f"Rejecting stale session on {path}: {e.detail}")
        if api:
            return GateDecision.reject(
                status.HTTP_401_UNAUTHORIZED, InvalidSession.kind,
                "Invalid Session", clear_cookie=True)
        return GateDecision.redirect(LOGIN_PAGE, clear_cookie=True)

    if path == '/':
        return GateDecision.redirect(user.home)

    for prefixes, role in PROTECTED_AREAS:
        if _within(path, prefixes) and user.role != role:
            logger.info(f"{user.role.value} {user.username!r} denied {path}")
            if api:
                return GateDecision.reject(
                    status.HTTP_403_FORBIDDEN, "Forbidden",
                    f"Forbidden: {role.value} access required")
            # Valid session, wrong area: send them to their own
            return GateDecision.redirect(user.home)

    return GateDecision.allow(session=user)


def respond(decision: GateDecision):
    """Builds the short-circuit response for a non-ALLOW decision."""
    if decision.outcome is Outcome.REDIRECT:
        response = RedirectResponse(url=decision.location, status_code=decision.status_code)
    else:
        response = JSONResponse(
            status_code=decision.status_code,
            content={"kind": decision.kind, "error": decision.message}
        )
    if decision.clear_cookie:
        codec.clear_session_cookie(response)
    return response


class SessionGate(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        token = request.cookies.get(configs.SESSION_COOKIE)
        decision = evaluate(request.url.path, token)
        if decision.outcome is not Outcome.ALLOW:
            return respond(decision)
        request.state.user_session = decision.session
        return await call_next(request)


def current_session(request: Request) -> UserSession:
    """Dependency handing the gate's session to a route."""
    user = getattr(request.state, "user_session", None)
    if user is None:
        raise AuthError("Unauthorized: No active session")
    return user
