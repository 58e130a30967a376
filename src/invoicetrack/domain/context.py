"""Authenticated request context."""

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Callable, Optional

from invoicetrack.domain.errors import UnauthorizedError

# Returns the current time as naive UTC, the form stored in the database
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, resolved once and passed into every operation."""

    user_id: str
    email: Optional[str] = None


def require_auth(ctx: Optional[AuthContext]) -> AuthContext:
    """Return the context or raise UnauthorizedError when no user is signed in."""
    if ctx is None or not ctx.user_id:
        raise UnauthorizedError("Unauthorized. Please sign in.")
    return ctx
