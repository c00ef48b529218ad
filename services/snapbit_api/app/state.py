"""Anti-forgery OAuth state bound to the browser through a cookie.

No server-side copy of the state exists: the cookie set by :func:`bind_state`
is the only record, and :func:`consume_state` expires it so a callback can be
accepted at most once.
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from .config import Settings


@dataclass(frozen=True)
class StateCookie:
    """Attributes of the state cookie.

    The provider redirects back from another origin, so the cookie must be
    ``SameSite=None`` (which browsers only honour together with ``Secure``).
    """

    name: str = "oauth_state"
    max_age: int = 600
    secure: bool = True
    path: str = "/"

    @classmethod
    def from_settings(cls, settings: Settings) -> "StateCookie":
        return cls(
            name=settings.state_cookie_name,
            max_age=settings.state_cookie_max_age,
            secure=settings.state_cookie_secure,
        )


def generate_state(nbytes: int = 32) -> str:
    if nbytes < 16:
        raise ValueError("OAuth state needs at least 16 bytes of entropy")
    return secrets.token_urlsafe(nbytes)


def bind_state(response: Response, state: str, cookie: StateCookie) -> None:
    response.set_cookie(
        cookie.name,
        state,
        max_age=cookie.max_age,
        path=cookie.path,
        secure=cookie.secure,
        httponly=True,
        samesite="none",
    )


def read_state(request: Request, cookie: StateCookie) -> Optional[str]:
    return request.cookies.get(cookie.name) or None


def consume_state(response: Response, cookie: StateCookie) -> None:
    response.delete_cookie(
        cookie.name,
        path=cookie.path,
        secure=cookie.secure,
        httponly=True,
        samesite="none",
    )


def validate_state(returned: Optional[str], stored: Optional[str]) -> bool:
    """Compare the callback ``state`` with the cookie copy.

    A missing value on either side is a mismatch.
    """

    if not returned or not stored:
        return False
    return hmac.compare_digest(returned.encode("utf-8"), stored.encode("utf-8"))


__all__ = [
    "StateCookie",
    "bind_state",
    "consume_state",
    "generate_state",
    "read_state",
    "validate_state",
]
