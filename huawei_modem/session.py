"""Session state shared by the transport, authenticators and client."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

_LOGGER = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "SessionID"
_SESSION_COOKIE_RE = re.compile(rf"{SESSION_COOKIE_NAME}=([^;,\s]+)")


def normalize_cookie(value: str | None) -> str:
    """Return ``SessionID=<id>`` from a SesInfo value or Set-Cookie header."""
    if not value:
        return ""
    value = value.strip()
    if match := _SESSION_COOKIE_RE.search(value):
        return f"{SESSION_COOKIE_NAME}={match.group(1)}"
    if "=" in value:
        # Some other cookie, not a session identifier
        return ""
    return f"{SESSION_COOKIE_NAME}={value}"


def redact(value: str, keep: int = 8) -> str:
    """Shorten a secret for logging."""
    if len(value) <= keep:
        return value
    return value[:keep] + "..."


@dataclass
class SessionState:
    """Verification token, session cookie and token deadline.

    ``expiry`` is a :func:`time.monotonic` deadline, 0 when no token is held.
    """

    token: str = ""
    cookie: str = ""
    expiry: float = 0.0

    def commit(self, token: str, cookie: str, ttl: float) -> None:
        """Adopt a token and cookie fetched together."""
        self.token = token
        self.cookie = cookie
        self.expiry = time.monotonic() + ttl

    def update(
        self, *, token: str | None = None, cookie: str | None = None, ttl: float
    ) -> None:
        """Adopt whichever of token and cookie the server rotated."""
        if token:
            self.token = token
            self.expiry = time.monotonic() + ttl
        if cookie:
            self.cookie = cookie

    def adopt(self, other: SessionState) -> None:
        """Copy the values of another session."""
        self.token = other.token
        self.cookie = other.cookie
        self.expiry = other.expiry

    def copy(self) -> SessionState:
        """Return an independent copy."""
        return SessionState(self.token, self.cookie, self.expiry)

    def clear(self) -> None:
        """Forget token, cookie and deadline."""
        self.token = ""
        self.cookie = ""
        self.expiry = 0.0

    @property
    def is_empty(self) -> bool:
        """Return True if nothing is held."""
        return not self.token and not self.cookie and not self.expiry

    def needs_refresh(self, margin: float = 0) -> bool:
        """Return True if there is no token or it expires within margin."""
        return not self.token or time.monotonic() > self.expiry - margin


@dataclass
class SessionHealth:
    """Observed liveness of the session."""

    #: Monotonic time of the last successful request
    last_activity: float | None = None
    healthy: bool = True

    def mark_activity(self) -> None:
        """Record a successful request."""
        self.last_activity = time.monotonic()
        self.healthy = True

    def mark_unhealthy(self) -> None:
        """Record that the device expired the session."""
        if self.healthy:
            _LOGGER.debug("Session marked unhealthy")
        self.healthy = False
