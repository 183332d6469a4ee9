"""
Server-held sessions.

The cookie only carries a signed random token; the identity it stands for
lives in a SessionStore (in-process for development, Redis in production).
"""

from __future__ import annotations

import json
import logging
import secrets
import threading
import time
from dataclasses import asdict, dataclass
from typing import Optional, Protocol

import redis
from itsdangerous import BadSignature, URLSafeTimedSerializer
from redis import exceptions as redis_exceptions

from invoicedesk.errors import DependencyError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def as_dict(self) -> dict:
        return asdict(self)


class SessionStore(Protocol):
    """Minimal session interface: token -> Identity with a time-to-live."""

    def get(self, token: str) -> Optional[Identity]:
        ...

    def set(self, token: str, identity: Identity, ttl_seconds: int) -> None:
        ...

    def destroy(self, token: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local session table for development and tests."""

    def __init__(self):
        self._sessions: dict[str, tuple[Identity, float]] = {}
        self._lock = threading.Lock()

    def get(self, token: str) -> Optional[Identity]:
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return None
            identity, expires_at = entry
            if time.time() >= expires_at:
                del self._sessions[token]
                return None
            return identity

    def set(self, token: str, identity: Identity, ttl_seconds: int) -> None:
        with self._lock:
            self._sessions[token] = (identity, time.time() + ttl_seconds)

    def destroy(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def reset(self) -> None:
        with self._lock:
            self._sessions.clear()


@dataclass
class RedisSessionStore:
    """Redis-backed sessions stored as JSON under a key prefix with SETEX."""

    url: str
    prefix: str = "invoicedesk:session:"
    timeout_seconds: float = 10.0

    def __post_init__(self):
        self.client = redis.Redis.from_url(
            self.url,
            socket_timeout=self.timeout_seconds,
            socket_connect_timeout=self.timeout_seconds,
        )

    def _key(self, token: str) -> str:
        return f"{self.prefix}{token}"

    def get(self, token: str) -> Optional[Identity]:
        try:
            raw = self.client.get(self._key(token))
        except redis_exceptions.RedisError as exc:
            logger.exception("Session read failed")
            raise DependencyError("Server error", operation="session read") from exc
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return Identity(email=data["email"], role=data.get("role") or "user")
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding malformed session payload for %s", self._key(token))
            return None

    def set(self, token: str, identity: Identity, ttl_seconds: int) -> None:
        try:
            self.client.setex(self._key(token), ttl_seconds, json.dumps(identity.as_dict()))
        except redis_exceptions.RedisError as exc:
            logger.exception("Session write failed")
            raise DependencyError("Server error", operation="session write") from exc

    def destroy(self, token: str) -> None:
        try:
            self.client.delete(self._key(token))
        except redis_exceptions.RedisError as exc:
            logger.exception("Session delete failed")
            raise DependencyError("Server error", operation="session delete") from exc


class SessionTokenSigner:
    """Issues random session tokens and signs them for the cookie."""

    def __init__(self, secret: str, max_age_seconds: int):
        self._serializer = URLSafeTimedSerializer(
            secret_key=secret, salt="invoicedesk-session"
        )
        self.max_age_seconds = max_age_seconds

    def new_token(self) -> str:
        return secrets.token_urlsafe(32)

    def sign(self, token: str) -> str:
        return self._serializer.dumps(token)

    def unsign(self, cookie_value: str | None) -> Optional[str]:
        """Return the token inside a cookie value, or None if invalid or expired."""
        if not cookie_value:
            return None
        try:
            token = self._serializer.loads(cookie_value, max_age=self.max_age_seconds)
        except BadSignature:
            return None
        return token if isinstance(token, str) else None
