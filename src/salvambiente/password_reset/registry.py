"""
One-time reset codes for the forgot-password flow.

A code moves through issued -> verified -> consumed. Expiry is checked lazily
whenever a code is looked up; an expired entry is dropped at that moment, and
nothing sweeps entries in the background.

Two backends share the same interface:

- InMemoryResetCodeRegistry keeps entries in a dict owned by one process.
  Codes issued by one API instance are invisible to the others.
- RedisResetCodeRegistry stores entries in Redis with a native TTL, so every
  instance behind a load balancer sees the same codes.

Codes are six random digits. Issuing a code that collides with a live one
overwrites the older entry; with 900k possible codes and a 15 minute lifetime
this is accepted rather than retried.
"""

from __future__ import annotations

import json
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Protocol

import structlog
from fastapi import Request

from salvambiente.time_utils import as_utc, utcnow

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()

Clock = Callable[[], datetime]


class ResetCodeError(Exception):
    """Base class for reset-code lookups that cannot proceed."""


class ResetCodeNotFound(ResetCodeError):
    """No entry is registered under the code."""


class ResetCodeExpired(ResetCodeError):
    """The entry existed but its expiry has passed. It has been removed."""


class ResetCodeNotVerified(ResetCodeError):
    """The code has not been confirmed yet."""


@dataclass
class ResetCodeEntry:
    email: str
    expires_at: datetime
    verified: bool = False

    def to_json(self) -> str:
        return json.dumps(
            {"email": self.email, "expires_at": self.expires_at.isoformat(), "verified": self.verified}
        )

    @classmethod
    def from_json(cls, raw: str) -> ResetCodeEntry:
        data = json.loads(raw)
        return cls(
            email=data["email"],
            expires_at=as_utc(datetime.fromisoformat(data["expires_at"])),
            verified=bool(data["verified"]),
        )


def generate_code() -> str:
    """Uniformly random 6-digit code (100000-999999)."""
    return str(100_000 + secrets.randbelow(900_000))


class ResetCodeRegistry(Protocol):
    """Operations the reset endpoints need from a code store."""

    async def issue(self, email: str) -> str: ...

    async def confirm(self, code: str) -> ResetCodeEntry: ...

    async def require_verified(self, code: str) -> ResetCodeEntry: ...

    async def discard(self, code: str) -> None: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# In-process backend
# ---------------------------------------------------------------------------


class InMemoryResetCodeRegistry:
    """Reset codes held in a dict for the lifetime of the process."""

    def __init__(
        self,
        ttl: timedelta,
        clock: Clock = utcnow,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._code_factory = code_factory
        self._entries: dict[str, ResetCodeEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, code: str) -> ResetCodeEntry:
        entry = self._entries.get(code)
        if entry is None:
            raise ResetCodeNotFound(code)
        if self._clock() > entry.expires_at:
            del self._entries[code]
            raise ResetCodeExpired(code)
        return entry

    async def issue(self, email: str) -> str:
        """Register a fresh code for `email` and return it."""
        code = self._code_factory()
        if code in self._entries:
            logger.warning("reset_code_overwritten")
        self._entries[code] = ResetCodeEntry(email=email, expires_at=self._clock() + self.ttl)
        return code

    async def confirm(self, code: str) -> ResetCodeEntry:
        """Mark a live code as verified. Confirming twice is harmless."""
        entry = self._lookup(code)
        entry.verified = True
        return entry

    async def require_verified(self, code: str) -> ResetCodeEntry:
        """Return the entry for a live, verified code."""
        entry = self._lookup(code)
        if not entry.verified:
            raise ResetCodeNotVerified(code)
        return entry

    async def discard(self, code: str) -> None:
        self._entries.pop(code, None)

    async def close(self) -> None:
        self._entries.clear()


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------


class RedisResetCodeRegistry:
    """Reset codes stored in Redis, shared by every API instance."""

    KEY_PREFIX = "reset_code:"

    def __init__(
        self,
        redis: Redis,
        ttl: timedelta,
        clock: Clock = utcnow,
        code_factory: Callable[[], str] = generate_code,
        grace: timedelta = timedelta(minutes=5),
    ) -> None:
        self.ttl = ttl
        self._redis = redis
        self._clock = clock
        self._code_factory = code_factory
        # Keys outlive the code briefly so a late lookup reports "expired", not "unknown"
        self._key_ttl_seconds = int((ttl + grace).total_seconds())

    def _key(self, code: str) -> str:
        return f"{self.KEY_PREFIX}{code}"

    async def _lookup(self, code: str) -> ResetCodeEntry:
        raw = await self._redis.get(self._key(code))
        if raw is None:
            raise ResetCodeNotFound(code)
        entry = ResetCodeEntry.from_json(raw)
        if self._clock() > entry.expires_at:
            await self._redis.delete(self._key(code))
            raise ResetCodeExpired(code)
        return entry

    async def issue(self, email: str) -> str:
        code = self._code_factory()
        entry = ResetCodeEntry(email=email, expires_at=self._clock() + self.ttl)
        previous = await self._redis.set(
            self._key(code), entry.to_json(), ex=self._key_ttl_seconds, get=True
        )
        if previous is not None:
            logger.warning("reset_code_overwritten")
        return code

    async def confirm(self, code: str) -> ResetCodeEntry:
        entry = await self._lookup(code)
        entry.verified = True
        # xx: a reset that finished after the lookup must not resurrect the key
        written = await self._redis.set(self._key(code), entry.to_json(), xx=True, keepttl=True)
        if written is None:
            raise ResetCodeNotFound(code)
        return entry

    async def require_verified(self, code: str) -> ResetCodeEntry:
        entry = await self._lookup(code)
        if not entry.verified:
            raise ResetCodeNotVerified(code)
        return entry

    async def discard(self, code: str) -> None:
        await self._redis.delete(self._key(code))

    async def close(self) -> None:
        """The Redis pool is owned and closed by redis_client."""


def get_reset_registry(request: Request) -> ResetCodeRegistry:
    """Return the registry constructed at startup (FastAPI dependency)."""
    return request.app.state.reset_codes
