"""Reset-code registry lifecycle with a controllable clock."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from salvambiente.password_reset.registry import (
    InMemoryResetCodeRegistry,
    RedisResetCodeRegistry,
    ResetCodeEntry,
    ResetCodeExpired,
    ResetCodeNotFound,
    ResetCodeNotVerified,
    generate_code,
)

TTL = timedelta(minutes=15)
START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def registry(clock: FakeClock) -> InMemoryResetCodeRegistry:
    return InMemoryResetCodeRegistry(TTL, clock=clock)


class TestGenerateCode:
    def test_six_digits(self):
        for _ in range(50):
            code = generate_code()
            assert len(code) == 6
            assert 100_000 <= int(code) <= 999_999


class TestInMemoryRegistry:
    async def test_issue_then_confirm_then_require(self, registry):
        code = await registry.issue("ana@example.com")
        entry = await registry.confirm(code)
        assert entry.verified is True
        assert (await registry.require_verified(code)).email == "ana@example.com"

    async def test_unknown_code(self, registry):
        with pytest.raises(ResetCodeNotFound):
            await registry.confirm("123456")

    async def test_unverified_code_cannot_reset(self, registry):
        code = await registry.issue("ana@example.com")
        with pytest.raises(ResetCodeNotVerified):
            await registry.require_verified(code)

    async def test_confirm_is_idempotent(self, registry):
        code = await registry.issue("ana@example.com")
        await registry.confirm(code)
        await registry.confirm(code)
        assert (await registry.require_verified(code)).verified is True

    async def test_still_valid_at_expiry_instant(self, registry, clock):
        code = await registry.issue("ana@example.com")
        clock.advance(TTL)
        await registry.confirm(code)

    async def test_expired_code_is_removed(self, registry, clock):
        code = await registry.issue("ana@example.com")
        clock.advance(TTL + timedelta(seconds=1))
        with pytest.raises(ResetCodeExpired):
            await registry.confirm(code)
        assert len(registry) == 0
        with pytest.raises(ResetCodeNotFound):
            await registry.confirm(code)

    async def test_verified_code_still_expires(self, registry, clock):
        code = await registry.issue("ana@example.com")
        await registry.confirm(code)
        clock.advance(timedelta(minutes=16))
        with pytest.raises(ResetCodeExpired):
            await registry.require_verified(code)

    async def test_discard(self, registry):
        code = await registry.issue("ana@example.com")
        await registry.discard(code)
        with pytest.raises(ResetCodeNotFound):
            await registry.confirm(code)

    async def test_collision_overwrites_older_entry(self, clock):
        registry = InMemoryResetCodeRegistry(TTL, clock=clock, code_factory=lambda: "111111")
        await registry.issue("first@example.com")
        await registry.issue("second@example.com")
        assert len(registry) == 1
        assert (await registry.confirm("111111")).email == "second@example.com"

    async def test_close_clears(self, registry):
        await registry.issue("ana@example.com")
        await registry.close()
        assert len(registry) == 0


class TestRedisRegistry:
    def _redis(self) -> AsyncMock:
        store: dict[str, str] = {}
        redis = AsyncMock()

        async def _set(key, value, ex=None, keepttl=False, xx=False, get=False):  # noqa: ANN001, ANN202
            previous = store.get(key)
            if xx and previous is None:
                return None
            store[key] = value
            return previous if get else True

        async def _delete(key):  # noqa: ANN001, ANN202
            store.pop(key, None)

        async def _get(key):  # noqa: ANN001, ANN202
            return store.get(key)

        redis.set.side_effect = _set
        redis.delete.side_effect = _delete
        redis.get.side_effect = _get
        redis.store = store
        return redis

    async def test_issue_sets_key_with_ttl(self, clock):
        redis = self._redis()
        registry = RedisResetCodeRegistry(redis, TTL, clock=clock, code_factory=lambda: "654321")
        code = await registry.issue("ana@example.com")
        assert code == "654321"
        _, kwargs = redis.set.call_args
        assert kwargs["ex"] == int((TTL + timedelta(minutes=5)).total_seconds())
        stored = json.loads(redis.store["reset_code:654321"])
        assert stored["email"] == "ana@example.com"
        assert stored["verified"] is False

    async def test_confirm_keeps_ttl(self, clock):
        redis = self._redis()
        registry = RedisResetCodeRegistry(redis, TTL, clock=clock, code_factory=lambda: "654321")
        await registry.issue("ana@example.com")
        await registry.confirm("654321")
        _, kwargs = redis.set.call_args
        assert kwargs["keepttl"] is True
        assert (await registry.require_verified("654321")).verified is True

    async def test_expired_entry_is_deleted(self, clock):
        redis = self._redis()
        registry = RedisResetCodeRegistry(redis, TTL, clock=clock, code_factory=lambda: "654321")
        await registry.issue("ana@example.com")
        clock.advance(TTL + timedelta(minutes=1))
        with pytest.raises(ResetCodeExpired):
            await registry.confirm("654321")
        assert "reset_code:654321" not in redis.store

    async def test_unknown_code(self, clock):
        registry = RedisResetCodeRegistry(self._redis(), TTL, clock=clock)
        with pytest.raises(ResetCodeNotFound):
            await registry.confirm("000000")

    async def test_confirm_does_not_recreate_code_discarded_mid_flight(self, clock):
        redis = self._redis()
        registry = RedisResetCodeRegistry(redis, TTL, clock=clock, code_factory=lambda: "123456")
        await registry.issue("ana@example.com")
        await registry.confirm("123456")

        lookup = registry._lookup

        async def lookup_then_reset(code):  # noqa: ANN001, ANN202
            entry = await lookup(code)
            # The password reset completes between the read and the write
            await registry.discard(code)
            return entry

        registry._lookup = lookup_then_reset
        with pytest.raises(ResetCodeNotFound):
            await registry.confirm("123456")
        assert "reset_code:123456" not in redis.store

    async def test_collision_is_logged(self, clock):
        redis = self._redis()
        registry = RedisResetCodeRegistry(redis, TTL, clock=clock, code_factory=lambda: "111111")
        with patch("salvambiente.password_reset.registry.logger") as mock_logger:
            await registry.issue("first@example.com")
            mock_logger.warning.assert_not_called()
            await registry.issue("second@example.com")
            mock_logger.warning.assert_called_once_with("reset_code_overwritten")
        assert (await registry.confirm("111111")).email == "second@example.com"


class TestEntrySerialization:
    def test_json_keeps_timezone(self):
        entry = ResetCodeEntry(email="a@x.com", expires_at=START, verified=True)
        restored = ResetCodeEntry.from_json(entry.to_json())
        assert restored == entry
