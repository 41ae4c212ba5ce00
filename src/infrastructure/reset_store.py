"""Backends for the reset-code registry.

``InMemoryResetCodeStore`` keeps records in this process only. Use it for a
single-instance deployment or tests; several API instances behind a load
balancer each get their own map and will not see each other's codes. Use
``RedisResetCodeStore`` whenever more than one instance serves traffic.
"""

from __future__ import annotations

import math
import threading
from dataclasses import replace

import structlog
from redis.asyncio import Redis
from src.core.config import Settings
from src.domain.models import ResetRecord
from src.domain.services.reset_codes import ConsumeOutcome, ResetCodeStore, evaluate

logger = structlog.get_logger()


class InMemoryResetCodeStore:
    """Process-local store.

    Each operation runs under one ``threading.Lock`` and never awaits while
    holding it, so it is atomic with respect to other coroutines and threads.
    """

    def __init__(self, *, max_attempts: int = 5) -> None:
        self.max_attempts = max_attempts
        self._records: dict[str, ResetRecord] = {}
        self._lock = threading.Lock()

    async def put(self, user_id: str, record: ResetRecord, ttl_seconds: int) -> None:
        with self._lock:
            self._records[user_id] = record

    async def consume(self, user_id: str, code: str, now: float) -> ConsumeOutcome:
        with self._lock:
            record = self._records.get(user_id)
            outcome = evaluate(record, code, now)
            if outcome in (ConsumeOutcome.OK, ConsumeOutcome.EXPIRED):
                del self._records[user_id]
            elif outcome is ConsumeOutcome.MISMATCH:
                attempts = record.attempts + 1
                if attempts >= self.max_attempts:
                    del self._records[user_id]
                else:
                    self._records[user_id] = replace(record, attempts=attempts)
            return outcome

    async def discard(self, user_id: str) -> None:
        with self._lock:
            self._records.pop(user_id, None)

    async def close(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# KEYS[1] = record hash, ARGV[1] = supplied code, ARGV[2] = now (epoch seconds),
# ARGV[3] = wrong guesses allowed before the record is dropped
_CONSUME_SCRIPT = """
local fields = redis.call('HMGET', KEYS[1], 'code', 'expires_at')
local code = fields[1]
if not code then
  return 'not_found'
end
if tonumber(ARGV[2]) >= tonumber(fields[2]) then
  redis.call('DEL', KEYS[1])
  return 'expired'
end
if code ~= ARGV[1] then
  local attempts = redis.call('HINCRBY', KEYS[1], 'attempts', 1)
  if attempts >= tonumber(ARGV[3]) then
    redis.call('DEL', KEYS[1])
  end
  return 'mismatch'
end
redis.call('DEL', KEYS[1])
return 'ok'
"""


class RedisResetCodeStore:
    """Shared store; verification runs as one Lua script on the server."""

    def __init__(
        self, client: Redis, *, key_prefix: str = "reset-code:", max_attempts: int = 5
    ) -> None:
        self.client = client
        self.key_prefix = key_prefix
        self.max_attempts = max_attempts
        self._consume = client.register_script(_CONSUME_SCRIPT)

    def _key(self, user_id: str) -> str:
        return f"{self.key_prefix}{user_id}"

    async def put(self, user_id: str, record: ResetRecord, ttl_seconds: int) -> None:
        key = self._key(user_id)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.hset(
                key,
                mapping={
                    "code": record.code,
                    "expires_at": repr(record.expires_at),
                    "attempts": record.attempts,
                },
            )
            pipe.expire(key, max(1, math.ceil(ttl_seconds)))
            await pipe.execute()

    async def consume(self, user_id: str, code: str, now: float) -> ConsumeOutcome:
        raw = await self._consume(
            keys=[self._key(user_id)], args=[code, repr(now), self.max_attempts]
        )
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return ConsumeOutcome(raw)

    async def discard(self, user_id: str) -> None:
        await self.client.delete(self._key(user_id))

    async def close(self) -> None:
        await self.client.aclose()


def build_reset_store(settings: Settings) -> ResetCodeStore:
    """Create the store selected by ``RESET_STORE_BACKEND``."""
    max_attempts = settings.reset_code_max_attempts
    if settings.reset_store_backend == "redis":
        client = Redis.from_url(settings.redis_url)
        logger.info("reset_store_configured", backend="redis")
        return RedisResetCodeStore(client, max_attempts=max_attempts)

    logger.info("reset_store_configured", backend="memory", single_instance_only=True)
    return InMemoryResetCodeStore(max_attempts=max_attempts)
