"""Redis-backed option store (one hash per key prefix)."""

from __future__ import annotations

from typing import Any

from sensgate.core.errors import OptionStoreError
from sensgate.storage.kv import OptionStore

try:
    import redis
except Exception:  # pragma: no cover - optional dependency
    redis = None


def _to_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class RedisOptionStore(OptionStore):
    def __init__(self, *, redis_url: str = "", key_prefix: str = "sensgate", client: Any = None) -> None:
        if client is None:
            if redis is None:  # pragma: no cover - depends on optional package
                raise RuntimeError("redis package is not installed, cannot use RedisOptionStore")
            client = redis.Redis.from_url(redis_url, decode_responses=False)
        self.client = client
        self.key_prefix = key_prefix.strip() or "sensgate"

    def _options_key(self) -> str:
        return f"{self.key_prefix}:options"

    def get_option(self, key: str) -> str | None:
        try:
            raw = self.client.hget(self._options_key(), key)
        except Exception as exc:
            raise OptionStoreError(f"redis option store error: {exc}") from exc
        return None if raw is None else _to_str(raw)

    def set_option(self, key: str, value: str) -> None:
        try:
            self.client.hset(self._options_key(), key, value)
        except Exception as exc:
            raise OptionStoreError(f"redis option store error: {exc}") from exc

    def all_options(self) -> dict[str, str]:
        try:
            raw = self.client.hgetall(self._options_key()) or {}
        except Exception as exc:
            raise OptionStoreError(f"redis option store error: {exc}") from exc
        return {_to_str(k): _to_str(v) for k, v in raw.items()}
