"""Storage backend selection helpers."""

from __future__ import annotations

from sensgate.config.settings import settings
from sensgate.storage.kv import OptionStore
from sensgate.storage.postgres_store import PostgresOptionStore
from sensgate.storage.redis_store import RedisOptionStore
from sensgate.storage.sqlite_store import SqliteOptionStore


def create_option_store() -> OptionStore:
    backend = settings.storage_backend.strip().lower()
    if backend == "redis":
        return RedisOptionStore(redis_url=settings.redis_url, key_prefix=settings.redis_key_prefix)
    if backend in {"postgres", "postgresql"}:
        return PostgresOptionStore(dsn=settings.postgres_dsn, schema=settings.postgres_schema)
    return SqliteOptionStore(db_path=settings.sqlite_db_path)
