"""SQLite-backed option store."""

from __future__ import annotations

import sqlite3
import time
from pathlib import Path
from typing import Callable, TypeVar

from sensgate.core.errors import OptionStoreError
from sensgate.storage.kv import OptionStore
from sensgate.util.logger import logger


T = TypeVar("T")


class SqliteOptionStore(OptionStore):
    def __init__(self, db_path: str = "logs/sensgate.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=5.0)
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS options (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL,
                  updated_at INTEGER NOT NULL
                )
                """
            )
            conn.commit()
        logger.info("sqlite option store initialized path=%s", self.db_path)

    def _with_retry(self, fn: Callable[[], T], retries: int = 5) -> T:
        for attempt in range(retries):
            try:
                return fn()
            except sqlite3.OperationalError as exc:
                if "locked" not in str(exc).lower() or attempt == retries - 1:
                    raise OptionStoreError(f"sqlite option store error: {exc}") from exc
                time.sleep(0.01 * (attempt + 1))
        raise RuntimeError("unreachable retry state")

    def get_option(self, key: str) -> str | None:
        def _read() -> str | None:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM options WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row[0])

        return self._with_retry(_read)

    def set_option(self, key: str, value: str) -> None:
        def _write() -> None:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO options (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, value, int(time.time())),
                )
                conn.commit()

        self._with_retry(_write)
        logger.debug("sqlite option saved key=%s", key)

    def all_options(self) -> dict[str, str]:
        def _read_all() -> dict[str, str]:
            with self._connect() as conn:
                rows = conn.execute("SELECT key, value FROM options ORDER BY key").fetchall()
            return {str(k): str(v) for k, v in rows}

        return self._with_retry(_read_all)
