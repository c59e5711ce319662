"""PostgreSQL-backed option store."""

from __future__ import annotations

import re

from sensgate.core.errors import OptionStoreError
from sensgate.storage.kv import OptionStore

try:
    import psycopg
except Exception:  # pragma: no cover - optional dependency
    psycopg = None


class PostgresOptionStore(OptionStore):
    def __init__(self, *, dsn: str, schema: str = "public") -> None:
        if psycopg is None:  # pragma: no cover - optional dependency
            raise RuntimeError("psycopg package is not installed, cannot use PostgresOptionStore")
        if not dsn.strip():
            raise RuntimeError("postgres dsn is empty")
        if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", schema):
            raise RuntimeError("postgres schema contains invalid characters")
        self.dsn = dsn
        self.schema = schema
        self._init_db()

    def _connect(self):
        return psycopg.connect(self.dsn)

    def _table(self) -> str:
        return f"{self.schema}.options"

    def _init_db(self) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema}")
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self._table()} (
                      key TEXT PRIMARY KEY,
                      value TEXT NOT NULL,
                      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                )
            conn.commit()

    def get_option(self, key: str) -> str | None:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"SELECT value FROM {self._table()} WHERE key = %s", (key,))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise OptionStoreError(f"postgres option store error: {exc}") from exc
        return None if row is None else str(row[0])

    def set_option(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        INSERT INTO {self._table()} (key, value, updated_at) VALUES (%s, %s, now())
                        ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = now()
                        """,
                        (key, value),
                    )
                conn.commit()
        except psycopg.Error as exc:
            raise OptionStoreError(f"postgres option store error: {exc}") from exc

    def all_options(self) -> dict[str, str]:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"SELECT key, value FROM {self._table()} ORDER BY key")
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise OptionStoreError(f"postgres option store error: {exc}") from exc
        return {str(k): str(v) for k, v in rows}
