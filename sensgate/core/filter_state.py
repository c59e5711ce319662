"""
进程级敏感词过滤状态。

读路径无锁：读者拿到的是一个不可变快照（enabled/terms/refusal/matchers 同一代）。
写路径在写锁内串行：先整体替换快照引用，再落盘，词表文件总是与最后发布的快照一致。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace

from sensgate.config.sensitive import DEFAULT_REFUSAL, TermStore, parse_terms
from sensgate.config.settings import settings
from sensgate.core.matcher import MatcherSet
from sensgate.util.logger import logger


@dataclass(frozen=True, slots=True)
class FilterSnapshot:
    enabled: bool
    terms: tuple[str, ...]
    refusal: str
    matchers: MatcherSet


class FilterState:
    def __init__(self, term_store: TermStore | None = None, *, enabled: bool | None = None) -> None:
        self._term_store = term_store
        self._initial_enabled = settings.sensitive_filter_enabled if enabled is None else enabled
        self._init_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._snapshot: FilterSnapshot | None = None

    @property
    def term_store(self) -> TermStore:
        if self._term_store is None:
            self._term_store = TermStore.from_settings()
        return self._term_store

    def init_once(self) -> FilterSnapshot:
        """Load terms and refusal text on first use; later callers reuse the result."""
        current = self._snapshot
        if current is not None:
            return current
        with self._init_lock:
            if self._snapshot is not None:
                return self._snapshot
            store = self.term_store
            terms = store.load_terms()
            refusal = store.load_refusal(DEFAULT_REFUSAL)
            matchers = MatcherSet.build(terms)
            snapshot = FilterSnapshot(
                enabled=self._initial_enabled,
                terms=matchers.terms,
                refusal=refusal,
                matchers=matchers,
            )
            with self._write_lock:
                self._snapshot = snapshot
            logger.info(
                "sensitive filter initialized enabled=%s terms=%d patterns=%d",
                snapshot.enabled,
                len(matchers.terms),
                len(matchers.augmented),
            )
            return snapshot

    def snapshot(self) -> FilterSnapshot:
        return self._snapshot or self.init_once()

    @property
    def initialized(self) -> bool:
        return self._snapshot is not None

    def update_terms(self, blob: str) -> list[str]:
        """Parse *blob*, publish a rebuilt matcher set and persist the list.

        An empty parse result leaves the current state untouched and returns [].
        Raises TermStoreError when the new list cannot be written; the new
        matchers are already live by then. Publish and save happen under the
        writer lock, so the words file always ends with the last published list.
        """
        terms = parse_terms(blob)
        if not terms:
            logger.warning("sensitive words update ignored: parsed list is empty")
            return []
        matchers = MatcherSet.build(terms)
        self.init_once()
        with self._write_lock:
            self._snapshot = replace(self._snapshot, terms=matchers.terms, matchers=matchers)
            logger.info("sensitive words updated count=%d patterns=%d", len(matchers.terms), len(matchers.augmented))
            self.term_store.save_terms(list(matchers.terms))
        return list(matchers.terms)

    def update_refusal(self, text: str) -> bool:
        """Publish and persist *text* verbatim; an empty text is ignored and returns False."""
        if not text:
            logger.warning("sensitive response update ignored: text is empty")
            return False
        self.init_once()
        with self._write_lock:
            self._snapshot = replace(self._snapshot, refusal=text)
            logger.info("sensitive response updated length=%d", len(text))
            self.term_store.save_refusal(text)
        return True

    def set_enabled(self, flag: bool) -> None:
        self.init_once()
        with self._write_lock:
            self._snapshot = replace(self._snapshot, enabled=bool(flag))
        logger.info("sensitive filter enabled=%s", bool(flag))


filter_state = FilterState()
