"""
敏感词列表与拦截文案的文件存储。

两个纯文本文件：词表（换行或逗号分隔）与拦截文案（整文件原样）。
文件不存在时写入默认内容；读取失败只记日志，不影响启动。
"""

from __future__ import annotations

import os
from pathlib import Path

from sensgate.config.settings import settings
from sensgate.core.errors import TermStoreError
from sensgate.util.logger import logger

DEFAULT_WORDS_FILENAME = "sensitive_words.txt"
DEFAULT_RESPONSE_FILENAME = "sensitive_response.txt"
DEFAULT_WORDS = ("敏感词1", "敏感词2", "敏感词3")
DEFAULT_REFUSAL = "Your message contains sensitive content and cannot be processed."
_FILE_MODE = 0o644


def parse_terms(blob: str) -> list[str]:
    """Split *blob* on newlines and commas into trimmed, de-duplicated terms."""
    result: list[str] = []
    seen: set[str] = set()
    for line in (blob or "").split("\n"):
        line = line.strip()
        if not line:
            continue
        pieces = line.split(",") if "," in line else [line]
        for piece in pieces:
            term = piece.strip()
            if not term or term in seen:
                continue
            seen.add(term)
            result.append(term)
    return result


def serialize_terms(terms: list[str]) -> str:
    return "\n".join(terms)


def _resolve(path_str: str) -> Path:
    path = Path(path_str)
    return path if path.is_absolute() else Path.cwd() / path


class TermStore:
    def __init__(self, words_file: str | Path, response_file: str | Path) -> None:
        self.words_file = Path(words_file)
        self.response_file = Path(response_file)

    @classmethod
    def from_settings(cls) -> "TermStore":
        config_dir = _resolve(settings.config_dir)
        words = settings.sensitive_words_file.strip()
        response = settings.sensitive_response_file.strip()
        return cls(
            words_file=_resolve(words) if words else config_dir / DEFAULT_WORDS_FILENAME,
            response_file=_resolve(response) if response else config_dir / DEFAULT_RESPONSE_FILENAME,
        )

    def _ensure_dir(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)

    def _write(self, path: Path, content: str) -> None:
        self._ensure_dir(path)
        path.write_text(content, encoding="utf-8")
        os.chmod(path, _FILE_MODE)

    def ensure_files(self, default_refusal: str = DEFAULT_REFUSAL) -> None:
        """Create both files with defaults when missing; existing files are left alone."""
        try:
            if not self.words_file.exists():
                self._write(self.words_file, serialize_terms(list(DEFAULT_WORDS)))
                logger.info("created default sensitive words file path=%s", self.words_file)
            if not self.response_file.exists():
                self._write(self.response_file, default_refusal)
                logger.info("created default sensitive response file path=%s", self.response_file)
        except OSError as exc:
            logger.warning("could not create sensitive filter files dir=%s error=%s", self.words_file.parent, exc)

    def load_terms(self) -> list[str]:
        try:
            if not self.words_file.exists():
                self._write(self.words_file, serialize_terms(list(DEFAULT_WORDS)))
                logger.info("created default sensitive words file path=%s", self.words_file)
            content = self.words_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("load sensitive words failed path=%s error=%s", self.words_file, exc)
            return []
        terms = parse_terms(content)
        logger.info("loaded sensitive words path=%s count=%d", self.words_file, len(terms))
        return terms

    def load_refusal(self, default: str = DEFAULT_REFUSAL) -> str:
        try:
            if not self.response_file.exists():
                self._write(self.response_file, default)
                logger.info("created default sensitive response file path=%s", self.response_file)
            content = self.response_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("load sensitive response failed path=%s error=%s", self.response_file, exc)
            return default
        if not content:
            return default
        logger.info("loaded sensitive response path=%s", self.response_file)
        return content

    def save_terms(self, terms: list[str]) -> None:
        try:
            self._write(self.words_file, serialize_terms(terms))
        except OSError as exc:
            logger.error("save sensitive words failed path=%s error=%s", self.words_file, exc)
            raise TermStoreError(f"save sensitive words failed: {exc}") from exc
        logger.info("saved sensitive words path=%s count=%d", self.words_file, len(terms))

    def save_refusal(self, text: str) -> None:
        try:
            self._write(self.response_file, text)
        except OSError as exc:
            logger.error("save sensitive response failed path=%s error=%s", self.response_file, exc)
            raise TermStoreError(f"save sensitive response failed: {exc}") from exc
        logger.info("saved sensitive response path=%s", self.response_file)
