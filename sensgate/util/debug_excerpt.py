"""
调试用原文摘要：拦截时记录命中的原文，统一截断，只在 DEBUG 级别输出。
"""

from __future__ import annotations

import logging

from sensgate.util.logger import logger

DEFAULT_EXCERPT_MAX_LEN = 500


def excerpt_for_debug(text: str, max_len: int = DEFAULT_EXCERPT_MAX_LEN) -> str:
    if not text:
        return ""
    s = str(text).strip()
    if len(s) <= max_len:
        return s
    return f"{s[:max_len]} ... [truncated, total {len(s)} chars]"


def debug_log_original(
    label: str,
    original_text: str,
    *,
    request_id: str = "",
    max_len: int = DEFAULT_EXCERPT_MAX_LEN,
) -> None:
    """
    仅当 DEBUG 开启时打一条原文摘要日志。
    label: 如 "request_blocked", "response_blocked"
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    excerpt = excerpt_for_debug(original_text, max_len=max_len)
    logger.debug("%s original_excerpt request_id=%s excerpt=%s", label, request_id or "-", excerpt)
