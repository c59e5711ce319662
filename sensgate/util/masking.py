"""Shared value-masking utilities for audit/security logs."""

from __future__ import annotations

import re


def mask_for_log(value: str) -> str:
    """Return a partially-masked version of *value* safe for log output.

    Blocked terms are masked before they reach logs or the audit trail so the
    term list itself does not leak through log files.
    Values of 10+ chars keep 3 leading and 2 trailing chars; shorter values
    keep fewer.
    """
    normalized = re.sub(r"\s+", " ", value).strip()
    length = len(normalized)
    if length <= 0:
        return ""
    if length == 1:
        return "*"
    if length <= 4:
        return f"{normalized[:1]}{'*' * (length - 2)}{normalized[-1:]}"

    head = 3 if length >= 10 else 2
    tail = 2
    if head + tail >= length:
        head, tail = 1, 1
    return f"{normalized[:head]}{'*' * (length - head - tail)}{normalized[-tail:]}"
