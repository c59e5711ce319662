"""Text normalization for case- and width-insensitive matching."""

from __future__ import annotations

_FULLWIDTH_START = 0xFF01
_FULLWIDTH_END = 0xFF5E
_FULLWIDTH_OFFSET = 0xFEE0
_IDEOGRAPHIC_SPACE = 0x3000

# 全角 ASCII（U+FF01..U+FF5E）折叠为半角，全角空格折叠为普通空格
_WIDTH_FOLD_TABLE: dict[int, int] = {
    code: code - _FULLWIDTH_OFFSET for code in range(_FULLWIDTH_START, _FULLWIDTH_END + 1)
}
_WIDTH_FOLD_TABLE[_IDEOGRAPHIC_SPACE] = ord(" ")


def normalize(text: str) -> str:
    """Lowercase *text* and fold full-width ASCII forms to half-width.

    Lowercasing runs first so full-width capitals (``Ａ``) become full-width
    small letters before the width fold; the result never contains a
    character the next call would change again.
    """
    if not text:
        return text
    lowered = text.lower()
    if lowered.isascii():
        return lowered
    return lowered.translate(_WIDTH_FOLD_TABLE)


def contains_ascii_letter(text: str) -> bool:
    for ch in text:
        if ("a" <= ch <= "z") or ("A" <= ch <= "Z"):
            return True
    return False
