"""Multi-pattern blocked-term matching.

Two Aho-Corasick automata are kept per term list:

* the literal automaton holds the terms exactly as configured;
* the augmented automaton additionally holds the normalized form of every
  term whose normalized form contains an ASCII letter.

A text is checked against the literal automaton first; on a miss its
normalized form is checked against the augmented automaton. Both automata are
immutable once built and safe to share between concurrent requests.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from sensgate.core.normalize import contains_ascii_letter, normalize


class AhoCorasick:
    """Immutable Aho-Corasick automaton over Unicode code points."""

    __slots__ = ("_goto", "_fail", "_term_at", "_dict_link", "_pattern_count")

    def __init__(self, patterns: Iterable[str]) -> None:
        goto: list[dict[str, int]] = [{}]
        term_at: list[str | None] = [None]
        count = 0
        for pattern in patterns:
            if not pattern:
                continue
            state = 0
            for ch in pattern:
                nxt = goto[state].get(ch)
                if nxt is None:
                    nxt = len(goto)
                    goto[state][ch] = nxt
                    goto.append({})
                    term_at.append(None)
                state = nxt
            if term_at[state] is None:
                term_at[state] = pattern
                count += 1

        fail = [0] * len(goto)
        # dict_link[s]: 沿 fail 链最近的终止状态，0 表示没有
        dict_link = [0] * len(goto)
        queue: deque[int] = deque()
        for child in goto[0].values():
            queue.append(child)
        while queue:
            state = queue.popleft()
            for ch, child in goto[state].items():
                queue.append(child)
                probe = fail[state]
                while probe and ch not in goto[probe]:
                    probe = fail[probe]
                target = goto[probe].get(ch, 0)
                fail[child] = target if target != child else 0
                link = fail[child]
                dict_link[child] = link if term_at[link] is not None else dict_link[link]

        self._goto = goto
        self._fail = fail
        self._term_at = term_at
        self._dict_link = dict_link
        self._pattern_count = count

    def __len__(self) -> int:
        return self._pattern_count

    def first_match(self, text: str) -> str | None:
        """Return the first pattern that ends earliest in *text*, or None."""
        if not text or not self._pattern_count:
            return None
        goto = self._goto
        fail = self._fail
        term_at = self._term_at
        dict_link = self._dict_link
        state = 0
        for ch in text:
            while state and ch not in goto[state]:
                state = fail[state]
            state = goto[state].get(ch, 0)
            if not state:
                continue
            if term_at[state] is not None:
                return term_at[state]
            link = dict_link[state]
            if link:
                return term_at[link]
        return None


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def augmented_patterns(terms: Iterable[str]) -> list[str]:
    """Terms plus the normalized variant of every letter-bearing term."""
    base = _dedupe(term for term in terms if term)
    variants: list[str] = []
    for term in base:
        folded = normalize(term)
        if folded != term and contains_ascii_letter(folded):
            variants.append(folded)
    return _dedupe([*base, *variants])


@dataclass(frozen=True, slots=True)
class MatcherSet:
    terms: tuple[str, ...]
    literal: AhoCorasick
    augmented: AhoCorasick
    has_variants: bool

    @classmethod
    def build(cls, terms: Iterable[str]) -> "MatcherSet":
        base = _dedupe(term for term in terms if term)
        patterns = augmented_patterns(base)
        return cls(
            terms=tuple(base),
            literal=AhoCorasick(base),
            augmented=AhoCorasick(patterns),
            has_variants=len(patterns) > len(base),
        )

    @classmethod
    def empty(cls) -> "MatcherSet":
        return cls.build(())

    def match(self, text: str) -> str | None:
        """Return the blocked term found in *text*, or None."""
        if not text or not self.terms:
            return None
        hit = self.literal.first_match(text)
        if hit is not None:
            return hit
        folded = normalize(text)
        if folded == text and not self.has_variants:
            # 文本未变化且没有变体模式，增强匹配器不会给出新结果
            return None
        return self.augmented.first_match(folded)

    def contains(self, text: str) -> bool:
        return self.match(text) is not None
