"""
Fuzzy ranking over the item store.

Each item is projected once (per store load) to a lowercased haystack of its
name and URIs. Queries are scored against that projection in a single pass
per item, so ranking stays linear in the number of items.

Score bands, best first:
    1000  name equals the query
     900  name starts with the query
     800  query found at a word start
     700  query found anywhere (minus its offset)
     500  every whitespace-separated term found
   1-400  query characters found in order (subsequence), denser is better
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum

from vaultpop.agent.models import Item

logger = logging.getLogger(__name__)

_WORD_START = re.compile(r"[\s\-_./:@]")


class SortMode(StrEnum):
    DEFAULT = "default"
    DATE = "date"

    def toggled(self) -> SortMode:
        return SortMode.DATE if self is SortMode.DEFAULT else SortMode.DEFAULT


@dataclass(frozen=True)
class SearchResult:
    item: Item
    score: float = 0


@dataclass(frozen=True)
class _Entry:
    index: int
    item: Item
    name: str
    haystack: str
    sort_key: str


def searchable_text(item: Item) -> str:
    return " ".join([item.name or "", *item.uris]).lower()


def _subsequence_score(needle: str, haystack: str) -> float:
    """Score an in-order match of `needle` in `haystack`, 0 if absent."""
    pos = -1
    first = -1
    for ch in needle:
        pos = haystack.find(ch, pos + 1)
        if pos < 0:
            return 0
        if first < 0:
            first = pos
    span = pos - first + 1
    return max(1.0, 400 * len(needle) / span - first * 0.01)


def score(query: str, name: str, haystack: str) -> float:
    """Match quality of a lowercased, non-empty `query`. 0 means no match."""
    if name == query:
        return 1000
    if name.startswith(query):
        return 900
    pos = haystack.find(query)
    if pos >= 0:
        if pos == 0 or _WORD_START.match(haystack[pos - 1]):
            return 800
        return 700 - min(pos, 199)
    terms = query.split()
    if len(terms) > 1 and all(term in haystack for term in terms):
        return 500
    return _subsequence_score(query.replace(" ", ""), haystack)


class SearchIndex:
    """Derived search state. Rebuild on every store load."""

    def __init__(self, items: tuple[Item, ...] | list[Item] = ()) -> None:
        self._entries: list[_Entry] = []
        self.rebuild(items)

    def rebuild(self, items: tuple[Item, ...] | list[Item]) -> None:
        self._entries = [
            _Entry(
                index=idx,
                item=item,
                name=(item.name or "").lower(),
                haystack=searchable_text(item),
                sort_key=(item.name or "").casefold(),
            )
            for idx, item in enumerate(items)
        ]

    def __len__(self) -> int:
        return len(self._entries)

    def search(self, query: str, sort: SortMode = SortMode.DEFAULT) -> list[SearchResult]:
        needle = query.strip().lower()
        if not needle:
            ranked = sorted(self._entries, key=lambda e: (e.sort_key, e.index))
            results = [SearchResult(e.item, 0) for e in ranked]
        else:
            scored = []
            for entry in self._entries:
                s = score(needle, entry.name, entry.haystack)
                if s > 0:
                    scored.append((s, entry))
            scored.sort(key=lambda pair: (-pair[0], pair[1].sort_key, pair[1].index))
            results = [SearchResult(e.item, s) for s, e in scored]

        if sort is SortMode.DATE:
            # Stable, so equal timestamps keep their rank order; missing dates last
            results.sort(key=lambda r: r.item.revision_date or "", reverse=True)
        return results
