#!/usr/bin/env python3
"""
scores.py - Sparse Symmetric Pair Scores
========================================

``PairScoreCache`` stores similarity scores between pairs of items (tokens,
slots or plain indices). Scores are symmetric: ``get(a, b) == get(b, a)``.
Unknown pairs score 0.0, which callers read as "no evidence".

Insert Policies:
    - set_score:  overwrite the pair's score
    - add_score:  keep the max of the existing and the new score
    - boost:      pin the pair to SYNONYM_SCORE; later writes cannot lower it

Usage:
    >>> cache = PairScoreCache()
    >>> cache.add_score("v-kidnap", "v-abduct", 2.4)
    >>> cache.add_score("v-abduct", "v-kidnap", 1.1)
    >>> cache.get_score("v-kidnap", "v-abduct")
    2.4
    >>> cache.boost("v-kidnap", "n-kidnapping")
    >>> cache.get_score("n-kidnapping", "v-kidnap")
    999.0

Author: Frame Inducer contributors
Version: 0.3.0
"""

from typing import Dict, Hashable, Iterable, Iterator, List, Optional, Set, Tuple

__all__ = [
    'PairScoreCache',
    'SYNONYM_SCORE',
]

# Dominates every computed association score.
SYNONYM_SCORE = 999.0


def _pair_key(a: Hashable, b: Hashable) -> Tuple[Hashable, Hashable]:
    return (a, b) if str(a) <= str(b) else (b, a)


class PairScoreCache:
    """
    Sparse symmetric map from (item, item) to a float score.

    Args:
        scores: Optional initial {(a, b): score} mapping
    """

    def __init__(self, scores: Optional[Dict[Tuple[Hashable, Hashable], float]] = None):
        self._scores: Dict[Tuple[Hashable, Hashable], float] = {}
        self._pinned: Set[Tuple[Hashable, Hashable]] = set()
        self._neighbors: Dict[Hashable, Set[Hashable]] = {}
        if scores:
            for (a, b), score in scores.items():
                self.set_score(a, b, score)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[Hashable, Hashable, float]]) -> "PairScoreCache":
        cache = cls()
        for a, b, score in pairs:
            cache.add_score(a, b, score)
        return cache

    def _store(self, key, score: float):
        a, b = key
        self._scores[key] = float(score)
        self._neighbors.setdefault(a, set()).add(b)
        self._neighbors.setdefault(b, set()).add(a)

    def set_score(self, a: Hashable, b: Hashable, score: float):
        """Overwrite a pair's score (pinned synonym pairs are left alone)."""
        if a == b:
            raise ValueError(f"Self pair not allowed: {a}")
        key = _pair_key(a, b)
        if key in self._pinned:
            return
        self._store(key, score)

    def add_score(self, a: Hashable, b: Hashable, score: float):
        """Insert a score, keeping the max with any existing score."""
        if a == b:
            raise ValueError(f"Self pair not allowed: {a}")
        key = _pair_key(a, b)
        current = self._scores.get(key)
        if current is None or score > current:
            self._store(key, score)

    def boost(self, a: Hashable, b: Hashable, score: float = SYNONYM_SCORE):
        """Force a pair to a sentinel maximum that later writes cannot lower."""
        key = _pair_key(a, b)
        self._pinned.discard(key)
        self._store(key, max(score, self._scores.get(key, score)))
        self._pinned.add(key)

    def is_boosted(self, a: Hashable, b: Hashable) -> bool:
        return _pair_key(a, b) in self._pinned

    def get_score(self, a: Hashable, b: Hashable) -> float:
        return self._scores.get(_pair_key(a, b), 0.0)

    def remove(self, a: Hashable, b: Hashable):
        key = _pair_key(a, b)
        if self._scores.pop(key, None) is not None:
            self._pinned.discard(key)
            self._neighbors[a].discard(b)
            self._neighbors[b].discard(a)

    def neighbors(self, item: Hashable) -> Set[Hashable]:
        return set(self._neighbors.get(item, ()))

    def items_seen(self) -> List[Hashable]:
        """Every item with at least one stored pair, in text order."""
        return sorted((k for k, v in self._neighbors.items() if v), key=str)

    def pairs(self) -> Iterator[Tuple[Hashable, Hashable, float]]:
        """Stored pairs sorted by key text form."""
        for key in sorted(self._scores, key=lambda k: (str(k[0]), str(k[1]))):
            yield key[0], key[1], self._scores[key]

    def copy(self) -> "PairScoreCache":
        clone = PairScoreCache()
        clone._scores = dict(self._scores)
        clone._pinned = set(self._pinned)
        clone._neighbors = {k: set(v) for k, v in self._neighbors.items()}
        return clone

    def __contains__(self, pair) -> bool:
        a, b = pair
        return _pair_key(a, b) in self._scores

    def __len__(self) -> int:
        return len(self._scores)

    def __repr__(self) -> str:
        return f"PairScoreCache(n_pairs={len(self._scores)}, n_boosted={len(self._pinned)})"
