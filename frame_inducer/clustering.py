#!/usr/bin/env python3
"""
clustering.py - Agglomerative Clustering and Merge-History Replay
=================================================================

Two-phase hierarchical clustering:

    1. AgglomerativeClusterer produces an ordered merge history
       (MergeEvent list) from a PairScoreCache over a fixed item list.
    2. ClusterReconstructor replays that history into final clusters,
       either unconstrained (plain union of merges) or constrained by a
       semantic-consistency guard that can abort the remaining history.

Keeping the two apart means one clustering run can be reinterpreted with
different stopping rules without recomputing any scores.

Cluster Similarity Strategies:
    - SINGLE_LINK:           max score over member pairs
    - NEW_LINK:              mean score over all cross pairs
    - NEW_LINK_WITH_PENALTY: mean score times the fraction of cross pairs
                             with a positive score; fractions below 0.68 are
                             replaced by a harsh 0.25

Forbidden Pairs:
    Two singletons in a forbidden pair never merge. For larger clusters the
    score drops to 0 once forbidden cross pairs outnumber half of either side.

Consistency Guard (role induction):
    Two multi-slot clusters that hold the subject and the object of the same
    predicate AND whose pooled argument distributions diverge describe
    different participants. Reaching such a merge stops the replay.

Usage:
    >>> clusterer = AgglomerativeClusterer(0.45, 0.45)
    >>> history = clusterer.cluster(items, cache)
    >>> result = ClusterReconstructor().reconstruct(history, len(items))
    >>> result.clusters
    [{0, 1, 3}, {2}]

Author: Frame Inducer contributors
Version: 0.3.0
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Set, Tuple

from .model import Slot
from .scores import PairScoreCache

__all__ = [
    'ClusterSimilarity',
    'MergeEvent',
    'AgglomerativeClusterer',
    'ConsistencyGuard',
    'Reconstruction',
    'ClusterReconstructor',
    'cluster_similarity',
    'subject_object_clash',
]

# Below this fraction of connected cross pairs a cluster is considered loose.
CONNECTION_RATIO_FLOOR = 0.68
LOOSE_CLUSTER_PENALTY = 0.25


# =============================================================================
# Data Structures
# =============================================================================

class ClusterSimilarity(Enum):
    """How the score between two clusters is derived from item pair scores."""
    SINGLE_LINK = "single_link"
    NEW_LINK = "new_link"
    NEW_LINK_WITH_PENALTY = "new_link_with_penalty"


@dataclass(frozen=True)
class MergeEvent:
    """
    One step of the merge history.

    index_b's cluster was merged into index_a's cluster. Both indices point
    into the item list that clustering started with.
    """
    index_a: int
    index_b: int
    score: float


@dataclass
class Reconstruction:
    """
    Final clusters replayed from a merge history.

    Attributes:
        clusters: Disjoint sets of item indices, ordered by smallest member
        n_applied: Number of merge events applied
        stopped_early: True if the replay ended before the history did
        stop_reason: 'size_cap', 'guard', or '' when the history ran out
    """
    clusters: List[Set[int]]
    n_applied: int
    stopped_early: bool = False
    stop_reason: str = ""

    def summary(self) -> str:
        sizes = sorted((len(c) for c in self.clusters), reverse=True)
        return (
            f"Reconstruction(n_clusters={len(self.clusters)}, "
            f"n_applied={self.n_applied}, stopped_early={self.stopped_early}, "
            f"reason='{self.stop_reason}', sizes={sizes[:10]})"
        )

    def __repr__(self) -> str:
        return self.summary()


# =============================================================================
# Cluster Similarity
# =============================================================================

def _aggregate(block: np.ndarray, strategy: ClusterSimilarity) -> float:
    """Collapse a (|A| x |B|) block of pair scores into one cluster score."""
    if block.size == 0:
        return 0.0
    if strategy == ClusterSimilarity.SINGLE_LINK:
        return float(block.max())

    mean = float(block.mean())
    if strategy == ClusterSimilarity.NEW_LINK:
        return mean

    ratio = np.count_nonzero(block > 0) / block.size
    if ratio < CONNECTION_RATIO_FLOOR:
        ratio = LOOSE_CLUSTER_PENALTY
    return mean * ratio


def cluster_similarity(
    members_a: Sequence[Hashable],
    members_b: Sequence[Hashable],
    cache: PairScoreCache,
    strategy: ClusterSimilarity = ClusterSimilarity.SINGLE_LINK
) -> float:
    """
    Score between two groups of items under the given strategy.

    Args:
        members_a: First group (any items stored in the cache)
        members_b: Second group
        cache: Pair scores
        strategy: ClusterSimilarity strategy

    Returns:
        Cluster score; 0.0 if either group is empty
    """
    if not members_a or not members_b:
        return 0.0
    block = np.array(
        [[cache.get_score(a, b) if a != b else 0.0 for b in members_b] for a in members_a],
        dtype=float,
    )
    return _aggregate(block, strategy)


# =============================================================================
# Agglomerative Clusterer
# =============================================================================

class AgglomerativeClusterer:
    """
    Greedy agglomerative clustering over a fixed item list.

    Each step merges the best-scoring pair of active clusters. Ties are broken
    by the lowest combined index (then the lowest first index) so the history
    is reproducible for a given item order.

    Args:
        min_initial_similarity: Item pairs below this never form an initial edge
        min_clustering_score: No merge below this score happens
        strategy: ClusterSimilarity used to rescore clusters after a merge
        max_cluster_size: Stop once any cluster reaches this size (None = no cap)
        verbose: Print progress
    """

    def __init__(
        self,
        min_initial_similarity: float,
        min_clustering_score: float,
        strategy: ClusterSimilarity = ClusterSimilarity.SINGLE_LINK,
        max_cluster_size: Optional[int] = None,
        verbose: bool = False
    ):
        if max_cluster_size is not None and max_cluster_size < 2:
            raise ValueError(f"max_cluster_size must be >= 2, got {max_cluster_size}")
        self.min_initial_similarity = min_initial_similarity
        self.min_clustering_score = min_clustering_score
        self.strategy = strategy
        self.max_cluster_size = max_cluster_size
        self.verbose = verbose

    def _base_scores(self, items: Sequence[Hashable], cache: PairScoreCache) -> np.ndarray:
        n = len(items)
        index = {item: k for k, item in enumerate(items)}
        if len(index) != n:
            raise ValueError("Clustering items must be unique")
        base = np.zeros((n, n), dtype=float)
        for k, item in enumerate(items):
            for other in cache.neighbors(item):
                m = index.get(other)
                if m is not None and m != k:
                    base[k, m] = cache.get_score(item, other)
        return base

    @staticmethod
    def _forbidden_mask(
        items: Sequence[Hashable],
        forbidden_pairs: Optional[Iterable[Tuple[Hashable, Hashable]]]
    ) -> np.ndarray:
        n = len(items)
        mask = np.zeros((n, n), dtype=bool)
        if forbidden_pairs:
            index = {item: k for k, item in enumerate(items)}
            for a, b in forbidden_pairs:
                ka, kb = index.get(a), index.get(b)
                if ka is not None and kb is not None:
                    mask[ka, kb] = mask[kb, ka] = True
        return mask

    def _score_clusters(
        self,
        members_a: List[int],
        members_b: List[int],
        base: np.ndarray,
        forbidden: np.ndarray
    ) -> float:
        cross = np.ix_(members_a, members_b)
        invalid = int(forbidden[cross].sum())
        if invalid > len(members_a) / 2 or invalid > len(members_b) / 2:
            return 0.0
        return _aggregate(base[cross], self.strategy)

    def cluster(
        self,
        items: Sequence[Hashable],
        cache: PairScoreCache,
        forbidden_pairs: Optional[Iterable[Tuple[Hashable, Hashable]]] = None
    ) -> List[MergeEvent]:
        """
        Build the merge history.

        Args:
            items: Ordered, unique items; MergeEvent indices refer to this list
            cache: Pair scores between items
            forbidden_pairs: Item pairs that must never be merged directly

        Returns:
            Ordered list of MergeEvent (possibly empty)
        """
        n = len(items)
        if n < 2:
            return []

        base = self._base_scores(items, cache)
        forbidden = self._forbidden_mask(items, forbidden_pairs)

        # Upper triangle holds the live cluster-pair scores.
        current = np.full((n, n), -np.inf)
        initial = (base >= self.min_initial_similarity) & (base > 0) & ~forbidden
        current[initial] = base[initial]
        current[np.tril_indices(n)] = -np.inf

        linked = np.isfinite(current).any(axis=0) | np.isfinite(current).any(axis=1)
        active = [k for k in range(n) if linked[k]]
        members: Dict[int, List[int]] = {k: [k] for k in active}

        if self.verbose:
            print(f"  Clustering {n} items ({n - len(active)} loners), "
                  f"strategy={self.strategy.value}")

        history: List[MergeEvent] = []
        while True:
            best = current.max()
            if not np.isfinite(best) or best < self.min_clustering_score:
                break

            candidates = np.argwhere(current == best)
            i, j = min((tuple(c) for c in candidates.tolist()), key=lambda c: (c[0] + c[1], c[0]))
            history.append(MergeEvent(int(i), int(j), float(best)))

            members[i].extend(members.pop(j))
            active.remove(j)
            current[j, :] = -np.inf
            current[:, j] = -np.inf

            if self.max_cluster_size is not None and len(members[i]) >= self.max_cluster_size:
                if self.verbose:
                    print(f"  Cluster {i} reached size {len(members[i])}; stopping")
                break

            for k in active:
                if k == i:
                    continue
                score = self._score_clusters(members[i], members[k], base, forbidden)
                a, b = (i, k) if i < k else (k, i)
                if score > 0 and score >= self.min_clustering_score:
                    current[a, b] = score
                else:
                    current[a, b] = -np.inf

        if self.verbose:
            print(f"  {len(history)} merges")
        return history


# =============================================================================
# Consistency Guard
# =============================================================================

def subject_object_clash(slots_a: Iterable[Slot], slots_b: Iterable[Slot]) -> int:
    """
    Count slots in slots_b whose subject/object counterpart is in slots_a.

    A clash means the two groups hold complementary positions of the same
    predicate (e.g. 'v-kidnap:s' on one side and 'v-kidnap:o' on the other).
    """
    left = set(slots_a)
    return sum(1 for slot in slots_b if slot.is_core and slot.counterpart() in left)


def _normalize(counts: Dict[str, float]) -> Dict[str, float]:
    total = float(sum(counts.values()))
    if total <= 0:
        return {}
    return {key: value / total for key, value in counts.items()}


class ConsistencyGuard:
    """
    Decide whether two slot clusters describe genuinely different roles.

    Args:
        divergence_ratio: min(p1, p2) / max(p1, p2) below this marks a head as divergent
        min_arg_mass: Only heads with at least this probability on one side are compared
        min_divergent_args: Number of divergent heads that makes distributions differ
        score_ceiling: If set, the guard only checks merges scoring below this...
        min_score_drop: ...whose relative drop from the previous merge exceeds this
    """

    def __init__(
        self,
        divergence_ratio: float = 0.2,
        min_arg_mass: float = 0.02,
        min_divergent_args: int = 2,
        score_ceiling: Optional[float] = None,
        min_score_drop: float = 0.05
    ):
        self.divergence_ratio = divergence_ratio
        self.min_arg_mass = min_arg_mass
        self.min_divergent_args = min_divergent_args
        self.score_ceiling = score_ceiling
        self.min_score_drop = min_score_drop

    def arguments_differ(self, args_a: Dict[str, float], args_b: Dict[str, float]) -> bool:
        """True if at least min_divergent_args prominent heads have very different mass."""
        probs_a = _normalize(args_a)
        probs_b = _normalize(args_b)
        divergent = 0
        for head in sorted(set(probs_a) | set(probs_b)):
            pa = probs_a.get(head, 0.0)
            pb = probs_b.get(head, 0.0)
            if pa <= self.min_arg_mass and pb <= self.min_arg_mass:
                continue
            if min(pa, pb) / max(pa, pb) < self.divergence_ratio:
                divergent += 1
                if divergent >= self.min_divergent_args:
                    return True
        return False

    def should_check(self, score: float, last_score: Optional[float]) -> bool:
        if self.score_ceiling is None:
            return True
        if last_score is None or last_score <= 0:
            return False
        drop = (last_score - score) / last_score
        return score < self.score_ceiling and drop > self.min_score_drop

    def blocks(
        self,
        slots_a: Sequence[Slot],
        slots_b: Sequence[Slot],
        args_a: Dict[str, float],
        args_b: Dict[str, float]
    ) -> bool:
        if subject_object_clash(slots_a, slots_b) == 0:
            return False
        return self.arguments_differ(args_a, args_b)


# =============================================================================
# Cluster Reconstructor
# =============================================================================

class ClusterReconstructor:
    """
    Replay a merge history into final clusters.

    Args:
        verbose: Print progress
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    @staticmethod
    def _finish(
        clusters: Dict[int, Set[int]],
        owner: Dict[int, int],
        n_items: int,
        include_singletons: bool
    ) -> List[Set[int]]:
        final = list(clusters.values())
        if include_singletons:
            final.extend({k} for k in range(n_items) if k not in owner)
        return sorted(final, key=min)

    @staticmethod
    def _check_event(event: MergeEvent, n_items: int):
        for k in (event.index_a, event.index_b):
            if not 0 <= k < n_items:
                raise ValueError(f"Merge index {k} outside item list of size {n_items}")

    def reconstruct(
        self,
        history: Sequence[MergeEvent],
        n_items: int,
        stop_at_cluster_size: int = 0,
        include_singletons: bool = True
    ) -> Reconstruction:
        """
        Unconstrained replay: apply every merge in order.

        Args:
            history: Merge events from AgglomerativeClusterer
            n_items: Size of the item list the history refers to
            stop_at_cluster_size: Stop after a cluster reaches this size (0 = never)
            include_singletons: Add never-merged items as singleton clusters

        Returns:
            Reconstruction; with include_singletons it partitions all n_items
        """
        return self._replay(history, n_items, stop_at_cluster_size, include_singletons)

    def reconstruct_constrained(
        self,
        history: Sequence[MergeEvent],
        slots: Sequence[Slot],
        cluster_arguments: Callable[[List[Slot]], Dict[str, float]],
        guard: Optional[ConsistencyGuard] = None,
        stop_at_cluster_size: int = 0,
        include_singletons: bool = True
    ) -> Reconstruction:
        """
        Replay with the subject/object consistency guard.

        Before two existing multi-slot clusters are merged, the guard checks
        for a subject/object clash with divergent pooled arguments. If it
        fires, that merge and every later one are discarded.

        Args:
            history: Merge events over ``slots``
            slots: The slot list clustering started with
            cluster_arguments: Pooled, type-filtered argument counts of a slot group
            guard: ConsistencyGuard (default parameters if None)
            stop_at_cluster_size: Stop after a cluster reaches this size (0 = never)
            include_singletons: Add never-merged slots as singleton clusters
        """
        guard = guard or ConsistencyGuard()

        def check(cluster_a: Set[int], cluster_b: Set[int], score: float, last: Optional[float]) -> bool:
            if len(cluster_a) < 2 or len(cluster_b) < 2:
                return False
            if not guard.should_check(score, last):
                return False
            slots_a = [slots[k] for k in sorted(cluster_a)]
            slots_b = [slots[k] for k in sorted(cluster_b)]
            return guard.blocks(slots_a, slots_b, cluster_arguments(slots_a), cluster_arguments(slots_b))

        return self._replay(history, len(slots), stop_at_cluster_size, include_singletons, check)

    def _replay(
        self,
        history: Sequence[MergeEvent],
        n_items: int,
        stop_at_cluster_size: int,
        include_singletons: bool,
        check: Optional[Callable[[Set[int], Set[int], float, Optional[float]], bool]] = None
    ) -> Reconstruction:
        clusters: Dict[int, Set[int]] = {}
        owner: Dict[int, int] = {}
        applied = 0
        last_score: Optional[float] = None

        for event in history:
            self._check_event(event, n_items)
            key_a = owner.get(event.index_a, event.index_a)
            key_b = owner.get(event.index_b, event.index_b)
            if key_a == key_b:
                continue
            cluster_a = clusters.get(key_a, {event.index_a})
            cluster_b = clusters.get(key_b, {event.index_b})

            if check is not None and check(cluster_a, cluster_b, event.score, last_score):
                if self.verbose:
                    print(f"  Guard stop at merge {applied} (score={event.score:.3f}); "
                          f"{len(history) - applied} merges discarded")
                return Reconstruction(
                    self._finish(clusters, owner, n_items, include_singletons),
                    applied, True, "guard",
                )

            clusters.pop(key_b, None)
            merged = cluster_a | cluster_b
            clusters[key_a] = merged
            for k in merged:
                owner[k] = key_a
            applied += 1
            last_score = event.score

            if stop_at_cluster_size > 0 and len(merged) >= stop_at_cluster_size:
                stopped = applied < len(history)
                return Reconstruction(
                    self._finish(clusters, owner, n_items, include_singletons),
                    applied, stopped, "size_cap" if stopped else "",
                )

        return Reconstruction(self._finish(clusters, owner, n_items, include_singletons), applied)
