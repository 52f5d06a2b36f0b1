#!/usr/bin/env python3
"""
association.py - Token and Slot Association Scores
==================================================

Two association measures feed the clusterers:

Token association (frame clustering):
    A pointwise-mutual-information ratio between two predicate tokens,

        pmi(a, b) = P(a, b) / (P(a) * P(b))
        P(a, b)   = pair_count(a, b) / total_pair_count
        P(a)      = doc_count(a) / num_docs

    damped by min(f_a, f_b) / (min(f_a, f_b) + 10) so that rare words do not
    get inflated scores. Pairs with too little data score 0 ("no evidence").
    The ratio is never negative and grows with the joint count.

Slot association (role induction):
    max(cosine of argument vectors, cosine of coreference vectors), halved
    when both slots hang off the same predicate, and 0 below a noise floor.

    Argument vector: head counts with named-entity labels removed, counts
    below 2 dropped, optionally trimmed to one semantic type, each weighted
    by the head's general-corpus IDF.
    Coreference vector: counts of slots the slot was seen coreferring with.

Vectors are memoized per (frame id, role type, slot). The memo is owned by
the scorer and can be cleared at any time.

Usage:
    >>> scorer = AssociationScorer(tables, classifier)
    >>> scorer.token_association("v-kidnap", "v-release")
    3.41
    >>> scorer.slot_association("v-kidnap:o", "v-release:o")
    0.87
    >>> cache = scorer.build_slot_cache(slots, frame_id=3, role_type=RoleType.PERSON)

Author: Frame Inducer contributors
Version: 0.3.0
"""

import numpy as np
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import InductionConfig
from .lexicon import is_entity_label
from .model import RoleType
from .scores import PairScoreCache
from .slot_types import SlotTypeClassifier
from .tables import CorpusTables, IDFTable, PairCountTable

__all__ = [
    'AssociationScorer',
    'cosine_similarity',
    'pmi_ratio',
]


def cosine_similarity(a: Dict[str, float], b: Dict[str, float]) -> Optional[float]:
    """
    Cosine between two sparse non-negative count vectors.

    Returns:
        Cosine clipped to [0, 1], or None when either vector has zero norm
    """
    if not a or not b:
        return None
    keys = sorted(set(a) | set(b))
    va = np.array([a.get(k, 0.0) for k in keys], dtype=float)
    vb = np.array([b.get(k, 0.0) for k in keys], dtype=float)
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return None
    return float(np.clip(np.dot(va, vb) / (na * nb), 0.0, 1.0))


def pmi_ratio(
    joint: int,
    freq_a: int,
    freq_b: int,
    total_pairs: int,
    num_docs: int,
    damping_offset: float = 10.0
) -> Optional[float]:
    """
    Damped PMI ratio from raw counts; None when a denominator is zero.
    """
    if total_pairs <= 0 or num_docs <= 0 or freq_a <= 0 or freq_b <= 0:
        return None
    ratio = (joint / total_pairs) / ((freq_a / num_docs) * (freq_b / num_docs))
    smaller = min(freq_a, freq_b)
    return ratio * smaller / (smaller + damping_offset)


def _slot_base(slot) -> str:
    return str(slot).rpartition(":")[0]


class AssociationScorer:
    """
    Pairwise association between tokens and between slots.

    Args:
        tables: Corpus statistics
        classifier: SlotTypeClassifier for type-trimmed argument vectors
                    (required only when a role_type other than ALL is used)
        config: InductionConfig (defaults if None)
        verbose: Print progress
    """

    def __init__(
        self,
        tables: CorpusTables,
        classifier: Optional[SlotTypeClassifier] = None,
        config: Optional[InductionConfig] = None,
        verbose: bool = False
    ):
        self.tables = tables
        self.classifier = classifier
        self.config = config or InductionConfig()
        self.verbose = verbose
        self.n_degenerate = 0
        self._arg_vectors: Dict[Tuple[Optional[int], RoleType, str], Dict[str, float]] = {}
        self._coref_vectors: Dict[Tuple[Optional[int], str], Dict[str, float]] = {}

    def clear_cache(self):
        self._arg_vectors.clear()
        self._coref_vectors.clear()

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    def token_association(
        self,
        a,
        b,
        pair_counts: Optional[PairCountTable] = None,
        idf: Optional[IDFTable] = None
    ) -> float:
        """
        Damped PMI between two tokens.

        Args:
            a, b: Tokens (or their text forms)
            pair_counts: Co-occurrence counts (default: domain token pairs)
            idf: Document frequencies (default: domain IDF)

        Returns:
            Non-negative score; 0.0 when either token is seen in fewer than
            min_doc_count documents or the pair co-occurs fewer than
            min_pair_count times
        """
        pair_counts = pair_counts if pair_counts is not None else self.tables.token_pairs
        idf = idf if idf is not None else self.tables.domain_idf
        cfg = self.config

        freq_a = idf.doc_count(a)
        freq_b = idf.doc_count(b)
        if freq_a < cfg.min_doc_count or freq_b < cfg.min_doc_count:
            return 0.0
        joint = pair_counts.count(a, b)
        if joint < cfg.min_pair_count:
            return 0.0

        score = pmi_ratio(joint, freq_a, freq_b, pair_counts.total(), idf.num_docs, cfg.damping_offset)
        if score is None or not np.isfinite(score):
            self.n_degenerate += 1
            return 0.0
        return score

    def build_token_cache(self, tokens: Iterable) -> PairScoreCache:
        """Association scores between every co-occurring pair of the given tokens."""
        wanted = {str(t): t for t in tokens}
        cache = PairScoreCache()
        for name in sorted(wanted):
            for partner in sorted(self.tables.token_pairs.partners(name)):
                if partner in wanted and name < partner:
                    score = self.token_association(name, partner)
                    if score > 0:
                        cache.set_score(wanted[name], wanted[partner], score)
        if self.verbose:
            print(f"  Token cache: {len(wanted)} tokens, {len(cache)} scored pairs")
        return cache

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    def _general_idf(self, head: str) -> float:
        idf = self.tables.general_idf.idf("n-" + head)
        return self.config.unknown_idf if idf is None else idf

    def argument_vector(
        self,
        slot,
        frame_id: Optional[int] = None,
        role_type: RoleType = RoleType.ALL
    ) -> Dict[str, float]:
        """IDF-weighted argument-head vector of a slot (memoized)."""
        key = (frame_id, role_type, str(slot))
        cached = self._arg_vectors.get(key)
        if cached is not None:
            return cached

        counts = self.tables.arg_counts_for(frame_id).args_for(slot)
        counts = {
            head: count for head, count in counts.items()
            if count >= self.config.min_arg_count and not is_entity_label(head)
        }
        if role_type != RoleType.ALL:
            if self.classifier is None:
                raise ValueError("A SlotTypeClassifier is required for typed argument vectors")
            counts = self.classifier.trim_args_by_type(role_type, counts)
        vector = {head: count * self._general_idf(head) for head, count in counts.items()}

        self._arg_vectors[key] = vector
        return vector

    def coref_vector(self, slot, frame_id: Optional[int] = None) -> Dict[str, float]:
        """Counts of the slots this slot coreferred with (memoized)."""
        key = (frame_id, str(slot))
        cached = self._coref_vectors.get(key)
        if cached is not None:
            return cached
        partners = self.tables.coref_counts_for(frame_id).partners(slot)
        vector = {
            other: float(count) for other, count in partners.items()
            if count >= self.config.min_coref_count
        }
        self._coref_vectors[key] = vector
        return vector

    def _cosine(self, a: Dict[str, float], b: Dict[str, float]) -> float:
        value = cosine_similarity(a, b)
        if value is None:
            self.n_degenerate += 1
            return 0.0
        return value

    def slot_association(
        self,
        slot_a,
        slot_b,
        frame_id: Optional[int] = None,
        role_type: RoleType = RoleType.ALL
    ) -> float:
        """
        Similarity of two slots in [0, 1].

        Args:
            slot_a, slot_b: Slots (or their text forms)
            frame_id: Use this frame's statistics when available
            role_type: Trim argument vectors to heads of this type

        Returns:
            max(argument cosine, coreference cosine), halved for slots of the
            same predicate, and 0.0 below the noise floor
        """
        if str(slot_a) == str(slot_b):
            return 1.0
        cfg = self.config
        cos_args = self._cosine(
            self.argument_vector(slot_a, frame_id, role_type),
            self.argument_vector(slot_b, frame_id, role_type),
        )
        cos_coref = self._cosine(
            self.coref_vector(slot_a, frame_id),
            self.coref_vector(slot_b, frame_id),
        )
        score = max(cos_args, cos_coref)
        if _slot_base(slot_a) == _slot_base(slot_b):
            score *= cfg.same_token_penalty
        if score < cfg.noise_floor:
            return 0.0
        return score

    def build_slot_cache(
        self,
        slots: Sequence,
        frame_id: Optional[int] = None,
        role_type: RoleType = RoleType.ALL,
        extra_slots: Sequence = ()
    ) -> PairScoreCache:
        """
        Pairwise slot association over slots (plus extra_slots against everything).

        Only positive scores are stored.
        """
        ordered: List = []
        seen = set()
        for slot in list(slots) + list(extra_slots):
            if str(slot) not in seen:
                seen.add(str(slot))
                ordered.append(slot)

        cache = PairScoreCache()
        for i in range(len(ordered)):
            for j in range(i + 1, len(ordered)):
                score = self.slot_association(ordered[i], ordered[j], frame_id, role_type)
                if score > 0:
                    cache.set_score(ordered[i], ordered[j], score)

        if self.verbose:
            print(f"  Slot cache (frame={frame_id}, type={role_type.value}): "
                  f"{len(ordered)} slots, {len(cache)} pairs, "
                  f"{self.n_degenerate} low-confidence scores so far")
        return cache
