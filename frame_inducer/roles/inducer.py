#!/usr/bin/env python3
"""
inducer.py - Role Induction for One Frame
=========================================

Turns a frame's trigger tokens into typed semantic roles.

Stages:
    EMPTY               frame roles cleared
    CANDIDATES_GATHERED every slot of every trigger (and nearby) token seen
                        in more than min_slot_doc_count documents
    FILTERED            slots with fewer than the occurrence floor argument
                        observations, or without any head holding 5% of the
                        mass, are dropped as unreliable
    CLUSTERED_PER_TYPE  slots are partitioned by plurality type; PERSON and
                        PHYSOBJECT partitions are clustered (floor 0.45) with
                        a predicate's own subject/object pairs forbidden, and
                        replayed through the subject/object consistency guard
    ROLES_EMITTED       every surviving cluster becomes a Role with ranked
                        argument heads

The occurrence floor grows with the corpus: 10 + 30 * num_docs / 1000.

Argument Ranking:
    For each head, the type-trimmed domain count is multiplied by the head's
    domain-vs-general likelihood ratio (named-entity labels get a fixed 3.0,
    everything is capped at 15) and divided by the pooled count. A
    general-corpus share can be blended in with ``general_weight``. Scores
    are normalized to sum to 1.

Usage:
    >>> inducer = RoleInducer(tables, lexicon, config)
    >>> trace = inducer.induce_roles(frame)
    >>> print(trace.summary())
    >>> for role in frame.roles:
    ...     print(role.role_type, role.ranked_argument_heads()[:5])

Author: Frame Inducer contributors
Version: 0.3.0
"""

import math
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..association import AssociationScorer
from ..clustering import AgglomerativeClusterer, ClusterReconstructor
from ..config import InductionConfig
from ..lexicon import Lexicon, is_entity_label
from ..model import Frame, Role, RoleType, Slot, Token
from ..slot_types import SlotTypeClassifier
from ..tables import CorpusTables

__all__ = [
    'RoleInducer',
    'InductionStage',
    'InductionTrace',
]


# =============================================================================
# Data Structures
# =============================================================================

class InductionStage(Enum):
    """Progress of role induction for one frame."""
    EMPTY = "empty"
    CANDIDATES_GATHERED = "candidates_gathered"
    FILTERED = "filtered"
    CLUSTERED_PER_TYPE = "clustered_per_type"
    ROLES_EMITTED = "roles_emitted"


@dataclass
class InductionTrace:
    """
    What happened while inducing one frame's roles.

    Attributes:
        frame_id: The frame
        stage: Last stage reached
        n_candidates: Slots gathered
        n_reliable: Slots left after filtering
        occurrence_floor: Floor used by the filter
        partitions: Slot count per type
        n_merges: Merge events per clustered type
        guard_stops: Types whose replay was stopped by the consistency guard
        n_roles: Roles emitted
        used_frame_statistics: False when domain tables stood in for frame tables
    """
    frame_id: int
    stage: InductionStage = InductionStage.EMPTY
    n_candidates: int = 0
    n_reliable: int = 0
    occurrence_floor: int = 0
    partitions: Dict[RoleType, int] = field(default_factory=dict)
    n_merges: Dict[RoleType, int] = field(default_factory=dict)
    guard_stops: List[RoleType] = field(default_factory=list)
    n_roles: int = 0
    used_frame_statistics: bool = False

    def summary(self) -> str:
        parts = ", ".join(f"{t.value}={n}" for t, n in self.partitions.items())
        return (
            f"InductionTrace(frame={self.frame_id}, stage={self.stage.value}, "
            f"candidates={self.n_candidates}, reliable={self.n_reliable}, "
            f"floor={self.occurrence_floor}, partitions=[{parts}], "
            f"guard_stops={[t.value for t in self.guard_stops]}, roles={self.n_roles})"
        )

    def __repr__(self) -> str:
        return self.summary()


# =============================================================================
# Role Inducer
# =============================================================================

class RoleInducer:
    """
    Induce semantic roles for frames.

    Args:
        tables: Corpus statistics
        lexicon: Lexicon for slot typing
        config: InductionConfig (defaults if None)
        scorer: AssociationScorer to share (built from the tables if None)
        verbose: Print progress
    """

    def __init__(
        self,
        tables: CorpusTables,
        lexicon: Lexicon,
        config: Optional[InductionConfig] = None,
        scorer: Optional[AssociationScorer] = None,
        verbose: bool = False
    ):
        self.tables = tables
        self.lexicon = lexicon
        self.config = config or InductionConfig()
        self.verbose = verbose or self.config.verbose
        self.classifier = SlotTypeClassifier(
            lexicon,
            type_ratio=self.config.type_ratio,
            other_dominance=self.config.other_dominance,
        )
        if scorer is None:
            scorer = AssociationScorer(tables, self.classifier, self.config)
        elif scorer.classifier is None:
            scorer.classifier = self.classifier
        self.scorer = scorer
        self.reconstructor = ClusterReconstructor(verbose=self.verbose)

    def clear_caches(self):
        """Drop memoized vectors and slot types; results are unaffected."""
        self.scorer.clear_cache()
        self.classifier.clear_cache()

    # -------------------------------------------------------------------------
    # Candidates
    # -------------------------------------------------------------------------

    def occurrence_floor(self, frame_id: Optional[int] = None) -> int:
        """Reliability floor, scaled by the document count behind the frame's statistics."""
        return self.config.occurrence_floor_for(self.tables.num_docs_for(frame_id))

    def candidate_slots(self, tokens: Iterable) -> List[Slot]:
        """Slots of the given tokens seen in more than min_slot_doc_count documents."""
        found: List[Slot] = []
        seen: Set[str] = set()
        coref = self.tables.coref_pairs
        for token in sorted({str(t) for t in tokens}):
            names = set(self.tables.domain_args.slots_of(token))
            names.update(coref.keys_with_prefix(token + ":"))
            for name in sorted(names):
                if name in seen or name.rpartition(":")[0] != token:
                    continue
                seen.add(name)
                if self.tables.slot_doc_count(name) > self.config.min_slot_doc_count:
                    found.append(Slot.parse(name))
        return found

    @staticmethod
    def forbidden_pairs(slots: Iterable[Slot]) -> Set[Tuple[Slot, Slot]]:
        """Pairs of one predicate's slots where either side is its subject or object."""
        by_token: Dict[Token, List[Slot]] = {}
        for slot in slots:
            by_token.setdefault(slot.token, []).append(slot)
        pairs = set()
        for group in by_token.values():
            for i in range(len(group)):
                for j in range(i + 1, len(group)):
                    if group[i].is_core or group[j].is_core:
                        pairs.add((group[i], group[j]))
        return pairs

    def is_reliable(self, slot: Slot, frame_id: Optional[int] = None, floor: Optional[int] = None) -> bool:
        counts = self.tables.arg_counts_for(frame_id).args_for(slot)
        total = sum(counts.values())
        floor = self.occurrence_floor(frame_id) if floor is None else floor
        if total <= 0 or total < floor:
            return False
        return max(counts.values()) / total >= self.config.min_top_arg_prob

    def filter_reliable(self, slots: Iterable[Slot], frame_id: Optional[int] = None) -> List[Slot]:
        floor = self.occurrence_floor(frame_id)
        return [s for s in slots if self.is_reliable(s, frame_id, floor)]

    def partition_by_type(
        self,
        slots: Iterable[Slot],
        frame_id: Optional[int] = None
    ) -> Dict[RoleType, List[Slot]]:
        """Group slots by their plurality type (each slot in exactly one group)."""
        arg_table = self.tables.arg_counts_for(frame_id)
        partitions: Dict[RoleType, List[Slot]] = {}
        for slot in slots:
            role_type = self.classifier.classify(slot, arg_table.args_for(slot), frame_id)
            partitions.setdefault(role_type, []).append(slot)
        return partitions

    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------

    def pooled_arguments(
        self,
        slots: Iterable[Slot],
        role_type: RoleType,
        frame_id: Optional[int] = None
    ) -> Dict[str, float]:
        """Summed, type-trimmed argument counts of a slot group."""
        arg_table = self.tables.arg_counts_for(frame_id)
        pooled: Dict[str, float] = {}
        for slot in slots:
            trimmed = self.classifier.trim_args_by_type(role_type, arg_table.args_for(slot))
            for head, count in trimmed.items():
                pooled[head] = pooled.get(head, 0.0) + count
        return pooled

    def _argument_weight(self, head: str) -> float:
        cfg = self.config
        if is_entity_label(head):
            return cfg.ne_likelihood
        ratio = self.tables.likelihood_ratio("n-" + head)
        if math.isnan(ratio):
            ratio = cfg.likelihood_cap
        return min(ratio, cfg.likelihood_cap)

    def rank_arguments(
        self,
        slots: Iterable[Slot],
        role_type: RoleType,
        frame_id: Optional[int] = None
    ) -> List[Tuple[str, float]]:
        """Ranked (head, score) list for a role; scores sum to 1."""
        slots = list(slots)
        cfg = self.config
        pooled = self.pooled_arguments(slots, role_type, frame_id)
        total = sum(pooled.values())
        if total <= 0:
            return []

        domain_weight = 1.0 - cfg.general_weight
        scores = {head: count * self._argument_weight(head) / total for head, count in pooled.items()}
        if sum(scores.values()) <= 0:
            # No head has domain evidence in the IDF table; rank by raw counts.
            scores = {head: count / total for head, count in pooled.items()}
        scores = {head: value * domain_weight for head, value in scores.items()}

        if cfg.general_weight > 0 and self.tables.general_args is not None:
            for slot in slots:
                counts = self.tables.general_args.args_for(slot)
                slot_total = sum(counts.values())
                if slot_total <= 0:
                    continue
                for head, count in counts.items():
                    if head in pooled:
                        scores[head] += count / slot_total * cfg.general_weight

        norm = sum(scores.values())
        if norm <= 0:
            return []
        ranked = [(head, value / norm) for head, value in scores.items() if value > 0]
        return sorted(ranked, key=lambda pair: (-pair[1], pair[0]))

    def make_role(self, slots: List[Slot], role_type: RoleType, frame_id: Optional[int] = None) -> Role:
        role = Role(role_type, list(slots))
        role.set_arguments(self.rank_arguments(role.slots, role_type, frame_id))
        return role

    # -------------------------------------------------------------------------
    # Induction
    # -------------------------------------------------------------------------

    def induce_roles(self, frame: Frame, nearby: Optional[Iterable] = None) -> InductionTrace:
        """
        Replace the frame's roles with freshly induced ones.

        Args:
            frame: Frame whose trigger tokens define the candidate slots
            nearby: Extra tokens whose slots are also candidates

        Returns:
            InductionTrace describing every stage
        """
        cfg = self.config
        frame_id = frame.frame_id
        trace = InductionTrace(frame_id)
        frame.clear_roles()

        trace.used_frame_statistics = self.tables.has_frame_statistics(frame_id)
        if self.tables.frame_args and not trace.used_frame_statistics:
            warnings.warn(f"No frame statistics for frame {frame_id}; using domain tables")

        tokens = list(frame.tokens()) + list(nearby or [])
        candidates = self.candidate_slots(tokens)
        trace.n_candidates = len(candidates)
        trace.stage = InductionStage.CANDIDATES_GATHERED

        trace.occurrence_floor = self.occurrence_floor(frame_id)
        reliable = self.filter_reliable(candidates, frame_id)
        trace.n_reliable = len(reliable)
        trace.stage = InductionStage.FILTERED
        if self.verbose:
            print(f"Frame {frame_id}: {len(candidates)} candidate slots, "
                  f"{len(reliable)} reliable (floor={trace.occurrence_floor})")

        partitions = self.partition_by_type(reliable, frame_id)
        trace.partitions = {t: len(partitions.get(t, [])) for t in cfg.role_types}
        clusters_by_type: Dict[RoleType, List[List[Slot]]] = {}
        for role_type in cfg.role_types:
            slots = partitions.get(role_type, [])
            clusters, n_merges, stopped = self._cluster_slots(slots, role_type, frame_id)
            clusters_by_type[role_type] = clusters
            trace.n_merges[role_type] = n_merges
            if stopped:
                trace.guard_stops.append(role_type)
        trace.stage = InductionStage.CLUSTERED_PER_TYPE

        for role_type in cfg.role_types:
            for members in clusters_by_type[role_type]:
                if len(members) >= cfg.min_role_slots:
                    frame.add_role(self.make_role(members, role_type, frame_id))
        trace.n_roles = frame.n_roles
        trace.stage = InductionStage.ROLES_EMITTED

        if not frame.roles:
            warnings.warn(f"Frame {frame_id} has no roles after induction")
        if self.verbose:
            print(f"  {trace.summary()}")
        return trace

    def _cluster_slots(
        self,
        slots: List[Slot],
        role_type: RoleType,
        frame_id: Optional[int]
    ) -> Tuple[List[List[Slot]], int, bool]:
        if not slots:
            return [], 0, False
        cfg = self.config
        cache = self.scorer.build_slot_cache(slots, frame_id, role_type)
        clusterer = AgglomerativeClusterer(
            cfg.role_min_similarity,
            cfg.role_min_similarity,
            strategy=cfg.role_similarity,
            verbose=self.verbose,
        )
        history = clusterer.cluster(slots, cache, self.forbidden_pairs(slots))
        result = self.reconstructor.reconstruct_constrained(
            history,
            slots,
            lambda group: self.pooled_arguments(group, role_type, frame_id),
            guard=cfg.guard(),
        )
        clusters = [[slots[k] for k in sorted(cluster)] for cluster in result.clusters]
        return clusters, len(history), result.stop_reason == "guard"
