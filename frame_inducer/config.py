#!/usr/bin/env python3
"""
config.py - Induction Parameters
================================

Every tunable constant of frame and role induction lives in one
``InductionConfig`` dataclass. Defaults reproduce the reference behavior;
override individual values with keyword arguments, a dict, or a JSON file.

Usage:
    >>> config = InductionConfig(max_cluster_size=30, verbose=True)
    >>> config.fingerprint()
    'vb-nom-30-True'
    >>> config = InductionConfig.from_json("induction.json")

Author: Frame Inducer contributors
Version: 0.3.0
"""

import json
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple

from .clustering import ClusterSimilarity, ConsistencyGuard
from .model import RoleType

__all__ = [
    'InductionConfig',
]


@dataclass
class InductionConfig:
    """Parameters for token association, role induction, maintenance and frame clustering."""

    # Token association
    min_doc_count: int = 5
    min_pair_count: int = 5
    damping_offset: float = 10.0

    # Slot association
    min_arg_count: int = 2
    min_coref_count: int = 2
    noise_floor: float = 0.1
    same_token_penalty: float = 0.5
    unknown_idf: float = 10.0

    # Slot typing
    type_ratio: float = 0.3
    other_dominance: float = 2.0

    # Role induction
    min_slot_doc_count: int = 5
    floor_base: int = 10
    floor_per_thousand_docs: int = 30
    occurrence_floor: Optional[int] = None
    min_top_arg_prob: float = 0.05
    role_min_similarity: float = 0.45
    role_types: Tuple[RoleType, ...] = (RoleType.PERSON, RoleType.PHYSOBJECT)
    role_similarity: ClusterSimilarity = ClusterSimilarity.NEW_LINK_WITH_PENALTY
    min_role_slots: int = 1
    likelihood_cap: float = 15.0
    ne_likelihood: float = 3.0
    general_weight: float = 0.0

    # Consistency guard
    divergence_ratio: float = 0.2
    min_arg_mass: float = 0.02
    min_divergent_args: int = 2
    guard_score_ceiling: Optional[float] = None
    guard_min_score_drop: float = 0.05

    # Role maintenance
    merge_cutoff: float = 0.3
    assign_cutoff: float = 0.3
    min_role_evidence: int = 200
    maintenance_similarity: ClusterSimilarity = ClusterSimilarity.SINGLE_LINK
    force_verb_subjects: bool = True

    # Frame clustering
    min_token_ratio: float = 1.4
    frame_min_similarity: float = 0.01
    frame_similarity: ClusterSimilarity = ClusterSimilarity.NEW_LINK_WITH_PENALTY
    max_cluster_size: int = 40
    min_frame_tokens: int = 2
    synonym_ratio: float = 4.0
    nominal_edit_ratio: float = 0.6
    nearby_limit: int = 10

    # Run identity (part of cache file names)
    token_type: str = "vb-nom"
    extract_arguments: bool = True

    # Work distribution
    poll_interval: float = 5.0
    max_wait: Optional[float] = None

    verbose: bool = False

    def __post_init__(self):
        if isinstance(self.role_similarity, str):
            self.role_similarity = ClusterSimilarity(self.role_similarity)
        if isinstance(self.maintenance_similarity, str):
            self.maintenance_similarity = ClusterSimilarity(self.maintenance_similarity)
        if isinstance(self.frame_similarity, str):
            self.frame_similarity = ClusterSimilarity(self.frame_similarity)
        self.role_types = tuple(
            t if isinstance(t, RoleType) else RoleType(t) for t in self.role_types
        )
        if self.max_cluster_size < 2:
            raise ValueError(f"max_cluster_size must be >= 2, got {self.max_cluster_size}")
        if not 0.0 < self.divergence_ratio <= 1.0:
            raise ValueError(f"divergence_ratio must be in (0, 1], got {self.divergence_ratio}")

    def occurrence_floor_for(self, num_docs: int) -> int:
        """Minimum argument count for a reliable slot; grows with corpus size."""
        if self.occurrence_floor is not None:
            return self.occurrence_floor
        return self.floor_base + self.floor_per_thousand_docs * num_docs // 1000

    def guard(self) -> ConsistencyGuard:
        return ConsistencyGuard(
            divergence_ratio=self.divergence_ratio,
            min_arg_mass=self.min_arg_mass,
            min_divergent_args=self.min_divergent_args,
            score_ceiling=self.guard_score_ceiling,
            min_score_drop=self.guard_min_score_drop,
        )

    def fingerprint(self) -> str:
        """Identifies runs whose cached frames are interchangeable."""
        return f"{self.token_type}-{self.max_cluster_size}-{self.extract_arguments}"

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, ClusterSimilarity):
                data[key] = value.value
        data["role_types"] = [t.value for t in self.role_types]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InductionConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: str) -> "InductionConfig":
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}: invalid JSON configuration: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{path}: configuration must be a JSON object")
        return cls.from_dict(data)

    def summary(self) -> str:
        return (
            f"InductionConfig(fingerprint={self.fingerprint()}, "
            f"role_min_similarity={self.role_min_similarity}, "
            f"merge_cutoff={self.merge_cutoff}, min_role_evidence={self.min_role_evidence})"
        )
