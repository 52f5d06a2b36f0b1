#!/usr/bin/env python3
"""
maintenance.py - Post-Induction Role Refinement
===============================================

Operations applied to a frame after its roles have been induced:

    merge_roles                 merge near-duplicate roles of the same type
    remove_roles                drop roles with too little argument evidence
    force_triggers_into_slots   give every verb trigger's subject and object
                                a role if any role fits at all
    add_slots_to_roles          best-fit assignment of new slots to roles
    add_tokens_to_roles         add_slots_to_roles over a token's slots

Merging is greedy and order dependent: the first qualifying pair (in role
order) is merged and the scan restarts. Every merge removes one role, so the
loop ends after at most n_roles - 1 merges. The result is convergent but not
unique.

Best-fit Assignment:
    A slot is compared with every role whose type it is compatible with.
    The best role (first seen wins ties) takes the slot when the score
    reaches ``assign_cutoff``, or when it is positive and low scores are not
    cut off. With ``force_verb_subjects`` a verb's subject is accepted on
    any positive score.

Usage:
    >>> maintenance = RoleMaintenance(inducer)
    >>> maintenance.force_triggers_into_slots(frame)
    >>> maintenance.merge_roles(frame)
    >>> removed = maintenance.remove_roles(frame)

Author: Frame Inducer contributors
Version: 0.3.0
"""

from typing import Dict, Iterable, List, Optional

from ..clustering import cluster_similarity
from ..model import Frame, Role, RoleType, Slot, Token
from ..scores import PairScoreCache
from .inducer import RoleInducer

__all__ = [
    'RoleMaintenance',
]


class RoleMaintenance:
    """
    Merge, prune and extend the roles of induced frames.

    Args:
        inducer: RoleInducer whose tables, scorer, classifier and config are shared
        verbose: Print progress (defaults to the inducer's setting)
    """

    def __init__(self, inducer: RoleInducer, verbose: Optional[bool] = None):
        self.inducer = inducer
        self.config = inducer.config
        self.tables = inducer.tables
        self.scorer = inducer.scorer
        self.classifier = inducer.classifier
        self.verbose = inducer.verbose if verbose is None else verbose

    # -------------------------------------------------------------------------
    # Merging
    # -------------------------------------------------------------------------

    def _type_caches(self, frame: Frame) -> Dict[RoleType, PairScoreCache]:
        caches = {}
        for role_type in sorted({r.role_type for r in frame.roles}, key=lambda t: t.value):
            slots = [s for r in frame.roles if r.role_type == role_type for s in r.slots]
            caches[role_type] = self.scorer.build_slot_cache(slots, frame.frame_id, role_type)
        return caches

    def _find_merge(self, frame: Frame, cutoff: float, caches: Dict[RoleType, PairScoreCache]):
        guard = self.config.guard()
        strategy = self.config.maintenance_similarity
        roles = frame.roles
        for i in range(len(roles)):
            for j in range(i + 1, len(roles)):
                if roles[i].role_type != roles[j].role_type:
                    continue
                role_type = roles[i].role_type
                score = cluster_similarity(roles[i].slots, roles[j].slots, caches[role_type], strategy)
                if score < cutoff:
                    continue
                args_i = self.inducer.pooled_arguments(roles[i].slots, role_type, frame.frame_id)
                args_j = self.inducer.pooled_arguments(roles[j].slots, role_type, frame.frame_id)
                if guard.blocks(roles[i].slots, roles[j].slots, args_i, args_j):
                    if self.verbose:
                        print(f"  Guard keeps roles {i} and {j} apart (score={score:.3f})")
                    continue
                return i, j, score
        return None

    def merge_roles(self, frame: Frame, cutoff: Optional[float] = None) -> int:
        """
        Repeatedly merge the first same-type role pair scoring at least cutoff.

        Args:
            frame: Frame whose roles are merged in place
            cutoff: Minimum role similarity (default: config.merge_cutoff)

        Returns:
            Number of merges performed
        """
        cutoff = self.config.merge_cutoff if cutoff is None else cutoff
        # Merging only unions slot sets, so the pair scores never change.
        caches = self._type_caches(frame)
        merges = 0
        for _ in range(max(len(frame.roles) - 1, 0)):
            found = self._find_merge(frame, cutoff, caches)
            if found is None:
                break
            i, j, score = found
            if self.verbose:
                print(f"  Merging roles {i} and {j} of frame {frame.frame_id} (score={score:.3f})")
            frame.merge_roles(i, j)
            merged = frame.roles[i]
            merged.set_arguments(self.inducer.rank_arguments(merged.slots, merged.role_type, frame.frame_id))
            merges += 1
        return merges

    # -------------------------------------------------------------------------
    # Pruning
    # -------------------------------------------------------------------------

    def role_evidence(self, role: Role) -> int:
        """Summed domain argument counts over the role's slots."""
        return sum(self.tables.domain_args.total(slot) for slot in role.slots)

    def remove_roles(self, frame: Frame, min_evidence: Optional[int] = None) -> List[Role]:
        """Drop roles whose evidence is below min_evidence; returns the removed roles."""
        floor = self.config.min_role_evidence if min_evidence is None else min_evidence
        removed = [role for role in frame.roles if self.role_evidence(role) < floor]
        for role in removed:
            if self.verbose:
                print(f"  Removing role {role.summary()} (evidence={self.role_evidence(role)})")
            frame.remove_role(role)
        return removed

    # -------------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------------

    def compatible_types(self, slot: Slot) -> Dict[RoleType, bool]:
        args = self.tables.domain_args.args_for(slot)
        return self.classifier.type_flags(slot, args, "domain")

    def role_fit(self, slot: Slot, role: Role, frame_id: Optional[int] = None) -> float:
        """Similarity of one slot to a role's slot set."""
        cache = PairScoreCache()
        for member in role.slots:
            if member == slot:
                continue
            score = self.scorer.slot_association(slot, member, frame_id, role.role_type)
            if score > 0:
                cache.set_score(slot, member, score)
        return cluster_similarity([slot], role.slots, cache, self.config.maintenance_similarity)

    def best_role(self, slot: Slot, frame: Frame):
        """(role, score) of the best compatible role; (None, -1.0) if none is compatible."""
        flags = self.compatible_types(slot)
        best: Optional[Role] = None
        best_score = -1.0
        for role in frame.roles:
            if not flags.get(role.role_type, False):
                continue
            score = self.role_fit(slot, role, frame.frame_id)
            if score > best_score:
                best, best_score = role, score
        return best, best_score

    def accepts(self, slot: Slot, score: float, cutoff_low_scores: bool) -> bool:
        if score >= self.config.assign_cutoff:
            return True
        if not cutoff_low_scores and score > 0:
            return True
        return (
            self.config.force_verb_subjects
            and slot.token.is_verb
            and slot.is_subject
            and score > 0
        )

    def add_slots_to_roles(
        self,
        slots: Iterable,
        frame: Frame,
        cutoff_low_scores: bool = True
    ) -> Dict[Slot, Role]:
        """
        Assign unassigned slots to their best-fitting roles.

        Every slot is matched against the roles as they were on entry; the
        accepted assignments are applied together at the end.

        Args:
            slots: Candidate slots (or their text forms)
            frame: Frame with induced roles
            cutoff_low_scores: If False, any positive score is enough

        Returns:
            Mapping of each added slot to the role that took it
        """
        mapping: Dict[Slot, Role] = {}
        if not frame.roles:
            return mapping
        assigned = set(frame.role_slots())

        for slot in slots:
            slot = slot if isinstance(slot, Slot) else Slot.parse(slot)
            if slot in assigned or slot in mapping:
                continue
            role, score = self.best_role(slot, frame)
            if role is not None and self.accepts(slot, score, cutoff_low_scores):
                mapping[slot] = role
                if self.verbose:
                    print(f"  + {slot} -> {role.role_type.value} role (score={score:.3f})")

        touched = []
        for slot, role in mapping.items():
            role.add_slot(slot)
            if not any(r is role for r in touched):
                touched.append(role)
        for role in touched:
            role.set_arguments(self.inducer.rank_arguments(role.slots, role.role_type, frame.frame_id))
        return mapping

    def force_triggers_into_slots(self, frame: Frame) -> Dict[Slot, Role]:
        """Offer every verb trigger's unassigned subject and object to the roles."""
        assigned = set(frame.role_slots())
        missing = []
        for token in frame.tokens():
            if not token.is_verb:
                continue
            for slot in (token.slot("s"), token.slot("o")):
                if slot not in assigned:
                    missing.append(slot)
        return self.add_slots_to_roles(missing, frame, cutoff_low_scores=False)

    def add_tokens_to_roles(
        self,
        tokens: Iterable,
        frame: Frame,
        cutoff_low_scores: bool = True
    ) -> Dict[Slot, Role]:
        """Offer the candidate slots of each token to the frame's roles."""
        mapping: Dict[Slot, Role] = {}
        if not frame.roles:
            if self.verbose:
                print(f"  Frame {frame.frame_id} has no roles; nothing to extend")
            return mapping
        for token in tokens:
            token = token if isinstance(token, Token) else Token.parse(token)
            slots = self.inducer.candidate_slots([token])
            mapping.update(self.add_slots_to_roles(slots, frame, cutoff_low_scores))
        return mapping
