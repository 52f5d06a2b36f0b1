#!/usr/bin/env python3
"""
slot_types.py - Coarse Semantic Typing of Slots
===============================================

A slot's type is read off the argument heads that have filled it. With a
lexicon each head votes for the categories it belongs to:

    PERSON      persons, groups, PERSON/ORGANIZATION labels
    LOCATION    places, LOCATION labels
    EVENT       event and act nouns
    PHYSOBJECT  non-person, non-location objects and materials
    OTHER       known words that are neither persons nor locations

Votes are weighted by how often the head filled the slot. Heads the lexicon
does not know split their weight between PERSON and LOCATION: in news text
most unknown proper nouns are people or places.

Two questions are answered:

    classify(slot, args)              one plurality type per slot
    slot_type_matches(type, slot, args)
                                      does the type hold more than
                                      ``type_ratio`` of the argument mass?

The second is cheap and non-exclusive; it is used to prune pairs before
similarity scoring. Both answers are memoized per (slot, table) and may be
cleared at any time.

Author: Frame Inducer contributors
Version: 0.3.0
"""

from typing import Dict, Hashable, Tuple

from .lexicon import Lexicon
from .model import RoleType

__all__ = [
    'SlotTypeClassifier',
    'VOTING_TYPES',
]

# Plurality candidates, in tie-break order.
VOTING_TYPES = (RoleType.PERSON, RoleType.LOCATION, RoleType.EVENT, RoleType.PHYSOBJECT)


class SlotTypeClassifier:
    """
    Assign coarse semantic types to slots from their observed arguments.

    Args:
        lexicon: Lexicon answering category questions about heads
        type_ratio: Share of argument mass a type needs in slot_type_matches
        other_dominance: OTHER wins outright when its votes exceed this
                         multiple of the best competing type
        unknown_weight: Share of an unknown head's count given to PERSON and
                        to LOCATION each
    """

    def __init__(
        self,
        lexicon: Lexicon,
        type_ratio: float = 0.3,
        other_dominance: float = 2.0,
        unknown_weight: float = 0.5
    ):
        self.lexicon = lexicon
        self.type_ratio = type_ratio
        self.other_dominance = other_dominance
        self.unknown_weight = unknown_weight
        self._class_cache: Dict[Tuple[str, Hashable], RoleType] = {}
        self._match_cache: Dict[Tuple[RoleType, str, Hashable], bool] = {}

    def clear_cache(self):
        self._class_cache.clear()
        self._match_cache.clear()

    # -------------------------------------------------------------------------
    # Single heads
    # -------------------------------------------------------------------------

    def head_matches(self, role_type: RoleType, head: str) -> bool:
        """Whether one argument head belongs to a type."""
        lex = self.lexicon
        if role_type == RoleType.ALL:
            return True
        if role_type == RoleType.PERSON:
            return lex.is_person(head)
        if role_type == RoleType.LOCATION:
            return lex.is_location(head)
        if role_type == RoleType.EVENT:
            return lex.is_event_noun(head)
        if role_type == RoleType.PHYSOBJECT:
            return lex.is_physical_object(head) or lex.is_material(head)
        return not lex.is_person(head) and not lex.is_location(head)

    def trim_args_by_type(self, role_type: RoleType, arg_counts: Dict[str, float]) -> Dict[str, float]:
        """Copy of arg_counts keeping only heads of the given type."""
        if role_type == RoleType.ALL or not arg_counts:
            return dict(arg_counts or {})
        return {h: c for h, c in arg_counts.items() if self.head_matches(role_type, h)}

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    def type_votes(self, arg_counts: Dict[str, float]) -> Dict[RoleType, float]:
        """Count-weighted category votes of a slot's argument heads."""
        votes = {t: 0.0 for t in VOTING_TYPES + (RoleType.OTHER,)}
        for head, count in (arg_counts or {}).items():
            if count <= 0:
                continue
            if self.lexicon.is_unknown_word(head):
                votes[RoleType.PERSON] += count * self.unknown_weight
                votes[RoleType.LOCATION] += count * self.unknown_weight
                continue
            matched = False
            for role_type in VOTING_TYPES:
                if self.head_matches(role_type, head):
                    votes[role_type] += count
                    matched = True
            if not matched:
                votes[RoleType.OTHER] += count
        return votes

    def classify(self, slot, arg_counts: Dict[str, float], cache_key: Hashable = None) -> RoleType:
        """
        Plurality type of a slot.

        Args:
            slot: Slot (or its text form); only used as the memo key
            arg_counts: head -> count observed in the slot
            cache_key: Distinguishes argument tables (e.g. a frame id)

        Returns:
            PERSON, LOCATION, EVENT or PHYSOBJECT by plurality; OTHER when
            nothing votes or OTHER outweighs the best type by other_dominance
        """
        key = (str(slot), cache_key)
        cached = self._class_cache.get(key)
        if cached is not None:
            return cached

        votes = self.type_votes(arg_counts)
        best = max(VOTING_TYPES, key=lambda t: (votes[t], -VOTING_TYPES.index(t)))
        if votes[best] <= 0 or votes[RoleType.OTHER] > self.other_dominance * votes[best]:
            result = RoleType.OTHER
        else:
            result = best

        self._class_cache[key] = result
        return result

    def slot_type_matches(
        self,
        role_type: RoleType,
        slot,
        arg_counts: Dict[str, float],
        cache_key: Hashable = None
    ) -> bool:
        """True if heads of role_type hold more than type_ratio of the slot's mass."""
        if role_type == RoleType.ALL:
            return True
        key = (role_type, str(slot), cache_key)
        cached = self._match_cache.get(key)
        if cached is not None:
            return cached

        total = sum(c for c in (arg_counts or {}).values() if c > 0)
        if total <= 0:
            result = False
        else:
            matching = sum(
                c for h, c in arg_counts.items() if c > 0 and self.head_matches(role_type, h)
            )
            result = matching / total > self.type_ratio

        self._match_cache[key] = result
        return result

    def type_flags(self, slot, arg_counts: Dict[str, float], cache_key: Hashable = None) -> Dict[RoleType, bool]:
        """slot_type_matches for every concrete type."""
        return {
            t: self.slot_type_matches(t, slot, arg_counts, cache_key)
            for t in RoleType if t != RoleType.ALL
        }

    def __repr__(self) -> str:
        return (
            f"SlotTypeClassifier(type_ratio={self.type_ratio}, "
            f"cached={len(self._class_cache)}/{len(self._match_cache)})"
        )
