#!/usr/bin/env python3
"""
test_association.py - Tests for Token and Slot Association
==========================================================

Tests:
1. Damped PMI between tokens and its evidence thresholds
2. Argument and coreference vectors
3. Slot association: coreference, same-predicate penalty, noise floor
4. Score caches for tokens and slots

Usage:
    python test_association.py

Author: Frame Inducer contributors
"""

import argparse
import math
import sys
import os

# Add parent directory (package root) to path for imports
package_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if package_root not in sys.path:
    sys.path.insert(0, package_root)
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from toy_corpus import BOMBING_TOKENS, KIDNAP_TOKENS, create_toy_lexicon, create_toy_tables


def _scorer(tables=None, **overrides):
    from frame_inducer.association import AssociationScorer
    from frame_inducer.config import InductionConfig
    from frame_inducer.slot_types import SlotTypeClassifier

    return AssociationScorer(
        tables or create_toy_tables(),
        SlotTypeClassifier(create_toy_lexicon()),
        InductionConfig(**overrides),
    )


def test_token_association():
    """Damped PMI; too little evidence scores zero."""
    from frame_inducer.association import pmi_ratio

    print("=" * 60)
    print("TEST: Token Association")
    print("=" * 60)

    scorer = _scorer()
    total_pairs = scorer.tables.token_pairs.total()
    assert total_pairs == 242

    score = scorer.token_association("v-kidnap", "v-abduct")
    expected = (30 / 242) / ((60 / 200) * (40 / 200)) * 40 / 50
    assert abs(score - expected) < 1e-12
    assert score == scorer.token_association("v-abduct", "v-kidnap")

    # Two co-occurrences: below min_pair_count.
    assert scorer.token_association("v-kidnap", "v-explode") == 0.0
    assert scorer.token_association("v-kidnap", "v-unseen") == 0.0

    # More joint evidence, higher score.
    assert pmi_ratio(20, 40, 40, 100, 200) > pmi_ratio(10, 40, 40, 100, 200) > 0
    assert pmi_ratio(5, 0, 40, 100, 200) is None

    print(f"  assoc(v-kidnap, v-abduct) = {score:.4f}")
    print("\n✓ Token association test PASSED")
    return True


def test_argument_vectors():
    """Entity labels and rare heads are dropped; heads weighted by general IDF."""
    from frame_inducer.association import cosine_similarity
    from frame_inducer.model import RoleType

    print("\n" + "=" * 60)
    print("TEST: Argument Vectors")
    print("=" * 60)

    scorer = _scorer()
    say = scorer.argument_vector("v-say:s")
    assert "PERSON" not in say
    # No general IDF for the heads: unknown_idf (10.0) applies.
    assert say == {"official": 400.0, "spokesman": 200.0}

    typed = scorer.argument_vector("v-explode:s", role_type=RoleType.PHYSOBJECT)
    assert set(typed) == {"bomb", "dynamite", "car"}
    assert scorer.argument_vector("v-explode:s", role_type=RoleType.PERSON) == {}

    from frame_inducer.association import AssociationScorer
    untyped = AssociationScorer(create_toy_tables())
    try:
        untyped.argument_vector("v-explode:s", role_type=RoleType.PERSON)
        assert False, "typed vectors need a classifier"
    except ValueError:
        pass

    coref = scorer.coref_vector("v-kidnap:o")
    assert coref == {"v-release:o": 10.0, "v-abduct:o": 6.0}

    assert cosine_similarity({}, {"a": 1.0}) is None
    assert cosine_similarity({"a": 0.0}, {"a": 1.0}) is None
    assert abs(cosine_similarity({"a": 1.0, "b": 1.0}, {"a": 1.0}) - 1 / math.sqrt(2)) < 1e-12

    print(f"  v-say:s vector: {say}")
    print("\n✓ Argument vector test PASSED")
    return True


def test_slot_association():
    """Coreference evidence, same-predicate penalty and the noise floor."""
    from frame_inducer.tables import ArgumentCountTable, CorpusTables, IDFTable, PairCountTable

    print("\n" + "=" * 60)
    print("TEST: Slot Association")
    print("=" * 60)

    scorer = _scorer()
    # Both coreferred only with v-kidnap:o.
    assert scorer.slot_association("v-release:o", "v-abduct:o") == 1.0
    assert scorer.slot_association("v-kidnap:o", "v-release:o") > 0.9
    assert scorer.slot_association("v-kidnap:s", "v-kidnap:o") == 0.0
    assert scorer.slot_association("v-kidnap:s", "v-kidnap:s") == 1.0

    def tables_with(args):
        return CorpusTables(
            IDFTable(10), IDFTable(10), ArgumentCountTable(args), PairCountTable(), PairCountTable())

    same_token = _scorer(tables_with({
        "v-free:o": {"mayor": 5, "president": 5},
        "v-free:p_from": {"mayor": 5, "president": 5},
    }))
    assert abs(same_token.slot_association("v-free:o", "v-free:p_from") - 0.5) < 1e-12

    noisy = _scorer(tables_with({
        "v-a:s": {"x": 100, "y": 2},
        "v-b:s": {"y": 50, "z": 100},
    }))
    assert noisy.slot_association("v-a:s", "v-b:s") == 0.0
    assert noisy.n_degenerate >= 1  # empty coreference vectors

    # Per-frame statistics replace the domain ones.
    tables = create_toy_tables()
    tables.frame_args[1] = ArgumentCountTable({
        "v-kidnap:s": {"mayor": 5},
        "v-kidnap:o": {"mayor": 5},
    })
    framed = _scorer(tables)
    assert framed.slot_association("v-kidnap:s", "v-kidnap:o", frame_id=1) == 0.5
    assert framed.slot_association("v-kidnap:s", "v-kidnap:o") == 0.0

    print("\n✓ Slot association test PASSED")
    return True


def test_score_caches():
    """Token and slot caches store only positive scores."""
    from frame_inducer.model import Slot

    print("\n" + "=" * 60)
    print("TEST: Score Caches")
    print("=" * 60)

    scorer = _scorer()
    token_cache = scorer.build_token_cache(KIDNAP_TOKENS + BOMBING_TOKENS)
    assert len(token_cache) == 9
    assert token_cache.get_score("v-kidnap", "v-explode") == 0.0
    assert token_cache.get_score("v-release", "v-kidnap") > 0

    slots = [Slot.parse(s) for s in ["v-kidnap:s", "v-kidnap:o", "v-release:o"]]
    extra = [Slot.parse("v-abduct:o")]
    slot_cache = scorer.build_slot_cache(slots, extra_slots=extra + slots[:1])
    assert slot_cache.get_score(slots[2], extra[0]) == 1.0
    assert (slots[0], slots[1]) not in slot_cache
    assert set(slot_cache.items_seen()) == {slots[1], slots[2], extra[0]}

    scorer.clear_cache()
    assert scorer.slot_association(slots[2], extra[0]) == 1.0

    print(f"  {token_cache}")
    print("\n✓ Score cache test PASSED")
    return True


def main():
    parser = argparse.ArgumentParser(description="Test Association Scores")
    parser.parse_args()

    print("#" * 70)
    print("# ASSOCIATION TESTS")
    print("#" * 70)

    all_passed = True
    all_passed &= test_token_association()
    all_passed &= test_argument_vectors()
    all_passed &= test_slot_association()
    all_passed &= test_score_caches()

    print("\n" + "#" * 70)
    if all_passed:
        print("# ALL TESTS PASSED ✓")
    else:
        print("# SOME TESTS FAILED ✗")
    print("#" * 70)

    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
