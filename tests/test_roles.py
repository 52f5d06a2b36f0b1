#!/usr/bin/env python3
"""
test_roles.py - Tests for Role Induction and Maintenance
========================================================

Tests on the toy terrorism-news domain:
1. Candidate gathering, reliability filter, forbidden pairs
2. Full induction of the kidnapping and bombing frames
3. Subject/object guard stop during induction
4. Sparse data: no reliable slots, no roles
5. Argument ranking (entity labels, general-corpus blend)
6. Role merging, pruning and best-fit slot assignment

Usage:
    python test_roles.py
    python test_roles.py --verbose

Author: Frame Inducer contributors
"""

import argparse
import sys
import os
import warnings

# Add parent directory (package root) to path for imports
package_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if package_root not in sys.path:
    sys.path.insert(0, package_root)
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from toy_corpus import (
    BOMBING_TOKENS, KIDNAP_TOKENS, create_sparse_tables, create_toy_lexicon, create_toy_tables,
)

VERBOSE = False


def _frame(frame_id, tokens):
    from frame_inducer.model import Frame, Token
    return Frame(frame_id, {Token.parse(t): 1.0 for t in tokens})


def _slots(*names):
    from frame_inducer.model import Slot
    return [Slot.parse(n) for n in names]


def _inducer(tables=None, **overrides):
    from frame_inducer.config import InductionConfig
    from frame_inducer.roles import RoleInducer
    return RoleInducer(
        tables or create_toy_tables(),
        create_toy_lexicon(),
        InductionConfig(**overrides),
        verbose=VERBOSE,
    )


def test_candidates_and_filter():
    """Candidate slots, the occurrence floor and forbidden pairs."""
    print("=" * 60)
    print("TEST: Candidates and Reliability Filter")
    print("=" * 60)

    inducer = _inducer()
    assert inducer.occurrence_floor() == 16

    candidates = inducer.candidate_slots(KIDNAP_TOKENS)
    assert [str(s) for s in candidates] == [
        "n-kidnapping:p_of",
        "v-abduct:o", "v-abduct:s",
        "v-kidnap:o", "v-kidnap:p_in", "v-kidnap:s",
        "v-release:o", "v-release:s",
    ]
    assert inducer.filter_reliable(candidates) == candidates

    # A slot seen 16 times passes at floor 16 but not at 17.
    p_of = candidates[0]
    assert inducer.is_reliable(p_of, floor=16)
    assert not inducer.is_reliable(p_of, floor=17)

    ks, ko, kp, other_prep = _slots("v-kidnap:s", "v-kidnap:o", "v-kidnap:p_in", "v-kidnap:p_for")
    forbidden = inducer.forbidden_pairs([ks, ko, kp, other_prep] + _slots("n-kidnapping:p_of"))
    assert (ks, ko) in forbidden
    assert (ks, kp) in forbidden and (ko, kp) in forbidden
    assert (kp, other_prep) not in forbidden
    assert len(forbidden) == 5

    print(f"  {len(candidates)} candidates, floor={inducer.occurrence_floor()}")
    print("\n✓ Candidates/filter test PASSED")
    return True


def test_induce_kidnap_frame():
    """Objects and subjects of the kidnapping predicates become separate roles."""
    from frame_inducer.model import RoleType, Slot
    from frame_inducer.roles import InductionStage

    print("\n" + "=" * 60)
    print("TEST: Induce Kidnapping Roles")
    print("=" * 60)

    inducer = _inducer()
    frame = _frame(1, KIDNAP_TOKENS)
    trace = inducer.induce_roles(frame)
    print(f"  {trace.summary()}")
    print(frame.report())

    assert trace.stage == InductionStage.ROLES_EMITTED
    assert trace.n_candidates == 8 and trace.n_reliable == 8
    assert trace.occurrence_floor == 16
    assert trace.partitions == {RoleType.PERSON: 7, RoleType.PHYSOBJECT: 0}
    assert trace.n_merges[RoleType.PERSON] == 5
    assert trace.guard_stops == []
    assert trace.n_roles == 2 == frame.n_roles
    assert not trace.used_frame_statistics

    objects, subjects = frame.roles
    assert set(objects.slots) == set(_slots("v-kidnap:o", "v-abduct:o", "v-release:o", "n-kidnapping:p_of"))
    assert set(subjects.slots) == set(_slots("v-kidnap:s", "v-abduct:s", "v-release:s"))
    assert objects.ranked_argument_heads()[0] == "president"
    assert subjects.ranked_argument_heads()[0] == "guerrilla"
    for role in frame.roles:
        assert role.role_type == RoleType.PERSON
        assert abs(sum(score for _, score in role.arguments) - 1.0) < 1e-9

    # Location slot was typed LOCATION, which is not clustered.
    assert frame.role_of(Slot.parse("v-kidnap:p_in")) is None

    # Inducing again gives the same roles.
    again = _frame(1, KIDNAP_TOKENS)
    inducer.clear_caches()
    inducer.induce_roles(again)
    assert [r.slots for r in again.roles] == [r.slots for r in frame.roles]

    print("\n✓ Kidnapping induction test PASSED")
    return True


def test_induce_bombing_frame():
    """Explosives form one PHYSOBJECT role; the bomber is a separate PERSON role."""
    from frame_inducer.model import RoleType

    print("\n" + "=" * 60)
    print("TEST: Induce Bombing Roles")
    print("=" * 60)

    inducer = _inducer()
    frame = _frame(0, BOMBING_TOKENS)
    trace = inducer.induce_roles(frame)
    print(frame.report())

    assert trace.partitions == {RoleType.PERSON: 1, RoleType.PHYSOBJECT: 3}
    person, physobject = frame.roles
    assert person.role_type == RoleType.PERSON
    assert person.slots == _slots("v-detonate:s")
    assert physobject.role_type == RoleType.PHYSOBJECT
    assert set(physobject.slots) == set(_slots("v-explode:s", "v-detonate:o", "n-explosion:p_of"))
    assert physobject.ranked_argument_heads()[0] == "bomb"

    print("\n✓ Bombing induction test PASSED")
    return True


def test_guard_stop_during_induction():
    """With forced high cross scores the guard still keeps subjects and objects apart."""
    from frame_inducer.model import RoleType
    from frame_inducer.scores import PairScoreCache

    print("\n" + "=" * 60)
    print("TEST: Guard Stop During Induction")
    print("=" * 60)

    subjects = _slots("v-kidnap:s", "v-abduct:s", "v-release:s")
    objects = _slots("v-kidnap:o", "n-kidnapping:p_of")
    forced = PairScoreCache()
    for group in (subjects, objects):
        for i in range(len(group)):
            for j in range(i + 1, len(group)):
                forced.set_score(group[i], group[j], 0.95)
    for s in subjects:
        for o in objects:
            forced.set_score(s, o, 0.9)

    inducer = _inducer()

    def forced_cache(slots, frame_id=None, role_type=RoleType.ALL, extra_slots=()):
        return forced if role_type == RoleType.PERSON else PairScoreCache()

    inducer.scorer.build_slot_cache = forced_cache

    frame = _frame(1, KIDNAP_TOKENS)
    trace = inducer.induce_roles(frame)
    print(frame.report())

    assert trace.guard_stops == [RoleType.PERSON]
    assert trace.n_merges[RoleType.PERSON] == 4
    # {p_of, kidnap:o}, {abduct:o}, {subjects}, {release:o}
    assert frame.n_roles == 4
    assert set(frame.roles[0].slots) == set(objects)
    assert set(frame.roles[2].slots) == set(subjects)
    ks, ko = _slots("v-kidnap:s", "v-kidnap:o")
    assert frame.role_of(ks) is not frame.role_of(ko)

    print("\n✓ Guard stop test PASSED")
    return True


def test_sparse_frame():
    """Too few argument observations: no reliable slots, no roles, a warning."""
    from frame_inducer.roles import InductionStage

    print("\n" + "=" * 60)
    print("TEST: Sparse Frame")
    print("=" * 60)

    inducer = _inducer(create_sparse_tables())
    assert inducer.occurrence_floor() == 10

    frame = _frame(0, ["v-hijack", "n-plane"])
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        trace = inducer.induce_roles(frame)

    assert trace.n_candidates == 2
    assert trace.n_reliable == 0
    assert trace.n_roles == 0 and frame.roles == []
    assert trace.stage == InductionStage.ROLES_EMITTED
    assert any("no roles" in str(w.message) for w in caught)

    print(f"  {trace.summary()}")
    print("\n✓ Sparse frame test PASSED")
    return True


def test_frame_statistics_warning():
    """Missing per-frame tables fall back to domain tables with a warning."""
    from frame_inducer.tables import ArgumentCountTable

    print("\n" + "=" * 60)
    print("TEST: Frame Statistics Fallback Warning")
    print("=" * 60)

    tables = create_toy_tables()
    tables.frame_args[9] = ArgumentCountTable({"v-kidnap:s": {"rebel": 30}})
    inducer = _inducer(tables)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        trace = inducer.induce_roles(_frame(1, KIDNAP_TOKENS))
    assert not trace.used_frame_statistics
    assert any("No frame statistics" in str(w.message) for w in caught)
    assert trace.n_roles == 2

    print("\n✓ Fallback warning test PASSED")
    return True


def test_frame_occurrence_floor():
    """A frame with its own document counts scales the floor by them."""
    from frame_inducer.tables import IDFTable

    print("\n" + "=" * 60)
    print("TEST: Per-Frame Occurrence Floor")
    print("=" * 60)

    baseline = _inducer().induce_roles(_frame(1, KIDNAP_TOKENS))
    assert baseline.occurrence_floor == 16

    tables = create_toy_tables()
    tables.frame_idf[1] = IDFTable(1000, {"v-kidnap": 30}, {"v-kidnap": 25})
    inducer = _inducer(tables)
    assert inducer.occurrence_floor() == 16
    assert inducer.occurrence_floor(1) == 40
    assert inducer.occurrence_floor(2) == 16

    trace = inducer.induce_roles(_frame(1, KIDNAP_TOKENS))
    print(f"  {trace.summary()}")
    assert trace.used_frame_statistics
    assert trace.occurrence_floor == 40
    assert trace.n_reliable <= baseline.n_reliable

    print("\n✓ Per-frame occurrence floor test PASSED")
    return True


def test_rank_arguments():
    """Entity labels get a fixed likelihood; general counts can be blended in."""
    from frame_inducer.model import RoleType
    from frame_inducer.tables import ArgumentCountTable

    print("\n" + "=" * 60)
    print("TEST: Argument Ranking")
    print("=" * 60)

    inducer = _inducer()
    ranked = inducer.rank_arguments(_slots("v-say:s"), RoleType.PERSON)
    assert ranked[0][0] == "PERSON"

    # No domain evidence for any head: raw counts decide.
    ranked = inducer.rank_arguments(_slots("v-kidnap:o"), RoleType.PERSON)
    assert [h for h, _ in ranked] == ["president", "mayor", "journalist", "businessman"]
    assert abs(ranked[0][1] - 15 / 45) < 1e-12

    tables = create_toy_tables()
    tables.general_args = ArgumentCountTable({"v-kidnap:o": {"mayor": 100}})
    blended = _inducer(tables, general_weight=0.5)
    ranked = blended.rank_arguments(_slots("v-kidnap:o"), RoleType.PERSON)
    assert ranked[0][0] == "mayor"
    assert abs(sum(s for _, s in ranked) - 1.0) < 1e-9

    assert inducer.rank_arguments(_slots("v-kidnap:p_in"), RoleType.PERSON) == []

    print(f"  blended: {ranked}")
    print("\n✓ Argument ranking test PASSED")
    return True


def test_merge_and_remove_roles():
    """Greedy same-type merging, guard refusals and evidence pruning."""
    from frame_inducer.model import Role, RoleType
    from frame_inducer.roles import RoleMaintenance

    print("\n" + "=" * 60)
    print("TEST: Merge and Remove Roles")
    print("=" * 60)

    inducer = _inducer()
    maintenance = RoleMaintenance(inducer)
    ks, as_, ko = _slots("v-kidnap:s", "v-abduct:s", "v-kidnap:o")

    frame = _frame(1, KIDNAP_TOKENS)
    for slot in (ks, as_, ko):
        frame.add_role(Role(RoleType.PERSON, [slot]))
    assert maintenance.merge_roles(frame) == 1
    assert frame.n_roles == 2
    assert frame.roles[0].slots == [ks, as_]
    assert frame.roles[0].ranked_argument_heads()[0] == "guerrilla"

    # Cutoff 0 lets every pair through except the guarded subject/object pair.
    clash = _frame(1, KIDNAP_TOKENS)
    clash.add_role(Role(RoleType.PERSON, [ks]))
    clash.add_role(Role(RoleType.PERSON, [ko]))
    assert maintenance.merge_roles(clash, cutoff=0.0) == 0
    assert clash.n_roles == 2

    # Roles of different types never merge.
    mixed = _frame(1, KIDNAP_TOKENS)
    mixed.add_role(Role(RoleType.PERSON, [ks]))
    mixed.add_role(Role(RoleType.PHYSOBJECT, [as_]))
    assert maintenance.merge_roles(mixed, cutoff=0.0) == 0

    induced = _frame(1, KIDNAP_TOKENS)
    inducer.induce_roles(induced)
    objects, subjects = induced.roles
    assert maintenance.role_evidence(subjects) == 98
    assert maintenance.role_evidence(objects) == 111
    removed = maintenance.remove_roles(induced, min_evidence=100)
    assert removed == [subjects]
    assert induced.roles == [objects]
    assert maintenance.remove_roles(induced) == [objects]  # default floor 200

    print("\n✓ Merge/remove test PASSED")
    return True


def test_slot_assignment():
    """Best-fit assignment of new slots, trigger forcing and acceptance rules."""
    from frame_inducer.model import Role, RoleType, Slot
    from frame_inducer.roles import RoleMaintenance

    print("\n" + "=" * 60)
    print("TEST: Slot Assignment")
    print("=" * 60)

    inducer = _inducer()
    maintenance = RoleMaintenance(inducer)

    frame = _frame(1, ["v-kidnap", "n-kidnapping"])
    inducer.induce_roles(frame)
    assert frame.n_roles == 2
    object_role = frame.role_of(Slot.parse("v-kidnap:o"))
    subject_role = frame.role_of(Slot.parse("v-kidnap:s"))
    assert object_role is not subject_role

    mapping = maintenance.add_tokens_to_roles(["v-abduct", "v-release"], frame)
    assert mapping[Slot.parse("v-abduct:o")] is object_role
    assert mapping[Slot.parse("v-release:o")] is object_role
    assert mapping[Slot.parse("v-abduct:s")] is subject_role
    assert mapping[Slot.parse("v-release:s")] is subject_role
    assert len(mapping) == 4

    # Already assigned or incompatible slots are left alone.
    assert maintenance.add_slots_to_roles(["v-kidnap:o", "v-kidnap:p_in"], frame) == {}
    role, score = maintenance.best_role(Slot.parse("v-kidnap:p_in"), frame)
    assert role is None and score == -1.0

    triggers = _frame(2, ["v-kidnap", "v-release", "n-kidnapping"])
    triggers.add_role(Role(RoleType.PERSON, _slots("v-kidnap:o", "n-kidnapping:p_of")))
    triggers.add_role(Role(RoleType.PERSON, _slots("v-kidnap:s")))
    forced = maintenance.force_triggers_into_slots(triggers)
    assert forced == {
        Slot.parse("v-release:o"): triggers.roles[0],
        Slot.parse("v-release:s"): triggers.roles[1],
    }

    ks, ko = _slots("v-kidnap:s", "v-kidnap:o")
    assert not maintenance.accepts(ko, 0.1, True)
    assert maintenance.accepts(ko, 0.1, False)
    assert maintenance.accepts(ks, 0.1, True)
    assert maintenance.accepts(ko, 0.3, True)
    assert not maintenance.accepts(ko, 0.0, False)
    strict = RoleMaintenance(_inducer(force_verb_subjects=False))
    assert not strict.accepts(ks, 0.1, True)

    assert maintenance.add_tokens_to_roles(["v-abduct"], _frame(3, ["v-abduct"])) == {}

    print("\n✓ Slot assignment test PASSED")
    return True


def main():
    global VERBOSE
    parser = argparse.ArgumentParser(description="Test Role Induction")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()
    VERBOSE = args.verbose

    print("#" * 70)
    print("# ROLE INDUCTION TESTS")
    print("#" * 70)

    all_passed = True
    all_passed &= test_candidates_and_filter()
    all_passed &= test_induce_kidnap_frame()
    all_passed &= test_induce_bombing_frame()
    all_passed &= test_guard_stop_during_induction()
    all_passed &= test_sparse_frame()
    all_passed &= test_frame_statistics_warning()
    all_passed &= test_frame_occurrence_floor()
    all_passed &= test_rank_arguments()
    all_passed &= test_merge_and_remove_roles()
    all_passed &= test_slot_assignment()

    print("\n" + "#" * 70)
    if all_passed:
        print("# ALL TESTS PASSED ✓")
    else:
        print("# SOME TESTS FAILED ✗")
    print("#" * 70)

    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
