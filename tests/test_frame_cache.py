#!/usr/bin/env python3
"""
test_frame_cache.py - Tests for Frame Persistence and Work Claims
=================================================================

Tests:
1. Cache save/load and fingerprint misses
2. Per-frame output directories (ordering, duplicates, foreign fingerprints)
3. Atomic per-frame writes
4. Exclusive work claims
5. Bounded waiting for worker outputs

Usage:
    python test_frame_cache.py

Author: Frame Inducer contributors
"""

import argparse
import sys
import os
import tempfile
import time
import warnings

# Add parent directory (package root) to path for imports
package_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if package_root not in sys.path:
    sys.path.insert(0, package_root)


def _frame(frame_id, score=1.0):
    from frame_inducer.model import Frame, Role, RoleType, Slot, Token

    frame = Frame(frame_id, {Token.parse("v-kidnap"): 2.0, Token.parse("v-abduct"): 2.0}, score)
    frame.add_role(Role(RoleType.PERSON, [Slot.parse("v-kidnap:s"), Slot.parse("v-abduct:s")],
                        [("guerrilla", 0.6), ("rebel", 0.4)]))
    return frame


def test_cache_round_trip():
    """Saved frames reload; another fingerprint is a miss."""
    from frame_inducer.config import InductionConfig
    from frame_inducer.frame_cache import FrameCache

    print("=" * 60)
    print("TEST: Frame Cache Round Trip")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as tmp:
        base = os.path.join(tmp, "runs", "muc")
        cache = FrameCache(base, InductionConfig(), verbose=True)
        assert cache.path == base + "-vb-nom-40-True"
        assert cache.load() is None

        frames = [_frame(0, 3.5), _frame(1, 2.0)]
        cache.save(frames)
        assert cache.exists()
        loaded = cache.load()
        assert [f.to_line() for f in loaded] == [f.to_line() for f in frames]

        other = FrameCache(base, InductionConfig(max_cluster_size=30))
        assert not other.exists()
        assert other.load() is None

    print("\n✓ Cache round trip test PASSED")
    return True


def test_output_directory():
    """Per-frame outputs are read in id order; later files win."""
    from frame_inducer.config import InductionConfig
    from frame_inducer.frame_cache import FrameCache, read_frames, write_frames

    print("\n" + "=" * 60)
    print("TEST: Per-Frame Output Directory")
    print("=" * 60)

    cache = FrameCache("unused", InductionConfig())
    fp = cache.fingerprint
    with tempfile.TemporaryDirectory() as tmp:
        out_dir = os.path.join(tmp, "frames")
        assert cache.count_outputs(out_dir) == 0

        for frame_id in (10, 2, 0):
            path = cache.write_frame(out_dir, _frame(frame_id))
            assert os.path.basename(path) == f"frame{frame_id}-{fp}"

        # Same frame id twice: the file sorting last wins.
        write_frames(os.path.join(out_dir, f"frame2-rerun-{fp}"), [_frame(2, 9.0)])
        # Other fingerprints and unrelated files are ignored.
        write_frames(os.path.join(out_dir, "frame5-vb-nom-30-True"), [_frame(5)])
        with open(os.path.join(out_dir, "notes.txt"), 'w', encoding='utf-8') as f:
            f.write("not a frame\n")

        frames = cache.read_directory(out_dir)
        assert [f.frame_id for f in frames] == [0, 2, 10]
        assert frames[1].cluster_score == 1.0
        assert cache.count_outputs(out_dir) == 4

        bad = os.path.join(tmp, "bad")
        with open(bad, 'w', encoding='utf-8') as f:
            f.write(_frame(0).to_line() + "\n\nnot a frame line\n")
        try:
            read_frames(bad)
            assert False, "malformed frame file must fail"
        except ValueError as e:
            assert f"{bad}:3" in str(e)
            print(f"  Rejected: {e}")

    print("\n✓ Output directory test PASSED")
    return True


def test_atomic_frame_writes():
    """A failed write leaves no output; only complete files are counted."""
    from frame_inducer.config import InductionConfig
    from frame_inducer.frame_cache import FrameCache, read_frames, write_frames
    from frame_inducer.work_claims import wait_for_outputs

    print("\n" + "=" * 60)
    print("TEST: Atomic Frame Writes")
    print("=" * 60)

    def interrupted():
        yield _frame(0)
        raise RuntimeError("worker killed")

    cache = FrameCache("unused", InductionConfig())
    with tempfile.TemporaryDirectory() as tmp:
        path = cache.frame_output_path(tmp, 0)
        try:
            write_frames(path, interrupted())
            assert False, "interrupted write must raise"
        except RuntimeError:
            pass
        assert os.listdir(tmp) == []
        assert cache.count_outputs(tmp) == 0

        cache.write_frame(tmp, _frame(0))
        assert os.listdir(tmp) == [os.path.basename(path)]
        assert len(read_frames(path)) == 1

        # A worker's in-progress file is hidden from both counters.
        with open(os.path.join(tmp, f".frame1-{cache.fingerprint}.99.tmp"), 'w', encoding='utf-8') as f:
            f.write("partial")
        assert cache.count_outputs(tmp) == 1
        assert [f.frame_id for f in cache.read_directory(tmp)] == [0]
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            assert not wait_for_outputs(tmp, 2, poll_interval=0.01, max_wait=0.05)

    print("\n✓ Atomic frame writes test PASSED")
    return True


def test_work_claims():
    """Only the first claim of a name succeeds."""
    from frame_inducer.work_claims import WorkClaims

    print("\n" + "=" * 60)
    print("TEST: Work Claims")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as tmp:
        claims = WorkClaims(os.path.join(tmp, "a", "locks"))
        name = WorkClaims.frame_claim_name(7)
        assert name == "induceslots-frame-7"
        assert not claims.is_claimed(name)
        assert claims.claim(name)
        assert not claims.claim(name)
        assert claims.is_claimed(name)

        # A second worker sharing the directory sees the claim.
        other = WorkClaims(os.path.join(tmp, "a", "locks"))
        assert not other.claim(name)
        assert other.claim(WorkClaims.frame_claim_name(8))

        path = claims.marker_path("runs/muc/frame")
        assert os.path.basename(path) == "runs--muc--frame.lock"
        with open(claims.marker_path(name), 'r', encoding='utf-8') as f:
            assert f.read().strip() == str(os.getpid())

    print("\n✓ Work claims test PASSED")
    return True


def test_wait_for_outputs():
    """Waiting returns at once when done and gives up after max_wait."""
    from frame_inducer.work_claims import wait_for_outputs

    print("\n" + "=" * 60)
    print("TEST: Wait for Outputs")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as tmp:
        for k in range(3):
            with open(os.path.join(tmp, f"frame{k}"), 'w', encoding='utf-8') as f:
                f.write("x\n")
        os.makedirs(os.path.join(tmp, "subdir"))

        assert wait_for_outputs(tmp, 3, poll_interval=0.01)
        assert wait_for_outputs(tmp, 0)

        start = time.monotonic()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            done = wait_for_outputs(tmp, 4, poll_interval=0.05, max_wait=0.2)
        elapsed = time.monotonic() - start
        assert not done
        assert elapsed < 2.0
        assert any("Timed out" in str(w.message) for w in caught)

        polls = []

        def count(path):
            polls.append(path)
            return len(polls)

        assert wait_for_outputs(tmp, 3, poll_interval=0.01, count=count)
        assert len(polls) == 3

    print(f"  timeout after {elapsed:.2f}s")
    print("\n✓ Wait for outputs test PASSED")
    return True


def main():
    parser = argparse.ArgumentParser(description="Test Frame Cache and Work Claims")
    parser.parse_args()

    print("#" * 70)
    print("# FRAME CACHE / WORK CLAIM TESTS")
    print("#" * 70)

    all_passed = True
    all_passed &= test_cache_round_trip()
    all_passed &= test_output_directory()
    all_passed &= test_atomic_frame_writes()
    all_passed &= test_work_claims()
    all_passed &= test_wait_for_outputs()

    print("\n" + "#" * 70)
    if all_passed:
        print("# ALL TESTS PASSED ✓")
    else:
        print("# SOME TESTS FAILED ✗")
    print("#" * 70)

    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
