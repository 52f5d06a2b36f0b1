#!/usr/bin/env python3
"""
work_claims.py - Advisory Work Claims for Parallel Batch Runs
=============================================================

Independent worker processes share frames through a claim directory. A
worker claims "induce roles for frame N" by atomically creating a marker
file; whoever creates it does the work. Markers are never released.

This is a convenience for restartable offline runs, not a lock manager:
two workers that both end up computing a frame write the same output file
and the last write wins.

Usage:
    >>> claims = WorkClaims("runs/locks")
    >>> if claims.claim(WorkClaims.frame_claim_name(7)):
    ...     ...  # induce and write frame 7
    >>> wait_for_outputs("runs/frames", expected=12, poll_interval=5.0, max_wait=3600)

Author: Frame Inducer contributors
Version: 0.3.0
"""

import os
import time
import warnings
from typing import Callable, Optional

__all__ = [
    'WorkClaims',
    'wait_for_outputs',
]


class WorkClaims:
    """
    Claim named work items by exclusive file creation.

    Args:
        claim_dir: Shared directory holding the markers (created if missing)
    """

    def __init__(self, claim_dir: str):
        self.claim_dir = claim_dir
        try:
            os.makedirs(claim_dir, exist_ok=True)
        except OSError as e:
            warnings.warn(f"Cannot create claim directory {claim_dir}: {e}")

    @staticmethod
    def frame_claim_name(frame_id: int) -> str:
        return f"induceslots-frame-{frame_id}"

    def marker_path(self, name: str) -> str:
        return os.path.join(self.claim_dir, name.replace("/", "--") + ".lock")

    def claim(self, name: str) -> bool:
        """True if this call created the marker; False if it already existed."""
        try:
            fd = os.open(self.marker_path(name), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        os.write(fd, f"{os.getpid()}\n".encode("utf-8"))
        os.close(fd)
        return True

    def is_claimed(self, name: str) -> bool:
        return os.path.exists(self.marker_path(name))

    def __repr__(self) -> str:
        return f"WorkClaims(claim_dir='{self.claim_dir}')"


def _count_files(out_dir: str) -> int:
    if not os.path.isdir(out_dir):
        return 0
    # Hidden names are files still being written.
    return sum(
        1 for name in os.listdir(out_dir)
        if not name.startswith(".") and os.path.isfile(os.path.join(out_dir, name))
    )


def wait_for_outputs(
    out_dir: str,
    expected: int,
    poll_interval: float = 5.0,
    max_wait: Optional[float] = None,
    count: Optional[Callable[[str], int]] = None,
    verbose: bool = False
) -> bool:
    """
    Sleep until out_dir holds at least ``expected`` output files.

    Args:
        out_dir: Directory the workers write to
        expected: Number of files to wait for
        poll_interval: Seconds between checks
        max_wait: Give up after this many seconds (None = wait forever)
        count: Counts the relevant files (default: every non-hidden regular file)
        verbose: Print progress

    Returns:
        True once the outputs exist, False on timeout
    """
    count = count or _count_files
    start = time.monotonic()
    while True:
        found = count(out_dir)
        if found >= expected:
            return True
        elapsed = time.monotonic() - start
        if max_wait is not None and elapsed >= max_wait:
            warnings.warn(f"Timed out after {elapsed:.1f}s waiting for {expected} outputs in {out_dir} "
                          f"(found {found})")
            return False
        if verbose:
            print(f"  {found}/{expected} outputs in {out_dir}; sleeping {poll_interval}s")
        sleep_for = poll_interval
        if max_wait is not None:
            sleep_for = min(poll_interval, max(max_wait - elapsed, 0.0))
        time.sleep(sleep_for)
