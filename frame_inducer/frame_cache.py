#!/usr/bin/env python3
"""
frame_cache.py - Persisted Frame Sets
=====================================

Induced frames are stored one per line (see ``Frame.to_line``). A cache
file or per-frame output file name carries the configuration fingerprint
(token type, max cluster size, argument extraction) so that runs with
incompatible settings never read each other's frames.

    {base}-{fingerprint}                    whole frame set
    {out_dir}/frame{id}-{fingerprint}       one finished frame (worker output)

Reading a per-frame directory sorts frames by id. If two files hold the same
frame id, the later one (by file name) wins; duplicate work by two workers
is therefore harmless.

Usage:
    >>> cache = FrameCache("runs/muc", config)
    >>> frames = cache.load()
    >>> if frames is None:
    ...     frames = induce_all_frames(tables, lexicon, config)
    ...     cache.save(frames)

Author: Frame Inducer contributors
Version: 0.3.0
"""

import os
from typing import Dict, Iterable, List, Optional

from .config import InductionConfig
from .model import Frame

__all__ = [
    'FrameCache',
    'write_frames',
    'read_frames',
]


def write_frames(path: str, frames: Iterable[Frame]):
    """
    Write frames to a file, one line each.

    The lines go to a hidden temporary file in the same directory that is
    then renamed onto ``path``, so readers polling the directory only ever
    see complete files.
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = os.path.join(directory, f".{os.path.basename(path)}.{os.getpid()}.tmp")
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            for frame in frames:
                f.write(frame.to_line() + "\n")
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def read_frames(path: str) -> List[Frame]:
    """Read a frame file; a malformed line raises ValueError naming the line."""
    frames = []
    with open(path, 'r', encoding='utf-8') as f:
        for lineno, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                frames.append(Frame.from_line(line))
            except ValueError as e:
                raise ValueError(f"{path}:{lineno}: {e}") from e
    return frames


class FrameCache:
    """
    Frame-set cache tied to one configuration fingerprint.

    Args:
        base_path: Path prefix of the cache file
        config: InductionConfig providing the fingerprint
        verbose: Print progress
    """

    def __init__(self, base_path: str, config: Optional[InductionConfig] = None, verbose: bool = False):
        self.base_path = base_path
        self.config = config or InductionConfig()
        self.verbose = verbose

    @property
    def fingerprint(self) -> str:
        return self.config.fingerprint()

    @property
    def path(self) -> str:
        return f"{self.base_path}-{self.fingerprint}"

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def save(self, frames: Iterable[Frame]):
        frames = list(frames)
        write_frames(self.path, frames)
        if self.verbose:
            print(f"Saved {len(frames)} frames to {self.path}")

    def load(self) -> Optional[List[Frame]]:
        """Cached frames, or None on a cache miss."""
        if not self.exists():
            return None
        frames = read_frames(self.path)
        if self.verbose:
            print(f"Loaded {len(frames)} frames from {self.path}")
        return frames

    # -------------------------------------------------------------------------
    # Per-frame worker output
    # -------------------------------------------------------------------------

    def frame_output_path(self, out_dir: str, frame_id: int) -> str:
        return os.path.join(out_dir, f"frame{frame_id}-{self.fingerprint}")

    def write_frame(self, out_dir: str, frame: Frame) -> str:
        path = self.frame_output_path(out_dir, frame.frame_id)
        write_frames(path, [frame])
        return path

    def read_directory(self, out_dir: str) -> List[Frame]:
        """All per-frame outputs of this fingerprint, ordered by frame id."""
        suffix = f"-{self.fingerprint}"
        by_id: Dict[int, Frame] = {}
        for filename in sorted(os.listdir(out_dir)):
            if not filename.startswith("frame") or not filename.endswith(suffix):
                continue
            for frame in read_frames(os.path.join(out_dir, filename)):
                by_id[frame.frame_id] = frame
        return [by_id[k] for k in sorted(by_id)]

    def count_outputs(self, out_dir: str) -> int:
        if not os.path.isdir(out_dir):
            return 0
        suffix = f"-{self.fingerprint}"
        return sum(
            1 for name in os.listdir(out_dir)
            if name.startswith("frame") and name.endswith(suffix)
        )

    def __repr__(self) -> str:
        return f"FrameCache(path='{self.path}')"
