#!/usr/bin/env python3
"""
cli.py - Command-Line Frame Induction
=====================================

Usage:
    frame-inducer stats/muc --lexicon words.tsv --cache runs/muc --verbose
    frame-inducer stats/muc --wordnet --config induction.json --work-dir runs/shared

The table directory holds the files listed in ``CorpusTables.FILE_NAMES``
plus optional ``frame-<id>.args`` / ``frame-<id>.coref`` / ``frame-<id>.idf`` overrides.

Author: Frame Inducer contributors
Version: 0.3.0
"""

import argparse
import sys

from .config import InductionConfig
from .frames import induce_all_frames
from .lexicon import DictLexicon, WordNetLexicon
from .tables import CorpusTables


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Induce event frames and their semantic roles from corpus statistics")
    parser.add_argument('tables',
                        help='Directory with the precomputed corpus tables')
    parser.add_argument('--config', default=None,
                        help='JSON file overriding InductionConfig defaults')
    parser.add_argument('--cache', default=None,
                        help='Frame cache path prefix (the config fingerprint is appended)')
    parser.add_argument('--work-dir', default=None,
                        help='Shared directory for claiming and writing frames in parallel')
    lexicon_group = parser.add_mutually_exclusive_group(required=True)
    lexicon_group.add_argument('--lexicon', default=None,
                               help='Word-list lexicon file (category<TAB>words)')
    lexicon_group.add_argument('--wordnet', action='store_true',
                               help='Use the NLTK WordNet lexicon')
    parser.add_argument('--max-cluster-size', type=int, default=None,
                        help='Largest frame (overrides the config file)')
    parser.add_argument('--no-roles', action='store_true',
                        help='Cluster frames only, skip role induction')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Print progress')
    args = parser.parse_args(argv)

    try:
        config = InductionConfig.from_json(args.config) if args.config else InductionConfig()
        overrides = {}
        if args.max_cluster_size is not None:
            overrides["max_cluster_size"] = args.max_cluster_size
        if args.no_roles:
            overrides["extract_arguments"] = False
        if overrides:
            config = InductionConfig.from_dict({**config.to_dict(), **overrides})
        tables = CorpusTables.from_directory(args.tables, verbose=args.verbose)
        lexicon = WordNetLexicon() if args.wordnet else DictLexicon.load(args.lexicon)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        print(config.summary())

    frames = induce_all_frames(
        tables, lexicon, config,
        cache_path=args.cache,
        work_dir=args.work_dir,
        verbose=args.verbose,
    )

    print(f"\n{'=' * 60}")
    print(f"{len(frames)} frames")
    print(f"{'=' * 60}")
    for frame in frames:
        print(frame.report())
    return 0


if __name__ == "__main__":
    sys.exit(main())
