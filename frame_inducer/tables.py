#!/usr/bin/env python3
"""
tables.py - Precomputed Corpus Statistics
=========================================

Read-only frequency tables produced by the (external) preprocessing stage.
Induction never writes to them.

File Formats (UTF-8, tab separated; '#' comments and blank lines skipped):

    IDF table          first data line: number of documents
                       then: key <TAB> frequency <TAB> doc_count
    Argument counts    slot <TAB> head count <TAB> head count ...
    Pair counts        a <TAB> b <TAB> count      (symmetric)

Keys are the text forms of tokens ("v-kidnap") and slots ("v-kidnap:s").

Malformed input aborts loading with a ValueError naming the file and line:
clustering on corrupt statistics would produce meaningless frames.

Directory Layout (CorpusTables.from_directory):
    domain.idf  general.idf  domain.args  general.args
    token.pairs  coref.pairs  deps.idf
    frame-<id>.args  frame-<id>.coref     (optional per-frame overrides)

Author: Frame Inducer contributors
Version: 0.3.0
"""

import math
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

__all__ = [
    'IDFTable',
    'ArgumentCountTable',
    'PairCountTable',
    'CorpusTables',
]


def _data_lines(path: str) -> Iterator[Tuple[int, List[str]]]:
    """Yield (line number, tab-split fields) for every data line."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Table not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        for lineno, line in enumerate(f, 1):
            line = line.rstrip("\n")
            if not line.strip() or line.startswith("#"):
                continue
            yield lineno, line.split("\t")


def _parse_count(text: str, path: str, lineno: int) -> int:
    try:
        value = int(text)
    except ValueError:
        raise ValueError(f"{path}:{lineno}: count is not an integer: '{text}'")
    if value < 0:
        raise ValueError(f"{path}:{lineno}: negative count {value}")
    return value


# =============================================================================
# IDF Table
# =============================================================================

class IDFTable:
    """
    Document frequencies of tokens (or slots) over a corpus.

    Args:
        num_docs: Number of documents in the corpus
        frequencies: key -> total occurrences
        doc_counts: key -> number of documents containing the key
    """

    def __init__(
        self,
        num_docs: int,
        frequencies: Optional[Dict[str, int]] = None,
        doc_counts: Optional[Dict[str, int]] = None
    ):
        if num_docs < 0:
            raise ValueError(f"num_docs must be >= 0, got {num_docs}")
        self.num_docs = num_docs
        self.frequencies: Dict[str, int] = dict(frequencies or {})
        self.doc_counts: Dict[str, int] = dict(doc_counts or {})
        self.total_frequency = sum(self.frequencies.values())

    @classmethod
    def load(cls, path: str) -> "IDFTable":
        num_docs = None
        frequencies: Dict[str, int] = {}
        doc_counts: Dict[str, int] = {}
        for lineno, fields in _data_lines(path):
            if num_docs is None:
                if len(fields) != 1:
                    raise ValueError(f"{path}:{lineno}: first line must hold the document count")
                num_docs = _parse_count(fields[0], path, lineno)
                continue
            if len(fields) != 3 or not fields[0]:
                raise ValueError(f"{path}:{lineno}: expected 'key<TAB>frequency<TAB>doc_count'")
            key = fields[0]
            frequencies[key] = _parse_count(fields[1], path, lineno)
            doc_counts[key] = _parse_count(fields[2], path, lineno)
            if doc_counts[key] > num_docs:
                raise ValueError(f"{path}:{lineno}: doc_count {doc_counts[key]} exceeds {num_docs} documents")
        if num_docs is None:
            raise ValueError(f"{path}: empty IDF table")
        return cls(num_docs, frequencies, doc_counts)

    def frequency(self, key) -> int:
        return self.frequencies.get(str(key), 0)

    def doc_count(self, key) -> int:
        return self.doc_counts.get(str(key), 0)

    def idf(self, key) -> Optional[float]:
        """log(num_docs / doc_count), or None for unseen keys."""
        count = self.doc_count(key)
        if count <= 0 or self.num_docs <= 0:
            return None
        return math.log(self.num_docs / count)

    def probability(self, key) -> float:
        if self.total_frequency <= 0:
            return 0.0
        return self.frequency(key) / self.total_frequency

    def keys(self) -> List[str]:
        return sorted(self.doc_counts)

    def __contains__(self, key) -> bool:
        return str(key) in self.doc_counts

    def __len__(self) -> int:
        return len(self.doc_counts)

    def __repr__(self) -> str:
        return f"IDFTable(num_docs={self.num_docs}, n_keys={len(self.doc_counts)})"


# =============================================================================
# Argument Counts
# =============================================================================

class ArgumentCountTable:
    """
    Argument heads observed filling each slot.

    Args:
        counts: slot text -> {head -> count}
    """

    def __init__(self, counts: Optional[Dict[str, Dict[str, int]]] = None):
        self.counts: Dict[str, Dict[str, int]] = {
            str(slot): dict(heads) for slot, heads in (counts or {}).items()
        }
        self._by_token: Dict[str, Set[str]] = {}
        for slot in self.counts:
            self._by_token.setdefault(slot.rpartition(":")[0], set()).add(slot)

    @classmethod
    def load(cls, path: str) -> "ArgumentCountTable":
        counts: Dict[str, Dict[str, int]] = {}
        for lineno, fields in _data_lines(path):
            slot = fields[0]
            if ":" not in slot:
                raise ValueError(f"{path}:{lineno}: '{slot}' is not a slot (expected 'pos-lemma:relation')")
            heads = counts.setdefault(slot, {})
            for item in fields[1:]:
                parts = item.rsplit(" ", 1)
                if len(parts) != 2 or not parts[0]:
                    raise ValueError(f"{path}:{lineno}: expected 'head count', got '{item}'")
                heads[parts[0]] = heads.get(parts[0], 0) + _parse_count(parts[1], path, lineno)
        return cls(counts)

    def args_for(self, slot) -> Dict[str, int]:
        return dict(self.counts.get(str(slot), {}))

    def total(self, slot) -> int:
        return sum(self.counts.get(str(slot), {}).values())

    def slots_of(self, token) -> List[str]:
        return sorted(self._by_token.get(str(token), ()))

    def __contains__(self, slot) -> bool:
        return str(slot) in self.counts

    def __len__(self) -> int:
        return len(self.counts)

    def __repr__(self) -> str:
        return f"ArgumentCountTable(n_slots={len(self.counts)})"


# =============================================================================
# Pair Counts
# =============================================================================

class PairCountTable:
    """
    Symmetric co-occurrence counts: token pairs or coreferring slot pairs.

    Args:
        counts: {(a, b): count}; (b, a) is folded into the same pair
    """

    def __init__(self, counts: Optional[Dict[Tuple[str, str], int]] = None):
        self.counts: Dict[Tuple[str, str], int] = {}
        self._partners: Dict[str, Dict[str, int]] = {}
        self._total = 0
        for (a, b), count in (counts or {}).items():
            self.add(a, b, count)

    @staticmethod
    def _key(a: str, b: str) -> Tuple[str, str]:
        return (a, b) if a <= b else (b, a)

    def add(self, a, b, count: int):
        a, b = str(a), str(b)
        key = self._key(a, b)
        total = self.counts.get(key, 0) + count
        self.counts[key] = total
        self._total += count
        self._partners.setdefault(a, {})[b] = total
        self._partners.setdefault(b, {})[a] = total

    @classmethod
    def load(cls, path: str) -> "PairCountTable":
        table = cls()
        for lineno, fields in _data_lines(path):
            if len(fields) != 3 or not fields[0] or not fields[1]:
                raise ValueError(f"{path}:{lineno}: expected 'a<TAB>b<TAB>count'")
            table.add(fields[0], fields[1], _parse_count(fields[2], path, lineno))
        return table

    def count(self, a, b) -> int:
        return self.counts.get(self._key(str(a), str(b)), 0)

    def total(self) -> int:
        return self._total

    def partners(self, key) -> Dict[str, int]:
        return dict(self._partners.get(str(key), {}))

    def keys_with_prefix(self, prefix: str) -> List[str]:
        return sorted(k for k in self._partners if k.startswith(prefix))

    def __len__(self) -> int:
        return len(self.counts)

    def __repr__(self) -> str:
        return f"PairCountTable(n_pairs={len(self.counts)}, total={self.total()})"


# =============================================================================
# Bundle
# =============================================================================

@dataclass
class CorpusTables:
    """
    All statistics one induction run reads.

    Attributes:
        domain_idf: Token document frequencies in the domain corpus
        general_idf: Token document frequencies in a general corpus
        domain_args: Slot argument counts in the domain
        token_pairs: Domain token co-occurrence counts
        coref_pairs: Domain slot coreference counts
        general_args: Slot argument counts in the general corpus (optional)
        dependency_idf: Slot document counts (optional; falls back to argument totals)
        frame_args: Per-frame argument-count overrides
        frame_corefs: Per-frame coreference-count overrides
        frame_idf: Per-frame document frequencies (the frame's retrieved documents)
    """
    domain_idf: IDFTable
    general_idf: IDFTable
    domain_args: ArgumentCountTable
    token_pairs: PairCountTable
    coref_pairs: PairCountTable
    general_args: Optional[ArgumentCountTable] = None
    dependency_idf: Optional[IDFTable] = None
    frame_args: Dict[int, ArgumentCountTable] = field(default_factory=dict)
    frame_corefs: Dict[int, PairCountTable] = field(default_factory=dict)
    frame_idf: Dict[int, IDFTable] = field(default_factory=dict)

    FILE_NAMES = {
        "domain_idf": "domain.idf",
        "general_idf": "general.idf",
        "domain_args": "domain.args",
        "token_pairs": "token.pairs",
        "coref_pairs": "coref.pairs",
        "general_args": "general.args",
        "dependency_idf": "deps.idf",
    }

    @classmethod
    def from_directory(cls, path: str, verbose: bool = False) -> "CorpusTables":
        """Load the standard file names from a directory (optional ones may be absent)."""
        names = cls.FILE_NAMES

        def join(name):
            return os.path.join(path, name)

        tables = cls(
            domain_idf=IDFTable.load(join(names["domain_idf"])),
            general_idf=IDFTable.load(join(names["general_idf"])),
            domain_args=ArgumentCountTable.load(join(names["domain_args"])),
            token_pairs=PairCountTable.load(join(names["token_pairs"])),
            coref_pairs=PairCountTable.load(join(names["coref_pairs"])),
        )
        if os.path.exists(join(names["general_args"])):
            tables.general_args = ArgumentCountTable.load(join(names["general_args"]))
        if os.path.exists(join(names["dependency_idf"])):
            tables.dependency_idf = IDFTable.load(join(names["dependency_idf"]))

        for filename in sorted(os.listdir(path)):
            stem, ext = os.path.splitext(filename)
            if not stem.startswith("frame-"):
                continue
            try:
                frame_id = int(stem[len("frame-"):])
            except ValueError:
                raise ValueError(f"{join(filename)}: cannot read frame id from file name")
            if ext == ".args":
                tables.frame_args[frame_id] = ArgumentCountTable.load(join(filename))
            elif ext == ".coref":
                tables.frame_corefs[frame_id] = PairCountTable.load(join(filename))
            elif ext == ".idf":
                tables.frame_idf[frame_id] = IDFTable.load(join(filename))

        if verbose:
            print(f"Loaded tables from {path}: {tables.summary()}")
        return tables

    @property
    def num_docs(self) -> int:
        return self.domain_idf.num_docs

    def arg_counts_for(self, frame_id: Optional[int] = None) -> ArgumentCountTable:
        """Per-frame argument counts, falling back to the domain table."""
        if frame_id is not None and frame_id in self.frame_args:
            return self.frame_args[frame_id]
        return self.domain_args

    def coref_counts_for(self, frame_id: Optional[int] = None) -> PairCountTable:
        """Per-frame coreference counts, falling back to the domain table."""
        if frame_id is not None and frame_id in self.frame_corefs:
            return self.frame_corefs[frame_id]
        return self.coref_pairs

    def num_docs_for(self, frame_id: Optional[int] = None) -> int:
        """Documents behind a frame's statistics, falling back to the domain count."""
        if frame_id is not None and frame_id in self.frame_idf:
            return self.frame_idf[frame_id].num_docs
        return self.num_docs

    def has_frame_statistics(self, frame_id: int) -> bool:
        return frame_id in self.frame_args or frame_id in self.frame_corefs or frame_id in self.frame_idf

    def slot_doc_count(self, slot) -> int:
        """Documents a slot was seen in (argument total when no dependency table)."""
        if self.dependency_idf is not None:
            return self.dependency_idf.doc_count(slot)
        return self.domain_args.total(slot)

    def likelihood_ratio(self, key) -> float:
        """
        P(key | domain) / P(key | general text).

        A key never seen in general text gets general probability 1.0.
        Returns NaN when neither table has any mass.
        """
        domain_prob = self.domain_idf.probability(key)
        general_prob = 1.0
        if self.general_idf.frequency(key) > 0:
            general_prob = self.general_idf.probability(key)
        if general_prob <= 0:
            return float('nan')
        return domain_prob / general_prob

    def summary(self) -> str:
        return (
            f"CorpusTables(docs={self.num_docs}, tokens={len(self.domain_idf)}, "
            f"slots={len(self.domain_args)}, token_pairs={len(self.token_pairs)}, "
            f"coref_pairs={len(self.coref_pairs)}, frame_overrides={len(self.frame_args)})"
        )
