#!/usr/bin/env python3
"""
frames.py - Frame Induction Pipeline
====================================

Clusters the domain's key predicate tokens into frames and induces the
roles of every frame.

Pipeline:
    1. Key domain tokens: seen in at least min_doc_count documents and
       clearly more frequent in the domain than in general text (likelihood
       ratio >= min_token_ratio); compound object tokens ("v-plant#o#bomb")
       are always kept.
    2. Token cache: damped PMI between every co-occurring pair.
    3. Synonym boost: pairs known to mean the same event get the sentinel
       score so they merge first:
           - verb and noun of one lemma      v-release / n-release
           - nominalizations                 n-kidnapping / v-kidnap
           - lexicon synonyms of tokens with a likelihood ratio > synonym_ratio
    4. Agglomerative clustering (new-link with penalty, size capped).
    5. Clusters of at least min_frame_tokens tokens become frames. Token and
       frame scores are recomputed from the un-boosted cache.
    6. Per frame: claim, induce roles, force trigger slots, merge roles, add
       slots of nearby tokens, remove weak roles, write the frame.

Caching:
    With ``cache_path`` a finished frame set is stored under the
    configuration fingerprint and reused on the next run. With ``work_dir``
    frames are claimed and written one by one so several processes can share
    the work; the coordinator waits for all per-frame outputs and reads them
    back.

Usage:
    >>> tables = CorpusTables.from_directory("stats/muc")
    >>> frames = induce_all_frames(tables, WordNetLexicon(), InductionConfig(verbose=True))
    >>> for frame in frames:
    ...     print(frame.report())

Author: Frame Inducer contributors
Version: 0.3.0
"""

import os
import warnings
from typing import Dict, List, Optional, Sequence, Tuple

from nltk.metrics.distance import edit_distance

from .association import AssociationScorer
from .clustering import AgglomerativeClusterer, ClusterReconstructor
from .config import InductionConfig
from .frame_cache import FrameCache
from .lexicon import Lexicon
from .model import Frame, Token
from .roles import RoleInducer, RoleMaintenance
from .scores import PairScoreCache
from .tables import CorpusTables
from .work_claims import WorkClaims, wait_for_outputs

__all__ = [
    'induce_all_frames',
    'key_domain_tokens',
    'synonym_pairs',
    'cluster_tokens',
    'build_frames',
    'score_cluster_tokens',
    'nearby_tokens',
    'set_token_frame_probabilities',
]

COMPOUND_MARKER = "#o#"
# Added to a token's score for the frames it already belongs to.
MEMBER_BONUS = 20.0


def _is_token_key(key: str) -> bool:
    pos, sep, lemma = key.partition("-")
    return bool(sep and pos and lemma)


# =============================================================================
# Tokens
# =============================================================================

def key_domain_tokens(tables: CorpusTables, config: Optional[InductionConfig] = None) -> List[Token]:
    """Domain-salient predicate tokens, sorted by text form."""
    config = config or InductionConfig()
    keep = []
    for key in tables.domain_idf.keys():
        if not _is_token_key(key):
            continue
        if tables.domain_idf.doc_count(key) < config.min_doc_count:
            continue
        if COMPOUND_MARKER in key or tables.likelihood_ratio(key) >= config.min_token_ratio:
            keep.append(Token.parse(key))
    return sorted(keep, key=str)


def nominal_edit_ratio(noun: str, verb: str) -> float:
    """Edit distance between a noun and a verb, relative to the noun's length."""
    return edit_distance(noun, verb) / len(noun) if noun else 1.0


def synonym_pairs(
    tokens: Sequence[Token],
    lexicon: Lexicon,
    tables: CorpusTables,
    config: Optional[InductionConfig] = None
) -> List[Tuple[Token, Token]]:
    """Token pairs to merge before clustering (each pair listed once)."""
    config = config or InductionConfig()
    present = set(tokens)
    pairs: List[Tuple[Token, Token]] = []

    def add(a: Token, b: Token):
        if a != b and (a, b) not in pairs and (b, a) not in pairs:
            pairs.append((a, b))

    for token in tokens:
        if token.is_verb and Token("n", token.lemma) in present:
            add(token, Token("n", token.lemma))

    for token in tokens:
        if not token.is_noun:
            continue
        for verb in lexicon.verbs_of_nominalization(token.lemma):
            close = (token.lemma.startswith(verb)
                     or nominal_edit_ratio(token.lemma, verb) < config.nominal_edit_ratio)
            if close and Token("v", verb) in present:
                add(token, Token("v", verb))

    salient = {
        t for t in tokens
        if tables.domain_idf.frequency(t) > config.min_doc_count
        and tables.likelihood_ratio(t) > config.synonym_ratio
    }
    for token in sorted(salient, key=str):
        if COMPOUND_MARKER in token.lemma:
            continue
        for name in lexicon.synonyms(str(token)):
            if not _is_token_key(name):
                continue
            other = Token.parse(name)
            if other in salient:
                add(token, other)
    return pairs


# =============================================================================
# Clustering
# =============================================================================

def cluster_tokens(
    tokens: Sequence[Token],
    scorer: AssociationScorer,
    lexicon: Lexicon,
    config: Optional[InductionConfig] = None,
    verbose: bool = False
) -> Tuple[List[List[Token]], PairScoreCache]:
    """
    Cluster tokens by association.

    Returns:
        (clusters of at least two tokens, un-boosted token cache)
    """
    config = config or InductionConfig()
    tokens = list(tokens)
    cache = scorer.build_token_cache(tokens)
    boosted = cache.copy()
    synonyms = synonym_pairs(tokens, lexicon, scorer.tables, config)
    for a, b in synonyms:
        boosted.boost(a, b)
    if verbose:
        print(f"Clustering {len(tokens)} tokens ({len(synonyms)} synonym links)")

    clusterer = AgglomerativeClusterer(
        config.frame_min_similarity,
        config.frame_min_similarity,
        strategy=config.frame_similarity,
        max_cluster_size=config.max_cluster_size,
        verbose=verbose,
    )
    history = clusterer.cluster(tokens, boosted)
    result = ClusterReconstructor(verbose=verbose).reconstruct(
        history, len(tokens), include_singletons=False,
    )
    if verbose:
        print(f"  {result.summary()}")
    return [[tokens[k] for k in sorted(c)] for c in result.clusters], cache


def score_cluster_tokens(members: Sequence[Token], cache: PairScoreCache) -> Tuple[Dict[Token, float], float]:
    """Per-token sum of in-cluster edges, and the sum of all in-cluster edges."""
    token_scores = {}
    for token in members:
        token_scores[token] = sum(cache.get_score(token, other) for other in members if other != token)
    cluster_score = sum(token_scores.values()) / 2.0
    return token_scores, cluster_score


def build_frames(
    clusters: Sequence[Sequence[Token]],
    cache: PairScoreCache,
    config: Optional[InductionConfig] = None
) -> List[Frame]:
    """Frames (ids 0, 1, ...) from clusters with at least min_frame_tokens tokens."""
    config = config or InductionConfig()
    frames = []
    for members in clusters:
        if len(members) < config.min_frame_tokens:
            continue
        token_scores, cluster_score = score_cluster_tokens(members, cache)
        frames.append(Frame(len(frames), token_scores, cluster_score))
    return frames


def nearby_tokens(
    frame: Frame,
    tokens: Sequence[Token],
    cache: PairScoreCache,
    limit: int = 10
) -> List[Token]:
    """Non-member tokens with the highest average association to the frame."""
    members = frame.tokens()
    if not members:
        return []
    scored = []
    for token in tokens:
        if frame.contains(token):
            continue
        average = sum(cache.get_score(token, m) for m in members) / len(members)
        if average > 0:
            scored.append((average, token))
    scored.sort(key=lambda pair: (-pair[0], str(pair[1])))
    return [token for _, token in scored[:limit]]


def set_token_frame_probabilities(frames: Sequence[Frame], tokens: Sequence[Token], cache: PairScoreCache):
    """
    P(frame | token) for every token and frame.

    A token's score for a frame is its summed association with the frame's
    tokens, plus MEMBER_BONUS when it is a member. Scores are normalized over
    frames; tokens with no association anywhere get no probabilities.
    """
    for token in tokens:
        scores = []
        for frame in frames:
            score = sum(cache.get_score(token, m) for m in frame.tokens() if m != token)
            if frame.contains(token):
                score += MEMBER_BONUS
            scores.append(score)
        total = sum(scores)
        if total <= 0:
            continue
        for frame, score in zip(frames, scores):
            if score > 0:
                frame.token_probs[token] = score / total


# =============================================================================
# Full Pipeline
# =============================================================================

def induce_all_frames(
    tables: CorpusTables,
    lexicon: Lexicon,
    config: Optional[InductionConfig] = None,
    cache_path: Optional[str] = None,
    work_dir: Optional[str] = None,
    verbose: bool = False
) -> List[Frame]:
    """
    Induce frames and their roles from corpus statistics.

    Args:
        tables: Corpus statistics
        lexicon: Lexicon for slot typing and synonym links
        config: InductionConfig (defaults if None)
        cache_path: Reuse/store the finished frame set under this prefix
        work_dir: Share per-frame work with other processes through
                  {work_dir}/locks and {work_dir}/frames
        verbose: Print progress

    Returns:
        Frames ordered by id
    """
    config = config or InductionConfig()
    verbose = verbose or config.verbose

    cache = FrameCache(cache_path, config, verbose) if cache_path else None
    if cache is not None:
        cached = cache.load()
        if cached is not None:
            return cached

    tokens = key_domain_tokens(tables, config)
    if verbose:
        print(f"{len(tokens)} key domain tokens")
    scorer = AssociationScorer(tables, config=config, verbose=verbose)
    clusters, token_cache = cluster_tokens(tokens, scorer, lexicon, config, verbose)
    frames = build_frames(clusters, token_cache, config)
    set_token_frame_probabilities(frames, tokens, token_cache)
    if verbose:
        print(f"{len(frames)} frames")

    if config.extract_arguments and frames:
        frames = _induce_roles_for_frames(frames, tokens, token_cache, tables, lexicon, scorer,
                                          config, work_dir, verbose)

    if cache is not None:
        cache.save(frames)
    return frames


def _induce_roles_for_frames(
    frames: List[Frame],
    tokens: Sequence[Token],
    token_cache: PairScoreCache,
    tables: CorpusTables,
    lexicon: Lexicon,
    scorer: AssociationScorer,
    config: InductionConfig,
    work_dir: Optional[str],
    verbose: bool
) -> List[Frame]:
    inducer = RoleInducer(tables, lexicon, config, scorer=scorer, verbose=verbose)
    maintenance = RoleMaintenance(inducer)

    claims = None
    out_dir = None
    outputs = None
    if work_dir:
        claims = WorkClaims(os.path.join(work_dir, "locks"))
        out_dir = os.path.join(work_dir, "frames")
        os.makedirs(out_dir, exist_ok=True)
        outputs = FrameCache(out_dir, config)

    for frame in frames:
        if claims is not None and not claims.claim(WorkClaims.frame_claim_name(frame.frame_id)):
            if verbose:
                print(f"Frame {frame.frame_id} claimed by another worker")
            continue
        nearby = nearby_tokens(frame, tokens, token_cache, config.nearby_limit)
        inducer.induce_roles(frame)
        maintenance.force_triggers_into_slots(frame)
        maintenance.merge_roles(frame)
        maintenance.add_tokens_to_roles(nearby, frame)
        maintenance.remove_roles(frame)
        if verbose:
            print(frame.report())
        if outputs is not None:
            outputs.write_frame(out_dir, frame)

    if outputs is None:
        return frames

    wait_for_outputs(out_dir, len(frames), config.poll_interval, config.max_wait,
                     count=outputs.count_outputs, verbose=verbose)
    finished = {frame.frame_id: frame for frame in outputs.read_directory(out_dir)}
    missing = [frame.frame_id for frame in frames if frame.frame_id not in finished]
    if missing:
        warnings.warn(f"No finished output in {out_dir} for frames {missing}; "
                      f"returning them as clustered, without worker roles")
    return [finished.get(frame.frame_id, frame) for frame in frames]
