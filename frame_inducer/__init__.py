"""
FrameInducer: Unsupervised Event Frame and Role Induction
=========================================================

Learns scenario types ("frames" such as kidnapping or bombing) and their
participant roles (perpetrator, victim, instrument) from precomputed corpus
statistics of a domain, without labeled data.

Package Structure:
    frame_inducer (this package)
        ├── model.py        - Token, Slot, Role, Frame
        ├── tables.py       - Corpus statistics tables
        ├── lexicon.py      - Word categories (word lists, WordNet)
        ├── scores.py       - Symmetric pair-score cache
        ├── association.py  - Token PMI and slot similarity
        ├── clustering.py   - Agglomerative clustering + history replay
        ├── slot_types.py   - Coarse semantic typing of slots
        ├── frames.py       - Frame induction pipeline
        ├── frame_cache.py  - Persisted frame sets
        ├── work_claims.py  - Advisory claims for parallel batch runs
        │
        └── roles/          - Role induction and maintenance

Two clustering passes:
  - Predicate tokens are clustered into frames by damped PMI.
  - Inside each frame, grammatical slots are clustered into typed roles by
    argument and coreference similarity. A frame's own subject and object
    are kept apart unless their arguments agree.

Basic Usage:
    >>> from frame_inducer import CorpusTables, WordNetLexicon, induce_all_frames
    >>> tables = CorpusTables.from_directory("stats/muc")
    >>> frames = induce_all_frames(tables, WordNetLexicon())
    >>> for frame in frames:
    ...     print(frame.report())

    # Rank the fillers of a role
    >>> from frame_inducer import ranked_argument_heads
    >>> ranked_argument_heads(frames[0].roles[0])[:5]

Author: Frame Inducer contributors
License: MIT
Version: 0.3.0
"""

from .model import (
    Token,
    Slot,
    RoleType,
    Role,
    Frame,
    ranked_argument_heads,
)

from .tables import (
    IDFTable,
    ArgumentCountTable,
    PairCountTable,
    CorpusTables,
)

from .lexicon import (
    Lexicon,
    DictLexicon,
    WordNetLexicon,
)

from .scores import PairScoreCache, SYNONYM_SCORE

from .association import AssociationScorer, cosine_similarity, pmi_ratio

from .clustering import (
    ClusterSimilarity,
    MergeEvent,
    AgglomerativeClusterer,
    ConsistencyGuard,
    ClusterReconstructor,
    Reconstruction,
)

from .slot_types import SlotTypeClassifier

from .config import InductionConfig

from .roles import (
    RoleInducer,
    RoleMaintenance,
    InductionStage,
    InductionTrace,
)

from .frames import induce_all_frames, key_domain_tokens

from .frame_cache import FrameCache

from .work_claims import WorkClaims, wait_for_outputs

__version__ = "0.3.0"
__author__ = "Frame Inducer contributors"

__all__ = [
    # Model
    'Token',
    'Slot',
    'RoleType',
    'Role',
    'Frame',
    'ranked_argument_heads',
    # Tables
    'IDFTable',
    'ArgumentCountTable',
    'PairCountTable',
    'CorpusTables',
    # Lexicon
    'Lexicon',
    'DictLexicon',
    'WordNetLexicon',
    # Scores
    'PairScoreCache',
    'SYNONYM_SCORE',
    'AssociationScorer',
    'cosine_similarity',
    'pmi_ratio',
    # Clustering
    'ClusterSimilarity',
    'MergeEvent',
    'AgglomerativeClusterer',
    'ConsistencyGuard',
    'ClusterReconstructor',
    'Reconstruction',
    # Roles
    'SlotTypeClassifier',
    'RoleInducer',
    'RoleMaintenance',
    'InductionStage',
    'InductionTrace',
    # Pipeline
    'InductionConfig',
    'induce_all_frames',
    'key_domain_tokens',
    'FrameCache',
    'WorkClaims',
    'wait_for_outputs',
]
