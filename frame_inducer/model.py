#!/usr/bin/env python3
"""
model.py - Tokens, Slots, Roles and Frames
==========================================

The data model shared by every stage of frame induction.

Vocabulary:
    Token:  a lemma tagged with a coarse part of speech ("v-kidnap")
    Slot:   a token paired with a grammatical relation ("v-kidnap:s")
    Role:   a typed cluster of slots with a ranked list of argument heads
    Frame:  a cluster of trigger tokens with scores and zero or more roles

Text Forms:
    Tokens and slots have a canonical text form that is also the key used in
    every corpus table. ``Token.parse`` and ``Slot.parse`` invert ``str()``.

        >>> slot = Slot.parse("v-kidnap:o")
        >>> slot.token.lemma, slot.relation
        ('kidnap', 'o')
        >>> str(slot.counterpart())
        'v-kidnap:s'

Ownership:
    A Role belongs to exactly one Frame. Within a frame a slot is a member of
    at most one role; ``Frame.add_role`` and ``Role.add_slot`` are the only
    mutation points and are driven by the role inducer and role maintenance.

Author: Frame Inducer contributors
Version: 0.3.0
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote, unquote

__all__ = [
    'Token',
    'Slot',
    'RoleType',
    'Role',
    'Frame',
    'ranked_argument_heads',
    'SUBJECT',
    'OBJECT',
]

SUBJECT = "s"
OBJECT = "o"


# =============================================================================
# Tokens and Slots
# =============================================================================

@dataclass(frozen=True, order=True)
class Token:
    """A lemma with a coarse part of speech: 'v' (verb), 'n' (noun), 'j' (adjective)."""
    pos: str
    lemma: str

    @classmethod
    def parse(cls, text: str) -> "Token":
        pos, sep, lemma = text.partition("-")
        if not sep or not pos or not lemma:
            raise ValueError(f"Malformed token '{text}', expected 'pos-lemma'")
        return cls(pos, lemma)

    @property
    def is_verb(self) -> bool:
        return self.pos == "v"

    @property
    def is_noun(self) -> bool:
        return self.pos == "n"

    def slot(self, relation: str) -> "Slot":
        return Slot(self, relation)

    def __str__(self) -> str:
        return f"{self.pos}-{self.lemma}"


@dataclass(frozen=True, order=True)
class Slot:
    """A token in a grammatical relation, e.g. the subject of 'kidnap'."""
    token: Token
    relation: str

    @classmethod
    def parse(cls, text: str) -> "Slot":
        base, sep, relation = text.rpartition(":")
        if not sep or not base or not relation:
            raise ValueError(f"Malformed slot '{text}', expected 'pos-lemma:relation'")
        return cls(Token.parse(base), relation)

    @property
    def base(self) -> str:
        """Text form of the governing token."""
        return str(self.token)

    @property
    def is_subject(self) -> bool:
        return self.relation == SUBJECT

    @property
    def is_object(self) -> bool:
        return self.relation == OBJECT

    @property
    def is_core(self) -> bool:
        return self.relation in (SUBJECT, OBJECT)

    def counterpart(self) -> Optional["Slot"]:
        """The object slot of a subject (and vice versa); None for other relations."""
        if self.is_subject:
            return Slot(self.token, OBJECT)
        if self.is_object:
            return Slot(self.token, SUBJECT)
        return None

    def __str__(self) -> str:
        return f"{self.token}:{self.relation}"


# =============================================================================
# Roles
# =============================================================================

class RoleType(Enum):
    """Coarse semantic type of a role."""
    ALL = "ALL"
    PERSON = "PERSON"
    LOCATION = "LOCATION"
    EVENT = "EVENT"
    PHYSOBJECT = "PHYSOBJECT"
    OTHER = "OTHER"


def _sort_arguments(arguments: Iterable[Tuple[str, float]]) -> List[Tuple[str, float]]:
    return sorted(arguments, key=lambda pair: (-pair[1], pair[0]))


@dataclass
class Role:
    """
    A semantic role inside one frame.

    Attributes:
        role_type: Semantic type shared by the member slots
        slots: Member slots in insertion order (no duplicates)
        arguments: (head, score) pairs, best first
    """
    role_type: RoleType
    slots: List[Slot] = field(default_factory=list)
    arguments: List[Tuple[str, float]] = field(default_factory=list)

    def __post_init__(self):
        unique = []
        for slot in self.slots:
            if slot not in unique:
                unique.append(slot)
        self.slots = unique

    def has_slot(self, slot: Slot) -> bool:
        return slot in self.slots

    def add_slot(self, slot: Slot):
        if slot not in self.slots:
            self.slots.append(slot)

    def merge_from(self, other: "Role"):
        """Absorb another role's slots and argument mass."""
        for slot in other.slots:
            self.add_slot(slot)
        combined: Dict[str, float] = dict(self.arguments)
        for head, score in other.arguments:
            combined[head] = combined.get(head, 0.0) + score
        total = sum(combined.values())
        if total > 0:
            combined = {head: score / total for head, score in combined.items()}
        self.arguments = _sort_arguments(combined.items())

    def set_arguments(self, arguments: Iterable[Tuple[str, float]]):
        self.arguments = _sort_arguments(arguments)

    def ranked_argument_heads(self) -> List[str]:
        return [head for head, _ in self.arguments]

    def summary(self, max_args: int = 5) -> str:
        slots = " ".join(str(s) for s in self.slots)
        heads = ", ".join(f"{h}={s:.3f}" for h, s in self.arguments[:max_args])
        return f"{self.role_type.value}: [{slots}] -> {heads}"

    def __repr__(self) -> str:
        return f"Role({self.summary()})"


def ranked_argument_heads(role: Role) -> List[str]:
    """Argument heads of a role, most representative first."""
    return role.ranked_argument_heads()


# =============================================================================
# Frames
# =============================================================================

@dataclass
class Frame:
    """
    An induced scenario: trigger tokens with scores plus its roles.

    Attributes:
        frame_id: Identifier, unique within one induction run
        token_scores: Trigger token -> association score within the cluster
        cluster_score: Sum of all in-cluster association edges
        roles: Induced roles
        token_probs: Optional P(frame | token) for tokens outside the frame
    """
    frame_id: int
    token_scores: Dict[Token, float] = field(default_factory=dict)
    cluster_score: float = 0.0
    roles: List[Role] = field(default_factory=list)
    token_probs: Dict[Token, float] = field(default_factory=dict)

    def tokens(self) -> List[Token]:
        """Trigger tokens, highest score first (ties by text form)."""
        return sorted(self.token_scores, key=lambda t: (-self.token_scores[t], str(t)))

    def contains(self, token: Token) -> bool:
        return token in self.token_scores

    @property
    def n_roles(self) -> int:
        return len(self.roles)

    def role_slots(self) -> List[Slot]:
        return [slot for role in self.roles for slot in role.slots]

    def role_of(self, slot: Slot) -> Optional[Role]:
        for role in self.roles:
            if role.has_slot(slot):
                return role
        return None

    def add_role(self, role: Role):
        taken = set(self.role_slots())
        clash = [s for s in role.slots if s in taken]
        if clash:
            raise ValueError(f"Slots already assigned in frame {self.frame_id}: {clash}")
        self.roles.append(role)

    def remove_role(self, role: Role):
        self.roles = [r for r in self.roles if r is not role]

    def merge_roles(self, i: int, j: int):
        """Merge role j into role i and drop role j."""
        if i == j:
            raise ValueError("Cannot merge a role with itself")
        self.roles[i].merge_from(self.roles[j])
        del self.roles[j]

    def clear_roles(self):
        self.roles = []

    def summary(self, max_tokens: int = 10) -> str:
        tokens = " ".join(str(t) for t in self.tokens()[:max_tokens])
        return (
            f"Frame(id={self.frame_id}, score={self.cluster_score:.3f}, "
            f"tokens=[{tokens}], n_roles={self.n_roles})"
        )

    def report(self, max_tokens: int = 25) -> str:
        lines = [self.summary(max_tokens)]
        for role in self.roles:
            lines.append(f"  {role.summary()}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()

    # -------------------------------------------------------------------------
    # One-line text form
    # -------------------------------------------------------------------------

    def to_line(self) -> str:
        """
        Serialize to the single-line frame cache format.

        Layout (tab separated):
            id  score  tokens  token-scores  <empty>  roles
        with roles written as ``[slot slot TYPE : head,score ...],[...]`` or
        ``no roles!``. Floats use repr() so a reload is exact.
        """
        tokens = self.tokens()
        parts = [
            str(self.frame_id),
            repr(float(self.cluster_score)),
            " " + " ".join(str(t) for t in tokens),
            " " + " ".join(f"{t} {float(self.token_scores[t])!r}" for t in tokens),
            "",
        ]
        if self.roles:
            parts.append(",".join(_role_to_text(role) for role in self.roles))
        else:
            parts.append("no roles!")
        return "\t".join(parts)

    @classmethod
    def from_line(cls, line: str) -> "Frame":
        parts = line.rstrip("\n").split("\t")
        if len(parts) < 4:
            raise ValueError(f"Malformed frame line (expected >= 4 fields): {line[:80]!r}")
        try:
            frame_id = int(parts[0])
            score = float(parts[1])
            fields = parts[3].split()
            if len(fields) % 2:
                raise ValueError("odd number of token/score fields")
            token_scores = {
                Token.parse(fields[k]): float(fields[k + 1])
                for k in range(0, len(fields), 2)
            }
        except ValueError as e:
            raise ValueError(f"Malformed frame line: {e}") from e

        frame = cls(frame_id, token_scores, score)
        role_text = "\t".join(parts[4:]).strip()
        if role_text.startswith("["):
            for chunk in role_text[1:-1].split("],["):
                frame.add_role(_role_from_text(chunk))
        elif role_text and role_text != "no roles!":
            raise ValueError(f"Malformed role list in frame {frame_id}: {role_text[:80]!r}")
        return frame


# Heads may hold spaces ("car bomb") or brackets; both are percent-escaped on disk.
_HEAD_SAFE = "!$&'()*+,;=:@/-._~"


def _escape_head(head: str) -> str:
    return quote(head, safe=_HEAD_SAFE)


def _role_to_text(role: Role) -> str:
    slots = " ".join(str(s) for s in role.slots)
    args = " ".join(f"{_escape_head(head)},{float(score)!r}" for head, score in role.arguments)
    head = f"{slots} {role.role_type.value}" if slots else role.role_type.value
    return f"[{head} : {args}]" if args else f"[{head} :]"


def _role_from_text(text: str) -> Role:
    left, sep, right = text.partition(" :")
    if not sep:
        raise ValueError(f"Malformed role '{text[:80]}'")
    names = left.split()
    if not names:
        raise ValueError(f"Role without a type: '{text[:80]}'")
    try:
        role_type = RoleType(names[-1])
    except ValueError as e:
        raise ValueError(f"Unknown role type '{names[-1]}'") from e
    slots = [Slot.parse(name) for name in names[:-1]]

    arguments = []
    for item in right.split():
        head, comma, score = item.rpartition(",")
        if not comma or not head:
            raise ValueError(f"Malformed argument '{item}'")
        arguments.append((unquote(head), float(score)))
    # Order on disk is the ranking; keep it as written.
    return Role(role_type, slots, arguments)
