#!/usr/bin/env python3
"""
lexicon.py - Lexical Category Lookups
=====================================

Role typing needs to know what kind of thing an argument head denotes.
A ``Lexicon`` answers category questions about single nouns:

    is_person           person or social group ("mayor", "guerrilla", "army")
    is_location         place ("city", "embassy", "colombia")
    is_physical_object  non-person, non-location physical entity ("car", "bomb")
    is_material         substance ("dynamite", "gasoline")
    is_event_noun       event or act ("attack", "explosion")
    is_unknown_word     not covered by the lexicon at all

plus lemmatization, synonyms of predicate tokens, and verbs that a noun
nominalizes ("kidnapping" -> "kidnap").

Implementations:
    DictLexicon     word sets in memory, or loaded from a word-list file
    WordNetLexicon  NLTK WordNet (noun lexicographer files)

Named-entity labels produced by preprocessing are typed here too, so every
implementation agrees on them: PERSON, ORGANIZATION and *properson* are
persons, LOCATION is a location.

Requires: nltk with the wordnet corpus for WordNetLexicon

Author: Frame Inducer contributors
Version: 0.3.0
"""

import warnings
from typing import Dict, Iterable, List, Optional, Set

__all__ = [
    'Lexicon',
    'DictLexicon',
    'WordNetLexicon',
    'PERSON_LABELS',
    'LOCATION_LABELS',
    'NAMED_ENTITY_LABELS',
    'is_entity_label',
]

PERSON_LABELS = {"person", "organization", "*properson*"}
LOCATION_LABELS = {"location"}
# Labels stripped from argument vectors before slot similarity.
NAMED_ENTITY_LABELS = {"PERSON", "ORGANIZATION", "LOCATION", "*properson*", "*pro*"}


def is_entity_label(head: str) -> bool:
    """True for named-entity and pronoun placeholders produced by preprocessing."""
    return head in NAMED_ENTITY_LABELS or head.lower() in ("*pro*", "*properson*")


class Lexicon:
    """
    Category interface over argument heads and predicate tokens.

    Subclasses implement the ``_is_*`` hooks; the public predicates add the
    named-entity label rules shared by all lexicons.
    """

    def is_person(self, word: str) -> bool:
        if word.lower() in PERSON_LABELS:
            return True
        return self._is_person(word.lower())

    def is_location(self, word: str) -> bool:
        if word.lower() in LOCATION_LABELS:
            return True
        return self._is_location(word.lower())

    def is_physical_object(self, word: str) -> bool:
        if word.lower() in PERSON_LABELS or word.lower() in LOCATION_LABELS:
            return False
        return self._is_physical_object(word.lower())

    def is_material(self, word: str) -> bool:
        return self._is_material(word.lower())

    def is_event_noun(self, word: str) -> bool:
        return self._is_event_noun(word.lower())

    def is_unknown_word(self, word: str) -> bool:
        if word.lower() in PERSON_LABELS or word.lower() in LOCATION_LABELS:
            return False
        return self._is_unknown_word(word.lower())

    def lemmatize(self, word: str, pos: str = "n") -> str:
        return word.lower()

    def synonyms(self, token: str) -> List[str]:
        """Synonyms of a 'pos-lemma' token, in the same 'pos-lemma' form."""
        return []

    def verbs_of_nominalization(self, noun: str) -> List[str]:
        """Base verbs that a noun nominalizes."""
        return []

    # Hooks ---------------------------------------------------------------

    def _is_person(self, word: str) -> bool:
        return False

    def _is_location(self, word: str) -> bool:
        return False

    def _is_physical_object(self, word: str) -> bool:
        return False

    def _is_material(self, word: str) -> bool:
        return False

    def _is_event_noun(self, word: str) -> bool:
        return False

    def _is_unknown_word(self, word: str) -> bool:
        return True


# =============================================================================
# Word-set lexicon
# =============================================================================

class DictLexicon(Lexicon):
    """
    Lexicon backed by explicit word sets.

    Args:
        persons, locations, objects, materials, events: Word sets per category
        synonyms: token -> list of synonym tokens (symmetric lookups added)
        nominalizations: noun -> list of base verbs
        lemmas: surface form -> lemma

    Example:
        >>> lex = DictLexicon(persons={"mayor", "rebel"}, objects={"car"})
        >>> lex.is_person("Mayor"), lex.is_physical_object("car")
        (True, True)
    """

    def __init__(
        self,
        persons: Iterable[str] = (),
        locations: Iterable[str] = (),
        objects: Iterable[str] = (),
        materials: Iterable[str] = (),
        events: Iterable[str] = (),
        synonyms: Optional[Dict[str, List[str]]] = None,
        nominalizations: Optional[Dict[str, List[str]]] = None,
        lemmas: Optional[Dict[str, str]] = None
    ):
        self.words: Dict[str, Set[str]] = {
            "person": {w.lower() for w in persons},
            "location": {w.lower() for w in locations},
            "physobject": {w.lower() for w in objects},
            "material": {w.lower() for w in materials},
            "event": {w.lower() for w in events},
        }
        self._synonyms: Dict[str, Set[str]] = {}
        for token, others in (synonyms or {}).items():
            for other in others:
                self._synonyms.setdefault(token, set()).add(other)
                self._synonyms.setdefault(other, set()).add(token)
        self._nominalizations = {k: list(v) for k, v in (nominalizations or {}).items()}
        self._lemmas = dict(lemmas or {})

    @classmethod
    def load(cls, path: str) -> "DictLexicon":
        """
        Load a word-list file: one ``category<TAB>word [word ...]`` per line.

        Categories: person, location, physobject, material, event,
        synonym (token token ...), nominal (noun verb ...).
        """
        lexicon = cls()
        with open(path, 'r', encoding='utf-8') as f:
            for lineno, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                category, _, rest = line.partition("\t")
                words = rest.split()
                if not words:
                    raise ValueError(f"{path}:{lineno}: no words for category '{category}'")
                if category in lexicon.words:
                    lexicon.words[category].update(w.lower() for w in words)
                elif category == "synonym":
                    for w in words:
                        lexicon._synonyms.setdefault(w, set()).update(x for x in words if x != w)
                elif category == "nominal":
                    lexicon._nominalizations.setdefault(words[0], []).extend(words[1:])
                else:
                    raise ValueError(f"{path}:{lineno}: unknown lexicon category '{category}'")
        return lexicon

    def _is_person(self, word: str) -> bool:
        return word in self.words["person"]

    def _is_location(self, word: str) -> bool:
        return word in self.words["location"]

    def _is_physical_object(self, word: str) -> bool:
        return word in self.words["physobject"] or word in self.words["material"]

    def _is_material(self, word: str) -> bool:
        return word in self.words["material"]

    def _is_event_noun(self, word: str) -> bool:
        return word in self.words["event"]

    def _is_unknown_word(self, word: str) -> bool:
        return not any(word in group for group in self.words.values())

    def lemmatize(self, word: str, pos: str = "n") -> str:
        return self._lemmas.get(word, word.lower())

    def synonyms(self, token: str) -> List[str]:
        return sorted(self._synonyms.get(token, ()))

    def verbs_of_nominalization(self, noun: str) -> List[str]:
        return list(self._nominalizations.get(noun, []))


# =============================================================================
# WordNet lexicon
# =============================================================================

class WordNetLexicon(Lexicon):
    """
    Lexicon backed by NLTK WordNet.

    A noun counts as a category when any of its first ``max_senses`` noun
    senses belongs to the matching lexicographer file (noun.person,
    noun.group, noun.location, noun.artifact, noun.object, noun.substance,
    noun.event, noun.act).

    Args:
        max_senses: How many senses (most frequent first) are consulted
        download: Fetch the wordnet corpus if it is missing
    """

    PERSON_FILES = {"noun.person", "noun.group"}
    LOCATION_FILES = {"noun.location"}
    OBJECT_FILES = {"noun.artifact", "noun.object", "noun.food", "noun.plant", "noun.animal"}
    MATERIAL_FILES = {"noun.substance"}
    EVENT_FILES = {"noun.event", "noun.act", "noun.phenomenon", "noun.process"}

    def __init__(self, max_senses: int = 3, download: bool = True):
        import nltk
        try:
            from nltk.corpus import wordnet as wn
            wn.synsets('test')  # Verify data is loaded
        except LookupError:
            if not download:
                raise
            warnings.warn("Downloading WordNet data...")
            nltk.download('wordnet', quiet=True)
            nltk.download('omw-1.4', quiet=True)
            from nltk.corpus import wordnet as wn
        self.wn = wn
        self.max_senses = max_senses
        self._lexnames: Dict[str, Set[str]] = {}

    def _noun_lexnames(self, word: str) -> Set[str]:
        cached = self._lexnames.get(word)
        if cached is None:
            synsets = self.wn.synsets(word, pos=self.wn.NOUN)[:self.max_senses]
            cached = {s.lexname() for s in synsets}
            self._lexnames[word] = cached
        return cached

    def _is_person(self, word: str) -> bool:
        return bool(self._noun_lexnames(word) & self.PERSON_FILES)

    def _is_location(self, word: str) -> bool:
        return bool(self._noun_lexnames(word) & self.LOCATION_FILES)

    def _is_physical_object(self, word: str) -> bool:
        names = self._noun_lexnames(word)
        if names & (self.PERSON_FILES | self.LOCATION_FILES):
            return False
        return bool(names & (self.OBJECT_FILES | self.MATERIAL_FILES))

    def _is_material(self, word: str) -> bool:
        return bool(self._noun_lexnames(word) & self.MATERIAL_FILES)

    def _is_event_noun(self, word: str) -> bool:
        return bool(self._noun_lexnames(word) & self.EVENT_FILES)

    def _is_unknown_word(self, word: str) -> bool:
        return not self.wn.synsets(word)

    def lemmatize(self, word: str, pos: str = "n") -> str:
        wn_pos = self.wn.VERB if pos == "v" else self.wn.NOUN
        return self.wn.morphy(word.lower(), wn_pos) or word.lower()

    def synonyms(self, token: str) -> List[str]:
        pos, _, lemma = token.partition("-")
        wn_pos = self.wn.VERB if pos == "v" else self.wn.NOUN
        found = []
        for synset in self.wn.synsets(lemma, pos=wn_pos):
            for name in synset.lemma_names():
                candidate = f"{pos}-{name.lower()}"
                if candidate not in found:
                    found.append(candidate)
        return found

    def verbs_of_nominalization(self, noun: str) -> List[str]:
        verbs = []
        for synset in self.wn.synsets(noun, pos=self.wn.NOUN):
            for lemma in synset.lemmas():
                if lemma.name().lower() != noun.lower():
                    continue
                for related in lemma.derivationally_related_forms():
                    if related.synset().pos() == 'v':
                        name = related.name().lower()
                        if name not in verbs:
                            verbs.append(name)
        return verbs
