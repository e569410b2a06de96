"""
Candidate generation for yomitoki.

For every repaired token, collect the lexicon forms it could stand for:
exact surface matches, the analyzer's dictionary form, script-folded
keys, reading matches and deconjugated citation forms. Each hypothesis
becomes a FormCandidate which the scorer ranks.
"""

import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from yomitoki.characters import (
    LONG_VOWEL_MARK,
    SOKUON,
    as_hiragana,
    is_kana,
    normalize_long_vowels,
    strip_long_vowels,
)
from yomitoki.deconjugator import Deconjugation, citation_forms, matches_pos
from yomitoki.dictionary import Lexicon, LexiconEntry, WordForm
from yomitoki.pos import INFLECTABLE, NON_LEXICAL
from yomitoki.tokens import Token

logger = logging.getLogger(__name__)


class MatchKind(str, Enum):
    """How a candidate was found, best first."""
    SURFACE = "surface"
    DICTIONARY_FORM = "dictionary_form"
    FOLDED = "folded"
    DECONJUGATED = "deconjugated"
    READING = "reading"
    FALLBACK = "fallback"


_MATCH_RANK = {kind: rank for rank, kind in enumerate(MatchKind)}


@dataclass(slots=True)
class CandidateScores:
    """Per-feature scores of one candidate; the total decides the ranking."""
    entry_priority: int = 0
    form_priority: int = 0
    form_flags: int = 0
    surface: int = 0
    script: int = 0
    reading: int = 0
    word: int = 0

    @property
    def total(self) -> int:
        return (self.entry_priority + self.form_priority + self.form_flags + self.surface
                + self.script + self.reading + self.word)

    def to_dict(self) -> dict:
        return {
            'entry_priority': self.entry_priority,
            'form_priority': self.form_priority,
            'form_flags': self.form_flags,
            'surface': self.surface,
            'script': self.script,
            'reading': self.reading,
            'word': self.word,
            'total': self.total,
        }


@dataclass(slots=True)
class FormCandidate:
    """
    A hypothesis that a token is the form (word_id, reading_index).

    Attributes:
        form: The lexicon form
        entry: The form's entry
        match: How the form was found
        deconjugation: Derivation from the token surface, if conjugated
        scores: Feature scores, set by scoring.score_candidates
        selected: True for the candidate the scorer picked
    """
    form: WordForm
    entry: LexiconEntry
    match: MatchKind
    deconjugation: Optional[Deconjugation] = None
    scores: Optional[CandidateScores] = None
    selected: bool = False

    def __repr__(self) -> str:
        total = self.scores.total if self.scores is not None else None
        return f"FormCandidate({self.form.text!r}, {self.word_id}/{self.reading_index}, {self.match.value}, score={total})"

    @property
    def word_id(self) -> int:
        return self.form.word_id

    @property
    def reading_index(self) -> int:
        return self.form.reading_index

    @property
    def key(self) -> Tuple[int, int]:
        return self.form.key

    @property
    def conjugations(self) -> Tuple[str, ...]:
        if self.deconjugation is None:
            return ()
        return self.deconjugation.labels

    def to_dict(self) -> dict:
        return {
            'word_id': self.word_id,
            'reading_index': self.reading_index,
            'text': self.form.text,
            'match': self.match.value,
            'conjugations': list(self.conjugations),
            'scores': self.scores.to_dict() if self.scores is not None else None,
            'selected': self.selected,
        }


# ============================================================================
# Lookup Keys
# ============================================================================

def folded_keys(surface: str) -> List[str]:
    """
    Script-folded variants of surface: hiragana, long vowels expanded or
    stripped, and NFKC width folding. The surface itself is excluded.
    """
    keys = [
        as_hiragana(surface),
        normalize_long_vowels(surface),
        strip_long_vowels(surface),
        unicodedata.normalize('NFKC', surface),
    ]
    return [k for k in dict.fromkeys(keys) if k and k != surface]


def fallback_keys(surface: str) -> List[str]:
    """
    Last-resort keys for a token nothing else matched: trailing sokuon,
    long vowel or repeated character removed, honorific お removed.
    """
    keys = []
    if len(surface) > 1:
        if surface[-1] in SOKUON or surface[-1] == LONG_VOWEL_MARK:
            keys.append(surface[:-1])
        if surface[-1] == surface[-2]:
            keys.append(surface.rstrip(surface[-1]) + surface[-1])
        if surface[0] == 'お' and len(surface) > 2:
            keys.append(surface[1:])
    return [k for k in dict.fromkeys(keys) if k and k != surface]


def _skip(token: Token) -> bool:
    if token.discarded or token.pos in NON_LEXICAL:
        return True
    surface = token.surface
    if surface.isdigit():
        return True
    return len(surface) == 1 and surface.isascii() and surface.isalpha()


# ============================================================================
# Generation
# ============================================================================

class _Collector:
    """Keeps one candidate per (WordId, ReadingIndex), the best match wins."""

    def __init__(self, lexicon: Lexicon, surface: str):
        self.lexicon = lexicon
        self.surface = surface
        self.found: Dict[Tuple[int, int], FormCandidate] = {}

    def add(self, form: WordForm, match: MatchKind, deconjugation: Optional[Deconjugation] = None):
        current = self.found.get(form.key)
        if current is not None:
            if _MATCH_RANK[match] < _MATCH_RANK[current.match]:
                current.match = match
            if current.deconjugation is None and deconjugation is not None and form.text != self.surface:
                current.deconjugation = deconjugation
            return
        entry = self.lexicon.entry(form.word_id)
        if entry is None:
            return
        self.found[form.key] = FormCandidate(form=form, entry=entry, match=match,
                                             deconjugation=deconjugation)

    def add_all(self, forms, match: MatchKind):
        for form in forms:
            self.add(form, match)

    def __len__(self) -> int:
        return len(self.found)

    def __iter__(self) -> Iterator[FormCandidate]:
        return iter(self.found.values())


def _deconjugated(token: Token, lexicon: Lexicon) -> Iterator[Tuple[WordForm, Deconjugation]]:
    for surface in dict.fromkeys((token.surface, as_hiragana(token.surface))):
        for deconjugation in citation_forms(surface):
            for form in lexicon.forms_by_text(deconjugation.text):
                entry = lexicon.entry(form.word_id)
                if entry is not None and matches_pos(deconjugation, entry.pos_tags):
                    yield form, deconjugation


def generate_candidates(token: Token, lexicon: Lexicon) -> List[FormCandidate]:
    """
    All forms the token could stand for, in a stable order.

    Returns an empty list for punctuation, blanks, discarded marks and
    tokens the lexicon does not know; such tokens become OOV.

    Raises:
        LexiconUnavailable: If the lexicon cannot be queried
    """
    if _skip(token):
        return []

    surface = token.surface
    found = _Collector(lexicon, surface)

    found.add_all(lexicon.forms_by_text(surface), MatchKind.SURFACE)
    if token.dictionary_form and token.dictionary_form != surface:
        found.add_all(lexicon.forms_by_text(token.dictionary_form), MatchKind.DICTIONARY_FORM)
    for key in folded_keys(surface):
        found.add_all(lexicon.forms_by_text(key), MatchKind.FOLDED)
    if is_kana(surface):
        found.add_all(lexicon.forms_by_reading(surface), MatchKind.FOLDED)

    if token.pos in INFLECTABLE or not found:
        for form, deconjugation in _deconjugated(token, lexicon):
            found.add(form, MatchKind.DECONJUGATED, deconjugation)

    if token.reading:
        found.add_all(lexicon.forms_by_reading(token.reading), MatchKind.READING)

    if not found:
        for key in fallback_keys(surface):
            found.add_all(lexicon.forms_by_text(key), MatchKind.FALLBACK)
            for key_form in folded_keys(key):
                found.add_all(lexicon.forms_by_text(key_form), MatchKind.FALLBACK)

    candidates = sorted(found, key=lambda c: c.key)
    logger.debug(f"{surface!r}: {len(candidates)} candidates")
    return candidates
