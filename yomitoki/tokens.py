"""
Token records passed between the pipeline stages.

RawSegment is what the external analyzer returns. Token is the adapter's
record with a span into the normalized text; repair passes derive new
Tokens with dataclasses.replace and never modify the ones they receive.
FinalWordToken is what callers get back.
"""

from dataclasses import dataclass, replace
from typing import NamedTuple, Optional, Tuple

from yomitoki.pos import PartOfSpeech


class RawSegment(NamedTuple):
    """One segment as reported by the external analyzer."""
    surface: str
    pos_tag: str
    pos_detail: Tuple[str, ...]
    dictionary_form: str
    reading: str
    normalized_form: str = ''


class Repair(NamedTuple):
    """
    Provenance of a repair applied to a token.

    kind is one of 'merge', 'split', 'reclassify', 'remove' or 'reading'.
    """
    stage: str
    kind: str
    reason: str
    inputs: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Token:
    """
    A token with a half-open span [start, end) into the normalized text.

    Attributes:
        start: Start offset
        end: End offset
        surface: Text of the span
        pos: Coarse part of speech
        pos_tag: Analyzer tag (e.g. "動詞")
        pos_detail: Analyzer subtags
        dictionary_form: Citation form reported by the analyzer
        reading: Analyzer reading in katakana
        normalized_form: Analyzer normalized form
        discarded: Mark with no lexical identity, dropped at assembly
        provenance: Repairs that produced this token, oldest first
    """
    start: int
    end: int
    surface: str
    pos: PartOfSpeech
    pos_tag: str = ''
    pos_detail: Tuple[str, ...] = ()
    dictionary_form: str = ''
    reading: str = ''
    normalized_form: str = ''
    discarded: bool = False
    provenance: Tuple[Repair, ...] = ()

    def __repr__(self) -> str:
        flag = ', discarded' if self.discarded else ''
        return f"Token({self.surface!r}, {self.start}:{self.end}, {self.pos.value}{flag})"

    def has_detail(self, detail: str) -> bool:
        return detail in self.pos_detail

    @property
    def is_merged(self) -> bool:
        return any(r.kind == 'merge' for r in self.provenance)

    def repaired(self, stage: str, kind: str, reason: str,
                 inputs: Tuple[str, ...] = (), **changes) -> "Token":
        """Copy of this token with changes applied and the repair recorded."""
        repair = Repair(stage, kind, reason, inputs or (self.surface,))
        return replace(self, provenance=self.provenance + (repair,), **changes)


@dataclass(slots=True)
class FinalWordToken:
    """
    A token as returned to callers.

    word_id and reading_index are None for out-of-vocabulary tokens.
    conjugations lists the inflections applied to reach the dictionary
    form, innermost first (e.g. ("te-form", "progressive", "past")).
    """
    surface: str
    start: int
    end: int
    word_id: Optional[int]
    reading_index: Optional[int]
    conjugations: Tuple[str, ...]
    pos: PartOfSpeech
    dictionary_form: str = ''
    reading: str = ''

    def __repr__(self) -> str:
        if self.word_id is None:
            return f"FinalWordToken({self.surface!r}, oov)"
        return f"FinalWordToken({self.surface!r}, {self.word_id}/{self.reading_index})"

    @property
    def is_oov(self) -> bool:
        return self.word_id is None

    @property
    def key(self) -> Optional[Tuple[int, int]]:
        """(WordId, ReadingIndex), the identity downstream consumers store."""
        if self.word_id is None:
            return None
        return (self.word_id, self.reading_index)
