"""
Lexicon store for yomitoki.

The pipeline only depends on the query contract of the Lexicon base class:
forms by surface text, forms by reading, and form by (WordId, ReadingIndex).
Two implementations are provided:

- MemoryLexicon: built from LexiconEntry objects, used for tests and small
  custom vocabularies.
- TrieLexicon: the production store built from JMdict by
  scripts/build_lexicon.py. Lookup keys live in a marisa_trie.RecordTrie,
  entries are JSON blobs in a marisa_trie.BytesTrie. Both files are
  memory-mapped, so loading is instant and the snapshot is immutable.
"""

import json
import logging
import struct
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

import marisa_trie

from yomitoki.characters import as_hiragana, is_kana, normalize_long_vowels, strip_long_vowels
from yomitoki.config import get_lexicon_dir
from yomitoki.exceptions import LexiconUnavailable
from yomitoki.pos import PartOfSpeech, classes_of

logger = logging.getLogger(__name__)

# ============================================================================
# Binary Record Schema
# ============================================================================
# Each lookup key maps to one or more records:
#   - word_id: int32 (4 bytes) - JMdict sequence ID
#   - reading_index: uint8 (1 byte) - position of the form in the entry
#   - kind: uint8 (1 byte) - KEY_TEXT or KEY_READING
#
# Format string: little-endian int32, uint8, uint8

RECORD_FORMAT = "<iBB"
RECORD_SIZE = struct.calcsize(RECORD_FORMAT)

# Decoded entries kept per TrieLexicon
ENTRY_CACHE_SIZE = 65536

KEY_TEXT = 0
KEY_READING = 1

INDEX_FILENAME = "lexicon.idx"
ENTRIES_FILENAME = "entries.dat"

FORM_KANJI = "kanji"
FORM_KANA = "kana"

OBSOLETE_TAGS = frozenset({'ok', 'oK'})
SEARCH_ONLY_TAGS = frozenset({'sK', 'sk'})
RARE_TAGS = frozenset({'rK', 'rk'})
IRREGULAR_TAGS = frozenset({'iK', 'ik', 'io'})


@dataclass(frozen=True, slots=True)
class WordForm:
    """
    One orthographic form of a lexicon entry.

    Attributes:
        word_id: JMdict sequence ID of the owning entry
        reading_index: Position in the entry's form list
        text: Form text (kanji or kana)
        ruby_text: Furigana for display
        form_type: FORM_KANJI or FORM_KANA
        priorities: JMdict priority tags (ichi1, news1, nf12, ...)
        info_tags: JMdict info tags (ok, sK, rK, ...)
        is_no_kanji: Kana form that is not a reading of the kanji forms
    """
    word_id: int
    reading_index: int
    text: str
    ruby_text: str = ''
    form_type: str = FORM_KANA
    priorities: Tuple[str, ...] = ()
    info_tags: Tuple[str, ...] = ()
    is_no_kanji: bool = False

    @property
    def key(self) -> Tuple[int, int]:
        return (self.word_id, self.reading_index)

    @property
    def is_kana(self) -> bool:
        return self.form_type == FORM_KANA

    @property
    def is_obsolete(self) -> bool:
        return not OBSOLETE_TAGS.isdisjoint(self.info_tags)

    @property
    def is_search_only(self) -> bool:
        return not SEARCH_ONLY_TAGS.isdisjoint(self.info_tags)

    @property
    def is_rare(self) -> bool:
        return not RARE_TAGS.isdisjoint(self.info_tags)

    @property
    def is_irregular(self) -> bool:
        return not IRREGULAR_TAGS.isdisjoint(self.info_tags)


@dataclass(frozen=True, slots=True)
class LexiconEntry:
    """A lexicon entry: a WordId, its ordered forms and its JMdict POS tags."""
    word_id: int
    forms: Tuple[WordForm, ...]
    pos_tags: Tuple[str, ...] = ()

    @property
    def classes(self) -> FrozenSet[PartOfSpeech]:
        return classes_of(self.pos_tags)

    @property
    def priorities(self) -> FrozenSet[str]:
        """Priority tags of the entry as a whole (union over its forms)."""
        return frozenset(p for form in self.forms for p in form.priorities)

    @property
    def kana_forms(self) -> Tuple[WordForm, ...]:
        return tuple(f for f in self.forms if f.is_kana)

    @property
    def is_pure_kana(self) -> bool:
        """True when the entry has no kanji form at all."""
        return all(f.is_kana for f in self.forms)

    def form(self, reading_index: int) -> Optional[WordForm]:
        if 0 <= reading_index < len(self.forms):
            return self.forms[reading_index]
        return None


def make_entry(word_id: int, kanji: Iterable = (), kana: Iterable = (),
               pos: Iterable[str] = ()) -> LexiconEntry:
    """
    Build a LexiconEntry from plain values.

    kanji and kana are iterables of either a text or a (text, priorities,
    info_tags) tuple. Kanji forms come first, as in JMdict.

    Example:
        >>> make_entry(1129240, kana=[("ママ", ("gai1",), ())], pos=["n"])
    """
    forms = []
    for form_type, items in ((FORM_KANJI, kanji), (FORM_KANA, kana)):
        for item in items:
            if isinstance(item, str):
                item = (item,)
            text, priorities, info_tags = (tuple(item) + ((), ()))[:3]
            forms.append(WordForm(
                word_id=word_id,
                reading_index=len(forms),
                text=text,
                ruby_text=text,
                form_type=form_type,
                priorities=tuple(priorities),
                info_tags=tuple(info_tags),
            ))
    return LexiconEntry(word_id=word_id, forms=tuple(forms), pos_tags=tuple(pos))


def lookup_keys(form: WordForm) -> Iterator[Tuple[str, int]]:
    """Index keys for a form: its text, plus folded reading keys for kana."""
    yield form.text, KEY_TEXT
    if form.is_kana or is_kana(form.text):
        seen = set()
        for key in (as_hiragana(form.text), normalize_long_vowels(form.text),
                    strip_long_vowels(form.text)):
            if key and key not in seen:
                seen.add(key)
                yield key, KEY_READING


# ============================================================================
# Serialization
# ============================================================================

def entry_to_json(entry: LexiconEntry) -> bytes:
    data = {
        'id': entry.word_id,
        'pos': list(entry.pos_tags),
        'forms': [
            {'t': f.text, 'r': f.ruby_text, 'k': f.form_type, 'p': list(f.priorities),
             'i': list(f.info_tags), 'n': f.is_no_kanji}
            for f in entry.forms
        ],
    }
    return json.dumps(data, ensure_ascii=False, separators=(',', ':')).encode('utf-8')


def entry_from_json(blob: bytes) -> LexiconEntry:
    data = json.loads(blob.decode('utf-8'))
    word_id = data['id']
    forms = tuple(
        WordForm(
            word_id=word_id,
            reading_index=i,
            text=f['t'],
            ruby_text=f.get('r', f['t']),
            form_type=f['k'],
            priorities=tuple(f.get('p', ())),
            info_tags=tuple(f.get('i', ())),
            is_no_kanji=f.get('n', False),
        )
        for i, f in enumerate(data['forms'])
    )
    return LexiconEntry(word_id=word_id, forms=forms, pos_tags=tuple(data.get('pos', ())))


# ============================================================================
# Query Contract
# ============================================================================

class Lexicon(ABC):
    """
    Read-only lexicon queries used by the pipeline.

    Subclasses provide _records() and entry(); everything else is derived.
    """

    @abstractmethod
    def _records(self, key: str) -> List[Tuple[int, int, int]]:
        """(word_id, reading_index, kind) records stored under key."""

    @abstractmethod
    def entry(self, word_id: int) -> Optional[LexiconEntry]:
        """Entry by WordId, or None."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of entries."""

    def _forms(self, key: str, kind: int) -> List[WordForm]:
        forms = []
        seen = set()
        for word_id, reading_index, record_kind in self._records(key):
            if record_kind != kind or (word_id, reading_index) in seen:
                continue
            seen.add((word_id, reading_index))
            form = self.form(word_id, reading_index)
            if form is not None:
                forms.append(form)
        return forms

    def forms_by_text(self, text: str) -> List[WordForm]:
        """All forms whose text is exactly text."""
        if not text:
            return []
        return self._forms(text, KEY_TEXT)

    def forms_by_reading(self, reading: str) -> List[WordForm]:
        """
        All kana forms whose reading matches.

        The reading is folded to hiragana with long vowels expanded, so
        katakana analyzer readings match hiragana forms.
        """
        if not reading:
            return []
        forms = []
        seen = set()
        for key in dict.fromkeys((as_hiragana(reading), normalize_long_vowels(reading))):
            for form in self._forms(key, KEY_READING):
                if form.key not in seen:
                    seen.add(form.key)
                    forms.append(form)
        return forms

    def form(self, word_id: int, reading_index: int) -> Optional[WordForm]:
        """Form by (WordId, ReadingIndex), or None."""
        entry = self.entry(word_id)
        if entry is None:
            return None
        return entry.form(reading_index)

    def contains(self, text: str) -> bool:
        """True if any form has exactly this text."""
        return any(kind == KEY_TEXT for _, _, kind in self._records(text))

    def entries_for_text(self, text: str) -> List[LexiconEntry]:
        """Distinct entries owning a form with this text, lowest WordId first."""
        word_ids = sorted({f.word_id for f in self.forms_by_text(text)})
        return [e for e in map(self.entry, word_ids) if e is not None]


class MemoryLexicon(Lexicon):
    """
    Lexicon held in plain dictionaries.

    Example:
        >>> lexicon = MemoryLexicon([make_entry(1129240, kana=["ママ"], pos=["n"])])
        >>> lexicon.forms_by_text("ママ")[0].key
        (1129240, 0)
    """

    def __init__(self, entries: Iterable[LexiconEntry] = ()):
        self._entries: Dict[int, LexiconEntry] = {}
        self._index: Dict[str, List[Tuple[int, int, int]]] = defaultdict(list)
        for entry in entries:
            self._entries[entry.word_id] = entry
            for form in entry.forms:
                for key, kind in lookup_keys(form):
                    self._index[key].append((entry.word_id, form.reading_index, kind))

    def _records(self, key: str) -> List[Tuple[int, int, int]]:
        return self._index.get(key, [])

    def entry(self, word_id: int) -> Optional[LexiconEntry]:
        return self._entries.get(word_id)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> Iterator[LexiconEntry]:
        return iter(self._entries.values())


class TrieLexicon(Lexicon):
    """
    Lexicon backed by memory-mapped marisa tries.

    Decoded entries are memoised per instance; entries are frozen and the
    snapshot never changes.
    """

    def __init__(self, index: marisa_trie.RecordTrie, entries: marisa_trie.BytesTrie,
                 cache_size: int = ENTRY_CACHE_SIZE):
        self._index = index
        self._entries = entries
        self._cached_entry = lru_cache(maxsize=cache_size)(self._decode_entry)

    def _records(self, key: str) -> List[Tuple[int, int, int]]:
        try:
            return self._index.get(key, [])
        except (OSError, ValueError) as e:
            raise LexiconUnavailable(f"lexicon index lookup failed for {key!r}") from e

    def _decode_entry(self, word_id: int) -> Optional[LexiconEntry]:
        try:
            blobs = self._entries.get(str(word_id))
        except (OSError, ValueError) as e:
            raise LexiconUnavailable(f"lexicon entry lookup failed for {word_id}") from e
        if not blobs:
            return None
        return entry_from_json(blobs[0])

    def entry(self, word_id: int) -> Optional[LexiconEntry]:
        return self._cached_entry(word_id)

    def cache_info(self):
        """Hit/miss statistics of the decoded-entry cache."""
        return self._cached_entry.cache_info()

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def open(cls, directory: Path) -> "TrieLexicon":
        """
        Memory-map the lexicon files in directory.

        Raises:
            LexiconUnavailable: If a file is missing or unreadable
        """
        index_path = directory / INDEX_FILENAME
        entries_path = directory / ENTRIES_FILENAME
        for path in (index_path, entries_path):
            if not path.exists():
                raise LexiconUnavailable(
                    f"Lexicon file not found at {path}. "
                    "Run 'python scripts/build_lexicon.py' to build it."
                )
        index = marisa_trie.RecordTrie(RECORD_FORMAT)
        entries = marisa_trie.BytesTrie()
        try:
            index.mmap(str(index_path))
            entries.mmap(str(entries_path))
        except Exception as e:
            raise LexiconUnavailable(f"cannot map lexicon files in {directory}: {e}") from e
        return cls(index, entries)


def save_lexicon(entries: Iterable[LexiconEntry], directory: Path) -> int:
    """
    Write entries as a TrieLexicon into directory.

    Returns:
        Number of entries written
    """
    directory.mkdir(parents=True, exist_ok=True)
    records = []
    blobs = []
    for entry in entries:
        blobs.append((str(entry.word_id), entry_to_json(entry)))
        for form in entry.forms:
            for key, kind in lookup_keys(form):
                records.append((key, (entry.word_id, form.reading_index, kind)))

    marisa_trie.RecordTrie(RECORD_FORMAT, records).save(str(directory / INDEX_FILENAME))
    marisa_trie.BytesTrie(blobs).save(str(directory / ENTRIES_FILENAME))
    logger.info(f"Saved {len(blobs)} entries ({len(records)} lookup keys) to {directory}")
    return len(blobs)


# ============================================================================
# Lexicon Loading
# ============================================================================

# Module-level singleton
_LEXICON: Optional[Lexicon] = None


def is_lexicon_loaded() -> bool:
    return _LEXICON is not None


def load_lexicon(path: Optional[Path] = None) -> Lexicon:
    """
    Load the shared lexicon snapshot.

    The first call maps the files; later calls return the same object.

    Args:
        path: Directory holding the lexicon files. Uses default if not specified.

    Returns:
        The loaded Lexicon

    Raises:
        LexiconUnavailable: If the lexicon files don't exist
    """
    global _LEXICON

    if _LEXICON is not None:
        return _LEXICON

    directory = get_lexicon_dir(path)
    logger.info(f"Loading lexicon from {directory}")
    _LEXICON = TrieLexicon.open(directory)
    return _LEXICON


def set_lexicon(lexicon: Optional[Lexicon]) -> None:
    """Install lexicon as the shared snapshot (None unloads it)."""
    global _LEXICON
    _LEXICON = lexicon


def unload_lexicon():
    """Unload the shared lexicon to free memory."""
    set_lexicon(None)
