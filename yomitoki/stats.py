"""
Document statistics over a parsed token stream.

The media type only matters here: sentence counts are meaningless for
subtitles and speech bubbles, so those media report zero sentences.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence

from yomitoki.characters import is_clause_boundary
from yomitoki.config import MediaType
from yomitoki.pos import NON_LEXICAL
from yomitoki.tokens import FinalWordToken

SENTENCE_ENDINGS = frozenset('。！？!?')


@dataclass(frozen=True, slots=True)
class DocumentStats:
    """
    Attributes:
        character_count: Characters in word tokens (punctuation excluded)
        word_count: Word tokens, OOV included
        unique_word_count: Distinct (WordId, ReadingIndex) keys
        oov_count: Word tokens with no lexicon match
        sentence_count: Sentences, 0 for media without sentences
    """
    character_count: int
    word_count: int
    unique_word_count: int
    oov_count: int
    sentence_count: int

    def to_dict(self) -> dict:
        return {
            'character_count': self.character_count,
            'word_count': self.word_count,
            'unique_word_count': self.unique_word_count,
            'oov_count': self.oov_count,
            'sentence_count': self.sentence_count,
        }


def count_sentences(tokens: Sequence[FinalWordToken]) -> int:
    """
    Count sentences: runs of words closed by 。！？ or the end of input.

    Example:
        >>> count_sentences(parse_text("はい。いいえ"))
        2
    """
    count = 0
    open_sentence = False
    for token in tokens:
        if token.pos in NON_LEXICAL:
            if open_sentence and any(c in SENTENCE_ENDINGS for c in token.surface):
                count += 1
                open_sentence = False
            continue
        if not is_clause_boundary(token.surface):
            open_sentence = True
    if open_sentence:
        count += 1
    return count


def document_stats(tokens: Iterable[FinalWordToken],
                   media_type: MediaType = MediaType.NOVEL) -> DocumentStats:
    """Statistics for a token stream, or several streams chained together."""
    tokens = list(tokens)
    words = [t for t in tokens if t.pos not in NON_LEXICAL]
    keys = {t.key for t in words if t.key is not None}
    sentences = count_sentences(tokens) if media_type.reports_sentences else 0
    return DocumentStats(
        character_count=sum(len(t.surface) for t in words),
        word_count=len(words),
        unique_word_count=len(keys),
        oov_count=sum(1 for t in words if t.is_oov),
        sentence_count=sentences,
    )
