"""
Tokenizer adapter for yomitoki.

Runs the external analyzer once per call and turns its RawSegments into
Tokens with spans into the normalized text.

Boundary hints from the normalizer are passed to the analyzer as a stop
character inserted into its input; stop characters never appear in the
resulting tokens. For batches, all texts are joined with BATCH_DELIMITER
and analyzed in a single call, then split back by character range.
"""

import logging
from typing import List, Sequence, Tuple

from yomitoki.analyzer import Analyzer
from yomitoki.characters import is_punctuation
from yomitoki.exceptions import AnalyzerError
from yomitoki.normalizer import boundary_hints
from yomitoki.pos import PartOfSpeech, from_analyzer_tag
from yomitoki.tokens import RawSegment, Token

logger = logging.getLogger(__name__)

STOP_CHAR = '|'
BATCH_DELIMITER = '\n|||\n'


class PreparedText:
    """
    Analyzer input for one normalized text.

    kept_before[i] is the number of normalized characters that precede
    position i of analysis_text, i.e. the normalized offset of i.
    """
    __slots__ = ('text', 'analysis_text', 'kept_before')

    def __init__(self, text: str, hints: Sequence[int] = ()):
        pieces = []
        kept_before = []
        hint_set = set(hints)
        for i, char in enumerate(text):
            if i in hint_set:
                pieces.append(STOP_CHAR)
                kept_before.append(i)
            pieces.append(char)
            kept_before.append(i)
        kept_before.append(len(text))
        self.text = text
        self.analysis_text = ''.join(pieces)
        self.kept_before = kept_before

    def span(self, start: int, end: int) -> Tuple[int, int]:
        """Map an analysis-text span to a normalized-text span."""
        return self.kept_before[start], self.kept_before[end]


def prepare(text: str) -> PreparedText:
    return PreparedText(text, boundary_hints(text))


def align_segments(text: str, segments: Sequence[RawSegment]) -> List[Tuple[RawSegment, int, int]]:
    """
    Attach [start, end) offsets in text to each segment.

    Whitespace the analyzer dropped is skipped over.

    Raises:
        AnalyzerError: If the segments do not reproduce text in order
    """
    aligned = []
    pos = 0
    for segment in segments:
        surface = segment.surface
        if not surface:
            continue
        if not text.startswith(surface, pos):
            skipped = pos
            while pos < len(text) and text[pos].isspace() and not text.startswith(surface, pos):
                pos += 1
            if not text.startswith(surface, pos):
                raise AnalyzerError(
                    f"analyzer output {surface!r} does not match input at offset {pos}")
            logger.warning(f"Realigned analyzer output after skipping {pos - skipped} characters")
        aligned.append((segment, pos, pos + len(surface)))
        pos += len(surface)
    return aligned


def make_token(segment: RawSegment, start: int, end: int, surface: str) -> Token:
    if surface.isspace():
        pos = PartOfSpeech.BLANK
    elif is_punctuation(surface):
        pos = PartOfSpeech.SYMBOL
    else:
        pos = from_analyzer_tag(segment.pos_tag, segment.pos_detail)
    return Token(
        start=start,
        end=end,
        surface=surface,
        pos=pos,
        pos_tag=segment.pos_tag,
        pos_detail=tuple(segment.pos_detail),
        dictionary_form=segment.dictionary_form,
        reading=segment.reading,
        normalized_form=segment.normalized_form,
    )


def _to_tokens(prepared: PreparedText, aligned, offset: int) -> List[Token]:
    tokens = []
    for segment, start, end in aligned:
        norm_start, norm_end = prepared.span(start - offset, end - offset)
        surface = prepared.text[norm_start:norm_end]
        if not surface:
            continue
        tokens.append(make_token(segment, norm_start, norm_end, surface))
    return tokens


def analyze_prepared(prepared: Sequence[PreparedText], analyzer: Analyzer) -> Tuple[List[List[Token]], List[RawSegment]]:
    """
    Analyze prepared texts with one analyzer call.

    Returns:
        Tuple of (tokens per text, raw analyzer segments)

    Raises:
        AnalyzerError: If the analyzer fails, or a segment spans two texts
    """
    if not any(p.text for p in prepared):
        return [[] for _ in prepared], []

    combined = BATCH_DELIMITER.join(p.analysis_text for p in prepared)
    try:
        segments = analyzer.analyze(combined)
    except AnalyzerError:
        raise
    except Exception as e:
        raise AnalyzerError(f"analyzer failed: {e}") from e

    aligned = align_segments(combined, segments)

    ranges = []
    offset = 0
    for p in prepared:
        ranges.append((offset, offset + len(p.analysis_text)))
        offset += len(p.analysis_text) + len(BATCH_DELIMITER)

    per_text: List[list] = [[] for _ in prepared]
    index = 0
    for item in aligned:
        segment, start, end = item
        while index < len(ranges) and start >= ranges[index][1]:
            index += 1
        if index == len(ranges):
            if combined[start:end].strip(BATCH_DELIMITER):
                raise AnalyzerError(f"analyzer produced {combined[start:end]!r} past the end of input")
            continue
        range_start, range_end = ranges[index]
        if end <= range_start:
            # inside a delimiter
            continue
        if range_start <= start and end <= range_end:
            per_text[index].append(item)
            continue
        if not combined[start:end].isspace():
            raise AnalyzerError(
                f"analyzer segment {combined[start:end]!r} crosses a text boundary")
        # the analyzer joins whitespace runs across the delimiter
        for k in range(index, len(ranges)):
            piece_start, piece_end = max(start, ranges[k][0]), min(end, ranges[k][1])
            if ranges[k][0] >= end:
                break
            if piece_start < piece_end:
                piece = segment._replace(surface=combined[piece_start:piece_end],
                                         dictionary_form=combined[piece_start:piece_end])
                per_text[k].append((piece, piece_start, piece_end))

    tokens = [_to_tokens(p, items, r[0]) for p, items, r in zip(prepared, per_text, ranges)]
    return tokens, list(segments)


def tokenize(text: str, analyzer: Analyzer) -> List[Token]:
    """
    Tokenize one normalized text.

    Raises:
        AnalyzerError: If the analyzer fails or returns malformed output
    """
    tokens, _ = analyze_prepared([prepare(text)], analyzer)
    return tokens[0]


def tokenize_batch(texts: Sequence[str], analyzer: Analyzer) -> List[List[Token]]:
    """Tokenize several normalized texts with a single analyzer call."""
    tokens, _ = analyze_prepared([prepare(t) for t in texts], analyzer)
    return tokens
