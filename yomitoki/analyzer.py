"""
External morphological analyzer for yomitoki.

The pipeline treats the analyzer as a black box behind the Analyzer
protocol: text in, RawSegment list out, segments covering the input in
order. SudachiAnalyzer is the production implementation.

Installation:
    pip install sudachipy sudachidict_core
"""

import importlib.util
import logging
import threading
from typing import List, Protocol

from yomitoki.exceptions import AnalyzerError
from yomitoki.tokens import RawSegment

logger = logging.getLogger(__name__)

# Sudachi refuses inputs above ~49k bytes
MAX_INPUT_BYTES = 45_000


class Analyzer(Protocol):
    """Anything that segments text into RawSegments."""

    def analyze(self, text: str) -> List[RawSegment]:
        ...


def has_sudachi() -> bool:
    """True if sudachipy can be imported."""
    return importlib.util.find_spec("sudachipy") is not None


def split_for_analysis(text: str, max_bytes: int = MAX_INPUT_BYTES) -> List[str]:
    """
    Split text at line boundaries into chunks below max_bytes.

    A single line longer than the limit is cut at character boundaries.
    Concatenating the chunks gives back text.
    """
    if len(text.encode('utf-8')) <= max_bytes:
        return [text]
    chunks: List[str] = []
    current = ''
    current_bytes = 0
    for line in text.splitlines(keepends=True):
        size = len(line.encode('utf-8'))
        if current and current_bytes + size > max_bytes:
            chunks.append(current)
            current, current_bytes = '', 0
        while size > max_bytes:
            # 3 bytes per character is the worst case for Japanese text
            cut = max_bytes // 4
            chunks.append(line[:cut])
            line = line[cut:]
            size = len(line.encode('utf-8'))
        current += line
        current_bytes += size
    if current:
        chunks.append(current)
    return chunks


class SudachiAnalyzer:
    """
    Analyzer backed by SudachiPy.

    The Sudachi tokenizer object is not thread-safe, so calls are
    serialized on a per-instance lock.

    Args:
        split_mode: Sudachi split mode, "A", "B" or "C"
        dict_name: Sudachi dictionary package ("core", "small", "full")
    """

    def __init__(self, split_mode: str = "B", dict_name: str = "core"):
        if not has_sudachi():
            raise AnalyzerError("sudachipy is not installed (pip install sudachipy sudachidict_core)")
        from sudachipy import dictionary, tokenizer

        try:
            self._tokenizer = dictionary.Dictionary(dict=dict_name).create()
        except Exception as e:
            raise AnalyzerError(f"cannot load Sudachi dictionary {dict_name!r}: {e}") from e
        self._mode = getattr(tokenizer.Tokenizer.SplitMode, split_mode.upper())
        self._lock = threading.Lock()
        logger.info(f"Sudachi analyzer ready (dictionary={dict_name}, mode={split_mode.upper()})")

    def analyze(self, text: str) -> List[RawSegment]:
        segments: List[RawSegment] = []
        with self._lock:
            for chunk in split_for_analysis(text):
                try:
                    morphemes = self._tokenizer.tokenize(chunk, self._mode)
                except Exception as e:
                    raise AnalyzerError(f"Sudachi failed on a {len(chunk)} character chunk: {e}") from e
                for m in morphemes:
                    pos = m.part_of_speech()
                    segments.append(RawSegment(
                        surface=m.surface(),
                        pos_tag=pos[0],
                        pos_detail=tuple(p for p in pos[1:] if p != '*'),
                        dictionary_form=m.dictionary_form(),
                        reading=m.reading_form(),
                        normalized_form=m.normalized_form(),
                    ))
        return segments
