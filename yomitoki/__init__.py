"""
yomitoki: Japanese text to dictionary-linked tokens

Runs an external morphological analyzer (Sudachi) and repairs its output
until every token lines up with a JMdict word, then picks the exact
(WordId, ReadingIndex) each token stands for.

Basic Usage:
    import yomitoki

    tokens = yomitoki.parse_text("ご注文はうさぎですか")
    for token in tokens:
        print(f"{token.surface} -> {token.word_id}/{token.reading_index} {token.conjugations}")
"""

import threading
import time
import unicodedata
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from yomitoki.config import DEFAULT_CONFIG, MediaType, ParserConfig, ScoringWeights
from yomitoki.exceptions import (
    AnalysisTimeoutError,
    AnalyzerError,
    LexiconUnavailable,
    RepairLoopExceeded,
    YomitokiError,
)
from yomitoki.tokens import FinalWordToken

__version__ = "0.1.0"


# =============================================================================
# Shared Parser
# =============================================================================

_analyzer = None
_parser_lock = threading.Lock()


def set_analyzer(analyzer) -> None:
    """
    Use analyzer instead of the default SudachiAnalyzer.

    Any object with an analyze(text) -> List[RawSegment] method works.
    Passing None restores the default.
    """
    global _analyzer
    with _parser_lock:
        _analyzer = analyzer


def _get_analyzer():
    global _analyzer
    with _parser_lock:
        if _analyzer is None:
            from yomitoki.analyzer import SudachiAnalyzer
            _analyzer = SudachiAnalyzer()
        return _analyzer


def get_parser(config: Optional[ParserConfig] = None):
    """
    Parser over the shared lexicon and analyzer.

    Raises:
        LexiconUnavailable: If the lexicon cannot be loaded
        AnalyzerError: If the analyzer cannot be created
    """
    from yomitoki.dictionary import load_lexicon
    from yomitoki.parser import Parser
    return Parser(load_lexicon(), _get_analyzer(), config or DEFAULT_CONFIG)


def _check_text(text: str) -> str:
    if not text or not text.strip():
        raise ValueError("text must be non-empty and not whitespace-only")
    return unicodedata.normalize('NFC', text)


# =============================================================================
# Main API
# =============================================================================

def parse_text(text: str, config: Optional[ParserConfig] = None) -> List[FinalWordToken]:
    """
    Parse Japanese text into dictionary-linked tokens.

    Args:
        text: Japanese text (must be non-empty)
        config: Call-time configuration

    Returns:
        List of FinalWordToken in document order

    Raises:
        ValueError: If text is empty or whitespace-only
        AnalyzerError: If the external analyzer fails
        LexiconUnavailable: If the lexicon cannot be loaded or queried

    Example:
        >>> [t.surface for t in yomitoki.parse_text("ご注文はうさぎですか")]
        ['ご注文', 'は', 'うさぎ', 'ですか']
    """
    text = _check_text(text)
    return get_parser(config).parse_text(text)


def parse_texts(texts: Sequence[str], config: Optional[ParserConfig] = None) -> List[List[FinalWordToken]]:
    """
    Parse many texts with a single analyzer call.

    Results come back in input order; empty texts give empty lists.

    Example:
        >>> [[t.word_id for t in r] for r in yomitoki.parse_texts(["ママ", "パパ"])]
        [[1129240], [1102140]]
    """
    if not texts:
        return []
    texts = [unicodedata.normalize('NFC', t) for t in texts]
    return get_parser(config).parse_texts(texts)


def parse_text_diagnostic(text: str, config: Optional[ParserConfig] = None):
    """
    Parse text and return the full ParserDiagnostics trace.

    Meant for developer tooling: it records the analyzer output, every
    repair pass and the scored candidates of every token.
    """
    text = _check_text(text)
    return get_parser(config).parse_text_diagnostic(text)


def warm_up(verbose: bool = False, lexicon_path: Optional[Path] = None) -> Tuple[float, dict]:
    """
    Load the lexicon and the analyzer ahead of the first parse.

    Args:
        verbose: If True, print timing information
        lexicon_path: Lexicon directory, default location if not given

    Returns:
        Tuple of (total_time_seconds, timing_details_dict)
    """
    from yomitoki.dictionary import load_lexicon

    timings = {}
    total_start = time.perf_counter()

    if verbose:
        print("Loading yomitoki...")

    t0 = time.perf_counter()
    lexicon = load_lexicon(lexicon_path)
    timings['lexicon'] = (time.perf_counter() - t0) * 1000

    if verbose:
        print(f"  Lexicon:        {timings['lexicon']:>7.1f}ms ({len(lexicon):,} entries)")

    t0 = time.perf_counter()
    _get_analyzer()
    timings['analyzer'] = (time.perf_counter() - t0) * 1000

    if verbose:
        print(f"  Analyzer:       {timings['analyzer']:>7.1f}ms")

    total_time = time.perf_counter() - total_start
    timings['total'] = total_time * 1000

    if verbose:
        print(f"Total warm-up:    {timings['total']:>7.1f}ms")

    return total_time, timings


def get_version() -> str:
    """Get the library version."""
    return __version__


# =============================================================================
# Async API
# =============================================================================

_executor = None


def _get_executor():
    """Get or create the thread pool executor."""
    global _executor
    from concurrent.futures import ThreadPoolExecutor

    with _parser_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="yomitoki")
    return _executor


async def parse_text_async(
    text: str,
    timeout: float = 30.0,
    config: Optional[ParserConfig] = None,
) -> List[FinalWordToken]:
    """
    Parse text on a worker thread.

    Args:
        text: Japanese text
        timeout: Maximum time in seconds (default 30s)
        config: Call-time configuration

    Raises:
        AnalysisTimeoutError: If parsing exceeds timeout
        ValueError: If text is empty

    Example:
        >>> import asyncio
        >>> tokens = asyncio.run(yomitoki.parse_text_async("今日は"))
    """
    import asyncio

    loop = asyncio.get_running_loop()
    executor = _get_executor()

    try:
        future = loop.run_in_executor(executor, parse_text, text, config)
        return await asyncio.wait_for(future, timeout=timeout)
    except asyncio.TimeoutError:
        raise AnalysisTimeoutError(f"Parsing timed out after {timeout}s")


def shutdown():
    """
    Shutdown the thread pool executor.

    Call this when your application is shutting down to cleanly
    release resources.
    """
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=True)
        _executor = None


# =============================================================================
# Session Context (for batch processing)
# =============================================================================

@contextmanager
def session_context(lexicon_path: Optional[Path] = None):
    """
    Context manager for batch parsing.

    Loads the lexicon and the analyzer up front and yields a Parser bound
    to them.

    Example:
        >>> with yomitoki.session_context() as parser:
        ...     for text in texts:
        ...         tokens = parser.parse_text(text)
    """
    warm_up(lexicon_path=lexicon_path)
    yield get_parser()


# =============================================================================
# Module-level exports
# =============================================================================

__all__ = [
    # Data classes
    "FinalWordToken",
    "ParserConfig",
    "ScoringWeights",
    "MediaType",
    # Sync API
    "parse_text",
    "parse_texts",
    "parse_text_diagnostic",
    "get_parser",
    "set_analyzer",
    "warm_up",
    "get_version",
    # Async API
    "parse_text_async",
    "shutdown",
    # Batch processing
    "session_context",
    # Exceptions
    "YomitokiError",
    "AnalyzerError",
    "LexiconUnavailable",
    "RepairLoopExceeded",
    "AnalysisTimeoutError",
    # Version
    "__version__",
]
