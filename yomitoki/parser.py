"""
The yomitoki pipeline.

Parser wires the stages together:

    normalize -> analyzer adapter -> repair passes -> candidates ->
    scoring -> assembly

A Parser holds the lexicon, the analyzer and the configuration and no
per-call state, so one instance can serve concurrent calls.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Sequence, Union

from yomitoki.adapter import analyze_prepared, prepare, tokenize, tokenize_batch
from yomitoki.analyzer import Analyzer
from yomitoki.assembler import assemble
from yomitoki.config import DEFAULT_CONFIG, ParserConfig
from yomitoki.diagnostics import AnalyzerTrace, ParserDiagnostics
from yomitoki.dictionary import Lexicon
from yomitoki.normalizer import normalize
from yomitoki.repairs import RepairContext, repair_tokens
from yomitoki.stats import DocumentStats, document_stats
from yomitoki.tokens import FinalWordToken, Token

logger = logging.getLogger(__name__)


class Parser:
    """
    Japanese text to dictionary-linked tokens.

    Args:
        lexicon: Lexicon to resolve tokens against
        analyzer: External morphological analyzer
        config: Call-time configuration

    Example:
        >>> parser = Parser(load_lexicon(), SudachiAnalyzer())
        >>> [t.surface for t in parser.parse_text("ご注文はうさぎですか")]
        ['ご注文', 'は', 'うさぎ', 'ですか']
    """

    def __init__(self, lexicon: Lexicon, analyzer: Analyzer, config: ParserConfig = DEFAULT_CONFIG):
        self.lexicon = lexicon
        self.analyzer = analyzer
        self.config = config
        self._context = RepairContext(lexicon)

    def __repr__(self) -> str:
        return f"Parser(lexicon={len(self.lexicon):,} entries, analyzer={type(self.analyzer).__name__})"

    def with_config(self, config: ParserConfig) -> "Parser":
        """A parser sharing this one's lexicon and analyzer."""
        return Parser(self.lexicon, self.analyzer, config)

    # ------------------------------------------------------------------------
    # Production path
    # ------------------------------------------------------------------------

    def _finish(self, tokens: List[Token]) -> List[FinalWordToken]:
        repaired = repair_tokens(tokens, self._context, self.config.max_repair_iterations)
        finals, _ = assemble(repaired.tokens, self.lexicon, self.config.weights)
        return finals

    def parse_text(self, text: str) -> List[FinalWordToken]:
        """
        Parse one text.

        Raises:
            AnalyzerError: If the analyzer fails
            LexiconUnavailable: If the lexicon cannot be queried
        """
        return self._finish(tokenize(normalize(text), self.analyzer))

    def parse_texts(self, texts: Sequence[str]) -> List[List[FinalWordToken]]:
        """
        Parse several texts with a single analyzer call.

        Output order matches input order. Identical texts are analyzed
        once per call. With config.max_workers > 1 the per-text stages run
        on a thread pool.
        """
        normalized = [normalize(t) for t in texts]
        unique = list(dict.fromkeys(normalized))
        token_lists = tokenize_batch(unique, self.analyzer)

        workers = min(self.config.max_workers, len(unique))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="yomitoki") as pool:
                finals = list(pool.map(self._finish, token_lists))
        else:
            finals = [self._finish(tokens) for tokens in token_lists]

        by_text = dict(zip(unique, finals))
        return [[replace(t) for t in by_text[n]] for n in normalized]

    # ------------------------------------------------------------------------
    # Diagnostic path
    # ------------------------------------------------------------------------

    def parse_text_diagnostic(self, text: str) -> ParserDiagnostics:
        """Parse one text and record every stage (see diagnostics.py)."""
        started = time.perf_counter()
        normalized = normalize(text)

        t0 = time.perf_counter()
        token_lists, segments = analyze_prepared([prepare(normalized)], self.analyzer)
        analyzer_trace = AnalyzerTrace(segments, (time.perf_counter() - t0) * 1000)

        repaired = repair_tokens(token_lists[0], self._context, self.config.max_repair_iterations,
                                 collect_traces=True)
        _, results = assemble(repaired.tokens, self.lexicon, self.config.weights, collect=True)

        events = []
        if repaired.loop_exceeded:
            events.append(f"RepairLoopExceeded: no fixed point after "
                          f"{self.config.max_repair_iterations} iterations")

        return ParserDiagnostics(
            text=text,
            normalized=normalized,
            media_type=self.config.media_type.value,
            analyzer=analyzer_trace,
            stages=repaired.traces or [],
            results=results or [],
            events=events,
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    def parse(self, text: str) -> Union[List[FinalWordToken], ParserDiagnostics]:
        """parse_text, or parse_text_diagnostic when config.diagnostics is set."""
        if self.config.diagnostics:
            return self.parse_text_diagnostic(text)
        return self.parse_text(text)

    def document_stats(self, tokens: Sequence[FinalWordToken]) -> DocumentStats:
        return document_stats(tokens, self.config.media_type)
