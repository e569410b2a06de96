"""
Tests for the module-level API: shared parser, batch, async and session.

Run tests with: pytest tests/test_api.py -v
"""

import asyncio

import pytest

import yomitoki
from yomitoki.config import ParserConfig
from yomitoki.diagnostics import ParserDiagnostics


# =============================================================================
# Test Imports
# =============================================================================

class TestImports:
    """Test the public names."""

    def test_exports(self):
        """Test everything in __all__ exists."""
        for name in yomitoki.__all__:
            assert hasattr(yomitoki, name)

    def test_version(self):
        """Test the version string."""
        assert yomitoki.get_version() == yomitoki.__version__

    def test_exception_hierarchy(self):
        """Test every error derives from YomitokiError."""
        for exc in (yomitoki.AnalyzerError, yomitoki.LexiconUnavailable,
                    yomitoki.RepairLoopExceeded, yomitoki.AnalysisTimeoutError):
            assert issubclass(exc, yomitoki.YomitokiError)


# =============================================================================
# Test Sync API
# =============================================================================

class TestParseText:
    """Test parse_text and friends over the installed fixtures."""

    def test_parse_text(self, installed):
        """Test the shared parser resolves the regression case."""
        tokens = yomitoki.parse_text("ご注文はうさぎですか")
        assert [t.surface for t in tokens] == ["ご注文", "は", "うさぎ", "ですか"]

    @pytest.mark.parametrize("text", ["", "   ", "\n"])
    def test_empty_text_rejected(self, installed, text):
        """Test empty and whitespace-only input is a ValueError."""
        with pytest.raises(ValueError):
            yomitoki.parse_text(text)

    def test_parse_texts(self, installed):
        """Test the batch API keeps input order."""
        results = yomitoki.parse_texts(["パパ", "ママ"])
        assert [[t.word_id for t in r] for r in results] == [[1102140], [1129240]]

    def test_parse_texts_empty(self, installed):
        """Test an empty batch returns an empty list without analysis."""
        assert yomitoki.parse_texts([]) == []
        assert installed.calls == []

    def test_diagnostic(self, installed):
        """Test the diagnostic entry point."""
        report = yomitoki.parse_text_diagnostic("ママ")
        assert isinstance(report, ParserDiagnostics)
        assert report.surfaces == ["ママ"]

    def test_config_is_per_call(self, installed):
        """Test a config only affects the call it is passed to."""
        parser = yomitoki.get_parser(ParserConfig(max_repair_iterations=2))
        assert parser.config.max_repair_iterations == 2
        assert yomitoki.get_parser().config.max_repair_iterations == 4

    def test_warm_up(self, installed):
        """Test warm-up reports its timings."""
        total, timings = yomitoki.warm_up()
        assert total >= 0
        assert set(timings) == {"lexicon", "analyzer", "total"}


class TestConfig:
    """Test configuration validation."""

    def test_iterations_must_be_positive(self):
        """Test a zero iteration cap is rejected."""
        with pytest.raises(ValueError):
            ParserConfig(max_repair_iterations=0)

    def test_workers_must_be_positive(self):
        """Test a zero worker count is rejected."""
        with pytest.raises(ValueError):
            ParserConfig(max_workers=0)


# =============================================================================
# Test Async API
# =============================================================================

class TestAsync:
    """Test parse_text_async."""

    def test_parse_text_async(self, installed):
        """Test the async API returns the same tokens."""
        tokens = asyncio.run(yomitoki.parse_text_async("オレ"))
        assert [(t.word_id, t.reading_index) for t in tokens] == [(1576870, 3)]

    def test_async_empty_text(self, installed):
        """Test validation errors propagate through the executor."""
        with pytest.raises(ValueError):
            asyncio.run(yomitoki.parse_text_async(""))


# =============================================================================
# Test Session
# =============================================================================

class TestSession:
    """Test session_context."""

    def test_session_yields_parser(self, installed):
        """Test the session parser parses texts."""
        with yomitoki.session_context() as parser:
            tokens = parser.parse_text("いえない")
        assert tokens[0].key == (1008860, 2)
