"""
Tests for the analyzer adapter: spans, stop characters and batching.

Run tests with: pytest tests/test_adapter.py -v
"""

import pytest

from yomitoki.adapter import (
    BATCH_DELIMITER,
    STOP_CHAR,
    PreparedText,
    align_segments,
    prepare,
    tokenize,
    tokenize_batch,
)
from yomitoki.analyzer import split_for_analysis
from yomitoki.exceptions import AnalyzerError
from yomitoki.pos import PartOfSpeech
from yomitoki.tokens import RawSegment


class WholeTextAnalyzer:
    """Returns the entire input as one segment."""

    def analyze(self, text):
        return [RawSegment(text, '名詞', (), text, '')]


class FailingAnalyzer:
    def analyze(self, text):
        raise RuntimeError("dictionary not found")


class WrongAnalyzer:
    def analyze(self, text):
        return [RawSegment("違う", '名詞', (), "違う", '')]


# =============================================================================
# Test Stop Characters
# =============================================================================

class TestPreparedText:
    """Test stop character insertion and span mapping."""

    def test_stop_char_inserted(self):
        """Test a hint becomes a stop character in the analyzer input."""
        prepared = PreparedText("この手紙", [2])
        assert prepared.analysis_text == "この" + STOP_CHAR + "手紙"

    def test_span_mapping(self):
        """Test analyzer spans map back to normalized offsets."""
        prepared = PreparedText("この手紙", [2])
        assert prepared.span(3, 5) == (2, 4)
        assert prepared.span(0, 2) == (0, 2)

    def test_prepare_uses_boundary_hints(self):
        """Test prepare() applies the normalizer's hints."""
        assert STOP_CHAR in prepare("この手紙").analysis_text
        assert prepare("ママ").analysis_text == "ママ"


class TestTokenize:
    """Test single-text tokenization."""

    def test_spans_cover_text(self, analyzer):
        """Test token spans index the normalized text."""
        text = "ご注文はうさぎですか"
        tokens = tokenize(text, analyzer)
        assert [t.surface for t in tokens] == ["ご", "注文", "は", "うさぎ", "です", "か"]
        for token in tokens:
            assert text[token.start:token.end] == token.surface
        assert tokens[-1].end == len(text)

    def test_stop_char_never_surfaces(self, analyzer):
        """Test the stop character is sent to the analyzer but dropped from tokens."""
        tokens = tokenize("この手紙", analyzer)
        assert analyzer.calls == ["この|手紙"]
        assert [t.surface for t in tokens] == ["この", "手紙"]
        assert [(t.start, t.end) for t in tokens] == [(0, 2), (2, 4)]

    def test_pos_mapping(self, analyzer):
        """Test analyzer tags map to coarse classes."""
        tokens = tokenize("表へ出る。", analyzer)
        assert [t.pos for t in tokens] == [
            PartOfSpeech.NOUN, PartOfSpeech.PARTICLE, PartOfSpeech.VERB, PartOfSpeech.SYMBOL]

    def test_blank(self, analyzer):
        """Test whitespace becomes a blank token."""
        tokens = tokenize("ママ パパ", analyzer)
        assert tokens[1].pos is PartOfSpeech.BLANK

    def test_analyzer_failure_wrapped(self):
        """Test analyzer exceptions surface as AnalyzerError."""
        with pytest.raises(AnalyzerError):
            tokenize("ママ", FailingAnalyzer())

    def test_misaligned_output(self):
        """Test output that does not reproduce the input is rejected."""
        with pytest.raises(AnalyzerError):
            tokenize("ママ", WrongAnalyzer())


class TestAlignSegments:
    """Test offset alignment."""

    def test_skips_dropped_whitespace(self):
        """Test whitespace the analyzer omitted is skipped."""
        segments = [RawSegment("ママ", '名詞', (), "ママ", ''), RawSegment("パパ", '名詞', (), "パパ", '')]
        aligned = align_segments("ママ パパ", segments)
        assert [(start, end) for _, start, end in aligned] == [(0, 2), (3, 5)]


# =============================================================================
# Test Batching
# =============================================================================

class TestBatch:
    """Test batch demultiplexing."""

    def test_single_call(self, analyzer):
        """Test a batch is analyzed with one analyzer call."""
        results = tokenize_batch(["ママ", "パパ"], analyzer)
        assert len(analyzer.calls) == 1
        assert analyzer.calls[0] == "ママ" + BATCH_DELIMITER + "パパ"
        assert [[t.surface for t in r] for r in results] == [["ママ"], ["パパ"]]

    def test_offsets_are_per_text(self, analyzer):
        """Test each text's spans start at zero."""
        results = tokenize_batch(["ママ", "パパ"], analyzer)
        assert (results[1][0].start, results[1][0].end) == (0, 2)

    def test_empty_text_in_batch(self, analyzer):
        """Test an empty text gets an empty token list."""
        results = tokenize_batch(["", "ママ"], analyzer)
        assert results[0] == []
        assert [t.surface for t in results[1]] == ["ママ"]

    def test_all_empty(self, analyzer):
        """Test the analyzer is not called when there is nothing to analyze."""
        assert tokenize_batch(["", ""], analyzer) == [[], []]
        assert analyzer.calls == []

    @pytest.mark.parametrize("texts", [
        ["ママ\n", "パパ"],
        ["ママ", "\nパパ"],
        ["ママ", "　パパ"],
        ["ママ ", " パパ"],
        ["ママ", "", "パパ"],
        ["", "ママ\n"],
    ])
    def test_whitespace_joined_with_delimiter(self, whitespace_analyzer, texts):
        """Test whitespace runs reaching into the delimiter are split per text."""
        results = tokenize_batch(texts, whitespace_analyzer)
        assert len(whitespace_analyzer.calls) == 1
        for text, tokens in zip(texts, results):
            assert "".join(t.surface for t in tokens) == text
            for token in tokens:
                assert text[token.start:token.end] == token.surface

    def test_leading_indent_is_blank(self, whitespace_analyzer):
        """Test a paragraph indent at the start of a text becomes a blank token."""
        results = tokenize_batch(["ママ", "　パパ"], whitespace_analyzer)
        assert [(t.surface, t.pos) for t in results[1]] == [
            ("　", PartOfSpeech.BLANK), ("パパ", PartOfSpeech.NOUN)]
        assert (results[1][1].start, results[1][1].end) == (1, 3)

    def test_segment_crossing_delimiter(self):
        """Test a segment spanning two texts is an error."""
        with pytest.raises(AnalyzerError, match="crosses a text boundary"):
            tokenize_batch(["ママ", "パパ"], WholeTextAnalyzer())


class TestSplitForAnalysis:
    """Test chunking of oversized analyzer input."""

    def test_short_text_untouched(self):
        """Test text below the limit is one chunk."""
        assert split_for_analysis("ママ") == ["ママ"]

    def test_chunks_join_back(self):
        """Test chunks stay under the limit and concatenate to the input."""
        text = "ご注文はうさぎですか。\n" * 50
        chunks = split_for_analysis(text, max_bytes=200)
        assert "".join(chunks) == text
        assert all(len(c.encode("utf-8")) <= 200 for c in chunks)
        assert len(chunks) > 1

    def test_long_line_is_cut(self):
        """Test a single line over the limit is cut."""
        text = "あ" * 300
        chunks = split_for_analysis(text, max_bytes=200)
        assert "".join(chunks) == text
        assert all(len(c.encode("utf-8")) <= 200 for c in chunks)
