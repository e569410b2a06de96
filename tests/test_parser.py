"""
End-to-end tests for the Parser pipeline.

These are the regression cases the scoring weights are tuned against:
segmentation, reading-driven disambiguation, the lowest-WordId tie-break
and batch/single parity.

Run tests with: pytest tests/test_parser.py -v
"""

import json

import pytest

from yomitoki.config import MediaType, ParserConfig
from yomitoki.diagnostics import (
    MATCH,
    MISMATCH,
    OVER_SEGMENTATION,
    UNDER_SEGMENTATION,
    ParserDiagnostics,
    compare_segmentation,
)
from yomitoki.normalizer import normalize
from yomitoki.pos import PartOfSpeech


def keys(tokens):
    return [t.key for t in tokens]


# =============================================================================
# Test Regression Cases
# =============================================================================

class TestRegressionCases:
    """Test the documented end-to-end cases."""

    def test_gochuumon(self, parser):
        """Test prefix merging and ですか."""
        tokens = parser.parse_text("ご注文はうさぎですか")
        assert [t.surface for t in tokens] == ["ご注文", "は", "うさぎ", "ですか"]
        assert tokens[0].word_id == 1270190

    def test_mama(self, parser):
        """Test the pure-kana loanword beats 儘's katakana spelling."""
        tokens = parser.parse_text("ママ")
        assert keys(tokens) == [(1129240, 0)]

    def test_ore(self, parser):
        """Test オレ resolves to the katakana form of 俺."""
        tokens = parser.parse_text("オレ")
        assert keys(tokens) == [(1576870, 3)]
        assert tokens[0].pos is PartOfSpeech.PRONOUN

    def test_omote(self, parser):
        """Test 表 before へ is the 'surface' reading."""
        tokens = parser.parse_text("表へ出る")
        assert [t.surface for t in tokens] == ["表", "へ", "出る"]
        assert tokens[0].word_id == 1489340
        assert tokens[0].reading == "オモテ"

    def test_hyou(self, parser):
        """Test 表 after a noun is the 'chart' reading."""
        tokens = parser.parse_text("メニュー表を見る")
        assert [t.surface for t in tokens] == ["メニュー", "表", "を", "見る"]
        assert tokens[1].word_id == 1489350

    def test_ienai_tie_break(self, parser):
        """Test the tied いえる candidates go to the lowest WordId."""
        tokens = parser.parse_text("いえない")
        assert [t.surface for t in tokens] == ["いえない"]
        assert keys(tokens) == [(1008860, 2)]
        assert tokens[0].conjugations == ("negative",)
        assert tokens[0].dictionary_form == "いえる"

    def test_subsidiary_verb_trail(self, parser):
        """Test 食べていた merges into one verb with its inflection trail innermost first."""
        tokens = parser.parse_text("食べていた")
        assert [t.surface for t in tokens] == ["食べていた"]
        assert keys(tokens) == [(1358280, 0)]
        assert tokens[0].dictionary_form == "食べる"
        assert tokens[0].conjugations == ("te-form", "progressive", "past")

    def test_batch_parity(self, parser, analyzer):
        """Test a batch gives per-text results equal to single calls."""
        batch = parser.parse_texts(["ママ", "パパ"])
        assert len(analyzer.calls) == 1
        assert [keys(r) for r in batch] == [[(1129240, 0)], [(1102140, 0)]]
        assert batch == [parser.parse_text("ママ"), parser.parse_text("パパ")]


class TestReadingContext:
    """Test reading overrides end to end."""

    def test_ichinichi(self, parser):
        """Test 一日 on its own is 'one day'."""
        assert keys(parser.parse_text("一日")) == [(1576260, 0)]

    def test_tsuitachi(self, parser):
        """Test 一日 after a month is 'first of the month'."""
        tokens = parser.parse_text("七月一日")
        assert tokens[0].is_oov
        assert tokens[1].key == (2225040, 0)


# =============================================================================
# Test Invariants
# =============================================================================

class TestInvariants:
    """Test properties that hold for any input."""

    TEXTS = ["ご注文はうさぎですか", "表へ出る。メニュー表を見る", "ママ パパ", "ほげ", "この手紙"]

    @pytest.mark.parametrize("text", TEXTS)
    def test_spans_index_normalized_text(self, parser, text):
        """Test every token span slices its surface out of the normalized text."""
        normalized = normalize(text)
        tokens = parser.parse_text(text)
        for token in tokens:
            assert normalized[token.start:token.end] == token.surface
        for prev, token in zip(tokens, tokens[1:]):
            assert prev.end <= token.start

    @pytest.mark.parametrize("text", TEXTS)
    def test_spans_cover_normalized_text(self, parser, text):
        """Test tokens cover the normalized text with no gaps or overlaps."""
        normalized = normalize(text)
        tokens = parser.parse_text(text)
        assert tokens[0].start == 0
        for prev, token in zip(tokens, tokens[1:]):
            assert prev.end == token.start
        assert tokens[-1].end == len(normalized)
        assert "".join(t.surface for t in tokens) == normalized

    @pytest.mark.parametrize("text", TEXTS)
    def test_deterministic(self, parser, text):
        """Test the same input always gives the same output."""
        assert parser.parse_text(text) == parser.parse_text(text)

    def test_oov_tokens(self, parser):
        """Test unknown words come back without an identity."""
        tokens = parser.parse_text("ほげ")
        assert tokens
        assert all(t.is_oov and t.word_id is None and t.reading_index is None for t in tokens)

    def test_resolved_ids_exist(self, parser, lexicon):
        """Test every resolved token points at a real form."""
        for token in parser.parse_text("ご注文はうさぎですか。表へ出る"):
            if not token.is_oov:
                assert lexicon.form(token.word_id, token.reading_index) is not None

    def test_stop_char_never_returned(self, parser):
        """Test boundary hints leave no trace in the output."""
        assert all("|" not in t.surface for t in parser.parse_text("この手紙"))


# =============================================================================
# Test Batches
# =============================================================================

class TestBatch:
    """Test parse_texts."""

    def test_duplicates_analyzed_once(self, parser, analyzer):
        """Test identical texts share one analysis."""
        results = parser.parse_texts(["ママ", "ママ", "パパ"])
        assert analyzer.calls[0].count("ママ") == 1
        assert results[0] == results[1]
        assert results[0][0] is not results[1][0]

    def test_empty_text_in_batch(self, parser):
        """Test an empty text gives an empty list."""
        assert parser.parse_texts(["", "ママ"])[0] == []

    def test_thread_pool(self, parser):
        """Test parallel per-text stages give the same results."""
        texts = ["ママ", "オレ", "表へ出る", "いえない"]
        threaded = parser.with_config(ParserConfig(max_workers=3))
        assert threaded.parse_texts(texts) == parser.parse_texts(texts)


# =============================================================================
# Test Diagnostics
# =============================================================================

class TestDiagnostics:
    """Test the diagnostic parse."""

    def test_same_tokens_as_production(self, parser):
        """Test diagnostics do not change the result."""
        report = parser.parse_text_diagnostic("ご注文はうさぎですか")
        assert report.tokens == parser.parse_text("ご注文はうさぎですか")

    def test_stages_recorded(self, parser):
        """Test the analyzer output and repair stages are traced."""
        report = parser.parse_text_diagnostic("ご注文はうさぎですか")
        assert [s.surface for s in report.analyzer.segments] == ["ご", "注文", "は", "うさぎ", "です", "か"]
        assert [s.stage for s in report.changed_stages()] == [
            "combine_special_cases", "combine_compound_expressions"]
        assert report.events == []

    def test_candidates_recorded(self, parser):
        """Test every token carries its scored candidates, winner marked."""
        report = parser.parse_text_diagnostic("いえない")
        result = report.results[0]
        assert [c.key for c in result.candidates] == [(1008860, 2), (1538740, 1)]
        assert result.selected.key == (1008860, 2)
        assert result.candidates[0].scores.total == result.candidates[1].scores.total

    def test_json(self, parser):
        """Test the report serializes to JSON."""
        report = parser.parse_text_diagnostic("ママ")
        data = json.loads(report.to_json())
        assert data["results"][0]["word_id"] == 1129240
        assert data["results"][0]["candidates"][0]["selected"] is True
        assert data["media_type"] == "novel"

    def test_parse_dispatch(self, parser):
        """Test parse() follows config.diagnostics."""
        assert isinstance(parser.with_config(ParserConfig(diagnostics=True)).parse("ママ"), ParserDiagnostics)
        assert keys(parser.parse("ママ")) == [(1129240, 0)]


class TestCompareSegmentation:
    """Test failure classification."""

    def test_match(self):
        """Test identical segmentations."""
        assert compare_segmentation(["ママ"], ["ママ"]).kind == MATCH

    def test_over_segmentation(self):
        """Test extra boundaries."""
        report = compare_segmentation(["食べて", "いる"], ["食べ", "て", "いる"])
        assert report.kind == OVER_SEGMENTATION
        assert report.extra == (2,)

    def test_under_segmentation(self):
        """Test missing boundaries."""
        report = compare_segmentation(["ご", "注文"], ["ご注文"])
        assert report.kind == UNDER_SEGMENTATION
        assert report.missing == (1,)

    def test_mismatch(self):
        """Test different texts or crossing boundaries."""
        assert compare_segmentation(["ママ"], ["パパ"]).kind == MISMATCH
        assert compare_segmentation(["あい", "う"], ["あ", "いう"]).kind == MISMATCH


# =============================================================================
# Test Document Statistics
# =============================================================================

class TestStats:
    """Test document statistics."""

    def test_counts(self, parser):
        """Test word, OOV and sentence counts."""
        tokens = parser.parse_text("ママ。パパ。ほげ")
        stats = parser.document_stats(tokens)
        assert stats.word_count == 4
        assert stats.unique_word_count == 2
        assert stats.oov_count == 2
        assert stats.character_count == 6
        assert stats.sentence_count == 3

    def test_media_without_sentences(self, parser):
        """Test subtitle-like media report no sentences."""
        manga = parser.with_config(ParserConfig(media_type=MediaType.MANGA))
        stats = manga.document_stats(manga.parse_text("ママ。パパ。"))
        assert stats.sentence_count == 0
        assert stats.word_count == 2
