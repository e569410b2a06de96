"""
Tests against the real Sudachi analyzer.

Skipped unless sudachipy and sudachidict_core are installed.

Run tests with: pytest tests/test_sudachi.py -v
"""

import pytest

pytest.importorskip("sudachipy")
pytest.importorskip("sudachidict_core")

from yomitoki.adapter import tokenize, tokenize_batch  # noqa: E402
from yomitoki.analyzer import SudachiAnalyzer  # noqa: E402


@pytest.fixture(scope="module")
def sudachi():
    return SudachiAnalyzer()


class TestSudachiAnalyzer:
    """Test the production analyzer through the adapter."""

    def test_segments_cover_input(self, sudachi):
        """Test Sudachi output reproduces the input."""
        text = "ご注文はうさぎですか"
        segments = sudachi.analyze(text)
        assert "".join(s.surface for s in segments) == text
        assert all(s.pos_tag for s in segments)

    def test_spans(self, sudachi):
        """Test token spans index the text."""
        text = "表へ出る。メニュー表を見る"
        for token in tokenize(text, sudachi):
            assert text[token.start:token.end] == token.surface

    def test_stop_char_dropped(self, sudachi):
        """Test a boundary hint splits the text and leaves no stop character."""
        tokens = tokenize("この手紙", sudachi)
        assert "".join(t.surface for t in tokens) == "この手紙"
        assert any(t.start == 2 for t in tokens)

    def test_batch(self, sudachi):
        """Test batch demultiplexing with real output."""
        results = tokenize_batch(["ママ", "パパ"], sudachi)
        assert ["".join(t.surface for t in r) for r in results] == ["ママ", "パパ"]

    @pytest.mark.parametrize("texts", [
        ["ママが来た。", "　パパが来た。"],
        ["ママ\n", "パパ"],
        ["ママ", "", "パパ"],
    ])
    def test_batch_whitespace_at_boundaries(self, sudachi, texts):
        """Test texts with edge whitespace survive batch demultiplexing."""
        results = tokenize_batch(texts, sudachi)
        assert ["".join(t.surface for t in r) for r in results] == texts
