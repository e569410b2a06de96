"""
Tests for text normalization, boundary hints and character helpers.

Run tests with: pytest tests/test_normalizer.py -v
"""

import pytest

from yomitoki.characters import (
    as_hiragana,
    is_clause_boundary,
    normalize_long_vowels,
    script_class,
    strip_long_vowels,
    vowel_of,
)
from yomitoki.normalizer import (
    boundary_hints,
    collapse_long_vowels,
    expand_contractions,
    normalize,
    romaji_to_hiragana,
    to_full_width,
)


# =============================================================================
# Test Normalization
# =============================================================================

class TestNormalize:
    """Test the normalization rewrite."""

    def test_full_width_digits(self):
        """Test half-width digits become full-width."""
        assert to_full_width("第3話") == "第３話"

    def test_uppercase_latin_is_widened_not_converted(self):
        """Test uppercase Latin is widened and left as letters."""
        assert normalize("ABC") == "ＡＢＣ"

    def test_romaji_run_to_hiragana(self):
        """Test a romaji run that maps fully to kana is converted."""
        assert romaji_to_hiragana("ｓｕｇｏｉ") == "すごい"
        assert romaji_to_hiragana("ｓｕｓｈｉ") == "すし"

    @pytest.mark.parametrize("text, expected", [
        ("http", "ｈｔｔｐ"),
        ("hello world", "ｈｅｌｌｏ ｗｏｒｌｄ"),
        ("xyz", "ｘｙｚ"),
        ("iPhone", "ｉＰｈｏｎｅ"),
        ("mp3", "ｍｐ３"),
    ])
    def test_english_stays_latin(self, text, expected):
        """Test words that are not romaji keep their Latin letters."""
        assert normalize(text) == expected

    def test_romaji_inside_url_untouched(self):
        """Test romaji-looking parts of a URL are not converted."""
        assert normalize("sugoi.jp") == "ｓｕｇｏｉ.ｊｐ"
        assert normalize("sugoi.") == "すごい."

    def test_long_vowel_runs_collapse(self):
        """Test repeated long vowel marks collapse to one."""
        assert collapse_long_vowels("すごーーーい") == "すごーい"

    def test_contractions_expand(self):
        """Test colloquial contractions are rewritten."""
        assert expand_contractions("とんでもねえ話") == "とんでもない話"

    def test_combined_example(self):
        """Test every step applied in order."""
        assert normalize("ｽｺﾞｲ 123 sugoi すごーーい") == "ｽｺﾞｲ １２３ すごい すごーい"

    def test_plain_japanese_unchanged(self):
        """Test ordinary text passes through untouched."""
        assert normalize("ご注文はうさぎですか") == "ご注文はうさぎですか"

    def test_deterministic(self):
        """Test normalizing twice gives the same result."""
        text = "ｽｺﾞｲ 123 sugoi"
        assert normalize(normalize(text)) == normalize(text)


class TestBoundaryHints:
    """Test forced segmentation points."""

    def test_hint_inside_glued_phrase(self):
        """Test この手紙 gets a boundary before 手紙."""
        assert boundary_hints("この手紙") == [2]

    def test_emphatic_sokuon_hint(self):
        """Test a clause-final っ after hiragana is split off."""
        assert boundary_hints("ないっ！") == [2]

    def test_no_hints(self):
        """Test text without known glue points has no hints."""
        assert boundary_hints("ママ") == []

    def test_hints_are_sorted_and_inside_text(self):
        """Test hints are unique offsets strictly inside the text."""
        text = "この手紙は元国王の"
        hints = boundary_hints(text)
        assert hints == sorted(set(hints))
        assert all(0 < h < len(text) for h in hints)


# =============================================================================
# Test Character Helpers
# =============================================================================

class TestCharacters:
    """Test script and long vowel helpers."""

    def test_script_class(self):
        """Test script classification."""
        assert script_class("表") == "kanji"
        assert script_class("ママ") == "katakana"
        assert script_class("まま") == "hiragana"
        assert script_class("ABC") == "other"

    def test_long_vowel_expansion(self):
        """Test ー is replaced by the vowel it lengthens."""
        assert normalize_long_vowels("ラーメン") == "らあめん"
        assert normalize_long_vowels("コーヒー") == "こうひい"

    def test_long_vowel_strip(self):
        """Test ー is removed."""
        assert strip_long_vowels("ラーメン") == "らめん"

    def test_as_hiragana(self):
        """Test katakana folding."""
        assert as_hiragana("オレ") == "おれ"

    def test_vowel_of(self):
        """Test vowel row lookup."""
        assert vowel_of("か") == "あ"
        assert vowel_of("ト") == "お"
        assert vowel_of("ん") is None

    def test_clause_boundary(self):
        """Test clause boundary detection."""
        assert is_clause_boundary(None)
        assert is_clause_boundary("。")
        assert is_clause_boundary("！")
        assert not is_clause_boundary("ね")
