"""
Tests for the rule-based deconjugator.

Run tests with: pytest tests/test_deconjugator.py -v
"""

from yomitoki.deconjugator import (
    ROOT_ONLY,
    Deconjugation,
    DeconjugationRule,
    _applies,
    citation_forms,
    deconjugate,
    matches_pos,
)


def _find(text, citation):
    return next(d for d in citation_forms(text) if d.text == citation)


class TestDeconjugate:
    """Test citation form hypotheses."""

    def test_negative_past(self):
        """Test 食べなかった goes back through 食べない to 食べる."""
        d = _find("食べなかった", "食べる")
        assert d.word_class == "v1"
        assert d.labels == ("negative", "past")

    def test_te_form_progressive(self):
        """Test labels are listed innermost first."""
        d = _find("食べている", "食べる")
        assert d.labels == ("te-form", "progressive")
        assert d.depth == 2

    def test_ichidan_negative(self):
        """Test いえない deconjugates to いえる."""
        d = _find("いえない", "いえる")
        assert d.labels == ("negative",)

    def test_godan_past(self):
        """Test godan past endings."""
        assert _find("行った", "行く").word_class == "v5k-s"
        assert _find("読んだ", "読む").word_class == "v5m"

    def test_suru_noun(self):
        """Test 勉強した reaches both 勉強する and the noun 勉強."""
        texts = {(d.text, d.word_class) for d in citation_forms("勉強した")}
        assert ("勉強する", "vs") in texts
        assert ("勉強", "vs-noun") in texts

    def test_adjective_past(self):
        """Test i-adjective past."""
        assert _find("寒かった", "寒い").word_class == "adj-i"

    def test_polite_past(self):
        """Test polite past goes through ます."""
        d = _find("食べました", "食べる")
        assert d.labels == ("polite", "past")

    def test_input_not_included(self):
        """Test the unconjugated text itself is never a result."""
        assert "食べる" not in [d.text for d in deconjugate("食べる")]

    def test_shortest_first(self):
        """Test results are ordered by derivation depth."""
        depths = [d.depth for d in deconjugate("食べていなかった")]
        assert depths == sorted(depths)

    def test_max_depth(self):
        """Test the derivation depth is bounded."""
        assert all(d.depth <= 2 for d in deconjugate("食べていなかった", max_depth=2))

    def test_root_only_rule(self):
        """Test an outermost-inflection rule applies to the surface text only."""
        rule = DeconjugationRule('た', 'る', ROOT_ONLY, 'v1', 'past')
        assert _applies(rule, Deconjugation("たべた"))
        assert not _applies(rule, Deconjugation("たべた", ("v1",), ("negative",)))


class TestMatchesPos:
    """Test matching a hypothesis against JMdict POS tags."""

    def test_match(self):
        """Test an ichidan hypothesis matches a v1 entry."""
        d = Deconjugation("いえる", ("v1",), ("negative",))
        assert matches_pos(d, ["v1", "vi"])

    def test_mismatch(self):
        """Test an ichidan hypothesis does not match a godan entry."""
        d = Deconjugation("いえる", ("v1",), ("negative",))
        assert not matches_pos(d, ["v5r"])

    def test_intermediate_class_never_matches(self):
        """Test te-form intermediates are not citation forms."""
        d = Deconjugation("食べて", ("te",), ("progressive",))
        assert not matches_pos(d, ["v1"])
