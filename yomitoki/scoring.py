"""
Disambiguation scoring for yomitoki.

Every candidate gets seven additive feature scores (entry priority, form
priority, form flags, surface match, script class, reading match and a
word-level score). The highest total wins; equal totals go to the lowest
WordId, then the lowest ReadingIndex. Nothing here depends on anything
but the token, the candidates and the weights, so results are
reproducible for a given lexicon.
"""

import re
from typing import Iterable, List, Optional, Sequence

from yomitoki.candidates import CandidateScores, FormCandidate, MatchKind
from yomitoki.characters import (
    as_hiragana,
    common_prefix_length,
    is_katakana,
    normalize_long_vowels,
    script_class,
)
from yomitoki.config import ScoringWeights
from yomitoki.pos import PartOfSpeech, is_compatible
from yomitoki.tokens import Token

# ============================================================================
# Priorities
# ============================================================================

_PRIORITY_POINTS = {
    'ichi1': 10, 'news1': 10, 'spec1': 10, 'gai1': 10,
    'ichi2': 4, 'news2': 4, 'spec2': 4, 'gai2': 4,
}
_NF_PATTERN = re.compile(r'nf(\d\d)')


def priority_points(tags: Iterable[str]) -> int:
    """
    Points for a set of JMdict priority tags.

    Example:
        >>> priority_points(["ichi1", "news1", "nf01"])
        32
    """
    points = 0
    for tag in tags:
        if tag in _PRIORITY_POINTS:
            points += _PRIORITY_POINTS[tag]
            continue
        match = _NF_PATTERN.fullmatch(tag)
        if match:
            points += max(0, (49 - int(match.group(1))) // 4)
    return points


# ============================================================================
# Features
# ============================================================================

def _form_flags(candidate: FormCandidate, token: Token, weights: ScoringWeights) -> int:
    form = candidate.form
    score = 0
    if form.is_obsolete:
        score += weights.obsolete_penalty
    if form.is_search_only:
        score += weights.search_only_penalty
    if form.is_rare:
        score += weights.rare_form_penalty
    if form.is_irregular:
        score += weights.irregular_form_penalty
    if form.is_no_kanji and script_class(token.surface) == 'kanji':
        score += weights.no_kanji_penalty
    return score


def _surface(candidate: FormCandidate, token: Token, weights: ScoringWeights) -> int:
    text = candidate.form.text
    if text == token.surface:
        return weights.exact_surface
    if token.dictionary_form and text == token.dictionary_form:
        return weights.dictionary_form_surface
    if candidate.match in (MatchKind.FOLDED, MatchKind.DECONJUGATED):
        return weights.folded_surface
    if candidate.match is MatchKind.FALLBACK:
        return weights.fallback_surface
    return 0


def _script(candidate: FormCandidate, token: Token, weights: ScoringWeights) -> int:
    token_script = script_class(token.surface)
    form = candidate.form
    entry = candidate.entry
    score = 0
    if token_script == 'kanji':
        score += weights.kanji_form_for_kanji if not form.is_kana else weights.cross_script
        return score
    if token_script not in ('hiragana', 'katakana', 'kana'):
        return score
    if not form.is_kana:
        return weights.cross_script
    score += weights.kana_form_for_kana
    if token_script == 'katakana' and is_katakana(form.text):
        score += weights.katakana_form_for_katakana
    if entry.is_pure_kana:
        score += weights.pure_kana_entry
    elif is_katakana(form.text) and entry.kana_forms and entry.kana_forms[0].reading_index != form.reading_index:
        # ママ as the katakana spelling of 儘 is a poor match for ママ
        score += weights.secondary_katakana_form
    return score


def _reading(candidate: FormCandidate, token: Token, weights: ScoringWeights) -> int:
    if not token.reading:
        return 0
    reading = normalize_long_vowels(token.reading)
    if candidate.form.is_kana:
        kana_texts = [candidate.form.text]
    else:
        kana_texts = [f.text for f in candidate.entry.kana_forms]
    conjugated = candidate.deconjugation is not None or (
        bool(token.dictionary_form) and token.dictionary_form != token.surface)

    best = 0
    for text in kana_texts:
        kana = normalize_long_vowels(as_hiragana(text))
        if kana == reading:
            return weights.full_reading
        prefix = common_prefix_length(kana, reading)
        if conjugated and prefix and prefix >= len(kana) - 1:
            best = max(best, weights.stem_reading)
        else:
            best = max(best, min(prefix * weights.reading_prefix_char, weights.reading_prefix_cap))
    return best


def _word(candidate: FormCandidate, token: Token, weights: ScoringWeights) -> int:
    score = 0
    classes = candidate.entry.classes
    if classes and token.pos is not PartOfSpeech.UNKNOWN:
        if is_compatible(token.pos, classes):
            score += weights.pos_match
        else:
            score += weights.pos_mismatch
    if candidate.deconjugation is not None:
        score += weights.deconjugation_step * candidate.deconjugation.depth
    return score


def score_candidate(candidate: FormCandidate, token: Token, weights: ScoringWeights) -> CandidateScores:
    """Compute the feature scores of one candidate for token."""
    return CandidateScores(
        entry_priority=priority_points(candidate.entry.priorities) * weights.entry_priority_scale,
        form_priority=priority_points(candidate.form.priorities) * weights.form_priority_scale,
        form_flags=_form_flags(candidate, token, weights),
        surface=_surface(candidate, token, weights),
        script=_script(candidate, token, weights),
        reading=_reading(candidate, token, weights),
        word=_word(candidate, token, weights),
    )


def score_candidates(candidates: Sequence[FormCandidate], token: Token,
                     weights: ScoringWeights) -> List[FormCandidate]:
    """Score every candidate in place and return them best first."""
    for candidate in candidates:
        candidate.scores = score_candidate(candidate, token, weights)
    return rank(candidates)


# ============================================================================
# Selection
# ============================================================================

def _rank_key(candidate: FormCandidate):
    total = candidate.scores.total if candidate.scores is not None else 0
    return (-total, candidate.word_id, candidate.reading_index)


def rank(candidates: Sequence[FormCandidate]) -> List[FormCandidate]:
    """Candidates best first: highest total, then lowest WordId and ReadingIndex."""
    return sorted(candidates, key=_rank_key)


def select(candidates: Sequence[FormCandidate]) -> Optional[FormCandidate]:
    """
    Pick the winning candidate and mark it selected.

    Returns:
        The candidate with the highest total score, ties going to the
        lowest WordId, or None for an empty list (the token is OOV)
    """
    if not candidates:
        return None
    best = min(candidates, key=_rank_key)
    for candidate in candidates:
        candidate.selected = candidate is best
    return best
