"""
Final token assembly for yomitoki.

Turns the repaired token list into FinalWordTokens: discarded marks are
dropped, every other token is resolved to its best (WordId, ReadingIndex)
or left out-of-vocabulary.
"""

from typing import List, Optional, Sequence, Tuple

from yomitoki.candidates import FormCandidate, generate_candidates
from yomitoki.config import ScoringWeights
from yomitoki.diagnostics import TokenResult
from yomitoki.dictionary import Lexicon
from yomitoki.scoring import score_candidates, select
from yomitoki.tokens import FinalWordToken, Token


def resolve_token(token: Token, lexicon: Lexicon,
                  weights: ScoringWeights) -> Tuple[FinalWordToken, List[FormCandidate]]:
    """
    Resolve one token.

    Returns:
        Tuple of (final token, scored candidates best first)
    """
    candidates = score_candidates(generate_candidates(token, lexicon), token, weights)
    best = select(candidates)
    if best is None:
        final = FinalWordToken(
            surface=token.surface,
            start=token.start,
            end=token.end,
            word_id=None,
            reading_index=None,
            conjugations=(),
            pos=token.pos,
            dictionary_form=token.dictionary_form,
            reading=token.reading,
        )
    else:
        final = FinalWordToken(
            surface=token.surface,
            start=token.start,
            end=token.end,
            word_id=best.word_id,
            reading_index=best.reading_index,
            conjugations=best.conjugations,
            pos=token.pos,
            dictionary_form=best.form.text,
            reading=token.reading,
        )
    return final, candidates


def assemble(tokens: Sequence[Token], lexicon: Lexicon, weights: ScoringWeights,
             collect: bool = False) -> Tuple[List[FinalWordToken], Optional[List[TokenResult]]]:
    """
    Build the final token stream.

    Args:
        tokens: Repaired tokens in document order
        lexicon: Lexicon to resolve against
        weights: Scoring weights
        collect: Also return every token's ranked candidates

    Returns:
        Tuple of (final tokens, TokenResults or None)
    """
    finals = []
    results: Optional[List[TokenResult]] = [] if collect else None
    for token in tokens:
        if token.discarded:
            continue
        final, candidates = resolve_token(token, lexicon, weights)
        finals.append(final)
        if results is not None:
            results.append(TokenResult(final, candidates))
    return finals, results
