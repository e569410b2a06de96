"""
Token repair passes for yomitoki.

The external analyzer segments text by its own model, which is finer (or
sometimes coarser) than the lexicon. The passes here merge, split,
reclassify and re-read tokens until every token lines up with a lexicon
word. Each pass takes a token list and returns a new one; tokens are
never modified in place, and every token a pass creates records the
repair in its provenance.

Passes run in REPAIR_PASSES order and the whole sequence is repeated
until nothing changes, bounded by a small iteration cap.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from yomitoki import rules
from yomitoki.characters import (
    LONG_VOWEL_MARK,
    SOKUON,
    as_hiragana,
    as_katakana,
    is_clause_boundary,
    is_hiragana_char,
    is_kana,
)
from yomitoki.deconjugator import citation_forms, deconjugate, matches_pos
from yomitoki.diagnostics import StageTrace, TokenModification
from yomitoki.dictionary import Lexicon
from yomitoki.exceptions import RepairLoopExceeded
from yomitoki.pos import (
    DETAIL_ADVERBIAL_PARTICLE,
    DETAIL_AUXILIARY_STEM,
    DETAIL_CONJUNCTIVE_PARTICLE,
    DETAIL_NUMERAL,
    DETAIL_POSSIBLE_DEPENDANT,
    DETAIL_POSSIBLE_SURU,
    NON_LEXICAL,
    PartOfSpeech,
)
from yomitoki.rules import context_at, contiguous
from yomitoki.tokens import Token

logger = logging.getLogger(__name__)

SURU_FORMS = frozenset({'する', '為る'})
MAX_INFLECTION_TOKENS = 8


@dataclass(frozen=True)
class RepairContext:
    """Read-only state shared by the passes."""
    lexicon: Lexicon


RepairPass = Callable[[List[Token], RepairContext], List[Token]]


# ============================================================================
# Helpers
# ============================================================================

def merge_tokens(span: Sequence[Token], stage: str, reason: str, **changes) -> Token:
    """
    Merge adjacent tokens into one.

    The result takes the first token's attributes unless overridden by
    changes; surface and reading are concatenated.
    """
    fields = dict(
        end=span[-1].end,
        surface=''.join(t.surface for t in span),
        reading=''.join(t.reading for t in span),
        normalized_form='',
    )
    fields.update(changes)
    return span[0].repaired(stage, 'merge', reason, tuple(t.surface for t in span), **fields)


def split_token(token: Token, cut: int, stage: str, reason: str,
                left: Optional[dict] = None, right: Optional[dict] = None) -> Tuple[Token, Token]:
    """Split token at character offset cut; left and right override fields."""
    left_fields = dict(end=token.start + cut, surface=token.surface[:cut], normalized_form='')
    left_fields.update(left or {})
    right_fields = dict(start=token.start + cut, surface=token.surface[cut:], normalized_form='')
    right_fields.update(right or {})
    return (token.repaired(stage, 'split', reason, **left_fields),
            token.repaired(stage, 'split', reason, **right_fields))


def _kana_reading(surface: str) -> str:
    return as_katakana(surface) if is_kana(surface) else ''


def _is_verb(text: str, lexicon: Lexicon) -> bool:
    return any(PartOfSpeech.VERB in entry.classes for entry in lexicon.entries_for_text(text))


def _verb_citation(surface: str, lexicon: Lexicon) -> str:
    """First citation form of surface that the lexicon has as a matching verb."""
    for deconjugation in citation_forms(surface):
        for entry in lexicon.entries_for_text(deconjugation.text):
            if matches_pos(deconjugation, entry.pos_tags):
                return deconjugation.text
    return surface


def _adjacent(prev: Optional[Token], token: Token) -> bool:
    return prev is not None and not prev.discarded and prev.end == token.start


# ============================================================================
# Splitting Passes
# ============================================================================

def _at_clause_boundary(token: Token, following: Optional[Token]) -> bool:
    if following is None or following.start > token.end:
        return True
    return is_clause_boundary(following.surface[:1])


def discard_emphatic_sokuon(tokens: List[Token], context: RepairContext) -> List[Token]:
    """
    Discard an emphatic っ/ッ closing a clause (ないっ！).

    A standalone sokuon after hiragana is marked discarded; a sokuon the
    analyzer glued onto the word before it is split off first.
    """
    stage = 'discard_emphatic_sokuon'
    out = []
    for i, token in enumerate(tokens):
        if token.discarded:
            out.append(token)
            continue
        ctx = context_at(tokens, i)
        surface = token.surface
        if (surface in SOKUON and _adjacent(ctx.prev, token)
                and is_hiragana_char(ctx.prev.surface[-1]) and _at_clause_boundary(token, ctx.next)):
            out.append(token.repaired(stage, 'remove', 'emphatic sokuon at a clause boundary',
                                      discarded=True))
            continue
        if (len(surface) > 1 and surface[-1] in SOKUON and is_hiragana_char(surface[-2])
                and token.pos not in NON_LEXICAL and _at_clause_boundary(token, ctx.next)):
            reading = token.reading[:-1] if token.reading.endswith('ッ') else token.reading
            stem, mark = split_token(
                token, len(surface) - 1, stage, 'emphatic sokuon attached to a word',
                left={'reading': reading},
                right={'reading': 'ッ', 'pos': PartOfSpeech.SYMBOL, 'discarded': True},
            )
            logger.debug(f"Split emphatic sokuon off {surface!r}")
            out.extend((stem, mark))
            continue
        out.append(token)
    return out


def _split_auxiliary(token: Token, lexicon: Lexicon, stage: str) -> Optional[Tuple[Token, Token]]:
    base = token.dictionary_form
    if not base or lexicon.contains(base):
        return None
    surface = token.surface
    for aux, stem in rules.AUXILIARY_VERB_STEMS.items():
        if not base.endswith(aux) or len(base) <= len(aux):
            continue
        cut = len(base) - len(aux)
        if len(surface) <= cut or surface[:cut] != base[:cut] or not surface[cut:].startswith(stem):
            continue
        logger.debug(f"Split auxiliary verb {aux!r} off {surface!r}")
        return split_token(
            token, cut, stage, f'{aux} is a separate auxiliary verb',
            left={'dictionary_form': _verb_citation(surface[:cut], lexicon),
                  'reading': _kana_reading(surface[:cut])},
            right={'dictionary_form': aux, 'reading': _kana_reading(surface[cut:]),
                   'pos_detail': (DETAIL_POSSIBLE_DEPENDANT,)},
        )
    return None


def split_compound_auxiliary_verbs(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Split verb + aspect verb compounds the lexicon lacks (し終わっ -> し + 終わっ)."""
    stage = 'split_compound_auxiliary_verbs'
    out = []
    for token in tokens:
        parts = None
        if not token.discarded and token.pos is PartOfSpeech.VERB:
            parts = _split_auxiliary(token, context.lexicon, stage)
        out.extend(parts or (token,))
    return out


def split_tatte_particle(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Split conjunctive たって/だって after a predicate into past た/だ + って."""
    stage = 'split_tatte_particle'
    out = []
    for i, token in enumerate(tokens):
        if (token.surface in ('たって', 'だって') and not token.discarded
                and token.pos is PartOfSpeech.PARTICLE
                and token.has_detail(DETAIL_CONJUNCTIVE_PARTICLE)):
            prev = context_at(tokens, i).prev
            if _adjacent(prev, token) and prev.pos in (
                    PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE, PartOfSpeech.AUXILIARY):
                marker = token.surface[0]
                out.extend(split_token(
                    token, 1, stage, 'past auxiliary and quotative particle',
                    left={'pos': PartOfSpeech.AUXILIARY, 'pos_tag': '助動詞', 'pos_detail': (),
                          'dictionary_form': marker, 'reading': as_katakana(marker)},
                    right={'dictionary_form': 'って', 'reading': 'ッテ'},
                ))
                continue
        out.append(token)
    return out


# ============================================================================
# ん Forms
# ============================================================================

def _auxiliary_fields(surface: str, dictionary_form: str) -> dict:
    return {'pos': PartOfSpeech.AUXILIARY, 'pos_tag': '助動詞', 'pos_detail': (),
            'dictionary_form': dictionary_form, 'reading': as_katakana(surface)}


def _split_n_compound(token: Token, prev: Optional[Token], stage: str) -> Optional[Tuple[Token, Token]]:
    surface = token.surface
    if token.discarded or len(surface) < 2:
        return None
    rest = surface[1:]
    if surface[0] == 'ん' and rest.startswith(rules.N_COMPOUND_SUFFIXES):
        return split_token(token, 1, stage, 'ん glued to a copula',
                           left=_auxiliary_fields('ん', ''),
                           right={'dictionary_form': rest, 'reading': as_katakana(rest)})
    if (surface[0] == 'だ' and rest in rules.DA_COMPOUND_SUFFIXES
            and _adjacent(prev, token) and prev.surface.endswith('ん')):
        return split_token(token, 1, stage, 'copula glued to a conjunction',
                           left=_auxiliary_fields('だ', 'だ'),
                           right={'dictionary_form': rest, 'reading': as_katakana(rest)})
    if surface == 'そうだ' and token.pos is PartOfSpeech.ADVERB:
        return split_token(token, 2, stage, 'appearance stem and copula',
                           left={'pos': PartOfSpeech.NA_ADJECTIVE, 'pos_tag': '形状詞',
                                 'pos_detail': (DETAIL_AUXILIARY_STEM,), 'dictionary_form': 'そう',
                                 'reading': 'ソウ'},
                           right=_auxiliary_fields('だ', 'だ'))
    return None


def _n_citation(text: str, lexicon: Lexicon, negative: bool) -> Optional[str]:
    """Citation of text as a negative (negative=True) or an んだ/んで form of a lexicon verb."""
    for deconjugation in deconjugate(text):
        if negative:
            wanted = 'negative' in deconjugation.process
        else:
            wanted = deconjugation.word_class in rules.N_PAST_CLASSES
        if wanted and any(matches_pos(deconjugation, e.pos_tags)
                          for e in lexicon.entries_for_text(deconjugation.text)):
            return deconjugation.text
    return None


def _join_n_form(out: List[Token], tail: Sequence[Token], lexicon: Lexicon, negative: bool,
                 stage: str) -> Optional[Tuple[Token, int]]:
    """Merge up to three tokens before tail with it; returns (merged, tokens taken from out)."""
    if (len(out) >= 2 and out[-1].surface == 'な' and out[-1].dictionary_form == 'だ'
            and out[-2].pos is PartOfSpeech.NA_ADJECTIVE):
        return None
    # いいんだ: explanatory
    if not negative and out[-1].pos is PartOfSpeech.I_ADJECTIVE:
        return None
    for lookback in range(1, min(3, len(out)) + 1):
        span = out[-lookback:] + list(tail)
        if not contiguous(span):
            continue
        citation = _n_citation(''.join(t.surface for t in span), lexicon, negative)
        if citation is not None:
            merged = merge_tokens(span, stage, f'ん form of {citation}', pos=PartOfSpeech.VERB,
                                  pos_tag='動詞', pos_detail=(), dictionary_form=citation)
            return merged, lookback
    return None


def repair_n_tokenisation(tokens: List[Token], context: RepairContext) -> List[Token]:
    """
    Repair ん forms the analyzer cut in the wrong place.

    Copulas glued onto ん are split off first (んだ -> ん + だ). Then ん is
    joined back to the verb stem before it when the result is the past,
    te-form or negative of a lexicon verb (死 + ん + だ -> 死んだ).
    Explanatory ん (dictionary form の) is left alone.
    """
    stage = 'repair_n_tokenisation'
    split: List[Token] = []
    for token in tokens:
        parts = _split_n_compound(token, split[-1] if split else None, stage)
        split.extend(parts or (token,))

    out: List[Token] = []
    i = 0
    while i < len(split):
        token = split[i]
        following = split[i + 1] if i + 1 < len(split) else None
        takes_da = (following is not None and following.surface in ('だ', 'で')
                    and contiguous((token, following)))

        # 飲ん + だ
        if (takes_da and len(token.surface) > 1 and token.surface.endswith('ん')
                and token.pos not in (PartOfSpeech.NA_ADJECTIVE, PartOfSpeech.SUFFIX)
                and not as_hiragana(token.dictionary_form).endswith('ん')):
            citation = _n_citation(token.surface + following.surface, context.lexicon, False)
            if citation is not None:
                out.append(merge_tokens((token, following), stage, f'ん form of {citation}',
                                        pos=PartOfSpeech.VERB, pos_tag='動詞',
                                        dictionary_form=citation))
                i += 2
                continue

        if token.surface == 'ん' and out:
            found = None
            if token.dictionary_form == rules.NEGATIVE_N_FORM:
                found = _join_n_form(out, (token,), context.lexicon, True, stage)
            elif takes_da and token.dictionary_form not in rules.EXPLANATORY_N_FORMS:
                found = _join_n_form(out, (token, following), context.lexicon, False, stage)
            if found is not None:
                merged, taken = found
                logger.debug(f"Joined ん form {merged.surface!r}")
                out[-taken:] = [merged]
                i += 2 if merged.end > token.end else 1
                continue

        out.append(token)
        i += 1
    return out


# ============================================================================
# Vowel Elongation
# ============================================================================

def _elongation_mark(token: Token, stage: str, mark: str) -> Token:
    return token.repaired(
        stage, 'split', 'elongation mark',
        start=token.end - len(mark), surface=mark, pos=PartOfSpeech.ELONGATION,
        pos_tag='', pos_detail=(), dictionary_form=mark, reading=as_katakana(mark),
        normalized_form='',
    )


def _repair_elongation(prev: Token, token: Token, lexicon: Lexicon, stage: str) -> Optional[List[Token]]:
    surface = token.surface

    if surface == LONG_VOWEL_MARK:
        word = prev.surface + surface
        if lexicon.contains(word) or (is_kana(word) and lexicon.forms_by_reading(word)):
            return [merge_tokens((prev, token), stage, 'long vowel belongs to the word',
                                 dictionary_form=word)]
        return [prev, token.repaired(stage, 'remove', 'long vowel mark matches no word',
                                     discarded=True)]

    # 分かるう: prev + かる is a verb, う is drawn out
    if len(surface) >= 2 and surface.endswith('るう'):
        verb = prev.surface + surface[:-1]
        if _is_verb(verb, lexicon):
            merged = merge_tokens((prev, token), stage, 'verb with elongated ending',
                                  end=token.end - 1, surface=verb, dictionary_form=verb,
                                  pos=PartOfSpeech.VERB,
                                  reading=prev.reading + _kana_reading(surface[:-1]))
            return [merged, _elongation_mark(token, stage, 'う')]

    # 言ったあ: prev + た is a past verb, あ is drawn out
    if surface == 'たあ':
        past = prev.surface + 'た'
        for deconjugation in citation_forms(past):
            if 'past' not in deconjugation.process:
                continue
            if any(matches_pos(deconjugation, e.pos_tags) for e in lexicon.entries_for_text(deconjugation.text)):
                merged = merge_tokens((prev, token), stage, 'past verb with elongated ending',
                                      end=token.start + 1, surface=past,
                                      dictionary_form=deconjugation.text,
                                      reading=prev.reading + 'タ')
                return [merged, _elongation_mark(token, stage, 'あ')]
    return None


def repair_vowel_elongation(tokens: List[Token], context: RepairContext) -> List[Token]:
    """
    Fix drawn-out vowels the analyzer attached to the wrong word.

    The elongation is absorbed when the lengthened word is in the lexicon,
    emitted as a standalone mark token when it follows a valid verb form,
    and discarded otherwise.
    """
    stage = 'repair_vowel_elongation'
    out: List[Token] = []
    for token in tokens:
        prev = out[-1] if out else None
        if (not token.discarded and _adjacent(prev, token) and prev.pos not in NON_LEXICAL):
            repaired = _repair_elongation(prev, token, context.lexicon, stage)
            if repaired is not None:
                out[-1:] = repaired
                continue
        out.append(token)
    return out


# ============================================================================
# Reclassification
# ============================================================================

def reclassify_tokens(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Apply rules.RECLASSIFY_RULES and discard vocalization noise."""
    stage = 'reclassify_tokens'
    out = []
    for i, token in enumerate(tokens):
        if token.discarded:
            out.append(token)
            continue
        if token.surface in rules.NOISE_SURFACES:
            out.append(token.repaired(stage, 'remove', 'vocalization noise', discarded=True))
            continue
        ctx = context_at(tokens, i)
        for rule in rules.RECLASSIFY_RULES:
            if rule.predicate(ctx):
                if token.pos is not rule.pos:
                    token = token.repaired(stage, 'reclassify', rule.name, pos=rule.pos)
                break
        out.append(token)
    return out


# ============================================================================
# Merging Passes
# ============================================================================

def combine_special_cases(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Merge the fixed sequences in rules.SPECIAL_CASES (です + か -> ですか)."""
    stage = 'combine_special_cases'
    out = []
    i = 0
    while i < len(tokens):
        for surfaces, pos in rules.SPECIAL_CASES:
            span = tokens[i:i + len(surfaces)]
            if tuple(t.surface for t in span) == surfaces and contiguous(span):
                out.append(merge_tokens(span, stage, 'fixed expression', pos=pos, pos_tag='',
                                        pos_detail=(), dictionary_form=''.join(surfaces)))
                i += len(span)
                break
        else:
            out.append(tokens[i])
            i += 1
    return out


def _reaches(span: Sequence[Token], target: str) -> bool:
    """True if the joined span deconjugates to target."""
    text = ''.join(t.surface for t in span)
    wanted = as_hiragana(target)
    if as_hiragana(text) == wanted:
        return True
    return any(as_hiragana(d.text) == wanted for d in deconjugate(text))


def _continues_inflection(tokens: Sequence[Token], j: int, allow_suru: bool) -> bool:
    token = tokens[j]
    if token.discarded or token.pos in NON_LEXICAL or tokens[j - 1].end != token.start:
        return False
    if allow_suru and token.dictionary_form in SURU_FORMS:
        return True
    if token.surface in rules.INFLECTION_STOPPERS or token.dictionary_form in rules.AUXILIARY_VERBS:
        return False
    if token.surface == 'じゃ':
        return False
    # explanatory ん + だ stays separate
    if token.surface == 'ん' and j + 1 < len(tokens) and tokens[j + 1].surface in ('だ', 'です', 'でしょ'):
        return False
    if token.pos is PartOfSpeech.AUXILIARY or rules.is_conjunctive_particle(token):
        return True
    return (token.pos in (PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE)
            and token.has_detail(DETAIL_POSSIBLE_DEPENDANT))


def _inflection_span(tokens: Sequence[Token], i: int) -> Tuple[int, str, bool]:
    """(end, citation, suru_noun) of the longest valid inflection chain at i."""
    base = tokens[i]
    suru_noun = (base.pos is PartOfSpeech.NOUN and base.has_detail(DETAIL_POSSIBLE_SURU)
                 and i + 1 < len(tokens) and tokens[i + 1].dictionary_form in SURU_FORMS)
    if base.discarded or (base.pos not in (PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE,
                                           PartOfSpeech.AUXILIARY) and not suru_noun):
        return i + 1, '', False
    target = base.surface + 'する' if suru_noun else (base.dictionary_form or base.surface)
    best = i + 1
    j = i + 1
    while (j < len(tokens) and j - i < MAX_INFLECTION_TOKENS
           and _continues_inflection(tokens, j, suru_noun and j == i + 1)):
        j += 1
        if _reaches(tokens[i:j], target):
            best = j
    return best, target, suru_noun


def combine_inflections(tokens: List[Token], context: RepairContext) -> List[Token]:
    """
    Merge a verb or adjective with the auxiliaries and conjunctive
    particles that inflect it (食べ + なかっ + た -> 食べなかった).

    A chain is only merged as far as the deconjugator can take the merged
    text back to the base token's dictionary form.
    """
    stage = 'combine_inflections'
    out = []
    i = 0
    while i < len(tokens):
        end, target, suru_noun = _inflection_span(tokens, i)
        if end > i + 1:
            changes = {'dictionary_form': target}
            if suru_noun:
                changes.update(pos=PartOfSpeech.VERB, pos_tag='動詞')
            out.append(merge_tokens(tokens[i:end], stage, f'inflection of {target}', **changes))
            i = end
        else:
            out.append(tokens[i])
            i += 1
    return out


def combine_amounts(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Merge a numeral and counter read as one word (一 + 人 -> 一人)."""
    stage = 'combine_amounts'
    out = []
    i = 0
    while i < len(tokens):
        pair = tokens[i:i + 2]
        reading = rules.AMOUNT_WORDS.get(tuple(t.surface for t in pair))
        if (reading is not None and contiguous(pair)
                and (pair[0].pos is PartOfSpeech.NUMERAL or pair[0].has_detail(DETAIL_NUMERAL))):
            word = pair[0].surface + pair[1].surface
            out.append(merge_tokens(pair, stage, 'numeral and counter', pos=PartOfSpeech.NOUN,
                                    pos_tag='名詞', pos_detail=(), dictionary_form=word,
                                    reading=reading))
            i += 2
            continue
        out.append(tokens[i])
        i += 1
    return out


def _takes_auxiliary_stem(token: Token) -> bool:
    if token.pos in (PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE, PartOfSpeech.NOUN):
        return True
    # やす(い), にく(い)
    return token.pos is PartOfSpeech.SUFFIX and token.dictionary_form.endswith('い')


def combine_auxiliary_verb_stem(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Merge an auxiliary verb stem into the predicate before it (食べ + そう -> 食べそう)."""
    stage = 'combine_auxiliary_verb_stem'
    out: List[Token] = []
    for token in tokens:
        prev = out[-1] if out else None
        if (prev is not None and token.has_detail(DETAIL_AUXILIARY_STEM)
                and token.surface not in rules.FREE_AUXILIARY_STEMS
                and _takes_auxiliary_stem(prev) and contiguous((prev, token))):
            out[-1] = merge_tokens((prev, token), stage, f'auxiliary stem {token.surface}')
            continue
        out.append(token)
    return out


def _is_garu_stem(prev: Token, token: Token) -> bool:
    # 怖 + がったり, which the analyzer reads as an adverb
    return (token.pos is PartOfSpeech.ADVERB and token.surface == 'がったり'
            and prev.pos is PartOfSpeech.I_ADJECTIVE and not prev.surface.endswith('い')
            and prev.dictionary_form.endswith('い'))


def combine_suffix(tokens: List[Token], context: RepairContext) -> List[Token]:
    """
    Merge word-forming suffixes into the word before them.

    高 + さ becomes the noun 高さ, 僕 + ら the pronoun 僕ら and 怖 + がっ
    the verb 怖がる; see rules.forms_with_suffix.
    """
    stage = 'combine_suffix'
    out: List[Token] = []
    for token in tokens:
        prev = out[-1] if out else None
        if prev is None or not contiguous((prev, token)):
            out.append(token)
            continue
        pos = rules.forms_with_suffix(prev, token)
        if pos is not None:
            changes = {'pos': pos, 'pos_detail': (), 'dictionary_form': prev.surface + token.dictionary_form}
            if pos is PartOfSpeech.VERB:
                changes['pos_tag'] = '動詞'
            out[-1] = merge_tokens((prev, token), stage, f'suffix {token.dictionary_form}', **changes)
        elif _is_garu_stem(prev, token):
            out[-1] = merge_tokens((prev, token), stage, 'suffix がる', pos=PartOfSpeech.VERB,
                                   pos_tag='動詞', pos_detail=(),
                                   dictionary_form=prev.surface + 'がる')
        else:
            out.append(token)
    return out


def combine_adverbial_particle(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Merge たり/だり into the verb before it (食べ + たり -> 食べたり)."""
    stage = 'combine_adverbial_particle'
    out: List[Token] = []
    for token in tokens:
        prev = out[-1] if out else None
        if (prev is not None and prev.pos is PartOfSpeech.VERB
                and token.has_detail(DETAIL_ADVERBIAL_PARTICLE)
                and token.dictionary_form in rules.TARI_PARTICLES and contiguous((prev, token))):
            out[-1] = merge_tokens((prev, token), stage, 'tari form')
            continue
        out.append(token)
    return out


def _is_subsidiary(token: Token) -> bool:
    if token.pos is not PartOfSpeech.VERB:
        return False
    if token.dictionary_form in rules.SUBSIDIARY_VERBS:
        return True
    return any(d.text in rules.SUBSIDIARY_VERBS for d in citation_forms(token.surface))


def _subsidiary_length(tokens: Sequence[Token], i: int) -> int:
    token = tokens[i]
    if token.discarded or token.pos not in (PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE):
        return 0
    if token.surface[-1:] in ('て', 'で'):
        length = 2
    elif (i + 1 < len(tokens) and tokens[i + 1].surface in ('て', 'で')
          and rules.is_conjunctive_particle(tokens[i + 1])):
        length = 3
    else:
        return 0
    span = tokens[i:i + length]
    if len(span) == length and contiguous(span) and _is_subsidiary(span[-1]):
        return length
    return 0


def combine_subsidiary_verbs(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Merge a te-form with a following subsidiary verb (食べて + いる)."""
    stage = 'combine_subsidiary_verbs'
    out = []
    i = 0
    while i < len(tokens):
        length = _subsidiary_length(tokens, i)
        if length:
            span = tokens[i:i + length]
            out.append(merge_tokens(span, stage, f'te-form + {span[-1].dictionary_form}'))
            i += length
        else:
            out.append(tokens[i])
            i += 1
    return out


def _longest_compound(tokens: Sequence[Token], i: int, lexicon: Lexicon, stage: str) -> Optional[Tuple[Token, int]]:
    if tokens[i].discarded:
        return None
    for length in range(min(rules.MAX_COMPOUND_TOKENS, len(tokens) - i), 1, -1):
        span = tokens[i:i + length]
        if not rules.can_join(span):
            continue
        for rule in rules.COMPOUND_RULES:
            if not rule.applies(span):
                continue
            for text in rules.compound_texts(rule, span):
                classes = set()
                for entry in lexicon.entries_for_text(text):
                    classes |= entry.classes
                matched = classes & rule.classes
                if matched:
                    merged = merge_tokens(span, stage, f'{rule.name}: {text}',
                                          pos=rules.merged_pos(rule, span, matched),
                                          pos_detail=(), dictionary_form=text)
                    return merged, length
    return None


def combine_compound_expressions(tokens: List[Token], context: RepairContext) -> List[Token]:
    """
    Merge adjacent tokens into the longest span the lexicon knows.

    Spans are tried longest first; only spans that rules.can_join accepts
    and that some COMPOUND_RULES entry validates against the lexicon are
    merged.
    """
    stage = 'combine_compound_expressions'
    out = []
    i = 0
    while i < len(tokens):
        found = _longest_compound(tokens, i, context.lexicon, stage)
        if found is not None:
            merged, length = found
            logger.debug(f"Merged compound {merged.surface!r}")
            out.append(merged)
            i += length
        else:
            out.append(tokens[i])
            i += 1
    return out


def combine_particles(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Merge particle compounds (には, では, のに) and かもしれない."""
    stage = 'combine_particles'
    out = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        triple = tokens[i:i + 3]
        if (len(triple) == 3 and token.surface == 'か' and triple[1].surface == 'も'
                and triple[2].surface.startswith(('しれ', '知れ')) and contiguous(triple)):
            out.append(merge_tokens(triple, stage, 'かもしれない', pos=PartOfSpeech.EXPRESSION,
                                    pos_detail=(), dictionary_form='かもしれない'))
            i += 3
            continue
        pair = tokens[i:i + 2]
        combined = rules.PARTICLE_PAIRS.get(tuple(t.surface for t in pair))
        if (combined is not None and contiguous(pair)
                and all(t.pos is PartOfSpeech.PARTICLE for t in pair)):
            out.append(merge_tokens(pair, stage, 'particle compound', dictionary_form=combined))
            i += 2
            continue
        out.append(token)
        i += 1
    return out


def apply_reading_overrides(tokens: List[Token], context: RepairContext) -> List[Token]:
    """Rewrite ambiguous readings from their context (rules.READING_OVERRIDES)."""
    stage = 'apply_reading_overrides'
    out = []
    for i, token in enumerate(tokens):
        if not token.discarded:
            rule = rules.find_reading_override(context_at(tokens, i))
            if rule is not None:
                token = token.repaired(stage, 'reading', rule.name, reading=rule.to_reading)
        out.append(token)
    return out


REPAIR_PASSES: Tuple[RepairPass, ...] = (
    discard_emphatic_sokuon,
    split_compound_auxiliary_verbs,
    split_tatte_particle,
    repair_n_tokenisation,
    repair_vowel_elongation,
    reclassify_tokens,
    combine_special_cases,
    combine_inflections,
    combine_amounts,
    combine_auxiliary_verb_stem,
    combine_suffix,
    combine_subsidiary_verbs,
    combine_adverbial_particle,
    combine_compound_expressions,
    combine_particles,
    apply_reading_overrides,
)


# ============================================================================
# Fixed-Point Runner
# ============================================================================

class RepairResult(NamedTuple):
    tokens: List[Token]
    traces: Optional[List[StageTrace]]
    loop_exceeded: bool


def run_pass(repair_pass: RepairPass, tokens: List[Token], context: RepairContext,
             iteration: int = 1, trace: bool = False) -> Tuple[List[Token], Optional[StageTrace]]:
    """
    Run one pass.

    Returns:
        Tuple of (output tokens, StageTrace or None when trace is False)
    """
    started = time.perf_counter()
    output = repair_pass(tokens, context)
    if not trace:
        return output, None
    elapsed = (time.perf_counter() - started) * 1000
    seen = {id(t) for t in tokens}
    modifications = []
    for token in output:
        if id(token) in seen or not token.provenance:
            continue
        repair = token.provenance[-1]
        modifications.append(TokenModification(
            repair.kind, repair.reason, repair.inputs, token.surface, token.start, token.end))
    return output, StageTrace(repair_pass.__name__, iteration, len(tokens), len(output),
                              elapsed, modifications)


def run_to_fixed_point(tokens: Sequence[Token], context: RepairContext,
                       passes: Sequence[RepairPass] = REPAIR_PASSES, max_iterations: int = 4,
                       traces: Optional[List[StageTrace]] = None) -> List[Token]:
    """
    Run passes in order until a full round changes nothing.

    Args:
        traces: If given, a StageTrace for every pass run is appended

    Raises:
        RepairLoopExceeded: If tokens still change after max_iterations rounds
    """
    current = list(tokens)
    for iteration in range(1, max_iterations + 1):
        before = current
        for repair_pass in passes:
            current, trace = run_pass(repair_pass, current, context, iteration, traces is not None)
            if trace is not None:
                traces.append(trace)
        if current == before:
            return current
    raise RepairLoopExceeded(max_iterations)


def repair_tokens(tokens: Sequence[Token], context: RepairContext, max_iterations: int = 4,
                  collect_traces: bool = False,
                  passes: Sequence[RepairPass] = REPAIR_PASSES) -> RepairResult:
    """
    Repair an analyzer token list.

    A pass sequence that does not converge is a rule-table defect: it is
    logged and the unrepaired tokens are returned.
    """
    traces: Optional[List[StageTrace]] = [] if collect_traces else None
    try:
        repaired = run_to_fixed_point(tokens, context, passes, max_iterations, traces)
    except RepairLoopExceeded as e:
        text = ''.join(t.surface for t in tokens)
        logger.error(f"{e} for {text[:40]!r}; keeping the analyzer tokens")
        return RepairResult(list(tokens), traces, True)
    return RepairResult(repaired, traces, False)
