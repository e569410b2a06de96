"""
Part-of-speech classes for yomitoki.

The analyzer reports Japanese UniDic-style tags (名詞, 動詞, ...) and the
lexicon carries JMdict tags (n, v5k, adj-i, ...). Both are mapped onto
the coarse PartOfSpeech classes below so they can be compared.
"""

from enum import Enum
from typing import FrozenSet, Iterable, Optional


class PartOfSpeech(str, Enum):
    NOUN = "noun"
    PRONOUN = "pronoun"
    VERB = "verb"
    I_ADJECTIVE = "i_adjective"
    NA_ADJECTIVE = "na_adjective"
    ADVERB = "adverb"
    ADNOMINAL = "adnominal"
    PARTICLE = "particle"
    CONJUNCTION = "conjunction"
    AUXILIARY = "auxiliary"
    INTERJECTION = "interjection"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    COUNTER = "counter"
    NUMERAL = "numeral"
    EXPRESSION = "expression"
    SYMBOL = "symbol"
    BLANK = "blank"
    ELONGATION = "elongation"
    UNKNOWN = "unknown"


# ============================================================================
# Analyzer Tags
# ============================================================================

ANALYZER_POS_MAP = {
    '名詞': PartOfSpeech.NOUN,
    '代名詞': PartOfSpeech.PRONOUN,
    '動詞': PartOfSpeech.VERB,
    '形容詞': PartOfSpeech.I_ADJECTIVE,
    '形状詞': PartOfSpeech.NA_ADJECTIVE,
    '副詞': PartOfSpeech.ADVERB,
    '連体詞': PartOfSpeech.ADNOMINAL,
    '助詞': PartOfSpeech.PARTICLE,
    '接続詞': PartOfSpeech.CONJUNCTION,
    '助動詞': PartOfSpeech.AUXILIARY,
    '感動詞': PartOfSpeech.INTERJECTION,
    '接頭辞': PartOfSpeech.PREFIX,
    '接尾辞': PartOfSpeech.SUFFIX,
    '補助記号': PartOfSpeech.SYMBOL,
    '記号': PartOfSpeech.SYMBOL,
    '空白': PartOfSpeech.BLANK,
}

# POS detail subtags the repair rules look at
DETAIL_NUMERAL = '数詞'
DETAIL_COUNTER = '助数詞'
DETAIL_PROPER_NOUN = '固有名詞'
DETAIL_POSSIBLE_DEPENDANT = '非自立可能'
DETAIL_POSSIBLE_SURU = 'サ変可能'
DETAIL_CASE_PARTICLE = '格助詞'
DETAIL_BINDING_PARTICLE = '係助詞'
DETAIL_CONJUNCTIVE_PARTICLE = '接続助詞'
DETAIL_SENTENCE_ENDING_PARTICLE = '終助詞'
DETAIL_ADVERBIAL_PARTICLE = '副助詞'
DETAIL_NOMINALIZING_PARTICLE = '準体助詞'
DETAIL_AUXILIARY_STEM = '助動詞語幹'
DETAIL_PERIOD = '句点'
DETAIL_COMMA = '読点'


def from_analyzer_tag(tag: str, details: Iterable[str] = ()) -> PartOfSpeech:
    """Map an analyzer tag (and its subtags) to a PartOfSpeech."""
    pos = ANALYZER_POS_MAP.get(tag, PartOfSpeech.UNKNOWN)
    if pos is PartOfSpeech.NOUN:
        details = tuple(details)
        if DETAIL_NUMERAL in details:
            return PartOfSpeech.NUMERAL
        if DETAIL_COUNTER in details:
            return PartOfSpeech.COUNTER
    return pos


# ============================================================================
# JMdict Tags
# ============================================================================

JMDICT_POS_MAP = {
    'n': PartOfSpeech.NOUN, 'n-adv': PartOfSpeech.NOUN, 'n-t': PartOfSpeech.NOUN,
    'n-pr': PartOfSpeech.NOUN, 'adj-no': PartOfSpeech.NOUN, 'vs': PartOfSpeech.NOUN,
    'pn': PartOfSpeech.PRONOUN,
    'adj-i': PartOfSpeech.I_ADJECTIVE, 'adj-ix': PartOfSpeech.I_ADJECTIVE,
    'adj-na': PartOfSpeech.NA_ADJECTIVE, 'adj-t': PartOfSpeech.NA_ADJECTIVE,
    'adj-f': PartOfSpeech.ADNOMINAL, 'adj-pn': PartOfSpeech.ADNOMINAL,
    'adv': PartOfSpeech.ADVERB, 'adv-to': PartOfSpeech.ADVERB,
    'prt': PartOfSpeech.PARTICLE,
    'conj': PartOfSpeech.CONJUNCTION,
    'aux': PartOfSpeech.AUXILIARY, 'aux-v': PartOfSpeech.AUXILIARY,
    'aux-adj': PartOfSpeech.AUXILIARY, 'cop': PartOfSpeech.AUXILIARY,
    'int': PartOfSpeech.INTERJECTION,
    'pref': PartOfSpeech.PREFIX, 'n-pref': PartOfSpeech.PREFIX,
    'suf': PartOfSpeech.SUFFIX, 'n-suf': PartOfSpeech.SUFFIX,
    'ctr': PartOfSpeech.COUNTER,
    'num': PartOfSpeech.NUMERAL,
    'exp': PartOfSpeech.EXPRESSION,
}


def from_jmdict_tag(tag: str) -> Optional[PartOfSpeech]:
    """Map a JMdict POS tag to a PartOfSpeech; all verb classes map to VERB."""
    if tag in JMDICT_POS_MAP:
        return JMDICT_POS_MAP[tag]
    if tag.startswith(('v1', 'v2', 'v4', 'v5', 'vk', 'vn', 'vr', 'vs-', 'vz')):
        return PartOfSpeech.VERB
    return None


def classes_of(tags: Iterable[str]) -> FrozenSet[PartOfSpeech]:
    return frozenset(p for p in map(from_jmdict_tag, tags) if p is not None)


# Token classes that an entry class may stand in for
_COMPATIBLE = {
    PartOfSpeech.NOUN: {PartOfSpeech.NA_ADJECTIVE, PartOfSpeech.PRONOUN, PartOfSpeech.NUMERAL},
    PartOfSpeech.NA_ADJECTIVE: {PartOfSpeech.NOUN},
    PartOfSpeech.NUMERAL: {PartOfSpeech.NOUN},
    PartOfSpeech.AUXILIARY: {PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE},
    PartOfSpeech.SUFFIX: {PartOfSpeech.NOUN, PartOfSpeech.COUNTER},
    PartOfSpeech.PREFIX: {PartOfSpeech.NOUN},
    PartOfSpeech.ADNOMINAL: {PartOfSpeech.PRONOUN},
}


def is_compatible(token_pos: PartOfSpeech, entry_classes: FrozenSet[PartOfSpeech]) -> bool:
    """
    True if an entry with the given classes can be the word behind a token.

    Expressions are compatible with anything since merged spans keep the
    class of their head token.
    """
    if token_pos in entry_classes or PartOfSpeech.EXPRESSION in entry_classes:
        return True
    return bool(_COMPATIBLE.get(token_pos, set()) & entry_classes)


INFLECTABLE = frozenset({PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE, PartOfSpeech.AUXILIARY})
NON_LEXICAL = frozenset({PartOfSpeech.SYMBOL, PartOfSpeech.BLANK, PartOfSpeech.ELONGATION})
