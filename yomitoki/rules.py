"""
Declarative rule tables for the repair passes.

Each table is an ordered list of (predicate, action) records. Predicates
receive a TokenContext (the token plus its nearest live neighbours) so a
rule can be tested on its own without running a pass.
"""

from dataclasses import dataclass
from typing import Callable, FrozenSet, List, NamedTuple, Optional, Sequence, Set, Tuple

from yomitoki.pos import (
    DETAIL_CONJUNCTIVE_PARTICLE,
    DETAIL_NUMERAL,
    DETAIL_PROPER_NOUN,
    DETAIL_SENTENCE_ENDING_PARTICLE,
    NON_LEXICAL,
    PartOfSpeech,
)
from yomitoki.tokens import Token


class TokenContext(NamedTuple):
    """A token and its nearest non-discarded neighbours."""
    prev: Optional[Token]
    token: Token
    next: Optional[Token]
    next2: Optional[Token]


def context_at(tokens: Sequence[Token], i: int) -> TokenContext:
    prev = None
    for j in range(i - 1, -1, -1):
        if not tokens[j].discarded:
            prev = tokens[j]
            break
    following = []
    for j in range(i + 1, len(tokens)):
        if not tokens[j].discarded:
            following.append(tokens[j])
            if len(following) == 2:
                break
    following += [None, None]
    return TokenContext(prev, tokens[i], following[0], following[1])


def _text(token: Optional[Token]) -> str:
    return token.surface if token is not None else ''


# ============================================================================
# Reclassification
# ============================================================================

@dataclass(frozen=True)
class ReclassifyRule:
    """Give tokens matching predicate the part of speech pos."""
    name: str
    predicate: Callable[[TokenContext], bool]
    pos: PartOfSpeech


def _after_numeral(ctx: TokenContext) -> bool:
    prev = ctx.prev
    return prev is not None and (prev.pos is PartOfSpeech.NUMERAL or prev.has_detail(DETAIL_NUMERAL))


CASE_PARTICLES_AFTER_NOUN = frozenset({'から', 'を', 'が', 'に', 'で', 'へ', 'の', 'は', 'も'})

RECLASSIFY_RULES: Tuple[ReclassifyRule, ...] = (
    ReclassifyRule('nan-prefix', lambda c: c.token.surface in ('なん', 'フン', 'ふん'), PartOfSpeech.PREFIX),
    ReclassifyRule('sou-adverb', lambda c: c.token.surface == 'そう', PartOfSpeech.ADVERB),
    ReclassifyRule('oi-interjection', lambda c: c.token.surface == 'おい', PartOfSpeech.INTERJECTION),
    ReclassifyRule('ore-pronoun', lambda c: c.token.surface == 'オレ', PartOfSpeech.PRONOUN),
    ReclassifyRule('tsu-counter',
                   lambda c: c.token.surface == 'つ' and c.token.pos is PartOfSpeech.SUFFIX,
                   PartOfSpeech.COUNTER),
    ReclassifyRule('nin-counter',
                   lambda c: c.token.surface == '人' and c.token.pos is PartOfSpeech.SUFFIX and _after_numeral(c),
                   PartOfSpeech.COUNTER),
    ReclassifyRule('ie-noun',
                   lambda c: (c.token.surface == '家' and c.token.pos is PartOfSpeech.SUFFIX
                              and _text(c.next) in CASE_PARTICLES_AFTER_NOUN),
                   PartOfSpeech.NOUN),
    ReclassifyRule('yama-noun',
                   lambda c: c.token.surface == '山' and c.token.pos is PartOfSpeech.SUFFIX,
                   PartOfSpeech.NOUN),
    ReclassifyRule('darou-expression',
                   lambda c: c.token.surface in ('だろう', 'だろ') and c.token.pos is PartOfSpeech.AUXILIARY,
                   PartOfSpeech.EXPRESSION),
)

# Vocalizations the analyzer turns into bogus words
NOISE_SURFACES: FrozenSet[str] = frozenset({
    'ウー', 'うー', 'ううう', 'うう', 'ウウウウ', 'ウウ', 'ううっ', 'かー', 'ぐわー',
})


# ============================================================================
# Reading Overrides
# ============================================================================

@dataclass(frozen=True)
class ReadingOverride:
    """Replace from_reading with to_reading on surfaces when predicate holds."""
    name: str
    surfaces: FrozenSet[str]
    from_reading: str
    to_reading: str
    predicate: Callable[[TokenContext], bool]


def _omote_context(ctx: TokenContext) -> bool:
    # 表へ出る (outside) vs メニュー表 (chart)
    return (_text(ctx.next) in ('へ', 'に')
            and (ctx.prev is None or ctx.prev.pos is not PartOfSpeech.NOUN))


def _nani_context(ctx: TokenContext) -> bool:
    return ctx.next is None or ctx.next.surface in ('を', 'が', 'も')


def _ichinichi_context(ctx: TokenContext) -> bool:
    # 七月一日 is a date and keeps ついたち
    return ctx.prev is None or not ctx.prev.surface.endswith('月')


def _samuke_context(ctx: TokenContext) -> bool:
    # 寒気がする (have chills) vs 寒気が南下する (cold air)
    return (_text(ctx.next) == 'が' and ctx.next2 is not None
            and ctx.next2.dictionary_form in ('する', '為る'))


READING_OVERRIDES: Tuple[ReadingOverride, ...] = (
    ReadingOverride('omote', frozenset({'表'}), 'ヒョウ', 'オモテ', _omote_context),
    ReadingOverride('nani', frozenset({'何'}), 'ナン', 'ナニ', _nani_context),
    ReadingOverride('ichinichi', frozenset({'一日', '１日', '1日'}), 'ツイタチ', 'イチニチ', _ichinichi_context),
    ReadingOverride('samuke', frozenset({'寒気'}), 'カンキ', 'サムケ', _samuke_context),
)


def find_reading_override(ctx: TokenContext) -> Optional[ReadingOverride]:
    token = ctx.token
    for rule in READING_OVERRIDES:
        if token.surface in rule.surfaces and token.reading == rule.from_reading and rule.predicate(ctx):
            return rule
    return None


# ============================================================================
# Fixed Merges
# ============================================================================

# (surfaces, resulting part of speech); longer sequences are tried first
SPECIAL_CASES: Tuple[Tuple[Tuple[str, ...], PartOfSpeech], ...] = (
    (('な', 'の', 'で'), PartOfSpeech.EXPRESSION),
    (('で', 'は', 'ない'), PartOfSpeech.EXPRESSION),
    (('それ', 'で', 'も'), PartOfSpeech.CONJUNCTION),
    (('ほう', 'が', 'いい'), PartOfSpeech.EXPRESSION),
    (('に', 'とっ', 'て'), PartOfSpeech.EXPRESSION),
    (('に', 'つい', 'て'), PartOfSpeech.EXPRESSION),
    (('じゃ', 'ない'), PartOfSpeech.EXPRESSION),
    (('だ', 'けど'), PartOfSpeech.CONJUNCTION),
    (('だ', 'から'), PartOfSpeech.CONJUNCTION),
    (('で', 'さえ'), PartOfSpeech.EXPRESSION),
    (('と', 'いう'), PartOfSpeech.EXPRESSION),
    (('これ', 'まで'), PartOfSpeech.EXPRESSION),
    (('それ', 'も'), PartOfSpeech.CONJUNCTION),
    (('くせ', 'に'), PartOfSpeech.CONJUNCTION),
    (('誰', 'も'), PartOfSpeech.EXPRESSION),
    (('誰', 'か'), PartOfSpeech.EXPRESSION),
    (('すぐ', 'に'), PartOfSpeech.ADVERB),
    (('よう', 'に'), PartOfSpeech.EXPRESSION),
    (('です', 'か'), PartOfSpeech.EXPRESSION),
    (('何', 'の'), PartOfSpeech.PRONOUN),
    (('か', 'な'), PartOfSpeech.PARTICLE),
    (('に', 'ついて'), PartOfSpeech.EXPRESSION),
    (('に', 'とって'), PartOfSpeech.EXPRESSION),
    (('急', 'に'), PartOfSpeech.ADVERB),
    (('とっく', 'に'), PartOfSpeech.ADVERB),
)

PARTICLE_PAIRS = {
    ('に', 'は'): 'には',
    ('と', 'は'): 'とは',
    ('で', 'は'): 'では',
    ('の', 'に'): 'のに',
}

# Numeral + counter pairs read as one word, with their reading
AMOUNT_WORDS = {
    ('一', '人'): 'ヒトリ',
    ('二', '人'): 'フタリ',
    ('１', '人'): 'ヒトリ',
    ('２', '人'): 'フタリ',
    ('一', 'つ'): 'ヒトツ',
    ('二', 'つ'): 'フタツ',
    ('三', 'つ'): 'ミッツ',
    ('四', 'つ'): 'ヨッツ',
    ('五', 'つ'): 'イツツ',
    ('六', 'つ'): 'ムッツ',
    ('七', 'つ'): 'ナナツ',
    ('八', 'つ'): 'ヤッツ',
    ('九', 'つ'): 'ココノツ',
}


# ============================================================================
# ん Forms
# ============================================================================

# Copula forms the analyzer glues onto a preceding ん (んだ -> ん + だ)
N_COMPOUND_SUFFIXES: Tuple[str, ...] = (
    'だ', 'です', 'じゃ', 'なら', 'ても', 'でも', 'だろ', 'だろう', 'だって', 'だけど', 'だけ', 'だが', 'だし', 'だから',
)

# Conjunctions split off だ after ん (んだが -> ん + だ + が); だけど and
# だから are SPECIAL_CASES and stay whole
DA_COMPOUND_SUFFIXES: FrozenSet[str] = frozenset({'が', 'けれど', 'けれども', 'し', 'って'})

# Godan classes whose past and te-forms end in んだ/んで
N_PAST_CLASSES: FrozenSet[str] = frozenset({'v5m', 'v5n', 'v5b'})

# Dictionary forms of a standalone ん that is not part of a verb ending
EXPLANATORY_N_FORMS: FrozenSet[str] = frozenset({'の', 'ん'})
NEGATIVE_N_FORM = 'ぬ'


# ============================================================================
# Inflection and Subsidiary Verbs
# ============================================================================

# Aspect verbs that stay separate words (し終わる -> し + 終わる)
AUXILIARY_VERB_STEMS = {
    '続ける': '続け',
    '始める': '始め',
    '終わる': '終わ',
    '終える': '終え',
    '出す': '出',
    'かける': 'かけ',
    'いたす': 'いた',
    'いただく': 'いただ',
}
AUXILIARY_VERBS: FrozenSet[str] = frozenset(AUXILIARY_VERB_STEMS) | {'頂く', '致す'}

# Verbs that attach to a te-form
SUBSIDIARY_VERBS: FrozenSet[str] = frozenset({
    'いる', '居る', 'ある', '有る', 'おく', '置く', 'しまう', '仕舞う', 'みる', '見る',
    'いく', '行く', 'くる', '来る',
    'あげる', '上げる', 'くれる', '呉れる', 'もらう', '貰う', 'やる',
    'さしあげる', '差し上げる', 'くださる', '下さる',
})

CONJUNCTIVE_ENDINGS: FrozenSet[str] = frozenset({'て', 'で', 'ちゃ', 'ば'})

# Tokens that never continue an inflection chain
INFLECTION_STOPPERS: FrozenSet[str] = frozenset({'は', 'よ', 'し', 'を', 'が', 'な', 'ください'})


# Auxiliary verb stems (形状詞-助動詞語幹) that stay separate words
FREE_AUXILIARY_STEMS: FrozenSet[str] = frozenset({'よう', 'ように', 'ようです', 'みたい'})

# Adverbial particles that end a verb (食べ + たり)
TARI_PARTICLES: FrozenSet[str] = frozenset({'たり', 'だり'})

# Suffix dictionary form -> part of speech of the word it forms
WORD_FORMING_SUFFIXES = {
    'っこ': PartOfSpeech.NOUN,
    'さ': PartOfSpeech.NOUN,
    'がる': PartOfSpeech.VERB,
}

# Pluralizing ら joins pronouns except these
PLURAL_SUFFIX = 'ら'
PLURAL_EXCEPTIONS: FrozenSet[str] = frozenset({'貴様'})


def forms_with_suffix(prev: Token, suffix: Token) -> Optional[PartOfSpeech]:
    """Part of speech of prev + suffix when the suffix builds a new word, else None."""
    if suffix.pos is not PartOfSpeech.SUFFIX:
        return None
    if suffix.dictionary_form in WORD_FORMING_SUFFIXES:
        return WORD_FORMING_SUFFIXES[suffix.dictionary_form]
    if (suffix.dictionary_form == PLURAL_SUFFIX and prev.pos is PartOfSpeech.PRONOUN
            and prev.surface not in PLURAL_EXCEPTIONS):
        return PartOfSpeech.PRONOUN
    return None


def ends_clause(token: Token) -> bool:
    """Particles after which a merged expression may not continue."""
    if token.pos is not PartOfSpeech.PARTICLE:
        return False
    return token.surface in CLAUSE_ENDING_PARTICLES or token.has_detail(DETAIL_SENTENCE_ENDING_PARTICLE)


def is_conjunctive_particle(token: Token) -> bool:
    return token.surface in CONJUNCTIVE_ENDINGS and (
        token.has_detail(DETAIL_CONJUNCTIVE_PARTICLE) or token.pos is PartOfSpeech.PARTICLE)


# ============================================================================
# Compound Expressions
# ============================================================================

CLAUSE_ENDING_PARTICLES: FrozenSet[str] = frozenset({
    'は', 'が', 'を', 'か', 'ね', 'よ', 'ぞ', 'ぜ', 'わ', 'な', 'さ', 'も',
})

MAX_COMPOUND_TOKENS = 5


@dataclass(frozen=True)
class CompoundRule:
    """
    A kind of span that may be merged when the lexicon knows it.

    use_dictionary_form validates prefix surfaces + the last token's
    dictionary form, so conjugated compounds like 気に入った match 気に入る.
    """
    name: str
    applies: Callable[[Sequence[Token]], bool]
    classes: FrozenSet[PartOfSpeech]
    use_dictionary_form: bool = False


def _prefixed(span: Sequence[Token]) -> bool:
    return span[0].pos is PartOfSpeech.PREFIX


def _inflecting_tail(span: Sequence[Token]) -> bool:
    return span[-1].pos in (PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE)


COMPOUND_RULES: Tuple[CompoundRule, ...] = (
    CompoundRule('prefixed-noun', _prefixed,
                 frozenset({PartOfSpeech.NOUN, PartOfSpeech.NA_ADJECTIVE, PartOfSpeech.EXPRESSION})),
    CompoundRule('inflecting-compound', _inflecting_tail,
                 frozenset({PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE, PartOfSpeech.NA_ADJECTIVE,
                            PartOfSpeech.AUXILIARY, PartOfSpeech.EXPRESSION}),
                 use_dictionary_form=True),
    CompoundRule('expression', lambda span: True, frozenset({PartOfSpeech.EXPRESSION})),
)


def contiguous(span: Sequence[Token]) -> bool:
    """True if span holds 2+ adjacent live tokens with no punctuation or blanks."""
    if len(span) < 2:
        return False
    for i, token in enumerate(span):
        if token.discarded or token.pos in NON_LEXICAL:
            return False
        if i and span[i - 1].end != token.start:
            return False
    return True


def can_join(span: Sequence[Token]) -> bool:
    """
    True if span may be merged into a compound.

    A clause-ending particle may only be the last token and two proper
    nouns never merge.
    """
    if not contiguous(span):
        return False
    if any(ends_clause(token) for token in span[:-1]):
        return False
    proper = [t for t in span if t.has_detail(DETAIL_PROPER_NOUN)]
    return len(proper) < 2


def merged_pos(rule: CompoundRule, span: Sequence[Token], entry_classes: Set[PartOfSpeech]) -> PartOfSpeech:
    """Part of speech of a merged span: the head's class if the entry has it."""
    head = span[-1].pos if rule.use_dictionary_form else span[0].pos
    if head in entry_classes:
        return head
    for cls in (PartOfSpeech.NOUN, PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE,
                PartOfSpeech.NA_ADJECTIVE, PartOfSpeech.ADVERB):
        if cls in entry_classes:
            return cls
    return PartOfSpeech.EXPRESSION


def compound_texts(rule: CompoundRule, span: Sequence[Token]) -> List[str]:
    """Texts to look up for span under rule, surface first."""
    surface = ''.join(t.surface for t in span)
    texts = [surface]
    if rule.use_dictionary_form and span[-1].dictionary_form:
        citation = ''.join(t.surface for t in span[:-1]) + span[-1].dictionary_form
        if citation != surface:
            texts.append(citation)
    return texts
