"""
Rule-based deconjugator for yomitoki.

Given a conjugated word in kana (kanji stems are carried through
untouched), produce every citation form it could come from together with
the inflections that were stripped to get there.

Rules are plain data: (conjugated ending, citation ending, accepted input
class, produced class, label). A rule applies to the original text
unconditionally and to an intermediate form only when the form's class is
in the rule's accepted set, so 食べなかった → 食べない (adj-i) → 食べる (v1).
"""

from collections import deque
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Tuple

MAX_DEPTH = 6

# rules_in for outermost inflections: the rule only applies to the surface text
ROOT_ONLY: FrozenSet[str] = frozenset()


@dataclass(frozen=True, slots=True)
class DeconjugationRule:
    con_end: str
    dict_end: str
    rules_in: FrozenSet[str]
    rule_out: str
    label: str


@dataclass(frozen=True, slots=True)
class Deconjugation:
    """
    A citation-form hypothesis.

    Attributes:
        text: Candidate citation text
        tags: Word classes assigned along the way, the last one is current
        process: Labels in stripping order (outermost inflection first)
    """
    text: str
    tags: Tuple[str, ...] = ()
    process: Tuple[str, ...] = ()

    @property
    def word_class(self) -> str:
        return self.tags[-1] if self.tags else ''

    @property
    def labels(self) -> Tuple[str, ...]:
        """Inflection labels innermost first (te-form before progressive)."""
        return tuple(reversed(self.process))

    @property
    def depth(self) -> int:
        return len(self.process)


# ============================================================================
# Rule Tables
# ============================================================================

# class: (u, a, i, e, o, te, ta)
GODAN_ENDINGS: Dict[str, Tuple[str, ...]] = {
    'v5u': ('う', 'わ', 'い', 'え', 'お', 'って', 'った'),
    'v5k': ('く', 'か', 'き', 'け', 'こ', 'いて', 'いた'),
    'v5k-s': ('く', 'か', 'き', 'け', 'こ', 'って', 'った'),
    'v5g': ('ぐ', 'が', 'ぎ', 'げ', 'ご', 'いで', 'いだ'),
    'v5s': ('す', 'さ', 'し', 'せ', 'そ', 'して', 'した'),
    'v5t': ('つ', 'た', 'ち', 'て', 'と', 'って', 'った'),
    'v5n': ('ぬ', 'な', 'に', 'ね', 'の', 'んで', 'んだ'),
    'v5b': ('ぶ', 'ば', 'び', 'べ', 'ぼ', 'んで', 'んだ'),
    'v5m': ('む', 'ま', 'み', 'め', 'も', 'んで', 'んだ'),
    'v5r': ('る', 'ら', 'り', 'れ', 'ろ', 'って', 'った'),
}


def _godan_rules() -> Iterable[DeconjugationRule]:
    for cls, (u, a, i, e, o, te, ta) in GODAN_ENDINGS.items():
        yield from (
            DeconjugationRule(a + 'ない', u, frozenset({'adj-i'}), cls, 'negative'),
            DeconjugationRule(a + 'ず', u, ROOT_ONLY, cls, 'negative'),
            DeconjugationRule(ta, u, ROOT_ONLY, cls, 'past'),
            DeconjugationRule(te, u, frozenset({'te'}), cls, 'te-form'),
            DeconjugationRule(ta + 'ら', u, ROOT_ONLY, cls, 'conditional'),
            DeconjugationRule(ta + 'り', u, ROOT_ONLY, cls, 'tari'),
            DeconjugationRule(i + 'ます', u, frozenset({'masu'}), cls, 'polite'),
            DeconjugationRule(i + 'たい', u, frozenset({'adj-i'}), cls, 'desiderative'),
            DeconjugationRule(i, u, ROOT_ONLY, cls, 'continuative'),
            DeconjugationRule(e + 'る', u, frozenset({'v1'}), cls, 'potential'),
            DeconjugationRule(e + 'ば', u, ROOT_ONLY, cls, 'conditional'),
            DeconjugationRule(e, u, ROOT_ONLY, cls, 'imperative'),
            DeconjugationRule(a + 'れる', u, frozenset({'v1'}), cls, 'passive'),
            DeconjugationRule(a + 'せる', u, frozenset({'v1'}), cls, 'causative'),
            DeconjugationRule(o + 'う', u, ROOT_ONLY, cls, 'volitional'),
        )


ICHIDAN_RULES = (
    DeconjugationRule('ない', 'る', frozenset({'adj-i'}), 'v1', 'negative'),
    DeconjugationRule('ず', 'る', ROOT_ONLY, 'v1', 'negative'),
    DeconjugationRule('た', 'る', ROOT_ONLY, 'v1', 'past'),
    DeconjugationRule('て', 'る', frozenset({'te'}), 'v1', 'te-form'),
    DeconjugationRule('たら', 'る', ROOT_ONLY, 'v1', 'conditional'),
    DeconjugationRule('たり', 'る', ROOT_ONLY, 'v1', 'tari'),
    DeconjugationRule('ます', 'る', frozenset({'masu'}), 'v1', 'polite'),
    DeconjugationRule('たい', 'る', frozenset({'adj-i'}), 'v1', 'desiderative'),
    DeconjugationRule('', 'る', ROOT_ONLY, 'v1', 'continuative'),
    DeconjugationRule('られる', 'る', frozenset({'v1'}), 'v1', 'passive/potential'),
    DeconjugationRule('れる', 'る', frozenset({'v1'}), 'v1', 'potential'),
    DeconjugationRule('させる', 'る', frozenset({'v1'}), 'v1', 'causative'),
    DeconjugationRule('よう', 'る', ROOT_ONLY, 'v1', 'volitional'),
    DeconjugationRule('れば', 'る', ROOT_ONLY, 'v1', 'conditional'),
    DeconjugationRule('ろ', 'る', ROOT_ONLY, 'v1', 'imperative'),
    DeconjugationRule('くれ', 'くれる', ROOT_ONLY, 'v1', 'imperative'),
)

SURU_RULES = (
    DeconjugationRule('した', 'する', ROOT_ONLY, 'vs', 'past'),
    DeconjugationRule('して', 'する', frozenset({'te'}), 'vs', 'te-form'),
    DeconjugationRule('しない', 'する', frozenset({'adj-i'}), 'vs', 'negative'),
    DeconjugationRule('せず', 'する', ROOT_ONLY, 'vs', 'negative'),
    DeconjugationRule('します', 'する', frozenset({'masu'}), 'vs', 'polite'),
    DeconjugationRule('したい', 'する', frozenset({'adj-i'}), 'vs', 'desiderative'),
    DeconjugationRule('したら', 'する', ROOT_ONLY, 'vs', 'conditional'),
    DeconjugationRule('したり', 'する', ROOT_ONLY, 'vs', 'tari'),
    DeconjugationRule('しよう', 'する', ROOT_ONLY, 'vs', 'volitional'),
    DeconjugationRule('すれば', 'する', ROOT_ONLY, 'vs', 'conditional'),
    DeconjugationRule('しろ', 'する', ROOT_ONLY, 'vs', 'imperative'),
    DeconjugationRule('される', 'する', frozenset({'v1'}), 'vs', 'passive'),
    DeconjugationRule('させる', 'する', frozenset({'v1'}), 'vs', 'causative'),
    DeconjugationRule('できる', 'する', frozenset({'v1'}), 'vs', 'potential'),
    DeconjugationRule('し', 'する', ROOT_ONLY, 'vs', 'continuative'),
    # 勉強する -> 勉強 (noun taking する)
    DeconjugationRule('する', '', frozenset({'vs'}), 'vs-noun', 'suru'),
)

KURU_RULES = (
    DeconjugationRule('きた', 'くる', ROOT_ONLY, 'vk', 'past'),
    DeconjugationRule('きて', 'くる', frozenset({'te'}), 'vk', 'te-form'),
    DeconjugationRule('こない', 'くる', frozenset({'adj-i'}), 'vk', 'negative'),
    DeconjugationRule('きます', 'くる', frozenset({'masu'}), 'vk', 'polite'),
    DeconjugationRule('きたい', 'くる', frozenset({'adj-i'}), 'vk', 'desiderative'),
    DeconjugationRule('きたら', 'くる', ROOT_ONLY, 'vk', 'conditional'),
    DeconjugationRule('こよう', 'くる', ROOT_ONLY, 'vk', 'volitional'),
    DeconjugationRule('くれば', 'くる', ROOT_ONLY, 'vk', 'conditional'),
    DeconjugationRule('こい', 'くる', ROOT_ONLY, 'vk', 'imperative'),
    DeconjugationRule('こられる', 'くる', frozenset({'v1'}), 'vk', 'passive/potential'),
    DeconjugationRule('こさせる', 'くる', frozenset({'v1'}), 'vk', 'causative'),
)

ADJECTIVE_RULES = (
    DeconjugationRule('かった', 'い', ROOT_ONLY, 'adj-i', 'past'),
    DeconjugationRule('くない', 'い', frozenset({'adj-i'}), 'adj-i', 'negative'),
    DeconjugationRule('くて', 'い', frozenset({'te'}), 'adj-i', 'te-form'),
    DeconjugationRule('ければ', 'い', ROOT_ONLY, 'adj-i', 'conditional'),
    DeconjugationRule('かったら', 'い', ROOT_ONLY, 'adj-i', 'conditional'),
    DeconjugationRule('かったり', 'い', ROOT_ONLY, 'adj-i', 'tari'),
    DeconjugationRule('かろう', 'い', ROOT_ONLY, 'adj-i', 'volitional'),
    DeconjugationRule('く', 'い', ROOT_ONLY, 'adj-i', 'adverbial'),
    DeconjugationRule('さ', 'い', ROOT_ONLY, 'adj-i', 'nominalized'),
    DeconjugationRule('そう', 'い', ROOT_ONLY, 'adj-i', 'appearance'),
    DeconjugationRule('すぎる', 'い', frozenset({'v1'}), 'adj-i', 'excess'),
    DeconjugationRule('くなる', 'い', frozenset({'v5r'}), 'adj-i', 'becoming'),
    # いい conjugates from よい
    DeconjugationRule('よかった', 'いい', ROOT_ONLY, 'adj-i', 'past'),
    DeconjugationRule('よくない', 'いい', frozenset({'adj-i'}), 'adj-i', 'negative'),
    DeconjugationRule('よくて', 'いい', frozenset({'te'}), 'adj-i', 'te-form'),
    DeconjugationRule('よければ', 'いい', ROOT_ONLY, 'adj-i', 'conditional'),
    DeconjugationRule('よく', 'いい', ROOT_ONLY, 'adj-i', 'adverbial'),
)

POLITE_RULES = (
    DeconjugationRule('ました', 'ます', ROOT_ONLY, 'masu', 'past'),
    DeconjugationRule('ませんでした', 'ません', ROOT_ONLY, 'masen', 'past'),
    DeconjugationRule('ません', 'ます', frozenset({'masen'}), 'masu', 'negative'),
    DeconjugationRule('まして', 'ます', frozenset({'te'}), 'masu', 'te-form'),
    DeconjugationRule('ましょう', 'ます', ROOT_ONLY, 'masu', 'volitional'),
    DeconjugationRule('ませ', 'ます', ROOT_ONLY, 'masu', 'imperative'),
)

# Subsidiary verbs attached to a te-form: (ending after て, produced class, label)
TE_SUBSIDIARIES = (
    ('いる', 'v1', 'progressive'),
    ('る', 'v1', 'progressive'),
    ('ある', 'v5r', 'resultative'),
    ('おく', 'v5k', 'preparatory'),
    ('しまう', 'v5u', 'completive'),
    ('みる', 'v1', 'attemptive'),
    ('いく', 'v5k-s', 'directional'),
    ('く', 'v5k-s', 'directional'),
    ('くる', 'vk', 'directional'),
    ('あげる', 'v1', 'benefactive'),
    ('さしあげる', 'v1', 'benefactive'),
    ('やる', 'v5r', 'benefactive'),
    ('くれる', 'v1', 'benefactive'),
    ('くださる', 'v5aru', 'benefactive'),
    ('もらう', 'v5u', 'receptive'),
    ('いただく', 'v5k', 'receptive'),
)

# Contracted forms of te + subsidiary
CONTRACTED_RULES = (
    DeconjugationRule('ちゃう', 'て', frozenset({'v5u'}), 'te', 'completive'),
    DeconjugationRule('じゃう', 'で', frozenset({'v5u'}), 'te', 'completive'),
    DeconjugationRule('とく', 'て', frozenset({'v5k'}), 'te', 'preparatory'),
    DeconjugationRule('どく', 'で', frozenset({'v5k'}), 'te', 'preparatory'),
    DeconjugationRule('ください', 'くださる', ROOT_ONLY, 'v5aru', 'imperative'),
    DeconjugationRule('くださいます', 'くださる', frozenset({'masu'}), 'v5aru', 'polite'),
)


def _te_rules() -> Iterable[DeconjugationRule]:
    for te in ('て', 'で'):
        for ending, cls, label in TE_SUBSIDIARIES:
            yield DeconjugationRule(te + ending, te, frozenset({cls}), 'te', label)


RULES: Tuple[DeconjugationRule, ...] = (
    tuple(_godan_rules()) + ICHIDAN_RULES + SURU_RULES + KURU_RULES
    + ADJECTIVE_RULES + POLITE_RULES + CONTRACTED_RULES + tuple(_te_rules())
)

# Deconjugated class -> JMdict POS tags it can stand for
CLASS_TAGS: Dict[str, FrozenSet[str]] = {
    'v1': frozenset({'v1', 'v1-s', 'vk'}),
    'v5u': frozenset({'v5u', 'v5u-s'}),
    'v5k': frozenset({'v5k'}),
    'v5k-s': frozenset({'v5k-s'}),
    'v5g': frozenset({'v5g'}),
    'v5s': frozenset({'v5s'}),
    'v5t': frozenset({'v5t'}),
    'v5n': frozenset({'v5n'}),
    'v5b': frozenset({'v5b'}),
    'v5m': frozenset({'v5m'}),
    'v5r': frozenset({'v5r', 'v5r-i'}),
    'v5aru': frozenset({'v5aru'}),
    'vs': frozenset({'vs-i', 'vs-s', 'vs-c'}),
    'vs-noun': frozenset({'vs'}),
    'vk': frozenset({'vk'}),
    'adj-i': frozenset({'adj-i', 'adj-ix'}),
}


# ============================================================================
# Deconjugation
# ============================================================================

def _applies(rule: DeconjugationRule, form: Deconjugation) -> bool:
    if not form.text.endswith(rule.con_end):
        return False
    if len(form.text) - len(rule.con_end) + len(rule.dict_end) == 0:
        return False
    if not form.tags:
        return True
    return form.word_class in rule.rules_in


def deconjugate(text: str, max_depth: int = MAX_DEPTH) -> List[Deconjugation]:
    """
    All citation-form hypotheses for text, shortest derivations first.

    The unconjugated text itself is not included.

    Example:
        >>> "たべる" in [d.text for d in deconjugate("たべなかった")]
        True
    """
    results: List[Deconjugation] = []
    seen = {(text, '')}
    queue = deque([Deconjugation(text)])
    while queue:
        form = queue.popleft()
        if form.depth >= max_depth:
            continue
        for rule in RULES:
            if not _applies(rule, form):
                continue
            stem = form.text[:len(form.text) - len(rule.con_end)]
            new = Deconjugation(
                text=stem + rule.dict_end,
                tags=form.tags + (rule.rule_out,),
                process=form.process + (rule.label,),
            )
            if (new.text, new.word_class) in seen:
                continue
            seen.add((new.text, new.word_class))
            results.append(new)
            queue.append(new)
    return results


def matches_pos(deconjugation: Deconjugation, pos_tags: Iterable[str]) -> bool:
    """True if an entry with these JMdict tags can be the citation form."""
    allowed = CLASS_TAGS.get(deconjugation.word_class)
    if not allowed:
        return False
    return not allowed.isdisjoint(pos_tags)


def citation_forms(text: str) -> List[Deconjugation]:
    """Deconjugations ending in a dictionary word class, shortest first."""
    return [d for d in deconjugate(text) if d.word_class in CLASS_TAGS]
