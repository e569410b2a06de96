"""
Text normalization for yomitoki.

normalize() is a deterministic string rewrite applied before the external
analyzer sees the text. It never consults the lexicon.

boundary_hints() computes forced segmentation points for the adapter:
places where the analyzer is known to glue two words together. Hints do
not alter the normalized text.
"""

import re
from typing import List, Tuple

import jaconv


# ============================================================================
# Rewrite Tables
# ============================================================================

_HALF_WIDTH_ALNUM = re.compile(r'[A-Za-z0-9]+')
# Lowercase run with no Latin letters, digits or URL punctuation attached
_FULL_WIDTH_LOWER = re.compile(
    r'(?<![Ａ-Ｚａ-ｚ０-９/.@:_\-])[ａ-ｚ]+(?![Ａ-Ｚａ-ｚ０-９]|[/.@:_\-][Ａ-Ｚａ-ｚ０-９])')
_ROMAJI_WORD = re.compile(
    r"(?:[kgsztdnhbpmr]y?[aiueo]"
    r"|(?:sh|ch|ts|j|f|v)[aiueo]"
    r"|y[auo]|w[aoe]|[aiueo]"
    r"|n(?![aiueoy])"
    r"|([kgsztdhbpmrfjcv])(?=\1)"
    r"|t(?=ch))+"
)
_LONG_VOWEL_RUN = re.compile(r'ー{2,}')

# Colloquial sound changes expanded to their standard spelling
CONTRACTION_REWRITES: Tuple[Tuple[str, str], ...] = (
    ('とんでもねえ', 'とんでもない'),
    ('しょうがねえ', 'しょうがない'),
    ('ぶっち切', 'ぶち切'),
)

# (pattern, group whose start is a forced boundary)
BOUNDARY_HINT_PATTERNS: Tuple[Tuple[re.Pattern, int], ...] = (
    (re.compile(r'垣間(見)'), 1),
    (re.compile(r'(?<!を)は(やめ)'), 1),
    (re.compile(r'も(やる)'), 1),
    (re.compile(r'べ(や)'), 1),
    (re.compile(r'は(いい)'), 1),
    (re.compile(r'元(国王)'), 1),
    (re.compile(r'なん(だろう)'), 1),
    (re.compile(r'一人(静かに)'), 1),
    (re.compile(r'いや(あんま)'), 1),
    (re.compile(r'この(手紙)'), 1),
    (re.compile(r'少女(の手)'), 1),
    (re.compile(r'(?:外|家)(出)(?:ない|なかった|なく)'), 1),
    (re.compile(r'水(魔法)'), 1),
    (re.compile(r'不(適応)'), 1),
    (re.compile(r'ホント(バカ|ダメ|マジ|クソ|アホ)'), 1),
    # emphatic sokuon after hiragana at a clause boundary
    (re.compile(r'(?<=.[ぁ-ゟ])([っッ])(?=[！!？?。、,\s]|$)'), 1),
)


# ============================================================================
# Normalization Steps
# ============================================================================

def to_full_width(text: str) -> str:
    """Half-width Latin letters and digits to full-width."""
    return _HALF_WIDTH_ALNUM.sub(
        lambda m: jaconv.h2z(m.group(0), kana=False, ascii=True, digit=True), text)


def romaji_to_hiragana(text: str) -> str:
    """
    Convert lowercase romaji words to hiragana.

    A run is converted only when it stands alone (no neighbouring Latin
    letters) and splits fully into romaji syllables, so English words,
    URLs and brand names are left alone.

    Example:
        >>> romaji_to_hiragana("ｓｕｇｏｉ ｈｔｔｐ")
        'すごい ｈｔｔｐ'
    """
    def convert(match: re.Match) -> str:
        run = match.group(0)
        ascii_run = jaconv.z2h(run, kana=False, ascii=True, digit=False)
        if not _ROMAJI_WORD.fullmatch(ascii_run):
            return run
        return jaconv.alphabet2kana(ascii_run)

    return _FULL_WIDTH_LOWER.sub(convert, text)


def collapse_long_vowels(text: str) -> str:
    return _LONG_VOWEL_RUN.sub('ー', text)


def expand_contractions(text: str) -> str:
    for colloquial, standard in CONTRACTION_REWRITES:
        text = text.replace(colloquial, standard)
    return text


NORMALIZATION_STEPS = (
    to_full_width,
    romaji_to_hiragana,
    collapse_long_vowels,
    expand_contractions,
)


def normalize(text: str) -> str:
    """
    Normalize text before analysis.

    Applies, in order: full-width Latin and digits, romaji to hiragana,
    long-vowel run collapsing and the contraction rewrite table.

    Example:
        >>> normalize("ｽｺﾞｲ 123 sugoi すごーーい")
        'ｽｺﾞｲ １２３ すごい すごーい'
    """
    for step in NORMALIZATION_STEPS:
        text = step(text)
    return text


def boundary_hints(text: str) -> List[int]:
    """
    Offsets in text where the analyzer must start a new segment.

    Returns a sorted list of unique offsets strictly inside the text.
    """
    hints = set()
    for pattern, group in BOUNDARY_HINT_PATTERNS:
        for match in pattern.finditer(text):
            offset = match.start(group)
            if 0 < offset < len(text):
                hints.add(offset)
    return sorted(hints)
