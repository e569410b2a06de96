"""
Character and script helpers for yomitoki.

Kana conversion is delegated to jaconv; this module adds the script
classification and long-vowel handling the pipeline needs.
"""

from typing import Optional

import jaconv

# ============================================================================
# Character Classes
# ============================================================================

LONG_VOWEL_MARK = 'ー'
SOKUON = frozenset('っッ')
ITERATION_MARKS = frozenset('々ゝゞヽヾ')

# Punctuation that always ends a clause
CLAUSE_ENDINGS = frozenset('。！？!?、,，．…‥\n')

# Everything the analyzer tags as a symbol or blank
PUNCTUATION = frozenset(
    '。、，．・：；？！!?,.…‥ー―─～〜「」『』（）()［］[]【】〈〉《》〔〕｛｝{}“”‘’"\'　 \n\t|｜'
)

# Vowel rows used to expand ー after a kana
_VOWEL_ROWS = {
    'あ': 'あかさたなはまやらわがざだばぱぁゃゎ',
    'い': 'いきしちにひみりぎじぢびぴぃ',
    'う': 'うくすつぬふむゆるぐずづぶぷぅゅゔ',
    'え': 'えけせてねへめれげぜでべぺぇ',
    'お': 'おこそとのほもよろをごぞどぼぽぉょ',
}
_VOWEL_OF = {kana: vowel for vowel, row in _VOWEL_ROWS.items() for kana in row}
# ー after an o-row kana is pronounced as う (こーひー -> こうひい)
_LONG_VOWEL_FOR = {'あ': 'あ', 'い': 'い', 'う': 'う', 'え': 'え', 'お': 'う'}


def is_hiragana_char(char: str) -> bool:
    return 0x3041 <= ord(char) <= 0x309F


def is_katakana_char(char: str) -> bool:
    code = ord(char)
    return 0x30A0 <= code <= 0x30FF or 0x31F0 <= code <= 0x31FF


def is_kana_char(char: str) -> bool:
    return is_hiragana_char(char) or is_katakana_char(char)


def is_kanji_char(char: str) -> bool:
    code = ord(char)
    return (0x4E00 <= code <= 0x9FFF or 0x3400 <= code <= 0x4DBF
            or 0xF900 <= code <= 0xFAFF or char in ITERATION_MARKS)


def is_hiragana(text: str) -> bool:
    """True if text is non-empty and only hiragana (ー allowed)."""
    return bool(text) and all(is_hiragana_char(c) or c == LONG_VOWEL_MARK for c in text)


def is_katakana(text: str) -> bool:
    """True if text is non-empty and only katakana."""
    return bool(text) and all(is_katakana_char(c) for c in text)


def is_kana(text: str) -> bool:
    """True if text is non-empty and only kana."""
    return bool(text) and all(is_kana_char(c) for c in text)


def has_kanji(text: str) -> bool:
    return any(is_kanji_char(c) for c in text)


def is_punctuation(text: str) -> bool:
    """True for tokens made only of punctuation and whitespace."""
    return bool(text) and all(c in PUNCTUATION or c.isspace() for c in text)


def is_clause_boundary(text: Optional[str]) -> bool:
    """True when text is missing (end of input) or starts with a clause ending."""
    return text is None or text == '' or text[0] in CLAUSE_ENDINGS or text[0].isspace()


def script_class(text: str) -> str:
    """
    Classify text by script.

    Returns one of 'kanji' (contains any kanji), 'katakana', 'hiragana',
    'kana' (mixed hiragana/katakana) or 'other'.
    """
    if has_kanji(text):
        return 'kanji'
    if is_katakana(text):
        return 'katakana'
    if is_hiragana(text):
        return 'hiragana'
    if is_kana(text):
        return 'kana'
    return 'other'


# ============================================================================
# Conversion
# ============================================================================

def as_hiragana(text: str) -> str:
    """Convert katakana to hiragana, leaving everything else untouched."""
    return jaconv.kata2hira(text)


def as_katakana(text: str) -> str:
    return jaconv.hira2kata(text)


def normalize_long_vowels(text: str) -> str:
    """
    Replace ー after a kana with the vowel it lengthens.

    The text is folded to hiragana first, so ラーメン and らあめん share
    a lookup key. A ー that follows anything other than a kana is kept.
    """
    hira = as_hiragana(text)
    if LONG_VOWEL_MARK not in hira:
        return hira
    out = []
    for i, char in enumerate(hira):
        if char == LONG_VOWEL_MARK and i > 0:
            vowel = _VOWEL_OF.get(out[-1])
            if vowel is not None:
                out.append(_LONG_VOWEL_FOR[vowel])
                continue
        out.append(char)
    return ''.join(out)


def strip_long_vowels(text: str) -> str:
    return as_hiragana(text).replace(LONG_VOWEL_MARK, '')


def vowel_of(kana: str) -> Optional[str]:
    """Vowel row (あいうえお) of a hiragana character, or None."""
    return _VOWEL_OF.get(as_hiragana(kana))


def common_prefix_length(a: str, b: str) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return n
