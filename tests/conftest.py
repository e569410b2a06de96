"""
Pytest configuration and fixtures for yomitoki tests.

The pipeline is exercised against a small in-memory lexicon and a
scripted analyzer, so no Sudachi dictionary or built lexicon is needed.
"""

import pytest

from yomitoki.adapter import make_token
from yomitoki.characters import as_katakana, is_kana, is_punctuation
from yomitoki.dictionary import MemoryLexicon, make_entry
from yomitoki.tokens import RawSegment


# =============================================================================
# Lexicon
# =============================================================================

def fixture_entries():
    """JMdict entries the regression cases depend on (real sequence IDs)."""
    return [
        make_entry(1129240, kana=[("ママ", ("gai1",))], pos=["n"]),
        make_entry(1585410, kanji=["儘", "侭"],
                   kana=[("まま", ("ichi1", "news1")), "ママ"], pos=["n"]),
        make_entry(1576870, kanji=[("俺", ("ichi1",)), "己"],
                   kana=[("おれ", ("ichi1",)), "オレ"], pos=["pn"]),
        make_entry(2768550, kana=["オレ"], pos=["int"]),
        make_entry(1102140, kana=[("パパ", ("gai1",))], pos=["n"]),
        make_entry(1008860, kanji=["言える", "云える"], kana=["いえる"], pos=["v1", "vi"]),
        make_entry(1538740, kanji=["癒える"], kana=["いえる"], pos=["v1", "vi"]),
        make_entry(1489340, kanji=[("表", ("ichi1",))], kana=[("おもて", ("ichi1",))], pos=["n"]),
        make_entry(1489350, kanji=[("表", ("ichi1", "news1"))],
                   kana=[("ひょう", ("ichi1", "news1"))], pos=["n", "n-suf"]),
        make_entry(2029000, kana=[("へ", ("spec1",))], pos=["prt"]),
        make_entry(1595910, kanji=[("出る", ("ichi1",))], kana=[("でる", ("ichi1",))], pos=["v1", "vi"]),
        make_entry(1128190, kana=[("メニュー", ("gai1",))], pos=["n"]),
        make_entry(2029010, kana=[("を", ("spec1",))], pos=["prt"]),
        make_entry(1259290, kanji=[("見る", ("ichi1",))], kana=[("みる", ("ichi1",))], pos=["v1", "vt"]),
        make_entry(1270190, kanji=["ご注文", "御注文"], kana=["ごちゅうもん"], pos=["n"]),
        make_entry(2028920, kana=[("は", ("spec1",))], pos=["prt"]),
        make_entry(1011420, kanji=["兎"], kana=["うさぎ"], pos=["n"]),
        make_entry(2136490, kana=["ですか"], pos=["exp"]),
        make_entry(1628500, kana=[("です", ("spec1",))], pos=["cop"]),
        make_entry(2028970, kana=[("か", ("spec1",))], pos=["prt"]),
        make_entry(1576260, kanji=["一日"], kana=["いちにち"], pos=["n"]),
        make_entry(2225040, kanji=["一日"], kana=["ついたち"], pos=["n"]),
        make_entry(1157170, kana=[("する", ("spec1",))], pos=["vs-i"]),
        make_entry(1606560, kanji=[("分かる", ("ichi1",)), "解る"],
                   kana=[("わかる", ("ichi1",))], pos=["v5r", "vi"]),
        make_entry(1578850, kanji=[("行く", ("ichi1",)), "逝く"],
                   kana=[("いく", ("ichi1",)), "ゆく"], pos=["v5k-s", "vi"]),
        make_entry(1358280, kanji=[("食べる", ("ichi1",))], kana=[("たべる", ("ichi1",))], pos=["v1", "vt"]),
        make_entry(1310730, kanji=[("死ぬ", ("ichi1",))], kana=[("しぬ", ("ichi1",))], pos=["v5n", "vi"]),
        make_entry(1169870, kanji=[("飲む", ("ichi1",))], kana=[("のむ", ("ichi1",))], pos=["v5m", "vt"]),
    ]


@pytest.fixture
def lexicon():
    """In-memory lexicon with the regression entries."""
    return MemoryLexicon(fixture_entries())


# =============================================================================
# Analyzer
# =============================================================================

def _segment(surface, tag='名詞', detail=('普通名詞', '一般'), dictionary_form=None, reading=None):
    if reading is None:
        reading = as_katakana(surface) if is_kana(surface) else ''
    return RawSegment(surface, tag, tuple(detail), dictionary_form or surface, reading)


# How the analyzer segments the regression sentences
ANALYZER_WORDS = [
    _segment('ママ', reading='ママ'),
    _segment('パパ', reading='パパ'),
    _segment('オレ', reading='オレ'),
    _segment('表', reading='ヒョウ'),
    _segment('へ', '助詞', ('格助詞',)),
    _segment('出る', '動詞', ('一般',), reading='デル'),
    _segment('メニュー', reading='メニュー'),
    _segment('を', '助詞', ('格助詞',)),
    _segment('見る', '動詞', ('非自立可能',), reading='ミル'),
    _segment('いえ', '動詞', ('一般',), 'いえる'),
    _segment('ない', '助動詞', ()),
    _segment('ご', '接頭辞', ()),
    _segment('注文', detail=('普通名詞', 'サ変可能'), reading='チュウモン'),
    _segment('は', '助詞', ('係助詞',)),
    _segment('うさぎ'),
    _segment('です', '助動詞', ()),
    _segment('か', '助詞', ('終助詞',)),
    _segment('七月', reading='シチガツ'),
    _segment('一日', detail=('普通名詞', '副詞可能'), reading='ツイタチ'),
    _segment('この', '連体詞', ()),
    _segment('手紙', reading='テガミ'),
    _segment('食べ', '動詞', ('一般',), '食べる', 'タベ'),
    _segment('て', '助詞', ('接続助詞',)),
    _segment('い', '動詞', ('非自立可能',), 'いる'),
    _segment('た', '助動詞', ()),
]


class ScriptedAnalyzer:
    """
    Greedy longest-match analyzer over a fixed word table.

    Characters outside the table become one-character segments: symbols
    for punctuation and the stop character, blanks for whitespace and
    nouns otherwise. Every input is recorded in calls.
    """

    def __init__(self, words=ANALYZER_WORDS):
        self.words = {w.surface: w for w in words}
        self.longest = max(len(s) for s in self.words)
        self.calls = []

    def analyze(self, text):
        self.calls.append(text)
        segments = []
        i = 0
        while i < len(text):
            for size in range(min(self.longest, len(text) - i), 0, -1):
                segment = self.words.get(text[i:i + size])
                if segment is not None:
                    break
            else:
                segment = self._unknown(text[i])
                size = 1
            segments.append(segment)
            i += size
        return segments

    @staticmethod
    def _unknown(char):
        if char.isspace():
            return RawSegment(char, '空白', (), char, '')
        if is_punctuation(char):
            return RawSegment(char, '補助記号', (), char, '')
        return _segment(char)


class WhitespaceRunAnalyzer(ScriptedAnalyzer):
    """ScriptedAnalyzer that reports each whitespace run as one segment, as Sudachi does."""

    def analyze(self, text):
        segments = []
        for segment in super().analyze(text):
            if segments and segment.surface.isspace() and segments[-1].surface.isspace():
                surface = segments[-1].surface + segment.surface
                segments[-1] = segments[-1]._replace(surface=surface, dictionary_form=surface)
            else:
                segments.append(segment)
        return segments


@pytest.fixture
def analyzer():
    """A fresh ScriptedAnalyzer."""
    return ScriptedAnalyzer()


@pytest.fixture
def parser(lexicon, analyzer):
    """Parser over the fixture lexicon and the scripted analyzer."""
    from yomitoki.parser import Parser
    return Parser(lexicon, analyzer)


@pytest.fixture
def installed(lexicon, analyzer):
    """
    Install the fixture lexicon and analyzer as the shared instances used
    by the module-level API, and remove them afterwards.
    """
    import yomitoki
    from yomitoki.dictionary import set_lexicon

    set_lexicon(lexicon)
    yomitoki.set_analyzer(analyzer)
    yield analyzer
    yomitoki.shutdown()
    yomitoki.set_analyzer(None)
    set_lexicon(None)


# =============================================================================
# Token Builders
# =============================================================================

@pytest.fixture
def make_tokens():
    """
    Build adjacent Tokens from segment tuples.

    Each tuple is (surface, tag, detail, dictionary_form, reading); every
    element after the surface is optional.

    Example:
        make_tokens(('食べ', '動詞', ('一般',), '食べる'), ('た', '助動詞', ()))
    """
    def build(*rows):
        tokens = []
        offset = 0
        for row in rows:
            segment = _segment(*row)
            end = offset + len(segment.surface)
            tokens.append(make_token(segment, offset, end, segment.surface))
            offset = end
        return tokens

    return build


@pytest.fixture
def whitespace_analyzer():
    """A WhitespaceRunAnalyzer."""
    return WhitespaceRunAnalyzer()
