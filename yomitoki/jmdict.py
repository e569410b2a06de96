"""
JMdict XML reader for yomitoki.

Streams <entry> elements with lxml's iterparse and turns each into a
LexiconEntry: kanji forms first (k_ele), then kana forms (r_ele), with
their priority and info tags, plus the part-of-speech tags of all senses.

JMdict writes tags as DTD entities (&n;, &v1;, &ok;). lxml expands them to
their descriptions, so the DTD is scanned first to map descriptions back
to the short names.
"""

import io
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Union

from lxml import etree

from yomitoki.dictionary import FORM_KANA, FORM_KANJI, LexiconEntry, WordForm

logger = logging.getLogger(__name__)

_ENTITY_PATTERN = re.compile(rb'<!ENTITY\s+([\w-]+)\s+"([^"]*)"\s*>')
_XML_ENTITIES = frozenset({'lt', 'gt', 'amp', 'apos', 'quot'})

Source = Union[str, Path, bytes]


# ============================================================================
# Entity Parsing
# ============================================================================

def parse_entity_definitions(header: bytes) -> Dict[str, str]:
    """
    Map entity descriptions back to entity names from a JMdict DTD.

    Example:
        >>> parse_entity_definitions(b'<!ENTITY v1 "Ichidan verb">')
        {'Ichidan verb': 'v1'}
    """
    replacements = {}
    for match in _ENTITY_PATTERN.finditer(header):
        name = match.group(1).decode('utf-8')
        value = match.group(2).decode('utf-8')
        if name not in _XML_ENTITIES:
            replacements[value] = name
    return replacements


def fix_entity_value(text: str, entities: Dict[str, str]) -> str:
    """Convert expanded entity value to short name."""
    return entities.get(text, text)


def _read_header(source: Source) -> bytes:
    if isinstance(source, bytes):
        end = source.find(b']>')
        return source if end < 0 else source[:end + 2]
    content = b''
    with open(source, 'rb') as f:
        for line in f:
            content += line
            if b']>' in line or b'<entry>' in line:
                break
    return content


# ============================================================================
# Entry Parsing
# ============================================================================

def node_text(elem) -> str:
    """Get all text from element."""
    return ''.join(elem.itertext())


def _texts(elem, tag: str, entities: Dict[str, str]) -> tuple:
    return tuple(fix_entity_value(node_text(e), entities) for e in elem.findall(tag))


def parse_entry(elem, entities: Dict[str, str]) -> LexiconEntry:
    """Build a LexiconEntry from one <entry> element."""
    word_id = int(node_text(elem.find('ent_seq')))
    kana_elements = elem.findall('r_ele')

    forms: List[WordForm] = []
    for k_ele in elem.findall('k_ele'):
        text = node_text(k_ele.find('keb'))
        ruby = text
        for r_ele in kana_elements:
            restrictions = [node_text(r) for r in r_ele.findall('re_restr')]
            if r_ele.find('re_nokanji') is None and (not restrictions or text in restrictions):
                ruby = node_text(r_ele.find('reb'))
                break
        forms.append(WordForm(
            word_id=word_id,
            reading_index=len(forms),
            text=text,
            ruby_text=ruby,
            form_type=FORM_KANJI,
            priorities=_texts(k_ele, 'ke_pri', entities),
            info_tags=_texts(k_ele, 'ke_inf', entities),
        ))

    for r_ele in kana_elements:
        text = node_text(r_ele.find('reb'))
        forms.append(WordForm(
            word_id=word_id,
            reading_index=len(forms),
            text=text,
            ruby_text=text,
            form_type=FORM_KANA,
            priorities=_texts(r_ele, 're_pri', entities),
            info_tags=_texts(r_ele, 're_inf', entities),
            is_no_kanji=r_ele.find('re_nokanji') is not None,
        ))

    pos_tags: List[str] = []
    for sense in elem.findall('sense'):
        for tag in _texts(sense, 'pos', entities):
            if tag not in pos_tags:
                pos_tags.append(tag)

    return LexiconEntry(word_id=word_id, forms=tuple(forms), pos_tags=tuple(pos_tags))


def parse_jmdict(source: Source) -> Iterator[LexiconEntry]:
    """
    Stream the entries of a JMdict XML file.

    Args:
        source: Path to JMdict_e.xml, or the XML document itself as bytes

    Yields:
        LexiconEntry for every entry with at least one form
    """
    entities = parse_entity_definitions(_read_header(source))
    stream = io.BytesIO(source) if isinstance(source, bytes) else str(source)

    context = etree.iterparse(
        stream,
        events=('end',),
        tag='entry',
        recover=True,
        load_dtd=True,
        no_network=True,
    )

    count = 0
    for _, elem in context:
        if elem.find('ent_seq') is not None:
            entry = parse_entry(elem, entities)
            if entry.forms:
                count += 1
                if count % 10000 == 0:
                    logger.info(f"  Parsed {count} entries...")
                yield entry

        elem.clear()
        while elem.getprevious() is not None:
            del elem.getparent()[0]

    logger.info(f"Parsed {count} JMdict entries")
