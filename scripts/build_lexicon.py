#!/usr/bin/env python3
"""
Lexicon Builder for yomitoki.

This script builds the binary lexicon from JMdict XML: a
marisa_trie.RecordTrie of lookup keys and a marisa_trie.BytesTrie of
entries, both memory-mapped at load time.

Usage:
    python scripts/build_lexicon.py [--jmdict PATH] [--output DIR]
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from yomitoki.config import get_lexicon_dir
from yomitoki.dictionary import ENTRIES_FILENAME, INDEX_FILENAME, save_lexicon
from yomitoki.jmdict import parse_jmdict

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# ============================================================================
# Paths
# ============================================================================

DEFAULT_JMDICT = Path(__file__).parent.parent / "data" / "JMdict_e.xml"
DEFAULT_OUTPUT = get_lexicon_dir()


# ============================================================================
# Main
# ============================================================================

def main():
    parser = argparse.ArgumentParser(
        description="Build the yomitoki lexicon from JMdict XML"
    )
    parser.add_argument(
        '--jmdict', '-j',
        type=Path,
        default=DEFAULT_JMDICT,
        help=f"Path to JMdict XML file (default: {DEFAULT_JMDICT})"
    )
    parser.add_argument(
        '--output', '-o',
        type=Path,
        default=DEFAULT_OUTPUT,
        help=f"Output directory (default: {DEFAULT_OUTPUT})"
    )

    args = parser.parse_args()

    if not args.jmdict.exists():
        logger.error(f"JMdict file not found: {args.jmdict}")
        sys.exit(1)

    start_time = time.time()

    logger.info(f"Parsing {args.jmdict}...")
    count = save_lexicon(parse_jmdict(args.jmdict), args.output)

    for name in (INDEX_FILENAME, ENTRIES_FILENAME):
        path = args.output / name
        file_size = path.stat().st_size / (1024 * 1024)
        logger.info(f"  {path} ({file_size:.1f} MB)")

    elapsed = time.time() - start_time
    logger.info(f"Built {count} entries in {elapsed:.1f} seconds")


if __name__ == '__main__':
    main()
