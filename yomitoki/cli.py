"""
CLI interface for yomitoki.

Usage:
    yomitoki "ご注文はうさぎですか"
    yomitoki -d "食べていた"
    yomitoki --json "表へ出る"
    yomitoki --diagnose "いえない"
    yomitoki --file chapter1.txt --stats --media-type novel
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from yomitoki import __version__, parse_text, parse_text_diagnostic, parse_texts
from yomitoki.config import MediaType, ParserConfig
from yomitoki.dictionary import load_lexicon
from yomitoki.exceptions import YomitokiError
from yomitoki.stats import document_stats
from yomitoki.tokens import FinalWordToken


# ============================================================================
# Output Formatting
# ============================================================================

def format_default(tokens: List[FinalWordToken]) -> str:
    """Just the segmentation: surface1 | surface2 | surface3"""
    return " | ".join(t.surface for t in tokens)


def format_detailed(tokens: List[FinalWordToken]) -> str:
    """One line per token with its lexicon identity and conjugations."""
    lines = [format_default(tokens), "─" * 40]
    for t in tokens:
        if t.is_oov:
            lines.append(f"{t.surface} ({t.pos.value}) [oov]")
            continue
        parts = [t.surface]
        if t.reading and t.reading != t.surface:
            parts[0] = f"{t.surface}【{t.reading}】"
        parts.append(f"({t.pos.value})")
        if t.dictionary_form and t.dictionary_form != t.surface:
            parts.append(f"← {t.dictionary_form}")
        parts.append(f"[{t.word_id}/{t.reading_index}]")
        lines.append(" ".join(parts))
        if t.conjugations:
            lines.append("  └─ " + " → ".join(t.conjugations))
    return "\n".join(lines)


def token_to_dict(t: FinalWordToken) -> dict:
    return {
        "surface": t.surface,
        "start": t.start,
        "end": t.end,
        "word_id": t.word_id,
        "reading_index": t.reading_index,
        "conjugations": list(t.conjugations),
        "pos": t.pos.value,
        "dictionary_form": t.dictionary_form,
        "reading": t.reading,
    }


def format_json(tokens: List[FinalWordToken]) -> str:
    return json.dumps([token_to_dict(t) for t in tokens], ensure_ascii=False, indent=2)


# ============================================================================
# Main
# ============================================================================

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yomitoki",
        description="Japanese text to dictionary-linked tokens",
    )
    parser.add_argument(
        "text",
        nargs="?",
        help="Japanese text to parse (read from stdin if omitted)",
    )
    parser.add_argument(
        "--file", "-f",
        type=Path,
        help="Parse every line of a UTF-8 text file in one batch",
    )
    parser.add_argument(
        "--detail", "-d",
        action="store_true",
        help="Show word IDs, readings and conjugations",
    )
    parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "--diagnose",
        action="store_true",
        help="Print the full stage trace and candidate scores as JSON",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print document statistics after the tokens",
    )
    parser.add_argument(
        "--media-type", "-m",
        choices=[m.value for m in MediaType],
        default=MediaType.NOVEL.value,
        help="Kind of work the text comes from (affects --stats only)",
    )
    parser.add_argument(
        "--lexicon", "-l",
        type=Path,
        help="Lexicon directory (default: $YOMITOKI_LEXICON or the bundled data/)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline decisions",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"yomitoki {__version__}",
    )
    return parser


def main(argv=None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    if args.file is not None:
        texts = [line for line in args.file.read_text(encoding='utf-8').splitlines() if line.strip()]
    elif args.text is None:
        # Read from stdin
        texts = [sys.stdin.read().strip()]
    else:
        texts = [args.text]

    if not any(t.strip() for t in texts):
        parser.print_help()
        sys.exit(1)

    config = ParserConfig(media_type=MediaType(args.media_type), diagnostics=args.diagnose)

    try:
        if args.lexicon is not None:
            load_lexicon(args.lexicon)

        if args.diagnose:
            for text in texts:
                print(parse_text_diagnostic(text, config).to_json())
            return

        results = parse_texts(texts, config) if len(texts) > 1 else [parse_text(texts[0], config)]

        for tokens in results:
            if args.json:
                print(format_json(tokens))
            elif args.detail:
                print(format_detailed(tokens))
            else:
                print(format_default(tokens))

        if args.stats:
            stats = document_stats((t for tokens in results for t in tokens), config.media_type)
            if args.json:
                print(json.dumps(stats.to_dict(), ensure_ascii=False, indent=2))
            else:
                for name, value in stats.to_dict().items():
                    print(f"{name}: {value}")

    except YomitokiError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
