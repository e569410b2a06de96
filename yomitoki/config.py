"""
Configuration for yomitoki.

All behaviour switches are consumed at call time through ParserConfig.
The scoring magnitudes live in ScoringWeights; only their relative order
matters for correctness, the defaults below are tuned against the
regression cases in tests/.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

LEXICON_ENV_VAR = "YOMITOKI_LEXICON"


class MediaType(str, Enum):
    """Kind of work a text comes from. Only affects document statistics."""
    NOVEL = "novel"
    WEB_NOVEL = "web_novel"
    NON_FICTION = "non_fiction"
    VISUAL_NOVEL = "visual_novel"
    VIDEO_GAME = "video_game"
    MANGA = "manga"
    ANIME = "anime"
    MOVIE = "movie"
    DRAMA = "drama"

    @property
    def reports_sentences(self) -> bool:
        """Subtitles and speech bubbles have no meaningful sentence count."""
        return self not in (MediaType.MANGA, MediaType.ANIME, MediaType.MOVIE, MediaType.DRAMA)


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """
    Magnitudes for the seven additive scoring features.

    Priority tags are converted to points by scoring.priority_points and then
    multiplied by the *_scale values.
    """
    # entry / form priority
    entry_priority_scale: int = 1
    form_priority_scale: int = 1

    # form flags
    obsolete_penalty: int = -60
    search_only_penalty: int = -80
    rare_form_penalty: int = -20
    irregular_form_penalty: int = -30
    no_kanji_penalty: int = -20

    # surface match
    exact_surface: int = 40
    dictionary_form_surface: int = 40
    folded_surface: int = 20
    fallback_surface: int = 5

    # script class
    kana_form_for_kana: int = 10
    katakana_form_for_katakana: int = 10
    kanji_form_for_kanji: int = 10
    pure_kana_entry: int = 15
    secondary_katakana_form: int = -15
    cross_script: int = -10

    # reading match
    full_reading: int = 60
    stem_reading: int = 30
    reading_prefix_char: int = 5
    reading_prefix_cap: int = 20

    # word level
    pos_match: int = 25
    pos_mismatch: int = -40
    deconjugation_step: int = -5


@dataclass(frozen=True, slots=True)
class ParserConfig:
    """
    Call-time configuration.

    Attributes:
        media_type: Kind of source text (document statistics only)
        diagnostics: Collect the per-stage trace and candidate scores
        weights: Scoring magnitudes
        max_repair_iterations: Fixed-point cap for the repair passes
        max_workers: Threads used for the per-text stages of a batch
    """
    media_type: MediaType = MediaType.NOVEL
    diagnostics: bool = False
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    max_repair_iterations: int = 4
    max_workers: int = 1

    def __post_init__(self):
        if self.max_repair_iterations < 1:
            raise ValueError("max_repair_iterations must be >= 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")


DEFAULT_CONFIG = ParserConfig()


def get_lexicon_dir(path: Optional[Path] = None) -> Path:
    """
    Resolve the directory holding the lexicon files.

    An explicit path wins, then the YOMITOKI_LEXICON environment variable,
    then the data/ directory shipped next to the package.
    """
    if path is not None:
        return Path(path)
    env = os.environ.get(LEXICON_ENV_VAR)
    if env:
        return Path(env)
    return Path(__file__).parent / "data"
