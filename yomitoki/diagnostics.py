"""
Diagnostics for yomitoki.

A diagnostic parse records what every stage did: the raw analyzer output,
one StageTrace per repair pass and iteration, and for every final token
the full ranked candidate list with per-feature scores. Production parses
never build any of this.

compare_segmentation() is the helper regression tooling uses to explain a
failed case.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from yomitoki.candidates import FormCandidate
from yomitoki.tokens import FinalWordToken, RawSegment


class TokenModification(NamedTuple):
    """One token produced by a repair pass."""
    kind: str
    reason: str
    inputs: tuple
    output: str
    start: int
    end: int


@dataclass(slots=True)
class StageTrace:
    """
    What one repair pass did in one fixed-point iteration.

    Attributes:
        stage: Pass name
        iteration: 1-based fixed-point iteration
        input_count: Tokens received
        output_count: Tokens returned
        elapsed_ms: Wall time of the pass
        modifications: Tokens the pass created
    """
    stage: str
    iteration: int
    input_count: int
    output_count: int
    elapsed_ms: float = 0.0
    modifications: List[TokenModification] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.modifications)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stage': self.stage,
            'iteration': self.iteration,
            'input_count': self.input_count,
            'output_count': self.output_count,
            'elapsed_ms': round(self.elapsed_ms, 3),
            'modifications': [m._asdict() for m in self.modifications],
        }


@dataclass(slots=True)
class AnalyzerTrace:
    """The external analyzer's raw output for the text."""
    segments: List[RawSegment] = field(default_factory=list)
    elapsed_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'elapsed_ms': round(self.elapsed_ms, 3),
            'segments': [s._asdict() for s in self.segments],
        }


@dataclass(slots=True)
class TokenResult:
    """A final token with every candidate that was considered, best first."""
    token: FinalWordToken
    candidates: List[FormCandidate] = field(default_factory=list)

    @property
    def selected(self) -> Optional[FormCandidate]:
        for candidate in self.candidates:
            if candidate.selected:
                return candidate
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'surface': self.token.surface,
            'start': self.token.start,
            'end': self.token.end,
            'word_id': self.token.word_id,
            'reading_index': self.token.reading_index,
            'conjugations': list(self.token.conjugations),
            'pos': self.token.pos.value,
            'candidates': [c.to_dict() for c in self.candidates],
        }


@dataclass(slots=True)
class ParserDiagnostics:
    """
    Full trace of one diagnostic parse.

    Attributes:
        text: Input text
        normalized: Text after normalization
        media_type: Configured media type
        analyzer: Raw analyzer output
        stages: Repair pass traces in execution order
        results: Final tokens with their ranked candidates
        events: Notable conditions (repair loop cap hit)
        elapsed_ms: Wall time of the whole parse
    """
    text: str
    normalized: str
    media_type: str
    analyzer: AnalyzerTrace = field(default_factory=AnalyzerTrace)
    stages: List[StageTrace] = field(default_factory=list)
    results: List[TokenResult] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def tokens(self) -> List[FinalWordToken]:
        return [r.token for r in self.results]

    @property
    def surfaces(self) -> List[str]:
        return [r.token.surface for r in self.results]

    def changed_stages(self) -> List[StageTrace]:
        return [s for s in self.stages if s.changed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'normalized': self.normalized,
            'media_type': self.media_type,
            'elapsed_ms': round(self.elapsed_ms, 3),
            'analyzer': self.analyzer.to_dict(),
            'stages': [s.to_dict() for s in self.stages],
            'results': [r.to_dict() for r in self.results],
            'events': list(self.events),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)


# ============================================================================
# Failure Analysis
# ============================================================================

MATCH = "match"
OVER_SEGMENTATION = "over-segmentation"
UNDER_SEGMENTATION = "under-segmentation"
MISMATCH = "mismatch"


class SegmentationReport(NamedTuple):
    """
    Result of comparing an expected segmentation with an actual one.

    missing are boundary offsets the actual segmentation lacks, extra are
    boundaries it adds.
    """
    kind: str
    missing: tuple
    extra: tuple


def _boundaries(surfaces: Sequence[str]) -> set:
    offsets = set()
    pos = 0
    for surface in surfaces[:-1]:
        pos += len(surface)
        offsets.add(pos)
    return offsets


def compare_segmentation(expected: Sequence[str], actual: Sequence[str]) -> SegmentationReport:
    """
    Classify the difference between two segmentations of the same text.

    Example:
        >>> compare_segmentation(["食べて", "いる"], ["食べ", "て", "いる"]).kind
        'over-segmentation'
    """
    if list(expected) == list(actual):
        return SegmentationReport(MATCH, (), ())
    if ''.join(expected) != ''.join(actual):
        return SegmentationReport(MISMATCH, (), ())
    want = _boundaries(expected)
    got = _boundaries(actual)
    missing = tuple(sorted(want - got))
    extra = tuple(sorted(got - want))
    if extra and not missing:
        kind = OVER_SEGMENTATION
    elif missing and not extra:
        kind = UNDER_SEGMENTATION
    else:
        kind = MISMATCH
    return SegmentationReport(kind, missing, extra)
