"""
Exceptions raised by yomitoki.

Infrastructure failures (the external analyzer, the lexicon store) are
surfaced to the caller unchanged. Unknown words are not errors: they come
back as out-of-vocabulary tokens.
"""


class YomitokiError(Exception):
    """
    Base exception class for all yomitoki errors.

    Example:
        >>> try:
        ...     yomitoki.parse_text(text)
        ... except YomitokiError as e:
        ...     print(f"yomitoki error: {e}")
    """
    pass


class AnalyzerError(YomitokiError):
    """
    Raised when the external morphological analyzer fails.

    This exception is raised when:
    - Sudachi is not installed or its dictionary cannot be loaded
    - The analyzer raises while processing the text
    - The analyzer output does not line up with the input text
    """
    pass


class LexiconUnavailable(YomitokiError):
    """
    Raised when the lexicon cannot be loaded or queried.

    Fatal for the parse call in progress. The lexicon handle itself is
    read-only, so other calls sharing it are unaffected.
    """
    pass


class RepairLoopExceeded(YomitokiError):
    """
    Raised when the repair passes do not reach a fixed point.

    The repair stage catches this, logs it and falls back to the token
    sequence it started with. Seeing it means a rule table keeps undoing
    its own work.
    """

    def __init__(self, iterations: int):
        super().__init__(f"repair passes did not converge after {iterations} iterations")
        self.iterations = iterations


class AnalysisTimeoutError(YomitokiError):
    """Raised by the async API when a parse exceeds the caller's timeout."""
    pass
