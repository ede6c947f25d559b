"""
Guarded regular expression matching for admin-supplied patterns.

Patterns are length-limited, compiled once into a small cache and executed
with the ``regex`` library's wall-clock timeout so a catastrophic pattern
cannot stall a routing run.
"""

from functools import lru_cache
from typing import Optional

import regex

from supporthub.core import DomainException

DEFAULT_TIMEOUT_MS = 100
DEFAULT_MAX_PATTERN_LENGTH = 512


class RegexEvaluationError(DomainException):
    """Pattern was rejected, failed to compile or timed out."""


@lru_cache(maxsize=256)
def _compile(pattern: str):
    return regex.compile(pattern, regex.IGNORECASE)


def execute_regex_with_timeout(
    pattern: str,
    text: str,
    timeout_ms: Optional[int] = None,
    max_pattern_length: Optional[int] = None,
) -> bool:
    """
    Search ``text`` for ``pattern`` case-insensitively.

    Raises:
        RegexEvaluationError: pattern too long, invalid, or timed out
    """
    timeout_ms = timeout_ms or DEFAULT_TIMEOUT_MS
    max_pattern_length = max_pattern_length or DEFAULT_MAX_PATTERN_LENGTH

    if len(pattern) > max_pattern_length:
        raise RegexEvaluationError(
            f"pattern exceeds {max_pattern_length} characters",
            {"pattern_length": len(pattern)}
        )

    try:
        compiled = _compile(pattern)
    except regex.error as e:
        raise RegexEvaluationError(f"invalid pattern: {e}", {"pattern": pattern}) from e

    try:
        return compiled.search(text or "", timeout=timeout_ms / 1000.0) is not None
    except TimeoutError as e:
        raise RegexEvaluationError(
            f"pattern timed out after {timeout_ms}ms", {"pattern": pattern}
        ) from e
