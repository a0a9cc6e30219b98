"""Classification of page check failures into transient and permanent."""

import logging
from typing import Iterable, Optional

from a11y_audit.constants import RETRYABLE_ERROR_PATTERNS

logger = logging.getLogger(__name__)


class ErrorClassifier:
    """Decides whether a failed page check is worth another attempt.

    Matching is a case-insensitive substring test on the error message.
    Anything not matching a known transient pattern is permanent.
    """

    def __init__(self, patterns: Iterable[str] = RETRYABLE_ERROR_PATTERNS):
        self.patterns = tuple(p.lower() for p in patterns)

    def matched_pattern(self, error: BaseException) -> Optional[str]:
        """Return the first transient pattern found in the error message."""
        message = str(error).lower()
        if not message:
            return None

        for pattern in self.patterns:
            if pattern in message:
                return pattern
        return None

    def is_retryable(self, error: BaseException) -> bool:
        pattern = self.matched_pattern(error)
        if pattern:
            logger.debug(f"Transient error (matched {pattern!r}): {error}")
            return True
        return False


_default_classifier = ErrorClassifier()


def is_retryable_error(error: BaseException) -> bool:
    """Classify with the default pattern set."""
    return _default_classifier.is_retryable(error)
