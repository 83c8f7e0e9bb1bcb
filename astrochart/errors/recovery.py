"""
Recovery strategy classifications for error handling.

Errors in this module are expected to clear up on a later attempt.
"""

from typing import Any, Optional


class RecoverableError(Exception):
    """Mixin for errors that can be recovered from automatically."""

    def __init__(self, message: str, retry_count: int = 0, **kwargs):
        super().__init__(message)
        self.retry_count = retry_count
        self.recoverable = True


class EventFetchError(RecoverableError):
    """Loading raw events for a time range failed; the range stays missing."""

    def __init__(self, message: str, time_range: Optional[Any] = None,
                 source: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.time_range = time_range
        self.source = source
