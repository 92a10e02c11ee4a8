"""
Error taxonomy for the practice engine.

- InvalidArgumentError: malformed requests (non-positive counts, missing scope)
- NotFoundError: a referenced question or wrong item does not exist
- ConflictError: a mutation that would clobber concurrent or terminal state
- UpstreamUnavailableError: the question pool or grading oracle failed

Pool shortfalls are not errors; callers see them as a smaller result.
"""

from __future__ import annotations


class PracticeEngineError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidArgumentError(PracticeEngineError, ValueError):
    """Raised when a request cannot be served as specified."""
    pass


class NotFoundError(PracticeEngineError, LookupError):
    """Raised when a referenced entity is absent."""

    def __init__(self, kind: str, entity_id: object):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class ConflictError(PracticeEngineError):
    """Raised when a wrong item mutation would corrupt its state."""
    pass


class UpstreamUnavailableError(PracticeEngineError):
    """Raised by adapters when the question pool or grading oracle is unreachable."""
    pass
