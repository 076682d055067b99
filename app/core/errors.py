"""Exception taxonomy for the Style Engine.

Only service failures, cancellation and bad requests surface as exceptions.
Malformed model output is recovered inside the chains with documented
fallbacks. Constraint extraction is the one chain with no safe fallback and
raises UnusableModelOutputError instead.
"""


class StyleEngineError(Exception):
    """Base class for all Style Engine errors."""


class CompletionServiceError(StyleEngineError):
    """The completion service failed or is not configured."""


class CompletionTimeoutError(CompletionServiceError):
    """A completion call exceeded its time bound."""


class EditCancelledError(StyleEngineError):
    """An orchestration run observed cancellation at a suspension point."""


class DocumentNotFoundError(StyleEngineError):
    """No preference record exists for the requested document."""


class UnusableModelOutputError(CompletionServiceError):
    """The model answered, but nothing usable could be decoded from it."""


class InvalidInputError(StyleEngineError, ValueError):
    """Caller-supplied input cannot be served."""


class InvalidEditRequestError(InvalidInputError):
    """The edit request cannot be served (bad paragraph index, empty document)."""
