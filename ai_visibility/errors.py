"""Exception hierarchy for the AI visibility scoring core."""

from typing import Optional


class VisibilityError(Exception):
    """Base class for every error raised by the scoring core."""


class ValidationError(VisibilityError, ValueError):
    """Malformed input to one of the public operations."""


class InvalidTransitionError(ValidationError):
    """A correction-status change the state machine does not allow."""

    def __init__(self, current: str, target: Optional[str] = None):
        message = "Cannot transition correction status from {cur!r}".format(cur=current)
        if target:
            message += " to {tgt!r}".format(tgt=target)
        super().__init__(message)
        self.current = current
        self.target = target


class FetchError(VisibilityError):
    """The audited page could not be fetched or returned a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = ""):
        super().__init__(message)
        self.status = status
        self.url = url


class EngineError(VisibilityError):
    """A single AI engine attempt failed during a citation probe."""

    def __init__(self, message: str, engine: str = ""):
        super().__init__(message)
        self.engine = engine


class ProbeError(VisibilityError):
    """The re-probe issued while verifying a correction failed."""

    def __init__(self, message: str, engine: str = ""):
        super().__init__(message)
        self.engine = engine
