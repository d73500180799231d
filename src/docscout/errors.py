from __future__ import annotations


class BrowserNotReadyError(RuntimeError):
    """Raised when a page handle is used before the browser is connected."""


class ActNotAppliedError(RuntimeError):
    """Raised by the AI action layer when an instruction could not be carried out."""


class InvalidTransitionError(ValueError):
    """Raised on a status change that the session state machine does not allow."""


class SessionCancelledError(RuntimeError):
    """Raised inside a session run once its cancel event has been set."""


class SessionNotFoundError(LookupError):
    """Raised when a session's progress record is gone, e.g. swept or expired."""
