"""Engine error hierarchy.

Callers map these onto HTTP responses (see ``src.main``) or, inside a tick,
onto per-item outcomes: validation and not-found errors skip a candidate,
invalid-state errors mean "already handled", transient errors are counted as
failures and retried on the next tick.
"""


class EngineError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(EngineError):
    """Bad input, e.g. a deadline before its start date."""


class NotFoundError(EngineError):
    """A requested resource does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: int | str | None = None,
        details: dict | None = None,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = resource_type
        if resource_id is not None:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class InvalidStateError(EngineError):
    """Illegal state transition or a duplicate of an already-recorded effect."""


class AlreadyRunningError(InvalidStateError):
    """A work item already has an active timer session."""

    def __init__(self, work_item_id: int, session_id: int | None = None):
        self.work_item_id = work_item_id
        self.session_id = session_id
        super().__init__(
            f"Work item {work_item_id} already has an active timer",
            {"work_item_id": work_item_id, "session_id": session_id},
        )


class TransientError(EngineError):
    """Storage or network failure that may succeed on retry."""


class ChannelError(TransientError):
    """Outbound message delivery failed."""

    def __init__(self, channel: str, message: str, details: dict | None = None):
        self.channel = channel
        super().__init__(f"{channel}: {message}", details)
