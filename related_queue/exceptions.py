"""
Exceptions raised by the queue.
"""


class RelatedQueueError(Exception):
    """Base class for all queue errors."""


class QueueConfigurationError(RelatedQueueError, ValueError):
    """A queue or entry was constructed with missing or invalid arguments."""


class InvalidEventError(RelatedQueueError, ValueError):
    """A listener was registered for an event the queue does not emit."""

    def __init__(self, event: object):
        super().__init__(f"Invalid event: {event!r}")
        self.event = event


class HandlerContractError(RelatedQueueError):
    """The handler returned something other than an identifier or an error."""


class RelationPathError(RelatedQueueError, ValueError):
    """A resolved id could not be written at a relation's destination path."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot write relation path {path!r}: {reason}")
        self.path = path
