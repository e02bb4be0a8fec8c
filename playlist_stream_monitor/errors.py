"""Exception hierarchy for Playlist Stream Monitor."""


class MonitorError(Exception):
    """Base class for all monitor errors."""


class ExtractionError(MonitorError):
    """A playlist page could not be rendered or read."""


class PersistenceError(MonitorError):
    """Reading from or writing to the content store failed."""


class RevisionConflictError(PersistenceError):
    """The stored revision no longer matches the one supplied on write."""


class DeliveryError(MonitorError):
    """A rendered chunk could not be sent to the transport."""


class PlaylistValidationError(MonitorError):
    """A user command was misused (bad URL or time, duplicate, absent entry)."""


class RunAbortedError(MonitorError):
    """A run could not start (no user identity, unreadable URL list, no browser)."""
