"""Error taxonomy shared by every component."""


class ConfigurationError(Exception):
    """Invalid or missing configuration. Fatal at startup only."""


class SnapshotQueryError(Exception):
    """The game server did not answer the status query."""


class StorageReadError(Exception):
    """The durable record could not be read or parsed."""


class StorageWriteError(Exception):
    """The durable record could not be written."""


class NotificationTransportError(Exception):
    """A webhook create/edit request failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class MessageNotFound(NotificationTransportError):
    """The tracked webhook message no longer exists (deleted externally)."""
