"""
Error kinds raised by the document sink.

Configuration errors surface at setup time; everything else is raised from
submit/flush/append and always reaches the caller after being logged.
"""

from typing import Optional


class SinkError(Exception):
    """Base class for all docsink errors."""


class ConfigError(SinkError):
    """Raised when a field or connection configuration is invalid."""


class StoreError(SinkError):
    """
    Raised by a connection handle when the remote store rejects an operation.

    Attributes:
        fatal: True when the handle must not be reused (remote protocol
            error); False for transient transport failures.
    """

    def __init__(self, message: str, fatal: bool = False):
        self.fatal = fatal
        super().__init__(message)


class WriteFailure(SinkError):
    """
    Raised when a document could not be submitted to the remote store.

    Attributes:
        force_reconnect: True when the handle was invalidated and the next
            cycle must acquire a fresh one.
    """

    def __init__(self, message: str, force_reconnect: bool = False):
        self.force_reconnect = force_reconnect
        super().__init__(message)


class ConnectFailure(WriteFailure):
    """Raised when the connection provider could not yield a handle."""


class PartialFailure(WriteFailure):
    """Raised when a flush was aborted part way through the buffer."""

    def __init__(
        self,
        message: str,
        written: int,
        dropped: int,
        force_reconnect: bool = False,
    ):
        self.written = written
        self.dropped = dropped
        super().__init__(message, force_reconnect=force_reconnect)


class CommitFailure(SinkError):
    """Raised when the commit after a write cycle fails."""


class AppendFailure(SinkError):
    """Raised by the appender when a record could not be appended."""

    def __init__(
        self,
        message: str,
        manager_name: Optional[str] = None,
        appender_name: Optional[str] = None,
    ):
        self.manager_name = manager_name
        self.appender_name = appender_name
        super().__init__(message)


__all__ = [
    "SinkError",
    "ConfigError",
    "StoreError",
    "WriteFailure",
    "ConnectFailure",
    "PartialFailure",
    "CommitFailure",
    "AppendFailure",
]
