"""
logging integration.

    handler = DocumentStoreHandler(appender)
    logging.getLogger("app").addHandler(handler)
"""

import logging

from docsink.appender import DocumentAppender
from docsink.errors import AppendFailure, SinkError

logger = logging.getLogger(__name__)

# Our own status records must never be fed back into the sink.
_INTERNAL_LOGGER_PREFIX = "docsink"


class DocumentStoreHandler(logging.Handler):
    """
    logging.Handler that forwards records to a DocumentAppender.

    The handler's own lock is not taken around emit(); the appender does
    its own locking and lets producers proceed concurrently.

    Args:
        appender: Appender to forward to; started if it is not already
        raise_exceptions: Propagate AppendFailure to the logging call
            instead of reporting it through handleError()
        level: Handler level
    """

    def __init__(
        self,
        appender: DocumentAppender,
        raise_exceptions: bool = False,
        level: int = logging.NOTSET,
    ):
        super().__init__(level)
        self.appender = appender
        self.raise_exceptions = raise_exceptions
        if not appender.is_started:
            appender.start()

    def handle(self, record: logging.LogRecord):
        if record.name == _INTERNAL_LOGGER_PREFIX or record.name.startswith(_INTERNAL_LOGGER_PREFIX + "."):
            return False
        rv = self.filter(record)
        if isinstance(rv, logging.LogRecord):
            record = rv
        if rv:
            self.emit(record)
        return rv

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.appender.append(record)
        except AppendFailure:
            if self.raise_exceptions:
                raise
            self.handleError(record)

    def flush(self) -> None:
        try:
            self.appender.flush()
        except SinkError as e:
            if self.raise_exceptions:
                raise
            logger.error(f"Flush of appender [{self.appender.name}] failed: {e}")

    def close(self) -> None:
        try:
            self.appender.stop()
        except SinkError as e:
            if self.raise_exceptions:
                raise
            logger.error(f"Stop of appender [{self.appender.name}] failed: {e}")
        finally:
            super().close()


__all__ = ["DocumentStoreHandler"]
