"""
DocumentAppender - the public face of a sink.

Appends take the shared side of a read/write lock so producers run
concurrently (the WriteManager still serializes them internally), while
stop() and reconfigure() take the exclusive side so no append can race a
teardown.
"""

import logging
from typing import Any, Optional

from docsink.errors import AppendFailure, SinkError
from docsink.manager import WriteManager
from docsink.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


class DocumentAppender:
    """
    Appends records to a document store through a WriteManager.

    Usage:
        appender = DocumentAppender("solr", manager)
        appender.start()
        appender.append(record)
        appender.stop()
    """

    def __init__(self, name: str, manager: Optional[WriteManager]):
        self.name = name
        self._manager = manager
        self._lock = ReadWriteLock()
        self._started = False

    @property
    def manager(self) -> Optional[WriteManager]:
        return self._manager

    @property
    def is_started(self) -> bool:
        return self._started

    def start(self) -> None:
        """
        Start the appender and its manager.

        Without a manager the error is logged and the appender stays
        stopped; later appends fail with AppendFailure.
        """
        with self._lock.write_locked():
            if self._manager is None:
                logger.error(f"No manager set for the appender named [{self.name}].")
                return
            self._manager.startup()
            self._started = True

    def append(self, record: Any) -> None:
        """
        Hand one record to the manager.

        Raises:
            AppendFailure: The appender is not started or the write failed
        """
        with self._lock.read_locked():
            manager = self._manager
            manager_name = manager.name if manager is not None else None

            if not self._started or manager is None:
                raise AppendFailure(
                    f"Appender [{self.name}] is not started.",
                    manager_name=manager_name,
                    appender_name=self.name,
                )

            try:
                manager.submit(record)
            except SinkError as e:
                logger.error(
                    f"Unable to write to document store [{manager_name}] for appender [{self.name}]: {e}"
                )
                raise AppendFailure(
                    f"Unable to write to document store in appender [{self.name}]: {e}",
                    manager_name=manager_name,
                    appender_name=self.name,
                ) from e
            except Exception as e:
                logger.exception(
                    f"Unexpected error writing to document store [{manager_name}] for appender [{self.name}]"
                )
                raise AppendFailure(
                    f"Unable to write to document store in appender [{self.name}]: {e}",
                    manager_name=manager_name,
                    appender_name=self.name,
                ) from e

    def flush(self) -> None:
        """Flush the manager's buffer."""
        with self._lock.read_locked():
            if self._manager is not None and self._started:
                self._manager.flush()

    def stop(self) -> None:
        """
        Stop appending and release the manager.

        The release flushes anything still buffered; a failure of that final
        flush propagates after the appender has stopped.
        """
        with self._lock.write_locked():
            self._started = False
            if self._manager is not None:
                self._manager.release()

    def reconfigure(self, manager: WriteManager) -> None:
        """
        Swap in a new manager.

        The old manager is released (final flush included) before the new
        one starts. Appends wait until the swap is complete.
        """
        with self._lock.write_locked():
            old, was_started = self._manager, self._started
            self._manager = manager
            try:
                if old is not None and old is not manager:
                    old.release()
            finally:
                if was_started:
                    manager.startup()
                    self._started = True
            logger.info(f"Appender [{self.name}] now writes through manager {manager.name}")

    def __enter__(self) -> "DocumentAppender":
        self.start()
        return self

    def __exit__(self, *args) -> None:
        self.stop()

    def __str__(self) -> str:
        return f"{self.name}{{ manager={self._manager} }}"


__all__ = ["DocumentAppender"]
