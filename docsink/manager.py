"""
WriteManager - buffered write / commit lifecycle for one document store.

Architecture:
    submit(record) → EventBuffer → flush() → connect → write* → commit → release

Buffering policy:
    capacity == 0: every submit runs its own connect/write/commit cycle
    capacity  > 0: records are buffered; a full buffer or an end-of-batch
                   record flushes synchronously within the submitting call

Every public method runs under one manager-private lock, so cycles never
overlap and documents reach the store in submit order. The handle is always
released before that lock is given up.

Delivery is at-most-once: a failed flush still empties the buffer and
nothing is retried.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, List, Optional, Sequence

from docsink.buffer import EventBuffer
from docsink.connection import ConnectionProvider, Handle
from docsink.errors import (
    CommitFailure,
    ConfigError,
    ConnectFailure,
    PartialFailure,
    StoreError,
    WriteFailure,
)
from docsink.fields import FieldSpec, is_end_of_batch, materialize

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where the manager is in its connect/write/commit cycle."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    COMMITTING = "committing"


class WriteManager:
    """
    Owns the buffer, the connection provider and the field specs of a sink.

    Build instances with configure(), which validates the arguments.
    """

    def __init__(
        self,
        name: str,
        buffer_capacity: int,
        connection_provider: ConnectionProvider,
        field_specs: Sequence[FieldSpec],
        owns_provider: bool = False,
    ):
        self.name = name
        self.connection_provider = connection_provider
        self.owns_provider = owns_provider
        self.field_specs: tuple = tuple(field_specs)
        self._buffer = EventBuffer(buffer_capacity)
        self._lock = threading.Lock()
        self._running = False
        self._handle: Optional[Handle] = None
        self._connect_error: Optional[BaseException] = None
        self._state = ConnectionState.DISCONNECTED

    # -- lifecycle ----------------------------------------------------------

    def startup(self) -> None:
        """Mark the manager as running. Calling it twice is harmless."""
        with self._lock:
            if not self._running:
                self._running = True
                logger.debug(f"Started manager {self.name}")

    def release(self) -> None:
        """
        Flush anything still buffered, close the cycle and stop.

        The manager is not running afterwards even if the final flush fails;
        that failure is re-raised.
        """
        with self._lock:
            try:
                self._flush()
            finally:
                if self._running:
                    try:
                        self.commit_and_close()
                    except Exception as e:
                        logger.warning(
                            f"Caught exception while performing shutdown of manager {self.name}: {e}"
                        )
                    finally:
                        self._running = False
                        logger.debug(f"Released manager {self.name}")
                if self.owns_provider:
                    self.connection_provider.close()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def buffer_capacity(self) -> int:
        return self._buffer.capacity

    @property
    def pending_count(self) -> int:
        """Number of records waiting for the next flush."""
        with self._lock:
            return len(self._buffer)

    # -- public write path --------------------------------------------------

    def submit(self, record: Any) -> None:
        """
        Accept one record, buffering it or writing it straight through.

        Raises:
            WriteFailure: Not running, no connection, or the store rejected
                the document (PartialFailure when a flush was cut short)
            CommitFailure: The commit after the write failed
        """
        with self._lock:
            if not self._running:
                raise WriteFailure(f"Cannot write logging event; manager {self.name} is not running.")

            if self._buffer.enabled:
                self._buffer.append(record)
                if self._buffer.is_full() or is_end_of_batch(record):
                    self._flush()
            else:
                with self._cycle():
                    self.write_one(record)

    def flush(self) -> None:
        """
        Write out every buffered record in one cycle.

        No-op when not running or when nothing is buffered.

        Raises:
            PartialFailure: A write failed; remaining records were dropped
            ConnectFailure: No handle could be acquired for the cycle
            CommitFailure: The commit failed after all writes succeeded
        """
        with self._lock:
            self._flush()

    def _flush(self) -> None:
        if not self._running or not self._buffer:
            return

        batch = self._buffer.drain()
        written = 0
        logger.debug(f"Flushing {len(batch)} records from manager {self.name}")

        with self._cycle():
            try:
                for record in batch:
                    self.write_one(record)
                    written += 1
            except ConnectFailure:
                raise
            except WriteFailure as e:
                raise PartialFailure(
                    f"Flush of manager {self.name} aborted after {written} of {len(batch)} records: {e}",
                    written=written,
                    dropped=len(batch) - written,
                    force_reconnect=e.force_reconnect,
                ) from e

    # -- connection cycle ---------------------------------------------------

    @contextmanager
    def _cycle(self) -> Iterator[None]:
        """Connect, run the body, then always commit and release.

        When the body fails its error wins over a failing commit.
        """
        self.connect_and_start()
        try:
            yield
        except BaseException:
            try:
                self.commit_and_close()
            except CommitFailure:
                pass  # logged by commit_and_close
            raise
        self.commit_and_close()

    def connect_and_start(self) -> None:
        """
        Acquire a handle for the next cycle.

        Failures are logged and remembered; write_one() then raises
        ConnectFailure instead of writing.
        """
        self._state = ConnectionState.CONNECTING
        try:
            self._handle = self.connection_provider.acquire()
            self._connect_error = None
            self._state = ConnectionState.CONNECTED
        except Exception as e:
            logger.error(
                f"Cannot write logging event or flush buffer; manager {self.name} "
                f"cannot connect to {self.connection_provider}: {e}"
            )
            self._handle = None
            self._connect_error = e
            self._state = ConnectionState.DISCONNECTED

    def write_one(self, record: Any) -> None:
        """Materialize one record and submit it through the current handle."""
        if not self._running:
            raise WriteFailure(f"Cannot write logging event; manager {self.name} is not running.")
        if self._handle is None:
            if self._connect_error is not None:
                raise ConnectFailure(
                    f"Manager {self.name} is not connected: {self._connect_error}"
                ) from self._connect_error
            raise WriteFailure(f"Cannot write logging event; manager {self.name} is not connected.")

        document = materialize(record, self.field_specs)
        try:
            self._handle.submit(document)
        except StoreError as e:
            if e.fatal:
                self._discard_handle()
            logger.error(f"Failed to insert document for log event in manager {self.name}: {e}")
            raise WriteFailure(
                f"Failed to insert document for log event in manager {self.name}: {e}",
                force_reconnect=e.fatal,
            ) from e
        except Exception as e:
            logger.error(f"Failed to insert document for log event in manager {self.name}: {e}")
            raise WriteFailure(
                f"Failed to insert document for log event in manager {self.name}: {e}"
            ) from e

    def commit_and_close(self) -> None:
        """
        Commit the current cycle, then release the handle no matter what.

        Raises:
            CommitFailure: The commit failed (the handle is still released)
        """
        handle = self._handle
        if handle is None:
            self._state = ConnectionState.DISCONNECTED
            return

        self._state = ConnectionState.COMMITTING
        try:
            handle.commit()
        except Exception as e:
            logger.error(f"Failed to commit transaction for manager {self.name}: {e}")
            raise CommitFailure(
                f"Failed to commit transaction logging event or flushing buffer in manager {self.name}: {e}"
            ) from e
        finally:
            self._discard_handle()

    def _discard_handle(self) -> None:
        handle, self._handle = self._handle, None
        self._state = ConnectionState.DISCONNECTED
        if handle is None:
            return
        try:
            handle.release()
        except Exception as e:
            logger.warning(f"Failed to release handle for manager {self.name}: {e}")

    def __str__(self) -> str:
        return self.name


def configure(
    name: str,
    buffer_capacity: int,
    connection_provider: ConnectionProvider,
    field_specs: Sequence[FieldSpec],
    owns_provider: bool = False,
) -> WriteManager:
    """
    Validate a sink configuration and build its WriteManager.

    Args:
        name: Manager name, used in diagnostics
        buffer_capacity: Records to buffer before flushing (0 = unbuffered)
        connection_provider: Source of store handles
        field_specs: Field mapping rules, in document order
        owns_provider: Close the provider when the manager is released

    Raises:
        ConfigError: On any invalid argument; nothing is constructed
    """
    if not name:
        raise ConfigError("A manager name is required.")
    if not isinstance(buffer_capacity, int) or isinstance(buffer_capacity, bool) or buffer_capacity < 0:
        raise ConfigError(f"Buffer size must be a non-negative integer, got {buffer_capacity!r}.")
    if connection_provider is None:
        raise ConfigError(f"No connection provider configured for manager {name}.")
    if not field_specs:
        raise ConfigError(f"No fields configured for manager {name}.")

    seen: List[str] = []
    for spec in field_specs:
        if not isinstance(spec, FieldSpec):
            raise ConfigError(f"Expected a FieldSpec, got {type(spec).__name__}.")
        if spec.name in seen:
            raise ConfigError(f"Duplicate field name {spec.name!r} for manager {name}.")
        seen.append(spec.name)

    return WriteManager(name, buffer_capacity, connection_provider, field_specs, owns_provider)


__all__ = ["ConnectionState", "WriteManager", "configure"]
