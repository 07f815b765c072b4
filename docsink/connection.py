"""
Connection interfaces consumed by the WriteManager.

A ConnectionProvider yields a Handle for one connect -> write -> commit
cycle. Handles signal store-side failures with StoreError; a fatal
StoreError means the handle is poisoned and must not be reused.

Implementations:
    SolrConnectionProvider: HTTP provider for a Solr core (in solr.py)
"""

from abc import ABC, abstractmethod
from typing import Any, List, Tuple


class Handle(ABC):
    """A live, exclusively held connection to the remote store."""

    @abstractmethod
    def submit(self, document: List[Tuple[str, Any]]) -> None:
        """
        Submit one document to the store.

        Raises:
            StoreError: The store or transport rejected the document
        """
        pass

    @abstractmethod
    def commit(self) -> None:
        """
        Commit everything submitted through this handle.

        Raises:
            StoreError: The commit failed
        """
        pass

    @abstractmethod
    def release(self) -> None:
        """
        Release the handle.

        Must be safe to call on an already released handle.
        """
        pass


class ConnectionProvider(ABC):
    """
    Source of handles to the remote store.

    acquire() may be called any number of times; there is no guarantee that
    consecutive calls return the same underlying connection. Implementations
    should override __str__ to describe the target without leaking secrets.
    """

    @abstractmethod
    def acquire(self) -> Handle:
        """
        Return a usable handle.

        Raises:
            Exception: Any error when no handle can be obtained
        """
        pass

    def close(self) -> None:
        """Release provider-wide resources (pools, sessions)."""
        pass


__all__ = ["Handle", "ConnectionProvider"]
