"""
Solr connection provider over HTTP.

Documents are posted as JSON to the core's update handler:

    POST {server_url}/{core}/update   [{"field": value, ...}]
    POST {server_url}/{core}/update   {"commit": {}}

With pooling enabled a single requests.Session (and its urllib3 connection
pool) is shared by every handle; otherwise each handle gets its own session
that is closed on release.
"""

import logging
import threading
from typing import Any, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from docsink.connection import ConnectionProvider, Handle
from docsink.errors import ConfigError, StoreError

logger = logging.getLogger(__name__)


class SolrHandle(Handle):
    """Handle bound to one Solr update endpoint."""

    def __init__(
        self,
        session: requests.Session,
        update_url: str,
        timeout: Tuple[float, float],
        follow_redirects: bool = True,
        owns_session: bool = False,
    ):
        self._session: Optional[requests.Session] = session
        self._update_url = update_url
        self._timeout = timeout
        self._follow_redirects = follow_redirects
        self._owns_session = owns_session

    @property
    def released(self) -> bool:
        return self._session is None

    def submit(self, document: List[Tuple[str, Any]]) -> None:
        self._post([dict(document)])

    def commit(self) -> None:
        self._post({"commit": {}})

    def release(self) -> None:
        session, self._session = self._session, None
        if session is not None and self._owns_session:
            session.close()

    def _post(self, payload: Any) -> None:
        if self._session is None:
            raise StoreError("Solr handle has already been released")

        try:
            response = self._session.post(
                self._update_url,
                json=payload,
                timeout=self._timeout,
                allow_redirects=self._follow_redirects,
            )
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Request to {self._update_url} failed: {e}") from e

        if response.status_code >= 400:
            # The server answered with an error; the connection state is unknown.
            raise StoreError(
                f"Solr returned HTTP {response.status_code} for {self._update_url}: "
                f"{response.text[:200]}",
                fatal=True,
            )


class SolrConnectionProvider(ConnectionProvider):
    """
    Provides handles to a Solr core.

    Usage:
        provider = SolrConnectionProvider(
            "http://localhost:8983/solr",
            core="logs",
        )
    """

    def __init__(
        self,
        server_url: str,
        core: Optional[str] = None,
        max_retries: int = 0,
        connection_timeout_ms: int = 5000,
        socket_timeout_ms: int = 1000,
        max_connections: int = 10,
        follow_redirects: bool = True,
        allow_compression: bool = True,
        pooled: bool = True,
        verify: Any = True,
    ):
        """
        Initialize the provider.

        Args:
            server_url: Base URL of the Solr server
            core: Optional core (collection) name appended to server_url
            max_retries: Retries for requests that never reached the server
            connection_timeout_ms: Connect timeout
            socket_timeout_ms: Read timeout
            max_connections: Size of the HTTP connection pool
            follow_redirects: Follow HTTP redirects
            allow_compression: Accept gzip/deflate encoded responses
            pooled: Share one session between all handles
            verify: TLS verification flag or CA bundle path

        Raises:
            ConfigError: If server_url is empty or a limit is negative
        """
        if not server_url or not server_url.strip():
            raise ConfigError("No Solr server url provided.")
        if max_retries < 0 or max_connections < 1:
            raise ConfigError(
                f"Invalid Solr pool settings: max_retries={max_retries}, "
                f"max_connections={max_connections}"
            )

        url = server_url.strip()
        if core and core.strip():
            if not url.endswith("/"):
                url += "/"
            url += core.strip()

        self.url = url
        self.update_url = f"{url.rstrip('/')}/update"
        self.max_retries = max_retries
        self.timeout = (connection_timeout_ms / 1000.0, socket_timeout_ms / 1000.0)
        self.max_connections = max_connections
        self.follow_redirects = follow_redirects
        self.allow_compression = allow_compression
        self.pooled = pooled
        self.verify = verify

        self._lock = threading.Lock()
        self._closed = False
        self._session: Optional[requests.Session] = self._new_session() if pooled else None

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=1,
            pool_maxsize=self.max_connections,
            max_retries=Retry(total=self.max_retries, read=False),
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.verify = self.verify
        if not self.allow_compression:
            session.headers["Accept-Encoding"] = "identity"
        return session

    def acquire(self) -> SolrHandle:
        with self._lock:
            if self._closed:
                raise StoreError(f"{self} is closed")
            if self.pooled:
                session, owns_session = self._session, False
            else:
                session, owns_session = self._new_session(), True

        return SolrHandle(
            session,
            self.update_url,
            self.timeout,
            follow_redirects=self.follow_redirects,
            owns_session=owns_session,
        )

    def close(self) -> None:
        with self._lock:
            self._closed = True
            session, self._session = self._session, None
        if session is not None:
            session.close()
            logger.debug(f"Closed pooled session for {self.url}")

    def __str__(self) -> str:
        return f"SolrConnectionProvider{{ url={self.url}, pooled={self.pooled} }}"


__all__ = ["SolrHandle", "SolrConnectionProvider"]
