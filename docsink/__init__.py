"""
docsink - buffered log sink for remote document stores

This package maps log records onto documents and writes them to a remote
store (Solr out of the box):
- Declarative field mapping (literal, event timestamp, formatted pattern)
- Buffered or write-through delivery with connect/write/commit cycles
- Thread-safe appender with start/stop/reconfigure lifecycle
- logging.Handler integration and YAML/JSON configuration
"""

from docsink.errors import (
    SinkError,
    ConfigError,
    StoreError,
    WriteFailure,
    ConnectFailure,
    PartialFailure,
    CommitFailure,
    AppendFailure,
)
from docsink.fields import FieldKind, FieldSpec, PatternFormatter, create_field_spec, materialize
from docsink.buffer import EventBuffer
from docsink.connection import ConnectionProvider, Handle
from docsink.solr import SolrConnectionProvider, SolrHandle
from docsink.manager import ConnectionState, WriteManager, configure
from docsink.rwlock import ReadWriteLock
from docsink.appender import DocumentAppender
from docsink.handler import DocumentStoreHandler
from docsink.config import (
    AppenderConfig,
    ConnectionConfig,
    FieldConfig,
    build_appender,
    build_handler,
    load_config,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "SinkError",
    "ConfigError",
    "StoreError",
    "WriteFailure",
    "ConnectFailure",
    "PartialFailure",
    "CommitFailure",
    "AppendFailure",
    # Fields
    "FieldKind",
    "FieldSpec",
    "PatternFormatter",
    "create_field_spec",
    "materialize",
    # Buffer
    "EventBuffer",
    # Connections
    "ConnectionProvider",
    "Handle",
    "SolrConnectionProvider",
    "SolrHandle",
    # Manager
    "ConnectionState",
    "WriteManager",
    "configure",
    # Appender
    "ReadWriteLock",
    "DocumentAppender",
    "DocumentStoreHandler",
    # Config
    "AppenderConfig",
    "ConnectionConfig",
    "FieldConfig",
    "build_appender",
    "build_handler",
    "load_config",
]
