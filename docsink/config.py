"""
Configuration loader for docsink.yaml files.

Example docsink.yaml:

    name: solr
    buffer_size: 50
    connection:
      server_url: http://localhost:8983/solr
      core: logs
      max_connections: 10
    fields:
      - name: id
        pattern: "%(process)d-%(thread)d-%(created)f"
      - name: level
        pattern: "%(levelname)s"
      - name: timestamp
        is_timestamp: true
      - name: application
        literal: billing
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields as dataclass_fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from docsink.appender import DocumentAppender
from docsink.connection import ConnectionProvider
from docsink.errors import ConfigError
from docsink.fields import FieldSpec, PatternFormatter, create_field_spec
from docsink.handler import DocumentStoreHandler
from docsink.manager import WriteManager, configure
from docsink.solr import SolrConnectionProvider

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DOCSINK_CONFIG"
CONFIG_FILENAME = "docsink.yaml"


@dataclass
class FieldConfig:
    """One field mapping, as written in the config file."""
    name: str = ""
    pattern: Optional[str] = None
    literal: Optional[str] = None
    is_timestamp: bool = False


@dataclass
class ConnectionConfig:
    """Connection settings for the Solr provider."""
    server_url: str = ""
    core: Optional[str] = None
    max_retries: int = 0
    connection_timeout_ms: int = 5000
    socket_timeout_ms: int = 1000
    max_connections: int = 10
    follow_redirects: bool = True
    allow_compression: bool = True
    pooled: bool = True
    verify: Any = True


@dataclass
class AppenderConfig:
    """Everything needed to build one appender."""
    name: str = ""
    buffer_size: int = 0
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    fields: List[FieldConfig] = field(default_factory=list)
    pattern_style: str = "%"
    raise_exceptions: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppenderConfig":
        """
        Build a config from a parsed YAML/JSON mapping.

        Raises:
            ConfigError: Unknown keys or wrongly shaped sections
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Appender config must be a mapping, got {type(data).__name__}")

        data = dict(data)
        connection = data.pop("connection", None) or {}
        raw_fields = data.pop("fields", None) or []
        if not isinstance(raw_fields, list):
            raise ConfigError("'fields' must be a list of field mappings")

        return cls(
            connection=_build(ConnectionConfig, connection, "connection"),
            fields=[_build(FieldConfig, f, "fields[]") for f in raw_fields],
            **_check_keys(cls, data, "appender", exclude=("connection", "fields")),
        )

    def describe(self, provider: Any) -> str:
        """Descriptive manager name used in diagnostics."""
        fields_desc = ", ".join(
            f"{{ name={f.name}, pattern={f.pattern}, literal={f.literal}, timestamp={f.is_timestamp} }}"
            for f in self.fields
        )
        return (
            f"docsinkAppender{{ description={self.name}, bufferSize={self.buffer_size}, "
            f"connectionSource={provider}, fields=[ {fields_desc} ] }}"
        )


def _check_keys(cls, data: Dict[str, Any], section: str, exclude=()) -> Dict[str, Any]:
    known = {f.name for f in dataclass_fields(cls)} - set(exclude)
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown {section} setting(s): {', '.join(sorted(unknown))}")
    return data


def _build(cls, data: Any, section: str):
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a mapping, got {type(data).__name__}")
    return cls(**_check_keys(cls, data, section))


def load_config(config_path: Optional[str] = None) -> AppenderConfig:
    """
    Load configuration from docsink.yaml.

    Search order:
    1. Provided config_path
    2. DOCSINK_CONFIG environment variable
    3. ./docsink.yaml in current directory
    4. docsink.yaml in parent directories (walk up the tree)

    Args:
        config_path: Optional explicit path to config file

    Returns:
        AppenderConfig instance

    Raises:
        ConfigError: If no config file is found or it cannot be parsed
    """
    if config_path:
        return _load_from_path(config_path)

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return _load_from_path(env_path)

    current = Path.cwd()
    while True:
        config_file = current / CONFIG_FILENAME
        if config_file.exists():
            return _load_from_path(str(config_file))

        if current == current.parent:
            break
        current = current.parent

    raise ConfigError(f"No {CONFIG_FILENAME} found and {CONFIG_ENV_VAR} is not set")


def _load_from_path(path: str) -> AppenderConfig:
    """Load config from a specific path (JSON by extension, YAML otherwise)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                config_dict = json.load(f)
            else:
                config_dict = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}") from e

    logger.debug(f"Loaded docsink config from {path}")
    return AppenderConfig.from_dict(config_dict)


def build_field_specs(config: AppenderConfig) -> List[FieldSpec]:
    """Validate every configured field; the first invalid one raises ConfigError."""
    return [
        create_field_spec(
            f.name,
            pattern=f.pattern,
            literal=f.literal,
            is_timestamp=f.is_timestamp,
            formatter_factory=lambda pattern: PatternFormatter(pattern, style=config.pattern_style),
        )
        for f in config.fields
    ]


def build_provider(connection: ConnectionConfig) -> SolrConnectionProvider:
    return SolrConnectionProvider(
        connection.server_url,
        core=connection.core,
        max_retries=connection.max_retries,
        connection_timeout_ms=connection.connection_timeout_ms,
        socket_timeout_ms=connection.socket_timeout_ms,
        max_connections=connection.max_connections,
        follow_redirects=connection.follow_redirects,
        allow_compression=connection.allow_compression,
        pooled=connection.pooled,
        verify=connection.verify,
    )


def build_manager(
    config: AppenderConfig,
    provider: Optional[ConnectionProvider] = None,
) -> WriteManager:
    """
    Build a WriteManager from config.

    Args:
        config: Appender configuration
        provider: Connection provider to use instead of the configured Solr one
    """
    if not config.name:
        raise ConfigError("No name provided for the appender.")
    specs = build_field_specs(config)
    owns_provider = provider is None
    if provider is None:
        provider = build_provider(config.connection)
    return configure(
        config.describe(provider), config.buffer_size, provider, specs, owns_provider=owns_provider,
    )


def build_appender(
    config: AppenderConfig,
    provider: Optional[ConnectionProvider] = None,
) -> DocumentAppender:
    """Build an (unstarted) DocumentAppender from config."""
    return DocumentAppender(config.name, build_manager(config, provider))


def build_handler(
    config: AppenderConfig,
    provider: Optional[ConnectionProvider] = None,
    level: int = logging.NOTSET,
) -> DocumentStoreHandler:
    """Build a started DocumentStoreHandler from config."""
    return DocumentStoreHandler(
        build_appender(config, provider),
        raise_exceptions=config.raise_exceptions,
        level=level,
    )


__all__ = [
    "FieldConfig",
    "ConnectionConfig",
    "AppenderConfig",
    "load_config",
    "build_field_specs",
    "build_provider",
    "build_manager",
    "build_appender",
    "build_handler",
]
