"""Tests for docsink.config module."""

import json
import os

import pytest
import responses

from docsink.config import (
    AppenderConfig,
    ConnectionConfig,
    FieldConfig,
    build_appender,
    build_handler,
    build_manager,
    load_config,
)
from docsink.errors import ConfigError, StoreError
from docsink.fields import FieldKind

YAML_CONFIG = """
name: solr
buffer_size: 2
connection:
  server_url: http://solr.test:8983/solr
  core: logs
  max_connections: 4
fields:
  - name: level
    pattern: "%(levelname)s"
  - name: timestamp
    is_timestamp: true
  - name: application
    literal: billing
"""

CONFIG_DICT = {
    "name": "solr",
    "buffer_size": 2,
    "connection": {"server_url": "http://solr.test:8983/solr", "core": "logs"},
    "fields": [
        {"name": "level", "pattern": "%(levelname)s"},
        {"name": "timestamp", "is_timestamp": True},
        {"name": "application", "literal": "billing"},
    ],
}


class TestAppenderConfig:
    """Tests for AppenderConfig.from_dict."""

    def test_from_dict(self):
        config = AppenderConfig.from_dict(CONFIG_DICT)

        assert config.name == "solr"
        assert config.buffer_size == 2
        assert config.connection == ConnectionConfig(
            server_url="http://solr.test:8983/solr", core="logs"
        )
        assert config.fields[2] == FieldConfig(name="application", literal="billing")
        assert config.raise_exceptions is False

    def test_unknown_top_level_key(self):
        with pytest.raises(ConfigError, match="bufferSize"):
            AppenderConfig.from_dict({"name": "solr", "bufferSize": 2})

    def test_unknown_field_key(self):
        with pytest.raises(ConfigError, match="colour"):
            AppenderConfig.from_dict({"name": "solr", "fields": [{"name": "a", "colour": "red"}]})

    def test_fields_must_be_list(self):
        with pytest.raises(ConfigError, match="list"):
            AppenderConfig.from_dict({"name": "solr", "fields": {"name": "a"}})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            AppenderConfig.from_dict(["solr"])

    def test_describe(self):
        config = AppenderConfig.from_dict(CONFIG_DICT)
        description = config.describe("provider")
        assert description.startswith("docsinkAppender{ description=solr, bufferSize=2, connectionSource=provider")
        assert "{ name=application, pattern=None, literal=billing, timestamp=False }" in description


class TestLoadConfig:
    """Tests for load_config()."""

    def test_yaml_path(self, tmp_path):
        path = tmp_path / "docsink.yaml"
        path.write_text(YAML_CONFIG)

        config = load_config(str(path))

        assert config.connection.max_connections == 4
        assert [f.name for f in config.fields] == ["level", "timestamp", "application"]

    def test_json_path(self, tmp_path):
        path = tmp_path / "sink.json"
        path.write_text(json.dumps(CONFIG_DICT))

        assert load_config(str(path)).buffer_size == 2

    def test_env_var(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(YAML_CONFIG)
        os.environ["DOCSINK_CONFIG"] = str(path)

        assert load_config().name == "solr"

    def test_walks_up_from_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "docsink.yaml").write_text(YAML_CONFIG)
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        os.environ.pop("DOCSINK_CONFIG", None)

        assert load_config().name == "solr"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(str(tmp_path / "nope.yaml"))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "docsink.yaml"
        path.write_text("name: [unclosed")
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_config(str(path))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "docsink.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_config(str(path))


class TestBuild:
    """Tests for wiring config into live objects."""

    def test_build_manager_with_provider(self, provider):
        manager = build_manager(AppenderConfig.from_dict(CONFIG_DICT), provider)

        assert manager.connection_provider is provider
        assert not manager.owns_provider
        assert [s.kind for s in manager.field_specs] == [
            FieldKind.PATTERN,
            FieldKind.TIMESTAMP,
            FieldKind.LITERAL,
        ]
        assert "connectionSource=FakeProvider" in manager.name

    def test_invalid_field_fails_fast(self, provider):
        data = dict(CONFIG_DICT, fields=[{"name": "x", "literal": "a", "is_timestamp": True}])
        with pytest.raises(ConfigError, match="mutually exclusive"):
            build_appender(AppenderConfig.from_dict(data), provider)

    def test_missing_name(self, provider):
        data = dict(CONFIG_DICT, name="")
        with pytest.raises(ConfigError, match="name"):
            build_appender(AppenderConfig.from_dict(data), provider)

    def test_missing_server_url(self):
        data = dict(CONFIG_DICT, connection={})
        with pytest.raises(ConfigError, match="Solr server url"):
            build_appender(AppenderConfig.from_dict(data))

    def test_brace_pattern_style(self, provider, make_record):
        data = dict(CONFIG_DICT, pattern_style="{", fields=[{"name": "msg", "pattern": "{message}!"}])
        appender = build_appender(AppenderConfig.from_dict(data), provider)
        appender.start()

        appender.append(make_record("hi", end_of_batch=True))

        assert provider.documents == [[("msg", "hi!")]]

    @responses.activate
    def test_build_handler_end_to_end(self, make_record):
        update_url = "http://solr.test:8983/solr/logs/update"
        responses.add(responses.POST, update_url, json={"responseHeader": {"status": 0}})
        handler = build_handler(AppenderConfig.from_dict(CONFIG_DICT))

        record = make_record("ignored", level=40)
        record.created = 5.0
        handler.handle(record)
        handler.handle(make_record("second"))
        handler.close()

        bodies = [json.loads(call.request.body) for call in responses.calls]
        assert bodies[0] == [{"level": "ERROR", "timestamp": 5000, "application": "billing"}]
        assert bodies[1][0]["level"] == "INFO"
        assert bodies[2] == {"commit": {}}
        assert handler.appender.manager.owns_provider
        with pytest.raises(StoreError):
            handler.appender.manager.connection_provider.acquire()
