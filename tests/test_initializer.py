"""
Tests for the top-level Initializer: schema, then default configuration.
"""

import json
import time

import pytest
from sqlalchemy import inspect

from initdatabase import observer as observer_module
from initdatabase.database import get_engine
from initdatabase.errors import ConfigurationError, InvalidLogLevelError
from initdatabase.initializer import HTTP_OBSERVER_ID, Initializer
from initdatabase.observer import NullObserver
from initdatabase.schema import SchemaLoader


class TestSchemaLoader:
    def test_creates_tables(self, ctx, database_url, engine_configuration_json):
        SchemaLoader(engine_configuration_json).initialize(ctx)

        engine = get_engine(database_url)
        tables = inspect(engine).get_table_names()
        engine.dispose()
        assert {"sys_cfg", "sys_default_cfg"} <= set(tables)

    def test_bad_engine_configuration(self, ctx):
        with pytest.raises(ConfigurationError):
            SchemaLoader('{"PIPELINE": {}}').initialize(ctx)

    def test_logs_redacted_url(self, ctx, caplog, engine_configuration_json):
        SchemaLoader(engine_configuration_json).initialize(ctx)
        assert any("Applied schema to sqlite:///" in r.getMessage() for r in caplog.records)


class TestInitializer:
    """Test the full initialization sequence."""

    def test_empty_store(self, ctx, database_url, engine_configuration_json):
        """A store without tables gets the schema and a default configuration."""
        initializer = Initializer(engine_configuration_json, data_sources=["CUSTOMERS"])

        config_id = initializer.initialize(ctx)

        manager = initializer.config_initializer.get_config_manager(ctx)
        assert config_id != 0
        assert manager.get_default_config_id(ctx) == config_id
        config = json.loads(manager.get_config(ctx, config_id))
        assert "CUSTOMERS" in [d["DSRC_CODE"] for d in config["G2_CONFIG"]["CFG_DSRC"]]

    def test_rerun_is_a_no_op(self, ctx, engine_configuration_json):
        first = Initializer(engine_configuration_json).initialize(ctx)
        second = Initializer(engine_configuration_json).initialize(ctx)
        assert first == second

    def test_log_level_applied_everywhere(self, ctx, engine_configuration_json):
        initializer = Initializer(engine_configuration_json, log_level="DEBUG")

        initializer.initialize(ctx)

        assert initializer.config_initializer.log_level == "DEBUG"
        assert initializer.schema_loader.logger.level_name == "DEBUG"
        assert initializer.config_initializer.get_config_builder(ctx).logger.level_name == "DEBUG"

    def test_invalid_log_level(self, ctx, engine_configuration_json):
        initializer = Initializer(engine_configuration_json, log_level="LOUD")
        with pytest.raises(InvalidLogLevelError):
            initializer.initialize(ctx)

    def test_registered_observer_sees_creation(self, ctx, engine_configuration_json, wait_for_messages):
        initializer = Initializer(engine_configuration_json, observer_origin="ci")
        observer = NullObserver("Observer 1")
        initializer.register_observer(ctx, observer)

        initializer.initialize(ctx)

        messages = wait_for_messages(observer, 3)
        assert "8002" in {m["messageId"] for m in messages}
        assert all(m.get("originId") == "ci" for m in messages if m["messageId"] != "8003")

        initializer.unregister_observer(ctx, observer)
        assert not initializer.config_initializer.has_observers()

    def test_observer_url_registers_http_observer(self, ctx, engine_configuration_json, monkeypatch):
        posted = []

        class FakeResponse:
            def raise_for_status(self):
                pass

        def fake_post(url, data=None, headers=None, timeout=None):
            posted.append((url, json.loads(data)))
            return FakeResponse()

        monkeypatch.setattr(observer_module.requests, "post", fake_post)
        initializer = Initializer(engine_configuration_json, observer_url="http://observer.example/")

        initializer.initialize(ctx)

        registry = initializer.config_initializer.observers
        assert registry.observer_ids() == [HTTP_OBSERVER_ID]

        deadline = time.monotonic() + 2
        while not any(m["messageId"] == "8002" for _, m in list(posted)) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert ("http://observer.example/", "8002") in [(u, m["messageId"]) for u, m in list(posted)]
