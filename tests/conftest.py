"""
Pytest configuration and shared fixtures.
"""

import json
import threading
import time
from typing import List, Optional

import pytest

from initdatabase.context import Context
from initdatabase.database import init_database
from initdatabase.engineconfig import build_engine_configuration_json
from initdatabase.errors import DataSourceError
from initdatabase.logger import reset_logger
from initdatabase.sdk import ConfigBuilder, ConfigManager, SdkAbstractFactory


class FakeConfigBuilder(ConfigBuilder):
    """Config Builder that records calls."""

    def __init__(
        self,
        kind: str = "base",
        fail_on_data_source: Optional[str] = None,
        init_error: Optional[Exception] = None,
        init_delay: float = 0.0,
        log_level_error: Optional[Exception] = None,
    ):
        self.kind = kind
        self.fail_on_data_source = fail_on_data_source
        self.init_error = init_error
        self.init_delay = init_delay
        self.log_level_error = log_level_error
        self.init_calls: List[tuple] = []
        self.calls: List[str] = []
        self.data_sources: List[str] = []
        self.log_levels: List[int] = []
        self.destroyed = False
        self._lock = threading.Lock()

    def init(self, module_name, engine_configuration_json, verbose_logging):
        with self._lock:
            self.init_calls.append((module_name, engine_configuration_json, verbose_logging))
        time.sleep(self.init_delay)
        if self.init_error is not None:
            raise self.init_error

    def create(self, ctx):
        self.calls.append("create")
        return 42

    def add_data_source(self, ctx, config_handle, data_source_json):
        self.calls.append("add_data_source")
        code = json.loads(data_source_json)["DSRC_CODE"]
        if code == self.fail_on_data_source:
            raise DataSourceError(f"cannot add {code}")
        self.data_sources.append(code)
        return json.dumps({"DSRC_ID": len(self.data_sources)})

    def save(self, ctx, config_handle):
        self.calls.append("save")
        return json.dumps({"CFG_DSRC": self.data_sources})

    def close(self, ctx, config_handle):
        self.calls.append("close")

    def destroy(self):
        self.destroyed = True

    def set_log_level(self, ctx, log_level):
        if self.log_level_error is not None:
            raise self.log_level_error
        self.log_levels.append(log_level)


class FakeConfigManager(ConfigManager):
    """Config Manager that keeps configurations in a dict."""

    def __init__(
        self,
        kind: str = "base",
        default_config_id: int = 0,
        set_default_error: Optional[Exception] = None,
    ):
        self.kind = kind
        self.default_config_id = default_config_id
        self.set_default_error = set_default_error
        self.init_calls: List[tuple] = []
        self.calls: List[str] = []
        self.configs = {}
        self.log_levels: List[int] = []
        self.destroyed = False

    def init(self, module_name, engine_configuration_json, verbose_logging):
        self.init_calls.append((module_name, engine_configuration_json, verbose_logging))

    def get_default_config_id(self, ctx):
        ctx.check()
        self.calls.append("get_default_config_id")
        return self.default_config_id

    def add_config(self, ctx, config_str, config_comments):
        self.calls.append("add_config")
        config_id = 1000 + len(self.configs)
        self.configs[config_id] = (config_str, config_comments)
        return config_id

    def set_default_config_id(self, ctx, config_id):
        self.calls.append("set_default_config_id")
        if self.set_default_error is not None:
            raise self.set_default_error
        self.default_config_id = config_id

    def destroy(self):
        self.destroyed = True

    def set_log_level(self, ctx, log_level):
        self.log_levels.append(log_level)


class FakeFactory(SdkAbstractFactory):
    """Factory handing out fixed fakes and counting requests."""

    def __init__(self, builder=None, manager=None, builder_error=None):
        self.builder = builder if builder is not None else FakeConfigBuilder()
        self.manager = manager if manager is not None else FakeConfigManager()
        self.builder_error = builder_error
        self.builder_requests = 0
        self.manager_requests = 0

    def get_config_builder(self, ctx):
        self.builder_requests += 1
        if self.builder_error is not None:
            raise self.builder_error
        return self.builder

    def get_config_manager(self, ctx):
        self.manager_requests += 1
        return self.manager


@pytest.fixture(autouse=True)
def fresh_loggers():
    """Every test starts with new loggers at INFO."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def ctx() -> Context:
    return Context()


@pytest.fixture
def fake_factory() -> FakeFactory:
    return FakeFactory()


@pytest.fixture
def database_url(tmp_path) -> str:
    """SQLite store URL in a temporary directory (schema not applied)."""
    return f"sqlite:///{tmp_path / 'sqlite' / 'G2C.db'}"


@pytest.fixture
def engine_configuration_json(database_url) -> str:
    return build_engine_configuration_json(database_url)


@pytest.fixture
def initialized_store(database_url) -> str:
    """SQLite store with the schema applied; returns its URL."""
    init_database(database_url).dispose()
    return database_url


@pytest.fixture
def wait_for_messages():
    """Poll a NullObserver until it holds `count` messages; returns them parsed."""

    def wait(observer, count: int, timeout: float = 2.0):
        deadline = time.monotonic() + timeout
        while len(observer.messages) < count and time.monotonic() < deadline:
            time.sleep(0.01)
        return [json.loads(m) for m in list(observer.messages)]

    return wait
