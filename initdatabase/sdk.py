"""
Engine SDK surface used by the initializer.

Defines the Config Builder / Config Manager capabilities and the abstract
factory that produces them, plus the local implementation: an in-memory
Config Builder and a Config Manager that persists configurations in the
SQLAlchemy store created by ``database.init_database``.
"""

import itertools
import json
import threading
from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine

from . import __version__
from .context import Context
from .database import ConfigRecord, DefaultConfig, DEFAULT_CONFIG_ROW, get_engine, get_session
from .engineconfig import get_database_url
from .errors import ConfigNotFoundError, ConfigurationError, DataSourceError, InitDatabaseError
from .logger import instance_logger, level_name

# Handles of this kind are initialized directly by their owner.
BASE_KIND = "base"

# Data sources present in every fresh configuration.
BUILTIN_DATA_SOURCES = ["TEST", "SEARCH"]

MAX_DATA_SOURCE_CODE_LENGTH = 25


def default_config() -> Dict[str, Any]:
    """Template for a fresh configuration."""
    return {
        "G2_CONFIG": {
            "CFG_DSRC": [
                {"DSRC_ID": i, "DSRC_CODE": code, "DSRC_DESC": code}
                for i, code in enumerate(BUILTIN_DATA_SOURCES, start=1)
            ],
            "CONFIG_BASE_VERSION": {
                "VERSION": __version__,
                "COMPATIBILITY_VERSION": {"CONFIG_VERSION": "10"},
            },
        }
    }


class ConfigBuilder(ABC):
    """Builds configurations in memory and serializes them."""

    kind = BASE_KIND

    def init(self, module_name: str, engine_configuration_json: str, verbose_logging: int) -> None:
        pass

    @abstractmethod
    def create(self, ctx: Context) -> int:
        """Create a fresh configuration and return its handle."""

    @abstractmethod
    def add_data_source(self, ctx: Context, config_handle: int, data_source_json: str) -> str:
        """Add a data source described by {"DSRC_CODE": ...}; returns {"DSRC_ID": n}."""

    @abstractmethod
    def save(self, ctx: Context, config_handle: int) -> str:
        """Serialize the configuration behind a handle."""

    @abstractmethod
    def close(self, ctx: Context, config_handle: int) -> None:
        """Release a handle returned by create()."""

    @abstractmethod
    def set_log_level(self, ctx: Context, log_level: int) -> None:
        pass

    def destroy(self) -> None:
        pass


class ConfigManager(ABC):
    """Persists configurations and tracks which one is the default."""

    kind = BASE_KIND

    def init(self, module_name: str, engine_configuration_json: str, verbose_logging: int) -> None:
        pass

    def destroy(self) -> None:
        pass

    @abstractmethod
    def get_default_config_id(self, ctx: Context) -> int:
        """Default configuration ID, or 0 when none is set."""

    @abstractmethod
    def add_config(self, ctx: Context, config_str: str, config_comments: str) -> int:
        """Persist a serialized configuration and return its new ID."""

    @abstractmethod
    def set_default_config_id(self, ctx: Context, config_id: int) -> None:
        pass

    @abstractmethod
    def set_log_level(self, ctx: Context, log_level: int) -> None:
        pass


class SdkAbstractFactory(ABC):
    """Produces the dependent services for one deployment style."""

    @abstractmethod
    def get_config_builder(self, ctx: Context) -> ConfigBuilder:
        pass

    @abstractmethod
    def get_config_manager(self, ctx: Context) -> ConfigManager:
        pass


# --- Local implementation ----------------------------------------------------


class LocalConfigBuilder(ConfigBuilder):
    """
    In-memory Config Builder.

    Each handle owns an independent copy of the default configuration.
    """

    def __init__(self):
        self.logger = instance_logger("initdatabase.sdk.configbuilder")
        self.module_name: Optional[str] = None
        self.verbose_logging = 0
        self._configs: Dict[int, Dict[str, Any]] = {}
        self._handles = itertools.count(1)
        self._lock = threading.Lock()
        self._initialized = False

    def init(self, module_name: str, engine_configuration_json: str, verbose_logging: int) -> None:
        if not engine_configuration_json:
            raise ConfigurationError("Engine configuration JSON is empty")
        self.module_name = module_name
        self.verbose_logging = verbose_logging
        self._initialized = True
        self.logger.debug("Config builder initialized", module_name=module_name)

    def _check(self, ctx: Context):
        ctx.check()
        if not self._initialized:
            raise InitDatabaseError("Config builder used before init()")

    def _config(self, config_handle: int) -> Dict[str, Any]:
        try:
            return self._configs[config_handle]
        except KeyError:
            raise InitDatabaseError(f"Unknown configuration handle: {config_handle}") from None

    def create(self, ctx: Context) -> int:
        self._check(ctx)
        with self._lock:
            config_handle = next(self._handles)
            self._configs[config_handle] = default_config()
        return config_handle

    def add_data_source(self, ctx: Context, config_handle: int, data_source_json: str) -> str:
        self._check(ctx)
        try:
            request = json.loads(data_source_json)
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Data source descriptor is not valid JSON: {e}") from e
        code = request.get("DSRC_CODE") if isinstance(request, dict) else None
        if not isinstance(code, str) or not code.strip():
            raise DataSourceError("DSRC_CODE must be a non-empty string")
        if len(code) > MAX_DATA_SOURCE_CODE_LENGTH:
            raise DataSourceError(f"DSRC_CODE longer than {MAX_DATA_SOURCE_CODE_LENGTH} characters: {code}")

        with self._lock:
            data_sources = self._config(config_handle)["G2_CONFIG"]["CFG_DSRC"]
            for data_source in data_sources:
                if data_source["DSRC_CODE"] == code:
                    return json.dumps({"DSRC_ID": data_source["DSRC_ID"]})
            dsrc_id = max((d["DSRC_ID"] for d in data_sources), default=0) + 1
            data_sources.append({"DSRC_ID": dsrc_id, "DSRC_CODE": code, "DSRC_DESC": code})
        return json.dumps({"DSRC_ID": dsrc_id})

    def save(self, ctx: Context, config_handle: int) -> str:
        self._check(ctx)
        with self._lock:
            snapshot = deepcopy(self._config(config_handle))
        return json.dumps(snapshot)

    def close(self, ctx: Context, config_handle: int) -> None:
        with self._lock:
            self._configs.pop(config_handle, None)

    def set_log_level(self, ctx: Context, log_level: int) -> None:
        ctx.check()
        self.logger.set_level(level_name(log_level))

    def destroy(self) -> None:
        """Drop every open configuration."""
        with self._lock:
            self._configs.clear()


class SqlConfigManager(ConfigManager):
    """Config Manager backed by the sys_cfg / sys_default_cfg tables."""

    def __init__(self):
        self.logger = instance_logger("initdatabase.sdk.configmanager")
        self.module_name: Optional[str] = None
        self._engine: Optional[Engine] = None

    def init(self, module_name: str, engine_configuration_json: str, verbose_logging: int) -> None:
        database_url = get_database_url(engine_configuration_json)
        self.module_name = module_name
        self._engine = get_engine(database_url)
        self.logger.debug("Config manager initialized", module_name=module_name)

    def destroy(self) -> None:
        """Close pooled connections. The manager reconnects if used again."""
        if self._engine is not None:
            self._engine.dispose()

    def _session(self, ctx: Context):
        ctx.check()
        if self._engine is None:
            raise InitDatabaseError("Config manager used before init()")
        return get_session(self._engine)

    def get_default_config_id(self, ctx: Context) -> int:
        with self._session(ctx) as session:
            row = session.get(DefaultConfig, DEFAULT_CONFIG_ROW)
            return row.config_id if row is not None else 0

    def add_config(self, ctx: Context, config_str: str, config_comments: str) -> int:
        try:
            json.loads(config_str)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Configuration is not valid JSON: {e}") from e
        with self._session(ctx) as session:
            record = ConfigRecord(config_data=config_str, config_comments=config_comments)
            session.add(record)
            session.commit()
            return record.config_id

    def set_default_config_id(self, ctx: Context, config_id: int) -> None:
        with self._session(ctx) as session:
            if session.get(ConfigRecord, config_id) is None:
                raise ConfigNotFoundError(config_id)
            row = session.get(DefaultConfig, DEFAULT_CONFIG_ROW)
            if row is None:
                session.add(DefaultConfig(row_id=DEFAULT_CONFIG_ROW, config_id=config_id))
            else:
                row.config_id = config_id
            session.commit()

    def get_config(self, ctx: Context, config_id: int) -> str:
        """Serialized configuration for an ID."""
        with self._session(ctx) as session:
            record = session.get(ConfigRecord, config_id)
            if record is None:
                raise ConfigNotFoundError(config_id)
            return record.config_data

    def get_config_list(self, ctx: Context) -> str:
        """JSON list of stored configurations, oldest first."""
        with self._session(ctx) as session:
            records = session.query(ConfigRecord).order_by(ConfigRecord.config_id).all()
            configs = [
                {
                    "CONFIG_ID": r.config_id,
                    "CONFIG_COMMENTS": r.config_comments,
                    "SYS_CREATE_DT": r.created_at.isoformat(),
                }
                for r in records
            ]
        return json.dumps({"CONFIGS": configs})

    def set_log_level(self, ctx: Context, log_level: int) -> None:
        ctx.check()
        self.logger.set_level(level_name(log_level))


class LocalSdkFactory(SdkAbstractFactory):
    """Factory for the in-process services. Handles are of the base kind."""

    def get_config_builder(self, ctx: Context) -> ConfigBuilder:
        ctx.check()
        return LocalConfigBuilder()

    def get_config_manager(self, ctx: Context) -> ConfigManager:
        ctx.check()
        return SqlConfigManager()
