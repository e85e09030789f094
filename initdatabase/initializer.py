"""
Top-level initialization: schema first, then the default configuration.
"""

import json
import time
from typing import List, Optional

from .configinit import ConfigInitializer
from .context import Context
from .errors import InvalidLogLevelError
from .logger import instance_logger, is_valid_level_name
from .observer import HttpObserver, Observer
from .schema import SchemaLoader
from .sdk import SdkAbstractFactory

HTTP_OBSERVER_ID = "init-database-http-observer"


class Initializer:
    """
    Prepares a store for the resolution engine.

    Runs the schema loader and then ConfigInitializer.initialize_config().
    When ``observer_url`` is set, an HttpObserver is registered so lifecycle
    events are POSTed to that URL.
    """

    def __init__(
        self,
        engine_configuration_json: str,
        data_sources: Optional[List[str]] = None,
        module_name: str = "",
        verbose_logging: int = 0,
        log_level: str = "INFO",
        observer_origin: str = "",
        observer_url: str = "",
        factory: Optional[SdkAbstractFactory] = None,
    ):
        self.engine_configuration_json = engine_configuration_json
        self.data_sources = list(data_sources or [])
        self.log_level = log_level
        self.observer_origin = observer_origin
        self.observer_url = observer_url
        self.logger = instance_logger("initdatabase.initializer")
        self.schema_loader = SchemaLoader(engine_configuration_json)
        self.config_initializer = ConfigInitializer(
            engine_configuration_json,
            data_sources=self.data_sources,
            module_name=module_name,
            verbose_logging=verbose_logging,
            factory=factory,
        )

    def register_observer(self, ctx: Context, observer: Observer) -> None:
        self.config_initializer.register_observer(ctx, observer)

    def unregister_observer(self, ctx: Context, observer: Observer) -> None:
        self.config_initializer.unregister_observer(ctx, observer)

    def destroy(self, ctx: Context) -> None:
        self.config_initializer.destroy(ctx)

    def set_log_level(self, ctx: Context, log_level_name: str) -> None:
        """
        Raises:
            InvalidLogLevelError: If log_level_name is not a supported level
        """
        if not is_valid_level_name(log_level_name):
            raise InvalidLogLevelError(log_level_name)
        self.logger.set_level(log_level_name)
        self.log_level = log_level_name
        self.schema_loader.set_log_level(ctx, log_level_name)
        self.config_initializer.set_log_level(ctx, log_level_name)

    def initialize(self, ctx: Context) -> int:
        """
        Apply the schema and install the default configuration.

        Returns:
            The default configuration ID
        """
        start = time.monotonic()
        if self.observer_origin:
            self.config_initializer.set_observer_origin(ctx, self.observer_origin)
        if self.observer_url:
            self.register_observer(ctx, HttpObserver(HTTP_OBSERVER_ID, self.observer_url))

        self.set_log_level(ctx, self.log_level)
        if self.logger.is_trace():
            self.logger.log(60)
        if self.logger.is_debug():
            self.logger.log(1005, json.dumps({
                "dataSources": self.data_sources,
                "logLevel": self.log_level,
                "observerOrigin": self.observer_origin,
                "observerUrl": self.observer_url,
            }))

        self.schema_loader.initialize(ctx)
        config_id = self.config_initializer.initialize_config(ctx)

        if self.logger.is_trace():
            self.logger.log(69, time.monotonic() - start)
        return config_id
