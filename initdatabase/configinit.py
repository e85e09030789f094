"""
Default configuration bootstrap.

ConfigInitializer installs the engine's default configuration into a store
whose schema already exists. It is safe to run repeatedly: when a default
configuration is already set, nothing is written.

Known limitation: the "is a default configuration set?" check and the
writes that follow are not atomic across processes. Two processes started
against the same empty store at the same moment can each add a
configuration; the last one to call set_default_config_id wins.
"""

import json
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from . import PRODUCT_ID
from .context import Context
from .errors import ConfigurationError, InvalidLogLevelError, ObserverNotFoundError
from .logger import TRACE, instance_logger, is_valid_level_name, level_number
from .observer import Observer, ObserverRegistry, notify
from .sdk import BASE_KIND, ConfigBuilder, ConfigManager, LocalSdkFactory, SdkAbstractFactory
from .singleton import SingletonGuard

# Notification event IDs
EVENT_ALREADY_CONFIGURED = 8001
EVENT_CONFIG_CREATED = 8002
EVENT_OBSERVER_REGISTERED = 8003
EVENT_LOG_LEVEL_SET = 8004
EVENT_OBSERVER_UNREGISTERED = 8005


def default_module_name() -> str:
    """Unique module name used when none is configured."""
    return f"init-database-{uuid.uuid4().hex[:12]}"


class ConfigInitializer:
    """
    Creates and activates the default engine configuration exactly once.

    The Config Builder and Config Manager handles are created lazily on first
    use, once per instance, and shared by every operation on the instance.
    """

    def __init__(
        self,
        engine_configuration_json: str,
        data_sources: Optional[List[str]] = None,
        module_name: str = "",
        verbose_logging: int = 0,
        factory: Optional[SdkAbstractFactory] = None,
    ):
        """
        Args:
            engine_configuration_json: Engine configuration, opaque here
            data_sources: Data source codes to add, in order
            module_name: Engine module name (default: generated per instance)
            verbose_logging: Engine verbose logging level
            factory: Source of the dependent services (default: LocalSdkFactory)
        """
        self.engine_configuration_json = engine_configuration_json
        self.data_sources = list(data_sources or [])
        self.module_name = module_name or default_module_name()
        self.verbose_logging = verbose_logging
        self.factory = factory if factory is not None else LocalSdkFactory()
        self.logger = instance_logger("initdatabase.configinit")
        self.log_level = self.logger.level_name
        self.is_trace = self.log_level == "TRACE"
        self.observers: Optional[ObserverRegistry] = None
        self.observer_origin = ""
        self._observers_lock = threading.Lock()
        self._config_builder_guard: SingletonGuard[ConfigBuilder] = SingletonGuard("config builder")
        self._config_manager_guard: SingletonGuard[ConfigManager] = SingletonGuard("config manager")

    # --- Logging -------------------------------------------------------------

    def _trace(self, message_number: int, *details):
        if self.is_trace:
            self.logger.log(message_number, *details)

    def _log_parameters(self, message_number: int):
        if self.logger.is_debug():
            self.logger.log(message_number, json.dumps(self.to_dict()))

    def to_dict(self) -> Dict[str, object]:
        """Non-secret state, for debug logging."""
        return {
            "dataSources": self.data_sources,
            "moduleName": self.module_name,
            "verboseLogging": self.verbose_logging,
            "logLevel": self.log_level,
            "observerOrigin": self.observer_origin,
            "observers": self.observers.observer_ids() if self.observers is not None else [],
        }

    # --- Dependent services --------------------------------------------------

    def _construct(self, ctx: Context, name: str, produce: Callable[[Context], object]):
        handle = produce(ctx)
        if handle.kind == BASE_KIND:
            if not self.engine_configuration_json or not self.engine_configuration_json.strip():
                raise ConfigurationError("Engine configuration JSON is required")
            handle.init(self.module_name, self.engine_configuration_json, self.verbose_logging)
        self.logger.log(1010, name, handle.kind)
        return handle

    def get_config_builder(self, ctx: Context) -> ConfigBuilder:
        """
        The shared Config Builder, constructed on first use.

        Raises:
            OperationCancelledError: If ctx is cancelled; nothing is cached
            Exception: The factory or init() failure, on this and every later call
        """
        ctx.check()
        return self._config_builder_guard.get(
            lambda: self._construct(ctx, "config builder", self.factory.get_config_builder)
        )

    def get_config_manager(self, ctx: Context) -> ConfigManager:
        """
        The shared Config Manager, constructed on first use.

        Raises:
            OperationCancelledError: If ctx is cancelled; nothing is cached
            Exception: The factory or init() failure, on this and every later call
        """
        ctx.check()
        return self._config_manager_guard.get(
            lambda: self._construct(ctx, "config manager", self.factory.get_config_manager)
        )

    def get_dependent_services(self, ctx: Context) -> Tuple[ConfigBuilder, ConfigManager]:
        config_builder = self.get_config_builder(ctx)
        config_manager = self.get_config_manager(ctx)
        return config_builder, config_manager

    def destroy(self, ctx: Context) -> None:
        """Release resources held by the handles constructed so far."""
        for guard in (self._config_builder_guard, self._config_manager_guard):
            handle = guard.value
            if handle is not None:
                handle.destroy()

    # --- Notification --------------------------------------------------------

    def _notify(self, ctx: Context, event_id: int, details: Optional[Dict[str, str]] = None):
        registry = self.observers
        if registry is None:
            return
        notify(ctx, registry, PRODUCT_ID, event_id, details=details, origin=self.observer_origin)

    def has_observers(self) -> bool:
        return self.observers is not None

    # --- Operations ----------------------------------------------------------

    def _add_data_sources(self, ctx: Context, config_builder: ConfigBuilder, config_handle: int):
        for data_source in self.data_sources:
            ctx.check()
            data_source_json = json.dumps({"DSRC_CODE": data_source})
            config_builder.add_data_source(ctx, config_handle, data_source_json)
            self.logger.log(2001, data_source)

    def initialize_config(self, ctx: Context) -> int:
        """
        Create and activate the default configuration unless one exists.

        Steps: acquire services, check for a default configuration, create a
        fresh configuration, add data sources in order, save, persist, set
        as default. A failing step raises and later steps do not run; steps
        already committed are not rolled back.

        Args:
            ctx: Cancellation context

        Returns:
            The default configuration ID, existing or new
        """
        config_id = 0
        entry_time = datetime.now(timezone.utc)
        start = time.monotonic()
        self._trace(10)
        try:
            self._log_parameters(1001)

            config_builder, config_manager = self.get_dependent_services(ctx)

            # Already bootstrapped?
            config_id = config_manager.get_default_config_id(ctx)
            if config_id != 0:
                self.logger.log(2002, config_id)
                self._notify(ctx, EVENT_ALREADY_CONFIGURED)
                return config_id

            config_handle = config_builder.create(ctx)
            try:
                self._add_data_sources(ctx, config_builder, config_handle)
                config_str = config_builder.save(ctx, config_handle)
            finally:
                config_builder.close(ctx, config_handle)

            config_comments = f"Created by init-database at {entry_time.isoformat()}"
            new_config_id = config_manager.add_config(ctx, config_str, config_comments)
            config_manager.set_default_config_id(ctx, new_config_id)
            config_id = new_config_id

            self.logger.log(2003, config_id, config_comments)
            self._notify(ctx, EVENT_CONFIG_CREATED)
            return config_id
        finally:
            self._trace(19, config_id, time.monotonic() - start)

    def set_log_level(self, ctx: Context, log_level_name: str) -> None:
        """
        Set the log level here and on both dependent services.

        The local level changes before the services are updated; if a
        service rejects the level the error is raised and the local level
        stays changed.

        Raises:
            InvalidLogLevelError: If log_level_name is not a supported level
        """
        start = time.monotonic()
        self._trace(40, log_level_name)
        try:
            self._log_parameters(1003)
            if not is_valid_level_name(log_level_name):
                raise InvalidLogLevelError(log_level_name)

            log_level = level_number(log_level_name)
            self.logger.set_level(log_level_name)
            self.log_level = log_level_name
            self.is_trace = log_level == TRACE

            config_builder, config_manager = self.get_dependent_services(ctx)
            config_builder.set_log_level(ctx, log_level)
            config_manager.set_log_level(ctx, log_level)

            self._notify(ctx, EVENT_LOG_LEVEL_SET, {"logLevelName": log_level_name})
        finally:
            self._trace(49, log_level_name, time.monotonic() - start)

    def set_observer_origin(self, ctx: Context, origin: str) -> None:
        """Origin reported in every notification message."""
        start = time.monotonic()
        self._trace(20, origin)
        self.observer_origin = origin
        self._trace(29, origin, time.monotonic() - start)

    def get_observer_origin(self, ctx: Context) -> str:
        return self.observer_origin

    def register_observer(self, ctx: Context, observer: Observer) -> None:
        """Add an observer. Registering the same observer ID twice is a no-op."""
        observer_id = observer.get_observer_id(ctx)
        start = time.monotonic()
        self._trace(30, observer_id)
        try:
            self._log_parameters(1002)
            with self._observers_lock:
                if self.observers is None:
                    self.observers = ObserverRegistry()
                self.observers.register_observer(ctx, observer)
            self._notify(ctx, EVENT_OBSERVER_REGISTERED, {"observerID": observer_id})
        finally:
            self._trace(39, observer_id, time.monotonic() - start)

    def unregister_observer(self, ctx: Context, observer: Observer) -> None:
        """
        Remove an observer.

        The observer is notified of its own removal before it is dropped.
        When the last observer goes, the registry is released.

        Raises:
            ObserverNotFoundError: If the observer is not registered
        """
        observer_id = observer.get_observer_id(ctx)
        start = time.monotonic()
        self._trace(50, observer_id)
        try:
            self._log_parameters(1004)
            with self._observers_lock:
                registry = self.observers
                if registry is None or not registry.has_observer(ctx, observer):
                    raise ObserverNotFoundError(observer_id)

                # Delivery threads snapshot the observer list, so the
                # departing observer still gets this message.
                notify(
                    ctx,
                    registry,
                    PRODUCT_ID,
                    EVENT_OBSERVER_UNREGISTERED,
                    details={"observerID": observer_id},
                    origin=self.observer_origin,
                )
                registry.unregister_observer(ctx, observer)
                if not registry.has_observers(ctx):
                    self.observers = None
        finally:
            self._trace(59, observer_id, time.monotonic() - start)
