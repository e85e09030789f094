"""
Schema loader: applies the configuration tables to the store named by the
engine configuration.
"""

import time

from .context import Context
from .database import init_database
from .engineconfig import get_database_url, redact_database_url
from .logger import instance_logger


class SchemaLoader:
    """Creates the store schema. Existing tables are left untouched."""

    def __init__(self, engine_configuration_json: str):
        self.engine_configuration_json = engine_configuration_json
        self.logger = instance_logger("initdatabase.schema")

    def initialize(self, ctx: Context) -> None:
        """
        Apply the schema.

        Raises:
            ConfigurationError: If the engine configuration has no usable SQL.CONNECTION
            OperationCancelledError: If ctx is cancelled first
        """
        entry_time = time.monotonic()
        if self.logger.is_trace():
            self.logger.log(60)
        ctx.check()
        database_url = get_database_url(self.engine_configuration_json)
        engine = init_database(database_url)
        engine.dispose()
        self.logger.log(2004, redact_database_url(database_url))
        if self.logger.is_trace():
            self.logger.log(69, time.monotonic() - entry_time)

    def set_log_level(self, ctx: Context, log_level_name: str) -> None:
        ctx.check()
        self.logger.set_level(log_level_name)
