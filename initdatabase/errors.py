"""
Exception types raised by init-database.
"""


class InitDatabaseError(Exception):
    """Base class for init-database errors."""
    pass


class ConfigurationError(InitDatabaseError):
    """Raised when the engine configuration or CLI input is unusable."""
    pass


class InvalidLogLevelError(InitDatabaseError, ValueError):
    """Raised when a log level name is not one of the supported levels."""

    def __init__(self, level_name: str):
        super().__init__(f"invalid log level: {level_name}")
        self.level_name = level_name


class ObserverNotFoundError(InitDatabaseError, KeyError):
    """Raised when unregistering an observer that is not registered."""

    def __init__(self, observer_id: str):
        super().__init__(observer_id)
        self.observer_id = observer_id

    def __str__(self):
        return f"observer not found: {self.observer_id}"


class DataSourceError(InitDatabaseError):
    """Raised when a data source cannot be added to a configuration."""
    pass


class ConfigNotFoundError(InitDatabaseError):
    """Raised when a configuration ID does not exist in the store."""

    def __init__(self, config_id: int):
        super().__init__(f"configuration not found: {config_id}")
        self.config_id = config_id


class OperationCancelledError(InitDatabaseError):
    """Raised when the caller's context was cancelled."""
    pass


class DeadlineExceededError(OperationCancelledError):
    """Raised when the caller's context deadline has passed."""
    pass
