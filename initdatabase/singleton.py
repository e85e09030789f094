"""
One-shot construction guard for shared service handles.
"""

import threading
from typing import Callable, Generic, Optional, TypeVar

from .errors import OperationCancelledError

T = TypeVar("T")


class SingletonGuard(Generic[T]):
    """
    Runs a construction callable at most once.

    Concurrent callers block until the single construction finishes and then
    all observe its result. A construction failure is cached and raised to
    every later caller; there is no retry. Cancellation is the exception:
    OperationCancelledError reaches only the caller whose context it came
    from and leaves the guard unconstructed.

    Example:
        guard = SingletonGuard("config builder")
        builder = guard.get(lambda: factory.get_config_builder(ctx))
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._lock = threading.Lock()
        self._done = False
        self._value: Optional[T] = None
        self._error: Optional[Exception] = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def value(self) -> Optional[T]:
        """The constructed value, or None if construction has not succeeded."""
        return self._value

    def get(self, create: Callable[[], T]) -> T:
        """
        Return the guarded value, constructing it on first use.

        Raises:
            Exception: Whatever the first construction raised
        """
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        value = create()
                    except OperationCancelledError:
                        # The caller gave up; the next caller constructs afresh.
                        raise
                    except Exception as e:
                        self._error = e
                    else:
                        self._value = value
                    self._done = True
        if self._error is not None:
            raise self._error
        return self._value
