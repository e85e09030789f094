"""
Observers and the observer registry.

Notifications are JSON messages delivered on detached threads, one per
observer, so the notifying caller never waits for delivery.
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import requests

from .context import Context
from .errors import ObserverNotFoundError
from .logger import get_logger

logger = get_logger("initdatabase.observer", enable_console=False)


class Observer(ABC):
    """Receives lifecycle notifications."""

    @abstractmethod
    def get_observer_id(self, ctx: Context) -> str:
        pass

    @abstractmethod
    def update_observer(self, ctx: Context, message: str) -> None:
        pass


class NullObserver(Observer):
    """
    Observer that keeps received messages in memory.

    When not silent, each message is also logged at INFO.
    """

    def __init__(self, observer_id: str, is_silent: bool = True):
        self.observer_id = observer_id
        self.is_silent = is_silent
        self.messages: List[str] = []
        self._lock = threading.Lock()

    def get_observer_id(self, ctx: Context) -> str:
        return self.observer_id

    def update_observer(self, ctx: Context, message: str) -> None:
        with self._lock:
            self.messages.append(message)
        if not self.is_silent:
            logger.info(f"Observer {self.observer_id} received message", message=message)


class HttpObserver(Observer):
    """Observer that POSTs each message as JSON to a URL."""

    def __init__(self, observer_id: str, url: str, timeout: float = 10.0):
        self.observer_id = observer_id
        self.url = url
        self.timeout = timeout

    def get_observer_id(self, ctx: Context) -> str:
        return self.observer_id

    def update_observer(self, ctx: Context, message: str) -> None:
        response = requests.post(
            self.url,
            data=message,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()


def build_message(
    subject_id: int,
    message_id: int,
    error: Optional[Exception] = None,
    details: Optional[Dict[str, str]] = None,
    origin: str = "",
) -> str:
    """
    Serialize a notification.

    Args:
        subject_id: Product ID of the notifying component
        message_id: Event ID, e.g. 8002 for "configuration created"
        error: Error attached to the event, if any
        details: String key/value detail
        origin: Observer origin set on the notifier

    Returns:
        JSON message string
    """
    message = {
        "subjectId": str(subject_id),
        "messageId": str(message_id),
    }
    if origin:
        message["originId"] = origin
    if error is not None:
        message["error"] = str(error)
    message["details"] = dict(details or {})
    return json.dumps(message)


def _deliver(ctx: Context, observer: Observer, observer_id: str, message: str):
    try:
        observer.update_observer(ctx, message)
    except Exception as e:
        # No error channel back to the notifier; record and move on.
        logger.log(3001, observer_id, e)


class ObserverRegistry:
    """
    Set of observers keyed by observer ID.
    """

    def __init__(self):
        self._observers: Dict[str, Observer] = {}
        self._lock = threading.Lock()

    def register_observer(self, ctx: Context, observer: Observer) -> None:
        """Add an observer. Registering a known ID again is a no-op."""
        observer_id = observer.get_observer_id(ctx)
        with self._lock:
            self._observers.setdefault(observer_id, observer)

    def unregister_observer(self, ctx: Context, observer: Observer) -> None:
        """
        Remove an observer.

        Raises:
            ObserverNotFoundError: If no observer with that ID is registered
        """
        observer_id = observer.get_observer_id(ctx)
        with self._lock:
            if observer_id not in self._observers:
                raise ObserverNotFoundError(observer_id)
            del self._observers[observer_id]

    def has_observer(self, ctx: Context, observer: Observer) -> bool:
        observer_id = observer.get_observer_id(ctx)
        with self._lock:
            return observer_id in self._observers

    def has_observers(self, ctx: Context) -> bool:
        with self._lock:
            return bool(self._observers)

    def observer_ids(self) -> List[str]:
        with self._lock:
            return list(self._observers)

    def notify_observers(self, ctx: Context, message: str) -> List[threading.Thread]:
        """
        Deliver a message to every observer without waiting.

        Returns:
            The delivery threads, already started
        """
        with self._lock:
            targets = list(self._observers.items())
        threads = []
        for observer_id, observer in targets:
            thread = threading.Thread(
                target=_deliver,
                args=(ctx, observer, observer_id, message),
                name=f"notify-{observer_id}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        return threads


def notify(
    ctx: Context,
    registry: ObserverRegistry,
    subject_id: int,
    message_id: int,
    error: Optional[Exception] = None,
    details: Optional[Dict[str, str]] = None,
    origin: str = "",
) -> List[threading.Thread]:
    """Build a message and fan it out to the registry."""
    message = build_message(subject_id, message_id, error, details, origin)
    return registry.notify_observers(ctx, message)
