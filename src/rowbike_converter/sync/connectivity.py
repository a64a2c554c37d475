"""Network reachability as an explicit, injectable signal."""

import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[], None]


class ConnectivityMonitor:
    """Tracks whether the remote store is reachable.

    Subscribers are called when the state flips from offline to online, so
    a pending sync can run as soon as the network returns.

    Usage:
        monitor = ConnectivityMonitor()
        unsubscribe = monitor.subscribe(lambda: print("back online"))
        monitor.set_online(False)
        monitor.set_online(True)   # callback fires
        unsubscribe()
    """

    def __init__(self, online: bool = True):
        self._online = online
        self._subscribers: List[ConnectivityCallback] = []
        self._lock = threading.Lock()

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, callback: ConnectivityCallback) -> Callable[[], None]:
        """Register a callback for offline-to-online transitions.

        Returns:
            A function that removes the callback. Calling it twice is a no-op.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        with self._lock:
            came_online = online and not self._online
            self._online = online
            subscribers = list(self._subscribers)

        logger.debug(f"Connectivity changed: {'online' if online else 'offline'}")

        if not came_online:
            return
        for callback in subscribers:
            try:
                callback()
            except Exception as e:
                logger.error(f"Connectivity subscriber failed: {e}")
