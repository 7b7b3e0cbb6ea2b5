"""Base class shared by the page observers."""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class BaseObserver:
    """Callback registry and lifecycle flags common to every observer.

    Subclasses implement ``start`` and ``stop`` and call ``_emit`` with each
    event they produce. Callback errors are logged and never propagate back
    into the observer's listener or timer.
    """

    name = "observer"

    def __init__(self):
        self._callbacks: List[Callable[[Any], None]] = []
        self._running = False
        self._emitted = 0

    def add_callback(self, callback: Callable[[Any], None]) -> None:
        """Add callback to be called with every emitted event.

        Args:
            callback: Function to call with the event
        """
        self._callbacks.append(callback)

    def _emit(self, event: Any) -> None:
        self._emitted += 1
        for callback in self._callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in {self.name} callback: {e}")

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def get_stats(self) -> Dict[str, Any]:
        return {
            'observer': self.name,
            'running': self._running,
            'events_emitted': self._emitted,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(running={self._running}, emitted={self._emitted})"
