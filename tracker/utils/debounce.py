"""Trailing-edge debounce on top of a Scheduler."""

from typing import Any, Callable, Optional

from ..browser.ports import Handle, Scheduler


class Debouncer:
    """Calls ``fn`` once a burst of calls has been quiet for ``delay_ms``.

    The arguments of the last call in the burst are used.
    """

    def __init__(self, fn: Callable[..., Any], delay_ms: float, scheduler: Scheduler):
        self._fn = fn
        self.delay_ms = delay_ms
        self.scheduler = scheduler
        self._pending: Optional[Handle] = None
        self._args: tuple = ()
        self._kwargs: dict = {}

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._args = args
        self._kwargs = kwargs
        self._pending = self.scheduler.call_later(self.delay_ms, self._fire)

    def _fire(self) -> None:
        self._pending = None
        args, kwargs = self._args, self._kwargs
        self._args, self._kwargs = (), {}
        self._fn(*args, **kwargs)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._args, self._kwargs = (), {}

    def flush(self) -> None:
        """Run a pending call immediately."""
        if self._pending is not None:
            self._pending.cancel()
            self._fire()
