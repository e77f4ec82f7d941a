"""Simple pub-sub event helper."""
from __future__ import annotations

import types
import weakref
from collections.abc import Callable


def _ref(fn: Callable) -> Callable[[], Callable | None]:
    # Bound methods are held weakly so a subscriber can be garbage collected.
    if isinstance(fn, types.MethodType):
        return weakref.WeakMethod(fn)
    return lambda: fn


class EventHook:
    """Callbacks registered on one object and fired in subscription order."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[[], Callable | None]] = []

    def _live(self) -> list[Callable]:
        alive = []
        for ref in list(self._callbacks):
            fn = ref()
            if fn is None:
                self._callbacks.remove(ref)
            else:
                alive.append(fn)
        return alive

    def subscribe(self, fn: Callable) -> None:
        """Register *fn* to be called when the event is emitted."""
        self._callbacks.append(_ref(fn))

    def unsubscribe(self, fn: Callable) -> None:
        """Remove *fn*; unknown callbacks are ignored."""
        for ref in list(self._callbacks):
            if ref() == fn:
                self._callbacks.remove(ref)
                return

    def emit(self, *args, **kwargs) -> None:
        """Emit the event, calling all subscribed callbacks."""
        for fn in self._live():
            fn(*args, **kwargs)

    def __len__(self) -> int:
        return len(self._live())
