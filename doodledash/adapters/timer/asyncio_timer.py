"""
Repeating timers on the running asyncio event loop.

Every callback runs on the loop thread, interleaved with request handlers,
so game state needs no locking.
"""
import asyncio

from doodledash.adapters.timer.base import TimerAdapter


class _Repeating:
    def __init__(self, loop, name: str, period_s: float, fn, status_store):
        self.loop = loop
        self.name = name
        self.period_s = period_s
        self.fn = fn
        self.status = status_store
        self.cancelled = False
        self.handle = loop.call_later(period_s, self._fire)

    def _fire(self):
        if self.cancelled:
            return
        # reschedule first: fn() may cancel this timer
        self.handle = self.loop.call_later(self.period_s, self._fire)
        try:
            self.fn()
        except Exception as e:
            self.status.log(f"timer: {self.name} callback error {type(e).__name__}: {e}")

    def cancel(self):
        self.cancelled = True
        self.handle.cancel()


class AsyncioTimer(TimerAdapter):
    def __init__(self, status_store, loop: asyncio.AbstractEventLoop | None = None):
        self.status = status_store
        self._loop = loop
        self._timers: dict[str, _Repeating] = {}

    def start(self, name: str, period_s: float, fn) -> None:
        self.cancel(name)
        loop = self._loop or asyncio.get_running_loop()
        self._timers[name] = _Repeating(loop, name, period_s, fn, self.status)

    def cancel(self, name: str) -> None:
        t = self._timers.pop(name, None)
        if t is not None:
            t.cancel()

    def active(self, name: str) -> bool:
        return name in self._timers

    def names(self) -> list[str]:
        return list(self._timers)
