"""Manual timer: nothing fires until fire() is called. Used by tests and scripted play."""
from doodledash.adapters.timer.base import TimerAdapter


class ManualTimer(TimerAdapter):
    def __init__(self, status_store=None):
        self.status = status_store
        self._timers: dict[str, tuple[float, object]] = {}

    def start(self, name: str, period_s: float, fn) -> None:
        self._timers[name] = (period_s, fn)

    def cancel(self, name: str) -> None:
        self._timers.pop(name, None)

    def active(self, name: str) -> bool:
        return name in self._timers

    def names(self) -> list[str]:
        return list(self._timers)

    def period(self, name: str) -> float | None:
        entry = self._timers.get(name)
        return entry[0] if entry else None

    def fire(self, name: str, times: int = 1) -> int:
        """Run the callback up to `times` times; stops early if it gets cancelled."""
        fired = 0
        for _ in range(times):
            entry = self._timers.get(name)
            if entry is None:
                break
            entry[1]()
            fired += 1
        return fired
