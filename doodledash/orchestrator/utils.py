import random
import time


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class Throttle:
    """Admit at most one call per `period_ms`; calls inside the window are dropped."""

    def __init__(self, period_ms: float, clock=monotonic_ms):
        self.period_ms = period_ms
        self.clock = clock
        self.last = None

    def admit(self) -> bool:
        now = self.clock()
        if self.last is not None and now - self.last < self.period_ms:
            return False
        self.last = now
        return True

    def reset(self):
        self.last = None


def shuffled(items, rng: random.Random | None = None) -> list:
    out = list(items)
    (rng or random).shuffle(out)
    return out


def format_time(seconds: float) -> str:
    """Seconds -> 'm:ss' (e.g. 75.3 -> '1:15')."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"
