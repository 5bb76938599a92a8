from abc import ABC, abstractmethod


class TimerAdapter(ABC):
    """Named repeating timers. Starting a name that is already running replaces it."""

    @abstractmethod
    def start(self, name: str, period_s: float, fn) -> None:
        ...

    @abstractmethod
    def cancel(self, name: str) -> None:
        ...

    @abstractmethod
    def active(self, name: str) -> bool:
        ...

    def cancel_all(self) -> None:
        for name in list(self.names()):
            self.cancel(name)

    @abstractmethod
    def names(self) -> list[str]:
        ...
