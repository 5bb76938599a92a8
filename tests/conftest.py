import os

# must be set before doodledash.services.api is imported
os.environ["TIMER_ADAPTER"] = "manual"
os.environ["CLASSIFIER_ADAPTER"] = "mock"

import pytest

from doodledash.services.status_store import StatusStore


class StepClock:
    """Fake clock: returns `now`, then moves it forward by `step`."""

    def __init__(self, start: float = 0.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, dt: float):
        self.now += dt


@pytest.fixture
def status():
    return StatusStore()
