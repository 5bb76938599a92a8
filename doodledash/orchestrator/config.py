"""
Game constants. Fixed for the lifetime of a session.

Every field can be overridden with a DOODLE_<FIELD> env var, e.g.
DOODLE_LIVES=5 or DOODLE_BANNED_LABELS="bat,circle,van".
"""
import os
from dataclasses import dataclass, field, fields

from doodledash.orchestrator import labels as L


@dataclass
class GameConfig:
    lives: int = 3
    countdown: int = 3                        # seconds
    level_timer_ms: float = 20_000            # drawing-time budget per target
    level_timer_reducer_ms: float = 500       # budget shrinks by this after each correct guess
    level_timer_floor_ms: float = 5_000
    prediction_refresh_ms: float = 100        # classification poll period
    throttle_ms: float = 10                   # one move event per quantum
    reject_time_delay_ms: float = 3_000
    reject_time_per_label_ms: float = 3_000
    start_reject_threshold: float = 0.2
    win_threshold: int = 10
    banned_labels: frozenset = field(default_factory=lambda: frozenset(L.BANNED_LABELS))

    # canvas geometry
    canvas_size: int = 1024                   # square canvas, >= max(viewport w, h)
    viewport_width: int = 1024
    viewport_height: int = 768
    brush_size: int = 16
    sketch_padding: int = 4
    edge_margin_frac: float = 0.1

    correct_flash_ms: float = 400
    pump_ms: float = 20                       # idle pump draining classifier messages

    def __post_init__(self):
        if self.canvas_size < max(self.viewport_width, self.viewport_height):
            raise ValueError(
                f"canvas_size {self.canvas_size} must cover the viewport "
                f"{self.viewport_width}x{self.viewport_height}"
            )

    @classmethod
    def from_env(cls, prefix: str = "DOODLE_") -> "GameConfig":
        kwargs = {}
        for f in fields(cls):
            raw = os.getenv(prefix + f.name.upper())
            if raw is None or raw == "":
                continue
            if f.name == "banned_labels":
                kwargs[f.name] = frozenset(s.strip() for s in raw.split(",") if s.strip())
            elif f.type is int:
                kwargs[f.name] = int(raw)
            else:
                kwargs[f.name] = float(raw)
        return cls(**kwargs)
