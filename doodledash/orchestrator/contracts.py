from dataclasses import dataclass, field
from typing import Optional, Literal

import numpy as np

GameState = Literal["menu", "loading", "countdown", "playing", "end"]

MENU = "menu"
LOADING = "loading"
COUNTDOWN = "countdown"
PLAYING = "playing"
END = "end"

# SketchImage: single-channel uint8 ink buffer, 255 = ink
SketchImage = np.ndarray

@dataclass
class Candidate:
    label: str
    score: float

@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def expand(self, x: float, y: float, radius: float) -> "BoundingBox":
        return BoundingBox(
            min(self.min_x, x - radius),
            min(self.min_y, y - radius),
            max(self.max_x, x + radius),
            max(self.max_y, y + radius),
        )

    @classmethod
    def around(cls, x: float, y: float, radius: float) -> "BoundingBox":
        return cls(x - radius, y - radius, x + radius, y + radius)

@dataclass(frozen=True)
class PointerEvent:
    x: float                       # client/offset x in viewport pixels
    y: float
    touch: bool = False
    # touch only: (target height - body height) / 2, the iOS notch correction
    safe_area_offset: float = 0.0

@dataclass(frozen=True)
class Prediction:
    output: Optional[Candidate]    # top candidate at resolution time, or None
    image: Optional[SketchImage] = field(repr=False, compare=False)
    correct: bool
    target: str
