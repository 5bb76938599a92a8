import numpy as np
import cv2

from doodledash.orchestrator import crop
from doodledash.orchestrator.config import GameConfig
from doodledash.orchestrator.contracts import BoundingBox, PointerEvent, SketchImage
from doodledash.orchestrator.utils import Throttle, monotonic_ms

INK = 255


class StrokeTracker:
    """
    Owns the sketch canvas, the running bounding box of ink and the
    drawing-time accumulator used as the round clock.

    Pointer events arrive in viewport coordinates and are shifted onto the
    (larger, centred) canvas. Points within the edge margin are dropped as
    glitches. Move events are throttled; each processed move adds exactly one
    throttle quantum to the drawing time.
    """

    def __init__(self, config: GameConfig, status_store, on_change=None, clock=monotonic_ms):
        self.status = status_store
        self.on_change = on_change
        self.disabled = False

        self.width = self.height = config.canvas_size
        self.brush_size = config.brush_size
        self.brush_radius = config.brush_size / 2
        self.padding = config.sketch_padding
        self.margin_x = self.width * config.edge_margin_frac
        self.margin_y = self.height * config.edge_margin_frac
        self.offset_x = (self.width - config.viewport_width) / 2
        self.offset_y = (self.height - config.viewport_height) / 2

        self.quantum_ms = config.throttle_ms
        self._throttle = Throttle(config.throttle_ms, clock)

        self.image = np.zeros((self.height, self.width), dtype=np.uint8)
        self.bbox: BoundingBox | None = None
        self.prev_point = None            # None = no stroke in progress
        self.time_spent_ms = 0.0

    # ── Coordinates ────────────────────────────────────────────────────────

    def to_canvas(self, event: PointerEvent) -> tuple[float, float]:
        y = event.y - event.safe_area_offset if event.touch else event.y
        return event.x + self.offset_x, y + self.offset_y

    def _in_margin(self, x: float, y: float) -> bool:
        return (
            x < self.margin_x
            or y < self.margin_y
            or x > self.width - self.margin_x
            or y > self.height - self.margin_y
        )

    # ── Pointer events ─────────────────────────────────────────────────────

    @property
    def is_drawing(self) -> bool:
        return self.prev_point is not None

    def start(self, event: PointerEvent) -> bool:
        if self.disabled:
            return False
        x, y = self.to_canvas(event)
        if self._in_margin(x, y):
            self.status.log(f"tracker: start at ({x:.0f}, {y:.0f}) inside edge margin, ignored")
            return False

        # single dot so a tap without movement still leaves ink
        cv2.circle(self.image, _px(x, y), max(1, self.brush_size // 2), INK, -1, cv2.LINE_AA)
        self.prev_point = (x, y)
        self._fold(x, y)
        self._changed()
        return True

    def move(self, event: PointerEvent) -> bool:
        if self.disabled or not self._throttle.admit():
            return False
        if not self.is_drawing:
            return False
        x, y = self.to_canvas(event)
        if self._in_margin(x, y):
            return False

        cv2.line(self.image, _px(*self.prev_point), _px(x, y), INK, self.brush_size, cv2.LINE_AA)
        self.prev_point = (x, y)
        self._fold(x, y)
        self.time_spent_ms += self.quantum_ms
        self._changed()
        return True

    def stop(self):
        self.prev_point = None

    # ── Surface used by the round state machine ────────────────────────────

    def get_cropped_image(self) -> SketchImage | None:
        return crop.extract(self.image, self.bbox, self.padding)

    def get_elapsed_drawing_time(self) -> float:
        return self.time_spent_ms

    def clear(self, reset_timer: bool = False):
        self.image = np.zeros_like(self.image)
        self.bbox = None
        self.prev_point = None
        if reset_timer:
            self.time_spent_ms = 0.0
            self._throttle.reset()

    # ── Internal ───────────────────────────────────────────────────────────

    def _fold(self, x: float, y: float):
        if self.bbox is None:
            self.bbox = BoundingBox.around(x, y, self.brush_radius)
        else:
            self.bbox = self.bbox.expand(x, y, self.brush_radius)

    def _changed(self):
        if self.on_change is not None:
            self.on_change()


def _px(x: float, y: float) -> tuple[int, int]:
    return int(round(x)), int(round(y))
