import random

import pytest

from doodledash.orchestrator.config import GameConfig
from doodledash.orchestrator.contracts import BoundingBox, PointerEvent
from doodledash.orchestrator.stroke_tracker import StrokeTracker

from conftest import StepClock


def make_tracker(status, step=10, **overrides):
    cfg = dict(canvas_size=1000, viewport_width=1000, viewport_height=1000,
               brush_size=10, throttle_ms=10, edge_margin_frac=0.1)
    cfg.update(overrides)
    changes = []
    tracker = StrokeTracker(GameConfig(**cfg), status, on_change=lambda: changes.append(1),
                            clock=StepClock(step=step))
    return tracker, changes


def test_empty_until_first_point(status):
    tracker, changes = make_tracker(status)
    assert tracker.bbox is None
    assert tracker.get_cropped_image() is None
    assert tracker.start(PointerEvent(200, 300))
    assert tracker.bbox == BoundingBox(195, 295, 205, 305)
    assert changes == [1]
    assert tracker.image[300, 200] == 255


def test_start_inside_edge_margin_is_ignored(status):
    tracker, changes = make_tracker(status)
    assert not tracker.start(PointerEvent(50, 500))
    assert not tracker.start(PointerEvent(500, 950))
    assert tracker.bbox is None
    assert not tracker.is_drawing
    assert changes == []
    assert sum("inside edge margin" in line for line in status.logs) == 2


def test_move_without_stroke_is_noop(status):
    tracker, changes = make_tracker(status)
    assert not tracker.move(PointerEvent(400, 400))
    assert tracker.bbox is None
    assert tracker.get_elapsed_drawing_time() == 0
    assert changes == []


def test_moves_expand_box_and_accumulate_time(status):
    tracker, changes = make_tracker(status)
    tracker.start(PointerEvent(200, 200))
    tracker.move(PointerEvent(300, 250))
    tracker.move(PointerEvent(250, 400))
    assert tracker.bbox == BoundingBox(195, 195, 305, 405)
    assert tracker.get_elapsed_drawing_time() == 20
    assert len(changes) == 3


def test_filtered_move_leaves_box_and_clock_alone(status):
    tracker, _ = make_tracker(status)
    tracker.start(PointerEvent(200, 200))
    assert not tracker.move(PointerEvent(950, 500))
    assert tracker.bbox == BoundingBox(195, 195, 205, 205)
    assert tracker.get_elapsed_drawing_time() == 0
    # stroke is still live after a glitch
    assert tracker.move(PointerEvent(210, 210))


def test_throttle_counts_only_processed_moves(status):
    tracker, _ = make_tracker(status, step=0)      # frozen clock
    tracker.start(PointerEvent(200, 200))
    assert tracker.move(PointerEvent(210, 210))
    assert not tracker.move(PointerEvent(220, 220))
    assert not tracker.move(PointerEvent(230, 230))
    assert tracker.get_elapsed_drawing_time() == 10
    assert tracker.bbox == BoundingBox(195, 195, 215, 215)


def test_stop_is_idempotent(status):
    tracker, _ = make_tracker(status)
    tracker.start(PointerEvent(200, 200))
    tracker.stop()
    tracker.stop()
    assert not tracker.move(PointerEvent(300, 300))
    assert tracker.bbox == BoundingBox(195, 195, 205, 205)


def test_clear_keeps_or_resets_clock(status):
    tracker, _ = make_tracker(status)
    tracker.start(PointerEvent(200, 200))
    tracker.move(PointerEvent(300, 300))
    tracker.clear()
    assert tracker.bbox is None
    assert not tracker.is_drawing
    assert tracker.image.max() == 0
    assert tracker.get_elapsed_drawing_time() == 10
    tracker.clear(reset_timer=True)
    assert tracker.get_elapsed_drawing_time() == 0


def test_viewport_offset_and_safe_area(status):
    tracker, _ = make_tracker(status, viewport_width=800, viewport_height=600)
    assert tracker.to_canvas(PointerEvent(300, 300)) == (400, 500)
    assert tracker.to_canvas(PointerEvent(300, 300, touch=True, safe_area_offset=20)) == (400, 480)
    # safe-area correction applies to touch input only
    assert tracker.to_canvas(PointerEvent(300, 300, touch=False, safe_area_offset=20)) == (400, 500)


def test_disabled_tracker_ignores_input(status):
    tracker, changes = make_tracker(status)
    tracker.disabled = True
    assert not tracker.start(PointerEvent(200, 200))
    assert tracker.bbox is None
    assert changes == []


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_box_is_min_max_of_accepted_points(status, seed):
    tracker, _ = make_tracker(status)
    rng = random.Random(seed)
    accepted = [(500.0, 500.0)]
    tracker.start(PointerEvent(500, 500))
    for _ in range(200):
        x, y = rng.uniform(0, 1000), rng.uniform(0, 1000)
        if tracker.move(PointerEvent(x, y)):
            accepted.append((x, y))
        else:
            assert not (100 <= x <= 900 and 100 <= y <= 900)
    r = 5
    expected = BoundingBox(
        min(x for x, _ in accepted) - r, min(y for _, y in accepted) - r,
        max(x for x, _ in accepted) + r, max(y for _, y in accepted) + r,
    )
    assert tracker.bbox == expected
    assert tracker.get_elapsed_drawing_time() == 10 * (len(accepted) - 1)
