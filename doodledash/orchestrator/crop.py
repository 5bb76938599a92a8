"""
Square crop around the sketch bounding box, fed to the classifier.

The shorter side of the box is grown to match the longer one, re-centred on
the original box centre, then padded on all sides. The origin is clamped so
the crop never starts at a negative coordinate (or runs past the far edge).
"""
import math

import numpy as np

from doodledash.orchestrator.contracts import BoundingBox, SketchImage


def crop_region(bbox: BoundingBox | None, padding: float,
                canvas_width: int, canvas_height: int) -> tuple[int, int, int] | None:
    """Return (x, y, size) of the square region, or None if nothing is drawn."""
    if bbox is None:
        return None

    left, top = bbox.min_x, bbox.min_y
    width, height = bbox.width, bbox.height
    size = 2 * padding

    if width >= height:
        size += width
        top -= (width - height) / 2
    else:
        size += height
        left -= (height - width) / 2

    x = min(max(left - padding, 0), max(canvas_width - size, 0))
    y = min(max(top - padding, 0), max(canvas_height - size, 0))
    return int(math.floor(x)), int(math.floor(y)), int(math.ceil(size))


def extract(image: np.ndarray, bbox: BoundingBox | None, padding: float) -> SketchImage | None:
    region = crop_region(bbox, padding, image.shape[1], image.shape[0])
    if region is None:
        return None
    x, y, size = region
    out = np.zeros((size, size), dtype=image.dtype)
    patch = image[y:y + size, x:x + size]
    out[:patch.shape[0], :patch.shape[1]] = patch
    return out
