# geometry.py

import math
from typing import List, Sequence, Tuple

Point = Tuple[float, float]


def snap_value(value: float, grid_size: float) -> float:
    """Rounds a single coordinate to the nearest multiple of grid_size (halves round up)."""
    return math.floor(value / grid_size + 0.5) * grid_size


def snap(point: Point, grid_size: float, enabled: bool = True) -> Point:
    """
    Quantizes a point to the grid. With snapping disabled, or a grid size that
    is not positive, the point is returned unchanged.
    """
    if not enabled or not grid_size or grid_size <= 0:
        return point
    x, y = point
    return (snap_value(x, grid_size), snap_value(y, grid_size))


def translate_points(points: Sequence[float], dx: float, dy: float) -> List[float]:
    """Moves a flat [x1, y1, x2, y2, ...] sequence by dx, dy."""
    moved = list(points)
    for i in range(0, len(moved) - 1, 2):
        moved[i] += dx
        moved[i + 1] += dy
    return moved


def pairs(points: Sequence[float]) -> List[Point]:
    return [(points[i], points[i + 1]) for i in range(0, len(points) - 1, 2)]


def points_bbox(points: Sequence[float]) -> Tuple[float, float, float, float]:
    xy = pairs(points)
    if not xy:
        return (0, 0, 0, 0)
    xs = [p[0] for p in xy]
    ys = [p[1] for p in xy]
    return (min(xs), min(ys), max(xs), max(ys))


def rect_contains(bbox: Tuple[float, float, float, float], x: float, y: float) -> bool:
    x0, y0, x1, y1 = bbox
    return min(x0, x1) <= x <= max(x0, x1) and min(y0, y1) <= y <= max(y0, y1)


def distance_to_segment(px: float, py: float, a: Point, b: Point) -> float:
    ax, ay = a
    bx, by = b
    dx, dy = bx - ax, by - ay
    if dx == 0 and dy == 0:
        return math.hypot(px - ax, py - ay)
    # Project onto the segment and clamp to its ends
    t = ((px - ax) * dx + (py - ay) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))
