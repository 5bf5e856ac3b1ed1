from typing import List, Tuple

from shapes.base_shape import Shape, coerce_number, coerce_points, resolve_color
from utils.geometry import distance_to_segment, pairs, points_bbox, translate_points

HIT_TOLERANCE = 10  # half of the editor's hit stroke width


class Line(Shape):
    """
    A polyline through `points` ([x1, y1, x2, y2, ...]). The points are
    offset by the shape position, so dragging a line moves x/y and leaves
    the points alone.
    """

    shape_type = 'line'
    fields = {
        'points': ('points', coerce_points),
    }

    def absolute_points(self) -> List[float]:
        points = [coerce_number(p) or 0 for p in (self.points or [])]
        return translate_points(points, self.x or 0, self.y or 0)

    @property
    def get_bbox(self) -> Tuple[float, float, float, float]:
        return points_bbox(self.absolute_points())

    def draw_shape(self, image, draw, surface):
        xy = pairs(self.absolute_points())
        if len(xy) < 2:
            return
        color = resolve_color(self.stroke, default=(0, 0, 0, 255))
        width = int(round(coerce_number(self.stroke_width) or 1))
        draw.line(xy, fill=color, width=max(1, width))

    def contains_point(self, x: float, y: float) -> bool:
        xy = pairs(self.absolute_points())
        return any(distance_to_segment(x, y, a, b) <= HIT_TOLERANCE
                   for a, b in zip(xy, xy[1:]))
