import math
from typing import Tuple

from shapes.base_shape import Shape, coerce_number, resolve_color


class Circle(Shape):
    """A circle positioned by its center (x, y)."""

    shape_type = 'circle'
    fields = {
        'radius': ('radius', coerce_number),
    }

    @property
    def get_bbox(self) -> Tuple[float, float, float, float]:
        r = abs(coerce_number(self.radius) or 0)
        return (self.x - r, self.y - r, self.x + r, self.y + r)

    def draw_shape(self, image, draw, surface):
        x0, y0, x1, y1 = self.get_bbox
        if x1 == x0:
            return
        outline = resolve_color(self.stroke)
        stroke_width = int(round(coerce_number(self.stroke_width) or 1))
        draw.ellipse([x0, y0, x1, y1],
                     fill=resolve_color(self.fill),
                     outline=outline,
                     width=stroke_width if outline else 0)

    def contains_point(self, x: float, y: float) -> bool:
        r = abs(coerce_number(self.radius) or 0)
        return math.hypot(x - self.x, y - self.y) <= r
