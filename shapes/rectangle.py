from typing import Tuple

from shapes.base_shape import Shape, coerce_number, resolve_color
from utils.geometry import rect_contains


class Rectangle(Shape):
    shape_type = 'rectangle'
    fields = {
        'width': ('width', coerce_number),
        'height': ('height', coerce_number),
    }

    @property
    def get_bbox(self) -> Tuple[float, float, float, float]:
        w = coerce_number(self.width) or 0
        h = coerce_number(self.height) or 0
        return (self.x, self.y, self.x + w, self.y + h)

    def draw_shape(self, image, draw, surface):
        x0, y0, x1, y1 = self.get_bbox
        if x1 == x0 or y1 == y0:
            return
        # PIL needs the top-left corner first even for negative sizes
        box = [min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)]
        stroke_width = int(round(coerce_number(self.stroke_width) or 1))
        outline = resolve_color(self.stroke)
        draw.rectangle(box,
                       fill=resolve_color(self.fill),
                       outline=outline,
                       width=stroke_width if outline else 0)

    def contains_point(self, x: float, y: float) -> bool:
        return rect_contains(self.get_bbox, x, y)
