from typing import List, Tuple

from PIL import ImageFont

from constants import DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE, DEFAULT_TEXT_WIDTH
from shapes.base_shape import Shape, coerce_bool, coerce_number, coerce_text, resolve_color
from utils.geometry import rect_contains

LINE_HEIGHT = 1.2  # multiple of the font size used for hit-testing only


def wrap_lines(text: str, font: ImageFont.ImageFont, max_width: float) -> List[str]:
    """
    Word-wraps text to max_width pixels, keeping explicit line breaks. A word
    wider than the box is placed on its own line rather than split.
    """
    lines: List[str] = []
    for paragraph in (text or '').split('\n'):
        words = paragraph.split(' ')
        current = ''
        for word in words:
            candidate = f"{current} {word}" if current else word
            if current and font.getlength(candidate) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


class Text(Shape):
    shape_type = 'text'
    fields = {
        'text': ('text', coerce_text),
        'width': ('width', coerce_number),
        'font_size': ('fontSize', coerce_number),
        'font_family': ('fontFamily', coerce_text),
        'is_bold': ('isBold', coerce_bool),
    }

    @property
    def wrap_width(self) -> float:
        return coerce_number(self.width) or DEFAULT_TEXT_WIDTH

    @property
    def size(self) -> float:
        return coerce_number(self.font_size) or DEFAULT_FONT_SIZE

    @property
    def get_bbox(self) -> Tuple[float, float, float, float]:
        line_count = max(1, (self.text or '').count('\n') + 1)
        return (self.x, self.y, self.x + self.wrap_width, self.y + line_count * self.size * LINE_HEIGHT)

    def draw_shape(self, image, draw, surface):
        if not self.text:
            return
        font = surface.font(self.font_family or DEFAULT_FONT_FAMILY, self.size, bool(self.is_bold))
        color = resolve_color(self.fill, default=(0, 0, 0, 255))
        y = self.y
        for line in wrap_lines(str(self.text), font, self.wrap_width):
            draw.text((self.x, y), line, font=font, fill=color)
            y += self.size

    def contains_point(self, x: float, y: float) -> bool:
        return rect_contains(self.get_bbox, x, y)
