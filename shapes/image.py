from typing import Any, Dict, Optional, Tuple

from constants import DEFAULT_IMAGE_SIZE
from shapes.base_shape import Shape, coerce_number
from utils.geometry import rect_contains


class ImageShape(Shape):
    """
    An image box. `image_key` names the bitmap it shows and `bitmap` holds the
    loaded resource at runtime; neither is ever persisted, the stored record
    only carries an isImage marker.
    """

    shape_type = 'image'
    fields = {
        'width': ('width', coerce_number),
        'height': ('height', coerce_number),
    }

    def __init__(self, sid: Any, image_key: Optional[str] = None, bitmap=None, **kwargs):
        super().__init__(sid, **kwargs)
        self.image_key = image_key
        self.bitmap = bitmap

    def field_names(self):
        return [*super().field_names(), 'image_key', 'bitmap']

    def to_dict(self) -> Dict[str, Any]:
        record = super().to_dict()
        record['isImage'] = True
        return record

    @property
    def box_size(self) -> Tuple[float, float]:
        return (coerce_number(self.width) or DEFAULT_IMAGE_SIZE,
                coerce_number(self.height) or DEFAULT_IMAGE_SIZE)

    @property
    def get_bbox(self) -> Tuple[float, float, float, float]:
        w, h = self.box_size
        return (self.x, self.y, self.x + w, self.y + h)

    def draw_shape(self, image, draw, surface):
        # An unresolved bitmap leaves the box blank
        if self.bitmap is None:
            return
        w, h = self.box_size
        surface.paste_bitmap(image, self.bitmap, (self.x, self.y), (w, h))

    def contains_point(self, x: float, y: float) -> bool:
        return rect_contains(self.get_bbox, x, y)
