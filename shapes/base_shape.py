# shapes/base_shape.py

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from PIL import ImageColor

from constants import BINDING_TAGS, TAG_ALIASES, UNKNOWN_TYPE
from errors import ShapeValidationError

logger = logging.getLogger(__name__)


# --- Coercion helpers used by to_dict ----------------------------------------
# Each returns None when the value cannot be coerced, and the field is dropped.

def coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def coerce_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def coerce_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def coerce_points(value: Any) -> Optional[List[float]]:
    if value is None:
        return None
    if isinstance(value, (str, bytes)) or not hasattr(value, '__iter__'):
        raise TypeError(f"points must be a sequence of numbers, got {type(value).__name__}")
    points = [p for p in (coerce_number(v) for v in value) if p is not None]
    return points or None


def resolve_color(value: Optional[str], default: Optional[Tuple[int, int, int, int]] = None):
    """Turns a CSS-style color string into an RGBA tuple; unknown colors give `default`."""
    if not value:
        return default
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError:
        logger.debug(f"resolve_color: Unrecognised color {value!r}")
        return default
    return rgb if len(rgb) == 4 else (*rgb, 255)


def binding_tag_for(sid: Any) -> Optional[str]:
    if not isinstance(sid, str):
        return None
    tag = TAG_ALIASES.get(sid, sid)
    return tag if tag in BINDING_TAGS else None


class Shape:
    """
    Base of the shape union. A shape has a position (x, y), a style and, for
    text and image kinds, content. Subclasses declare their kind in
    `shape_type`, the extra fields they persist in `fields`, and implement
    `draw_shape` and `contains_point`.
    """

    shape_type: str = UNKNOWN_TYPE

    # attr name -> (wire name, coercer); the common part is shared by every kind
    common_fields: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
        'fill': ('fill', coerce_text),
        'stroke': ('stroke', coerce_text),
        'stroke_width': ('strokeWidth', coerce_number),
        'opacity': ('opacity', coerce_number),
    }
    fields: Dict[str, Tuple[str, Callable[[Any], Any]]] = {}

    def __init__(self, sid: Any, x: float = 0, y: float = 0,
                 fill: Optional[str] = None, stroke: Optional[str] = None,
                 stroke_width: Optional[float] = None, opacity: Optional[float] = None,
                 **kwargs):
        self.sid = sid
        self.x = x
        self.y = y
        self.fill = fill
        self.stroke = stroke
        self.stroke_width = stroke_width
        self.opacity = opacity
        unknown = set(kwargs) - set(self.fields)
        if unknown:
            raise TypeError(f"{type(self).__name__} got unexpected fields: {sorted(unknown)}")
        for attr in self.fields:
            setattr(self, attr, kwargs.get(attr))

    def __repr__(self):
        return f"{type(self).__name__}(sid={self.sid!r}, x={self.x!r}, y={self.y!r})"

    @property
    def binding_tag(self) -> Optional[str]:
        return binding_tag_for(self.sid)

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def effective_opacity(self) -> float:
        opacity = coerce_number(self.opacity)
        if opacity is None:
            return 1.0
        return max(0.0, min(1.0, float(opacity)))

    def field_names(self) -> List[str]:
        return ['x', 'y', *self.common_fields, *self.fields]

    def set(self, **changes):
        """Shallow-merges the given attributes into the shape."""
        allowed = set(self.field_names())
        unknown = set(changes) - allowed
        if unknown:
            raise AttributeError(f"{self.shape_type} shape has no fields {sorted(unknown)}")
        for name, value in changes.items():
            setattr(self, name, value)

    def move(self, dx: float, dy: float):
        self.x = (self.x or 0) + dx
        self.y = (self.y or 0) + dy

    def move_to(self, x: float, y: float):
        self.x, self.y = x, y

    def copy(self) -> 'Shape':
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        if isinstance(getattr(self, 'points', None), list):
            clone.points = list(self.points)
        return clone

    # --- Serialization --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Serializes the shape to a record of primitive values, emitting only
        the fields valid for its kind. Fields that fail coercion are dropped.
        Raises ShapeValidationError when the shape cannot be read at all.
        """
        if self.sid is None or self.sid == '':
            raise ShapeValidationError(self.sid, "missing id")
        record: Dict[str, Any] = {
            'id': str(self.sid),
            'type': self.shape_type,
            'x': coerce_number(self.x) or 0,
            'y': coerce_number(self.y) or 0,
        }
        for attr, (wire, coercer) in {**self.common_fields, **self.fields}.items():
            try:
                value = coercer(getattr(self, attr))
            except TypeError as e:
                raise ShapeValidationError(self.sid, f"{attr}: {e}") from e
            if value is not None:
                record[wire] = value
        return record

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Optional['Shape']:
        """Factory: builds the right shape kind from a stored record, or None."""
        if not isinstance(data, dict):
            logger.warning(f"Shape.from_dict: Record is not a mapping: {data!r}")
            return None
        sid = data.get('id')
        shape_type = str(data.get('type') or '').lower()
        if sid is None:
            logger.warning(f"Shape.from_dict: Missing id in record: {data}")
            return None

        shape_class = SHAPE_CLASSES.get(shape_type)
        if shape_class is None and data.get('isImage'):
            shape_class = SHAPE_CLASSES['image']
        if shape_class is None:
            logger.warning(f"Shape.from_dict: Unknown shape type {shape_type!r} for shape {sid!r}; skipping.")
            return None

        kwargs = {'x': coerce_number(data.get('x')) or 0, 'y': coerce_number(data.get('y')) or 0}
        for attr, (wire, _) in {**Shape.common_fields, **shape_class.fields}.items():
            if wire in data:
                kwargs[attr] = data[wire]
        return shape_class(sid, **kwargs)

    # --- Geometry and rendering (overridden per kind) -------------------------

    @property
    def get_bbox(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x, self.y)

    def contains_point(self, x: float, y: float) -> bool:
        return False  # Override in subclasses

    def render(self, surface):
        """Draws the shape onto a RasterSurface, honoring its opacity."""
        with surface.layer(self.effective_opacity) as (image, draw):
            self.draw_shape(image, draw, surface)

    def draw_shape(self, image, draw, surface):
        pass  # Override in subclasses


# Import specific shape subclasses for the from_dict factory method
# These imports MUST be *after* the Shape class definition
from .rectangle import Rectangle
from .circle import Circle
from .line import Line
from .text import Text
from .image import ImageShape

SHAPE_CLASSES = {
    'rectangle': Rectangle,
    'rect': Rectangle,
    'circle': Circle,
    'line': Line,
    'text': Text,
    'image': ImageShape,
}
