# Import the base shape class
from .base_shape import Shape, SHAPE_CLASSES

# Import the specific shape subclasses
from .rectangle import Rectangle
from .circle import Circle
from .line import Line
from .text import Text
from .image import ImageShape
