# utils/__init__.py

# Import key utility classes/functions you want to expose
from .font_manager import FontManager
from .geometry import snap, translate_points
from .log import configure_logging
