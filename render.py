# render.py
#
# Rasterizes a shape list onto a Pillow surface. One RasterSurface per render
# call: create, draw, export, destroy.

import io
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Optional, Set

from PIL import Image, ImageDraw

from constants import GRID_COLOR, GRID_SIZE, PAGE_HEIGHT, PAGE_WIDTH
from errors import RenderError, TaintedSurfaceError
from shapes import Shape
from shapes.base_shape import resolve_color
from utils.font_manager import FontManager

logger = logging.getLogger(__name__)

_shared_font_manager: Optional[FontManager] = None


def default_font_manager() -> FontManager:
    # Scanning the font directories is slow, so every surface shares one index
    global _shared_font_manager
    if _shared_font_manager is None:
        _shared_font_manager = FontManager()
    return _shared_font_manager


def composite_at(target: Image.Image, overlay: Image.Image, x: float, y: float):
    """alpha_composite that tolerates overlays hanging off the top or left edge."""
    x, y = int(round(x)), int(round(y))
    sx, sy = max(0, -x), max(0, -y)
    if sx >= overlay.width or sy >= overlay.height:
        return
    dx, dy = max(0, x), max(0, y)
    if dx >= target.width or dy >= target.height:
        return
    target.alpha_composite(overlay, dest=(dx, dy), source=(sx, sy))


class RasterSurface:
    """
    A white page of fixed pixel size. Shapes draw into per-shape layers that
    are composited with the shape's opacity. Drawing a bitmap whose origin
    is not trusted taints the surface, and a tainted surface cannot be
    exported.
    """

    def __init__(self, width: int = PAGE_WIDTH, height: int = PAGE_HEIGHT,
                 font_manager: Optional[FontManager] = None,
                 show_grid: bool = False, grid_size: int = GRID_SIZE,
                 background: str = '#ffffff'):
        self.width = int(width)
        self.height = int(height)
        self.font_manager = font_manager or default_font_manager()
        self.show_grid = show_grid
        self.grid_size = grid_size
        self.image: Optional[Image.Image] = Image.new(
            'RGBA', (self.width, self.height), resolve_color(background, (255, 255, 255, 255)))
        self.tainted_origins: Set[str] = set()
        if self.show_grid:
            self.draw_grid()

    def __enter__(self) -> 'RasterSurface':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()

    @property
    def tainted(self) -> bool:
        return bool(self.tainted_origins)

    @property
    def destroyed(self) -> bool:
        return self.image is None

    def draw_grid(self):
        draw = ImageDraw.Draw(self.image)
        color = resolve_color(GRID_COLOR)
        for x in range(0, self.width + 1, self.grid_size):
            draw.line([(x, 0), (x, self.height)], fill=color, width=1)
        for y in range(0, self.height + 1, self.grid_size):
            draw.line([(0, y), (self.width, y)], fill=color, width=1)

    @contextmanager
    def layer(self, opacity: float = 1.0):
        """Yields (image, draw) for a transparent layer, composited on exit."""
        self._check_alive()
        overlay = Image.new('RGBA', (self.width, self.height), (0, 0, 0, 0))
        yield overlay, ImageDraw.Draw(overlay)
        if opacity <= 0:
            return
        if opacity < 1:
            alpha = overlay.getchannel('A').point(lambda a: int(round(a * opacity)))
            overlay.putalpha(alpha)
        self.image.alpha_composite(overlay)

    def font(self, family: str, size: float, bold: bool = False):
        return self.font_manager.get_pil_font(family, size, bold)

    def paste_bitmap(self, target: Image.Image, bitmap, position, size):
        """Scales a Bitmap into the box at `position` on the given layer."""
        w, h = int(round(size[0])), int(round(size[1]))
        if w <= 0 or h <= 0:
            return
        if not bitmap.readable:
            self.tainted_origins.add(bitmap.origin)
        scaled = bitmap.image.resize((w, h), Image.Resampling.LANCZOS)
        composite_at(target, scaled, position[0] or 0, position[1] or 0)

    def export(self, image_format: str = 'PNG') -> bytes:
        """Reads the pixels back as encoded bytes."""
        self._check_alive()
        if self.tainted:
            raise TaintedSurfaceError(self.tainted_origins)
        buffer = io.BytesIO()
        try:
            self.image.convert('RGB').save(buffer, image_format)
        except (OSError, ValueError) as e:
            raise RenderError(f"Could not export the surface as {image_format}: {e}") from e
        return buffer.getvalue()

    def destroy(self):
        if self.image is not None:
            self.image.close()
            self.image = None

    def _check_alive(self):
        if self.image is None:
            raise RenderError("The surface has already been destroyed")


@dataclass
class Raster:
    """An exported page: encoded PNG plus the decoded pixels."""
    png: bytes
    image: Image.Image

    @property
    def size(self):
        return self.image.size


class RenderPipeline:
    """
    Turns shapes into pixels. `show_grid` is the editor's grid setting; it
    only decorates `render_view`, never an export.
    """

    def __init__(self, font_manager: Optional[FontManager] = None,
                 show_grid: bool = True, grid_size: int = GRID_SIZE):
        self.font_manager = font_manager
        self.show_grid = show_grid
        self.grid_size = grid_size

    def _surface(self, width: int, height: int, show_grid: bool) -> RasterSurface:
        return RasterSurface(width, height, font_manager=self.font_manager,
                             show_grid=show_grid, grid_size=self.grid_size)

    @staticmethod
    def draw(surface: RasterSurface, shapes: Iterable[Shape]):
        for shape in shapes:
            try:
                shape.render(surface)
            except RenderError:
                raise
            except Exception as e:
                raise RenderError(f"Shape {getattr(shape, 'sid', '?')!r} could not be drawn: {e}") from e

    def rasterize(self, shapes: Iterable[Shape], width: int = PAGE_WIDTH,
                  height: int = PAGE_HEIGHT) -> Raster:
        """
        Draws the shapes in render order and exports the page. The grid is
        hidden while exporting and its setting restored afterwards, even
        when the export fails. Raises RenderError.
        """
        grid_visible = self.show_grid
        self.show_grid = False
        try:
            with self._surface(width, height, self.show_grid) as surface:
                self.draw(surface, shapes)
                png = surface.export()
                image = surface.image.convert('RGB')
        finally:
            self.show_grid = grid_visible
        logger.debug(f"RenderPipeline.rasterize: Exported {width}x{height} page ({len(png)} bytes).")
        return Raster(png=png, image=image)

    def render_view(self, shapes: Iterable[Shape], width: int = PAGE_WIDTH,
                    height: int = PAGE_HEIGHT) -> Image.Image:
        """Editor display image, grid included when enabled. Never exported."""
        with self._surface(width, height, self.show_grid) as surface:
            self.draw(surface, shapes)
            return surface.image.copy()
