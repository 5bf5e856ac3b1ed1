import io

import pytest
from PIL import Image

from binder import populate
from errors import RenderError, TaintedSurfaceError
from recipes import Recipe
from render import RasterSurface, composite_at
from resources import Bitmap
from shapes import Circle, ImageShape, Rectangle, Text

from tests.conftest import UNTRUSTED_IMAGE


def test_rasterize_returns_page_sized_png(pipeline, pasta_recipe, bitmaps):
    raster = pipeline.rasterize(populate(pasta_recipe, bitmaps))
    assert raster.size == (792, 612)
    assert raster.png.startswith(b"\x89PNG")
    with Image.open(io.BytesIO(raster.png)) as decoded:
        assert decoded.size == (792, 612)


def test_shapes_draw_in_render_order(pipeline):
    shapes = [
        Rectangle("under", x=0, y=0, width=100, height=100, fill="#ff0000"),
        Rectangle("over", x=50, y=50, width=100, height=100, fill="#0000ff"),
    ]
    image = pipeline.rasterize(shapes).image
    assert image.getpixel((25, 25)) == (255, 0, 0)
    assert image.getpixel((75, 75)) == (0, 0, 255)
    assert image.getpixel((300, 300)) == (255, 255, 255)


def test_opacity_blends_with_background(pipeline):
    image = pipeline.rasterize([Rectangle("r", x=0, y=0, width=50, height=50,
                                          fill="#ff0000", opacity=0.5)]).image
    r, g, b = image.getpixel((25, 25))
    assert r == 255
    assert 120 <= g <= 135 and 120 <= b <= 135


def test_export_never_includes_grid(pipeline):
    assert pipeline.show_grid
    image = pipeline.rasterize([]).image
    assert image.getpixel((20, 5)) == (255, 255, 255)
    assert pipeline.show_grid
    view = pipeline.render_view([])
    assert view.getpixel((20, 5))[:3] != (255, 255, 255)


def test_tainted_surface_raises_render_error(pipeline, bitmaps):
    recipe = Recipe(id="x", name="Remote", image=UNTRUSTED_IMAGE)
    with pytest.raises(RenderError) as info:
        pipeline.rasterize(populate(recipe, bitmaps))
    assert isinstance(info.value, TaintedSurfaceError)
    assert "tainted" in info.value.message
    assert info.value.details["origins"] == ["http://images.example.net"]


def test_grid_setting_restored_after_failed_export(pipeline, bitmaps):
    recipe = Recipe(id="x", image=UNTRUSTED_IMAGE)
    with pytest.raises(RenderError):
        pipeline.rasterize(populate(recipe, bitmaps))
    assert pipeline.show_grid is True
    pipeline.show_grid = False
    with pytest.raises(RenderError):
        pipeline.rasterize(populate(recipe, bitmaps))
    assert pipeline.show_grid is False


def test_unresolved_image_renders_blank(pipeline):
    image = pipeline.rasterize([ImageShape("recipe-image", x=0, y=0, width=40, height=40),
                                Circle("dot", x=100, y=100, radius=5, fill="#000000")]).image
    assert image.getpixel((20, 20)) == (255, 255, 255)
    assert image.getpixel((100, 100)) == (0, 0, 0)


def test_broken_shape_surfaces_as_render_error(pipeline):
    with pytest.raises(RenderError):
        pipeline.rasterize([Text("t", text="hi", font_size="huge", x=object())])


def test_destroyed_surface_cannot_export(font_manager):
    surface = RasterSurface(20, 20, font_manager=font_manager)
    surface.destroy()
    assert surface.destroyed
    with pytest.raises(RenderError):
        surface.export()


def test_bitmap_pasted_partly_off_page(font_manager):
    bitmap = Bitmap(Image.new("RGBA", (10, 10), (0, 128, 0, 255)), "x.png", "file")
    with RasterSurface(40, 40, font_manager=font_manager) as surface:
        with surface.layer() as (layer, _):
            surface.paste_bitmap(layer, bitmap, (-5, -5), (20, 20))
        assert surface.image.getpixel((2, 2))[:3] == (0, 128, 0)
        assert surface.image.getpixel((30, 30))[:3] == (255, 255, 255)
        assert not surface.tainted


def test_composite_at_ignores_fully_offscreen_overlays():
    target = Image.new("RGBA", (10, 10), (255, 255, 255, 255))
    overlay = Image.new("RGBA", (5, 5), (0, 0, 0, 255))
    composite_at(target, overlay, -20, 0)
    composite_at(target, overlay, 50, 50)
    assert target.getcolors() == [(100, (255, 255, 255, 255))]
