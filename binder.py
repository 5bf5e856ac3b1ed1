# binder.py
#
# The one place where recipe records turn into shape content. Initial
# population, template rehydration, single-recipe preview and batch
# assembly all call bind() and apply_binding(); none of them compute
# bound values on their own.

import logging
from typing import Any, Dict, Iterable, List, Optional

from constants import (
    ALLERGENS_TAG, BRAND_COLOR, DEFAULT_FONT_FAMILY, FALLBACK_TEXT, INGREDIENTS_TAG,
    PLATING_TAG, RECIPE_IMAGE_TAG, SERVICE_TYPES_TAG, STEPS_TAG, TITLE_TAG,
    WATERMARK_OPACITY, WATERMARK_TAG,
)
from recipes import Recipe
from shapes import ImageShape, Line, Shape, Text

logger = logging.getLogger(__name__)

IMAGE_TAGS = (RECIPE_IMAGE_TAG, WATERMARK_TAG)


def _format_quantity(quantity: Any) -> str:
    if quantity is None:
        return ''
    if isinstance(quantity, float) and quantity.is_integer():
        return str(int(quantity))
    return str(quantity)


def ingredient_lines(recipe: Recipe) -> Optional[str]:
    if not recipe.ingredients:
        return None
    lines = []
    for ingredient in recipe.ingredients:
        parts = [_format_quantity(ingredient.quantity), ingredient.measure or '', ingredient.name or '']
        lines.append(' '.join(p for p in (str(part).strip() for part in parts) if p))
    return '\n'.join(lines)


def _joined(values: Optional[List[str]]) -> Optional[str]:
    return ', '.join(values) if values else None


def bind(recipe: Recipe, bitmaps=None) -> Dict[str, Any]:
    """
    Maps a recipe to a value for every binding tag. Text tags fall back to
    fixed wording when the recipe has nothing to show; image tags hold a
    Bitmap from `bitmaps` (which substitutes its placeholder on failure),
    or None when no bitmap source is given.
    """
    values = {
        TITLE_TAG: recipe.name or None,
        INGREDIENTS_TAG: ingredient_lines(recipe),
        STEPS_TAG: recipe.steps or None,
        PLATING_TAG: recipe.plating_guide or None,
        ALLERGENS_TAG: _joined(recipe.allergens),
        SERVICE_TYPES_TAG: _joined(recipe.service_types),
    }
    for tag, value in values.items():
        if value is None:
            values[tag] = FALLBACK_TEXT[tag]

    values[RECIPE_IMAGE_TAG] = bitmaps.recipe_image(recipe) if bitmaps is not None else None
    values[WATERMARK_TAG] = bitmaps.watermark() if bitmaps is not None else None
    return values


def apply_binding(shape: Shape, values: Dict[str, Any]) -> bool:
    """
    Writes the bound value for the shape's tag into it. Layout and style are
    left as they are, except the watermark's fixed opacity. Returns False
    for unbound shapes.
    """
    tag = shape.binding_tag
    if tag is None or tag not in values:
        return False
    value = values[tag]
    if tag in IMAGE_TAGS:
        if not isinstance(shape, ImageShape):
            logger.warning(f"apply_binding: Shape {shape.sid!r} carries image tag {tag!r} but is a {shape.shape_type}; skipping.")
            return False
        shape.image_key = tag
        shape.bitmap = value
        if tag == WATERMARK_TAG:
            shape.opacity = WATERMARK_OPACITY
        return True
    if not isinstance(shape, Text):
        logger.warning(f"apply_binding: Shape {shape.sid!r} carries text tag {tag!r} but is a {shape.shape_type}; skipping.")
        return False
    shape.text = value
    return True


def rebind(shapes: Iterable[Shape], values: Dict[str, Any]) -> List[Shape]:
    """Applies `values` to every bound shape; decorative shapes pass through."""
    shapes = list(shapes)
    for shape in shapes:
        apply_binding(shape, values)
    return shapes


def _label(sid: str, text: str, x: float, y: float, size: int, color: str = '#000000') -> Text:
    return Text(sid, x=x, y=y, text=text, font_size=size, fill=color,
                font_family=DEFAULT_FONT_FAMILY, is_bold=True)


def _content(sid: str, x: float, y: float, width: float = 350) -> Text:
    return Text(sid, x=x, y=y, font_size=12, fill='#333333',
                font_family=DEFAULT_FONT_FAMILY, width=width)


def default_layout() -> List[Shape]:
    """The built-in card layout used when no template has been saved."""
    return [
        Text('recipe-title', x=50, y=30, font_size=24, fill=BRAND_COLOR,
             font_family=DEFAULT_FONT_FAMILY, is_bold=True),
        _label('ingredients-label', 'Ingredients:', 50, 80, 16),
        _content(INGREDIENTS_TAG, 50, 100),
        _label('steps-label', 'Steps:', 50, 200, 16),
        _content(STEPS_TAG, 50, 220),
        _label('allergens-label', 'Allergens:', 450, 80, 14, BRAND_COLOR),
        _content(ALLERGENS_TAG, 450, 100),
        _label('service-types-label', 'Service Types:', 450, 140, 14, BRAND_COLOR),
        _content(SERVICE_TYPES_TAG, 450, 160, width=300),
        _label('plating-guide-label', 'Plating Guide:', 50, 320, 16),
        _content(PLATING_TAG, 50, 340),
        ImageShape(RECIPE_IMAGE_TAG, x=450, y=200, width=150, height=150),
        Line('title-line', points=[50, 60, 350, 60], stroke=BRAND_COLOR, stroke_width=2),
        ImageShape(WATERMARK_TAG, x=50, y=400, width=100, height=100, opacity=WATERMARK_OPACITY),
    ]


def populate(recipe: Recipe, bitmaps=None) -> List[Shape]:
    """Builds the default layout filled in from one recipe."""
    return rebind(default_layout(), bind(recipe, bitmaps))
