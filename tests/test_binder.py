from binder import apply_binding, bind, default_layout, ingredient_lines, populate
from constants import FALLBACK_TEXT, INGREDIENTS_TAG, WATERMARK_OPACITY
from recipes import Ingredient, Recipe
from shapes import ImageShape, Rectangle, Text


def shape_by_id(shapes, sid):
    return next(s for s in shapes if s.sid == sid)


def test_ingredient_lines_drop_missing_parts(pasta_recipe):
    assert ingredient_lines(pasta_recipe) == "2 cups penne\n1 zucchini\n0.5 cup parmesan"


def test_whole_float_quantities_print_as_integers():
    recipe = Recipe(id=1, ingredients=[Ingredient("eggs", 3.0, "")])
    assert ingredient_lines(recipe) == "3 eggs"


def test_ingredients_fallback_iff_empty(pasta_recipe, bare_recipe):
    assert bind(bare_recipe)[INGREDIENTS_TAG] == FALLBACK_TEXT[INGREDIENTS_TAG]
    assert bind(Recipe(id=9, ingredients=None))[INGREDIENTS_TAG] == FALLBACK_TEXT[INGREDIENTS_TAG]
    assert bind(pasta_recipe)[INGREDIENTS_TAG] != FALLBACK_TEXT[INGREDIENTS_TAG]
    blank = Recipe(id=10, ingredients=[Ingredient("", None, None)])
    assert bind(blank)[INGREDIENTS_TAG] != FALLBACK_TEXT[INGREDIENTS_TAG]


def test_bind_maps_every_tag(pasta_recipe, bitmaps):
    values = bind(pasta_recipe, bitmaps)
    assert values["title"] == "Pasta Primavera"
    assert values["steps-content"].startswith("Boil pasta.")
    assert values["plating-guide-content"] == "Shallow bowl, garnish with basil."
    assert values["allergens-content"] == "Gluten, Dairy"
    assert values["service-types-content"] == "Lunch, Dinner"
    assert values["recipe-image"].path == "/Uploads/pasta.png"
    assert values["watermark"].path == "logo.png"


def test_bind_fallbacks(bare_recipe, bitmaps):
    values = bind(bare_recipe, bitmaps)
    assert values["allergens-content"] == "None listed"
    assert values["steps-content"] == FALLBACK_TEXT["steps-content"]
    assert values["service-types-content"] == FALLBACK_TEXT["service-types-content"]
    assert values["recipe-image"].is_placeholder


def test_bind_without_bitmap_source_leaves_images_blank(pasta_recipe):
    values = bind(pasta_recipe)
    assert values["recipe-image"] is None
    assert values["watermark"] is None


def test_title_binds_under_both_ids(pasta_recipe):
    values = bind(pasta_recipe)
    for sid in ("title", "recipe-title"):
        shape = Text(sid, text="old")
        assert apply_binding(shape, values)
        assert shape.text == "Pasta Primavera"


def test_apply_binding_keeps_layout_and_style(pasta_recipe, bitmaps):
    values = bind(pasta_recipe, bitmaps)
    shape = Text("steps-content", x=33, y=44, width=210, font_size=9, fill="#abcdef", text="stale")
    apply_binding(shape, values)
    assert (shape.x, shape.y, shape.width, shape.font_size, shape.fill) == (33, 44, 210, 9, "#abcdef")
    assert shape.text == pasta_recipe.steps


def test_watermark_opacity_is_fixed(pasta_recipe, bitmaps):
    shape = ImageShape("watermark", opacity=1)
    apply_binding(shape, bind(pasta_recipe, bitmaps))
    assert shape.opacity == WATERMARK_OPACITY
    assert shape.image_key == "watermark"
    assert shape.bitmap is not None


def test_decorative_and_mismatched_shapes_untouched(pasta_recipe, bitmaps):
    values = bind(pasta_recipe, bitmaps)
    decoration = Text("note", text="Chef's special")
    assert not apply_binding(decoration, values)
    assert decoration.text == "Chef's special"
    wrong_kind = Rectangle("recipe-image", width=10, height=10)
    assert not apply_binding(wrong_kind, values)


def test_populate_builds_default_layout(pasta_recipe, bitmaps):
    shapes = populate(pasta_recipe, bitmaps)
    assert [s.sid for s in shapes] == [s.sid for s in default_layout()]
    title = shape_by_id(shapes, "recipe-title")
    assert (title.x, title.y, title.font_size, title.is_bold) == (50, 30, 24, True)
    assert title.text == "Pasta Primavera"
    assert shape_by_id(shapes, "ingredients-label").text == "Ingredients:"
    assert shape_by_id(shapes, "recipe-image").bitmap.path == "/Uploads/pasta.png"
    assert shape_by_id(shapes, "title-line").points == [50, 60, 350, 60]
    assert shape_by_id(shapes, "watermark").opacity == WATERMARK_OPACITY
    assert len({s.sid for s in shapes}) == len(shapes)
