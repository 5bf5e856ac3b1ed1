# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Shared fixtures: sample recipes, an in-memory bitmap source, a font manager
# that never scans the system, and stores rooted in tmp_path. Nothing here
# needs a display; Tk widgets are never created by the tests.
# =============================================================================

import os

# Keep a developer's .env or shell settings out of the tests
for _key in [k for k in os.environ if k.startswith("RECIPECARD_")]:
    del os.environ[_key]

import pytest
from PIL import Image

from recipes import Ingredient, Recipe
from render import RenderPipeline
from resources import Bitmap
from session import EditorSession
from stores import JsonFileTemplateStore
from utils.font_manager import FontManager

UNTRUSTED_IMAGE = "http://images.example.net/dish.png"


class FakeBitmapSource:
    """In-memory stand-in for BitmapSource with the same lookups."""

    def __init__(self):
        self.requested = []
        self._placeholder = Bitmap(Image.new("RGBA", (10, 10), (200, 200, 200, 255)),
                                   "<placeholder>", "placeholder", is_placeholder=True)

    def recipe_image(self, recipe):
        self.requested.append(recipe.id)
        if not recipe.image:
            return self.placeholder()
        if recipe.image == UNTRUSTED_IMAGE:
            return Bitmap(Image.new("RGBA", (10, 10), (0, 0, 255, 255)),
                          recipe.image, "http://images.example.net", readable=False)
        return Bitmap(Image.new("RGBA", (10, 10), (0, 160, 0, 255)), recipe.image, "file")

    def watermark(self):
        return Bitmap(Image.new("RGBA", (10, 10), (139, 21, 56, 255)), "logo.png", "file")

    def placeholder(self):
        return self._placeholder


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def pasta_recipe():
    return Recipe(
        id="r1",
        name="Pasta Primavera",
        ingredients=[
            Ingredient("penne", 2, "cups"),
            Ingredient("zucchini", 1, None),
            Ingredient("parmesan", 0.5, "cup"),
        ],
        steps="Boil pasta.\nSaute vegetables.\nToss together.",
        plating_guide="Shallow bowl, garnish with basil.",
        allergens=["Gluten", "Dairy"],
        service_types=["Lunch", "Dinner"],
        image="/Uploads/pasta.png",
    )


@pytest.fixture
def bare_recipe():
    return Recipe(id="r3", name="Water", ingredients=[], steps="", allergens=[], service_types=[])


@pytest.fixture
def recipes(pasta_recipe, bare_recipe):
    soup = Recipe(
        id="r2",
        name="Tomato Soup",
        ingredients=[Ingredient("tomatoes", 6, "whole"), Ingredient("stock", 1, "quart")],
        steps="Simmer and blend.",
        plating_guide="Serve hot.",
        allergens=[],
        service_types=["Lunch"],
        image="/Uploads/soup.png",
    )
    return [pasta_recipe, soup, bare_recipe]


@pytest.fixture
def bitmaps():
    return FakeBitmapSource()


@pytest.fixture(scope="session")
def font_manager():
    # No font directories: every family resolves to Pillow's built-in font
    return FontManager(font_dirs=[])


@pytest.fixture
def pipeline(font_manager):
    return RenderPipeline(font_manager=font_manager, show_grid=True)


@pytest.fixture
def template_store(tmp_path):
    return JsonFileTemplateStore(str(tmp_path / "templates.json"))


@pytest.fixture
def session(template_store, bitmaps, pipeline):
    editor = EditorSession(template_store, bitmaps, pipeline)
    yield editor
    editor.close()
