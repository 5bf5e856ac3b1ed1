# session.py
#
# One editing session: the shape store, its selection, and the actions the
# editor exposes (open, save, reset, clear, preview, export).

import logging
import re
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from batch import BatchDocumentAssembler, Document
from binder import bind, populate
from constants import DEFAULT_TEMPLATE_NAME, GRID_SIZE, PAGE_HEIGHT, PAGE_WIDTH, RECIPE_TEMPLATE_PREFIX
from errors import RecipeCardError, TemplateStoreError
from model import ShapeStore
from recipes import Recipe
from render import Raster, RenderPipeline
from resources import RequestTracker
from selection import SelectionController
from serializer import deserialize, serialize, template_fields
from shapes import Shape

logger = logging.getLogger(__name__)

Layout = Tuple[List[Shape], str]


def recipe_template_name(recipe: Recipe) -> str:
    return f"{RECIPE_TEMPLATE_PREFIX}{recipe.id}"


class EditorSession:
    """
    Owns the ShapeStore for one editor window. Interactive edits go straight
    to `store` through `selection`; template and bitmap loads run on a worker
    pool and are applied only while their request token is still current.
    """

    def __init__(self, template_store, bitmaps=None, pipeline: Optional[RenderPipeline] = None,
                 grid_size: int = GRID_SIZE, snap_enabled: bool = True,
                 app_name: str = 'Recipe_Batch', executor: Optional[ThreadPoolExecutor] = None):
        self.store = ShapeStore()
        self.selection = SelectionController(self.store, grid_size, snap_enabled)
        self.template_store = template_store
        self.bitmaps = bitmaps
        self.pipeline = pipeline or RenderPipeline(grid_size=grid_size)
        self.assembler = BatchDocumentAssembler(
            template_store,
            RenderPipeline(font_manager=self.pipeline.font_manager, show_grid=False),
            bitmaps, app_name=app_name)
        self.requests = RequestTracker()
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix='recipecard')
        self.recipe: Optional[Recipe] = None
        self.template_name = DEFAULT_TEMPLATE_NAME

    # --- Loading --------------------------------------------------------------

    def load_layout(self, recipe: Recipe) -> Layout:
        """
        Picks the recipe's own template, then the default, then the built-in
        layout. Load failures fall through to the next choice.
        """
        for name in (recipe_template_name(recipe), DEFAULT_TEMPLATE_NAME):
            try:
                document = self.template_store.read(name)
            except RecipeCardError as e:
                logger.warning(f"EditorSession.load_layout: {e.message}; trying the next layout.")
                continue
            if template_fields(document):
                logger.info(f"EditorSession.load_layout: Using template {name!r} for {recipe.name!r}.")
                return deserialize(document, values=bind(recipe, self.bitmaps)), name
        logger.info("EditorSession.load_layout: No saved template; populating the built-in layout.")
        return populate(recipe, self.bitmaps), DEFAULT_TEMPLATE_NAME

    def apply_layout(self, token: int, recipe: Recipe, shapes: List[Shape], template_name: str) -> bool:
        """Installs a loaded layout unless a newer request superseded it."""
        if not self.requests.is_current(token):
            logger.debug(f"EditorSession.apply_layout: Dropping stale result for request {token}.")
            return False
        self.recipe = recipe
        self.template_name = template_name
        self.selection.clear()
        self.store.replace_all(shapes)
        return True

    def open_recipe(self, recipe: Recipe) -> bool:
        token = self.requests.issue()
        shapes, name = self.load_layout(recipe)
        return self.apply_layout(token, recipe, shapes, name)

    def open_recipe_async(self, recipe: Recipe,
                          on_ready: Callable[[int, Recipe, List[Shape], str], None]) -> Future:
        """
        Loads the layout on the worker pool and hands the result to
        `on_ready(token, recipe, shapes, template_name)` from the worker
        thread. The store is not touched here: the caller passes the result
        to apply_layout on the thread that owns the session.
        """
        token = self.requests.issue()
        future = self.executor.submit(self.load_layout, recipe)

        def _done(f: Future):
            if f.cancelled() or not self.requests.is_current(token):
                return
            error = f.exception()
            if error is not None:
                logger.error(f"EditorSession.open_recipe_async: Loading {recipe.name!r} failed: {error}")
                return
            shapes, name = f.result()
            on_ready(token, recipe, shapes, name)

        future.add_done_callback(_done)
        return future

    # --- Editing actions ------------------------------------------------------

    def save(self, template_name: Optional[str] = None) -> str:
        """Persists the current shapes. Raises TemplateStoreError."""
        name = template_name or self.template_name
        document = serialize(self.store.list())
        if self.template_store is None:
            raise TemplateStoreError(name, "no template store is configured")
        self.template_store.write(name, document)
        self.template_name = name
        return name

    def save_for_recipe(self) -> str:
        if self.recipe is None:
            raise TemplateStoreError(DEFAULT_TEMPLATE_NAME, "no recipe is open")
        return self.save(recipe_template_name(self.recipe))

    def reset(self):
        """Throws away edits and rebuilds the built-in layout for the open recipe."""
        self.requests.invalidate()
        self.selection.clear()
        if self.recipe is None:
            self.store.clear()
            return
        self.store.replace_all(populate(self.recipe, self.bitmaps))

    def clear(self):
        self.selection.clear()
        self.store.clear()

    def delete_selected(self) -> List:
        return self.selection.delete_selected()

    def toggle_grid(self) -> bool:
        self.pipeline.show_grid = not self.pipeline.show_grid
        return self.pipeline.show_grid

    def set_grid_size(self, size: int) -> int:
        """Changes the grid used for snapping and the editor's grid lines."""
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise ValueError(f"Grid size must be a positive whole number, got {size!r}")
        self.selection.grid_size = size
        self.pipeline.grid_size = size
        logger.debug(f"EditorSession.set_grid_size: Grid is now {size}px.")
        return size

    def toggle_snap(self) -> bool:
        self.selection.snap_enabled = not self.selection.snap_enabled
        return self.selection.snap_enabled

    # --- Output ---------------------------------------------------------------

    def view_image(self):
        return self.pipeline.render_view(self.store.list())

    def preview(self) -> Raster:
        """Rasterizes the canvas as it stands. Raises RenderError."""
        return self.pipeline.rasterize(self.store.list(), PAGE_WIDTH, PAGE_HEIGHT)

    def export(self) -> Document:
        """The current canvas as a one-page PDF. Raises RenderError."""
        raster = self.preview()
        name = self.recipe.name if self.recipe is not None else 'Recipe'
        filename = f"{re.sub(r'[^A-Za-z0-9_-]', '_', name or 'Recipe')}.pdf"
        recipe_id = self.recipe.id if self.recipe is not None else None
        return self.assembler.document_from_raster(raster, recipe_id, filename)

    def close(self):
        self.requests.invalidate()
        self.executor.shutdown(wait=False)
