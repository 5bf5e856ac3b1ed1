# batch.py
#
# Multi-page document assembly: one rendered page per recipe, in input order.

import io
import logging
import os
import re
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from reportlab.pdfgen import canvas as pdf_canvas

from binder import bind, populate
from constants import DEFAULT_TEMPLATE_NAME, PAGE_HEIGHT, PAGE_WIDTH
from errors import BatchAbortError, RecipeCardError
from recipes import Recipe
from render import Raster, RenderPipeline
from serializer import deserialize, template_fields
from shapes import Shape

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def batch_filename(app_name: str, now: Optional[datetime] = None) -> str:
    """`<AppName>_Batch_<YYYYmmdd_HHMMSS>.pdf` with the name reduced to safe characters."""
    safe = re.sub(r'[^A-Za-z0-9_-]', '_', app_name or '') or 'Recipe'
    stamp = (now or datetime.now()).strftime('%Y%m%d_%H%M%S')
    return f"{safe}_Batch_{stamp}.pdf"


class Document:
    """A finished PDF, held in memory until the caller writes it out."""

    def __init__(self, pdf_bytes: bytes, recipe_ids: List[Any], filename: str):
        self.pdf_bytes = pdf_bytes
        self.recipe_ids = recipe_ids
        self.filename = filename

    def __repr__(self):
        return f"Document({self.filename!r}, pages={self.page_count})"

    @property
    def page_count(self) -> int:
        return len(self.recipe_ids)

    def write(self, path: Optional[str] = None) -> str:
        """Writes the PDF to `path`, or to `filename` inside a directory path."""
        if path is None:
            path = self.filename
        elif os.path.isdir(path):
            path = os.path.join(path, self.filename)
        with open(path, 'wb') as f:
            f.write(self.pdf_bytes)
        logger.info(f"Document.write: Wrote {self.page_count} page(s) to {path}.")
        return path


class BatchDocumentAssembler:
    """
    Binds, lays out and rasterizes each recipe on its own surface, strictly
    one after another, and stacks the pages into a PDF. The layout comes
    from the stored default template when there is one, else the built-in
    layout.
    """

    def __init__(self, template_store=None, pipeline: Optional[RenderPipeline] = None,
                 bitmaps=None, template_name: str = DEFAULT_TEMPLATE_NAME,
                 app_name: str = 'Recipe_Batch'):
        self.template_store = template_store
        self.pipeline = pipeline or RenderPipeline(show_grid=False)
        self.bitmaps = bitmaps
        self.template_name = template_name
        self.app_name = app_name
        self.page_size = (PAGE_WIDTH, PAGE_HEIGHT)

    def load_template(self) -> Optional[Dict[str, Any]]:
        """The stored template, or None when unset or unreachable."""
        if self.template_store is None:
            return None
        try:
            document = self.template_store.read(self.template_name)
        except RecipeCardError as e:
            logger.warning(f"BatchDocumentAssembler.load_template: {e.message}; using the built-in layout.")
            return None
        return document if template_fields(document) else None

    def layout_for(self, recipe: Recipe, template: Optional[Dict[str, Any]]) -> List[Shape]:
        if template is None:
            return populate(recipe, self.bitmaps)
        return deserialize(template, values=bind(recipe, self.bitmaps))

    def render_page(self, recipe: Recipe, template: Optional[Dict[str, Any]] = None) -> Raster:
        width, height = self.page_size
        return self.pipeline.rasterize(self.layout_for(recipe, template), width, height)

    def generate(self, recipes: Iterable[Recipe], progress: Optional[ProgressCallback] = None) -> Document:
        """
        Renders every recipe into one PDF, pages in input order. Any failure
        aborts the whole batch with a BatchAbortError naming the recipe; no
        partial document is produced.
        """
        recipes = list(recipes)
        if not recipes:
            raise ValueError("No recipes to render")
        template = self.load_template()
        width, height = self.page_size

        buffer = io.BytesIO()
        pdf = pdf_canvas.Canvas(buffer, pagesize=(width, height))
        pdf.setTitle(self.app_name)
        for index, recipe in enumerate(recipes):
            logger.info(f"BatchDocumentAssembler.generate: Rendering {index + 1}/{len(recipes)}: {recipe.name!r}")
            try:
                raster = self.render_page(recipe, template)
                pdf.drawInlineImage(raster.image, 0, 0, width=width, height=height, preserveAspectRatio=False)
                pdf.showPage()
            except Exception as e:
                logger.error(f"BatchDocumentAssembler.generate: Recipe {recipe.id!r} failed: {e}")
                raise BatchAbortError(recipe.id, index, e) from e
            if progress is not None:
                progress(index + 1, len(recipes))
        pdf.save()

        return Document(buffer.getvalue(), [r.id for r in recipes], batch_filename(self.app_name))

    def document_from_raster(self, raster: Raster, recipe_id: Any, filename: str) -> Document:
        """Wraps an already rendered page, such as the editor's canvas, in a PDF."""
        width, height = self.page_size
        buffer = io.BytesIO()
        pdf = pdf_canvas.Canvas(buffer, pagesize=(width, height))
        pdf.drawInlineImage(raster.image, 0, 0, width=width, height=height, preserveAspectRatio=False)
        pdf.showPage()
        pdf.save()
        return Document(buffer.getvalue(), [recipe_id], filename)

    def render_single(self, recipe: Recipe) -> Document:
        """One-page preview document for a single recipe."""
        document = self.generate([recipe])
        safe_name = re.sub(r'[^A-Za-z0-9_-]', '_', recipe.name or str(recipe.id))
        document.filename = f"{safe_name}.pdf"
        return document
