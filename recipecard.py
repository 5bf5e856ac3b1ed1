# recipecard.py

import argparse
import logging
import sys

from batch import BatchDocumentAssembler
from config import get_settings
from errors import RecipeCardError
from render import RenderPipeline
from resources import BitmapSource
from stores import JsonFileTemplateStore, recipe_source_from_settings, template_store_from_settings
from utils.font_manager import FontManager
from utils.log import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Recipe card template editor and renderer')
    parser.add_argument('--template-store', dest='template_store', metavar='FILE.json',
                        help='JSON template store (default: RECIPECARD_TEMPLATE_STORE_PATH or the API)')
    parser.add_argument('--recipes', metavar='FILE', help='Recipes as a JSON list or CSV file')
    parser.add_argument('--recipe-id', dest='recipe_id', action='append',
                        help='Only render this recipe (repeatable, keeps the given order)')
    parser.add_argument('--active-only', dest='active_only', action='store_true',
                        help='Skip recipes that are not active')
    parser.add_argument('--export-pdf', dest='export_pdf', metavar='OUT.pdf',
                        help='Render the recipes to one PDF and exit')
    parser.add_argument('--preview', metavar='OUT.png',
                        help='Render the first selected recipe to a PNG and exit')
    parser.add_argument('--log-level', dest='log_level', help='DEBUG, INFO, WARNING or ERROR')
    return parser


def select_recipes(source, recipe_ids=None, active_only=False):
    if recipe_ids:
        recipes = []
        for recipe_id in recipe_ids:
            recipe = source.get(recipe_id)
            if recipe is None:
                raise SystemExit(f"Recipe {recipe_id!r} not found")
            if active_only and not recipe.active:
                logger.info(f"select_recipes: Skipping inactive recipe {recipe_id!r}.")
                continue
            recipes.append(recipe)
        return recipes
    return source.list(active_only=active_only)


def run_export(args, settings, template_store, bitmaps) -> int:
    source = recipe_source_from_settings(settings, args.recipes)
    recipes = select_recipes(source, args.recipe_id, args.active_only)
    if not recipes:
        print("No recipes to render.", file=sys.stderr)
        return 1

    assembler = BatchDocumentAssembler(template_store,
                                       RenderPipeline(FontManager(), show_grid=False),
                                       bitmaps, app_name=settings.app_name)
    if args.preview:
        raster = assembler.render_page(recipes[0], assembler.load_template())
        with open(args.preview, 'wb') as f:
            f.write(raster.png)
        print(f"Wrote preview of {recipes[0].name!r} to {args.preview}")
    if args.export_pdf:
        document = assembler.generate(
            recipes, progress=lambda done, total: logger.info(f"Rendered {done}/{total}"))
        path = document.write(args.export_pdf)
        print(f"Wrote {document.page_count} page(s) to {path}")
    return 0


def run_editor(args, settings, template_store, bitmaps):
    import tkinter as tk
    from controller import EditorApp
    from session import EditorSession

    source = None
    if args.recipes or settings.recipes_path or settings.api_url:
        source = recipe_source_from_settings(settings, args.recipes)

    root = tk.Tk()
    session = EditorSession(template_store, bitmaps,
                            RenderPipeline(FontManager(), show_grid=settings.show_grid,
                                           grid_size=settings.grid_size),
                            grid_size=settings.grid_size, snap_enabled=settings.snap_to_grid,
                            app_name=settings.app_name)
    app = EditorApp(root, session, source)
    app.reload_recipes()
    if app.recipes:
        chosen = app.recipes[0]
        if args.recipe_id:
            chosen = next((r for r in app.recipes if str(r.id) == args.recipe_id[0]), chosen)
        app.open_recipe(chosen)
    app.refresh_view()
    root.mainloop()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    if args.template_store:
        template_store = JsonFileTemplateStore(args.template_store)
    else:
        template_store = template_store_from_settings(settings)
    bitmaps = BitmapSource.from_settings(settings)

    if args.export_pdf or args.preview:
        try:
            return run_export(args, settings, template_store, bitmaps)
        except RecipeCardError as e:
            logger.error(f"{e.code}: {e.message}")
            if e.suggestion:
                print(f"{e.kind}: {e.message}\n  {e.suggestion}", file=sys.stderr)
            else:
                print(f"{e.kind}: {e.message}", file=sys.stderr)
            return 1
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 2
    run_editor(args, settings, template_store, bitmaps)
    return 0


if __name__ == '__main__':
    sys.exit(main())
