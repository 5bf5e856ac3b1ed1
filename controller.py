# controller.py

import logging
import os
import queue
from typing import Any, List, Optional

import tkinter as tk
from tkinter import filedialog, messagebox, ttk

from errors import RecipeCardError
from recipes import Recipe
from selection import parse_bulk_edit, parse_shape_edit
from session import EditorSession
from view import EditorView

logger = logging.getLogger(__name__)

POLL_MS = 50


class EditorApp:
    """
    Controller for the desktop editor. Mouse and keyboard events become
    SelectionController calls on the session; the view is redrawn from the
    store whenever it changes. Save and export failures are shown in a
    message box titled with the error kind. Background loads fail quietly.
    """

    def __init__(self, root: tk.Tk, session: EditorSession, recipe_source=None):
        self.root = root
        self.session = session
        self.recipe_source = recipe_source
        self.recipes: List[Recipe] = []
        self._loaded: "queue.Queue[tuple]" = queue.Queue()
        self._dragging: Optional[Any] = None
        self._moved = False
        self._additive = False

        self.view = EditorView(root, self)
        self.view.grid_var.set(self.session.pipeline.show_grid)
        self.view.snap_var.set(self.session.selection.snap_enabled)
        self.view.grid_size_var.set(str(self.session.selection.grid_size))

        # Register the View as an observer of the store
        self.session.store.add_observer(self.refresh_view)
        self._build_menubar()
        self.root.protocol("WM_DELETE_WINDOW", self.quit)
        self.root.after(POLL_MS, self._poll_loaded)

    def _build_menubar(self):
        menubar = tk.Menu(self.root)
        file_menu = tk.Menu(menubar, tearoff=0)
        file_menu.add_command(label="Save Template", command=self.save_template, accelerator="Ctrl+S")
        file_menu.add_command(label="Save Template for Recipe", command=self.save_recipe_template)
        file_menu.add_separator()
        file_menu.add_command(label="Export Preview PNG...", command=self.export_preview)
        file_menu.add_command(label="Export PDF...", command=self.export_pdf)
        file_menu.add_command(label="Export Batch PDF...", command=self.export_batch)
        file_menu.add_separator()
        file_menu.add_command(label="Quit", command=self.quit)
        menubar.add_cascade(label="File", menu=file_menu)

        edit_menu = tk.Menu(menubar, tearoff=0)
        edit_menu.add_command(label="Select All", command=self.select_all, accelerator="Ctrl+A")
        edit_menu.add_command(label="Delete Selected", command=self.remove_selected, accelerator="Del")
        edit_menu.add_command(label="Reset Layout", command=self.reset_layout)
        edit_menu.add_command(label="Clear Canvas", command=self.clear_canvas)
        menubar.add_cascade(label="Edit", menu=edit_menu)
        self.root.config(menu=menubar)

    # --- Recipes --------------------------------------------------------------

    def reload_recipes(self):
        if self.recipe_source is None:
            return
        try:
            self.recipes = self.recipe_source.list(active_only=self.view.active_only_var.get())
        except RecipeCardError as e:
            logger.warning(f"EditorApp.reload_recipes: {e.message}")
            self.view.set_status(f"Could not load recipes: {e.message}")
            self.recipes = []
        self.view.set_recipes([r.name or str(r.id) for r in self.recipes], [r.id for r in self.recipes])
        self.view.set_status(f"{len(self.recipes)} recipe(s)")

    def on_recipe_select(self, event=None):
        key = self.view.selected_recipe_key()
        recipe = next((r for r in self.recipes if r.id == key), None)
        if recipe is not None:
            self.open_recipe(recipe)

    def open_recipe(self, recipe: Recipe):
        self.view.set_status(f"Loading {recipe.name!r}...")
        self.session.open_recipe_async(recipe, on_ready=lambda *result: self._loaded.put(result))

    def _poll_loaded(self):
        # Worker threads hand results over here so the store is only touched from the Tk thread
        try:
            while True:
                token, recipe, shapes, name = self._loaded.get_nowait()
                if self.session.apply_layout(token, recipe, shapes, name):
                    self.root.title(f"Recipe Card Editor - {recipe.name} [{name}]")
                    self.view.set_status(f"Opened {recipe.name!r} with template {name!r}")
        except queue.Empty:
            pass
        self.root.after(POLL_MS, self._poll_loaded)

    # --- Canvas events --------------------------------------------------------

    def on_canvas_press(self, e, additive: bool = False):
        point = self.view.get_canvas_coords(e)
        selection = self.session.selection
        hit = selection.hit_test(point)
        self._moved = False
        self._additive = additive
        if hit is None:
            selection.click_empty(point)
            self._dragging = None
            self.refresh_view()
            return
        # The click itself lands on release, and only if the pointer never moved
        self._dragging = hit.sid
        selection.drag_start(hit.sid, pointer=point)

    def on_canvas_drag(self, e):
        drag = self.session.selection.drag
        if self._dragging is None or drag is None:
            return
        x, y = drag.shape_position(self.view.get_canvas_coords(e))
        self.session.selection.drag_move(self._dragging, x, y)
        self._moved = True

    def on_canvas_release(self, e):
        selection = self.session.selection
        sid, self._dragging = self._dragging, None
        if sid is None or selection.drag is None:
            return
        if self._moved:
            x, y = selection.drag.shape_position(self.view.get_canvas_coords(e))
            selection.drag_end(sid, x, y)
        else:
            selection.drag = None
            selection.click(sid, self._additive)
        self.refresh_view()

    def on_delete_key(self, event):
        # Don't eat Backspace while typing in an entry
        if isinstance(event.widget, (tk.Entry, ttk.Entry)):
            return
        self.remove_selected()

    def on_escape(self, event=None):
        self.session.selection.escape()
        self.refresh_view()

    # --- Toolbar actions ------------------------------------------------------

    def set_tool(self, tool: str):
        self.session.selection.set_tool(tool)
        self.view.set_status(f"Tool: {tool}")

    def select_all(self):
        self.session.selection.select_all()
        self.refresh_view()

    def remove_selected(self):
        removed = self.session.delete_selected()
        if removed:
            self.view.set_status(f"Deleted {len(removed)} shape(s)")

    def apply_bulk_edit(self):
        try:
            changes = parse_bulk_edit(self.view.bulk_values())
        except ValueError as e:
            messagebox.showerror("Invalid Value", str(e))
            return
        touched = self.session.selection.apply_to_selected(**changes)
        self.view.set_status(f"Updated {len(touched)} shape(s)")

    def apply_shape_edit(self):
        selected = self.session.selection.selected_shapes()
        if len(selected) != 1:
            return
        shape = selected[0]
        try:
            changes = parse_shape_edit(shape, self.view.shape_values())
        except ValueError as e:
            messagebox.showerror("Invalid Value", str(e))
            return
        self.session.selection.edit_shape(shape.sid, **changes)
        self.view.set_status(f"Updated {shape.sid}")

    def set_grid_size(self, event=None):
        text = self.view.grid_size_var.get().strip()
        try:
            size = self.session.set_grid_size(int(text))
        except ValueError:
            messagebox.showerror("Invalid Value", f"Grid size must be a positive whole number, got {text!r}")
            self.view.grid_size_var.set(str(self.session.selection.grid_size))
            return
        self.view.set_status(f"Grid size: {size}px")
        self.refresh_view()

    def toggle_grid(self):
        self.session.pipeline.show_grid = self.view.grid_var.get()
        self.refresh_view()

    def toggle_snap(self):
        self.session.selection.snap_enabled = self.view.snap_var.get()

    def reset_layout(self):
        if messagebox.askyesno("Reset Layout", "Discard changes and rebuild the default layout?"):
            self.session.reset()

    def clear_canvas(self):
        if messagebox.askyesno("Clear Canvas", "Remove every shape from the canvas?"):
            self.session.clear()

    def save_template(self):
        self._save(self.session.save)

    def save_recipe_template(self):
        self._save(self.session.save_for_recipe)

    def _save(self, action):
        try:
            name = action()
        except RecipeCardError as e:
            self.show_error(e)
            return
        self.view.set_status(f"Saved template {name!r}")

    def export_preview(self):
        path = filedialog.asksaveasfilename(defaultextension=".png", filetypes=[("PNG files", "*.png")])
        if not path:
            return
        try:
            raster = self.session.preview()
            with open(path, 'wb') as f:
                f.write(raster.png)
        except RecipeCardError as e:
            self.show_error(e)
            return
        except OSError as e:
            messagebox.showerror("Export Error", f"Could not write {path}:\n{e}")
            return
        self.view.set_status(f"Wrote {os.path.basename(path)}")

    def export_pdf(self):
        try:
            document = self.session.export()
        except RecipeCardError as e:
            self.show_error(e)
            return
        self._write_document(document)

    def export_batch(self):
        if not self.recipes:
            messagebox.showinfo("Batch PDF", "No recipes loaded.")
            return
        self.view.set_status(f"Rendering {len(self.recipes)} recipe(s)...")

        def progress(done, total):
            self.view.set_status(f"Rendered {done}/{total}")
            self.root.update_idletasks()

        try:
            document = self.session.assembler.generate(self.recipes, progress=progress)
        except RecipeCardError as e:
            self.show_error(e)
            return
        self._write_document(document)

    def _write_document(self, document):
        path = filedialog.asksaveasfilename(defaultextension=".pdf", initialfile=document.filename,
                                            filetypes=[("PDF files", "*.pdf")])
        if not path:
            return
        try:
            document.write(path)
        except OSError as e:
            messagebox.showerror("Export Error", f"Could not write {path}:\n{e}")
            return
        self.view.set_status(f"Wrote {document.page_count} page(s) to {os.path.basename(path)}")

    def show_error(self, error: RecipeCardError):
        logger.error(f"EditorApp: {error.code}: {error.message}")
        text = error.message
        if error.suggestion:
            text += f"\n\n{error.suggestion}"
        messagebox.showerror(error.kind, text)

    # --- Refresh --------------------------------------------------------------

    def refresh_view(self):
        selection = self.session.selection
        selection.prune()
        self.view.show_page(self.session.view_image())
        selected = selection.selected_shapes()
        self.view.draw_selection(selected)
        self.view.show_properties(selected)

    def quit(self):
        self.session.close()
        self.root.destroy()
