# view.py

import tkinter as tk
from tkinter import ttk
from typing import Any, Dict, List, Optional

from PIL import Image, ImageTk

from constants import PAGE_HEIGHT, PAGE_WIDTH, PANEL_WIDTH, TOOLBAR_HEIGHT, TOOL_BUTTONS
from selection import editable_fields
from shapes.base_shape import Shape

# --- View - Handles UI and Drawing ────────────────────────────────────────────


class EditorView(tk.Frame):
    """
    Widgets for the template editor. The page itself is a Pillow image
    rendered by the session and shown on the canvas; selection outlines are
    drawn on top as canvas items. All events go to the controller.
    """

    def __init__(self, master, controller):
        super().__init__(master)
        self.controller = controller
        self.pack(fill=tk.BOTH, expand=True)

        self._page_photo: Optional[ImageTk.PhotoImage] = None
        self._recipe_index: List[Any] = []
        # Properties form for the single selected shape
        self._props_sid: Optional[Any] = None
        self._props_vars: Dict[str, tk.StringVar] = {}
        self._props_entries: List[tk.Widget] = []

        self.tool_var = tk.StringVar(value='select')
        self.grid_var = tk.BooleanVar(value=True)
        self.snap_var = tk.BooleanVar(value=True)
        self.grid_size_var = tk.StringVar(value="20")
        self.active_only_var = tk.BooleanVar(value=False)

        # Bulk-edit fields; blank entries are left untouched on apply
        self.font_size_var = tk.StringVar()
        self.bold_var = tk.StringVar(value='')
        self.fill_var = tk.StringVar()
        self.stroke_var = tk.StringVar()
        self.opacity_var = tk.StringVar()

        self._build_ui()
        self._bind_events()
        master.title("Recipe Card Editor")

    def _build_ui(self):
        # Toolbar
        self.toolbar = tk.Frame(self, height=TOOLBAR_HEIGHT, bd=1, relief=tk.RAISED)
        self.toolbar.pack(side=tk.TOP, fill=tk.X)
        for tool, icon in TOOL_BUTTONS.items():
            ttk.Radiobutton(self.toolbar, text=f"{icon} {tool.capitalize()}", value=tool,
                            variable=self.tool_var,
                            command=lambda t=tool: self.controller.set_tool(t)).pack(side=tk.LEFT, padx=2)

        ttk.Separator(self.toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=4)
        ttk.Checkbutton(self.toolbar, text="Grid", variable=self.grid_var,
                        command=self.controller.toggle_grid).pack(side=tk.LEFT)
        ttk.Checkbutton(self.toolbar, text="Snap", variable=self.snap_var,
                        command=self.controller.toggle_snap).pack(side=tk.LEFT)
        tk.Label(self.toolbar, text="Grid size").pack(side=tk.LEFT, padx=(6, 2))
        grid_size = ttk.Spinbox(self.toolbar, from_=5, to=200, increment=5, width=5,
                                textvariable=self.grid_size_var, command=self.controller.set_grid_size)
        grid_size.pack(side=tk.LEFT)
        grid_size.bind("<Return>", self.controller.set_grid_size)

        ttk.Separator(self.toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=4)
        for label, command in (("Save", self.controller.save_template),
                               ("Save for Recipe", self.controller.save_recipe_template),
                               ("Reset", self.controller.reset_layout),
                               ("Clear", self.controller.clear_canvas),
                               ("Delete", self.controller.remove_selected),
                               ("Preview PNG", self.controller.export_preview),
                               ("Export PDF", self.controller.export_pdf),
                               ("Batch PDF", self.controller.export_batch)):
            tk.Button(self.toolbar, text=label, command=command).pack(side=tk.LEFT, padx=2)

        self.pane = tk.PanedWindow(self, sashrelief=tk.RAISED, orient=tk.HORIZONTAL)
        self.pane.pack(fill=tk.BOTH, expand=True)

        # Left Panel (Recipes, Properties, Bulk edit)
        self.left_panel = tk.Frame(self.pane, width=PANEL_WIDTH)
        self.pane.add(self.left_panel, minsize=180)

        tk.Label(self.left_panel, text="Recipes").pack(anchor='w')
        ttk.Checkbutton(self.left_panel, text="Active only", variable=self.active_only_var,
                        command=self.controller.reload_recipes).pack(anchor='w')
        self.recipe_list = tk.Listbox(self.left_panel, height=12, exportselection=False)
        self.recipe_list.pack(fill=tk.BOTH, expand=True, padx=2, pady=2)

        tk.Label(self.left_panel, text="Properties").pack(anchor='w')
        self.props_label = tk.Label(self.left_panel, text="No shape selected", anchor='w', justify=tk.LEFT)
        self.props_label.pack(fill=tk.X, padx=2)
        self.props_form = tk.Frame(self.left_panel)
        self.props_form.pack(fill=tk.X, padx=2)
        self.props_apply = tk.Button(self.left_panel, text="Apply to shape",
                                     command=self.controller.apply_shape_edit, state=tk.DISABLED)
        self.props_apply.pack(fill=tk.X, padx=2, pady=2)

        self.bulk_label = tk.Label(self.left_panel, text="Edit selection")
        self.bulk_label.pack(anchor='w')
        bulk = tk.Frame(self.left_panel)
        bulk.pack(fill=tk.X, padx=2)
        rows = (("Font size", ttk.Entry(bulk, textvariable=self.font_size_var, width=8)),
                ("Bold", ttk.Combobox(bulk, textvariable=self.bold_var, values=('', 'yes', 'no'),
                                      state='readonly', width=6)),
                ("Fill", ttk.Entry(bulk, textvariable=self.fill_var, width=10)),
                ("Stroke", ttk.Entry(bulk, textvariable=self.stroke_var, width=10)),
                ("Opacity", ttk.Entry(bulk, textvariable=self.opacity_var, width=8)))
        for row, (label, widget) in enumerate(rows):
            tk.Label(bulk, text=label).grid(row=row, column=0, sticky='w')
            widget.grid(row=row, column=1, sticky='ew')
        bulk.columnconfigure(1, weight=1)
        tk.Button(self.left_panel, text="Apply to selection",
                  command=self.controller.apply_bulk_edit).pack(fill=tk.X, padx=2, pady=2)

        # Drawing surface
        self.drawing_area = tk.Frame(self.pane)
        self.pane.add(self.drawing_area, stretch="always")
        self.canvas = tk.Canvas(self.drawing_area, bg='white', highlightthickness=0,
                                width=PAGE_WIDTH, height=PAGE_HEIGHT,
                                scrollregion=(0, 0, PAGE_WIDTH, PAGE_HEIGHT))
        self.h_scroll = tk.Scrollbar(self.drawing_area, orient=tk.HORIZONTAL, command=self.canvas.xview)
        self.v_scroll = tk.Scrollbar(self.drawing_area, orient=tk.VERTICAL, command=self.canvas.yview)
        self.canvas.configure(xscrollcommand=self.h_scroll.set, yscrollcommand=self.v_scroll.set)
        self.canvas.grid(row=0, column=0, sticky='nsew')
        self.h_scroll.grid(row=1, column=0, sticky='ew')
        self.v_scroll.grid(row=0, column=1, sticky='ns')
        self.drawing_area.rowconfigure(0, weight=1)
        self.drawing_area.columnconfigure(0, weight=1)

        self.status_var = tk.StringVar(value="Ready")
        tk.Label(self, textvariable=self.status_var, anchor='w', bd=1, relief=tk.SUNKEN).pack(side=tk.BOTTOM, fill=tk.X)

    def _bind_events(self):
        self.canvas.bind("<ButtonPress-1>", self.controller.on_canvas_press)
        self.canvas.bind("<Shift-ButtonPress-1>", lambda e: self.controller.on_canvas_press(e, additive=True))
        self.canvas.bind("<B1-Motion>", self.controller.on_canvas_drag)
        self.canvas.bind("<ButtonRelease-1>", self.controller.on_canvas_release)
        self.recipe_list.bind("<<ListboxSelect>>", self.controller.on_recipe_select)

        self.master.bind_all("<Delete>", self.controller.on_delete_key)
        self.master.bind_all("<BackSpace>", self.controller.on_delete_key)
        self.master.bind_all("<Escape>", self.controller.on_escape)
        self.master.bind_all("<Control-s>", lambda e: self.controller.save_template())
        self.master.bind_all("<Control-a>", lambda e: self.controller.select_all())
        # Add Cmd bindings for Mac users
        self.master.bind_all("<Command-s>", lambda e: self.controller.save_template())
        self.master.bind_all("<Command-a>", lambda e: self.controller.select_all())

    # --- View - Methods to update the display (Called by Controller or Model Observer) ---

    def get_canvas_coords(self, event):
        return self.canvas.canvasx(event.x), self.canvas.canvasy(event.y)

    def show_page(self, image: Image.Image):
        self._page_photo = ImageTk.PhotoImage(image)
        self.canvas.delete("page")
        self.canvas.create_image(0, 0, image=self._page_photo, anchor='nw', tags=("page",))
        self.canvas.tag_lower("page")

    def draw_selection(self, shapes: List[Shape]):
        self.canvas.delete("selection")
        for shape in shapes:
            x1, y1, x2, y2 = shape.get_bbox
            self.canvas.create_rectangle(
                min(x1, x2) - 2, min(y1, y2) - 2, max(x1, x2) + 2, max(y1, y2) + 2,
                dash=(2, 2), outline="#555555", width=1,
                tags=("selection", f"select_{shape.sid}"))

    def show_properties(self, shapes: List[Shape]):
        self.bulk_label.config(text=f"Edit selection ({len(shapes)})")
        if len(shapes) != 1:
            self._clear_properties("No shape selected" if not shapes else f"{len(shapes)} shapes selected")
            return
        shape = shapes[0]
        title = f"{shape.sid} ({shape.shape_type})"
        if shape.binding_tag:
            title += f"\nbound to {shape.binding_tag}"
        if shape.sid != self._props_sid:
            self._build_properties(shape)
        self.props_label.config(text=title)
        if self.focus_get() in self._props_entries:
            # Don't overwrite a value that is being typed
            return
        for name, var in self._props_vars.items():
            var.set(_display_value(name, getattr(shape, name, None)))

    def _clear_properties(self, text: str):
        for widget in self.props_form.winfo_children():
            widget.destroy()
        self._props_sid = None
        self._props_vars = {}
        self._props_entries = []
        self.props_label.config(text=text)
        self.props_apply.config(state=tk.DISABLED)

    def _build_properties(self, shape: Shape):
        self._clear_properties("")
        self._props_sid = shape.sid
        for row, name in enumerate(editable_fields(shape)):
            var = tk.StringVar()
            tk.Label(self.props_form, text=name.replace('_', ' ')).grid(row=row, column=0, sticky='w')
            if name == 'is_bold':
                entry = ttk.Combobox(self.props_form, textvariable=var, values=('yes', 'no'),
                                     state='readonly', width=6)
            else:
                entry = ttk.Entry(self.props_form, textvariable=var, width=14)
                entry.bind("<Return>", lambda e: self.controller.apply_shape_edit())
            entry.grid(row=row, column=1, sticky='ew')
            self._props_vars[name] = var
            self._props_entries.append(entry)
        self.props_form.columnconfigure(1, weight=1)
        self.props_apply.config(state=tk.NORMAL)

    def shape_values(self) -> Dict[str, str]:
        return {name: var.get() for name, var in self._props_vars.items()}

    def set_recipes(self, labels: List[str], keys: List[Any]):
        self._recipe_index = list(keys)
        self.recipe_list.delete(0, tk.END)
        for label in labels:
            self.recipe_list.insert(tk.END, label)

    def selected_recipe_key(self) -> Optional[Any]:
        chosen = self.recipe_list.curselection()
        if not chosen:
            return None
        return self._recipe_index[chosen[0]]

    def bulk_values(self) -> Dict[str, str]:
        return {
            'font_size': self.font_size_var.get().strip(),
            'is_bold': self.bold_var.get().strip(),
            'fill': self.fill_var.get().strip(),
            'stroke': self.stroke_var.get().strip(),
            'opacity': self.opacity_var.get().strip(),
        }

    def set_status(self, text: str):
        self.status_var.set(text)


def _display_value(name: str, value: Any) -> str:
    if value is None:
        return ''
    if name == 'is_bold':
        return 'yes' if value else 'no'
    return str(value)
