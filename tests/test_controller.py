from types import SimpleNamespace

import pytest

pytest.importorskip("tkinter")

import controller
from controller import EditorApp
from shapes import Line, Rectangle, Text


class FakeView:
    """Stands in for EditorView; canvas coordinates are the event's x and y."""

    def __init__(self):
        self.status = None
        self.form = {}
        self.grid_size_var = SimpleNamespace(value="20")
        self.grid_size_var.get = lambda: self.grid_size_var.value
        self.grid_size_var.set = lambda v: setattr(self.grid_size_var, "value", v)

    def get_canvas_coords(self, event):
        return event.x, event.y

    def show_page(self, image):
        pass

    def draw_selection(self, shapes):
        pass

    def show_properties(self, shapes):
        pass

    def shape_values(self):
        return dict(self.form)

    def set_status(self, text):
        self.status = text


def pointer(x, y):
    return SimpleNamespace(x=x, y=y)


@pytest.fixture
def app(session):
    # Skip __init__: it needs a Tk root and builds real widgets
    editor = EditorApp.__new__(EditorApp)
    editor.session = session
    editor.view = FakeView()
    editor.recipes = []
    editor._dragging = None
    editor._moved = False
    editor._additive = False
    session.store.add(Rectangle("box", x=100, y=100, width=50, height=50))
    session.store.add(Line("rule", points=[200, 200, 300, 200]))
    return editor


def test_drag_keeps_grab_offset(app):
    store = app.session.store
    app.on_canvas_press(pointer(125, 125))
    app.on_canvas_drag(pointer(126, 126))
    assert store.get("box").position == (101, 101)
    app.on_canvas_drag(pointer(147, 133))
    assert store.get("box").position == (122, 108)
    app.on_canvas_release(pointer(147, 133))
    assert store.get("box").position == (120, 100)
    assert app.session.selection.drag is None


def test_line_drag_moves_by_pointer_delta(app):
    app.session.selection.snap_enabled = False
    line = app.session.store.get("rule")
    app.on_canvas_press(pointer(250, 200))
    app.on_canvas_drag(pointer(251, 200))
    assert line.absolute_points() == [201, 200, 301, 200]
    app.on_canvas_release(pointer(260, 210))
    assert line.absolute_points() == [210, 210, 310, 210]


def click(app, x, y, additive=False):
    app.on_canvas_press(pointer(x, y), additive=additive)
    app.on_canvas_release(pointer(x, y))


def test_group_drag_from_pointer_moves_selection_together(app):
    store = app.session.store
    app.session.selection.snap_enabled = False
    click(app, 110, 110)
    click(app, 250, 200, additive=True)
    assert app.session.selection.selected == ["box", "rule"]
    app.on_canvas_press(pointer(250, 200))
    app.on_canvas_drag(pointer(270, 240))
    app.on_canvas_release(pointer(270, 240))
    assert store.get("rule").position == (20, 40)
    assert store.get("box").position == (120, 140)
    assert app.session.selection.selected == ["box", "rule"]


def test_dragging_unselected_shape_leaves_selection(app):
    click(app, 250, 200)
    app.on_canvas_press(pointer(110, 110))
    app.on_canvas_drag(pointer(150, 150))
    app.on_canvas_release(pointer(150, 150))
    assert app.session.store.get("box").position == (140, 140)
    assert app.session.store.get("rule").position == (0, 0)
    assert app.session.selection.selected == ["rule"]


def test_click_without_motion_does_not_move_shape(app):
    store = app.session.store
    store.update("box", x=103, y=97)
    click(app, 110, 110)
    assert store.get("box").position == (103, 97)
    assert app.session.selection.selected == ["box"]
    assert app.session.selection.drag is None


def test_press_on_empty_canvas_clears_selection(app):
    click(app, 110, 110)
    app.on_canvas_press(pointer(700, 500))
    app.on_canvas_drag(pointer(710, 510))
    app.on_canvas_release(pointer(710, 510))
    assert app.session.selection.selected == []
    assert app.session.store.get("box").position == (100, 100)


def test_apply_shape_edit_updates_single_selection(app):
    app.session.store.add(Text("note", x=400, y=400, text="Old"))
    app.session.selection.click("note")
    app.view.form = {"x": "410", "y": "400", "text": "Chef's note", "font_size": "22", "is_bold": "yes"}
    app.apply_shape_edit()
    note = app.session.store.get("note")
    assert (note.x, note.text, note.font_size, note.is_bold) == (410, "Chef's note", 22, True)


def test_apply_shape_edit_reports_bad_value(app, monkeypatch):
    shown = []
    monkeypatch.setattr(controller.messagebox, "showerror", lambda *args: shown.append(args))
    app.session.selection.click("box")
    app.view.form = {"width": "-5"}
    app.apply_shape_edit()
    assert shown
    assert app.session.store.get("box").width == 50


def test_set_grid_size(app, monkeypatch):
    shown = []
    monkeypatch.setattr(controller.messagebox, "showerror", lambda *args: shown.append(args))
    app.view.grid_size_var.set("10")
    app.set_grid_size()
    assert app.session.selection.grid_size == 10
    assert app.session.pipeline.grid_size == 10

    app.view.grid_size_var.set("zero")
    app.set_grid_size()
    assert shown
    assert app.session.selection.grid_size == 10
    assert app.view.grid_size_var.get() == "10"
