import pytest

from model import ShapeStore
from selection import SelectionController, create_default_shape, editable_fields, parse_bulk_edit, parse_shape_edit
from shapes import Circle, ImageShape, Line, Rectangle, Text
from utils.geometry import snap


@pytest.fixture
def store():
    return ShapeStore([
        Rectangle("a", x=100, y=100, width=50, height=50, fill="#ff0000"),
        Circle("b", x=300, y=120, radius=20, fill="#00ff00"),
        Line("c", points=[0, 0, 100, 0], x=40, y=400, stroke="#000"),
        Text("d", x=500, y=60, text="Label", font_size=14),
        ImageShape("e", x=600, y=300, width=80, height=80),
    ])


@pytest.fixture
def selection(store):
    return SelectionController(store, grid_size=20, snap_enabled=True)


def offsets(store, ids):
    ax, ay = store.get(ids[0]).position
    return {sid: (store.get(sid).x - ax, store.get(sid).y - ay) for sid in ids[1:]}


def test_plain_click_replaces_and_additive_click_toggles(selection):
    selection.click("a")
    selection.click("b")
    assert selection.selected == ["b"]
    selection.click("a", additive=True)
    assert selection.selected == ["a", "b"]
    selection.click("b", additive=True)
    assert selection.selected == ["a"]
    selection.click("ghost")
    assert selection.selected == ["a"]


def test_escape_and_empty_click_clear_with_select_tool(selection):
    selection.select_all()
    assert len(selection.selected) == 5
    selection.escape()
    assert selection.selected == []
    selection.click("a")
    assert selection.click_empty((5, 5)) is None
    assert selection.selected == []


def test_tool_click_places_snapped_shape_and_keeps_selection(selection, store):
    selection.click("a")
    selection.set_tool("rectangle")
    placed = selection.click_empty((47, 71))
    assert placed.sid == "rectangle-1"
    assert placed.position == (40, 80)
    assert (placed.width, placed.height) == (100, 50)
    assert store.ids()[-1] == "rectangle-1"
    assert selection.selected == ["a"]


def test_tool_click_without_snap_uses_raw_point(selection):
    selection.snap_enabled = False
    selection.set_tool("text")
    placed = selection.click_empty((47, 71))
    assert placed.position == (47, 71)
    assert placed.text == "New Text"


def test_unknown_tool_rejected(selection):
    with pytest.raises(ValueError):
        selection.set_tool("hexagon")
    with pytest.raises(ValueError):
        create_default_shape("hexagon", "h-1", 0, 0)


def test_default_line_is_horizontal_from_click(selection):
    line = create_default_shape("line", "line-1", 20, 40)
    assert line.points == [20, 40, 120, 40]


def test_click_at_uses_topmost_hit(selection, store):
    store.add(Rectangle("top", x=110, y=110, width=10, height=10))
    selection.click_at((115, 115))
    assert selection.selected == ["top"]
    selection.click_at((125, 140))
    assert selection.selected == ["a"]


def test_group_drag_keeps_relative_offsets(selection, store):
    for sid in ("a", "b", "c"):
        selection.click(sid, additive=True)
    before = offsets(store, ["a", "b", "c"])

    selection.drag_start("a")
    selection.drag_move("a", 133, 127)
    assert store.get("a").position == (133, 127)
    assert offsets(store, ["a", "b", "c"]) == before

    final = selection.drag_end("a", 151, 139)
    assert final == (160, 140)
    assert store.get("a").position == (160, 140)
    assert offsets(store, ["a", "b", "c"]) == before
    # Unselected shapes stay put
    assert store.get("d").position == (500, 60)
    assert selection.drag is None


def test_drag_end_without_snap_keeps_raw_position(selection, store):
    selection.snap_enabled = False
    selection.click("a")
    selection.drag_start("a")
    assert selection.drag_end("a", 151, 139) == (151, 139)
    assert store.get("a").position == (151, 139)


def test_dragging_unselected_shape_moves_it_alone(selection, store):
    selection.click("b")
    selection.drag_start("a")
    selection.drag_end("a", 200, 200)
    assert store.get("a").position == (200, 200)
    assert store.get("b").position == (300, 120)


def test_drag_cancel_restores_start_positions(selection, store):
    selection.click("a")
    selection.click("b", additive=True)
    selection.drag_start("a")
    selection.drag_move("a", 10, 10)
    selection.drag_cancel()
    assert store.get("a").position == (100, 100)
    assert store.get("b").position == (300, 120)


def test_line_drag_moves_offset_not_points(selection, store):
    selection.click("c")
    selection.drag_start("c")
    selection.drag_end("c", 60, 420)
    line = store.get("c")
    assert line.points == [0, 0, 100, 0]
    assert line.absolute_points() == [60, 420, 160, 420]


def test_delete_selected(selection, store):
    selection.click("a")
    selection.click("d", additive=True)
    assert selection.delete_selected() == ["a", "d"]
    assert "a" not in store and "d" not in store
    assert selection.selected == []
    assert selection.delete_selected() == []


def test_bulk_edit_respects_shape_kinds(selection, store):
    selection.select_all()
    touched = selection.apply_to_selected(font_size=20, is_bold=True, fill="#123456", opacity=0.5)
    assert set(touched) == {"a", "b", "c", "d", "e"}
    assert store.get("d").font_size == 20
    assert store.get("d").is_bold is True
    assert store.get("d").fill == "#123456"
    assert store.get("a").fill == "#123456"
    assert not hasattr(store.get("a"), "font_size")
    assert store.get("e").fill is None
    assert all(store.get(sid).opacity == 0.5 for sid in "abcde")


def test_selected_is_pruned_after_removal(selection, store):
    selection.click("a")
    store.remove(["a"])
    assert selection.selected == []
    selection.prune()
    assert not selection.is_selected("a")


def test_parse_bulk_edit():
    assert parse_bulk_edit({"font_size": "", "is_bold": "", "fill": "", "stroke": "", "opacity": ""}) == {}
    assert parse_bulk_edit({"font_size": "18", "is_bold": "no", "fill": "#fff", "opacity": "0.25"}) == {
        "font_size": 18, "is_bold": False, "fill": "#fff", "opacity": 0.25,
    }
    with pytest.raises(ValueError):
        parse_bulk_edit({"font_size": "big"})
    with pytest.raises(ValueError):
        parse_bulk_edit({"opacity": "1.5"})
    with pytest.raises(ValueError):
        parse_bulk_edit({"is_bold": "maybe"})


def test_dragging_one_of_two_selected_moves_the_other_by_same_delta():
    store = ShapeStore([Rectangle("A", x=0, y=0, width=5, height=5),
                        Rectangle("B", x=10, y=10, width=5, height=5)])
    selection = SelectionController(store, grid_size=20, snap_enabled=False)
    selection.click("A")
    selection.click("B", additive=True)
    selection.drag_start("A")
    selection.drag_move("A", 5, 5)
    assert store.get("A").position == (5, 5)
    assert store.get("B").position == (15, 15)


def test_grid_20_snaps_23_38_to_20_40():
    assert snap((23, 38), 20) == (20, 40)
    store = ShapeStore([Rectangle("A", x=0, y=0, width=5, height=5)])
    selection = SelectionController(store, grid_size=20, snap_enabled=True)
    selection.drag_start("A")
    assert selection.drag_end("A", 23, 38) == (20, 40)
    assert store.get("A").position == (20, 40)


def test_drag_session_converts_pointer_to_shape_position(selection, store):
    drag = selection.drag_start("a", pointer=(125, 130))
    assert drag.grab_offset == (25, 30)
    assert drag.shape_position((126, 131)) == (101, 101)
    assert selection.drag_start("a").grab_offset == (0, 0)


def test_editable_fields_follow_shape_kind(store):
    assert "radius" in editable_fields(store.get("b"))
    assert "width" not in editable_fields(store.get("b"))
    assert "fill" not in editable_fields(store.get("c"))
    assert "text" in editable_fields(store.get("d"))
    assert "fill" not in editable_fields(store.get("e"))


def test_parse_shape_edit(store):
    rect = store.get("a")
    assert parse_shape_edit(rect, {"x": "12.5", "width": "80", "height": "", "fill": " #abc ",
                                   "text": "ignored"}) == {"x": 12.5, "width": 80, "fill": "#abc"}
    assert parse_shape_edit(store.get("d"), {"text": "", "is_bold": "no"}) == {"text": "", "is_bold": False}
    for bad in ({"width": "0"}, {"x": "left"}, {"opacity": "2"}, {"stroke_width": "nan"}):
        with pytest.raises(ValueError):
            parse_shape_edit(rect, bad)


def test_edit_shape_updates_through_store(selection, store):
    seen = []
    store.add_observer(lambda: seen.append(True))
    circle = selection.edit_shape("b", radius=45, x=310)
    assert (circle.radius, circle.x) == (45, 310)
    assert seen
    assert selection.edit_shape("ghost", x=1) is None
    with pytest.raises(ValueError):
        selection.edit_shape("b", width=10)
    assert store.get("b").radius == 45
