# selection.py
#
# Selection state, tool placement and group drag for the template editor.
# Everything here is synchronous and mutates the ShapeStore directly.

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from constants import BRAND_COLOR, GRID_SIZE, TOOL_BUTTONS, TOOL_SELECT
from model import ShapeStore
from shapes import Circle, Line, Rectangle, Shape, Text
from utils.geometry import snap

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# Bulk edits that only make sense for some kinds of shape
TEXT_ONLY_FIELDS = {'font_size', 'is_bold', 'font_family', 'text'}
NOT_FOR_IMAGES = {'fill', 'stroke'}


def create_default_shape(kind: str, sid: str, x: float, y: float) -> Shape:
    """Builds the shape a tool click places at (x, y)."""
    if kind == 'rectangle':
        return Rectangle(sid, x=x, y=y, width=100, height=50,
                         fill=BRAND_COLOR, stroke='#000', stroke_width=1)
    if kind == 'circle':
        return Circle(sid, x=x, y=y, radius=30,
                      fill=BRAND_COLOR, stroke='#000', stroke_width=1)
    if kind == 'line':
        return Line(sid, points=[x, y, x + 100, y], stroke='#000', stroke_width=2)
    if kind == 'text':
        return Text(sid, x=x, y=y, text='New Text', font_size=16, fill='#000')
    raise ValueError(f"No default shape for tool {kind!r}")


@dataclass
class DragSession:
    """
    Bookkeeping for one drag gesture. Lives from drag start to drag end and
    is never stored on the shapes themselves.
    """
    dragged_id: Any
    start_positions: Dict[Any, Point]
    last_position: Point
    followers: List[Any] = field(default_factory=list)
    # Pointer minus the dragged shape's position at press time
    grab_offset: Point = (0, 0)

    def shape_position(self, pointer: Point) -> Point:
        """Where the dragged shape sits when the pointer is at `pointer`."""
        return pointer[0] - self.grab_offset[0], pointer[1] - self.grab_offset[1]


class SelectionController:
    def __init__(self, store: ShapeStore, grid_size: int = GRID_SIZE, snap_enabled: bool = True):
        self.store = store
        self.grid_size = grid_size
        self.snap_enabled = snap_enabled
        self.tool = TOOL_SELECT
        self._selected: List[Any] = []
        self.drag: Optional[DragSession] = None

    # --- Selection ------------------------------------------------------------

    @property
    def selected(self) -> List[Any]:
        """Selected ids that still exist, in render order."""
        chosen = set(self._selected)
        return [sid for sid in self.store.ids() if sid in chosen]

    def selected_shapes(self) -> List[Shape]:
        return [self.store.get(sid) for sid in self.selected]

    def is_selected(self, sid: Any) -> bool:
        return sid in self._selected

    def click(self, sid: Any, additive: bool = False):
        """Additive clicks toggle membership, plain clicks select just this shape."""
        if sid not in self.store:
            logger.debug(f"SelectionController.click: No shape {sid!r}; ignoring.")
            return
        if additive:
            if sid in self._selected:
                self._selected.remove(sid)
            else:
                self._selected.append(sid)
        else:
            self._selected = [sid]

    def click_empty(self, point: Optional[Point] = None) -> Optional[Shape]:
        """
        A click on bare canvas. With the select tool it clears the selection;
        with a drawing tool it places that tool's default shape at the
        (snapped) pointer and keeps the selection as it was.
        """
        if self.tool == TOOL_SELECT or point is None:
            self.clear()
            return None
        x, y = snap(point, self.grid_size, self.snap_enabled)
        shape = create_default_shape(self.tool, self.store.next_id(self.tool), x, y)
        self.store.add(shape)
        logger.info(f"SelectionController.click_empty: Placed {self.tool} {shape.sid!r} at ({x}, {y}).")
        return shape

    def click_at(self, point: Point, additive: bool = False) -> Optional[Shape]:
        """Resolves a canvas click to the topmost shape under the pointer."""
        hit = self.hit_test(point)
        if hit is None:
            return self.click_empty(point)
        self.click(hit.sid, additive)
        return None

    def hit_test(self, point: Point) -> Optional[Shape]:
        x, y = point
        for shape in reversed(self.store.list()):
            if shape.contains_point(x, y):
                return shape
        return None

    def escape(self):
        self.clear()

    def clear(self):
        self._selected = []

    def select_all(self):
        self._selected = self.store.ids()

    def prune(self):
        """Forgets selected ids whose shapes were removed."""
        self._selected = [sid for sid in self._selected if sid in self.store]

    def set_tool(self, tool: str):
        if tool not in TOOL_BUTTONS:
            raise ValueError(f"Unknown tool {tool!r}")
        self.tool = tool

    # --- Group drag -----------------------------------------------------------

    def drag_start(self, sid: Any, pointer: Optional[Point] = None) -> DragSession:
        """
        Begins a drag of `sid`. When the press point is given, later pointer
        positions can be turned into shape positions with
        `DragSession.shape_position`, so the shape keeps its offset from the
        cursor instead of jumping to it.
        """
        shape = self.store.get(sid)
        if shape is None:
            raise KeyError(sid)
        followers = [s for s in self.selected if s != sid] if sid in self._selected else []
        starts = {s: self.store.get(s).position for s in [sid, *followers]}
        x, y = shape.x or 0, shape.y or 0
        grab = (pointer[0] - x, pointer[1] - y) if pointer is not None else (0, 0)
        self.drag = DragSession(dragged_id=sid,
                                start_positions=starts,
                                last_position=(x, y),
                                followers=followers,
                                grab_offset=grab)
        return self.drag

    def drag_move(self, sid: Any, x: float, y: float):
        """
        Moves the dragged shape to (x, y) and every other selected shape by
        the same delta. No snapping while in motion.
        """
        session = self._session_for(sid)
        last_x, last_y = session.last_position
        self._shift_group(session, (x, y), x - last_x, y - last_y)
        session.last_position = (x, y)

    def drag_end(self, sid: Any, x: Optional[float] = None, y: Optional[float] = None) -> Point:
        """
        Finishes the drag. With snapping on, the dragged shape lands on the
        grid and the rest of the group moves by the same correction.
        """
        session = self._session_for(sid)
        if x is not None and y is not None:
            self.drag_move(sid, x, y)
        final = session.last_position
        if self.snap_enabled:
            target = snap(final, self.grid_size, True)
            dx, dy = target[0] - final[0], target[1] - final[1]
            if dx or dy:
                self._shift_group(session, target, dx, dy)
            final = target
        self.drag = None
        logger.debug(f"SelectionController.drag_end: {sid!r} dropped at {final}.")
        return final

    def drag_cancel(self):
        """Puts every shape in the gesture back where it started."""
        if self.drag is None:
            return
        self.store.update_many({sid: {'x': p[0], 'y': p[1]}
                                for sid, p in self.drag.start_positions.items()})
        self.drag = None

    def _session_for(self, sid: Any) -> DragSession:
        if self.drag is None or self.drag.dragged_id != sid:
            self.drag_start(sid)
        return self.drag

    def _shift_group(self, session: DragSession, dragged_to: Point, dx: float, dy: float):
        changes = {session.dragged_id: {'x': dragged_to[0], 'y': dragged_to[1]}}
        for follower in session.followers:
            shape = self.store.get(follower)
            if shape is not None:
                changes[follower] = {'x': (shape.x or 0) + dx, 'y': (shape.y or 0) + dy}
        self.store.update_many(changes)

    # --- Edits on the selection -----------------------------------------------

    def delete_selected(self) -> List[Any]:
        removed = self.store.remove(self.selected)
        self.clear()
        return removed

    def apply_to_selected(self, **changes) -> List[Any]:
        """
        Bulk property edit. A field is written only to the selected shapes it
        applies to: text styling to text, fill and stroke to non-image shapes,
        everything else to any shape that has the field.
        """
        touched = {}
        for shape in self.selected_shapes():
            applicable = {}
            for name, value in changes.items():
                if name in TEXT_ONLY_FIELDS and shape.shape_type != 'text':
                    continue
                if name in NOT_FOR_IMAGES and shape.shape_type == 'image':
                    continue
                if name not in shape.field_names():
                    continue
                applicable[name] = value
            if applicable:
                touched[shape.sid] = applicable
        self.store.update_many(touched)
        return list(touched)

    def edit_shape(self, sid: Any, **changes) -> Optional[Shape]:
        """Writes properties-form changes into one shape through the store."""
        shape = self.store.get(sid)
        if shape is None:
            return None
        unknown = set(changes) - set(editable_fields(shape))
        if unknown:
            raise ValueError(f"{shape.shape_type} shapes cannot edit {sorted(unknown)}")
        if not changes:
            return shape
        return self.store.update(sid, **changes)


# Fields the properties form offers for one shape, in display order
EDITABLE_FIELDS = {
    'rectangle': ['x', 'y', 'width', 'height', 'fill', 'stroke', 'stroke_width', 'opacity'],
    'circle': ['x', 'y', 'radius', 'fill', 'stroke', 'stroke_width', 'opacity'],
    'line': ['x', 'y', 'stroke', 'stroke_width', 'opacity'],
    'text': ['x', 'y', 'text', 'width', 'font_size', 'font_family', 'is_bold', 'fill', 'opacity'],
    'image': ['x', 'y', 'width', 'height', 'opacity'],
}

POSITIVE_FIELDS = {'width', 'height', 'radius', 'stroke_width'}


def editable_fields(shape: Shape) -> List[str]:
    return list(EDITABLE_FIELDS.get(shape.shape_type, ['x', 'y', 'opacity']))


def _number(name: str, text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {text!r}")
    if value != value or value in (float('inf'), float('-inf')):
        raise ValueError(f"{name} must be a finite number")
    return int(value) if value.is_integer() else value


def parse_field(name: str, text: str) -> Any:
    """Parses one form value for shape attribute `name`. Raises ValueError."""
    label = name.replace('_', ' ').capitalize()
    if name == 'font_size':
        try:
            value = int(text)
        except ValueError:
            raise ValueError(f"Font size must be a whole number, got {text!r}")
        if value <= 0:
            raise ValueError("Font size must be positive")
        return value
    if name == 'is_bold':
        flag = text.lower()
        if flag not in ('yes', 'no', 'true', 'false'):
            raise ValueError(f"Bold must be yes or no, got {text!r}")
        return flag in ('yes', 'true')
    if name == 'opacity':
        value = _number(label, text)
        if not 0 <= value <= 1:
            raise ValueError("Opacity must be between 0 and 1")
        return value
    if name in POSITIVE_FIELDS:
        value = _number(label, text)
        if value <= 0:
            raise ValueError(f"{label} must be positive")
        return value
    if name in ('x', 'y'):
        return _number(label, text)
    return text


def parse_bulk_edit(raw: Dict[str, str]) -> Dict[str, Any]:
    """
    Turns the edit panel's text fields into shape changes. Blank fields are
    left out. Raises ValueError naming the first field that does not parse.
    """
    changes: Dict[str, Any] = {}
    for name in ('font_size', 'is_bold', 'fill', 'stroke', 'opacity'):
        text = raw.get(name, '')
        if text:
            changes[name] = parse_field(name, text)
    return changes


def parse_shape_edit(shape: Shape, raw: Dict[str, str]) -> Dict[str, Any]:
    """
    Parses the properties form for one shape. Only the fields that kind of
    shape offers are read. Text is taken as typed, even when empty; any other
    blank field is left unchanged.
    """
    changes: Dict[str, Any] = {}
    for name in editable_fields(shape):
        if name not in raw:
            continue
        text = raw[name]
        if name == 'text':
            changes[name] = text
        elif text.strip():
            changes[name] = parse_field(name, text.strip())
    return changes
