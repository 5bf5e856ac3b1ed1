import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from shapes.base_shape import Shape
from errors import DuplicateShapeError

logger = logging.getLogger(__name__)


class ShapeStore:
    """
    Ordered collection of shapes for one editing session. Position in the
    sequence is the render order: later shapes draw on top. Every mutation
    is applied immediately and then observers are notified.
    """

    def __init__(self, shapes: Optional[Iterable[Shape]] = None):
        self._shapes: List[Shape] = []
        self._shape_map: Dict[Any, Shape] = {}
        self._observers: List[Callable] = []
        if shapes:
            self.replace_all(shapes, notify=False)

    def __len__(self) -> int:
        return len(self._shapes)

    def __contains__(self, sid: Any) -> bool:
        return sid in self._shape_map

    def __iter__(self):
        return iter(list(self._shapes))

    def list(self) -> List[Shape]:
        """Shapes in render order. The returned list is a snapshot."""
        return list(self._shapes)

    def ids(self) -> List[Any]:
        return [shape.sid for shape in self._shapes]

    def get(self, sid: Any) -> Optional[Shape]:
        return self._shape_map.get(sid)

    def index_of(self, sid: Any) -> int:
        shape = self._shape_map.get(sid)
        return self._shapes.index(shape) if shape is not None else -1

    def add(self, shape: Shape) -> Shape:
        """Appends a shape on top of the render order."""
        if not isinstance(shape, Shape):
            raise TypeError(f"ShapeStore.add: expected a Shape, got {type(shape).__name__}")
        if shape.sid in self._shape_map:
            raise DuplicateShapeError(shape.sid)
        self._shapes.append(shape)
        self._shape_map[shape.sid] = shape
        logger.debug(f"ShapeStore.add: Shape {shape.sid!r} added at position {len(self._shapes) - 1}.")
        self.notify_observers()
        return shape

    def update(self, sid: Any, **changes) -> Optional[Shape]:
        """Shallow-merges `changes` into the shape. Unknown ids are ignored."""
        shape = self._shape_map.get(sid)
        if shape is None:
            logger.debug(f"ShapeStore.update: No shape {sid!r}; ignoring.")
            return None
        if 'sid' in changes and changes['sid'] != sid:
            raise ValueError("ShapeStore.update: shape ids cannot be changed")
        changes.pop('sid', None)
        shape.set(**changes)
        self.notify_observers()
        return shape

    def update_many(self, changes_by_id: Dict[Any, Dict[str, Any]]):
        """Applies several updates and notifies once."""
        changed = False
        for sid, changes in changes_by_id.items():
            shape = self._shape_map.get(sid)
            if shape is not None and changes:
                shape.set(**changes)
                changed = True
        if changed:
            self.notify_observers()

    def remove(self, sids: Iterable[Any]) -> List[Any]:
        """Removes the given ids. Ids not in the store are skipped silently."""
        if isinstance(sids, (str, int)):
            sids = [sids]
        removed = []
        for sid in sids:
            shape = self._shape_map.pop(sid, None)
            if shape is not None:
                self._shapes.remove(shape)
                removed.append(sid)
        if removed:
            logger.debug(f"ShapeStore.remove: Removed {removed}.")
            self.notify_observers()
        return removed

    def replace_all(self, shapes: Iterable[Shape], notify: bool = True):
        new_shapes = list(shapes)
        new_map: Dict[Any, Shape] = {}
        for shape in new_shapes:
            if shape.sid in new_map:
                raise DuplicateShapeError(shape.sid)
            new_map[shape.sid] = shape
        self._shapes = new_shapes
        self._shape_map = new_map
        if notify:
            self.notify_observers()

    def clear(self):
        self.replace_all([])

    def next_id(self, prefix: str) -> str:
        """Returns `<prefix>-<n>` with the smallest n not yet used."""
        n = 1
        while f"{prefix}-{n}" in self._shape_map:
            n += 1
        return f"{prefix}-{n}"

    def add_observer(self, fn: Callable):
        if callable(fn):
            self._observers.append(fn)

    def notify_observers(self):
        for cb in list(self._observers):
            try:
                cb()
            except Exception as e:
                logger.error(f"ShapeStore.notify_observers: Error calling observer {getattr(cb, '__name__', cb)}: {e}")
