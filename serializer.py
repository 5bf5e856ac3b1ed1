# serializer.py
#
# Converts live shapes to the stored template format ({"fields": [...]})
# and back. Stored records hold only numbers, strings, booleans and lists of
# numbers.

import logging
from typing import Any, Dict, Iterable, List, Optional

from binder import bind, rebind
from constants import UNKNOWN_TYPE
from recipes import Recipe
from shapes import Shape

logger = logging.getLogger(__name__)


def fallback_record(shape: Any, index: int) -> Dict[str, Any]:
    try:
        sid = getattr(shape, 'sid', None)
    except Exception:
        sid = None
    if sid is None or sid == '':
        sid = f"shape-{index}"
    return {'id': str(sid), 'type': UNKNOWN_TYPE, 'x': 0, 'y': 0}


def serialize(shapes: Iterable[Shape]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Builds a template document from shapes in render order. A shape that
    cannot be read is stored as a minimal 'unknown' record so the rest of
    the template still saves.
    """
    fields = []
    for index, shape in enumerate(shapes):
        try:
            fields.append(shape.to_dict())
        except Exception as e:
            logger.warning(f"serialize: Failed to process shape {index}: {e}; storing fallback record.")
            fields.append(fallback_record(shape, index))
    return {'fields': fields}


def template_fields(document: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Pulls the field list out of either a bare template ({"fields": [...]})
    or a store response ({"template": {"fields": [...]}}).
    """
    if not isinstance(document, dict):
        return []
    if isinstance(document.get('template'), dict):
        document = document['template']
    fields = document.get('fields')
    return fields if isinstance(fields, list) else []


def deserialize(document: Optional[Dict[str, Any]], recipe: Optional[Recipe] = None,
                bitmaps=None, values: Optional[Dict[str, Any]] = None) -> List[Shape]:
    """
    Rebuilds shapes from a stored template. Layout comes from the record;
    bound content is recomputed from `recipe` (or taken from precomputed
    `values`). Records that cannot be rebuilt are skipped.
    """
    shapes: List[Shape] = []
    seen = set()
    for record in template_fields(document):
        shape = Shape.from_dict(record)
        if shape is None:
            continue
        if shape.sid in seen:
            logger.warning(f"deserialize: Duplicate shape id {shape.sid!r}; keeping the first.")
            continue
        seen.add(shape.sid)
        shapes.append(shape)

    if values is None and recipe is not None:
        values = bind(recipe, bitmaps)
    if values is not None:
        rebind(shapes, values)
    return shapes
