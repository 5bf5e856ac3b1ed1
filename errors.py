# errors.py
#
# Error taxonomy for the template editor and rendering pipeline. Every error
# carries a message, a stable code and a suggestion telling the operator how
# to recover.

from typing import Any, Dict, Optional


class RecipeCardError(Exception):
    """Base class for all recipe card errors."""

    kind = "Error"

    def __init__(
        self,
        message: str,
        code: str = "RECIPECARD_ERROR",
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        result = {"detail": self.message, "code": self.code, "kind": self.kind}
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


class ShapeValidationError(RecipeCardError):
    """A shape property could not be read during serialization. Recovered per shape."""

    kind = "Shape Error"

    def __init__(self, shape_id: Any, reason: str):
        super().__init__(
            message=f"Shape {shape_id!r} has a malformed property: {reason}",
            code="SHAPE_INVALID",
            suggestion="Edit or delete the shape and save again",
            details={"shape_id": shape_id},
        )
        self.shape_id = shape_id


class DuplicateShapeError(RecipeCardError):
    kind = "Shape Error"

    def __init__(self, shape_id: Any):
        super().__init__(
            message=f"A shape with id {shape_id!r} already exists",
            code="SHAPE_DUPLICATE",
            suggestion="Give the new shape a unique id",
            details={"shape_id": shape_id},
        )
        self.shape_id = shape_id


class ResourceLoadError(RecipeCardError):
    """A template or bitmap could not be fetched. Recovered with a fallback."""

    kind = "Load Error"

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Could not load {path!r}: {reason}",
            code="RESOURCE_LOAD_FAILED",
            suggestion="Check that the resource exists and is reachable",
            details={"path": path},
        )
        self.path = path


class TemplateStoreError(RecipeCardError):
    kind = "Save Error"

    def __init__(self, name: str, reason: str):
        super().__init__(
            message=f"Template {name!r} could not be stored: {reason}",
            code="TEMPLATE_STORE_FAILED",
            suggestion="Check the template store and try saving again",
            details={"template": name},
        )
        self.name = name


class RenderError(RecipeCardError):
    """The rasterization surface could not be read back."""

    kind = "Export Error"

    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(
            message=message,
            code="RENDER_FAILED",
            suggestion=suggestion or "Re-open the template and export again",
        )


class TaintedSurfaceError(RenderError):
    def __init__(self, origins):
        origins = sorted(set(origins))
        super().__init__(
            message=(
                "Canvas is tainted - images were loaded from untrusted origins: "
                + ", ".join(origins)
            ),
            suggestion="Serve all images from the same origin or add it to the trusted origins",
        )
        self.details = {"origins": origins}


class BatchAbortError(RecipeCardError):
    """One recipe failed during multi-page assembly; the whole batch is dropped."""

    kind = "Export Error"

    def __init__(self, recipe_id: Any, index: int, cause: BaseException):
        super().__init__(
            message=f"Batch aborted at recipe {recipe_id!r} (position {index + 1}): {cause}",
            code="BATCH_ABORTED",
            suggestion="Fix or deselect that recipe and generate the batch again",
            details={"recipe_id": recipe_id, "index": index},
        )
        self.recipe_id = recipe_id
        self.index = index
        self.cause = cause
