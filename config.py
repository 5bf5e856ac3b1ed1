# config.py
#
# Runtime settings, loaded from RECIPECARD_* environment variables or a .env
# file with pydantic-settings. Fixed layout values live in constants.py.

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from constants import GRID_SIZE, DEFAULT_FONT_FAMILY


class Settings(BaseSettings):
    """Settings for the editor, the renderer and the external collaborators."""

    model_config = SettingsConfigDict(
        env_prefix="RECIPECARD_",
        env_file=".env",
        extra="ignore",
    )

    # External collaborators
    api_url: Optional[str] = Field(
        default=None,
        description="Recipe API base URL; when unset, file-backed stores are used",
    )
    http_timeout: float = Field(default=30.0, gt=0)
    template_store_path: str = Field(default="templates.json")
    recipes_path: Optional[str] = Field(default=None)

    # Bitmaps
    uploads_dir: str = Field(default="Uploads")
    placeholder_image: str = Field(default="default_image.png")
    logo_image: str = Field(default="Uploads/logo.png")
    trusted_origins: List[str] = Field(
        default_factory=lambda: ["file", "placeholder"],
        description="Origins whose bitmaps may be read back from a surface",
    )

    # Editor
    grid_size: int = Field(default=GRID_SIZE, gt=0)
    snap_to_grid: bool = True
    show_grid: bool = True
    font_family: str = DEFAULT_FONT_FAMILY

    # Output
    app_name: str = "Recipe_Batch"
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
