# stores.py
#
# Template stores and recipe sources. The file-backed variants work offline;
# the HTTP variants talk to the recipe API's /templates/canvas and /recipes
# routes.

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

import httpx
import pandas as pd

from constants import DEFAULT_TEMPLATE_NAME
from errors import ResourceLoadError, TemplateStoreError
from recipes import Recipe, select_active
from serializer import template_fields

logger = logging.getLogger(__name__)


def _wrap(document: Dict[str, Any]) -> Dict[str, Any]:
    """Normalizes a template to the store's {'template': {'fields': [...]}} shape."""
    return {'template': {'fields': template_fields(document)}}


# --- Template stores ------------------------------------------------------------

class JsonFileTemplateStore:
    """All named templates in one JSON file: {name: {'fields': [...]}}."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _load_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ResourceLoadError(self.path, str(e)) from e
        if not isinstance(data, dict):
            raise ResourceLoadError(self.path, "template file is not a JSON object")
        return data

    def read(self, name: str = DEFAULT_TEMPLATE_NAME) -> Optional[Dict[str, Any]]:
        with self._lock:
            data = self._load_all()
        if name not in data:
            return None
        return _wrap(data[name])

    def write(self, name: str, document: Dict[str, Any]):
        """Upserts the template under `name`."""
        if not name:
            raise TemplateStoreError(name, "a template name is required")
        with self._lock:
            try:
                data = self._load_all()
            except ResourceLoadError as e:
                raise TemplateStoreError(name, e.message) from e
            data[name] = _wrap(document)['template']
            try:
                with open(self.path, 'w') as f:
                    json.dump(data, f, indent=4)
            except (OSError, TypeError, ValueError) as e:
                raise TemplateStoreError(name, str(e)) from e
        logger.info(f"JsonFileTemplateStore.write: Saved template {name!r} to {self.path}.")

    def list_names(self) -> List[str]:
        with self._lock:
            return sorted(self._load_all())

    def delete(self, name: str) -> bool:
        if name == DEFAULT_TEMPLATE_NAME:
            raise TemplateStoreError(name, "the default template cannot be deleted")
        with self._lock:
            data = self._load_all()
            if name not in data:
                return False
            del data[name]
            try:
                with open(self.path, 'w') as f:
                    json.dump(data, f, indent=4)
            except OSError as e:
                raise TemplateStoreError(name, str(e)) from e
        return True


class _HttpCollaborator:
    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip('/')
        self.client = client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def close(self):
        self.client.close()

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"


class HttpTemplateStore(_HttpCollaborator):
    def read(self, name: str = DEFAULT_TEMPLATE_NAME) -> Optional[Dict[str, Any]]:
        url = self.url(f"/templates/canvas/{name}")
        try:
            response = self.client.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return _wrap(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise ResourceLoadError(url, str(e) or type(e).__name__) from e

    def write(self, name: str, document: Dict[str, Any]):
        payload = {'templateName': name, 'template': _wrap(document)['template']}
        try:
            response = self.client.post(self.url('/templates/canvas/save'), json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TemplateStoreError(name, _error_text(e.response)) from e
        except httpx.HTTPError as e:
            raise TemplateStoreError(name, str(e) or type(e).__name__) from e
        logger.info(f"HttpTemplateStore.write: Saved template {name!r}.")

    def list_names(self) -> List[str]:
        url = self.url('/templates/canvas')
        try:
            response = self.client.get(url)
            response.raise_for_status()
            templates = response.json().get('templates', [])
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            raise ResourceLoadError(url, str(e) or type(e).__name__) from e
        return sorted(t['name'] for t in templates if isinstance(t, dict) and t.get('name'))

    def delete(self, name: str) -> bool:
        if name == DEFAULT_TEMPLATE_NAME:
            raise TemplateStoreError(name, "the default template cannot be deleted")
        try:
            response = self.client.delete(self.url(f"/templates/canvas/{name}"))
            if response.status_code == 404:
                return False
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TemplateStoreError(name, _error_text(e.response)) from e
        except httpx.HTTPError as e:
            raise TemplateStoreError(name, str(e) or type(e).__name__) from e
        return True


def _error_text(response: httpx.Response) -> str:
    try:
        return response.json().get('error') or response.reason_phrase
    except (ValueError, AttributeError):
        return f"HTTP {response.status_code}"


# --- Recipe sources -------------------------------------------------------------

class FileRecipeSource:
    """
    Recipes from a JSON list or a CSV file. CSV cells holding lists (allergens,
    serviceTypes) are comma separated and ingredients are a JSON array.
    """

    def __init__(self, path: str):
        self.path = path
        self._recipes: Optional[List[Recipe]] = None

    def _load(self) -> List[Recipe]:
        if self._recipes is None:
            if self.path.lower().endswith('.csv'):
                records = self._read_csv()
            else:
                records = self._read_json()
            self._recipes = [Recipe.from_dict(r) for r in records if isinstance(r, dict)]
            logger.info(f"FileRecipeSource: Loaded {len(self._recipes)} recipes from {self.path}.")
        return self._recipes

    def _read_json(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ResourceLoadError(self.path, str(e)) from e
        if isinstance(data, dict):
            data = data.get('recipes', [])
        return data if isinstance(data, list) else []

    def _read_csv(self) -> List[Dict[str, Any]]:
        try:
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        except (OSError, ValueError) as e:
            raise ResourceLoadError(self.path, str(e)) from e
        records = df.to_dict('records')
        for record in records:
            raw = record.get('ingredients')
            if isinstance(raw, str):
                try:
                    record['ingredients'] = json.loads(raw) if raw.strip() else []
                except ValueError:
                    logger.warning(f"FileRecipeSource._read_csv: Unreadable ingredients for {record.get('id')!r}.")
                    record['ingredients'] = []
            for key, value in list(record.items()):
                if value == '':
                    record[key] = None
        return records

    def get(self, recipe_id: Any) -> Optional[Recipe]:
        for recipe in self._load():
            if str(recipe.id) == str(recipe_id):
                return recipe
        return None

    def list(self, active_only: bool = False) -> List[Recipe]:
        recipes = list(self._load())
        return select_active(recipes) if active_only else recipes


class HttpRecipeSource(_HttpCollaborator):
    def get(self, recipe_id: Any) -> Optional[Recipe]:
        url = self.url(f"/recipes/{recipe_id}")
        try:
            response = self.client.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return Recipe.from_dict(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise ResourceLoadError(url, str(e) or type(e).__name__) from e

    def list(self, active_only: bool = False) -> List[Recipe]:
        url = self.url('/recipes')
        try:
            response = self.client.get(url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ResourceLoadError(url, str(e) or type(e).__name__) from e
        if isinstance(data, dict):
            data = data.get('recipes', [])
        recipes = [Recipe.from_dict(r) for r in data if isinstance(r, dict)]
        return select_active(recipes) if active_only else recipes


def template_store_from_settings(settings):
    if settings.api_url:
        return HttpTemplateStore(settings.api_url, timeout=settings.http_timeout)
    return JsonFileTemplateStore(settings.template_store_path)


def recipe_source_from_settings(settings, path: Optional[str] = None):
    path = path or settings.recipes_path
    if path:
        return FileRecipeSource(path)
    if settings.api_url:
        return HttpRecipeSource(settings.api_url, timeout=settings.http_timeout)
    raise ValueError("No recipe source configured; pass a recipes file or set RECIPECARD_API_URL")
