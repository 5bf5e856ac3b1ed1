import json

import httpx
import pytest

from errors import ResourceLoadError, TemplateStoreError
from stores import FileRecipeSource, HttpRecipeSource, HttpTemplateStore, JsonFileTemplateStore

API = "http://api.test"
TEMPLATE = {"fields": [{"id": "recipe-title", "type": "text", "x": 50, "y": 30}]}


def test_json_store_read_missing_is_none(template_store):
    assert template_store.read("default") is None
    assert template_store.list_names() == []


def test_json_store_upserts_by_name(template_store):
    template_store.write("default", TEMPLATE)
    template_store.write("recipe-r1", {"template": TEMPLATE})
    changed = {"fields": [{"id": "title-line", "type": "line", "x": 0, "y": 0}]}
    template_store.write("default", changed)

    assert template_store.list_names() == ["default", "recipe-r1"]
    assert template_store.read("default") == {"template": changed}
    assert template_store.read("recipe-r1") == {"template": TEMPLATE}
    with open(template_store.path) as f:
        assert json.load(f)["default"] == changed


def test_json_store_delete(template_store):
    template_store.write("recipe-r1", TEMPLATE)
    assert template_store.delete("recipe-r1") is True
    assert template_store.delete("recipe-r1") is False
    with pytest.raises(TemplateStoreError):
        template_store.delete("default")


def test_json_store_corrupt_file(template_store):
    with open(template_store.path, "w") as f:
        f.write("[1, 2")
    with pytest.raises(ResourceLoadError):
        template_store.read("default")
    with pytest.raises(TemplateStoreError):
        template_store.write("default", TEMPLATE)


def test_json_store_unwritable_path(tmp_path):
    store = JsonFileTemplateStore(str(tmp_path / "missing-dir" / "templates.json"))
    with pytest.raises(TemplateStoreError) as info:
        store.write("default", TEMPLATE)
    assert info.value.kind == "Save Error"


def make_client(handler):
    return httpx.Client(base_url=API, transport=httpx.MockTransport(handler))


def test_http_template_store_routes():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        if request.method == "GET" and request.url.path == "/templates/canvas/default":
            return httpx.Response(200, json={"template": TEMPLATE})
        if request.method == "GET" and request.url.path == "/templates/canvas":
            return httpx.Response(200, json={"templates": [{"name": "default"}, {"name": "recipe-r1"}]})
        if request.method == "POST":
            body = json.loads(request.content)
            assert body == {"templateName": "recipe-r1", "template": TEMPLATE}
            return httpx.Response(200, json={"message": "saved"})
        return httpx.Response(404, json={"error": "Template not found"})

    store = HttpTemplateStore(API, client=make_client(handler))
    assert store.read("default") == {"template": TEMPLATE}
    assert store.read("recipe-zz") is None
    store.write("recipe-r1", TEMPLATE)
    assert store.list_names() == ["default", "recipe-r1"]
    assert store.delete("recipe-r9") is False
    assert ("POST", "/templates/canvas/save") in seen
    with pytest.raises(TemplateStoreError):
        store.delete("default")


def test_http_template_store_errors():
    def handler(request):
        return httpx.Response(500, json={"error": "database offline"})

    store = HttpTemplateStore(API, client=make_client(handler))
    with pytest.raises(ResourceLoadError):
        store.read("default")
    with pytest.raises(TemplateStoreError) as info:
        store.write("default", TEMPLATE)
    assert "database offline" in info.value.message


def test_file_recipe_source_json(tmp_path):
    path = tmp_path / "recipes.json"
    path.write_text(json.dumps([
        {"_id": "a1", "name": "Salad", "ingredients": [{"ingredient": {"name": "lettuce"}, "quantity": 1, "measure": "head"}],
         "platingGuide": "Cold plate", "serviceTypes": ["Lunch"], "active": "true"},
        {"_id": "a2", "name": "Old Stew", "active": False},
    ]))
    source = FileRecipeSource(str(path))
    assert [r.id for r in source.list()] == ["a1", "a2"]
    assert [r.id for r in source.list(active_only=True)] == ["a1"]
    salad = source.get("a1")
    assert salad.ingredients[0].name == "lettuce"
    assert salad.plating_guide == "Cold plate"
    assert salad.service_types == ["Lunch"]
    assert source.get("zz") is None


def test_file_recipe_source_csv(tmp_path):
    path = tmp_path / "recipes.csv"
    path.write_text(
        "id,name,ingredients,steps,allergens,serviceTypes,active\n"
        '7,Pancakes,"[{""name"": ""flour"", ""quantity"": 2, ""measure"": ""cups""}]",Mix and fry,"Gluten, Egg",Breakfast,true\n'
        "8,Toast,,,,,false\n"
    )
    source = FileRecipeSource(str(path))
    pancakes = source.get(7)
    assert pancakes.name == "Pancakes"
    assert pancakes.ingredients[0].quantity == 2
    assert pancakes.allergens == ["Gluten", "Egg"]
    assert pancakes.service_types == ["Breakfast"]
    toast = source.get("8")
    assert not toast.ingredients
    assert toast.active is False
    assert [r.name for r in source.list(active_only=True)] == ["Pancakes"]


def test_file_recipe_source_missing_file(tmp_path):
    with pytest.raises(ResourceLoadError):
        FileRecipeSource(str(tmp_path / "nope.json")).list()


def test_http_recipe_source():
    def handler(request):
        if request.url.path == "/recipes":
            return httpx.Response(200, json=[{"_id": "x", "name": "A", "active": True},
                                             {"_id": "y", "name": "B", "active": "false"}])
        if request.url.path == "/recipes/x":
            return httpx.Response(200, json={"_id": "x", "name": "A"})
        return httpx.Response(404)

    source = HttpRecipeSource(API, client=make_client(handler))
    assert [r.id for r in source.list()] == ["x", "y"]
    assert [r.id for r in source.list(active_only=True)] == ["x"]
    assert source.get("x").name == "A"
    assert source.get("missing") is None
