# recipes.py
#
# Read-only view of the recipe records the renderer consumes. Records are
# owned by the recipe service; nothing here writes them back.

from typing import Any, Dict, List, Optional


class Ingredient:
    def __init__(self, name: str = '', quantity: Any = None, measure: Optional[str] = None):
        self.name = name
        self.quantity = quantity
        self.measure = measure

    def __repr__(self):
        return f"Ingredient({self.quantity!r} {self.measure!r} {self.name!r})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Ingredient':
        # The API nests the ingredient document: {'ingredient': {'name': ...}}
        ingredient = data.get('ingredient')
        if isinstance(ingredient, dict):
            name = ingredient.get('name', '')
        else:
            name = data.get('name') or ingredient or ''
        return cls(name=str(name), quantity=data.get('quantity'), measure=data.get('measure'))


class Recipe:
    def __init__(
        self,
        *,
        id: Any,
        name: str = '',
        ingredients: Optional[List[Ingredient]] = None,
        steps: str = '',
        plating_guide: str = '',
        allergens: Optional[List[str]] = None,
        service_types: Optional[List[str]] = None,
        image: Optional[str] = None,
        active: bool = True,
    ) -> None:
        self.id = id
        self.name = name
        self.ingredients = ingredients
        self.steps = steps
        self.plating_guide = plating_guide
        self.allergens = allergens
        self.service_types = service_types
        self.image = image
        self.active = active

    def __repr__(self):
        return f"Recipe(id={self.id!r}, name={self.name!r})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Recipe':
        """Accepts both the API's camelCase documents and snake_case records."""
        def pick(*keys):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return None

        ingredients = pick('ingredients')
        active = pick('active')
        return cls(
            id=pick('_id', 'id'),
            name=pick('name') or '',
            ingredients=[Ingredient.from_dict(i) for i in ingredients if isinstance(i, dict)]
            if isinstance(ingredients, list) else None,
            steps=pick('steps') or '',
            plating_guide=pick('platingGuide', 'plating_guide') or '',
            allergens=_as_list(pick('allergens')),
            service_types=_as_list(pick('serviceTypes', 'service_types')),
            image=pick('image'),
            active=True if active is None else active is True or str(active).lower() == 'true',
        )


def _as_list(value) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        # Flat files store lists as comma separated cells
        return [part.strip() for part in value.split(',') if part.strip()]
    return [str(v) for v in value]


def select_active(recipes: List[Recipe]) -> List[Recipe]:
    return [r for r in recipes if r.active]
