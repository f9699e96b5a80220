import copy
import json
from functools import lru_cache
from pathlib import Path

DEMO_PREFIX = "demo-"
DEMO_OWNER = "demo"
CATALOG_PATH = Path(__file__).resolve().parent / "data" / "demo_recipes.json"


def is_demo_id(recipe_id) -> bool:
    return isinstance(recipe_id, str) and recipe_id.startswith(DEMO_PREFIX)


def load_recipes(path):
    """Load recipes from a JSON file and return a list of dicts.

    Args:
        path (str or Path): Path to the JSON file.

    Returns:
        list: list of recipe dictionaries, empty if the file is missing.
    """
    p = Path(path)
    if not p.exists():
        return []
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _catalog():
    recipes = load_recipes(CATALOG_PATH)
    for r in recipes:
        r.setdefault("createdBy", DEMO_OWNER)
    return tuple(recipes)


def demo_recipes(saved_ids=frozenset()):
    """Return copies of the demo catalog, in catalog order, flagged with isSaved."""
    out = []
    for r in _catalog():
        item = copy.deepcopy(r)
        item["isSaved"] = item["id"] in saved_ids
        out.append(item)
    return out


def get_demo_recipe(recipe_id):
    for r in _catalog():
        if r["id"] == recipe_id:
            return copy.deepcopy(r)
    return None
