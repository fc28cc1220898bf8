# video_recipes/app/pipeline/normalizer.py
"""
Deterministic ingredient normalization: canonical keys, shopping categories,
cross-tier merging and shopping-list grouping.
"""
from __future__ import annotations

import re
from typing import Iterable, Sequence

from video_recipes.app.domain.models import Ingredient, RawIngredient

DEFAULT_CATEGORY = "other"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]")
_WHITESPACE_RE = re.compile(r"\s+")

# Evaluated top to bottom; the first rule with a keyword contained in the
# name wins. Specific rules must stay above general ones: "red pepper flakes"
# has to hit spices before produce's bare "pepper", "coconut milk" has to hit
# canned before dairy's "milk".
CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("spices", (
        "salt", "pepper", "cumin", "paprika", "turmeric", "cinnamon",
        "nutmeg", "oregano", "bay leaf", "chili powder", "cayenne",
        "coriander", "cardamom", "clove", "star anise", "fennel seed",
        "mustard seed", "saffron", "za'atar", "garam masala", "curry",
        "red pepper flake", "pepper flake", "seasoning", "spice",
        "garlic powder", "onion powder", "smoked paprika",
    )),
    ("pantry", (
        "olive oil", "vegetable oil", "sesame oil", "canola oil", "coconut oil",
        "oil", "vinegar", "soy sauce", "fish sauce", "worcestershire",
        "hot sauce", "ketchup", "mustard", "mayonnaise", "tahini",
        "peanut butter", "sriracha", "miso", "gochujang",
    )),
    ("grains", (
        "rice", "pasta", "linguine", "spaghetti", "penne", "fettuccine",
        "macaroni", "rigatoni", "fusilli", "orzo", "noodle", "ramen",
        "udon", "soba", "bread", "tortilla", "oat", "quinoa",
        "couscous", "barley", "farro", "polenta", "panko", "breadcrumb",
    )),
    ("canned", (
        "tomato sauce", "tomato paste", "diced tomato", "crushed tomato",
        "coconut milk", "broth", "stock", "beans", "chickpea", "lentil",
    )),
    ("dairy", (
        "milk", "cream", "butter", "cheese", "mozzarella", "parmesan",
        "cheddar", "yogurt", "sour cream", "cream cheese", "ricotta",
        "mascarpone", "whipping cream", "half and half", "ghee",
        "pecorino",
    )),
    ("meat", (
        "chicken", "beef", "pork", "lamb", "turkey", "bacon", "sausage",
        "ground beef", "ground turkey", "steak", "ribs", "ham", "prosciutto",
        "pancetta", "duck", "guanciale",
    )),
    ("seafood", (
        "salmon", "shrimp", "tuna", "cod", "tilapia", "crab", "lobster",
        "scallop", "mussel", "clam", "anchovy", "sardine", "squid",
    )),
    ("baking", (
        "flour", "sugar", "baking powder", "baking soda", "yeast", "cornstarch",
        "cocoa", "chocolate", "vanilla", "brown sugar", "powdered sugar",
        "confectioner", "molasses", "honey", "maple syrup", "corn syrup",
    )),
    ("eggs", ("egg",)),
    ("nuts", (
        "almond", "walnut", "pecan", "cashew", "peanut", "pistachio",
        "pine nut", "sesame seed", "sunflower seed", "chia seed", "flax",
    )),
    ("produce", (
        "onion", "garlic", "tomato", "potato", "carrot", "celery", "pepper",
        "lettuce", "spinach", "kale", "broccoli", "cauliflower", "zucchini",
        "cucumber", "mushroom", "avocado", "lemon", "lime", "ginger", "cilantro",
        "parsley", "basil", "thyme", "rosemary", "dill", "mint", "scallion",
        "shallot", "leek", "chili", "jalapeño", "serrano", "cabbage", "corn",
        "peas", "green bean", "asparagus", "eggplant", "beet", "radish",
        "apple", "banana", "berry", "blueberry", "strawberry", "raspberry",
        "mango", "pineapple", "peach", "pear", "orange", "grape",
    )),
)

CATEGORIES: tuple[str, ...] = tuple(name for name, _ in CATEGORY_RULES) + (DEFAULT_CATEGORY,)


def canonicalize(name: str) -> str:
    """'Fresh Mozzarella-Cheese ' -> 'fresh_mozzarellacheese'."""
    lowered = _WHITESPACE_RE.sub(" ", name.lower())
    stripped = _NON_ALNUM_RE.sub("", lowered).strip()
    return _WHITESPACE_RE.sub("_", stripped)


def categorize(name: str) -> str:
    lower = name.lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in lower for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def to_ingredient(raw: RawIngredient) -> Ingredient:
    return Ingredient(
        name=raw.name,
        canonical_name=canonicalize(raw.name),
        category=categorize(raw.name),
        quantity=raw.quantity,
        unit=raw.unit,
        raw_text=raw.raw_text or raw.name,
        optional=raw.optional,
        preparation=raw.preparation,
    )


def raw_to_ingredients(raw: Iterable[RawIngredient]) -> list[Ingredient]:
    return [to_ingredient(item) for item in raw]


def name_key(name: str) -> str:
    """Case and whitespace insensitive identity used for merging."""
    return _WHITESPACE_RE.sub(" ", name.lower()).strip()


def merge_ingredients(
    existing: Sequence[Ingredient],
    incoming: Sequence[Ingredient],
) -> list[Ingredient]:
    """Union of both lists; on a name clash the first-seen instance is kept."""
    seen: set[str] = set()
    merged: list[Ingredient] = []
    for item in (*existing, *incoming):
        key = name_key(item.name)
        if key in seen:
            continue
        seen.add(key)
        merged.append(item)
    return merged


def has_overlap(previous: Sequence[Ingredient], incoming: Sequence[Ingredient]) -> bool:
    previous_keys = {item.canonical_name for item in previous}
    return any(item.canonical_name in previous_keys for item in incoming)


def build_shopping_list(ingredients: Iterable[Ingredient]) -> dict[str, list[str]]:
    shopping: dict[str, list[str]] = {}
    for item in ingredients:
        names = shopping.setdefault(item.category, [])
        if item.name not in names:
            names.append(item.name)
    return shopping


def summarize_for_prompt(ingredients: Sequence[Ingredient]) -> str:
    """One '- name (qty unit)' line per ingredient, used as hint context."""
    lines = []
    for item in ingredients:
        line = f"- {item.name}"
        if item.quantity:
            amount = f"{item.quantity:g} {item.unit or ''}".strip()
            line += f" ({amount})"
        lines.append(line)
    return "\n".join(lines)
