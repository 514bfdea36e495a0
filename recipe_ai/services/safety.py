"""
Allergen and dietary checks over generated recipe text.

Ingredients and instructions are tokenized into normalized words (with a
few two-word phrases folded through the synonym table) and matched against
fixed vocabularies. The tables are built once at import and never mutated.
"""

import logging
import re
import unicodedata
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Set, Tuple

logger = logging.getLogger(__name__)

ALLERGEN_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "tree-nuts": ("almond", "walnut", "pecan", "cashew", "hazelnut", "macadamia", "brazil nut", "pistachio"),
    "peanuts": ("peanut",),
    "dairy": (
        "milk", "butter", "cheese", "cream", "yogurt", "ghee", "custard", "feta", "cheddar",
        "parmesan", "mascarpone", "whey", "casein", "buttermilk",
    ),
    "gluten": ("wheat", "flour", "barley", "rye", "seitan", "bulgur", "couscous", "malt"),
    "shellfish": ("shrimp", "prawn", "crab", "lobster", "mussel", "clam", "oyster", "scallop"),
    "fish": ("salmon", "tuna", "trout", "cod", "haddock", "anchovy", "sardine"),
    "soy": ("soy", "tofu", "edamame", "miso", "soy sauce", "tempeh"),
})

SYNONYMS: Mapping[str, str] = MappingProxyType({
    "almond milk": "almond",
    "peanut butter": "peanut",
    "soy milk": "soy",
    "soy sauce": "soy",
    "brazil nut": "brazil nut",
    "brazil nuts": "brazil nut",
    "buttermilk": "dairy",
    "parmesan": "cheese",
    "feta": "cheese",
    "cottage cheese": "cheese",
    "mozzarella": "cheese",
    "yoghurt": "yogurt",
    "eggs": "egg",
    "egg yolk": "egg",
    "egg white": "egg",
    "ground beef": "beef",
})

VEGAN_FORBIDDEN: Tuple[str, ...] = (
    "chicken", "beef", "pork", "bacon", "egg", "fish", "salmon", "tuna", "shrimp", "lamb",
    "butter", "milk", "cheese", "yogurt", "honey", "gelatin",
)

VEGETARIAN_FORBIDDEN: Tuple[str, ...] = (
    "chicken", "beef", "pork", "bacon", "lamb", "shrimp", "crab", "lobster",
)

SAFETY_CONSTRAINT_MESSAGE = "Generated recipe violates dietary or allergy constraints."

_GLUTEN_FREE_NAMES = frozenset({"gluten_free", "gluten-free"})
_NON_WORD = re.compile(r"[^\w\s-]|_")
_WHITESPACE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _NON_WORD.sub(" ", stripped.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def tokenize(text: Optional[str]) -> List[str]:
    """
    Normalized tokens for one line of recipe text.

    A two-word phrase in the synonym table is taken as one token; single
    words go through the synonym table, then lose a plural "s".
    """
    if not text:
        return []

    words = _normalize(text).split(" ")
    tokens: List[str] = []
    i = 0
    while i < len(words):
        word = words[i]
        if i + 1 < len(words):
            pair = f"{word} {words[i + 1]}"
            if pair in SYNONYMS:
                tokens.append(SYNONYMS[pair])
                i += 2
                continue

        i += 1
        if len(word) <= 2:
            continue
        if word in SYNONYMS:
            tokens.append(SYNONYMS[word])
        elif len(word) > 3 and word.endswith("s"):
            tokens.append(word[:-1])
        else:
            tokens.append(word)
    return tokens


def _token_set(lines: Iterable[Any]) -> Set[str]:
    tokens: Set[str] = set()
    for line in lines:
        if isinstance(line, str):
            tokens.update(tokenize(line))
    return tokens


def expand_allergy(allergy: str) -> List[str]:
    """Keywords to look for when the user declares ``allergy``."""
    key = allergy.strip().lower()
    if not key:
        return []
    if "nut" in key:
        return list(ALLERGEN_KEYWORDS["tree-nuts"]) + list(ALLERGEN_KEYWORDS["peanuts"])
    if key in ("dairy", "milk"):
        # "buttermilk" folds to the class name itself
        return list(ALLERGEN_KEYWORDS["dairy"]) + ["dairy"]
    if key in ("gluten", "wheat"):
        return list(ALLERGEN_KEYWORDS["gluten"])
    if key in ALLERGEN_KEYWORDS:
        return list(ALLERGEN_KEYWORDS[key])
    return [key]


def _recipe_lines(recipe: Mapping[str, Any], field: str) -> List[Any]:
    value = recipe.get(field)
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [value]
    return []


def check_recipe_safety(
    recipe: Mapping[str, Any],
    allergies: Optional[Iterable[str]] = None,
    dietary_preferences: Optional[Iterable[str]] = None,
) -> List[str]:
    """
    Violation messages for a recipe tree, de-duplicated in first-seen order.

    Allergy keywords and diet rules are checked against ingredient and
    instruction tokens together. Empty result means the recipe passed.
    """
    recipe_tokens = _token_set(_recipe_lines(recipe, "ingredients")) | _token_set(
        _recipe_lines(recipe, "instructions")
    )

    violations: List[str] = []

    for allergy in allergies or []:
        if not isinstance(allergy, str):
            continue
        for token in expand_allergy(allergy):
            if token in recipe_tokens:
                violations.append(f"Detected allergen token '{token}' in recipe")

    for preference in dietary_preferences or []:
        if not isinstance(preference, str):
            continue
        diet = preference.strip().lower()
        if diet == "vegan":
            violations.extend(
                f"Contains non-vegan ingredient: {t}" for t in VEGAN_FORBIDDEN if t in recipe_tokens
            )
        elif diet == "vegetarian":
            violations.extend(
                f"Contains non-vegetarian ingredient: {t}" for t in VEGETARIAN_FORBIDDEN if t in recipe_tokens
            )
        elif diet in _GLUTEN_FREE_NAMES:
            violations.extend(
                f"May contain gluten ingredient: {t}" for t in ALLERGEN_KEYWORDS["gluten"] if t in recipe_tokens
            )

    deduped = list(dict.fromkeys(violations))
    if deduped:
        logger.debug(f"Safety check found {len(deduped)} violation(s)")
    return deduped
