# tools/nutrition_resolver.py
"""
VitaFlow — Nutrition Resolver Tool
==================================
Turns (food name, amount, unit) into integer macros.

Two tiers:
  1. Local table — substring match on the normalized name, first entry
     wins (table order matters), unit conversion to a multiplier.
  2. Remote estimate — only on a local miss; Gemini is asked for a fixed
     JSON shape which is coerced to non-negative integers.

If both tiers fail the resolver raises NutritionLookupFailed.
"""

import threading
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from tools.body_calculator import round_half_up
from tools.errors import GenerationFailed, NutritionLookupFailed, ParseFailure
from tools.food_parser import strip_accents
from tools.gemini_client import GeminiTextClient
from tools.models import MacroTotals, coerce_macro

# =============================================================================
# LOCAL REFERENCE TABLE
# =============================================================================
# Values are per 100 g/ml, except entries with per_unit=True which describe
# one typical piece. unit_weight_g is the weight of one household unit
# (unidade, fatia, colher, ...). More specific keys come first.
FOOD_TABLE: Dict[str, Dict[str, float]] = {
    # Proteins
    "peito de frango": {"calories": 165, "protein": 31, "carbs": 0, "fat": 3.6, "unit_weight_g": 120},
    "frango": {"calories": 165, "protein": 31, "carbs": 0, "fat": 3.6, "unit_weight_g": 120},
    "carne moida": {"calories": 212, "protein": 26, "carbs": 0, "fat": 11, "unit_weight_g": 100},
    "patinho": {"calories": 219, "protein": 36, "carbs": 0, "fat": 7.3, "unit_weight_g": 120},
    "carne": {"calories": 250, "protein": 26, "carbs": 0, "fat": 15, "unit_weight_g": 120},
    "salmao": {"calories": 208, "protein": 20, "carbs": 0, "fat": 13, "unit_weight_g": 120},
    "tilapia": {"calories": 96, "protein": 20, "carbs": 0, "fat": 1.7, "unit_weight_g": 120},
    "atum": {"calories": 130, "protein": 29, "carbs": 0, "fat": 1, "unit_weight_g": 120},
    "ovo": {"calories": 78, "protein": 6, "carbs": 0.6, "fat": 5, "unit_weight_g": 50, "per_unit": True},
    "whey": {"calories": 400, "protein": 80, "carbs": 8, "fat": 6, "unit_weight_g": 30},
    "queijo": {"calories": 350, "protein": 25, "carbs": 1.3, "fat": 27, "unit_weight_g": 30},
    "iogurte": {"calories": 61, "protein": 3.5, "carbs": 4.7, "fat": 3.3, "unit_weight_g": 170},
    "leite": {"calories": 61, "protein": 3.2, "carbs": 4.8, "fat": 3.3, "unit_weight_g": 200},

    # Carbs
    "arroz integral": {"calories": 112, "protein": 2.6, "carbs": 23, "fat": 0.9, "unit_weight_g": 150},
    "arroz": {"calories": 130, "protein": 2.7, "carbs": 28, "fat": 0.3, "unit_weight_g": 150},
    "feijao": {"calories": 76, "protein": 4.8, "carbs": 13.6, "fat": 0.5, "unit_weight_g": 86},
    "macarrao": {"calories": 157, "protein": 5.8, "carbs": 30.9, "fat": 0.9, "unit_weight_g": 110},
    "batata doce": {"calories": 86, "protein": 1.6, "carbs": 20, "fat": 0.1, "unit_weight_g": 130},
    "batata": {"calories": 77, "protein": 2, "carbs": 17, "fat": 0.1, "unit_weight_g": 150},
    "aveia": {"calories": 394, "protein": 13.9, "carbs": 66.6, "fat": 8.5, "unit_weight_g": 30},
    "tapioca": {"calories": 240, "protein": 0, "carbs": 60, "fat": 0, "unit_weight_g": 50},
    "pao": {"calories": 265, "protein": 9, "carbs": 49, "fat": 3.2, "unit_weight_g": 50},
    "cuscuz": {"calories": 112, "protein": 2.2, "carbs": 25, "fat": 0.7, "unit_weight_g": 100},

    # Fruits
    "banana": {"calories": 89, "protein": 1.1, "carbs": 22.8, "fat": 0.3, "unit_weight_g": 120},
    "maca": {"calories": 52, "protein": 0.3, "carbs": 14, "fat": 0.2, "unit_weight_g": 130},
    "laranja": {"calories": 47, "protein": 0.9, "carbs": 12, "fat": 0.1, "unit_weight_g": 150},
    "mamao": {"calories": 43, "protein": 0.5, "carbs": 11, "fat": 0.3, "unit_weight_g": 150},

    # Fats
    "abacate": {"calories": 160, "protein": 2, "carbs": 9, "fat": 15, "unit_weight_g": 100},
    "azeite": {"calories": 884, "protein": 0, "carbs": 0, "fat": 100, "unit_weight_g": 13},
    "pasta de amendoim": {"calories": 588, "protein": 25, "carbs": 20, "fat": 50, "unit_weight_g": 15},
    "castanha": {"calories": 656, "protein": 14, "carbs": 12, "fat": 66, "unit_weight_g": 4},

    # Vegetables
    "brocolis": {"calories": 35, "protein": 2.8, "carbs": 7, "fat": 0.4, "unit_weight_g": 60},
    "alface": {"calories": 15, "protein": 1.4, "carbs": 2.9, "fat": 0.2, "unit_weight_g": 10},
    "tomate": {"calories": 18, "protein": 0.9, "carbs": 3.9, "fat": 0.2, "unit_weight_g": 100},
}

# Mass/volume units -> grams (ml counted as grams)
GRAM_UNITS = {"g": 1, "ml": 1, "kg": 1000, "l": 1000}

MACRO_FIELDS = ("calories", "protein", "carbs", "fat")


class ResolvedMacros(MacroTotals):
    """Macros plus where they came from ("local" or "remote")."""
    source: str = "local"


class MacroEstimate(BaseModel):
    """Remote estimate; every field coerced to a non-negative int."""
    model_config = ConfigDict(extra="ignore")

    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0

    @field_validator(*MACRO_FIELDS, mode="before")
    @classmethod
    def _coerce(cls, v):
        return coerce_macro(v)


# =============================================================================
# HELPERS
# =============================================================================
def normalize_food_name(name: str) -> str:
    return strip_accents((name or "").strip().lower())


def find_local_entry(name: str, table: Optional[Dict[str, Dict[str, float]]] = None):
    """First (key, entry) whose key is a substring of the normalized name."""
    normalized = normalize_food_name(name)
    for key, entry in (table if table is not None else FOOD_TABLE).items():
        if key in normalized:
            return key, entry
    return None


def local_multiplier(entry: Dict[str, float], amount: float, unit: str) -> float:
    """
    Scale factor applied to the table values.

    Gram-based entry:  g/ml -> grams / 100, count unit -> amount * unit_weight / 100
    Piece entry:       count unit -> amount, g/ml -> grams / unit_weight
    """
    unit_weight = entry.get("unit_weight_g") or 100
    grams = amount * GRAM_UNITS[unit] if unit in GRAM_UNITS else None

    if entry.get("per_unit"):
        return grams / unit_weight if grams is not None else amount
    if grams is not None:
        return grams / 100
    return amount * unit_weight / 100


def lookup_local(
    name: str,
    amount: float,
    unit: str,
    table: Optional[Dict[str, Dict[str, float]]] = None
) -> Optional[MacroTotals]:
    """Local tier; None on a miss or a non-positive multiplier."""
    found = find_local_entry(name, table)
    if found is None:
        return None
    _, entry = found

    multiplier = local_multiplier(entry, amount, unit)
    if multiplier <= 0:
        return None

    return MacroTotals(**{field: round_half_up(entry[field] * multiplier) for field in MACRO_FIELDS})


def build_estimate_prompt(name: str, amount: float, unit: str) -> str:
    return f"""
    Act as a scientific nutrition database.
    Task: calculate macronutrients.

    Input:
    - Food: "{name}"
    - Quantity: {amount:g}
    - Unit: "{unit}"

    Critical instructions:
    1. Convert the unit to grams when needed for an accurate calculation.
    2. Use standard nutrition data (USDA/TACO).
    3. Return ONLY a JSON object. No text before or after.

    Required JSON format:
    {{
      "calories": (integer),
      "protein": (integer),
      "carbs": (integer),
      "fat": (integer)
    }}
    """


# =============================================================================
# RESOLVER
# =============================================================================
class NutritionResolver:
    """Local table first, Gemini estimate second."""

    def __init__(
        self,
        text_client: Optional[GeminiTextClient] = None,
        table: Optional[Dict[str, Dict[str, float]]] = None
    ):
        self.text_client = text_client or GeminiTextClient(temperature=0.2)
        self.table = table if table is not None else FOOD_TABLE

    def resolve(
        self,
        food_name: str,
        amount: float,
        unit: str,
        cancel_event: Optional[threading.Event] = None
    ) -> ResolvedMacros:
        """
        Resolve macros for a food quantity.

        Raises:
            ParseFailure: empty food name (neither tier is consulted).
            NutritionLookupFailed: local miss and every backend failed.
            LookupCancelled: cancel_event was set while waiting on Gemini.
        """
        name = (food_name or "").strip()
        if not name:
            raise ParseFailure(food_name or "", "Missing food name")

        local = lookup_local(name, amount, unit, self.table)
        if local is not None:
            return ResolvedMacros(**local.model_dump(), source="local")

        print(f"🔎 No local match for '{name}', asking Gemini...")
        try:
            payload = self.text_client.generate_json(
                build_estimate_prompt(name, amount, unit),
                cancel_event=cancel_event,
                expect_object=True,
            )
        except GenerationFailed as e:
            raise NutritionLookupFailed(
                "Could not calculate macros. Try simplifying the food name."
            ) from e

        estimate = MacroEstimate.model_validate(payload)
        return ResolvedMacros(**estimate.model_dump(), source="remote")


__all__ = [
    "FOOD_TABLE",
    "GRAM_UNITS",
    "ResolvedMacros",
    "MacroEstimate",
    "normalize_food_name",
    "find_local_entry",
    "local_multiplier",
    "lookup_local",
    "NutritionResolver",
]
