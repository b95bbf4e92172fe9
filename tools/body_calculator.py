# tools/body_calculator.py
"""
VitaFlow — Body Calculator Tool
===============================
Pure energy-expenditure formulas and goal percentage helpers.

  - BMR via Mifflin-St Jeor
  - TDEE via fixed activity multipliers
  - Macro goals from TDEE and a weight-change objective (30/40/30 split)

Inputs are assumed validated by the caller (see UserProfile.with_biometrics).
Nothing in this module raises for well-formed input.
"""

import math
from typing import Any, Dict

from tools.models import MacroGoal

# =============================================================================
# CONSTANTS & FORMULAS
# =============================================================================
ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,      # Little or no exercise
    "light": 1.375,        # Light exercise 1-3 days/week
    "moderate": 1.55,      # Moderate exercise 3-5 days/week
    "active": 1.725,       # Hard exercise 6-7 days/week
    "very_active": 1.9,    # Very hard exercise + physical job
}
DEFAULT_ACTIVITY_MULTIPLIER = ACTIVITY_MULTIPLIERS["sedentary"]

GOAL_CALORIE_ADJUSTMENT = {
    "lose": -500,
    "maintain": 0,
    "gain": 500,
}

# Share of target calories per macro, and kcal per gram
MACRO_SPLIT = {
    "protein": (0.30, 4),
    "carbs": (0.40, 4),
    "fat": (0.30, 9),
}

DEFAULT_MACRO_GOAL = MacroGoal(calories=2000, protein=150, carbs=200, fat=65)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from minus infinity (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


# =============================================================================
# TOOL 1: Basal Metabolic Rate
# =============================================================================
def compute_bmr(weight_kg: float, height_cm: float, age_years: float, gender: str) -> int:
    """
    Mifflin-St Jeor basal metabolic rate in kcal/day.

    Example:
        >>> compute_bmr(70, 170, 25, "male")
        1643
    """
    bmr = 10 * weight_kg + 6.25 * height_cm - 5 * age_years
    if gender == "male":
        bmr += 5
    else:
        bmr -= 161
    return round_half_up(bmr)


# =============================================================================
# TOOL 2: Total Daily Energy Expenditure
# =============================================================================
def compute_tdee(bmr: float, activity_level: str) -> int:
    """BMR times the activity multiplier; unknown levels count as sedentary."""
    factor = ACTIVITY_MULTIPLIERS.get(activity_level, DEFAULT_ACTIVITY_MULTIPLIER)
    return round_half_up(bmr * factor)


# =============================================================================
# TOOL 3: Macro Goals
# =============================================================================
def compute_macro_goals(tdee: float, goal: str) -> MacroGoal:
    """
    Daily macro targets for a TDEE and objective.

    target = TDEE - 500 (lose), + 500 (gain), unchanged (maintain).
    Protein 30% / 4, carbs 40% / 4, fat 30% / 9, each rounded half-up.
    """
    target = max(0, tdee + GOAL_CALORIE_ADJUSTMENT.get(goal, 0))
    grams = {
        macro: round_half_up(target * share / kcal_per_gram)
        for macro, (share, kcal_per_gram) in MACRO_SPLIT.items()
    }
    return MacroGoal(calories=round_half_up(target), **grams)


# =============================================================================
# PERCENTAGE HELPERS
# =============================================================================
def percent_of_goal(consumed: float, goal: float) -> float:
    """Progress toward a goal, capped at 100. A non-positive goal counts as 1."""
    if goal <= 0:
        goal = 1
    return min(100.0, max(0.0, consumed / goal * 100))


def xp_threshold(level: int) -> int:
    """XP needed to leave `level`."""
    return level * 100


def xp_progress(xp: int, level: int) -> Dict[str, Any]:
    threshold = xp_threshold(level)
    return {
        "xp": xp,
        "level": level,
        "xp_to_next_level": threshold,
        "percent": percent_of_goal(xp, threshold),
    }


# =============================================================================
# COMBINED TOOL: Body Metrics
# =============================================================================
def calculate_body_metrics(
    weight_kg: float,
    height_cm: float,
    age: int,
    gender: str,
    activity_level: str = "sedentary",
    goal: str = "maintain"
) -> Dict[str, Any]:
    """
    Calculate BMR, TDEE and macro goals in one call.

    Args:
        weight_kg: Current body weight in kilograms
        height_cm: Height in centimeters
        age: Age in years
        gender: "male" or "female"
        activity_level: sedentary|light|moderate|active|very_active
        goal: lose|maintain|gain

    Returns:
        Dictionary with:
        - status: "success" or "error"
        - bmr: Basal Metabolic Rate (kcal at rest)
        - tdee: Total Daily Energy Expenditure
        - activity_multiplier: Factor applied to BMR
        - macro_goals: calories/protein/carbs/fat targets

    Example:
        >>> calculate_body_metrics(70, 170, 25, "male", "sedentary", "lose")["tdee"]
        1972
    """
    if weight_kg <= 0 or height_cm <= 0 or age <= 0:
        return {"status": "error", "error_message": "Weight, height, and age must be positive"}

    if gender not in ("male", "female"):
        return {"status": "error", "error_message": "Gender must be 'male' or 'female'"}

    bmr = compute_bmr(weight_kg, height_cm, age, gender)
    tdee = compute_tdee(bmr, activity_level)
    goals = compute_macro_goals(tdee, goal)

    return {
        "status": "success",
        "bmr": bmr,
        "tdee": tdee,
        "activity_level": activity_level,
        "activity_multiplier": ACTIVITY_MULTIPLIERS.get(activity_level, DEFAULT_ACTIVITY_MULTIPLIER),
        "goal": goal,
        "macro_goals": goals.model_dump(),
    }


__all__ = [
    "ACTIVITY_MULTIPLIERS",
    "DEFAULT_MACRO_GOAL",
    "round_half_up",
    "compute_bmr",
    "compute_tdee",
    "compute_macro_goals",
    "percent_of_goal",
    "xp_threshold",
    "xp_progress",
    "calculate_body_metrics",
]
