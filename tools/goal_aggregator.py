# tools/goal_aggregator.py
"""
VitaFlow — Goal Aggregator
==========================
Read-time combination of the day's meals with the profile's macro goals,
plus the dashboard percentages, hydration tiers and meal milestones.
Inputs are never mutated.
"""

from typing import Any, Dict, Iterable, List, Optional

from tools.body_calculator import DEFAULT_MACRO_GOAL, compute_macro_goals, percent_of_goal, xp_progress
from tools.models import MacroGoal, MacroTotals, MealEntry, UserProfile, WaterLog

# (min percent, title, emoji), checked top-down
HYDRATION_TIERS = [
    (100, "Water Master", "🔱"),
    (80, "Aquatic", "🐬"),
    (50, "Hydrated", "🌊"),
    (20, "Beginner", "💧"),
    (0, "Dry Cactus", "🌵"),
]


def sum_meals(meals: Iterable[MealEntry]) -> MacroTotals:
    total = MacroTotals()
    for meal in meals:
        total = total + meal.macros
    return total


def goals_for(profile: Optional[UserProfile]) -> MacroGoal:
    """Profile-derived goals, or the fixed default when TDEE is unknown."""
    if profile is not None and profile.tdee and profile.tdee > 0:
        return compute_macro_goals(profile.tdee, profile.goal)
    return DEFAULT_MACRO_GOAL


def aggregate(meals: Iterable[MealEntry], profile: Optional[UserProfile]) -> Dict[str, Any]:
    """Consumed totals and goals: {"consumed": MacroTotals, "goals": MacroGoal}."""
    return {"consumed": sum_meals(meals), "goals": goals_for(profile)}


def macro_percentages(consumed: MacroTotals, goals: MacroGoal) -> Dict[str, float]:
    return {
        "calories": percent_of_goal(consumed.calories, goals.calories),
        "protein": percent_of_goal(consumed.protein, goals.protein),
        "carbs": percent_of_goal(consumed.carbs, goals.carbs),
        "fat": percent_of_goal(consumed.fat, goals.fat),
    }


# =============================================================================
# HYDRATION
# =============================================================================
def hydration_tier(current_ml: int, goal_ml: int) -> Dict[str, Any]:
    percent = percent_of_goal(current_ml, goal_ml)
    for minimum, title, emoji in HYDRATION_TIERS:
        if percent >= minimum:
            return {"title": title, "emoji": emoji, "percent": percent}
    return {"title": HYDRATION_TIERS[-1][1], "emoji": HYDRATION_TIERS[-1][2], "percent": percent}


def reached_water_goal(current_before: int, amount: int, goal: int) -> bool:
    """True only for the entry that crosses the daily goal."""
    return current_before < goal <= current_before + amount


# =============================================================================
# MEAL MILESTONES
# =============================================================================
def meal_milestones(consumed_before: MacroTotals, added: MacroTotals, goals: MacroGoal) -> List[str]:
    milestones = []
    if consumed_before.calories == 0:
        milestones.append("first_meal_of_day")
    if consumed_before.protein < goals.protein <= consumed_before.protein + added.protein:
        milestones.append("protein_goal_hit")
    return milestones


# =============================================================================
# DASHBOARD
# =============================================================================
def build_daily_stats(
    meals: List[MealEntry],
    profile: Optional[UserProfile],
    water: Optional[WaterLog] = None
) -> Dict[str, Any]:
    """Everything the dashboard shows for today, as plain data."""
    combined = aggregate(meals, profile)
    consumed, goals = combined["consumed"], combined["goals"]

    stats = {
        "consumed": consumed.model_dump(),
        "goals": goals.model_dump(),
        "remaining": {
            "calories": goals.calories - consumed.calories,
            "protein": goals.protein - consumed.protein,
            "carbs": goals.carbs - consumed.carbs,
            "fat": goals.fat - consumed.fat,
        },
        "percent": macro_percentages(consumed, goals),
        "meals_logged": len(meals),
    }

    if profile is not None:
        stats["progress"] = xp_progress(profile.xp, profile.level)
        stats["current_streak"] = profile.current_streak

    if water is not None:
        stats["water"] = {
            "current_ml": water.current,
            "goal_ml": water.goal,
            "entries": len(water.entries),
            "tier": hydration_tier(water.current, water.goal),
        }
    return stats


__all__ = [
    "HYDRATION_TIERS",
    "sum_meals",
    "goals_for",
    "aggregate",
    "macro_percentages",
    "hydration_tier",
    "reached_water_goal",
    "meal_milestones",
    "build_daily_stats",
]
