import pytest
from tools.goal_aggregator import (
    aggregate,
    build_daily_stats,
    goals_for,
    hydration_tier,
    meal_milestones,
    reached_water_goal,
    sum_meals,
)
from tools.models import MacroGoal, MacroTotals, MealEntry, UserProfile, WaterEntry, WaterLog


def _meal(name, calories, protein, carbs, fat):
    return MealEntry(name=name, calories=calories, protein=protein, carbs=carbs, fat=fat)


MEALS = [
    _meal("200g arroz", 260, 5, 56, 1),
    _meal("150g frango", 248, 47, 0, 5),
]


def test_sum_meals():
    assert sum_meals(MEALS) == MacroTotals(calories=508, protein=52, carbs=56, fat=6)
    assert sum_meals([]) == MacroTotals()


def test_default_goals_without_tdee():
    assert goals_for(None) == MacroGoal(calories=2000, protein=150, carbs=200, fat=65)
    assert goals_for(UserProfile(id="u1")).calories == 2000


def test_goals_from_profile():
    profile = UserProfile(id="u1", bmr=1643, tdee=1972, goal="lose")
    assert goals_for(profile).calories == 1472


def test_aggregate_does_not_mutate():
    meals = list(MEALS)
    combined = aggregate(meals, None)
    assert combined["consumed"].calories == 508
    assert meals == MEALS


def test_hydration_tiers():
    assert hydration_tier(0, 2500)["title"] == "Dry Cactus"
    assert hydration_tier(500, 2500)["title"] == "Beginner"
    assert hydration_tier(1250, 2500)["title"] == "Hydrated"
    assert hydration_tier(2000, 2500)["title"] == "Aquatic"
    assert hydration_tier(2500, 2500)["title"] == "Water Master"
    assert hydration_tier(4000, 2500)["percent"] == 100.0


def test_water_goal_crossing():
    assert reached_water_goal(2300, 250, 2500) is True
    assert reached_water_goal(2500, 250, 2500) is False
    assert reached_water_goal(1000, 250, 2500) is False


def test_meal_milestones():
    goals = MacroGoal(calories=2000, protein=150, carbs=200, fat=65)
    first = meal_milestones(MacroTotals(), MacroTotals(calories=100, protein=10), goals)
    assert first == ["first_meal_of_day"]

    hit = meal_milestones(MacroTotals(calories=1500, protein=140), MacroTotals(calories=200, protein=20), goals)
    assert hit == ["protein_goal_hit"]

    past = meal_milestones(MacroTotals(calories=1500, protein=160), MacroTotals(calories=200, protein=20), goals)
    assert past == []


def test_build_daily_stats():
    profile = UserProfile(id="u1", xp=50, level=2, current_streak=3)
    water = WaterLog(goal=2000, entries=[WaterEntry(amount=250), WaterEntry(amount=750)])
    stats = build_daily_stats(MEALS, profile, water)

    assert stats["consumed"]["calories"] == 508
    assert stats["goals"]["calories"] == 2000
    assert stats["remaining"]["calories"] == 1492
    assert stats["percent"]["calories"] == pytest.approx(25.4)
    assert stats["meals_logged"] == 2
    assert stats["progress"]["xp_to_next_level"] == 200
    assert stats["current_streak"] == 3
    assert stats["water"]["current_ml"] == 1000
    assert stats["water"]["tier"]["title"] == "Hydrated"


def test_build_daily_stats_without_profile():
    stats = build_daily_stats([], None)
    assert stats["consumed"]["calories"] == 0
    assert "progress" not in stats
    assert "water" not in stats
