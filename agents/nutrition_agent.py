"""
VitaFlow — Nutrition Agent
==========================
Meal / water logging flows and the daily dashboard.

log_meal is an ordered saga over independent store writes:

  1. parse the food line            (ParseFailure -> nothing written)
  2. resolve macros                 (NutritionLookupFailed -> nothing written)
  3. insert the meal                (PersistenceFailure -> nothing written)
  4. award XP + update streak, upsert profile
                                    (PersistenceFailure -> "partial": the meal
                                     stays recorded, XP is reported as pending
                                     and can be re-applied with apply_progress)
  5. surface a level-up, once, after step 4 succeeded

Step 4 is a read-modify-write under the store lock (JsonStore.modify_profile),
so edits made while the lookup runs are kept.
"""

import threading
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

import config

from tools.entitlement import trial_status_for
from tools.errors import (
    InvariantViolation,
    LookupCancelled,
    NutritionLookupFailed,
    ParseFailure,
    PersistenceFailure,
    VitaFlowError,
)
from tools.food_parser import format_meal_name, parse_food_input
from tools.goal_aggregator import build_daily_stats, goals_for, meal_milestones, reached_water_goal, sum_meals
from tools.models import UserProfile
from tools.nutrition_resolver import NutritionResolver
from tools.progression import ActionKind, compute_progress, notify_level_up

print("🥗 Nutrition Agent: ready")

# =============================================================================
# CONFIGURATION
# =============================================================================
NUTRITION_CONFIG = {
    "max_water_ml_per_entry": 5000,
    "min_water_ml_per_entry": 1,
}

_RESOLVER: Optional[NutritionResolver] = None


def get_resolver() -> NutritionResolver:
    global _RESOLVER
    if _RESOLVER is None:
        _RESOLVER = NutritionResolver()
    return _RESOLVER


def _error(e: VitaFlowError, **extra) -> Dict[str, Any]:
    return {"status": "error", "error_type": e.error_type, "error_message": str(e), **extra}


def _macro_summary(macros: Dict[str, Any]) -> str:
    return f"🔥 {macros['calories']} kcal | 🥩 {macros['protein']}g P | 🍚 {macros['carbs']}g C | 🥑 {macros['fat']}g F"


# =============================================================================
# PROGRESSION STEP (shared by meal / water / workout flows)
# =============================================================================
def apply_progress(
    store: Any,
    user_id: str,
    action: ActionKind,
    today: Optional[date] = None,
    on_level_up: Optional[Callable[[int], None]] = None
) -> Dict[str, Any]:
    """
    Award the XP for `action`, update the streak, and persist the profile.

    The award is computed from the profile as stored at write time, never
    from a copy read earlier in the flow.

    Raises:
        PersistenceFailure: profile read or write failed (nothing notified).
    """
    update = None

    def advance(current: UserProfile) -> UserProfile:
        nonlocal update
        update = compute_progress(current, action, today)
        return update.apply_to(current)

    saved = store.modify_profile(user_id, advance)

    leveled_up = notify_level_up(update.xp.level_up, on_level_up)
    return {
        "xp_awarded": update.xp_awarded,
        "xp": saved.xp,
        "level": saved.level,
        "current_streak": saved.current_streak,
        "last_log_date": saved.last_log_date.isoformat() if saved.last_log_date else None,
        "leveled_up": leveled_up,
        "new_level": update.xp.level_up.new_level if update.xp.level_up else None,
    }


# =============================================================================
# MAIN TOOL FUNCTIONS
# =============================================================================
def log_meal(
    store: Any,
    user_id: str,
    food_text: str,
    resolver: Optional[NutritionResolver] = None,
    today: Optional[date] = None,
    on_level_up: Optional[Callable[[int], None]] = None,
    cancel_event: Optional[threading.Event] = None
) -> Dict[str, Any]:
    """
    Log a meal from one line of food input.

    Args:
        store: Persistence collaborator (JsonStore)
        user_id: Owner of the meal
        food_text: e.g. "200g arroz", "1 banana", "1,5 xícara de aveia"
        resolver: Nutrition resolver (defaults to the shared one)
        today: Local date used for the streak and the daily totals
        on_level_up: Called with the new level after the profile is saved
        cancel_event: Set it to abandon a pending Gemini lookup

    Returns:
        Dictionary with:
        - status: "success", "partial" (meal saved, XP pending) or "error"
        - meal: the stored meal
        - macros / source: resolved macros and "local" or "remote"
        - progress: xp, level, streak after the award
        - milestones: e.g. ["first_meal_of_day", "protein_goal_hit"]
        - daily_totals: consumed vs goals after this meal
    """
    today = today or date.today()
    print(f"🥗 Logging meal: {(food_text or '')[:50]}...")

    try:
        profile = store.get_profile(user_id)
    except PersistenceFailure as e:
        return _error(e)
    if profile is None:
        return {"status": "error", "error_type": "profile_not_found",
                "error_message": "Create a profile before logging meals."}

    # Steps 1-2: nothing has been written yet
    try:
        quantity = parse_food_input(food_text)
        macros = (resolver or get_resolver()).resolve(
            quantity.name, quantity.amount, quantity.unit, cancel_event=cancel_event
        )
    except ParseFailure as e:
        return _error(e, suggestion="Try '200g arroz' or '1 banana'")
    except (NutritionLookupFailed, LookupCancelled) as e:
        print(f"⚠️ Meal not logged: {e}")
        return _error(e)

    # Step 3: the meal itself
    try:
        profile = store.get_profile(user_id) or profile
        meals_before = store.meals_for_day(user_id, today)
        meal = store.create("meals", user_id, {
            "name": format_meal_name(quantity),
            "calories": macros.calories,
            "protein": macros.protein,
            "carbs": macros.carbs,
            "fat": macros.fat,
            "source": macros.source,
        })
    except PersistenceFailure as e:
        print(f"⚠️ Meal not saved: {e}")
        return _error(e)

    consumed_before = sum_meals(meals_before)
    goals = goals_for(profile)
    milestones = meal_milestones(consumed_before, macros, goals)
    consumed_after = consumed_before + macros

    result = {
        "status": "success",
        "meal": meal,
        "macros": {k: getattr(macros, k) for k in ("calories", "protein", "carbs", "fat")},
        "source": macros.source,
        "milestones": milestones,
        "daily_totals": {"consumed": consumed_after.model_dump(), "goals": goals.model_dump()},
    }

    # Step 4: XP + streak. A failure here leaves a recorded meal without XP.
    try:
        result["progress"] = apply_progress(store, user_id, ActionKind.MEAL_LOGGED, today, on_level_up)
    except PersistenceFailure as e:
        print(f"⚠️ Meal saved but XP not awarded: {e}")
        result["status"] = "partial"
        result["pending_xp"] = {"action": ActionKind.MEAL_LOGGED.value}
        result["error_message"] = str(e)

    result["message"] = f"✅ Meal logged! {_macro_summary(result['macros'])}"
    return result


def log_water(
    store: Any,
    user_id: str,
    amount_ml: int,
    today: Optional[date] = None,
    on_level_up: Optional[Callable[[int], None]] = None
) -> Dict[str, Any]:
    """Log a water entry (+5 XP, no streak change)."""
    today = today or date.today()
    if not NUTRITION_CONFIG["min_water_ml_per_entry"] <= amount_ml <= NUTRITION_CONFIG["max_water_ml_per_entry"]:
        return {"status": "error", "error_type": "invalid_amount",
                "error_message": f"Water amount must be between 1 and {NUTRITION_CONFIG['max_water_ml_per_entry']} ml"}

    try:
        profile = store.get_profile(user_id)
        if profile is None:
            return {"status": "error", "error_type": "profile_not_found",
                    "error_message": "Create a profile before logging water."}
        water_before = store.water_log_for_day(user_id, profile.water_goal, today)
        entry = store.create("water_logs", user_id, {"amount": amount_ml})
    except PersistenceFailure as e:
        return _error(e)

    current = water_before.current + amount_ml
    result = {
        "status": "success",
        "entry": entry,
        "current_ml": current,
        "goal_ml": profile.water_goal,
        "goal_reached": reached_water_goal(water_before.current, amount_ml, profile.water_goal),
        "message": f"💧 +{amount_ml}ml logged!",
    }
    try:
        result["progress"] = apply_progress(store, user_id, ActionKind.WATER_LOGGED, today, on_level_up)
    except PersistenceFailure as e:
        print(f"⚠️ Water saved but XP not awarded: {e}")
        result["status"] = "partial"
        result["pending_xp"] = {"action": ActionKind.WATER_LOGGED.value}
    return result


def delete_meal(store: Any, user_id: str, meal_id: str) -> Dict[str, Any]:
    """Delete a meal. XP already awarded for it is kept."""
    try:
        deleted = store.delete("meals", user_id, meal_id)
    except PersistenceFailure as e:
        return _error(e)
    if not deleted:
        return {"status": "error", "error_type": "not_found", "error_message": f"Meal {meal_id} not found"}
    return {"status": "success", "meal_id": meal_id}


def get_daily_summary(store: Any, user_id: str, day: Optional[date] = None) -> Dict[str, Any]:
    """Consumed vs goals, percentages, XP progress and hydration for one day."""
    day = day or date.today()
    try:
        profile = store.get_profile(user_id)
        meals = store.meals_for_day(user_id, day)
        water = store.water_log_for_day(user_id, profile.water_goal if profile else config.DEFAULT_WATER_GOAL_ML, day)
    except PersistenceFailure as e:
        return _error(e)

    stats = build_daily_stats(meals, profile, water)
    return {
        "status": "success",
        "date": day.isoformat(),
        "has_metabolism": bool(profile and profile.has_metabolism),
        "meals": [m.model_dump(mode="json") for m in meals],
        **stats,
    }


def update_profile(store: Any, user_id: str, name: Optional[str] = None,
                   water_goal: Optional[int] = None, **biometrics: Any) -> Dict[str, Any]:
    """
    Profile-edit flow: validates biometrics and recomputes BMR/TDEE together.
    Gamification fields and created_at are left untouched.
    """
    changes: Dict[str, Any] = {}
    if name is not None:
        changes["name"] = name
    if water_goal is not None:
        if water_goal <= 0:
            return _error(InvariantViolation("Water goal must be positive"))
        changes["water_goal"] = water_goal

    def edit(current: UserProfile) -> UserProfile:
        updated = current.with_biometrics(**biometrics) if biometrics else current
        return updated.model_copy(update=changes) if changes else updated

    try:
        store.create_profile(user_id, name or "")
        saved = store.modify_profile(user_id, edit)
    except (InvariantViolation, PersistenceFailure) as e:
        return _error(e)

    print(f"✅ Profile updated for {user_id}: BMR={saved.bmr}, TDEE={saved.tdee}")
    return {"status": "success", "profile": saved.model_dump(mode="json"),
            "goals": goals_for(saved).model_dump()}


def get_trial_status(store: Any, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    try:
        profile = store.get_profile(user_id)
    except PersistenceFailure as e:
        return _error(e)
    if profile is None:
        return {"status": "error", "error_type": "profile_not_found", "error_message": "Unknown user"}

    trial = trial_status_for(profile, now or datetime.now(timezone.utc))
    return {"status": "success", "subscription_status": profile.subscription_status, **trial.model_dump()}


__all__ = [
    "NUTRITION_CONFIG",
    "get_resolver",
    "apply_progress",
    "log_meal",
    "log_water",
    "delete_meal",
    "get_daily_summary",
    "update_profile",
    "get_trial_status",
]
