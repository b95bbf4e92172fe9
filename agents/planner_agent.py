"""
VitaFlow — Planner Agent
========================
- AI Path: Gemini JSON mode, validated with pydantic
- Offline Path: static templates scaled to the user's macro goals
  (used whenever the AI cannot be reached or returns unusable data)
- Workout logging (+50 XP)
"""

import threading
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from agents.nutrition_agent import apply_progress
from tools.errors import GenerationFailed, LookupCancelled, PersistenceFailure
from tools.gemini_client import GeminiTextClient
from tools.goal_aggregator import goals_for
from tools.models import DietMeal, DietMealItem, DietPlan, MacroGoal, UserProfile, Workout
from tools.progression import ActionKind

print("📋 Planner Agent: ready")

# =============================================================================
# OFFLINE TEMPLATES
# =============================================================================
# (title, share of the day, [(food, portion, share of the meal)])
DIET_TEMPLATE = [
    ("Café da manhã", 0.25, [("Ovos mexidos", "2 unidades", 0.4),
                             ("Pão integral", "2 fatias", 0.35),
                             ("Banana", "1 unidade", 0.25)]),
    ("Almoço", 0.35, [("Arroz", "4 colheres", 0.3),
                      ("Feijão", "1 concha", 0.2),
                      ("Peito de frango grelhado", "150g", 0.4),
                      ("Salada verde", "à vontade", 0.1)]),
    ("Lanche", 0.15, [("Iogurte natural", "1 pote", 0.6),
                      ("Aveia", "2 colheres", 0.4)]),
    ("Jantar", 0.25, [("Batata doce", "150g", 0.35),
                      ("Tilápia grelhada", "150g", 0.45),
                      ("Brócolis", "1 xícara", 0.2)]),
]

WORKOUT_TEMPLATE = [
    {
        "name": "Treino A",
        "muscle_group": "Peito e Tríceps",
        "exercises": [
            {"name": "Supino reto", "sets": "4", "reps": "10", "rest": "90s"},
            {"name": "Supino inclinado com halteres", "sets": "3", "reps": "12", "rest": "60s"},
            {"name": "Tríceps na polia", "sets": "3", "reps": "12", "rest": "60s"},
        ],
    },
    {
        "name": "Treino B",
        "muscle_group": "Costas e Bíceps",
        "exercises": [
            {"name": "Puxada frontal", "sets": "4", "reps": "10", "rest": "90s"},
            {"name": "Remada curvada", "sets": "3", "reps": "12", "rest": "60s"},
            {"name": "Rosca direta", "sets": "3", "reps": "12", "rest": "60s"},
        ],
    },
    {
        "name": "Treino C",
        "muscle_group": "Pernas",
        "exercises": [
            {"name": "Agachamento livre", "sets": "4", "reps": "10", "rest": "120s"},
            {"name": "Leg press", "sets": "3", "reps": "12", "rest": "90s"},
            {"name": "Cadeira extensora", "sets": "3", "reps": "15", "rest": "60s"},
        ],
    },
]

_CLIENT: Optional[GeminiTextClient] = None


def get_text_client() -> GeminiTextClient:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = GeminiTextClient(temperature=0.7)
    return _CLIENT


def build_template_diet(goals: MacroGoal) -> DietPlan:
    """Static plan whose totals track `goals` (up to rounding)."""
    meals = []
    for title, meal_share, foods in DIET_TEMPLATE:
        items = []
        for food, portion, food_share in foods:
            share = meal_share * food_share
            items.append(DietMealItem(
                name=food,
                portion=portion,
                calories=goals.calories * share,
                protein=goals.protein * share,
                carbs=goals.carbs * share,
                fat=goals.fat * share,
            ))
        meals.append(DietMeal(title=title, items=items))

    return DietPlan(
        introduction=f"Plano base de {goals.calories} kcal. Ajuste as porções conforme sua fome e rotina.",
        meals=meals,
        generated_by="template",
    )


def build_template_workouts() -> List[Workout]:
    return [Workout.model_validate(w) for w in WORKOUT_TEMPLATE]


# =============================================================================
# PROMPTS
# =============================================================================
def _diet_prompt(profile: Optional[UserProfile], goals: MacroGoal,
                 restrictions: str, preferences: str) -> str:
    if profile is not None and profile.has_metabolism:
        person = (f"- Idade: {profile.age}, Peso: {profile.weight}kg, Altura: {profile.height}cm, "
                  f"Sexo: {profile.gender}\n- Nível de atividade: {profile.activity_level}\n"
                  f"- Objetivo: {profile.goal}")
    else:
        person = "- Dados corporais não informados"

    return f"""
Atue como uma nutricionista esportiva criando um plano alimentar de 1 dia.

PACIENTE:
{person}

META DIÁRIA: {goals.calories} kcal | {goals.protein}g proteína | {goals.carbs}g carboidratos | {goals.fat}g gordura
RESTRIÇÕES: {restrictions or 'nenhuma'}
PREFERÊNCIAS: {preferences or 'nenhuma'}

Retorne APENAS JSON válido com esta estrutura:
{{
    "introduction": "1-2 frases sobre a estratégia",
    "meals": [
        {{
            "title": "Café da manhã",
            "items": [
                {{"name": "Alimento", "portion": "100g", "calories": 0, "protein": 0, "carbs": 0, "fat": 0}}
            ]
        }}
    ]
}}
"""


def _workout_prompt(goal: str, level: str, equipment: str) -> str:
    return f"""
Crie um plano de treino JSON para: {goal}, Nível: {level}, Equipamento: {equipment}.
Retorne APENAS JSON válido com esta estrutura:
[{{"name": "Nome", "muscleGroup": "Grupo", "exercises": [{{"name": "Exercicio", "sets": "3", "reps": "12"}}]}}]
"""


def _normalize_workout(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": raw.get("name") or "Treino Personalizado",
        "muscle_group": raw.get("muscle_group") or raw.get("muscleGroup") or "Geral",
        "exercises": [e for e in raw.get("exercises") or [] if isinstance(e, dict) and e.get("name")],
    }


# =============================================================================
# MAIN TOOL FUNCTIONS
# =============================================================================
def generate_diet_plan(
    profile: Optional[UserProfile],
    restrictions: str = "",
    preferences: str = "",
    text_client: Optional[GeminiTextClient] = None,
    cancel_event: Optional[threading.Event] = None
) -> Dict[str, Any]:
    """
    Generate a one-day diet plan.

    Args:
        profile: User profile (macro goals fall back to the defaults without TDEE)
        restrictions: e.g. "sem lactose"
        preferences: e.g. "gosto de peixe"

    Returns:
        {"status": "success", "source": "gemini_ai" | "template", "plan": {...},
         "daily_totals": {...}, "goals": {...}}
    """
    goals = goals_for(profile)
    client = text_client or get_text_client()
    print(f"🤖 Diet Planner: {goals.calories} kcal, restrictions='{restrictions}'")

    plan = None
    try:
        payload = client.generate_json(_diet_prompt(profile, goals, restrictions, preferences),
                                       cancel_event=cancel_event, expect_object=True)
        plan = DietPlan.model_validate({**payload, "generated_by": "gemini_ai"})
        if not plan.meals:
            print("⚠️ AI diet plan had no meals, using template")
            plan = None
    except LookupCancelled as e:
        return {"status": "error", "error_type": e.error_type, "error_message": str(e)}
    except GenerationFailed as e:
        print(f"⚠️ Diet generation failed ({e}), using template")
    except ValidationError as e:
        print(f"⚠️ AI diet plan invalid ({e.error_count()} errors), using template")

    if plan is None:
        plan = build_template_diet(goals)

    return {
        "status": "success",
        "source": plan.generated_by,
        "plan": plan.model_dump(),
        "daily_totals": plan.daily_totals.model_dump(),
        "goals": goals.model_dump(),
    }


def generate_workout_plan(
    goal: str = "hipertrofia",
    level: str = "iniciante",
    equipment: str = "academia completa",
    text_client: Optional[GeminiTextClient] = None,
    cancel_event: Optional[threading.Event] = None
) -> Dict[str, Any]:
    """Generate a list of workouts; falls back to an A/B/C split."""
    client = text_client or get_text_client()
    print(f"🏋️ Workout Planner: goal={goal}, level={level}, equipment={equipment}")

    workouts: List[Workout] = []
    source = "gemini_ai"
    try:
        payload = client.generate_json(_workout_prompt(goal, level, equipment), cancel_event=cancel_event)
        if isinstance(payload, dict):
            payload = payload.get("workouts", [])
        workouts = [Workout.model_validate(_normalize_workout(w)) for w in payload if isinstance(w, dict)]
    except LookupCancelled as e:
        return {"status": "error", "error_type": e.error_type, "error_message": str(e)}
    except GenerationFailed as e:
        print(f"⚠️ Workout generation failed ({e}), using template")
    except ValidationError as e:
        print(f"⚠️ AI workout plan invalid ({e.error_count()} errors), using template")
        workouts = []

    if not workouts:
        workouts = build_template_workouts()
        source = "template"

    return {
        "status": "success",
        "source": source,
        "workouts": [w.model_dump() for w in workouts],
        "count": len(workouts),
    }


def log_workout(
    store: Any,
    user_id: str,
    workout: Union[Workout, Dict[str, Any]],
    today: Optional[date] = None,
    on_level_up: Optional[Callable[[int], None]] = None
) -> Dict[str, Any]:
    """Record a completed workout and award +50 XP."""
    try:
        if isinstance(workout, dict):
            workout = Workout.model_validate(_normalize_workout(workout))
    except ValidationError as e:
        return {"status": "error", "error_type": "invalid_workout", "error_message": str(e)}

    try:
        if store.get_profile(user_id) is None:
            return {"status": "error", "error_type": "profile_not_found",
                    "error_message": "Create a profile before logging workouts."}
        record = store.create("workouts", user_id, workout.model_dump(exclude={"id"}))
    except PersistenceFailure as e:
        return {"status": "error", "error_type": e.error_type, "error_message": str(e)}

    result = {"status": "success", "workout": record, "message": f"💪 {workout.name} concluído! +50 XP"}
    try:
        result["progress"] = apply_progress(store, user_id, ActionKind.WORKOUT_LOGGED, today, on_level_up)
    except PersistenceFailure as e:
        print(f"⚠️ Workout saved but XP not awarded: {e}")
        result["status"] = "partial"
        result["pending_xp"] = {"action": ActionKind.WORKOUT_LOGGED.value}
    return result


__all__ = [
    "DIET_TEMPLATE",
    "WORKOUT_TEMPLATE",
    "build_template_diet",
    "build_template_workouts",
    "generate_diet_plan",
    "generate_workout_plan",
    "log_workout",
]
