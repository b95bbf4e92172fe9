"""
VitaFlow — FastAPI Backend
"""

import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

import config
from agents.coach_agent import chat_with_persona, list_personas, load_transcript, retry_unsaved_messages
from agents.nutrition_agent import (
    delete_meal,
    get_daily_summary,
    get_trial_status,
    log_meal,
    log_water,
    update_profile,
)
from agents.planner_agent import generate_diet_plan, generate_workout_plan, log_workout
from memory.session_manager import JsonStore, get_store
from tools.errors import PersistenceFailure
from tools.gemini_client import GEMINI_AVAILABLE
from tools.goal_aggregator import goals_for

API_VERSION = "1.0.0"


# =============================================================================
# PYDANTIC MODELS
# =============================================================================
class MealLogRequest(BaseModel):
    text: str = Field(..., description="e.g. '200g arroz' or '1 banana'")
    user_id: str = "default"


class WaterLogRequest(BaseModel):
    amount_ml: int = Field(250, gt=0)
    user_id: str = "default"


class ProfileUpdateRequest(BaseModel):
    user_id: str = "default"
    name: Optional[str] = None
    age: Optional[int] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    gender: Optional[str] = None
    activity_level: Optional[str] = None
    goal: Optional[str] = None
    water_goal: Optional[int] = None


class ExerciseIn(BaseModel):
    name: str
    sets: Optional[str] = "3"
    reps: Optional[str] = "12"
    rest: Optional[str] = None
    notes: Optional[str] = None


class WorkoutLogRequest(BaseModel):
    user_id: str = "default"
    name: str = "Custom Workout"
    muscle_group: str = "General"
    exercises: List[ExerciseIn] = Field(default_factory=list)


class DietPlanRequest(BaseModel):
    user_id: str = "default"
    restrictions: str = ""
    preferences: str = ""


class WorkoutPlanRequest(BaseModel):
    goal: str = "hipertrofia"
    level: str = "iniciante"
    equipment: str = "academia completa"


class ChatRequest(BaseModel):
    message: str
    user_id: str = "default"


class ChatRetryRequest(BaseModel):
    user_id: str = "default"


# =============================================================================
# APP SETUP
# =============================================================================
app = FastAPI(
    title="VitaFlow API",
    version=API_VERSION,
    description="Nutrition & Fitness Tracker Backend"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================
ERROR_STATUS_CODES = {
    "parse_failure": 400,
    "invariant_violation": 400,
    "invalid_amount": 400,
    "invalid_workout": 400,
    "empty_message": 400,
    "profile_not_found": 404,
    "not_found": 404,
    "unknown_persona": 404,
    "lookup_cancelled": 408,
    "nutrition_lookup_failed": 502,
    "generation_failed": 502,
    "persistence_failure": 503,
}


def store_dependency() -> JsonStore:
    try:
        return get_store()
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))


def check_result(result: Dict[str, Any]) -> Dict[str, Any]:
    """Turn an agent error dict into an HTTP error; pass everything else through."""
    if result.get("status") == "error":
        code = ERROR_STATUS_CODES.get(result.get("error_type"), 500)
        raise HTTPException(status_code=code, detail={
            "error_type": result.get("error_type"),
            "message": result.get("error_message"),
        })
    return result


# =============================================================================
# ENDPOINTS
# =============================================================================

# -----------------------------------------------------------------------------
# Health & Root
# -----------------------------------------------------------------------------
@app.get("/")
async def root():
    return {"status": "online", "system": "VitaFlow", "version": API_VERSION, "docs": "/docs"}


@app.get("/api/v1/health")
async def api_health():
    return {
        "status": "online",
        "gemini": GEMINI_AVAILABLE,
        "models": [model for model, _ in config.GEMINI_MODELS],
        "timestamp": datetime.now().isoformat()
    }


# -----------------------------------------------------------------------------
# Profile & Trial
# -----------------------------------------------------------------------------
@app.get("/api/v1/profile")
def get_profile(user_id: str = Query("default"), store: JsonStore = Depends(store_dependency)):
    try:
        profile = store.get_profile(user_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"status": "success", "profile": profile.model_dump(mode="json"),
            "goals": goals_for(profile).model_dump()}


@app.put("/api/v1/profile")
def put_profile(request: ProfileUpdateRequest, store: JsonStore = Depends(store_dependency)):
    """Create the profile on first use; edit biometrics afterwards."""
    fields = request.model_dump(exclude={"user_id"}, exclude_none=True)
    return check_result(update_profile(store, request.user_id, **fields))


@app.get("/api/v1/trial")
def trial_status(user_id: str = Query("default"), store: JsonStore = Depends(store_dependency)):
    return check_result(get_trial_status(store, user_id))


# -----------------------------------------------------------------------------
# Meals & Water
# -----------------------------------------------------------------------------
@app.post("/api/v1/meals")
def post_meal(request: MealLogRequest, store: JsonStore = Depends(store_dependency)):
    return check_result(log_meal(store, request.user_id, request.text))


@app.get("/api/v1/meals")
def get_meals(
    user_id: str = Query("default"),
    day: Optional[date] = Query(None),
    store: JsonStore = Depends(store_dependency)
):
    try:
        meals = store.meals_for_day(user_id, day)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "success", "meals": [m.model_dump(mode="json") for m in meals], "count": len(meals)}


@app.delete("/api/v1/meals/{meal_id}")
def remove_meal(meal_id: str, user_id: str = Query("default"), store: JsonStore = Depends(store_dependency)):
    return check_result(delete_meal(store, user_id, meal_id))


@app.post("/api/v1/water")
def post_water(request: WaterLogRequest, store: JsonStore = Depends(store_dependency)):
    return check_result(log_water(store, request.user_id, request.amount_ml))


@app.get("/api/v1/summary")
def daily_summary(
    user_id: str = Query("default"),
    day: Optional[date] = Query(None),
    store: JsonStore = Depends(store_dependency)
):
    return check_result(get_daily_summary(store, user_id, day))


# -----------------------------------------------------------------------------
# Workouts & Plans
# -----------------------------------------------------------------------------
@app.post("/api/v1/workouts")
def post_workout(request: WorkoutLogRequest, store: JsonStore = Depends(store_dependency)):
    workout = request.model_dump(exclude={"user_id"})
    return check_result(log_workout(store, request.user_id, workout))


@app.post("/api/v1/plans/diet")
def diet_plan(request: DietPlanRequest, store: JsonStore = Depends(store_dependency)):
    try:
        profile = store.get_profile(request.user_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return check_result(generate_diet_plan(profile, request.restrictions, request.preferences))


@app.post("/api/v1/plans/workout")
def workout_plan(request: WorkoutPlanRequest):
    return check_result(generate_workout_plan(request.goal, request.level, request.equipment))


# -----------------------------------------------------------------------------
# Specialist Chat
# -----------------------------------------------------------------------------
@app.get("/api/v1/chat/personas")
async def personas():
    return {"status": "success", "personas": list_personas()}


@app.get("/api/v1/chat/{persona}")
def chat_history(persona: str, user_id: str = Query("default"), store: JsonStore = Depends(store_dependency)):
    try:
        transcript = load_transcript(store, user_id, persona)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown specialist: {persona}")
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "success", "persona": persona,
            "messages": [m.model_dump(mode="json") for m in transcript.messages]}


@app.post("/api/v1/chat/{persona}")
def chat(persona: str, request: ChatRequest, store: JsonStore = Depends(store_dependency)):
    return check_result(chat_with_persona(store, request.user_id, persona, request.message))


@app.post("/api/v1/chat/{persona}/retry")
def retry_chat(persona: str, request: ChatRetryRequest, store: JsonStore = Depends(store_dependency)):
    return check_result(retry_unsaved_messages(store, request.user_id, persona))


# =============================================================================
# RUN
# =============================================================================
if __name__ == "__main__":
    print("\n" + "=" * 50)
    print(f"🚀 VITAFLOW API v{API_VERSION}")
    print("=" * 50)
    print(f"   • Gemini:  {'✅' if GEMINI_AVAILABLE else '❌'}")
    print(f"   • Storage: {config.STORE_FILE}")
    print(f"   • Trial:   {config.TRIAL_DAYS} days")
    print("=" * 50)
    print("🔗 API Docs: http://localhost:8000/docs")
    print("=" * 50 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=8000)
