# tools/models.py
"""
VitaFlow — Data Model
=====================
Pydantic models shared by tools, agents, the store and the API.

UserProfile is the only persisted entity with invariants worth guarding:
biometrics change only through `with_biometrics`, which recomputes BMR and
TDEE together. Everything else here is either a derived value object
(MacroGoal, TrialStatus) or a plain record handed to the store.
"""

import math
from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tools.errors import InvariantViolation

Gender = Literal["male", "female"]
ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]
GoalType = Literal["lose", "maintain", "gain"]


def coerce_macro(value: Any) -> int:
    """Coerce loose numeric input to a non-negative int, 0 when unusable."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return 0
    return int(math.floor(number + 0.5))


# =============================================================================
# DERIVED VALUE OBJECTS
# =============================================================================
class MacroGoal(BaseModel):
    """Daily targets; recomputed on every read, never stored."""
    model_config = ConfigDict(frozen=True)

    calories: int
    protein: int
    carbs: int
    fat: int


class MacroTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0

    def __add__(self, other: "MacroTotals") -> "MacroTotals":
        return MacroTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )


class TrialStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_expired: bool
    days_remaining: int = Field(ge=0)


class FoodQuantity(BaseModel):
    """Result of parsing one line of food input."""
    model_config = ConfigDict(frozen=True)

    amount: float
    unit: str
    name: str


# =============================================================================
# USER PROFILE
# =============================================================================
class BiometricsUpdate(BaseModel):
    """Validated input of the profile-edit flow."""
    age: int = Field(gt=0, le=130)
    weight: float = Field(gt=0, le=500)
    height: float = Field(gt=0, le=300)
    gender: Gender
    activity_level: ActivityLevel = "sedentary"
    goal: GoalType = "maintain"


class UserProfile(BaseModel):
    id: Optional[str] = None
    name: str = ""

    age: Optional[int] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    gender: Optional[Gender] = None
    activity_level: ActivityLevel = "sedentary"
    goal: GoalType = "maintain"
    bmr: int = Field(0, ge=0)
    tdee: int = Field(0, ge=0)
    water_goal: int = Field(2500, gt=0)

    created_at: Optional[datetime] = None
    subscription_status: Literal["trial", "pro"] = "trial"

    # Gamification
    xp: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    current_streak: int = Field(0, ge=0)
    last_log_date: Optional[date] = None

    @property
    def has_metabolism(self) -> bool:
        return self.bmr > 0 and self.tdee > 0

    @property
    def is_upgraded(self) -> bool:
        return self.subscription_status == "pro"

    def with_biometrics(self, **fields: Any) -> "UserProfile":
        """
        Return a copy with new biometrics and freshly derived BMR/TDEE.

        Raises:
            InvariantViolation: if any biometric value is missing or invalid.
        """
        from tools.body_calculator import compute_bmr, compute_tdee

        current = {
            "age": self.age,
            "weight": self.weight,
            "height": self.height,
            "gender": self.gender,
            "activity_level": self.activity_level,
            "goal": self.goal,
        }
        current.update({k: v for k, v in fields.items() if v is not None})
        try:
            update = BiometricsUpdate(**current)
        except ValidationError as e:
            raise InvariantViolation(f"Invalid biometrics: {e.errors()[0]['msg']}") from e

        bmr = max(0, compute_bmr(update.weight, update.height, update.age, update.gender))
        tdee = max(0, compute_tdee(bmr, update.activity_level))
        return self.model_copy(update={**update.model_dump(), "bmr": bmr, "tdee": tdee})


# =============================================================================
# LOGGED RECORDS
# =============================================================================
class MealEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: str
    calories: int = Field(0, ge=0)
    protein: int = Field(0, ge=0)
    carbs: int = Field(0, ge=0)
    fat: int = Field(0, ge=0)
    source: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def macros(self) -> MacroTotals:
        return MacroTotals(calories=self.calories, protein=self.protein, carbs=self.carbs, fat=self.fat)


class WaterEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    amount: int = Field(gt=0)
    created_at: datetime = Field(default_factory=datetime.now)


class WaterLog(BaseModel):
    """Today's water intake; `current` is always the sum of the entries."""
    goal: int = Field(2500, gt=0)
    entries: List[WaterEntry] = Field(default_factory=list)

    @property
    def current(self) -> int:
        return sum(entry.amount for entry in self.entries)

    def add(self, amount: int, at: Optional[datetime] = None, entry_id: Optional[str] = None) -> WaterEntry:
        entry = WaterEntry(id=entry_id, amount=amount, created_at=at or datetime.now())
        self.entries.append(entry)
        return entry


class ChatMessage(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    persona: Optional[str] = None
    status: Literal["pending", "sent", "failed"] = "sent"
    created_at: Optional[datetime] = None


# =============================================================================
# GENERATED PLANS
# =============================================================================
class Exercise(BaseModel):
    name: str
    sets: str = "3"
    reps: str = "12"
    rest: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("sets", "reps", "rest", mode="before")
    @classmethod
    def _as_text(cls, v):
        return None if v is None else str(v)


class Workout(BaseModel):
    id: Optional[str] = None
    name: str = "Custom Workout"
    muscle_group: str = "General"
    exercises: List[Exercise] = Field(default_factory=list)


class DietMealItem(BaseModel):
    name: str
    portion: str = ""
    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0

    @field_validator("calories", "protein", "carbs", "fat", mode="before")
    @classmethod
    def _macro(cls, v):
        return coerce_macro(v)


class DietMeal(BaseModel):
    title: str
    items: List[DietMealItem] = Field(default_factory=list)

    @property
    def total_macros(self) -> MacroTotals:
        total = MacroTotals()
        for item in self.items:
            total = total + MacroTotals(calories=item.calories, protein=item.protein,
                                        carbs=item.carbs, fat=item.fat)
        return total


class DietPlan(BaseModel):
    introduction: str = ""
    meals: List[DietMeal] = Field(default_factory=list)
    generated_by: str = "gemini_ai"

    @property
    def daily_totals(self) -> MacroTotals:
        total = MacroTotals()
        for meal in self.meals:
            total = total + meal.total_macros
        return total


__all__ = [
    "Gender",
    "ActivityLevel",
    "GoalType",
    "coerce_macro",
    "MacroGoal",
    "MacroTotals",
    "TrialStatus",
    "FoodQuantity",
    "BiometricsUpdate",
    "UserProfile",
    "MealEntry",
    "WaterEntry",
    "WaterLog",
    "ChatMessage",
    "Exercise",
    "Workout",
    "DietMealItem",
    "DietMeal",
    "DietPlan",
]
