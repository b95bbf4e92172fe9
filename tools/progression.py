# tools/progression.py
"""
VitaFlow — Progression Engine
=============================
XP / level / streak transitions. Pure functions over explicit state; the
caller persists the result and only then surfaces level-up events.

XP rules:
  - threshold(level) = level * 100
  - xp + award >= threshold -> level up, remainder carried forward
  - the carry step repeats, so a large award may gain several levels;
    one LevelUp event per award carries the final level

Streak rules (evaluated on a qualifying meal log):
  - last log today       -> unchanged
  - last log yesterday   -> streak + 1
  - anything else        -> streak = 1
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Optional

from tools.body_calculator import xp_threshold
from tools.models import UserProfile


class ActionKind(Enum):
    MEAL_LOGGED = "meal_logged"
    WATER_LOGGED = "water_logged"
    WORKOUT_LOGGED = "workout_logged"


XP_REWARDS = {
    ActionKind.MEAL_LOGGED: 15,
    ActionKind.WATER_LOGGED: 5,
    ActionKind.WORKOUT_LOGGED: 50,
}

# Only meal logs advance the streak
STREAK_ACTIONS = {ActionKind.MEAL_LOGGED}


@dataclass(frozen=True)
class LevelUp:
    new_level: int
    levels_gained: int = 1


@dataclass(frozen=True)
class XpResult:
    xp: int
    level: int
    level_up: Optional[LevelUp] = None


@dataclass(frozen=True)
class StreakResult:
    current_streak: int
    last_log_date: Optional[date]
    changed: bool


@dataclass(frozen=True)
class ProgressUpdate:
    """Everything a single qualifying action changes on the profile."""
    action: ActionKind
    xp_awarded: int
    xp: XpResult
    streak: StreakResult

    def apply_to(self, profile: UserProfile) -> UserProfile:
        return profile.model_copy(update={
            "xp": self.xp.xp,
            "level": self.xp.level,
            "current_streak": self.streak.current_streak,
            "last_log_date": self.streak.last_log_date,
        })


# =============================================================================
# TRANSITIONS
# =============================================================================
def award_xp(xp: int, level: int, amount: int) -> XpResult:
    """
    Add `amount` XP at `level`.

    Example:
        >>> award_xp(90, 1, 15)
        XpResult(xp=5, level=2, level_up=LevelUp(new_level=2, levels_gained=1))
    """
    new_xp = xp + max(0, amount)
    new_level = level
    while new_xp >= xp_threshold(new_level):
        new_xp -= xp_threshold(new_level)
        new_level += 1

    level_up = None
    if new_level > level:
        level_up = LevelUp(new_level=new_level, levels_gained=new_level - level)
    return XpResult(xp=new_xp, level=new_level, level_up=level_up)


def update_streak(current_streak: int, last_log_date: Optional[date], today: date) -> StreakResult:
    """Streak after a qualifying activity on `today`."""
    if last_log_date is not None and last_log_date >= today:
        return StreakResult(current_streak=current_streak, last_log_date=last_log_date, changed=False)

    if last_log_date == today - timedelta(days=1):
        streak = current_streak + 1
    else:
        streak = 1
    return StreakResult(current_streak=streak, last_log_date=today, changed=True)


def compute_progress(profile: UserProfile, action: ActionKind, today: Optional[date] = None) -> ProgressUpdate:
    """XP award plus, for streak actions, the streak transition."""
    today = today or date.today()
    amount = XP_REWARDS[action]
    xp_result = award_xp(profile.xp, profile.level, amount)

    if action in STREAK_ACTIONS:
        streak = update_streak(profile.current_streak, profile.last_log_date, today)
    else:
        streak = StreakResult(current_streak=profile.current_streak,
                              last_log_date=profile.last_log_date, changed=False)

    return ProgressUpdate(action=action, xp_awarded=amount, xp=xp_result, streak=streak)


def notify_level_up(level_up: Optional[LevelUp], callback: Optional[Callable[[int], None]]) -> bool:
    """
    Deliver a level-up to the presentation layer once. Callback errors are
    reported and not retried.
    """
    if level_up is None:
        return False
    print(f"🏆 Level up! Now level {level_up.new_level}")
    if callback is None:
        return True
    try:
        callback(level_up.new_level)
    except Exception as e:
        print(f"⚠️ Level-up notification failed: {e}")
    return True


__all__ = [
    "ActionKind",
    "XP_REWARDS",
    "LevelUp",
    "XpResult",
    "StreakResult",
    "ProgressUpdate",
    "award_xp",
    "update_streak",
    "compute_progress",
    "notify_level_up",
]
