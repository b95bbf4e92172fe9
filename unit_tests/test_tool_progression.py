from datetime import date, timedelta

from tools.models import UserProfile
from tools.progression import (
    ActionKind,
    LevelUp,
    XP_REWARDS,
    award_xp,
    compute_progress,
    notify_level_up,
    update_streak,
)

TODAY = date(2024, 5, 10)


def test_award_below_threshold():
    result = award_xp(10, 1, 15)
    assert (result.xp, result.level, result.level_up) == (25, 1, None)


def test_level_up_carries_remainder():
    result = award_xp(90, 1, 15)
    assert result.xp == 5
    assert result.level == 2
    assert result.level_up == LevelUp(new_level=2, levels_gained=1)


def test_exact_threshold_levels_up():
    result = award_xp(85, 1, 15)
    assert (result.xp, result.level) == (0, 2)


def test_large_award_gains_several_levels():
    # 350 XP from level 1: 100 -> level 2, 200 -> level 3, 50 left
    result = award_xp(0, 1, 350)
    assert (result.xp, result.level) == (50, 3)
    assert result.level_up.new_level == 3
    assert result.level_up.levels_gained == 2


def test_streak_rules():
    assert update_streak(4, TODAY, TODAY).current_streak == 4
    assert update_streak(4, TODAY, TODAY).changed is False

    yesterday = update_streak(4, TODAY - timedelta(days=1), TODAY)
    assert yesterday.current_streak == 5
    assert yesterday.last_log_date == TODAY

    assert update_streak(4, TODAY - timedelta(days=2), TODAY).current_streak == 1
    assert update_streak(0, None, TODAY).current_streak == 1


def test_streak_ignores_log_date_ahead_of_today():
    # clock skew between devices
    ahead = update_streak(4, TODAY + timedelta(days=1), TODAY)
    assert (ahead.current_streak, ahead.last_log_date, ahead.changed) == (4, TODAY + timedelta(days=1), False)


def test_meal_updates_streak_but_water_does_not():
    profile = UserProfile(id="u1", xp=0, level=1, current_streak=2,
                          last_log_date=TODAY - timedelta(days=1))

    meal = compute_progress(profile, ActionKind.MEAL_LOGGED, TODAY)
    assert meal.xp_awarded == XP_REWARDS[ActionKind.MEAL_LOGGED] == 15
    assert meal.streak.current_streak == 3

    water = compute_progress(profile, ActionKind.WATER_LOGGED, TODAY)
    assert water.xp_awarded == 5
    assert water.streak.current_streak == 2
    assert water.streak.last_log_date == TODAY - timedelta(days=1)

    workout = compute_progress(profile, ActionKind.WORKOUT_LOGGED, TODAY)
    assert workout.xp.xp == 50


def test_apply_to_profile_leaves_other_fields():
    profile = UserProfile(id="u1", name="Ana", xp=95, level=1, bmr=1643, tdee=1972)
    updated = compute_progress(profile, ActionKind.MEAL_LOGGED, TODAY).apply_to(profile)
    assert (updated.xp, updated.level, updated.current_streak) == (10, 2, 1)
    assert updated.last_log_date == TODAY
    assert (updated.name, updated.bmr, updated.tdee) == ("Ana", 1643, 1972)
    assert profile.xp == 95


def test_notify_level_up():
    seen = []
    assert notify_level_up(None, seen.append) is False
    assert notify_level_up(LevelUp(new_level=4), seen.append) is True
    assert seen == [4]


def test_notify_level_up_callback_error_is_not_retried():
    calls = []

    def broken(level):
        calls.append(level)
        raise RuntimeError("toast failed")

    assert notify_level_up(LevelUp(new_level=2), broken) is True
    assert calls == [2]
