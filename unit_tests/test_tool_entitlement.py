from datetime import datetime, timedelta, timezone

from tools.entitlement import UPGRADED_DAYS_REMAINING, evaluate_trial, trial_status_for
from tools.models import UserProfile

CREATED = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_created_just_now_has_full_trial():
    status = evaluate_trial(CREATED, CREATED + timedelta(minutes=5), False, 3)
    assert status.is_expired is False
    assert status.days_remaining == 3


def test_same_instant_counts_as_day_one():
    status = evaluate_trial(CREATED, CREATED, False, 3)
    assert status.days_remaining == 3


def test_partial_days_round_up():
    # 1 day and 1 hour -> day 2
    status = evaluate_trial(CREATED, CREATED + timedelta(days=1, hours=1), False, 3)
    assert status.days_remaining == 2
    assert not status.is_expired


def test_last_day_and_expiry():
    last_day = evaluate_trial(CREATED, CREATED + timedelta(days=3), False, 3)
    assert last_day.days_remaining == 1
    assert not last_day.is_expired

    expired = evaluate_trial(CREATED, CREATED + timedelta(days=3, seconds=1), False, 3)
    assert expired.is_expired
    assert expired.days_remaining == 0

    long_gone = evaluate_trial(CREATED, CREATED + timedelta(days=5), False, 3)
    assert long_gone.is_expired and long_gone.days_remaining == 0


def test_upgraded_never_expires():
    status = evaluate_trial(CREATED, CREATED + timedelta(days=400), True, 3)
    assert status.is_expired is False
    assert status.days_remaining == UPGRADED_DAYS_REMAINING


def test_naive_timestamps_are_utc():
    naive = CREATED.replace(tzinfo=None)
    status = evaluate_trial(naive, CREATED + timedelta(hours=2), False, 3)
    assert status.days_remaining == 3


def test_trial_status_for_profile():
    profile = UserProfile(id="u1", created_at=CREATED)
    assert trial_status_for(profile, CREATED + timedelta(days=2, hours=1), trial_days=3).days_remaining == 1

    pro = profile.model_copy(update={"subscription_status": "pro"})
    assert trial_status_for(pro, CREATED + timedelta(days=30)).days_remaining == UPGRADED_DAYS_REMAINING
