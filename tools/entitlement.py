# tools/entitlement.py
"""
VitaFlow — Trial Entitlement Evaluator
======================================
Derives trial status from the account creation time. Never persisted;
re-run whenever the profile or its subscription changes.
"""

import math
from datetime import datetime, timezone
from typing import Optional

import config
from tools.models import TrialStatus, UserProfile

UPGRADED_DAYS_REMAINING = 9999
SECONDS_PER_DAY = 24 * 60 * 60


def _as_utc(moment: datetime) -> datetime:
    # Naive timestamps are treated as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def evaluate_trial(
    account_created_at: datetime,
    now: datetime,
    is_upgraded: bool,
    trial_days: Optional[int] = None
) -> TrialStatus:
    """
    Trial status for an account.

    The creation day counts as day one, so elapsed days never drop below 1:
    with a 3-day trial, an account created moments ago has 3 days left.

    Example:
        >>> evaluate_trial(created, created + timedelta(days=5), False, 3)
        TrialStatus(is_expired=True, days_remaining=0)
    """
    if is_upgraded:
        return TrialStatus(is_expired=False, days_remaining=UPGRADED_DAYS_REMAINING)

    days = config.TRIAL_DAYS if trial_days is None else trial_days
    elapsed_s = abs((_as_utc(now) - _as_utc(account_created_at)).total_seconds())
    diff_days = max(1, math.ceil(elapsed_s / SECONDS_PER_DAY))

    return TrialStatus(
        is_expired=diff_days > days,
        days_remaining=max(0, days - diff_days + 1),
    )


def trial_status_for(profile: UserProfile, now: Optional[datetime] = None,
                     trial_days: Optional[int] = None) -> TrialStatus:
    """Trial status of a stored profile; profiles without created_at start now."""
    now = now or datetime.now(timezone.utc)
    created_at = profile.created_at or now
    return evaluate_trial(created_at, now, profile.is_upgraded, trial_days)


__all__ = ["UPGRADED_DAYS_REMAINING", "evaluate_trial", "trial_status_for"]
