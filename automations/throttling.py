"""
Rate Limiter / Throttle Tracker

Per-rule hourly and daily counters plus a cooldown. Windows are rolling:
a counter resets only once more than a full window has passed since its
``*_reset_at`` anchor, and the anchor then moves to ``now``.

Both functions mutate the rule instance in memory; saving it is the
orchestrator's job.
"""

from datetime import timedelta

from django.utils import timezone

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


def _roll_windows(rule, now):
    if rule.max_executions_per_hour:
        if rule.hour_reset_at is None or now - rule.hour_reset_at > HOUR:
            rule.executions_this_hour = 0
            rule.hour_reset_at = now

    if rule.max_executions_per_day:
        if rule.day_reset_at is None or now - rule.day_reset_at > DAY:
            rule.executions_today = 0
            rule.day_reset_at = now


def is_throttled(rule, now=None) -> bool:
    """
    Whether the rule has hit its hourly or daily cap or is cooling down.

    Expired windows are reset on the instance as a side effect.
    """
    now = now or timezone.now()
    _roll_windows(rule, now)

    if rule.max_executions_per_hour and rule.executions_this_hour >= rule.max_executions_per_hour:
        return True

    if rule.max_executions_per_day and rule.executions_today >= rule.max_executions_per_day:
        return True

    if rule.cooldown_minutes and rule.last_execution_time:
        if now - rule.last_execution_time < timedelta(minutes=rule.cooldown_minutes):
            return True

    return False


def record_execution(rule, now=None):
    """
    Count one actual execution of the rule.

    Call once per executed rule, never for throttled or non-matching
    evaluations.
    """
    now = now or timezone.now()
    _roll_windows(rule, now)

    rule.executions_this_hour = (rule.executions_this_hour or 0) + 1
    rule.executions_today = (rule.executions_today or 0) + 1
    rule.last_execution_time = now
    if rule.hour_reset_at is None:
        rule.hour_reset_at = now
    if rule.day_reset_at is None:
        rule.day_reset_at = now
    return rule
