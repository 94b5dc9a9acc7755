from services.timecalc import elapsed_minutes, round_to_half_hour


def compute_billable_hours(scheduled_from, scheduled_to, actual_from=None, actual_to=None, break_hours=0) -> float:
    """Billable hours for one session, rounded to the nearest half hour.

    Each actual time falls back to its scheduled counterpart on its own, so a
    corrected start with no corrected end still bills up to the scheduled end.
    Breaks longer than the session floor the result at 0 instead of failing;
    report totals depend on that.
    """
    start = actual_from or scheduled_from
    end = actual_to or scheduled_to

    minutes = elapsed_minutes(start, end) - (break_hours or 0) * 60
    return round_to_half_hour(minutes)
