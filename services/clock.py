from datetime import datetime, date

from flask import current_app, has_app_context


def now() -> datetime:
    """
    Current naive UTC time. Tests and batch jobs pin it with
    app.config["CLOCK"] = lambda: datetime(...).
    """
    clock = current_app.config.get("CLOCK") if has_app_context() else None
    if clock is not None:
        return clock()
    return datetime.utcnow()


def today() -> date:
    return now().date()
