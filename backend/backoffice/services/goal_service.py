# Overview: Service-layer operations for dashboard revenue goals.

from __future__ import annotations

from ..extensions import db
from ..models import Goal
from ..validation import ValidationError


GOAL_ID = 1
GOAL_FIELDS = ("all", "month", "day")


def get_goal() -> dict:
    goal = db.session.get(Goal, GOAL_ID)
    if goal is None:
        return {"id": GOAL_ID, "all": 0, "month": 0, "day": 0}
    return goal.to_dict()


def set_goal(*, all: int | None = None, month: int | None = None, day: int | None = None) -> Goal:
    """
    Upsert the singleton goal row, writing only fields that changed.

    Raises ValidationError("Нечего обновлять") when nothing differs.
    """
    requested = {"all": all, "month": month, "day": day}
    for key, value in requested.items():
        if value is not None and value < 0:
            raise ValidationError(f"{key} must be >= 0")

    goal = db.session.get(Goal, GOAL_ID)
    changed = {
        key: value
        for key, value in requested.items()
        if value is not None and (goal is None or getattr(goal, key) != value)
    }
    if not changed:
        raise ValidationError("Нечего обновлять")

    if goal is None:
        goal = Goal(id=GOAL_ID, all=0, month=0, day=0)
        db.session.add(goal)

    for key, value in changed.items():
        setattr(goal, key, value)

    db.session.commit()
    return goal
