"""
Task lifecycle engine.

The table below is the whole state machine. apply_transition is the only
code path that writes Task.status once a task exists.
"""

from __future__ import annotations

import logging

from taskhub.core.errors import InvalidTransitionError
from taskhub.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)

TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.todo: frozenset({TaskStatus.in_progress}),
    TaskStatus.in_progress: frozenset({TaskStatus.todo, TaskStatus.review}),
    TaskStatus.review: frozenset({TaskStatus.in_progress, TaskStatus.done}),
    TaskStatus.done: frozenset({TaskStatus.in_progress}),
}


def can_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    return requested in TRANSITIONS.get(current, frozenset())


def allowed_next(current: TaskStatus) -> list[TaskStatus]:
    return sorted(TRANSITIONS.get(current, frozenset()), key=lambda s: list(TaskStatus).index(s))


def apply_transition(task: Task, requested: TaskStatus) -> TaskStatus:
    """
    Move task to the requested status and return the previous one.

    Raises InvalidTransitionError (task untouched) for self-transitions and
    any pair not listed in TRANSITIONS.
    """
    current = TaskStatus(task.status)
    requested = TaskStatus(requested)
    if not can_transition(current, requested):
        raise InvalidTransitionError(
            current.value, requested.value, allowed=[s.value for s in allowed_next(current)]
        )
    task.status = requested
    logger.debug("task_id=%s status %s -> %s", task.id, current.value, requested.value)
    return current
