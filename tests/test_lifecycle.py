"""
Task status state machine tests.
"""

from uuid import uuid4

import pytest

from taskhub.core.errors import InvalidTransitionError
from taskhub.models.task import Task, TaskStatus
from taskhub.services.lifecycle import TRANSITIONS, allowed_next, apply_transition, can_transition

LEGAL = {
    (TaskStatus.todo, TaskStatus.in_progress),
    (TaskStatus.in_progress, TaskStatus.todo),
    (TaskStatus.in_progress, TaskStatus.review),
    (TaskStatus.review, TaskStatus.in_progress),
    (TaskStatus.review, TaskStatus.done),
    (TaskStatus.done, TaskStatus.in_progress),
}


def _task(status: TaskStatus) -> Task:
    return Task(id=uuid4(), project_id=uuid4(), title="Ship it", created_by=uuid4(), status=status)


@pytest.mark.parametrize("current", list(TaskStatus))
@pytest.mark.parametrize("requested", list(TaskStatus))
def test_can_transition_matches_table(current, requested):
    assert can_transition(current, requested) == ((current, requested) in LEGAL)


def test_no_status_is_terminal():
    for status in TaskStatus:
        assert TRANSITIONS[status], f"{status} has no way out"


def test_allowed_next_in_declaration_order():
    assert allowed_next(TaskStatus.in_progress) == [TaskStatus.todo, TaskStatus.review]
    assert allowed_next(TaskStatus.done) == [TaskStatus.in_progress]


def test_apply_transition_returns_previous_status():
    task = _task(TaskStatus.review)
    previous = apply_transition(task, TaskStatus.done)
    assert previous == TaskStatus.review
    assert task.status == TaskStatus.done


def test_done_can_be_reopened():
    task = _task(TaskStatus.done)
    apply_transition(task, TaskStatus.in_progress)
    assert task.status == TaskStatus.in_progress


def test_rejected_transition_leaves_status_unchanged():
    task = _task(TaskStatus.todo)
    with pytest.raises(InvalidTransitionError) as exc_info:
        apply_transition(task, TaskStatus.review)
    assert task.status == TaskStatus.todo
    assert exc_info.value.status_code == 422
    assert exc_info.value.detail["code"] == "INVALID_TRANSITION"
    assert exc_info.value.detail["from"] == "To Do"
    assert exc_info.value.detail["to"] == "Review"
    assert exc_info.value.detail["allowed"] == ["In Progress"]


def test_self_transition_is_rejected():
    task = _task(TaskStatus.in_progress)
    with pytest.raises(InvalidTransitionError):
        apply_transition(task, TaskStatus.in_progress)
    assert task.status == TaskStatus.in_progress


def test_accepts_plain_status_strings():
    task = _task(TaskStatus.todo)
    apply_transition(task, "In Progress")
    assert task.status == TaskStatus.in_progress
