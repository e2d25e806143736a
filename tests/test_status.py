"""Tests for taskflow.workflow.status module."""

import pytest

from taskflow.utils.errors import TaskflowError
from taskflow.workflow.status import (
    CYCLE_STEP,
    STATUS_CYCLE,
    TRANSITIONS,
    TaskStatus,
    cycle_next,
    is_allowed,
    valid_targets,
    validate_transition,
)


class TestTaskStatus:
    def test_parse_value(self):
        assert TaskStatus.parse("in-progress") is TaskStatus.IN_PROGRESS

    def test_parse_is_case_insensitive(self):
        assert TaskStatus.parse(" Done ") is TaskStatus.DONE

    def test_parse_member(self):
        assert TaskStatus.parse(TaskStatus.REVIEW) is TaskStatus.REVIEW

    def test_parse_unknown_raises(self):
        with pytest.raises(TaskflowError, match="Unknown task status: finished"):
            TaskStatus.parse("finished")


class TestCycle:
    @pytest.mark.parametrize(
        "current,expected",
        [
            ("pending", TaskStatus.IN_PROGRESS),
            ("in-progress", TaskStatus.REVIEW),
            ("review", TaskStatus.DONE),
            ("done", TaskStatus.DEFERRED),
            ("deferred", TaskStatus.CANCELLED),
            ("cancelled", TaskStatus.PENDING),
        ],
    )
    def test_cycle_order(self, current, expected):
        assert cycle_next(current) is expected

    def test_blocked_is_outside_cycle(self):
        assert TaskStatus.BLOCKED not in STATUS_CYCLE
        assert cycle_next("blocked") is TaskStatus.PENDING

    def test_unknown_status_cycles_to_pending(self):
        assert cycle_next("weird") is TaskStatus.PENDING

    def test_cycle_wraps_around(self):
        status = TaskStatus.PENDING
        for _ in STATUS_CYCLE:
            status = cycle_next(status)
        assert status is TaskStatus.PENDING

    def test_every_cycle_move_is_in_table(self):
        for status in STATUS_CYCLE:
            assert is_allowed(status, cycle_next(status), CYCLE_STEP)


class TestTransitionTable:
    def test_table_has_no_duplicates(self):
        rows = [(r.from_status, r.to_status, r.step) for r in TRANSITIONS]
        assert len(rows) == len(set(rows))

    @pytest.mark.parametrize(
        "from_status,to_status,step",
        [
            ("pending", "in-progress", "start-implementation"),
            ("in-progress", "review", "request-review"),
            ("in-progress", "done", "complete-implementation"),
            ("review", "done", "merged"),
            ("pending", "done", "merged"),
            ("pending", "done", "complete-implementation"),
            ("review", "done", "complete-implementation"),
            ("blocked", "done", "merged"),
            ("deferred", "done", "merged"),
            ("review", "in-progress", "request-changes"),
            ("blocked", "in-progress", "unblock-task"),
            ("done", "pending", "reopen-task"),
            ("deferred", "in-progress", "start-implementation"),
        ],
    )
    def test_allowed_transitions(self, from_status, to_status, step):
        result = validate_transition(from_status, to_status, step)

        assert result.is_valid is True
        assert result.reason == ""
        assert result.step == step

    def test_invalid_transition_reason_and_options(self):
        result = validate_transition("done", "in-progress", "start-implementation")

        assert result.is_valid is False
        assert result.reason == "Invalid transition from done to in-progress via start-implementation"
        assert "pending" in result.valid_options
        assert "in-progress" not in result.valid_options

    def test_pending_to_done_with_unknown_step(self):
        result = validate_transition("pending", "done", "invalid-jump")

        assert result.is_valid is False
        assert result.reason == "Invalid transition from pending to done via invalid-jump"
        assert "in-progress" in result.valid_options
        assert "deferred" in result.valid_options

    def test_right_statuses_wrong_step(self):
        result = validate_transition("pending", "in-progress", "merged")
        assert result.is_valid is False

    def test_same_status_is_not_a_row(self):
        assert validate_transition("pending", "pending", "start-implementation").is_valid is False

    def test_unknown_status(self):
        result = validate_transition("pending", "finished", "complete-implementation")

        assert result.is_valid is False
        assert "unknown status" in result.reason
        assert result.valid_options == valid_targets("pending")

    def test_valid_targets_are_unique_and_ordered(self):
        targets = valid_targets("in-progress")

        assert targets[0] == "review"
        assert len(targets) == len(set(targets))
        assert set(targets) == {"review", "done", "blocked", "deferred", "cancelled"}

    def test_valid_targets_unknown_status(self):
        assert valid_targets("nope") == []
