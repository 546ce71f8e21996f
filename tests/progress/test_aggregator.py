"""Tests for completion aggregation."""

from uuid import uuid4

import pytest

from learnhub.progress.aggregator import aggregate, completion_percentage, count_completed
from learnhub.progress.models import LectureProgress


def _entries(completed: int, pending: int = 0) -> list[LectureProgress]:
    return [LectureProgress(lecture_id=uuid4(), is_completed=True) for _ in range(completed)] + [
        LectureProgress(lecture_id=uuid4(), is_completed=False) for _ in range(pending)
    ]


class TestCompletionPercentage:
    """Tests for completion_percentage."""

    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [
            (0, 4, 0),
            (1, 4, 25),
            (2, 4, 50),
            (4, 4, 100),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),  # 12.5 rounds half up
            (1, 200, 1),  # 0.5 rounds half up
        ],
    )
    def test_rounds_half_up(self, completed: int, total: int, expected: int) -> None:
        assert completion_percentage(completed, total) == expected

    def test_empty_course_is_zero(self) -> None:
        assert completion_percentage(0, 0) == 0
        assert completion_percentage(3, 0) == 0

    def test_clamped_to_hundred(self) -> None:
        """Entries for removed lectures can outnumber the current total."""
        assert completion_percentage(5, 4) == 100


class TestAggregate:
    """Tests for aggregate."""

    def test_counts_only_completed_entries(self) -> None:
        entries = _entries(completed=2, pending=2)
        assert count_completed(entries) == 2

        summary = aggregate(entries, total_lectures=4)
        assert summary.completed_count == 2
        assert summary.completion_percentage == 50
        assert summary.is_completed is False

    def test_all_completed(self) -> None:
        summary = aggregate(_entries(completed=4), total_lectures=4)
        assert summary.completion_percentage == 100
        assert summary.is_completed is True

    def test_lectures_without_entries_count_as_incomplete(self) -> None:
        summary = aggregate(_entries(completed=2), total_lectures=4)
        assert summary.completion_percentage == 50
        assert summary.is_completed is False

    def test_empty_course_never_completed(self) -> None:
        summary = aggregate([], total_lectures=0)
        assert summary.completion_percentage == 0
        assert summary.is_completed is False

    def test_growing_course_lowers_percentage(self) -> None:
        entries = _entries(completed=4)
        assert aggregate(entries, total_lectures=4).is_completed is True

        summary = aggregate(entries, total_lectures=5)
        assert summary.completion_percentage == 80
        assert summary.is_completed is False
