"""
Unit tests for the progress state transitions

Tests NotStarted/Completed transitions and completed_at handling.
"""
from datetime import datetime, timedelta, timezone

from coursehub.models import Progress
from coursehub.services.progress import apply_completion

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_mark_complete_stamps_time():
    progress = Progress(student_id=1, lesson_id=1, completed=False)

    apply_completion(progress, True, NOW)

    assert progress.completed is True
    assert progress.completed_at == NOW


def test_repeat_complete_keeps_original_stamp():
    progress = Progress(student_id=1, lesson_id=1, completed=False)
    apply_completion(progress, True, NOW)

    apply_completion(progress, True, NOW + timedelta(hours=1))

    assert progress.completed_at == NOW


def test_mark_incomplete_clears_stamp():
    progress = Progress(student_id=1, lesson_id=1, completed=True, completed_at=NOW)

    apply_completion(progress, False, NOW + timedelta(minutes=5))

    assert progress.completed is False
    assert progress.completed_at is None


def test_incomplete_on_new_row_stays_not_started():
    progress = Progress(student_id=1, lesson_id=1, completed=False)

    apply_completion(progress, False, NOW)

    assert progress.completed is False
    assert progress.completed_at is None


def test_complete_without_stamp_is_repaired():
    progress = Progress(student_id=1, lesson_id=1, completed=True, completed_at=None)

    apply_completion(progress, True, NOW)

    assert progress.completed_at == NOW
