"""Tests for the weekly upload limit window."""

from datetime import datetime, timezone

import pytest

from docintel.core.errors import QuotaExceededError
from docintel.core.upload_limit import UploadLimiter, week_start
from tests.conftest import OTHER_USER_ID, USER_ID

SUNDAY_LATE = datetime(2026, 10, 18, 23, 59, 59, tzinfo=timezone.utc)
MONDAY_MIDNIGHT = datetime(2026, 10, 19, 0, 0, 0, tzinfo=timezone.utc)


def test_week_start_is_monday_midnight_utc():
    """Test the window boundary for a few points in the week."""
    assert week_start(SUNDAY_LATE) == datetime(2026, 10, 12, tzinfo=timezone.utc)
    assert week_start(MONDAY_MIDNIGHT) == MONDAY_MIDNIGHT
    assert week_start(datetime(2026, 10, 21, 15, 30)) == MONDAY_MIDNIGHT


@pytest.mark.asyncio
async def test_limit_reached_before_window_rolls_over(storage):
    """Test uploads from Sunday night count until Monday 00:00 UTC."""
    for name in ("a.txt", "b.txt"):
        storage.add_document(USER_ID, name, created_at=SUNDAY_LATE)

    sunday = UploadLimiter(storage, limit=2, clock=lambda: SUNDAY_LATE)
    status = await sunday.check(USER_ID)
    assert status.allowed is False
    assert status.count == 2
    assert status.reset_date == MONDAY_MIDNIGHT

    monday = UploadLimiter(storage, limit=2, clock=lambda: MONDAY_MIDNIGHT)
    status = await monday.check(USER_ID)
    assert status.allowed is True
    assert status.count == 0
    assert status.reset_date == datetime(2026, 10, 26, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_enforce_raises_when_exhausted(storage):
    storage.add_document(USER_ID, "a.txt", created_at=SUNDAY_LATE)
    limiter = UploadLimiter(storage, limit=1, clock=lambda: SUNDAY_LATE)

    with pytest.raises(QuotaExceededError) as exc_info:
        await limiter.enforce(USER_ID)

    assert exc_info.value.reset_date == MONDAY_MIDNIGHT
    assert exc_info.value.to_dict()["category"] == "quota_exceeded"


@pytest.mark.asyncio
async def test_limit_is_per_user(storage):
    storage.add_document(OTHER_USER_ID, "a.txt", created_at=SUNDAY_LATE)
    limiter = UploadLimiter(storage, limit=1, clock=lambda: SUNDAY_LATE)

    status = await limiter.enforce(USER_ID)
    assert status.allowed is True


@pytest.mark.asyncio
async def test_remaining(storage):
    storage.add_document(USER_ID, "a.txt", created_at=SUNDAY_LATE)
    limiter = UploadLimiter(storage, limit=5, clock=lambda: SUNDAY_LATE)

    remaining = await limiter.remaining(USER_ID)

    assert remaining.remaining == 4
    assert remaining.used == 1
    assert remaining.total == 5
    assert remaining.reset_date == MONDAY_MIDNIGHT
