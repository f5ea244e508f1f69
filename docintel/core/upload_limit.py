"""Fixed-window weekly upload quota.

The window runs from Monday 00:00 UTC to the following Monday 00:00 UTC. No
counter is stored: each check counts the user's documents created since the
window started.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from docintel.core.errors import QuotaExceededError
from docintel.core.interfaces import Storage
from docintel.core.logging import get_logger
from docintel.core.schemas_documents import RemainingUploads, UploadLimitStatus

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def week_start(now: datetime) -> datetime:
    """Return Monday 00:00 UTC of the week containing ``now``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    monday = now - timedelta(days=now.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


class UploadLimiter:
    """
    Weekly per-user document upload limit.

    Uses the document table as the source of truth, so deleting a document
    frees a slot in the current window.
    """

    def __init__(
        self,
        storage: Storage,
        limit: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize upload limiter.

        Args:
            storage: Storage used to count documents
            limit: Documents allowed per user per week
            clock: Source of the current time (injectable for tests)
        """
        self.storage = storage
        self.limit = limit
        self._clock = clock

    async def check(self, user_id: str) -> UploadLimitStatus:
        """Report whether the user may upload another document this week."""
        start = week_start(self._clock())
        count = await self.storage.count_documents_since(user_id, start)

        status = UploadLimitStatus(
            allowed=count < self.limit,
            count=count,
            limit=self.limit,
            reset_date=start + timedelta(days=7),
        )

        if not status.allowed:
            logger.warning(
                f"Upload limit reached for user {user_id}: {count}/{self.limit}",
                extra={"user_id": user_id, "count": count},
            )
        return status

    async def enforce(self, user_id: str) -> UploadLimitStatus:
        """
        Check the limit and raise when it is exhausted.

        Raises:
            QuotaExceededError: If the weekly limit has been reached
        """
        status = await self.check(user_id)
        if not status.allowed:
            raise QuotaExceededError(status.limit, status.reset_date)
        return status

    async def remaining(self, user_id: str) -> RemainingUploads:
        status = await self.check(user_id)
        return RemainingUploads(
            remaining=max(0, status.limit - status.count),
            total=status.limit,
            used=status.count,
            reset_date=status.reset_date,
        )
