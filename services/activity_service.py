"""Operator activity log."""

from typing import List, Optional

from core.constants import ActivitySeverity
from database.base_repository import utc_now
from database.models import ActivityEntry
from database.repositories import ActivityRepository


class ActivityService:
    """Append-only record of back-office actions shown on the dashboard."""

    @staticmethod
    async def log(
        action: str,
        details: str = "",
        severity: str = ActivitySeverity.INFO.value,
        actor_id: Optional[int] = None,
    ) -> int:
        """Store one activity entry and return its id."""
        severity = ActivitySeverity(severity).value
        return await ActivityRepository.insert(action, details, severity, actor_id, utc_now())

    @staticmethod
    async def recent(limit: int = 20) -> List[ActivityEntry]:
        return await ActivityRepository.recent(max(1, min(limit, 200)))
