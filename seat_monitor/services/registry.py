"""
Registry of tracked courses.
Adds and removals never raise; rejected requests are logged instead.
"""

from typing import Optional

import structlog

from seat_monitor.models.schemas import TrackedItem
from seat_monitor.services.activity_log import ActivityLog
from seat_monitor.services.state import StateRepository

logger = structlog.get_logger(__name__)


class CourseRegistry:
    """Owns the ordered set of tracked courses."""

    def __init__(self, repository: StateRepository, activity_log: ActivityLog):
        self.repository = repository
        self.activity_log = activity_log

    async def add(
        self, code: str, section: Optional[str] = None
    ) -> Optional[TrackedItem]:
        """
        Track a course.

        Args:
            code: Course code; trimmed and upper-cased
            section: Optional section; same normalization

        Returns:
            The stored item, or None when rejected (empty code or duplicate)
        """
        item = TrackedItem.create(code, section)
        if not item.code:
            await self.activity_log.append("Course code is required.", "warning")
            return None

        if not await self.repository.add_course(item):
            await self.activity_log.append(
                f"Course {item.code} already in list.", "warning"
            )
            return None

        await self.activity_log.append(f"Added course {item.label}.", "success")
        return item

    async def remove(self, key: str) -> bool:
        if not await self.repository.remove_course(key):
            logger.debug("Remove ignored, course not tracked", course_key=key)
            return False

        await self.activity_log.append(
            "Removed course from monitoring list.", "warning"
        )
        return True

    async def courses(self) -> list[TrackedItem]:
        state = await self.repository.load()
        return state.courses
