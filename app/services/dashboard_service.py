import copy
import logging
from typing import Callable

from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from app.repositories.attendance_repo import AttendanceRepository
from app.repositories.stats_repo import StatsRepository
from app.schemas.attendance import (
    ATTENDANCE_PRIORITIES,
    ATTENDANCE_STATUSES,
    normalize_status,
)
from app.schemas.stats import DashboardSummary

logger = logging.getLogger(__name__)


class DashboardAggregator:
    """
    Builds the dashboard summary in two round trips:
      - one grouped count (status, priority) against Postgres
      - one detail read of the latest attendances with relations

    Nothing is cached; every call recomputes.
    """

    def __init__(
        self,
        stats_repo: StatsRepository,
        attendance_repo: AttendanceRepository,
        session_factory: Callable[[], Session],
        recent_limit: int = 5,
    ):
        self.stats_repo = stats_repo
        self.attendance_repo = attendance_repo
        self.session_factory = session_factory
        self.recent_limit = recent_limit

    def bind(self, client) -> "DashboardAggregator":
        """Recent-attendance read through `client`."""
        bound = copy.copy(self)
        bound.attendance_repo = self.attendance_repo.bind(client)
        return bound

    def _grouped_counts(self) -> list[tuple[str, str, int]]:
        with self.session_factory() as session:
            return self.stats_repo.count_by_status_and_priority(session)

    async def summarize(self) -> DashboardSummary:
        rows = await run_in_threadpool(self._grouped_counts)
        recent = await self.attendance_repo.list_recent(limit=self.recent_limit)
        return build_summary(rows, recent)


def build_summary(rows, recent) -> DashboardSummary:
    """Reduce grouped (status, priority, count) rows in a single pass."""
    by_status = {status: 0 for status in ATTENDANCE_STATUSES}
    by_priority = {priority: 0 for priority in ATTENDANCE_PRIORITIES}
    total = 0

    for raw_status, priority, count in rows:
        total += count
        status = normalize_status(raw_status)
        if status in by_status:
            by_status[status] += count
        else:
            logger.warning("Unknown attendance status %r (%d rows)", raw_status, count)
        if priority is not None:
            by_priority[priority] = by_priority.get(priority, 0) + count

    return DashboardSummary(
        total=total,
        pending=by_status["open"],
        in_progress=by_status["in_progress"],
        completed=by_status["resolved"] + by_status["closed"],
        by_status=by_status,
        by_priority=by_priority,
        recent=list(recent),
    )
