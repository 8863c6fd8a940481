from sqlalchemy import func
from sqlmodel import Session, select

from app.models.attendance import Attendance


class StatsRepository:
    """
    Read-only aggregated queries for the dashboard.
    """

    def count_by_status_and_priority(
        self,
        session: Session,
    ) -> list[tuple[str, str, int]]:
        """
        Attendance counts grouped by (status, priority) in one round trip.

        Raw status values are returned as stored; callers normalize
        legacy names.
        """
        stmt = (
            select(
                Attendance.status,
                Attendance.priority,
                func.count().label("count"),
            )
            .group_by(Attendance.status, Attendance.priority)
        )
        return [
            (status, priority, int(count or 0))
            for status, priority, count in session.exec(stmt).all()
        ]
