from pydantic import ConfigDict
from sqlmodel import SQLModel

from app.schemas.attendance import AttendanceRead


class DashboardSummary(SQLModel):
    """
    Read model for the dashboard. Recomputed on every request.

    `pending`, `in_progress` and `completed` are the three-bucket view
    older dashboard widgets expect:
      - pending     = open
      - in_progress = in_progress
      - completed   = resolved + closed
    """

    model_config = ConfigDict(extra="forbid")

    total: int
    pending: int
    in_progress: int
    completed: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    recent: list[AttendanceRead]
