import uuid
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from app.core.cancellation import CancellationToken
from app.core.errors import AuthorizationError
from app.core.session import Caller
from app.repositories.attendance_repo import AttendanceRepository, CommentRepository
from app.schemas.attendance import (
    AttendanceCreate,
    AttendanceRead,
    AttendanceUpdate,
    CommentCreate,
    CommentRead,
)
from app.schemas.stats import DashboardSummary
from app.services.dashboard_service import DashboardAggregator
from app.stores.base import EntityStore, Result, StoreState, bound_to


@dataclass(frozen=True)
class AttendanceState(StoreState[AttendanceRead]):
    dashboard_summary: DashboardSummary | None = None
    comments: tuple[CommentRead, ...] = ()
    comments_for: uuid.UUID | None = None


class AttendanceStore(EntityStore[AttendanceRead]):
    """
    Attendances (newest first) plus their comment threads and the
    dashboard summary.
    """

    create_schema = AttendanceCreate
    update_schema = AttendanceUpdate
    name = "attendances"

    def __init__(
        self,
        repo: AttendanceRepository,
        comments: CommentRepository,
        aggregator: DashboardAggregator,
        current_user_id: Callable[[], uuid.UUID | None],
    ):
        super().__init__(repo, AttendanceState())
        self.comments = comments
        self.aggregator = aggregator
        self.current_user_id = current_user_id

    # ----- dashboard -----

    async def fetch_dashboard_summary(
        self,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[DashboardSummary]:
        return await self._run(
            "fetch_dashboard_summary",
            bound_to(self.aggregator, caller).summarize,
            lambda summary: {"dashboard_summary": summary},
            token,
        )

    # ----- comments -----

    async def fetch_comments(
        self,
        attendance_id: uuid.UUID,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[list[CommentRead]]:
        """Comments oldest first; kept in state for the open thread."""
        comments = bound_to(self.comments, caller)
        return await self._run(
            "fetch_comments",
            lambda: comments.list_for_attendance(attendance_id),
            lambda rows: {
                "comments": tuple(rows),
                "comments_for": attendance_id,
            },
            token,
        )

    async def add_comment(
        self,
        attendance_id: uuid.UUID,
        payload: CommentCreate | Mapping[str, Any] | str,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[CommentRead]:
        """
        Append a comment authored by the caller, or by the process's
        signed-in user when there is no caller.

        Fails with AuthorizationError when there is neither.
        """
        if isinstance(payload, str):
            payload = {"content": payload}
        comments = bound_to(self.comments, caller)

        async def call():
            data = self._validate(CommentCreate, payload)
            author_id = caller.id if caller is not None else self.current_user_id()
            if author_id is None:
                raise AuthorizationError("User not authenticated")
            return await comments.insert(
                {
                    "attendance_id": str(attendance_id),
                    "author_id": str(author_id),
                    "content": data.content,
                }
            )

        def apply(comment: CommentRead) -> dict[str, Any]:
            if self._state.comments_for != attendance_id:
                return {}
            return {"comments": self._state.comments + (comment,)}

        return await self._run("add_comment", call, apply, token)
