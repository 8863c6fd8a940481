import uuid
from typing import Any

from app.repositories.base import TableRepository
from app.schemas.attendance import AttendanceRead, CommentRead

ATTENDANCE_COLUMNS = (
    "*, "
    "customer:customers(id, name, email), "
    "attendant:users(id, name, email, role)"
)


class AttendanceRepository(TableRepository[AttendanceRead]):
    """
    attendances table, newest first, with customer and attendant
    expanded on every read.
    """

    table = "attendances"
    read_model = AttendanceRead
    columns = ATTENDANCE_COLUMNS
    order_by = "created_at"
    descending = True
    entity_label = "Attendance"

    async def insert(self, data: dict[str, Any]) -> AttendanceRead:
        # Insert responses carry no embedded resources; re-read the row
        # so the caller gets customer/attendant names too.
        row = await super().insert(data)
        return await self.get_by_id(row.id)

    async def update(
        self, entity_id: uuid.UUID, data: dict[str, Any]
    ) -> AttendanceRead:
        row = await super().update(entity_id, data)
        return await self.get_by_id(row.id)

    async def list_recent(self, limit: int = 5) -> list[AttendanceRead]:
        """Latest N attendances by created_at (any status)."""
        response = await (
            self._query()
            .select(self.columns)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [self._parse(row) for row in response.data]


class CommentRepository(TableRepository[CommentRead]):
    """attendance_comments table; comments are insert-only."""

    table = "attendance_comments"
    read_model = CommentRead
    columns = "*, author:users(id, name, email, role)"
    order_by = "created_at"
    entity_label = "Comment"

    async def list_for_attendance(self, attendance_id: uuid.UUID) -> list[CommentRead]:
        """Comments of one attendance, oldest first."""
        response = await (
            self._query()
            .select(self.columns)
            .eq("attendance_id", str(attendance_id))
            .order("created_at", desc=False)
            .execute()
        )
        return [self._parse(row) for row in response.data]

    async def insert(self, data: dict[str, Any]) -> CommentRead:
        row = await super().insert(data)
        return await self.get_by_id(row.id)
