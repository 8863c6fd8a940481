import uuid

from fastapi import APIRouter, Depends, Response, status

from app.core.auth import get_caller
from app.core.cancellation import CancellationToken
from app.core.context import get_attendance_store
from app.core.session import Caller
from app.routers.common import get_view_token, unwrap
from app.schemas.attendance import (
    AttendanceCreate,
    AttendanceRead,
    AttendanceUpdate,
    CommentCreate,
    CommentRead,
)
from app.schemas.store import StoreSnapshot
from app.stores.attendance_store import AttendanceStore

router = APIRouter(
    prefix="/attendances",
    tags=["Attendances"],
)


@router.get("", response_model=StoreSnapshot)
async def list_attendances(
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """
    Refresh and return attendances, newest first, with customer and
    attendant names expanded.
    """
    await store.fetch_all(token=token, caller=caller)
    return StoreSnapshot.from_state(store.state)


@router.get("/{attendance_id}", response_model=AttendanceRead)
async def get_attendance(
    attendance_id: uuid.UUID,
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    return unwrap(await store.fetch_by_id(attendance_id, token=token, caller=caller))


@router.post("", response_model=AttendanceRead, status_code=status.HTTP_201_CREATED)
async def create_attendance(
    payload: AttendanceCreate,
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """
    Open a ticket.

    Defaults: status='open', priority='medium'. Legacy statuses
    ('pending', 'completed') are accepted and normalized.
    """
    return unwrap(await store.create(payload, token=token, caller=caller))


@router.patch("/{attendance_id}", response_model=AttendanceRead)
async def update_attendance(
    attendance_id: uuid.UUID,
    payload: AttendanceUpdate,
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    return unwrap(
        await store.update(attendance_id, payload, token=token, caller=caller)
    )


@router.delete("/{attendance_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attendance(
    attendance_id: uuid.UUID,
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    unwrap(await store.delete(attendance_id, token=token, caller=caller))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------- Comments --------


@router.get("/{attendance_id}/comments", response_model=list[CommentRead])
async def list_comments(
    attendance_id: uuid.UUID,
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """Comment thread, oldest first."""
    return unwrap(await store.fetch_comments(attendance_id, token=token, caller=caller))


@router.post(
    "/{attendance_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    attendance_id: uuid.UUID,
    payload: CommentCreate,
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """Author is the caller identified by the bearer token."""
    return unwrap(
        await store.add_comment(attendance_id, payload, token=token, caller=caller)
    )
