import uuid

from fastapi import APIRouter, Depends, Response, status

from app.core.auth import get_caller, require_admin
from app.core.cancellation import CancellationToken
from app.core.context import get_attendant_store
from app.core.session import Caller
from app.routers.common import get_view_token, unwrap
from app.schemas.store import StoreSnapshot
from app.schemas.user import AttendantCreate, AttendantRead, AttendantUpdate
from app.stores.attendant_store import AttendantStore

router = APIRouter(prefix="/attendants", tags=["Attendants"])


@router.get(
    "/assignable",
    response_model=list[AttendantRead],
)
async def list_assignable(
    store: AttendantStore = Depends(get_attendant_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """Attendants a ticket can be assigned to (role='attendant'), by name."""
    return unwrap(await store.fetch_assignable(token=token, caller=caller))


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=StoreSnapshot,
    dependencies=[Depends(require_admin)],
)
async def list_attendants(
    store: AttendantStore = Depends(get_attendant_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """All staff profiles, newest first (admin only)."""
    await store.fetch_all(token=token, caller=caller)
    return StoreSnapshot.from_state(store.state)


@router.get(
    "/{attendant_id}",
    response_model=AttendantRead,
    dependencies=[Depends(require_admin)],
)
async def get_attendant(
    attendant_id: uuid.UUID,
    store: AttendantStore = Depends(get_attendant_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    return unwrap(await store.fetch_by_id(attendant_id, token=token, caller=caller))


@router.post(
    "",
    response_model=AttendantRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_attendant(
    payload: AttendantCreate,
    store: AttendantStore = Depends(get_attendant_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """
    Register identity + profile.

    409 if the email is already registered. 500 with kind
    'inconsistent' if the identity could not be cleaned up after a
    failed profile insert.
    """
    return unwrap(await store.create(payload, token=token, caller=caller))


@router.patch(
    "/{attendant_id}",
    response_model=AttendantRead,
    dependencies=[Depends(require_admin)],
)
async def update_attendant(
    attendant_id: uuid.UUID,
    payload: AttendantUpdate,
    store: AttendantStore = Depends(get_attendant_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """Name / role / phone, and optionally a new password. Email is immutable."""
    return unwrap(await store.update(attendant_id, payload, token=token, caller=caller))


@router.delete(
    "/{attendant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_attendant(
    attendant_id: uuid.UUID,
    store: AttendantStore = Depends(get_attendant_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    unwrap(await store.delete(attendant_id, token=token, caller=caller))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
