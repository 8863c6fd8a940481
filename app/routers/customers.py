import uuid

from fastapi import APIRouter, Depends, Response, status

from app.core.auth import get_caller
from app.core.cancellation import CancellationToken
from app.core.context import get_customer_store
from app.core.session import Caller
from app.routers.common import get_view_token, unwrap
from app.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate
from app.schemas.store import StoreSnapshot
from app.stores.customer_store import CustomerStore

router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
)


@router.get("", response_model=StoreSnapshot)
async def list_customers(
    store: CustomerStore = Depends(get_customer_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """
    Refresh and return the customer list (sorted by name).

    A failed refresh still answers 200 with the previous list and the
    error in `error`, so the client can show a banner over stale data.
    """
    await store.fetch_all(token=token, caller=caller)
    return StoreSnapshot.from_state(store.state)


@router.get("/{customer_id}", response_model=CustomerRead)
async def get_customer(
    customer_id: uuid.UUID,
    store: CustomerStore = Depends(get_customer_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    return unwrap(await store.fetch_by_id(customer_id, token=token, caller=caller))


@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreate,
    store: CustomerStore = Depends(get_customer_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    return unwrap(await store.create(payload, token=token, caller=caller))


@router.patch("/{customer_id}", response_model=CustomerRead)
async def update_customer(
    customer_id: uuid.UUID,
    payload: CustomerUpdate,
    store: CustomerStore = Depends(get_customer_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """Partial update; only fields present in the body are sent."""
    return unwrap(await store.update(customer_id, payload, token=token, caller=caller))


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: uuid.UUID,
    store: CustomerStore = Depends(get_customer_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    unwrap(await store.delete(customer_id, token=token, caller=caller))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
