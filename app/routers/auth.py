from fastapi import APIRouter, Depends, Response, status

from app.core.auth import get_caller
from app.core.context import get_auth_service
from app.core.errors import NotFoundError, StoreError
from app.core.session import Caller
from app.routers.common import http_error
from app.schemas.auth import CurrentUser, LoginRequest, RegisterRequest, SessionRead
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=SessionRead)
async def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Exchange credentials for tokens.

    The client sends the access token back as a bearer; no session is
    kept server-side.
    """
    try:
        return await service.sign_in(payload)
    except StoreError as exc:
        raise http_error(exc)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Self sign-up.

    409 when the email is already registered.
    """
    try:
        await service.register(payload)
    except StoreError as exc:
        raise http_error(exc)
    return {"status": "registered"}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    caller: Caller = Depends(get_caller),
    service: AuthService = Depends(get_auth_service),
):
    """End the caller's own session; other callers stay signed in."""
    try:
        await service.sign_out(caller)
    except StoreError as exc:
        raise http_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=CurrentUser)
async def read_me(
    caller: Caller = Depends(get_caller),
    service: AuthService = Depends(get_auth_service),
):
    """The user the bearer token belongs to, with profile fields."""
    try:
        user = await service.current_user(caller)
    except StoreError as exc:
        raise http_error(exc)
    if user is None:
        raise http_error(NotFoundError("No profile for this user"))
    return user
