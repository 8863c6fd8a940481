from typing import AsyncIterator, TypeVar

from fastapi import HTTPException, status

from app.core.cancellation import CancellationToken, view_scope
from app.core.errors import ErrorKind, StoreError
from app.stores.base import Result

T = TypeVar("T")

HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    # Unprocessable Content (the old constant name is deprecated)
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.INCONSISTENT: status.HTTP_500_INTERNAL_SERVER_ERROR,
    # nginx's "client closed request"
    ErrorKind.CANCELLED: 499,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_error(error: StoreError) -> HTTPException:
    return HTTPException(
        status_code=HTTP_STATUS_BY_KIND.get(error.kind, 500),
        detail=error.to_dict(),
    )


def unwrap(result: Result[T]) -> T:
    """Return the value or raise the matching HTTPException."""
    if result.error is not None:
        raise http_error(result.error)
    return result.value


async def get_view_token() -> AsyncIterator[CancellationToken]:
    """
    One cancellation token per request; cancelled when the request's
    dependencies are torn down.
    """
    async with view_scope() as token:
        yield token
