from contextlib import asynccontextmanager
from typing import AsyncIterator


class CancellationToken:
    """
    Marks whether the consumer that started an operation still cares
    about its result.

    Stores check the token after the remote call returns; a cancelled
    token means the result is dropped instead of being written into
    shared state. The remote request itself is not aborted.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@asynccontextmanager
async def view_scope() -> AsyncIterator[CancellationToken]:
    """
    Issue a token tied to a block's lifetime; cancelled on exit.

    Usage:

        async with view_scope() as token:
            await store.fetch_all(token=token)
    """
    token = CancellationToken()
    try:
        yield token
    finally:
        token.cancel()
