"""
Entity stores: per-collection state shared by every consumer in the
process, plus the CRUD operations that keep it in sync with Supabase.

State is an immutable snapshot replaced on every change. Subscribers
are called synchronously with the new snapshot, so by the time an
operation's coroutine returns every subscriber has seen its effect.

Every operation accepts an optional Caller. With one, remote calls go
out with the caller's token (row-level security applies to them);
without one, the store's default clients are used.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar

from sqlmodel import SQLModel

from app.core.cancellation import CancellationToken
from app.core.errors import OperationCancelled, StoreError, classify
from app.core.session import Caller

logger = logging.getLogger(__name__)

T = TypeVar("T")
EntityT = TypeVar("EntityT", bound=SQLModel)
BindableT = TypeVar("BindableT")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a store operation: a value or a typed error."""

    value: T | None = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


@dataclass(frozen=True)
class StoreState(Generic[EntityT]):
    items: tuple[EntityT, ...] = ()
    selected: EntityT | None = None
    loading: bool = False
    error: StoreError | None = None


Listener = Callable[[Any], None]


def shallow_merge(old: EntityT, new: EntityT) -> EntityT:
    """Old fields overlaid with every field the server returned."""
    merged = {**old.model_dump(), **new.model_dump(exclude_unset=True)}
    return type(old).model_validate(merged)


def bound_to(target: BindableT, caller: Caller | None) -> BindableT:
    """`target` rebound to the caller's PostgREST client, if there is a caller."""
    if caller is None:
        return target
    return target.bind(caller.db)


class EntityStore(Generic[EntityT]):
    """
    Single source of truth for one entity collection.

    Subclasses set `create_schema` / `update_schema` and may override
    any operation. `repo` must provide list / get_by_id / insert /
    update / delete / bind (see TableRepository).
    """

    create_schema: type[SQLModel]
    update_schema: type[SQLModel]
    name: str = "entities"

    def __init__(self, repo, initial_state: StoreState | None = None):
        self.repo = repo
        self._state = initial_state or StoreState()
        self._listeners: list[Listener] = []
        self._in_flight = 0

    # ----- state & subscriptions -----

    @property
    def state(self):
        return self._state

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    def clear_error(self) -> None:
        self._set(error=None)

    async def _run(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        apply: Callable[[T], dict[str, Any]] | None = None,
        token: CancellationToken | None = None,
        on_error: Callable[[], dict[str, Any]] | None = None,
    ) -> Result[T]:
        """
        Run one remote call and reconcile state.

        `loading` stays true while any operation is in flight and is
        settled in `finally` whatever the outcome. `apply` receives the
        call's value and returns the state changes to commit; it runs
        after the await, against the state current at that moment.
        `on_error` adds changes to commit alongside a failure.

        `error` is only touched when the outcome is committed: success
        clears it, failure sets it. A cancelled token commits nothing.
        """
        changes: dict[str, Any] = {}
        self._in_flight += 1
        self._set(loading=True)
        try:
            value = await call()
            if token is not None and token.cancelled:
                logger.debug("%s.%s result dropped: view gone", self.name, operation)
                return Result(error=OperationCancelled(f"{operation} cancelled"))
            changes = {"error": None}
            if apply is not None:
                changes.update(apply(value))
            return Result(value=value)
        except Exception as exc:
            error = classify(exc)
            if token is not None and token.cancelled:
                return Result(error=OperationCancelled(f"{operation} cancelled"))
            logger.warning(
                "%s.%s failed (%s): %s",
                self.name,
                operation,
                error.kind.value,
                error.message,
            )
            changes = {"error": error}
            if on_error is not None:
                changes.update(on_error())
            return Result(error=error)
        finally:
            self._in_flight -= 1
            self._set(loading=self._in_flight > 0, **changes)

    def _validate(self, schema: type[SQLModel], payload: SQLModel | Mapping[str, Any]):
        if isinstance(payload, schema):
            return payload
        if isinstance(payload, SQLModel):
            payload = payload.model_dump(exclude_unset=True)
        return schema.model_validate(payload)

    # ----- CRUD -----

    async def fetch_all(
        self,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[list[EntityT]]:
        """Replace items wholesale with a fresh unfiltered read."""
        return await self._run(
            "fetch_all",
            bound_to(self.repo, caller).list,
            lambda items: {"items": tuple(items)},
            token,
        )

    async def fetch_by_id(
        self,
        entity_id: uuid.UUID,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[EntityT]:
        repo = bound_to(self.repo, caller)
        return await self._run(
            "fetch_by_id",
            lambda: repo.get_by_id(entity_id),
            lambda entity: {"selected": entity},
            token,
        )

    async def create(
        self,
        payload: SQLModel | Mapping[str, Any],
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[EntityT]:
        """
        Validate, insert, and append the canonical row.

        The new item lands at the end of `items` regardless of the
        display order.
        """
        repo = bound_to(self.repo, caller)

        async def call():
            data = self._validate(self.create_schema, payload)
            return await repo.insert(data.model_dump(mode="json"))

        return await self._run(
            "create",
            call,
            lambda entity: {"items": self._state.items + (entity,)},
            token,
        )

    async def update(
        self,
        entity_id: uuid.UUID,
        payload: SQLModel | Mapping[str, Any],
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[EntityT]:
        """Send only the fields the caller set; merge the returned row."""
        repo = bound_to(self.repo, caller)

        async def call():
            data = self._validate(self.update_schema, payload)
            return await repo.update(
                entity_id, data.model_dump(mode="json", exclude_unset=True)
            )

        return await self._run("update", call, self._merge_updated, token)

    def _merge_updated(self, entity: EntityT) -> dict[str, Any]:
        items = tuple(
            shallow_merge(item, entity) if item.id == entity.id else item
            for item in self._state.items
        )
        changes: dict[str, Any] = {"items": items}
        selected = self._state.selected
        if selected is not None and selected.id == entity.id:
            changes["selected"] = shallow_merge(selected, entity)
        return changes

    async def delete(
        self,
        entity_id: uuid.UUID,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[bool]:
        """
        Delete remotely, then drop the id locally.

        The remote call is issued even if the id is not held locally.
        Value is False when no remote row matched (no-op).
        """
        repo = bound_to(self.repo, caller)
        return await self._run(
            "delete",
            lambda: repo.delete(entity_id),
            lambda _removed: self._without(entity_id),
            token,
        )

    def _without(self, entity_id: uuid.UUID) -> dict[str, Any]:
        changes: dict[str, Any] = {
            "items": tuple(item for item in self._state.items if item.id != entity_id)
        }
        if self._state.selected is not None and self._state.selected.id == entity_id:
            changes["selected"] = None
        return changes
