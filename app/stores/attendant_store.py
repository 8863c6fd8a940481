import uuid
from dataclasses import dataclass
from typing import Any, Mapping

from sqlmodel import SQLModel

from app.core.cancellation import CancellationToken
from app.core.session import Caller
from app.repositories.user_repo import UserRepository
from app.schemas.user import AttendantCreate, AttendantRead, AttendantUpdate
from app.services.attendant_service import AttendantService, RegistrationOutcome
from app.stores.base import EntityStore, Result, StoreState, bound_to


@dataclass(frozen=True)
class AttendantState(StoreState[AttendantRead]):
    last_registration: RegistrationOutcome | None = None


class AttendantStore(EntityStore[AttendantRead]):
    """
    Staff profiles (newest first).

    Writes go through AttendantService because every create/delete
    touches both Supabase Auth and the users table.
    """

    create_schema = AttendantCreate
    update_schema = AttendantUpdate
    name = "attendants"

    def __init__(self, repo: UserRepository, service: AttendantService):
        super().__init__(repo, AttendantState())
        self.service = service

    async def fetch_assignable(
        self,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[list[AttendantRead]]:
        """Attendants that tickets can be assigned to, by name."""
        repo = bound_to(self.repo, caller)
        return await self._run(
            "fetch_assignable",
            lambda: repo.list_by_role("attendant"),
            None,
            token,
        )

    async def create(
        self,
        payload: SQLModel | Mapping[str, Any],
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[AttendantRead]:
        """
        Run the registration saga.

        Its outcome lands in `last_registration` together with the
        result, so a cancelled token leaves both untouched.
        """
        service = bound_to(self.service, caller)
        outcome: RegistrationOutcome | None = None

        async def call():
            nonlocal outcome
            data = self._validate(AttendantCreate, payload)
            outcome = await service.register(data)
            if outcome.error is not None:
                raise outcome.error
            return outcome.attendant

        def recorded() -> dict[str, Any]:
            if outcome is None:
                return {}
            return {"last_registration": outcome}

        return await self._run(
            "create",
            call,
            lambda attendant: {
                "items": self._state.items + (attendant,),
                **recorded(),
            },
            token,
            on_error=recorded,
        )

    async def update(
        self,
        entity_id: uuid.UUID,
        payload: SQLModel | Mapping[str, Any],
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[AttendantRead]:
        service = bound_to(self.service, caller)
        caller_id = caller.id if caller is not None else None

        async def call():
            data = self._validate(AttendantUpdate, payload)
            return await service.update(entity_id, data, caller_id=caller_id)

        return await self._run("update", call, self._merge_updated, token)

    async def delete(
        self,
        entity_id: uuid.UUID,
        token: CancellationToken | None = None,
        caller: Caller | None = None,
    ) -> Result[bool]:
        service = bound_to(self.service, caller)
        return await self._run(
            "delete",
            lambda: service.remove(entity_id),
            lambda _removed: self._without(entity_id),
            token,
        )
