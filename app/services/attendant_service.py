import copy
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from app.core.errors import (
    ConflictError,
    InconsistentStateError,
    NotFoundError,
    StoreError,
    classify,
)
from app.repositories.identity_repo import IdentityRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import AttendantCreate, AttendantRead, AttendantUpdate

logger = logging.getLogger(__name__)


class CompensationStatus(str, Enum):
    NOT_NEEDED = "not_needed"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RegistrationOutcome:
    """
    Record of one attendant registration saga.

    identity_id is set once the Auth identity exists, even if the
    profile insert failed afterwards.
    """

    email: str
    identity_id: uuid.UUID | None = None
    attendant: AttendantRead | None = None
    compensation: CompensationStatus = CompensationStatus.NOT_NEEDED
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AttendantService:
    """
    Business logic for staff members.

    Responsibilities:
      - registration saga: identity first, then profile row, with the
        identity deleted again if the profile insert fails
      - two-step removal: profile row, then identity
      - password changes routed to Supabase Auth, never stored
    """

    def __init__(
        self,
        users: UserRepository,
        identities: IdentityRepository,
        current_user_id: Callable[[], uuid.UUID | None] = lambda: None,
    ):
        self.users = users
        self.identities = identities
        self.current_user_id = current_user_id

    def bind(self, client) -> "AttendantService":
        """Profile rows through `client`; identities stay on the admin client."""
        bound = copy.copy(self)
        bound.users = self.users.bind(client)
        return bound

    # ----- Registration saga -----

    async def register(self, payload: AttendantCreate) -> RegistrationOutcome:
        """
        Steps:
          1. Reject emails that already have a profile (ConflictError).
          2. Register the identity (ConflictError if Auth knows the email).
          3. Insert the profile row with the identity's id.
          4. On step 3 failure, delete the identity and record whether
             that compensation worked.

        Never raises for remote failures; inspect `outcome.error`.
        """
        email = str(payload.email)

        try:
            if await self.users.get_by_email(email) is not None:
                raise ConflictError(f"A user with email {email} already exists")
            identity_id = await self.identities.register(
                email,
                payload.password,
                {"name": payload.name, "role": payload.role},
            )
        except Exception as exc:
            return RegistrationOutcome(email=email, error=classify(exc))

        try:
            profile = await self.users.insert(
                {"id": str(identity_id), **payload.profile_fields()}
            )
        except Exception as exc:
            profile_error = classify(exc)
            return await self._compensate(email, identity_id, profile_error)

        logger.info("Registered attendant %s (%s)", email, identity_id)
        return RegistrationOutcome(
            email=email, identity_id=identity_id, attendant=profile
        )

    async def _compensate(
        self,
        email: str,
        identity_id: uuid.UUID,
        cause: StoreError,
    ) -> RegistrationOutcome:
        logger.warning(
            "Profile insert for %s failed (%s); deleting identity %s",
            email,
            cause.message,
            identity_id,
        )
        try:
            await self.identities.delete(identity_id)
        except Exception as exc:
            failure = classify(exc)
            logger.critical(
                "Compensation FAILED: identity %s (%s) is orphaned: %s",
                identity_id,
                email,
                failure.message,
            )
            return RegistrationOutcome(
                email=email,
                identity_id=identity_id,
                compensation=CompensationStatus.FAILED,
                error=InconsistentStateError(
                    f"Identity {identity_id} for {email} was created but its "
                    f"profile was not, and deleting it failed: {failure.message}"
                ),
            )

        return RegistrationOutcome(
            email=email,
            identity_id=identity_id,
            compensation=CompensationStatus.SUCCEEDED,
            error=cause,
        )

    # ----- Profile edits -----

    async def update(
        self,
        user_id: uuid.UUID,
        payload: AttendantUpdate,
        caller_id: uuid.UUID | None = None,
    ) -> AttendantRead:
        """
        Partial profile update; a password, if given, goes to Auth first.

        With a caller_id (HTTP) the password always goes through the
        admin API. Without one, the process's signed-in user changing
        its own password uses its session.
        """
        if payload.password:
            own_session = caller_id is None and user_id == self.current_user_id()
            await self.identities.set_password(
                user_id, payload.password, own_session=own_session
            )

        fields = payload.profile_fields()
        if not fields:
            return await self.users.get_by_id(user_id)
        return await self.users.update(user_id, fields)

    # ----- Removal -----

    async def remove(self, user_id: uuid.UUID) -> bool:
        """
        Delete the profile row, then the identity.

        Returns False if neither existed. Raises InconsistentStateError
        when the profile is gone but the identity could not be deleted.
        """
        profile_removed = await self.users.delete(user_id)
        try:
            await self.identities.delete(user_id)
        except Exception as exc:
            failure = classify(exc)
            if isinstance(failure, NotFoundError):
                return profile_removed
            if not profile_removed:
                raise failure
            logger.critical(
                "Profile %s deleted but identity removal failed: %s",
                user_id,
                failure.message,
            )
            raise InconsistentStateError(
                f"Profile {user_id} was deleted but its identity remains: "
                f"{failure.message}"
            ) from exc
        return True
