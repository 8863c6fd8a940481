from app.repositories.base import TableRepository
from app.schemas.user import AttendantRead


class UserRepository(TableRepository[AttendantRead]):
    """
    Data access for staff profiles (public.users).

    Identity records live in Supabase Auth; see IdentityRepository.
    """

    table = "users"
    read_model = AttendantRead
    order_by = "created_at"
    descending = True
    entity_label = "User"

    async def get_by_email(self, email: str) -> AttendantRead | None:
        """Return a profile by unique email, or None if not found."""
        response = await (
            self._query().select(self.columns).eq("email", email).limit(1).execute()
        )
        if not response.data:
            return None
        return self._parse(response.data[0])

    async def list_by_role(self, role: str) -> list[AttendantRead]:
        """Profiles with the given role, alphabetically."""
        response = await (
            self._query()
            .select(self.columns)
            .eq("role", role)
            .order("name")
            .execute()
        )
        return [self._parse(row) for row in response.data]
