import copy
import uuid
from typing import Any, Generic, TypeVar

from sqlmodel import SQLModel
from supabase import AsyncClient

from app.core.errors import NotFoundError

ModelT = TypeVar("ModelT", bound=SQLModel)


class TableRepository(Generic[ModelT]):
    """
    Data access for one PostgREST table.

    Responsibilities:
      - Pure remote operations (select / insert / update / delete)
      - Parse rows into read models
      - No store state, no HTTP, no business logic

    Library errors (postgrest APIError, httpx errors) propagate
    unchanged; stores classify them.
    """

    table: str
    read_model: type[ModelT]
    # Column projection, including embedded resources
    columns: str = "*"
    order_by: str | None = None
    descending: bool = False
    entity_label: str = "Row"

    def __init__(self, client: AsyncClient):
        self.client = client

    def bind(self, client) -> "TableRepository[ModelT]":
        """Same repository, sending requests through `client`."""
        bound = copy.copy(self)
        bound.client = client
        return bound

    def _query(self):
        return self.client.table(self.table)

    def _parse(self, row: dict[str, Any]) -> ModelT:
        return self.read_model.model_validate(row)

    # ----- Basic CRUD -----

    async def list(self) -> list[ModelT]:
        """Unfiltered read in the repository's fixed order."""
        query = self._query().select(self.columns)
        if self.order_by:
            query = query.order(self.order_by, desc=self.descending)
        response = await query.execute()
        return [self._parse(row) for row in response.data]

    async def get_by_id(self, entity_id: uuid.UUID) -> ModelT:
        """
        Return a row by primary key.

        Raises:
            NotFoundError: if zero rows match.
        """
        response = await (
            self._query()
            .select(self.columns)
            .eq("id", str(entity_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            raise NotFoundError(f"{self.entity_label} {entity_id} not found")
        return self._parse(response.data[0])

    async def insert(self, data: dict[str, Any]) -> ModelT:
        """Insert one row and return the server's canonical representation."""
        response = await self._query().insert(data).execute()
        return self._parse(response.data[0])

    async def update(self, entity_id: uuid.UUID, data: dict[str, Any]) -> ModelT:
        """
        Partial update keyed by id.

        Raises:
            NotFoundError: if no row matched.
        """
        response = await (
            self._query().update(data).eq("id", str(entity_id)).execute()
        )
        if not response.data:
            raise NotFoundError(f"{self.entity_label} {entity_id} not found")
        return self._parse(response.data[0])

    async def delete(self, entity_id: uuid.UUID) -> bool:
        """Delete by id. Returns False when no row matched."""
        response = await self._query().delete().eq("id", str(entity_id)).execute()
        return bool(response.data)
