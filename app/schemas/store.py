from typing import Any

from sqlmodel import SQLModel

from app.stores.base import StoreState


class StoreSnapshot(SQLModel):
    """
    JSON rendering of a store's state for HTTP consumers.

    `error` is the last failure ({"kind", "message"}), or None.
    """

    items: list[Any]
    selected: Any | None = None
    loading: bool
    error: dict[str, Any] | None = None

    @classmethod
    def from_state(cls, state: StoreState) -> "StoreSnapshot":
        return cls(
            items=[item.model_dump(mode="json") for item in state.items],
            selected=(
                state.selected.model_dump(mode="json")
                if state.selected is not None
                else None
            ),
            loading=state.loading,
            error=state.error.to_dict() if state.error is not None else None,
        )
