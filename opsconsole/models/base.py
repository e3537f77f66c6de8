"""Base model for payloads exchanged with the backend collaborator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BackendModel(BaseModel):
    """Accepts the backend's camelCase keys and tolerates unknown ones.

    Instances are frozen: state holding them is replaced, never edited.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
