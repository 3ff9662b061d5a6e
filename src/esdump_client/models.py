"""
Pydantic data models for the esdump store client.

Documents carry their payload as an opaque ordered mapping; nothing here
validates or reshapes `_source`.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Document(BaseModel):
    """One transferable document: index, id and source fields.

    Serialized in the same shape the cluster returns hits in, so a backup
    line looks like ``{"_index": ..., "_id": ..., "_source": {...}}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    index: str = Field(alias="_index")
    type: Optional[str] = Field(default=None, alias="_type")
    id: Optional[str] = Field(default=None, alias="_id")
    source: dict[str, Any] = Field(default_factory=dict, alias="_source")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape (aliases, no empty optionals)."""
        return self.model_dump(by_alias=True, exclude_none=True)
