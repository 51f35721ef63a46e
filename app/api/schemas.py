from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Request body stored as a document.

    Declared fields are validated and serialised in camelCase; any other field
    the client sends is kept as-is.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
