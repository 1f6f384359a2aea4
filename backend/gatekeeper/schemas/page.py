import uuid

from pydantic import BaseModel, ConfigDict


class PageResponse(BaseModel):
    id: uuid.UUID
    path: str
    label: str
    parent_id: uuid.UUID | None = None

    model_config = ConfigDict(from_attributes=True)
