import uuid
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from ..errors import AppError, PartialFailureError

T = TypeVar("T")


class Paginated(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    per_page: int


class BulkFailure(BaseModel):
    id: uuid.UUID
    error: str
    message: str

    @classmethod
    def from_error(cls, item_id: uuid.UUID, exc: AppError) -> "BulkFailure":
        return cls(id=item_id, error=exc.code, message=exc.message)


class BulkResult(BaseModel):
    succeeded: list[uuid.UUID] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.succeeded)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        total = len(self.succeeded) + len(self.failed)
        return f"{len(self.succeeded)} of {total} succeeded"

    def raise_for_failures(self) -> None:
        if self.failed:
            raise PartialFailureError(
                self.succeeded,
                [failure.model_dump(mode="json") for failure in self.failed],
            )
