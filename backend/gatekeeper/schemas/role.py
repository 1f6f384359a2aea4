import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..domain.grants import GrantRecord, GrantSpec
from ..domain.quota import LimitType, quota_from_fields, quota_to_fields


class GrantIn(BaseModel):
    """Wire shape of one grant. Converted to the quota sum type by to_spec()."""

    permission_id: uuid.UUID
    value: float | None = None
    limit_type: LimitType | None = None
    limit_period: int | None = None

    def to_spec(self) -> GrantSpec:
        return GrantSpec(
            permission_id=self.permission_id,
            quota=quota_from_fields(self.value, self.limit_type, self.limit_period),
        )


class GrantOut(BaseModel):
    permission_id: uuid.UUID
    permission_name: str
    value: float | None
    limit_type: LimitType
    limit_period: int | None
    window: str | None

    @classmethod
    def from_record(cls, record: GrantRecord) -> "GrantOut":
        value, limit_type, limit_period = quota_to_fields(record.quota)
        return cls(
            permission_id=record.permission_id,
            permission_name=record.permission_name,
            value=value,
            limit_type=limit_type,
            limit_period=limit_period,
            window=record.quota.as_dict()["window"],
        )


class RoleSummary(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    is_superuser: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleResponse(RoleSummary):
    permissions_with_value: list[GrantOut] = Field(default_factory=list)
