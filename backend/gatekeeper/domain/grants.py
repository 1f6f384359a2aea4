from __future__ import annotations

import enum
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import ValidationError
from .quota import UNLIMITED, Quota


class SubjectType(str, enum.Enum):
    USER = "user"
    ROLE = "role"


@dataclass(frozen=True)
class GrantSpec:
    """A grant as submitted by a caller, before it is stored on a role."""

    permission_id: uuid.UUID
    quota: Quota = UNLIMITED


@dataclass(frozen=True)
class GrantRecord:
    """A stored grant, resolved against the permission catalog."""

    role_id: uuid.UUID
    permission_id: uuid.UUID
    permission_name: str
    quota: Quota = UNLIMITED


def ensure_grant_set(grants: Sequence[GrantSpec]) -> list[GrantSpec]:
    """Reject grant lists that name the same permission twice."""
    seen: set[uuid.UUID] = set()
    for grant in grants:
        if grant.permission_id in seen:
            raise ValidationError(
                "grants", f"permission {grant.permission_id} listed more than once"
            )
        seen.add(grant.permission_id)
    return list(grants)
