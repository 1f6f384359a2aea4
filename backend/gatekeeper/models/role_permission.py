import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class RolePermission(Base):
    """One grant: a permission held by a role, with its optional quota columns."""

    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint(
            "role_id", "permission_id", name="uq_role_permissions_role_id_permission_id"
        ),
        CheckConstraint(
            "limit_type IN ('none', 'daily', 'weekly', 'monthly')",
            name="ck_role_permissions_limit_type",
        ),
        CheckConstraint(
            "(limit_type = 'none') = (limit_period IS NULL)",
            name="ck_role_permissions_limit_period",
        ),
        CheckConstraint(
            "limit_period IS NULL OR limit_period > 0",
            name="ck_role_permissions_limit_period_positive",
        ),
        CheckConstraint(
            "limit_type = 'none' OR value IS NOT NULL",
            name="ck_role_permissions_window_needs_value",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    role_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value: Mapped[float | None] = mapped_column(Float, nullable=True)
    limit_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default="none", server_default="none"
    )
    limit_period: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
