from .base import Base
from .permission import Permission
from .role import Role
from .role_permission import RolePermission
from .user_role import UserRole
from .page import Page
from .page_grant import PageGrant

__all__ = [
    "Base",
    "Permission",
    "Role",
    "RolePermission",
    "UserRole",
    "Page",
    "PageGrant",
]
