from .assignment_ledger import AssignmentLedger
from .bulk import BulkMutator
from .evaluator import AccessEvaluator
from .locks import LocalEntityLock, RedisEntityLock
from .page_registry import PageRegistry
from .permission_catalog import PermissionCatalog
from .role_store import RoleStore
from .supersede import SupersedingQueries

__all__ = [
    "AccessEvaluator",
    "AssignmentLedger",
    "BulkMutator",
    "LocalEntityLock",
    "PageRegistry",
    "PermissionCatalog",
    "RedisEntityLock",
    "RoleStore",
    "SupersedingQueries",
]
