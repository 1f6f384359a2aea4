"""
Seed data for the access core: default permissions, roles and the page tree.

Safe to run repeatedly: existing permissions, roles and pages are left as
they are and only missing ones are created. The page sets of the default
roles in ROLE_PAGES are reset on every run.

Usage:
    python -m scripts.seed_access_core
"""
import asyncio
import logging
import os
import sys

# Add parent directory to path to import gatekeeper modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gatekeeper.config import get_settings  # noqa: E402
from gatekeeper.database import create_engine, create_session_factory  # noqa: E402
from gatekeeper.dependencies import AccessCore, access_core_scope, build_entity_lock  # noqa: E402
from gatekeeper.domain.grants import GrantSpec  # noqa: E402
from gatekeeper.domain.quota import UNLIMITED, Capped, LimitType, Window  # noqa: E402

logger = logging.getLogger("gatekeeper.seed")

DEFAULT_PERMISSIONS = [
    {"name": "get players", "description": "Search and view player accounts", "requires_value": False},
    {"name": "get financial metrics", "description": "View financial reports", "requires_value": False},
    {"name": "view balance", "description": "View a player's wallet balance", "requires_value": False},
    {"name": "manual funding", "description": "Credit or debit a player's wallet by hand", "requires_value": True},
    {"name": "refund", "description": "Refund a deposit or bet", "requires_value": True},
    {"name": "suspend players", "description": "Suspend and reinstate player accounts", "requires_value": False},
    {"name": "manage kyc", "description": "Review KYC documents and risk flags", "requires_value": False},
]

DEFAULT_ROLES = [
    {"name": "super", "description": "Unrestricted access", "is_superuser": True},
    {"name": "admin", "description": "Operator administrators", "is_superuser": True},
    {"name": "support", "description": "Player support agents", "is_superuser": False},
    {"name": "finance", "description": "Finance team", "is_superuser": False},
]

DAILY = Window(LimitType.DAILY, 1)

# Superuser roles need no grants.
ROLE_GRANTS = {
    "support": {
        "get players": UNLIMITED,
        "view balance": UNLIMITED,
        "refund": Capped(500, DAILY),
        "manual funding": Capped(100, DAILY),
    },
    "finance": {
        "get players": UNLIMITED,
        "get financial metrics": UNLIMITED,
        "view balance": UNLIMITED,
        "refund": Capped(10000, Window(LimitType.MONTHLY, 1)),
        "manual funding": UNLIMITED,
    },
}

# (path, label, children). A child path never repeats its parent's path.
PAGE_TREE = [
    ("/dashboard", "Dashboard", []),
    ("/admin/brand-management", "Brands", []),
    ("/admin/game-management", "Games", []),
    ("/players", "Sessions", []),
    (
        "/transactions",
        "Transactions",
        [
            ("/transactions/gaming", "Gaming transactions"),
            ("/transactions/details", "Transaction details"),
            ("/transactions/withdrawals", "Withdrawals"),
            ("/transactions/deposits", "Deposits"),
        ],
    ),
    ("/welcome-bonus", "Bonusing", []),
    (
        "/reports",
        "Reports",
        [
            ("/reports/daily", "Daily report"),
            ("/reports/game-performance", "Game reports"),
            ("/reports/player-metrics", "Player reports"),
            ("/reports/provider-performance", "Provider reports"),
            ("/reports/brand", "Brand reports"),
        ],
    ),
    ("/kyc-risk", "Compliance & risk", [("/admin/alerts", "Notification rules")]),
    ("/access-control", "Access control", [("/settings", "Site settings")]),
]

ROLE_PAGES = {
    "support": ["/dashboard", "/players", "/transactions", "/transactions/gaming", "/transactions/details"],
    "finance": ["/dashboard", "/reports", "/reports/daily", "/transactions", "/transactions/deposits", "/transactions/withdrawals"],
}


async def _seed_permissions(core: AccessCore) -> dict[str, object]:
    permission_map = {}
    for perm_data in DEFAULT_PERMISSIONS:
        existing = await core.catalog.permissions.get_by_name(perm_data["name"])
        if existing:
            logger.info("seed_permission_exists name=%s", perm_data["name"])
            permission_map[perm_data["name"]] = existing.id
            continue
        permission = await core.catalog.create(**perm_data)
        permission_map[perm_data["name"]] = permission.id
    return permission_map


async def _seed_roles(core: AccessCore, permission_map: dict[str, object]) -> dict[str, object]:
    role_map = {}
    for role_data in DEFAULT_ROLES:
        existing = await core.roles.roles.get_by_name(role_data["name"])
        if existing:
            logger.info("seed_role_exists name=%s", role_data["name"])
            role_map[role_data["name"]] = existing.id
            continue
        grants = [
            GrantSpec(permission_map[name], quota)
            for name, quota in ROLE_GRANTS.get(role_data["name"], {}).items()
        ]
        role = await core.roles.create(
            role_data["name"],
            grants,
            description=role_data["description"],
            is_superuser=role_data["is_superuser"],
        )
        role_map[role_data["name"]] = role.id
    return role_map


async def _seed_pages(core: AccessCore) -> dict[str, object]:
    page_map = {}

    async def ensure(path: str, label: str, parent_id=None):
        existing = await core.pages.pages.get_page_by_path(path)
        if existing:
            page_map[path] = existing.id
            return existing.id
        page = await core.pages.create_page(path, label, parent_id)
        page_map[path] = page.id
        return page.id

    for path, label, children in PAGE_TREE:
        parent_id = await ensure(path, label)
        for child_path, child_label in children:
            await ensure(child_path, child_label, parent_id)
    return page_map


async def seed_access_core() -> None:
    """Seed the database with default permissions, roles and pages."""
    settings = get_settings()
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    locks = build_entity_lock(settings)

    try:
        async with access_core_scope(session_factory, settings, locks=locks) as core:
            permission_map = await _seed_permissions(core)
            role_map = await _seed_roles(core, permission_map)
            page_map = await _seed_pages(core)
            for role_name, paths in ROLE_PAGES.items():
                await core.pages.grant_pages(
                    "role", role_map[role_name], [page_map[path] for path in paths]
                )
    finally:
        await engine.dispose()

    logger.info(
        "seed_done permissions=%d roles=%d pages=%d",
        len(permission_map),
        len(role_map),
        len(page_map),
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(seed_access_core())
