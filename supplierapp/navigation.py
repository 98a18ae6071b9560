"""Role-based navigation: one static link table filtered by role membership."""
from dataclasses import dataclass
from typing import FrozenSet, List

from .models import Role

SUPPLIER_ONLY = frozenset({Role.SUPPLIER})
ADMIN_ONLY = frozenset({Role.ADMIN})
EVERYONE = frozenset(Role)


@dataclass(frozen=True)
class NavLink:
    key: str
    url_name: str
    roles: FrozenSet[Role]


NAV_LINKS = (
    NavLink("dashboard", "dashboard", EVERYONE),
    NavLink("analytics", "analytics", EVERYONE),
    NavLink("contracts", "contract_list", EVERYONE),
    NavLink("new_contract", "contract_create", SUPPLIER_ONLY),
    NavLink("manage_issues", "admin_issues", ADMIN_ONLY),
    NavLink("profile", "profile", EVERYONE),
)


def links_for(role) -> List[NavLink]:
    role = Role(role)
    return [link for link in NAV_LINKS if role in link.roles]
