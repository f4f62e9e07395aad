"""
Static permission catalog and role defaults.

The catalog is the closed set of permission keys the resolver knows about.
Keys are ``<category>.<action>`` or ``<category>.<resource>.<action>``; the
category is always the first segment. Everything here is built once at import
time and exposed read-only.
"""
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from ..schemas.permissions import PermissionCategoryDefinition, PermissionDefinition


def _crud(category: str, resource: Optional[str], label: str, actions: Tuple[str, ...]) -> List[Dict]:
    prefix = f"{category}.{resource}" if resource else category
    verbs = {
        "view": "View",
        "create": "Create",
        "edit": "Edit",
        "delete": "Delete",
        "export": "Export",
        "import": "Import",
        "approve": "Approve",
        "manage": "Manage",
    }
    return [
        {
            "key": f"{prefix}.{action}",
            "label": f"{verbs.get(action, action.title())} {label}",
            "description": f"Can {action} {label.lower()}",
        }
        for action in actions
    ]


_CATEGORIES_DATA: List[Dict] = [
    {
        "name": "dashboard",
        "label": "Dashboard",
        "description": "Main dashboard",
        "permissions": [
            {"key": "dashboard.view", "label": "View Dashboard", "description": "Can view main dashboard"},
        ],
    },
    {
        "name": "system",
        "label": "System",
        "description": "Search, import/export and audit",
        "permissions": [
            {"key": "system.import", "label": "Import Data", "description": "Can import data from files"},
            {"key": "system.export", "label": "Export System Data", "description": "Can export all system data"},
            {"key": "system.backup", "label": "Backup System", "description": "Can backup system data"},
            {"key": "system.audit", "label": "View Audit Logs", "description": "Can view system audit logs"},
            {"key": "system.search", "label": "Search System", "description": "Can use global search functionality"},
        ],
    },
    {
        "name": "projects",
        "label": "Projects",
        "description": "Project list and details",
        "permissions": _crud("projects", None, "Projects", ("view", "create", "edit", "delete", "export")),
    },
    {
        "name": "boq",
        "label": "BOQ",
        "description": "Bill of Quantities activities",
        "permissions": _crud("boq", None, "BOQ Activities", ("view", "create", "edit", "delete", "approve", "export")),
    },
    {
        "name": "kpi",
        "label": "KPI",
        "description": "Planned and actual KPI records",
        "permissions": _crud("kpi", None, "KPI Records", ("view", "create", "edit", "delete", "export")),
    },
    {
        "name": "reports",
        "label": "Reports",
        "description": "Daily, weekly, monthly and financial reports",
        "permissions": [
            {"key": "reports.view", "label": "View Reports", "description": "Can view all reports"},
            {"key": "reports.daily", "label": "Daily Reports", "description": "Can access daily reports"},
            {"key": "reports.weekly", "label": "Weekly Reports", "description": "Can access weekly reports"},
            {"key": "reports.monthly", "label": "Monthly Reports", "description": "Can access monthly reports"},
            {"key": "reports.financial", "label": "Financial Reports", "description": "Can access financial reports"},
            {"key": "reports.export", "label": "Export Reports", "description": "Can export reports"},
            {"key": "reports.print", "label": "Print Reports", "description": "Can print reports"},
        ],
    },
    {
        "name": "users",
        "label": "Users",
        "description": "User accounts and their permissions",
        "permissions": _crud("users", None, "Users", ("view", "create", "edit", "delete"))
        + [{"key": "users.permissions", "label": "Manage Permissions", "description": "Can manage user permissions"}],
    },
    {
        "name": "settings",
        "label": "Settings",
        "description": "Company, divisions, project types, currencies and holidays",
        "permissions": [
            {"key": "settings.view", "label": "View Settings", "description": "Can view settings"},
            {"key": "settings.company", "label": "Manage Company Settings", "description": "Can manage company settings"},
            {"key": "settings.divisions", "label": "Manage Divisions", "description": "Can manage divisions"},
            {"key": "settings.project_types", "label": "Manage Project Types", "description": "Can manage project types"},
            {"key": "settings.currencies", "label": "Manage Currencies", "description": "Can manage currencies"},
            {"key": "settings.activities", "label": "Manage Activities", "description": "Can manage activity templates"},
            {"key": "settings.holidays", "label": "Manage Holidays", "description": "Can manage holidays and workdays"},
        ]
        + _crud("settings", "holidays", "Holidays", ("view", "create", "edit", "delete")),
    },
    {
        "name": "database",
        "label": "Database",
        "description": "Database statistics, backups and maintenance",
        "permissions": [
            {"key": "database.view", "label": "View Database Stats", "description": "Can view database statistics"},
            {"key": "database.backup", "label": "Create Backups", "description": "Can create database backups"},
            {"key": "database.restore", "label": "Restore Database", "description": "Can restore database from backups"},
            {"key": "database.export", "label": "Export Tables", "description": "Can export individual tables"},
            {"key": "database.import", "label": "Import Tables", "description": "Can import data to tables"},
            {"key": "database.clear", "label": "Clear Table Data", "description": "Can clear all data from tables"},
            {"key": "database.manage", "label": "Full Database Management", "description": "Complete database management access"},
        ],
    },
    {
        "name": "cost_control",
        "label": "Cost Control",
        "description": "Manpower, material and equipment cost tracking",
        "permissions": [{"key": "cost_control.view", "label": "View Cost Control", "description": "Can open cost control"}]
        + _crud("cost_control", "manpower", "Manpower", ("view", "create", "edit", "delete", "export"))
        + _crud("cost_control", "material", "Material", ("view", "create", "edit", "delete", "import"))
        + _crud("cost_control", "machine_list", "Machine List", ("view", "create", "edit", "delete")),
    },
    {
        "name": "hr",
        "label": "HR",
        "description": "Attendance, check-in/out and locations",
        "permissions": [
            {"key": "hr.view", "label": "View HR", "description": "Can open HR"},
            {"key": "hr.attendance.check_in_out", "label": "Check In/Out", "description": "Can record attendance"},
            {"key": "hr.attendance.reports.view", "label": "View Attendance Reports", "description": "Can view attendance reports"},
            {"key": "hr.attendance.settings.manage", "label": "Manage Attendance Settings", "description": "Can manage attendance settings"},
        ]
        + _crud("hr", "attendance.locations", "Attendance Locations", ("view", "create", "edit", "delete")),
    },
    {
        "name": "commercial",
        "label": "Commercial",
        "description": "Commercial BOQ items and variations",
        "permissions": _crud("commercial", None, "Commercial Items", ("view", "create", "edit", "delete", "export")),
    },
    {
        "name": "procurement",
        "label": "Procurement",
        "description": "Vendors, LPOs and payment terms",
        "permissions": [{"key": "procurement.view", "label": "View Procurement", "description": "Can open procurement"}]
        + _crud("procurement", "vendor_list", "Vendor List", ("view", "create", "edit", "delete", "import"))
        + _crud("procurement", "lpo", "LPOs", ("view", "create", "edit", "delete", "import")),
    },
]


def _build_catalog() -> Tuple[Tuple[PermissionCategoryDefinition, ...], Tuple[PermissionDefinition, ...]]:
    categories: List[PermissionCategoryDefinition] = []
    permissions: List[PermissionDefinition] = []
    seen = set()
    for cat_index, cat in enumerate(_CATEGORIES_DATA, start=1):
        categories.append(
            PermissionCategoryDefinition(
                name=cat["name"],
                label=cat["label"],
                description=cat["description"],
                sort_index=cat_index,
            )
        )
        for perm_index, perm in enumerate(cat["permissions"], start=1):
            key = perm["key"]
            if key in seen:
                raise ValueError(f"Duplicate permission key in catalog: {key}")
            seen.add(key)
            permissions.append(
                PermissionDefinition(
                    key=key,
                    label=perm["label"],
                    description=perm["description"],
                    category=cat["name"],
                    action=key.rsplit(".", 1)[-1],
                    sort_index=perm_index,
                )
            )
    return tuple(categories), tuple(permissions)


PERMISSION_CATEGORIES, ALL_PERMISSIONS = _build_catalog()
_BY_KEY: Mapping[str, PermissionDefinition] = MappingProxyType({p.key: p for p in ALL_PERMISSIONS})


_MANAGER = (
    "dashboard.view",
    "projects.view", "projects.create", "projects.edit", "projects.delete", "projects.export",
    "boq.view", "boq.create", "boq.edit", "boq.delete", "boq.approve", "boq.export",
    "kpi.view", "kpi.create", "kpi.edit", "kpi.delete", "kpi.export",
    "reports.view", "reports.daily", "reports.weekly", "reports.monthly", "reports.financial",
    "reports.export", "reports.print",
    "settings.view", "settings.company", "settings.divisions", "settings.project_types",
    "settings.currencies", "settings.activities", "settings.holidays",
    "settings.holidays.view", "settings.holidays.create", "settings.holidays.edit", "settings.holidays.delete",
    "system.export", "system.backup", "system.search",
    "database.view", "database.export", "database.backup",
)

_ENGINEER = (
    "dashboard.view",
    "projects.view", "projects.export",
    "boq.view", "boq.create", "boq.edit", "boq.export",
    "kpi.view", "kpi.create", "kpi.edit", "kpi.export",
    "reports.view", "reports.daily", "reports.weekly", "reports.monthly", "reports.export", "reports.print",
    "settings.view",
    "system.search",
    "database.view",
)

_VIEWER = (
    "dashboard.view",
    "projects.view",
    "boq.view",
    "kpi.view",
    "reports.view", "reports.daily", "reports.weekly", "reports.monthly",
    "settings.view",
    "system.search",
    "database.view",
)

DEFAULT_ROLE_PERMISSIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "admin": tuple(p.key for p in ALL_PERMISSIONS),
        "manager": _MANAGER,
        "engineer": _ENGINEER,
        "viewer": _VIEWER,
    }
)

# Granted to the admin role in every permission mode, so an organization
# cannot lock itself out of user management through custom permissions.
ADMIN_SUPERSEDING_PERMISSIONS: FrozenSet[str] = frozenset({"users.delete", "users.permissions"})

ROLE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "admin": "Full system access with all permissions. Can manage users, permissions, system settings, "
        "and database operations including backups, restore, and data management.",
        "manager": "Can manage projects, activities, KPIs and most settings. "
        "Can create backups and export data. Cannot manage users or perform dangerous database operations.",
        "engineer": "Can create and edit activities and KPIs. Can view projects, reports, "
        "and database stats. Can export data. Limited delete permissions.",
        "viewer": "Read-only access. Can view data, reports, and database statistics but cannot create, edit, "
        "delete, or perform any management operations.",
    }
)


def known_roles() -> Tuple[str, ...]:
    return tuple(DEFAULT_ROLE_PERMISSIONS.keys())


def permission_ids() -> FrozenSet[str]:
    return frozenset(_BY_KEY.keys())


def get_permission(key: str) -> Optional[PermissionDefinition]:
    return _BY_KEY.get(key)


def category_of(key: str) -> str:
    return key.split(".", 1)[0]


def get_permissions_by_category(category: str) -> List[PermissionDefinition]:
    return [p for p in ALL_PERMISSIONS if p.category == category]


def get_role_defaults(role: Optional[str]) -> Tuple[str, ...]:
    """Default permissions for a role; unknown roles get the most restrictive set."""
    if role in DEFAULT_ROLE_PERMISSIONS:
        return DEFAULT_ROLE_PERMISSIONS[role]
    return DEFAULT_ROLE_PERMISSIONS["viewer"]


def get_role_description(role: str) -> str:
    return ROLE_DESCRIPTIONS.get(role, "Unknown role")


def get_permissions_count(role: str) -> int:
    return len(DEFAULT_ROLE_PERMISSIONS.get(role, ()))
