"""
Permission resolution service.

A user's effective permission set is a pure function of three inputs: the
role, the ``custom_permissions_enabled`` flag and the stored ``permissions``
list.

- role_default:    no stored permissions -> role defaults
- role_plus_extra: custom disabled, stored permissions -> role defaults + stored
- custom:          custom enabled, stored permissions -> stored only

The admin role additionally always holds ADMIN_SUPERSEDING_PERMISSIONS.
Every check here is deny-by-default: missing users, malformed input and empty
criteria resolve to no access.
"""
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from ..config import settings
from ..schemas.permissions import (
    AccessExpression,
    PermissionDefinition,
    PermissionExplanation,
    PermissionMode,
    PermissionValidationResult,
    PermissionsReport,
    RolePermissionComparison,
    UserPermissionRecord,
)
from .permission_catalog import (
    ADMIN_SUPERSEDING_PERMISSIONS,
    ALL_PERMISSIONS,
    category_of,
    get_role_defaults,
    permission_ids,
)


logger = structlog.get_logger(__name__)

UserLike = Union[UserPermissionRecord, Mapping[str, Any], None]
ExpressionLike = Union[AccessExpression, Mapping[str, Any], str, None]

# Categories checked for write-without-view combinations
_CRUD_CATEGORIES = ("projects", "boq", "kpi", "reports", "users", "settings", "database")
_MAX_CUSTOM_PERMISSIONS = 40


def coerce_user(raw: UserLike) -> UserPermissionRecord:
    """
    Normalize a stored user row into a UserPermissionRecord.

    Rows that fail validation are replaced by an anonymous viewer so that a
    bad record can never widen access.
    """
    if isinstance(raw, UserPermissionRecord):
        return raw
    if raw is None:
        return UserPermissionRecord(role=settings.default_role)
    try:
        return UserPermissionRecord.model_validate(dict(raw))
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning("user_record_invalid", error=str(e))
        return UserPermissionRecord(role=settings.default_role)


def is_admin(user: UserLike) -> bool:
    if user is None:
        return False
    return coerce_user(user).role == settings.admin_role


def has_role(user: UserLike, role: str) -> bool:
    if user is None or not role:
        return False
    return coerce_user(user).role == role


def classify_permission_mode(user: UserLike) -> PermissionMode:
    record = coerce_user(user)
    if not record.permissions:
        return PermissionMode.role_default
    if record.custom_permissions_enabled:
        return PermissionMode.custom
    return PermissionMode.role_plus_extra


def resolve_effective_permissions(user: UserLike) -> FrozenSet[str]:
    """
    Compute the effective permission set for a user.

    Args:
        user: UserPermissionRecord or a raw user mapping

    Returns:
        Frozen set of permission keys; never raises
    """
    record = coerce_user(user)
    mode = classify_permission_mode(record)
    defaults = get_role_defaults(record.role)

    if mode == PermissionMode.custom:
        effective = set(record.permissions)
    elif mode == PermissionMode.role_plus_extra:
        effective = set(defaults) | set(record.permissions)
    else:
        effective = set(defaults)

    if record.role == settings.admin_role:
        effective |= ADMIN_SUPERSEDING_PERMISSIONS

    logger.debug(
        "permissions_resolved",
        user_id=record.id,
        role=record.role,
        mode=mode.value,
        count=len(effective),
    )
    return frozenset(effective)


def has_access(effective_permissions: Optional[Iterable[str]], permission: Optional[str]) -> bool:
    if not permission or not effective_permissions:
        return False
    return permission in effective_permissions


def has_any_access(effective_permissions: Optional[Iterable[str]], permissions: Iterable[str]) -> bool:
    perms = frozenset(effective_permissions or ())
    return any(p in perms for p in permissions)


def has_all_access(effective_permissions: Optional[Iterable[str]], permissions: Iterable[str]) -> bool:
    perms = frozenset(effective_permissions or ())
    required = list(permissions)
    if not required:
        return False
    return all(p in perms for p in required)


def can_perform_action(effective_permissions: Optional[Iterable[str]], category: str, action: str) -> bool:
    if not category or not action:
        return False
    return has_access(effective_permissions, f"{category}.{action}")


def check_access_expression(
    effective_permissions: Optional[Iterable[str]],
    role: Optional[str],
    expr: ExpressionLike,
) -> bool:
    """
    Evaluate an access-check expression.

    Criteria are tried in order (permission, permissions, category+action,
    role) and the first one supplied decides. No criterion means deny.

    Args:
        effective_permissions: Output of resolve_effective_permissions
        role: The user's role, used only by the role criterion
        expr: AccessExpression, mapping with the same keys, or a bare permission key

    Returns:
        True if access is granted
    """
    if expr is None:
        return False
    if isinstance(expr, str):
        expr = AccessExpression(permission=expr)
    if not isinstance(expr, AccessExpression):
        try:
            expr = AccessExpression.model_validate(dict(expr))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("access_expression_invalid", error=str(e))
            return False

    perms = frozenset(effective_permissions or ())

    if expr.permission:
        return has_access(perms, expr.permission)

    if expr.permissions:
        if expr.require_all:
            return has_all_access(perms, expr.permissions)
        return has_any_access(perms, expr.permissions)

    if expr.category and expr.action:
        return can_perform_action(perms, expr.category, expr.action)

    if expr.role:
        return role is not None and role == expr.role

    return False


def can_delete_users(user: UserLike) -> bool:
    """Admins can always delete users; anyone else needs users.delete."""
    if user is None:
        return False
    record = coerce_user(user)
    if record.role == settings.admin_role:
        return True
    return "users.delete" in resolve_effective_permissions(record)


def get_available_actions(user: UserLike, category: str) -> List[str]:
    """Actions (everything after ``<category>.``) the user holds in a category."""
    if user is None or not category:
        return []
    prefix = category + "."
    return sorted(p[len(prefix):] for p in resolve_effective_permissions(user) if p.startswith(prefix))


def get_missing_permissions(user: UserLike, required: Iterable[str]) -> List[PermissionDefinition]:
    effective = resolve_effective_permissions(user)
    missing = {p for p in required if p not in effective}
    return [p for p in ALL_PERMISSIONS if p.key in missing]


def compare_role_permissions(role1: str, role2: str) -> RolePermissionComparison:
    perms1 = get_role_defaults(role1)
    perms2 = get_role_defaults(role2)
    set1, set2 = set(perms1), set(perms2)
    return RolePermissionComparison(
        role1_only=[p for p in perms1 if p not in set2],
        role2_only=[p for p in perms2 if p not in set1],
        common=[p for p in perms1 if p in set2],
    )


def explain_user_permissions(user: UserLike) -> PermissionExplanation:
    record = coerce_user(user)
    mode = classify_permission_mode(record)
    defaults = list(get_role_defaults(record.role))
    final = sorted(resolve_effective_permissions(record))
    additional: List[str] = []

    if mode == PermissionMode.custom:
        explanation = (
            f"Custom permissions mode: the user holds only their {len(record.permissions)} custom permission(s)."
        )
    elif mode == PermissionMode.role_plus_extra:
        additional = [p for p in record.permissions if p not in defaults]
        explanation = (
            f"Role defaults ({len(defaults)}) plus {len(additional)} additional permission(s)."
        )
    else:
        explanation = f"Role defaults only ({len(defaults)} permission(s))."

    return PermissionExplanation(
        role=record.role,
        mode=mode,
        default_permissions=defaults,
        additional_permissions=additional,
        final_permissions=final,
        explanation=explanation,
    )


def validate_permissions(permissions: Iterable[str]) -> PermissionValidationResult:
    """
    Check a custom permission list before it is saved.

    Unknown keys are errors. Duplicates, write access without view access in
    a category, and oversized lists are warnings.
    """
    perms = list(permissions)
    errors: List[str] = []
    warnings: List[str] = []
    known = permission_ids()

    unique = list(dict.fromkeys(perms))
    if len(unique) != len(perms):
        warnings.append("Duplicate permissions found; duplicates will be removed.")

    for perm in unique:
        if perm not in known:
            errors.append(f'Permission "{perm}" does not exist.')

    for category in _CRUD_CATEGORIES:
        if f"{category}.manage" in unique:
            continue
        writes = [a for a in ("create", "edit", "delete") if f"{category}.{a}" in unique]
        if writes and f"{category}.view" not in unique:
            warnings.append(
                f'Has {"/".join(writes)} on "{category}" without "{category}.view"; '
                "the user may not see the data they change."
            )

    if len(unique) > _MAX_CUSTOM_PERMISSIONS:
        warnings.append(
            f"{len(unique)} custom permissions assigned; consider using a role instead."
        )

    return PermissionValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def clean_permissions(permissions: Iterable[str]) -> List[str]:
    """Drop duplicates and unknown keys, sorted by category then key."""
    known = permission_ids()
    valid = {p for p in permissions if p in known}
    return sorted(valid, key=lambda p: (category_of(p), p))


def generate_permissions_report(user: UserLike) -> PermissionsReport:
    record = coerce_user(user)
    effective = resolve_effective_permissions(record)
    role_defaults = set(get_role_defaults(record.role))

    by_category = {}
    for perm in ALL_PERMISSIONS:
        if perm.key in effective:
            by_category.setdefault(perm.category, []).append(perm)

    return PermissionsReport(
        role=record.role,
        total_permissions=len(effective),
        permissions_by_category=by_category,
        custom_permissions_enabled=record.custom_permissions_enabled,
        missing_from_role=[p for p in ALL_PERMISSIONS if p.key in role_defaults and p.key not in effective],
        extra_from_role=[p for p in ALL_PERMISSIONS if p.key not in role_defaults and p.key in effective],
    )
