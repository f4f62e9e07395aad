from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import settings


_TRUE_STRINGS = {"true", "1", "yes", "on", "enabled"}


class PermissionMode(str, Enum):
    role_default = "role_default"
    role_plus_extra = "role_plus_extra"
    custom = "custom"


class PermissionCategoryDefinition(BaseModel):
    name: str
    label: str
    description: str = ""
    sort_index: int = 0

    model_config = ConfigDict(frozen=True)


class PermissionDefinition(BaseModel):
    key: str
    label: str
    category: str
    action: str
    description: str = ""
    sort_index: int = 0

    model_config = ConfigDict(frozen=True)


def _coerce_flag(v) -> bool:
    # Stored flags arrive as bool, string, number or {"enabled": ...}
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    if isinstance(v, str):
        return v.strip().lower() in _TRUE_STRINGS
    if isinstance(v, dict):
        return _coerce_flag(v.get("enabled", v.get("value")))
    return False


class UserPermissionRecord(BaseModel):
    id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str = Field(default_factory=lambda: settings.default_role)
    custom_permissions_enabled: bool = False
    permissions: List[str] = []  # custom set (CUSTOM mode) or extras on top of the role (otherwise)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return None if v is None else str(v)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, v):
        if v is None:
            return settings.default_role
        role = str(v).strip().lower()
        return role or settings.default_role

    @field_validator("custom_permissions_enabled", mode="before")
    @classmethod
    def _normalize_flag(cls, v):
        return _coerce_flag(v)

    @field_validator("permissions", mode="before")
    @classmethod
    def _normalize_permissions(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        cleaned: List[str] = []
        for perm in v:
            if perm is None:
                continue
            key = str(perm).strip()
            if key and key not in cleaned:
                cleaned.append(key)
        return cleaned


class AccessExpression(BaseModel):
    """Criteria for an access check; the first criterion supplied decides."""

    permission: Optional[str] = None
    permissions: Optional[List[str]] = None
    require_all: bool = False
    category: Optional[str] = None
    action: Optional[str] = None
    role: Optional[str] = None

    @field_validator("permission", "category", "action", "role", mode="before")
    @classmethod
    def _blank_is_unset(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("permissions", mode="before")
    @classmethod
    def _empty_list_is_unset(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        keys = [str(p).strip() for p in v if p is not None and str(p).strip()]
        return keys or None


class PermissionExplanation(BaseModel):
    role: str
    mode: PermissionMode
    default_permissions: List[str]
    additional_permissions: List[str]
    final_permissions: List[str]
    explanation: str


class PermissionValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = []
    warnings: List[str] = []


class RolePermissionComparison(BaseModel):
    role1_only: List[str]
    role2_only: List[str]
    common: List[str]


class PermissionsReport(BaseModel):
    role: str
    total_permissions: int
    permissions_by_category: Dict[str, List[PermissionDefinition]]
    custom_permissions_enabled: bool
    missing_from_role: List[PermissionDefinition]
    extra_from_role: List[PermissionDefinition]
