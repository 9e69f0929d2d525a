"""Caller roles parsed once at the identity boundary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

SUPER_ADMIN_ROLE: str = "SuperAdmin"
ADMIN_SUFFIX: str = " Admin"
NON_ADMIN_SUFFIX: str = " Non-Admin"


class Department(str, Enum):
    """Closed set of departments; the value doubles as the service name."""

    FINANCE = "finance"
    HR = "hr"
    INVENTORY = "inventory"
    OPERATIONS = "operations"

    @property
    def code(self) -> str:
        """Prefix carried by user ids of this department, e.g. ``FIN-20250101-001``."""
        return DEPARTMENT_CODES[self]

    @property
    def service_name(self) -> str:
        return self.value


DEPARTMENT_CODES: dict[Department, str] = {
    Department.FINANCE: "FIN",
    Department.HR: "HR",
    Department.INVENTORY: "INV",
    Department.OPERATIONS: "OPS",
}

SERVICE_NAMES: tuple[str, ...] = tuple(department.service_name for department in Department)


@dataclass(frozen=True)
class SuperAdminRole:
    pass


@dataclass(frozen=True)
class DepartmentRole:
    department: Department
    is_admin: bool


@dataclass(frozen=True)
class UnassignedRole:
    """Role string outside the known vocabulary; treated as self-only."""

    raw: str


Role = SuperAdminRole | DepartmentRole | UnassignedRole


@dataclass(frozen=True)
class Caller:
    """Verified human caller, built from JWT claims."""

    id: str
    username: str
    role: Role

    @property
    def is_super_admin(self) -> bool:
        return isinstance(self.role, SuperAdminRole)

    @property
    def is_department_admin(self) -> bool:
        return isinstance(self.role, DepartmentRole) and self.role.is_admin


def parse_role(raw_role: str | None) -> Role:
    """Parse ``SuperAdmin`` / ``<Department> Admin`` / ``<Department> Non-Admin``."""
    value = str(raw_role or "").strip()
    if value == SUPER_ADMIN_ROLE:
        return SuperAdminRole()

    if value.endswith(NON_ADMIN_SUFFIX):
        department_name, is_admin = value[: -len(NON_ADMIN_SUFFIX)], False
    elif value.endswith(ADMIN_SUFFIX):
        department_name, is_admin = value[: -len(ADMIN_SUFFIX)], True
    else:
        return UnassignedRole(raw=value)

    try:
        department = Department(department_name.strip().lower())
    except ValueError:
        return UnassignedRole(raw=value)
    return DepartmentRole(department=department, is_admin=is_admin)


def parse_service_name(value: str) -> Department:
    """Resolve a credential service name to its department."""
    try:
        return Department(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"serviceName must be one of: {', '.join(SERVICE_NAMES)}") from exc
