"""Centralized role guards for administrative and summary routes."""

from __future__ import annotations

from fastapi import Depends

from audit_trail.core.errors import ForbiddenError
from audit_trail.core.roles import Caller
from audit_trail.core.security import get_current_caller


def ensure_super_admin(caller: Caller) -> None:
    if not caller.is_super_admin:
        raise ForbiddenError("SuperAdmin access required")


def ensure_department_admin(caller: Caller) -> None:
    """SuperAdmin passes too."""
    if not (caller.is_super_admin or caller.is_department_admin):
        raise ForbiddenError("Department Admin access required")


def require_super_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    ensure_super_admin(caller)
    return caller


def require_department_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    ensure_department_admin(caller)
    return caller
