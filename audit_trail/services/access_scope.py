"""Role-derived visibility scope shared by every read path.

Record reads and summary reads both obtain their predicate from
:func:`scope_for`, so a caller sees the same slice of the trail whichever
endpoint they use. Callers outside their scope get "not found", never
"forbidden", to avoid leaking existence.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import ColumnElement, false, func, true

from audit_trail.core.roles import Caller, Department, DepartmentRole, SuperAdminRole
from audit_trail.models import AuditRecord, Summary


@dataclass(frozen=True)
class AccessScope:
    """Visibility predicate for one caller.

    Exactly one shape applies: unrestricted, a department (admins only), or
    the caller's own id.
    """

    unrestricted: bool = False
    department: Department | None = None
    actor_id: str | None = None

    def record_clause(self) -> ColumnElement[bool]:
        if self.unrestricted:
            return true()
        if self.department is not None:
            # Case-sensitive on every backend, unlike LIKE on SQLite.
            code = self.department.code
            return func.substr(AuditRecord.action_by, 1, len(code)) == code
        return AuditRecord.action_by == self.actor_id

    def summary_clause(self) -> ColumnElement[bool]:
        # Summaries carry no actor, so self-only callers see none of them.
        if self.unrestricted:
            return true()
        if self.department is not None:
            return Summary.source_service == self.department.service_name
        return false()

    def admits(self, action_by: str | None) -> bool:
        """In-memory twin of :meth:`record_clause`."""
        if self.unrestricted:
            return True
        if action_by is None:
            return False
        if self.department is not None:
            return action_by.startswith(self.department.code)
        return action_by == self.actor_id


def scope_for(caller: Caller) -> AccessScope:
    """Derive the visibility scope for a caller from its parsed role."""
    role = caller.role
    if isinstance(role, SuperAdminRole):
        return AccessScope(unrestricted=True)
    if isinstance(role, DepartmentRole) and role.is_admin:
        return AccessScope(department=role.department)
    return AccessScope(actor_id=caller.id)
