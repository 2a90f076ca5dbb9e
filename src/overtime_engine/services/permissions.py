"""Role hierarchy and approval authority."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from overtime_engine.domain.entries import EntryKind

if TYPE_CHECKING:
    from overtime_engine.store.base import ApproverAssignment


class Role(str, Enum):
    """System roles."""

    TECHNICIAN = "technician"
    TEAM_LEAD = "team_lead"
    OFFICE_SUPERVISOR = "office_supervisor"
    MANAGEMENT = "management"
    ADMIN = "admin"


# Roles allowed to approve any entry of any owner
APPROVE_ALL_ROLES = frozenset({Role.MANAGEMENT, Role.ADMIN})

# Roles allowed to write tariff tables and clone years
TARIFF_ADMIN_ROLES = frozenset({Role.MANAGEMENT, Role.ADMIN})


def parse_role(value: str) -> Role | None:
    try:
        return Role(value)
    except ValueError:
        return None


def assigned_approver(assignment: ApproverAssignment, kind: EntryKind) -> str | None:
    """Approver bound to an owner for the given entry kind."""
    if kind == EntryKind.HOURS:
        return assignment.hours_approver_id
    return assignment.expense_approver_id


def can_approve(
    actor_id: str,
    actor_role: str,
    owner_id: str,
    kind: EntryKind,
    assignment: ApproverAssignment | None,
) -> tuple[bool, str]:
    """Decide whether an actor may approve, reject or return an entry.

    Returns (allowed, reason). Self-approval is never allowed.
    """
    if actor_id == owner_id:
        return False, "owners cannot review their own entries"

    if assignment is not None and assigned_approver(assignment, kind) == actor_id:
        return True, "assigned approver"

    role = parse_role(actor_role)
    if role in APPROVE_ALL_ROLES:
        return True, f"role '{role.value}' approves all entries"

    return False, f"not the {kind.value} approver assigned to {owner_id}"
