"""Permission and role resolution — the ONE place access rules live.

Two independent questions are answered here:

    1. What is the caller's role in the project?  (owner > editor > viewer,
       from the membership row; no row means NotMemberError)
    2. Which approver seat, if any, may the caller exercise right now?
       Either their own active ProjectApprover row (plus editors when
       ``include_editors_as_approvers`` is on), or the seat of an active
       approver who delegated to them for a window containing ``now``.

Everything else in the system calls these helpers; no service compares
role or status strings on its own. All lookups are read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import ForbiddenError, NotMemberError
from ..models import ApprovalDelegation, ProjectRole
from ..repositories import ApprovalRepository, DelegationRepository, MembershipRepository

logger = logging.getLogger(__name__)

# Role → allowed actions. Each role includes the actions of the roles below it.
_ROLE_ACTIONS: dict[ProjectRole, frozenset[str]] = {
    ProjectRole.OWNER: frozenset({"read", "edit", "submit", "configure"}),
    ProjectRole.EDITOR: frozenset({"read", "edit", "submit"}),
    ProjectRole.VIEWER: frozenset({"read"}),
}


def role_allows(role: ProjectRole, action: str) -> bool:
    """Whether *role* permits *action* (read, edit, submit, configure)."""
    return action in _ROLE_ACTIONS[role]


def can_submit(role: ProjectRole, is_author: bool) -> bool:
    """Author, owner or editor may submit; an approver seat alone never does."""
    return is_author or role_allows(role, "submit")


def can_rename(role: ProjectRole, is_author: bool) -> bool:
    return is_author or role_allows(role, "edit")


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def delegation_covers(delegation: ApprovalDelegation, now: datetime) -> bool:
    """Enabled delegation whose closed window ``[starts_at, ends_at]`` contains *now*."""
    if not delegation.is_active:
        return False
    now = as_utc(now)
    return as_utc(delegation.starts_at) <= now <= as_utc(delegation.ends_at)


@dataclass(frozen=True)
class ApproverSeat:
    """The approver seat a caller exercises.

    ``approver_user_id`` is whose vote is recorded; it differs from
    ``actor_id`` only under holiday cover.
    """
    actor_id: str
    approver_user_id: str
    delegation_id: Optional[str] = None

    @property
    def on_behalf_of(self) -> Optional[str]:
        return self.approver_user_id if self.delegation_id else None


class PermissionService:
    """Resolves roles and approver seats for one database session."""

    def __init__(self, db: Session):
        self.db = db
        self.members = MembershipRepository(db)
        self.approvals = ApprovalRepository(db)
        self.delegations = DelegationRepository(db)

    def get_role(self, project_id: str, user_id: str) -> ProjectRole:
        """Effective role of *user_id*. Raises ProjectNotFoundError / NotMemberError."""
        self.members.get_by_id(project_id)
        member = self.members.get_member(project_id, user_id)
        if member is None:
            raise NotMemberError(project_id, user_id)
        return ProjectRole(member.role)

    def require(self, project_id: str, user_id: str, action: str) -> ProjectRole:
        """Return the caller's role, or raise ForbiddenError if it lacks *action*."""
        role = self.get_role(project_id, user_id)
        if not role_allows(role, action):
            raise ForbiddenError(
                f"Role '{role.value}' cannot {action} in this project",
                details={"project_id": project_id, "role": role.value, "action": action},
            )
        return role

    def approver_ids(self, project_id: str) -> set[str]:
        """Direct approver pool: the quorum denominator for requires_all steps."""
        ids = set(self.approvals.active_approver_ids(project_id))
        if settings.include_editors_as_approvers:
            ids.update(self.members.user_ids_with_role(project_id, ProjectRole.EDITOR))
        return ids

    def resolve_seat(
        self, project_id: str, user_id: str, now: Optional[datetime] = None
    ) -> Optional[ApproverSeat]:
        """The seat *user_id* may vote with, or None.

        A direct seat wins over any cover the user also holds; among
        several covering delegations the earliest-starting one is used.
        """
        pool = self.approver_ids(project_id)
        if user_id in pool:
            return ApproverSeat(actor_id=user_id, approver_user_id=user_id)

        now = now or datetime.now(timezone.utc)
        for delegation in self.delegations.active_to(project_id, user_id):
            if delegation.from_user_id in pool and delegation_covers(delegation, now):
                logger.debug(
                    "Approver seat resolved via delegation",
                    extra={"project_id": project_id, "actor_id": user_id,
                           "on_behalf_of": delegation.from_user_id},
                )
                return ApproverSeat(
                    actor_id=user_id,
                    approver_user_id=delegation.from_user_id,
                    delegation_id=delegation.id,
                )
        return None

    def is_active_approver(self, project_id: str, user_id: str, now: Optional[datetime] = None) -> bool:
        return self.resolve_seat(project_id, user_id, now) is not None

    def require_seat(self, project_id: str, user_id: str) -> ApproverSeat:
        seat = self.resolve_seat(project_id, user_id)
        if seat is None:
            raise ForbiddenError(
                "You are not an active approver for this project.",
                details={"project_id": project_id, "user_id": user_id},
            )
        return seat
