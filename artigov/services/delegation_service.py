"""Delegation service — holiday cover for approvers.

A project owner lets ``to_user_id`` vote in ``from_user_id``'s seat for a
time window. The seat itself is resolved by the permission service; this
module only creates, lists and disables the delegation rows.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..exceptions import ValidationError
from ..models import ApprovalDelegation
from ..repositories import DelegationRepository, MembershipRepository
from . import audit_service
from .permission_service import PermissionService, as_utc
from .transaction import unit_of_work
from .workflow_rules import require_id

logger = logging.getLogger(__name__)

_DELEGATION_FIELDS = ("id", "from_user_id", "to_user_id", "starts_at", "ends_at", "reason", "is_active")


def validate_window(from_user_id: str, to_user_id: str, starts_at: datetime, ends_at: datetime) -> None:
    """Reject self-delegation and empty or inverted windows."""
    if from_user_id == to_user_id:
        raise ValidationError("An approver cannot delegate to themselves.", field="to_user_id")
    if starts_at is None or ends_at is None:
        raise ValidationError("starts_at and ends_at are required.", field="starts_at")
    if as_utc(ends_at) <= as_utc(starts_at):
        raise ValidationError("ends_at must be after starts_at.", field="ends_at")


class DelegationService:
    """Create, list and disable approval delegations."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DelegationRepository(db)
        self.members = MembershipRepository(db)
        self.permissions = PermissionService(db)

    def create_delegation(
        self,
        project_id: str,
        actor_id: str,
        from_user_id: str,
        to_user_id: str,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None,
    ) -> ApprovalDelegation:
        project_id = require_id(project_id, "project_id")
        from_user_id = require_id(from_user_id, "from_user_id")
        to_user_id = require_id(to_user_id, "to_user_id")
        validate_window(from_user_id, to_user_id, starts_at, ends_at)
        self.permissions.require(project_id, actor_id, "configure")

        if from_user_id not in self.permissions.approver_ids(project_id):
            raise ValidationError("Only an active approver can be covered.", field="from_user_id")
        if self.members.get_member(project_id, to_user_id) is None:
            raise ValidationError("The delegate must be a project member.", field="to_user_id")

        with unit_of_work(self.db, project_id):
            delegation = self.repo.create(
                project_id=project_id,
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                starts_at=as_utc(starts_at),
                ends_at=as_utc(ends_at),
                reason=(reason or "").strip() or None,
                is_active=True,
                created_by=actor_id,
            )
            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=None,
                actor_id=actor_id,
                action="delegation_create",
                after=audit_service.snapshot(delegation, _DELEGATION_FIELDS),
            )

        logger.info(
            "Delegation created",
            extra={"project_id": project_id, "delegation_id": delegation.id,
                   "from_user_id": from_user_id, "to_user_id": to_user_id},
        )
        return delegation

    def delete_delegation(self, project_id: str, delegation_id: str, actor_id: str) -> ApprovalDelegation:
        """Disable a delegation. The row stays for the audit trail."""
        project_id = require_id(project_id, "project_id")
        delegation_id = require_id(delegation_id, "delegation_id")
        self.permissions.require(project_id, actor_id, "configure")

        with unit_of_work(self.db, delegation_id):
            delegation = self.repo.get_in_project(project_id, delegation_id)
            if delegation.is_active:
                before = audit_service.snapshot(delegation, _DELEGATION_FIELDS)
                delegation.is_active = False
                self.db.flush()
                audit_service.record(
                    self.db,
                    project_id=project_id,
                    artifact_id=None,
                    actor_id=actor_id,
                    action="delegation_delete",
                    before=before,
                    after={"id": delegation.id, "is_active": False},
                )
                logger.info("Delegation disabled", extra={"project_id": project_id, "delegation_id": delegation_id})
        return delegation

    def list_delegations(
        self, project_id: str, actor_id: str, include_inactive: bool = False
    ) -> List[ApprovalDelegation]:
        self.permissions.require(project_id, actor_id, "read")
        return self.repo.list_for_project(project_id, include_inactive=include_inactive)
