"""Delegation repository for holiday-cover rows."""

from typing import List

from ..models import ApprovalDelegation
from ..exceptions import DelegationNotFoundError
from .base import BaseRepository


class DelegationRepository(BaseRepository[ApprovalDelegation]):
    """Repository for approval delegations."""

    model_class = ApprovalDelegation
    not_found_error = DelegationNotFoundError

    def get_in_project(self, project_id: str, delegation_id: str) -> ApprovalDelegation:
        delegation = self.db.query(ApprovalDelegation).filter(
            ApprovalDelegation.id == delegation_id,
            ApprovalDelegation.project_id == project_id,
        ).first()
        if delegation is None:
            raise DelegationNotFoundError(delegation_id)
        return delegation

    def active_to(self, project_id: str, to_user_id: str) -> List[ApprovalDelegation]:
        """Enabled delegations naming *to_user_id* as delegate (window not checked)."""
        return self.db.query(ApprovalDelegation).filter(
            ApprovalDelegation.project_id == project_id,
            ApprovalDelegation.to_user_id == to_user_id,
            ApprovalDelegation.is_active.is_(True),
        ).order_by(ApprovalDelegation.starts_at.asc()).all()

    def list_for_project(self, project_id: str, include_inactive: bool = False) -> List[ApprovalDelegation]:
        query = self.db.query(ApprovalDelegation).filter(ApprovalDelegation.project_id == project_id)
        if not include_inactive:
            query = query.filter(ApprovalDelegation.is_active.is_(True))
        return query.order_by(ApprovalDelegation.starts_at.asc()).all()

    def create(self, **fields) -> ApprovalDelegation:
        delegation = ApprovalDelegation(**fields)
        self.db.add(delegation)
        self.db.flush()
        return delegation
