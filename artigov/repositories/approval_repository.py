"""Approval repository — steps, decisions and the approver pool."""

from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..models import ApprovalStep, ApprovalDecision, ProjectApprover, Decision


class ApprovalRepository:
    """Queries over approval_steps, approval_decisions and project_approvers."""

    def __init__(self, db: Session):
        self.db = db

    # -- steps -------------------------------------------------------------

    def active_steps(self, project_id: str) -> List[ApprovalStep]:
        return self.db.query(ApprovalStep).filter(
            ApprovalStep.project_id == project_id,
            ApprovalStep.is_active.is_(True),
        ).order_by(ApprovalStep.step_order.asc(), ApprovalStep.created_at.asc()).all()

    def create_step(self, project_id: str, step_order: int, step_name: str,
                    requires_all: bool, min_approvals: Optional[int]) -> ApprovalStep:
        step = ApprovalStep(
            project_id=project_id,
            step_order=step_order,
            step_name=step_name,
            requires_all=requires_all,
            min_approvals=min_approvals,
            is_active=True,
        )
        self.db.add(step)
        self.db.flush()
        return step

    def step_has_decisions(self, step_id: str) -> bool:
        return self.db.query(ApprovalDecision.id).filter(
            ApprovalDecision.step_id == step_id
        ).first() is not None

    # -- decisions ---------------------------------------------------------

    def decisions_for(self, artifact_id: str) -> List[ApprovalDecision]:
        return self.db.query(ApprovalDecision).filter(
            ApprovalDecision.artifact_id == artifact_id
        ).order_by(ApprovalDecision.created_at.asc()).all()

    def approved_counts(self, artifact_id: str) -> Dict[str, int]:
        """``{step_id: number of approved decisions}`` for one artifact."""
        rows = self.db.query(
            ApprovalDecision.step_id, func.count(ApprovalDecision.id)
        ).filter(
            ApprovalDecision.artifact_id == artifact_id,
            ApprovalDecision.decision == Decision.APPROVED,
        ).group_by(ApprovalDecision.step_id).all()
        return {step_id: int(count) for step_id, count in rows}

    def upsert_decision(
        self,
        artifact_id: str,
        step_id: str,
        approver_user_id: str,
        decided_by_user_id: str,
        decision: Decision,
        reason: Optional[str],
    ) -> ApprovalDecision:
        """Insert or overwrite the vote keyed by (artifact, step, approver)."""
        dialect = self.db.get_bind().dialect.name
        values = {
            "artifact_id": artifact_id,
            "step_id": step_id,
            "approver_user_id": approver_user_id,
            "decided_by_user_id": decided_by_user_id,
            "decision": decision,
            "reason": reason,
        }

        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(ApprovalDecision).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["artifact_id", "step_id", "approver_user_id"],
                set_={
                    "decision": stmt.excluded.decision,
                    "reason": stmt.excluded.reason,
                    "decided_by_user_id": stmt.excluded.decided_by_user_id,
                    "updated_at": func.now(),
                },
            )
            self.db.flush()
            self.db.execute(stmt)
            # Core upsert bypasses the identity map; reload any cached copy.
            return self._get_decision(artifact_id, step_id, approver_user_id, refresh=True)
        else:
            existing = self._get_decision(artifact_id, step_id, approver_user_id)
            if existing is None:
                self.db.add(ApprovalDecision(**values))
            else:
                existing.decision = decision
                existing.reason = reason
                existing.decided_by_user_id = decided_by_user_id
            self.db.flush()

        return self._get_decision(artifact_id, step_id, approver_user_id)

    def _get_decision(
        self, artifact_id: str, step_id: str, approver_user_id: str, refresh: bool = False
    ) -> Optional[ApprovalDecision]:
        query = self.db.query(ApprovalDecision).filter(
            ApprovalDecision.artifact_id == artifact_id,
            ApprovalDecision.step_id == step_id,
            ApprovalDecision.approver_user_id == approver_user_id,
        )
        if refresh:
            query = query.populate_existing()
        return query.first()

    def clear_decisions(self, artifact_id: str) -> int:
        """Delete every decision recorded for an artifact. Returns the count."""
        count = self.db.query(ApprovalDecision).filter(
            ApprovalDecision.artifact_id == artifact_id
        ).delete(synchronize_session="fetch")
        self.db.flush()
        return count

    # -- approver pool -----------------------------------------------------

    def active_approver_ids(self, project_id: str) -> List[str]:
        stmt = select(ProjectApprover.user_id).where(
            ProjectApprover.project_id == project_id,
            ProjectApprover.is_active.is_(True),
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_approvers(self, project_id: str) -> List[ProjectApprover]:
        return self.db.query(ProjectApprover).filter(
            ProjectApprover.project_id == project_id
        ).order_by(ProjectApprover.created_at.asc()).all()

    def get_approver(self, project_id: str, user_id: str) -> Optional[ProjectApprover]:
        return self.db.query(ProjectApprover).filter(
            ProjectApprover.project_id == project_id,
            ProjectApprover.user_id == user_id,
        ).first()

    def upsert_approver(self, project_id: str, user_id: str) -> ProjectApprover:
        """Add an approver, or reactivate a deactivated one."""
        approver = self.get_approver(project_id, user_id)
        if approver is None:
            approver = ProjectApprover(project_id=project_id, user_id=user_id, is_active=True)
            self.db.add(approver)
        else:
            approver.is_active = True
        self.db.flush()
        return approver
