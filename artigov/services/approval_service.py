"""Approval service — deep module for the multi-step approval workflow.

State machine per artifact:

    draft ──submit──▶ submitted ──approve (final step)──▶ approved (+ baseline)
                          │  ├──request_changes──▶ changes_requested ──submit──▶ submitted
                          │  └──reject_final─────▶ rejected
                          └──approve (steps pending)──▶ submitted

Step evaluation is a pure re-read of recorded decisions: for every active
step in order, ``approved_count`` is counted from approval_decisions and
compared with ``required`` (all active approvers, or ``max(1,
min_approvals)``). The first incomplete step is the current one; none left
means final-complete. Decisions are upserts keyed by (artifact, step,
approver), so a repeated vote overwrites instead of double counting.

Audit writes in this module are required: if one fails, the command fails.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import ForbiddenError, NotFoundError, SelfApprovalError, StateError, ValidationError
from ..models import ApprovalStatus, ApprovalStep, Artifact, Decision
from ..repositories import ApprovalRepository, ArtifactRepository, MembershipRepository
from . import audit_service
from .baseline_service import BaselineService
from .permission_service import ApproverSeat, PermissionService, can_submit
from .transaction import unit_of_work
from .workflow_rules import next_status, require_id, utcnow

logger = logging.getLogger(__name__)

_STATUS_FIELDS = ("approval_status", "is_locked", "is_current", "is_baseline")


@dataclass(frozen=True)
class StepProgress:
    step: ApprovalStep
    approved_count: int
    required: int

    @property
    def complete(self) -> bool:
        return self.approved_count >= self.required


@dataclass(frozen=True)
class StepEvaluation:
    steps: List[StepProgress] = field(default_factory=list)
    current: Optional[StepProgress] = None

    @property
    def final_complete(self) -> bool:
        return self.current is None


def required_approvals(step: ApprovalStep, approver_count: int) -> int:
    if step.requires_all:
        return approver_count
    return max(1, int(step.min_approvals or 1))


def evaluate_steps(
    steps: List[ApprovalStep], approved_counts: Dict[str, int], approver_count: int
) -> StepEvaluation:
    """Pure quorum evaluation over ordered active steps."""
    progress = [
        StepProgress(
            step=step,
            approved_count=approved_counts.get(step.id, 0),
            required=required_approvals(step, approver_count),
        )
        for step in steps
    ]
    current = next((p for p in progress if not p.complete), None)
    return StepEvaluation(steps=progress, current=current)


@dataclass(frozen=True)
class StepDefinition:
    """Caller-supplied step for ``configure_steps``."""
    step_name: str
    requires_all: bool = True
    min_approvals: Optional[int] = None


class ApprovalService:
    """Deep module for submit / approve / request changes / reject and step setup."""

    def __init__(self, db: Session):
        self.db = db
        self.artifacts = ArtifactRepository(db)
        self.approvals = ApprovalRepository(db)
        self.members = MembershipRepository(db)
        self.permissions = PermissionService(db)
        self.baselines = BaselineService(db)

    # ------------------------------------------------------------------
    # Step engine
    # ------------------------------------------------------------------

    def ensure_steps(self, project_id: str) -> List[ApprovalStep]:
        """Active steps in order; creates the single default step when none exist."""
        steps = self.approvals.active_steps(project_id)
        if steps:
            return steps
        step = self.approvals.create_step(
            project_id,
            step_order=1,
            step_name=settings.default_step_name,
            requires_all=True,
            min_approvals=None,
        )
        logger.info("Default approval step created", extra={"project_id": project_id, "step_id": step.id})
        return [step]

    def evaluate(self, artifact: Artifact) -> StepEvaluation:
        steps = self.ensure_steps(artifact.project_id)
        return evaluate_steps(
            steps,
            self.approvals.approved_counts(artifact.id),
            len(self.permissions.approver_ids(artifact.project_id)),
        )

    def record_decision(
        self,
        artifact: Artifact,
        step: ApprovalStep,
        seat: ApproverSeat,
        decision: Decision,
        reason: Optional[str] = None,
    ):
        """Idempotent upsert of the seat's vote on *step*."""
        return self.approvals.upsert_decision(
            artifact_id=artifact.id,
            step_id=step.id,
            approver_user_id=seat.approver_user_id,
            decided_by_user_id=seat.actor_id,
            decision=decision,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def submit(self, project_id: str, artifact_id: str, actor_id: str) -> Artifact:
        """Lock the current draft and open a fresh approval round.

        Resubmitting from changes_requested wipes every earlier decision so
        the whole chain is voted again.
        """
        project_id = require_id(project_id, "project_id")
        artifact_id = require_id(artifact_id, "artifact_id")
        role = self.permissions.get_role(project_id, actor_id)
        artifact = self.artifacts.get_in_project(project_id, artifact_id)
        if not can_submit(role, artifact.user_id == actor_id):
            raise ForbiddenError(
                "Approvers can't submit or resubmit. Only the author or project owners/editors can submit.",
                details={"artifact_id": artifact_id},
            )

        with unit_of_work(self.db, artifact_id):
            artifact = self.artifacts.get_in_project(project_id, artifact_id, for_update=True)
            if not artifact.is_current:
                raise StateError("Only the current version can be submitted.", details={"artifact_id": artifact_id})
            if artifact.is_locked:
                raise StateError("Already locked/submitted.", details={"artifact_id": artifact_id})
            target = next_status(artifact, "submit")
            before = audit_service.snapshot(artifact, _STATUS_FIELDS)
            resubmission = ApprovalStatus(artifact.approval_status) == ApprovalStatus.CHANGES_REQUESTED

            cleared = self.approvals.clear_decisions(artifact.id)
            self.ensure_steps(project_id)

            now = utcnow()
            artifact.approval_status = target
            artifact.is_locked = True
            artifact.locked_at = now
            artifact.locked_by = actor_id
            artifact.submitted_at = now
            artifact.submitted_by = actor_id
            artifact.rejected_at = None
            artifact.rejected_by = None
            artifact.rejection_reason = None
            self.db.flush()

            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action="resubmit" if resubmission else "submit",
                before=before,
                after={**audit_service.snapshot(artifact, _STATUS_FIELDS), "cleared_decisions": cleared},
            )

        logger.info(
            "Artifact submitted",
            extra={"project_id": project_id, "artifact_id": artifact_id, "resubmission": resubmission},
        )
        return artifact

    def approve(self, project_id: str, artifact_id: str, actor_id: str) -> Artifact:
        """Record an approval at the current step; finalise when no step is left.

        Returns the approved working row. When the approval completes the
        chain, the artifact becomes ``approved`` and a baseline snapshot is
        inserted; otherwise it stays ``submitted``.
        """
        seat, artifact = self._authorize_decision(project_id, artifact_id, actor_id, "approve")

        with unit_of_work(self.db, artifact_id):
            artifact = self.artifacts.get_in_project(project_id, artifact_id, for_update=True)
            target = next_status(artifact, "approve")
            before = audit_service.snapshot(artifact, _STATUS_FIELDS)

            evaluation = self.evaluate(artifact)
            step = evaluation.current.step if evaluation.current else None
            if step is not None:
                self.record_decision(artifact, step, seat, Decision.APPROVED)
                evaluation = self.evaluate(artifact)

            baseline = None
            if evaluation.final_complete:
                artifact.approval_status = target
                artifact.approved_at = utcnow()
                artifact.approved_by = actor_id
                self.db.flush()
                baseline = self.baselines.promote(artifact, actor_id)

            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action="approve",
                before=before,
                after={
                    **audit_service.snapshot(artifact, _STATUS_FIELDS),
                    "step_id": step.id if step else None,
                    "on_behalf_of": seat.on_behalf_of,
                    "final": evaluation.final_complete,
                    "baseline_id": baseline.id if baseline else None,
                },
            )

        logger.info(
            "Approval recorded",
            extra={"project_id": project_id, "artifact_id": artifact_id,
                   "on_behalf_of": seat.on_behalf_of, "final": baseline is not None},
        )
        return artifact

    def request_changes(
        self, project_id: str, artifact_id: str, actor_id: str, reason: Optional[str] = None
    ) -> Artifact:
        """Send the artifact back to its authors; unlocks for editing."""
        return self._decide_against(project_id, artifact_id, actor_id, reason, "request_changes")

    def reject_final(
        self, project_id: str, artifact_id: str, actor_id: str, reason: Optional[str] = None
    ) -> Artifact:
        """Close the submission as rejected; a new revision is needed to continue."""
        return self._decide_against(project_id, artifact_id, actor_id, reason, "reject_final")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def list_steps(self, project_id: str, actor_id: str) -> List[ApprovalStep]:
        self.permissions.require(project_id, actor_id, "read")
        return self.approvals.active_steps(project_id)

    def configure_steps(
        self, project_id: str, actor_id: str, definitions: List[StepDefinition]
    ) -> List[ApprovalStep]:
        """Replace the project's ordered step list. Owner only.

        Steps that already carry decisions are deactivated instead of
        deleted, so recorded votes keep their step.
        """
        self.permissions.require(project_id, actor_id, "configure")
        if not definitions:
            raise ValidationError("At least one approval step is required", field="steps")
        for definition in definitions:
            if not definition.step_name or not definition.step_name.strip():
                raise ValidationError("Step name is required", field="step_name")
            if definition.min_approvals is not None and definition.min_approvals < 1:
                raise ValidationError("min_approvals must be at least 1", field="min_approvals")

        with unit_of_work(self.db, project_id):
            previous = self.approvals.active_steps(project_id)
            for step in previous:
                if self.approvals.step_has_decisions(step.id):
                    step.is_active = False
                else:
                    self.db.delete(step)
            self.db.flush()

            created = [
                self.approvals.create_step(
                    project_id,
                    step_order=index,
                    step_name=definition.step_name.strip(),
                    requires_all=definition.requires_all,
                    min_approvals=None if definition.requires_all else (definition.min_approvals or 1),
                )
                for index, definition in enumerate(definitions, start=1)
            ]
            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=None,
                actor_id=actor_id,
                action="steps_configure",
                before={"step_ids": [s.id for s in previous]},
                after={"steps": [
                    {"id": s.id, "step_order": s.step_order, "step_name": s.step_name,
                     "requires_all": s.requires_all, "min_approvals": s.min_approvals}
                    for s in created
                ]},
            )

        logger.info("Approval steps configured", extra={"project_id": project_id, "count": len(created)})
        return created

    def list_approvers(self, project_id: str, actor_id: str):
        self.permissions.require(project_id, actor_id, "read")
        return self.approvals.list_approvers(project_id)

    def add_approver(self, project_id: str, actor_id: str, user_id: str):
        """Add (or reactivate) a project member as approver. Owner only."""
        self.permissions.require(project_id, actor_id, "configure")
        user_id = require_id(user_id, "user_id")
        if self.members.get_member(project_id, user_id) is None:
            raise ValidationError("Approvers must be project members", field="user_id")

        with unit_of_work(self.db, project_id):
            approver = self.approvals.upsert_approver(project_id, user_id)
            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=None,
                actor_id=actor_id,
                action="approver_add",
                after={"user_id": user_id},
            )
        return approver

    def remove_approver(self, project_id: str, actor_id: str, user_id: str) -> None:
        """Deactivate an approver. Owner only."""
        self.permissions.require(project_id, actor_id, "configure")
        with unit_of_work(self.db, project_id):
            approver = self.approvals.get_approver(project_id, user_id)
            if approver is None or not approver.is_active:
                raise NotFoundError(f"Approver not found: {user_id}", details={"user_id": user_id})
            approver.is_active = False
            self.db.flush()
            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=None,
                actor_id=actor_id,
                action="approver_remove",
                before={"user_id": user_id},
            )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_status(self, project_id: str, artifact_id: str, actor_id: str) -> dict:
        """Step progress, current step, decisions and whether the caller may vote."""
        self.permissions.require(project_id, actor_id, "read")
        with unit_of_work(self.db, artifact_id):
            artifact = self.artifacts.get_in_project(project_id, artifact_id)
            evaluation = self.evaluate(artifact)
            decisions = self.approvals.decisions_for(artifact.id)
            approver_count = len(self.permissions.approver_ids(project_id))

        seat = self.permissions.resolve_seat(project_id, actor_id)
        is_submitted = ApprovalStatus(artifact.approval_status) == ApprovalStatus.SUBMITTED
        return {
            "artifact_id": artifact.id,
            "approval_status": ApprovalStatus(artifact.approval_status),
            "is_locked": artifact.is_locked,
            "approver_count": approver_count,
            "steps": evaluation.steps,
            "current_step_id": evaluation.current.step.id if evaluation.current else None,
            "final_complete": evaluation.final_complete,
            "decisions": decisions,
            "can_decide": bool(
                seat is not None and is_submitted and not self._is_self_decision(artifact, seat)
            ),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _is_self_decision(artifact: Artifact, seat: ApproverSeat) -> bool:
        return artifact.user_id in (seat.actor_id, seat.approver_user_id)

    def _authorize_decision(self, project_id: str, artifact_id: str, actor_id: str, action: str):
        """Membership, approver seat and self-approval checks, before any write."""
        project_id = require_id(project_id, "project_id")
        artifact_id = require_id(artifact_id, "artifact_id")
        self.permissions.get_role(project_id, actor_id)
        artifact = self.artifacts.get_in_project(project_id, artifact_id)
        seat = self.permissions.require_seat(project_id, actor_id)
        if self._is_self_decision(artifact, seat):
            raise SelfApprovalError(artifact_id, action="approve" if action == "approve" else "decide on")
        return seat, artifact

    def _decide_against(
        self, project_id: str, artifact_id: str, actor_id: str, reason: Optional[str], action: str
    ) -> Artifact:
        seat, artifact = self._authorize_decision(project_id, artifact_id, actor_id, action)
        reason = (reason or "").strip() or None

        with unit_of_work(self.db, artifact_id):
            artifact = self.artifacts.get_in_project(project_id, artifact_id, for_update=True)
            target = next_status(artifact, action)
            before = audit_service.snapshot(artifact, _STATUS_FIELDS)

            evaluation = self.evaluate(artifact)
            step = evaluation.current.step if evaluation.current else None
            if step is not None:
                self.record_decision(artifact, step, seat, Decision.REJECTED, reason)

            artifact.approval_status = target
            artifact.is_locked = False
            artifact.locked_at = None
            artifact.locked_by = None
            artifact.rejected_at = utcnow()
            artifact.rejected_by = actor_id
            artifact.rejection_reason = reason
            self.db.flush()

            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action=action,
                before=before,
                after={
                    **audit_service.snapshot(artifact, _STATUS_FIELDS),
                    "step_id": step.id if step else None,
                    "reason": reason,
                    "on_behalf_of": seat.on_behalf_of,
                },
            )

        logger.info(
            "Artifact sent back" if action == "request_changes" else "Artifact rejected",
            extra={"project_id": project_id, "artifact_id": artifact_id, "action": action},
        )
        return artifact
