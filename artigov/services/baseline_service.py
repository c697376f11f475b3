"""Baseline promotion — materialise an approved version as the lineage baseline.

Runs only inside the approve command, in its transaction. The new baseline
is a separate row (current, baseline, locked, approved) so later drafts of
the same lineage can never alter what was signed off.
"""

import logging

from sqlalchemy.orm import Session

from ..models import ApprovalStatus, Artifact, RevisionType
from ..repositories import ArtifactRepository
from . import audit_service
from .workflow_rules import utcnow

logger = logging.getLogger(__name__)


class BaselineService:
    """Promotes a just-approved artifact row to the lineage baseline."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ArtifactRepository(db)

    def promote(self, approved: Artifact, actor_id: str) -> Artifact:
        """Retire the prior baseline and current rows, then insert the snapshot.

        Both flags are cleared and flushed before the insert so the partial
        unique indexes only ever see one current and one baseline row.
        """
        root_id = approved.lineage_root
        retired = self.repo.retire_baselines(approved.project_id, approved.type)
        self.repo.demote_current(approved.project_id, approved.type)
        next_version = self.repo.max_version(root_id) + 1
        now = utcnow()

        baseline = self.repo.insert(
            project_id=approved.project_id,
            user_id=approved.user_id,
            type=approved.type,
            title=approved.title,
            content=approved.content or "",
            content_json=approved.content_json,
            version=next_version,
            root_artifact_id=root_id,
            parent_artifact_id=approved.id,
            revision_type=RevisionType.BASELINE,
            revision_reason=f"Baseline of version {approved.version}",
            approval_status=ApprovalStatus.APPROVED,
            is_locked=True,
            is_current=True,
            is_baseline=True,
            locked_at=now,
            locked_by=actor_id,
            submitted_at=approved.submitted_at,
            submitted_by=approved.submitted_by,
            approved_at=approved.approved_at or now,
            approved_by=approved.approved_by or actor_id,
        )

        audit_service.record(
            self.db,
            project_id=approved.project_id,
            artifact_id=approved.id,
            actor_id=actor_id,
            action="baseline",
            before={"retired_baseline_ids": [row.id for row in retired]},
            after={"baseline_id": baseline.id, "version": next_version},
        )
        logger.info(
            "Baseline promoted",
            extra={"project_id": approved.project_id, "artifact_id": approved.id,
                   "baseline_id": baseline.id, "version": next_version},
        )
        return baseline
