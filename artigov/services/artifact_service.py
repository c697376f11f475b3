"""Artifact service — deep module for the versioning engine.

Owns the lineage of every artifact type in a project: creating version 1,
appending revisions and restores as new rows, editing the single current
draft, and the read side (current list, lineage, diff, audit trail).

All new versions go through one algorithm:

    1. root = source.root_artifact_id or source.id
    2. next_version = max(version in lineage) + 1
    3. demote the current row of (project, type), flushed
    4. insert the new current draft with parent = source

Each public command is a single transaction. The current row is read
``FOR UPDATE`` and the partial unique indexes on ``artifacts`` catch any
writer that slips past, so concurrent revisions end in ConflictError
rather than two current rows. Audit writes here are best-effort.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..exceptions import ForbiddenError, NotEditableError
from ..models import ApprovalStatus, Artifact, RevisionType
from ..repositories import ArtifactRepository
from . import audit_service
from .permission_service import PermissionService, can_rename
from .transaction import unit_of_work
from .workflow_rules import (
    EDITABLE_STATUSES,
    default_title,
    ensure_editable,
    ensure_not_under_review,
    parse_artifact_type,
    parse_revision_type,
    require_id,
)

logger = logging.getLogger(__name__)

_LINEAGE_FIELDS = ("version", "approval_status", "is_current", "is_baseline", "is_locked")


class ArtifactService:
    """Deep module for artifact versioning.

    Callers pass the acting user id; role checks happen here before the
    first write, so a denied command leaves no trace.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ArtifactRepository(db)
        self.permissions = PermissionService(db)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_artifact(
        self,
        project_id: str,
        actor_id: str,
        artifact_type: str,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Artifact:
        """Create version 1 of a type, or a new draft if one is already current.

        With an existing current row this behaves as a revision whose
        content is *content* when given, else the current content.
        """
        project_id = require_id(project_id, "project_id")
        atype = parse_artifact_type(artifact_type)
        self.permissions.require(project_id, actor_id, "edit")

        with unit_of_work(self.db, project_id):
            existing = self.repo.get_current(project_id, atype, for_update=True)
            if existing is not None:
                ensure_not_under_review(existing)
                before = audit_service.snapshot(existing, ("id",) + _LINEAGE_FIELDS)
                artifact = self._insert_revision(
                    existing,
                    actor_id,
                    content=(existing.content or "") if content is None else content,
                    title=title or existing.title,
                    revision_type=RevisionType.REVISE,
                    reason="New draft created",
                )
                audit_service.record_best_effort(
                    self.db,
                    project_id=project_id,
                    artifact_id=artifact.id,
                    actor_id=actor_id,
                    action="create_revision_from_current",
                    before=before,
                    after=audit_service.snapshot(artifact, ("id",) + _LINEAGE_FIELDS),
                )
            else:
                artifact = self.repo.insert(
                    project_id=project_id,
                    user_id=actor_id,
                    type=atype,
                    title=title or default_title(atype),
                    content=content or "",
                    content_json=None,
                    version=1,
                    root_artifact_id=None,
                    parent_artifact_id=None,
                    revision_type=RevisionType.CREATE,
                    approval_status=ApprovalStatus.DRAFT,
                    is_locked=False,
                    is_current=True,
                    is_baseline=False,
                )
                # The first version is its own lineage root.
                artifact.root_artifact_id = artifact.id
                self.db.flush()
                audit_service.record_best_effort(
                    self.db,
                    project_id=project_id,
                    artifact_id=artifact.id,
                    actor_id=actor_id,
                    action="create",
                    after=audit_service.snapshot(artifact, ("type",) + _LINEAGE_FIELDS),
                )

        logger.info(
            "Artifact created",
            extra={"project_id": project_id, "artifact_id": artifact.id,
                   "type": atype.value, "version": artifact.version},
        )
        return artifact

    def revise_artifact(
        self,
        artifact_id: str,
        actor_id: str,
        reason: Optional[str] = None,
        revision_type: Optional[str] = None,
    ) -> Artifact:
        """Append a new current draft copied from *artifact_id*."""
        artifact_id = require_id(artifact_id, "artifact_id")
        rtype = parse_revision_type(revision_type)
        source = self.repo.get_by_id(artifact_id)
        self.permissions.require(source.project_id, actor_id, "edit")

        with unit_of_work(self.db, artifact_id):
            self._guard_current_slot(source)
            before = audit_service.snapshot(source, ("id",) + _LINEAGE_FIELDS)
            artifact = self._insert_revision(
                source,
                actor_id,
                content=source.content or "",
                content_json=source.content_json,
                title=source.title,
                revision_type=rtype,
                reason=(reason or "").strip() or "Revision created",
            )
            audit_service.record_best_effort(
                self.db,
                project_id=source.project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action="revise",
                before=before,
                after=audit_service.snapshot(artifact, ("id", "revision_type", "revision_reason") + _LINEAGE_FIELDS),
            )

        logger.info(
            "Artifact revised",
            extra={"artifact_id": artifact.id, "from_artifact_id": source.id, "version": artifact.version},
        )
        return artifact

    def restore_version(
        self,
        project_id: str,
        target_artifact_id: str,
        actor_id: str,
        reason: Optional[str] = None,
    ) -> Artifact:
        """Copy a historical version forward as the new current draft.

        History is never rewritten: the target keeps its row and a new
        version with ``revision_type=restore`` carries its content.
        """
        project_id = require_id(project_id, "project_id")
        target_artifact_id = require_id(target_artifact_id, "target_artifact_id")
        self.permissions.require(project_id, actor_id, "edit")
        target = self.repo.get_in_project(project_id, target_artifact_id)

        with unit_of_work(self.db, target_artifact_id):
            self._guard_current_slot(target)
            before = audit_service.snapshot(target, ("id",) + _LINEAGE_FIELDS)
            artifact = self._insert_revision(
                target,
                actor_id,
                content=target.content or "",
                content_json=target.content_json,
                title=target.title,
                revision_type=RevisionType.RESTORE,
                reason=(reason or "").strip() or "Restored a previous version",
            )
            audit_service.record_best_effort(
                self.db,
                project_id=project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action="restore",
                before=before,
                after=audit_service.snapshot(artifact, ("id", "revision_reason") + _LINEAGE_FIELDS),
            )

        logger.info(
            "Artifact version restored",
            extra={"project_id": project_id, "artifact_id": artifact.id,
                   "restored_from": target.id, "version": artifact.version},
        )
        return artifact

    def update_content(self, artifact_id: str, actor_id: str, content: str) -> Artifact:
        """Replace the text content of the current editable draft."""
        return self._update_field(artifact_id, actor_id, "content", content or "", "update_content")

    def update_content_json(self, artifact_id: str, actor_id: str, content_json: Any) -> Artifact:
        """Replace the structured document of the current editable draft."""
        return self._update_field(artifact_id, actor_id, "content_json", content_json, "update_json")

    def rename_title(self, project_id: str, artifact_id: str, actor_id: str, title: str) -> Artifact:
        """Rename an unlocked draft. Author, owner or editor."""
        project_id = require_id(project_id, "project_id")
        title = require_id(title, "title")
        role = self.permissions.get_role(project_id, actor_id)

        with unit_of_work(self.db, artifact_id):
            artifact = self.repo.get_in_project(project_id, artifact_id, for_update=True)
            if not can_rename(role, artifact.user_id == actor_id):
                raise ForbiddenError("Only the author or owners/editors can rename the artifact.")
            if artifact.is_locked or ApprovalStatus(artifact.approval_status) not in EDITABLE_STATUSES:
                raise NotEditableError(artifact.id, "Only unlocked Draft / Changes Requested can be renamed.")
            before = artifact.title
            artifact.title = title
            self.db.flush()
            audit_service.record_best_effort(
                self.db,
                project_id=project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action="rename",
                before={"title": before},
                after={"title": title},
            )
        return artifact

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_artifact(self, artifact_id: str, actor_id: str) -> Artifact:
        artifact = self.repo.get_by_id(require_id(artifact_id, "artifact_id"))
        self.permissions.require(artifact.project_id, actor_id, "read")
        return artifact

    def list_current(self, project_id: str, actor_id: str) -> List[Artifact]:
        self.permissions.require(project_id, actor_id, "read")
        return self.repo.list_current(project_id)

    def list_versions(self, artifact_id: str, actor_id: str) -> List[Artifact]:
        """All versions in the artifact's lineage, oldest first."""
        artifact = self.get_artifact(artifact_id, actor_id)
        return self.repo.list_lineage(artifact.lineage_root)

    def get_diff(self, artifact_id: str, actor_id: str) -> dict:
        """The artifact with its lineage baseline and its parent, for diffing."""
        artifact = self.get_artifact(artifact_id, actor_id)
        baseline = self.repo.get_baseline(artifact.lineage_root)
        parent = (
            self.repo.get_by_id_optional(artifact.parent_artifact_id)
            if artifact.parent_artifact_id else None
        )
        return {"artifact": artifact, "baseline": baseline, "parent": parent}

    def get_audit_trail(self, artifact_id: str, actor_id: str):
        artifact = self.get_artifact(artifact_id, actor_id)
        return audit_service.get_for_artifact(self.db, artifact.id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _guard_current_slot(self, source: Artifact) -> None:
        current = self.repo.get_current(source.project_id, source.type, for_update=True)
        if current is not None:
            ensure_not_under_review(current)

    def _insert_revision(
        self,
        source: Artifact,
        actor_id: str,
        content: str,
        title: str,
        revision_type: RevisionType,
        reason: str,
        content_json: Any = None,
    ) -> Artifact:
        """Demote the current row and append the next version of source's lineage."""
        root_id = source.lineage_root
        next_version = self.repo.max_version(root_id) + 1
        self.repo.demote_current(source.project_id, source.type)
        if content_json is None:
            content_json = source.content_json
        return self.repo.insert(
            project_id=source.project_id,
            user_id=actor_id,
            type=source.type,
            title=title,
            content=content,
            content_json=content_json,
            version=next_version,
            root_artifact_id=root_id,
            parent_artifact_id=source.id,
            revision_type=revision_type,
            revision_reason=reason,
            approval_status=ApprovalStatus.DRAFT,
            is_locked=False,
            is_current=True,
            is_baseline=False,
        )

    def _update_field(self, artifact_id: str, actor_id: str, field: str, value: Any, action: str) -> Artifact:
        artifact_id = require_id(artifact_id, "artifact_id")
        artifact = self.repo.get_by_id(artifact_id)
        self.permissions.require(artifact.project_id, actor_id, "edit")

        with unit_of_work(self.db, artifact_id):
            artifact = self.repo.get_for_update(artifact_id)
            ensure_editable(artifact)
            setattr(artifact, field, value)
            self.db.flush()
            audit_service.record_best_effort(
                self.db,
                project_id=artifact.project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action=action,
                after={"field": field, "version": artifact.version},
            )

        logger.info("Artifact updated", extra={"artifact_id": artifact_id, "field": field})
        return artifact
