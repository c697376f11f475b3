"""Artifact audit log model.

Entries are immutable: the ORM refuses to update or delete them once
persisted. Bulk ``query.delete()`` bypasses mapper events and is never
issued by the application.
"""

from sqlalchemy import Column, Index, Integer, String, DateTime, ForeignKey, JSON, event
from sqlalchemy.sql import func

from ..database import Base


class ArtifactAuditLog(Base):
    """Forensic record of one logical workflow action.

    Fields:
        action — create, revise, restore, update_content, update_json,
                 rename, submit, resubmit, approve, request_changes,
                 reject_final, baseline, suggestion_add, suggestion_apply,
                 suggestion_dismiss, delegation_create, delegation_delete,
                 steps_configure, approver_add, approver_remove
        before / after — snapshots of the fields the action touched
    """

    __tablename__ = "artifact_audit_log"
    __table_args__ = (
        Index("ix_artifact_audit_log_artifact", "artifact_id"),
        Index("ix_artifact_audit_log_project", "project_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    artifact_id = Column(String(36), nullable=True)
    actor_id = Column(String(50), nullable=True)
    action = Column(String(50), nullable=False)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditImmutableError(RuntimeError):
    """Raised when code tries to rewrite or remove an audit entry."""


@event.listens_for(ArtifactAuditLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise AuditImmutableError(f"Audit entry {target.id} is append-only")


@event.listens_for(ArtifactAuditLog, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise AuditImmutableError(f"Audit entry {target.id} is append-only")
