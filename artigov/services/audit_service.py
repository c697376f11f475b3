"""Audit logging service — one entry per logical workflow action.

Two write modes share the same entry shape:

    record(...)              — required. Used by the approval chain,
                               suggestions and delegations; a failed write
                               raises PersistenceError and the command rolls back.
    record_best_effort(...)  — used by versioning and content edits. Runs in
                               a savepoint and returns an AuditResult; a failed
                               write is logged at WARNING and never propagates.

Entries are immutable (see models.audit).

Usage in service layer:
    audit_service.record(db, project_id=pid, artifact_id=aid, actor_id=uid,
                         action="approve", before={...}, after={...})
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..exceptions import PersistenceError
from ..models import ArtifactAuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditResult:
    """Outcome of a best-effort audit write."""
    ok: bool
    entry_id: Optional[int] = None
    error: Optional[str] = None


def snapshot(obj: Any, fields: Iterable[str]) -> dict:
    """Copy *fields* of an ORM row into a JSON-safe dict."""
    return {name: _json_safe(getattr(obj, name)) for name in fields}


def _json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _entry(project_id, artifact_id, actor_id, action, before, after) -> ArtifactAuditLog:
    return ArtifactAuditLog(
        project_id=project_id,
        artifact_id=artifact_id,
        actor_id=actor_id,
        action=action,
        before=before,
        after=after,
    )


def record(
    db: Session,
    *,
    project_id: str,
    artifact_id: Optional[str],
    actor_id: Optional[str],
    action: str,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
) -> ArtifactAuditLog:
    """Write an audit entry that must succeed. Raises PersistenceError."""
    try:
        entry = _entry(project_id, artifact_id, actor_id, action, before, after)
        db.add(entry)
        db.flush()
        return entry
    except sqlalchemy.exc.SQLAlchemyError as e:
        raise PersistenceError(f"Failed to write audit log for '{action}'", original_error=e) from e


def record_best_effort(
    db: Session,
    *,
    project_id: str,
    artifact_id: Optional[str],
    actor_id: Optional[str],
    action: str,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
) -> AuditResult:
    """Write an audit entry inside a savepoint. Never raises for store errors."""
    # Pending command writes flush outside the savepoint so their errors
    # still reach the caller.
    db.flush()
    try:
        with db.begin_nested():
            entry = _entry(project_id, artifact_id, actor_id, action, before, after)
            db.add(entry)
        return AuditResult(ok=True, entry_id=entry.id)
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning(
            "Audit write failed; continuing without it",
            extra={"action": action, "artifact_id": artifact_id, "error": str(e)},
        )
        return AuditResult(ok=False, error=str(e))


def get_for_artifact(db: Session, artifact_id: str, limit: int = 200) -> list[ArtifactAuditLog]:
    """Audit trail of one artifact row, oldest first."""
    return (
        db.query(ArtifactAuditLog)
        .filter(ArtifactAuditLog.artifact_id == artifact_id)
        .order_by(ArtifactAuditLog.id.asc())
        .limit(limit)
        .all()
    )

