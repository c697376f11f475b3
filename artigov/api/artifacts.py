"""Artifact API endpoints — versioning commands and the read side.

Endpoints are thin: ArtifactService performs role checks, runs each
command in one transaction and writes the audit trail.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.artifact import (
    ArtifactCreate,
    ArtifactDiffResponse,
    ArtifactListResponse,
    ArtifactResponse,
    ArtifactSummary,
    AuditEntryResponse,
    ContentJsonUpdate,
    ContentUpdate,
    RestoreRequest,
    RevisionCreate,
    TitleUpdate,
)
from ..services import ArtifactService

project_artifacts_router = APIRouter(prefix="/api/projects/{project_id}/artifacts", tags=["artifacts"])
router = APIRouter(prefix="/api/artifacts", tags=["artifacts"])


@project_artifacts_router.post("", response_model=ArtifactResponse, status_code=201)
def create_artifact(
    project_id: str,
    body: ArtifactCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Create version 1 of a type, or a new draft when one is already current."""
    return ArtifactService(db).create_artifact(
        project_id, auth.user_id, body.type, content=body.content, title=body.title
    )


@project_artifacts_router.get("", response_model=ArtifactListResponse)
def list_current_artifacts(
    project_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """List the current artifact of every type in a project."""
    items = ArtifactService(db).list_current(project_id, auth.user_id)
    return {"items": items, "total": len(items)}


@project_artifacts_router.post("/restore", response_model=ArtifactResponse, status_code=201)
def restore_version(
    project_id: str,
    body: RestoreRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Copy a historical version forward as the new current draft."""
    return ArtifactService(db).restore_version(
        project_id, body.target_artifact_id, auth.user_id, reason=body.reason
    )


@router.get("/{artifact_id}", response_model=ArtifactResponse)
def get_artifact(
    artifact_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ArtifactService(db).get_artifact(artifact_id, auth.user_id)


@router.put("/{artifact_id}/content", response_model=ArtifactResponse)
def update_content(
    artifact_id: str,
    body: ContentUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Save text content. 409 when the artifact is locked, not current or not a draft."""
    return ArtifactService(db).update_content(artifact_id, auth.user_id, body.content)


@router.put("/{artifact_id}/content-json", response_model=ArtifactResponse)
def update_content_json(
    artifact_id: str,
    body: ContentJsonUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Save the structured document."""
    return ArtifactService(db).update_content_json(artifact_id, auth.user_id, body.content_json)


@router.put("/{artifact_id}/title", response_model=ArtifactResponse)
def rename_artifact(
    artifact_id: str,
    body: TitleUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ArtifactService(db).rename_title(body.project_id, artifact_id, auth.user_id, body.title)


@router.post("/{artifact_id}/revisions", response_model=ArtifactResponse, status_code=201)
def revise_artifact(
    artifact_id: str,
    body: RevisionCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Append a new current draft copied from this artifact."""
    return ArtifactService(db).revise_artifact(
        artifact_id, auth.user_id, reason=body.reason, revision_type=body.revision_type
    )


@router.get("/{artifact_id}/versions", response_model=List[ArtifactSummary])
def list_versions(
    artifact_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Every version in the artifact's lineage, oldest first."""
    return ArtifactService(db).list_versions(artifact_id, auth.user_id)


@router.get("/{artifact_id}/diff", response_model=ArtifactDiffResponse)
def get_diff(
    artifact_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ArtifactService(db).get_diff(artifact_id, auth.user_id)


@router.get("/{artifact_id}/audit", response_model=List[AuditEntryResponse])
def get_audit_trail(
    artifact_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ArtifactService(db).get_audit_trail(artifact_id, auth.user_id)
