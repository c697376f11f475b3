"""Artifact schemas."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from ..models import ApprovalStatus, ArtifactType, RevisionType


class ArtifactCreate(BaseModel):
    """Schema for creating an artifact (or a new draft of an existing type)."""
    type: str  # case-insensitive ArtifactType value
    content: Optional[str] = None
    title: Optional[str] = Field(default=None, max_length=255)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"type": "project_charter", "title": "Charter", "content": "# Objectives\n..."}
            ]
        }
    }


class ContentUpdate(BaseModel):
    content: str


class ContentJsonUpdate(BaseModel):
    content_json: Any


class TitleUpdate(BaseModel):
    project_id: str
    title: str = Field(min_length=1, max_length=255)


class RevisionCreate(BaseModel):
    """Schema for an explicit revision of an artifact."""
    reason: Optional[str] = None
    revision_type: Optional[str] = None  # revise | material | minor (default material)


class RestoreRequest(BaseModel):
    target_artifact_id: str
    reason: Optional[str] = None


class ArtifactSummary(BaseModel):
    """Artifact without its content, for lists and lineage views."""
    id: str
    project_id: str
    user_id: str
    type: ArtifactType
    title: str
    version: int
    approval_status: ApprovalStatus
    is_locked: bool
    is_current: bool
    is_baseline: bool
    root_artifact_id: Optional[str] = None
    parent_artifact_id: Optional[str] = None
    revision_type: RevisionType
    revision_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ArtifactResponse(ArtifactSummary):
    """Full artifact row."""
    content: str
    content_json: Optional[Any] = None
    locked_at: Optional[datetime] = None
    locked_by: Optional[str] = None
    submitted_at: Optional[datetime] = None
    submitted_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None


class DiffSide(BaseModel):
    id: str
    version: int
    content: str

    model_config = {"from_attributes": True}


class ArtifactDiffResponse(BaseModel):
    """Content of an artifact next to its lineage baseline and its parent."""
    artifact: DiffSide
    baseline: Optional[DiffSide] = None
    parent: Optional[DiffSide] = None


class AuditEntryResponse(BaseModel):
    id: int
    project_id: str
    artifact_id: Optional[str] = None
    actor_id: Optional[str] = None
    action: str
    before: Optional[Any] = None
    after: Optional[Any] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ArtifactListResponse(BaseModel):
    items: List[ArtifactSummary]
    total: int
