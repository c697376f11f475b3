"""Pydantic schemas for API validation."""

from .artifact import (
    ArtifactCreate,
    ArtifactSummary,
    ArtifactResponse,
    ArtifactListResponse,
    ArtifactDiffResponse,
    AuditEntryResponse,
    ContentUpdate,
    ContentJsonUpdate,
    TitleUpdate,
    RevisionCreate,
    RestoreRequest,
)
from .approval import (
    ApprovalStatusResponse,
    ApproverCreate,
    ApproverResponse,
    DecisionRequest,
    DecisionResponse,
    StepConfig,
    StepsUpdate,
    StepResponse,
    StepProgressResponse,
)
from .suggestion import SuggestionCreate, SuggestionResponse, SuggestionStyle
from .delegation import DelegationCreate, DelegationResponse

__all__ = [
    "ArtifactCreate",
    "ArtifactSummary",
    "ArtifactResponse",
    "ArtifactListResponse",
    "ArtifactDiffResponse",
    "AuditEntryResponse",
    "ContentUpdate",
    "ContentJsonUpdate",
    "TitleUpdate",
    "RevisionCreate",
    "RestoreRequest",
    "ApprovalStatusResponse",
    "ApproverCreate",
    "ApproverResponse",
    "DecisionRequest",
    "DecisionResponse",
    "StepConfig",
    "StepsUpdate",
    "StepResponse",
    "StepProgressResponse",
    "SuggestionCreate",
    "SuggestionResponse",
    "SuggestionStyle",
    "DelegationCreate",
    "DelegationResponse",
]
