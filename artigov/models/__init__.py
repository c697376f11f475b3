"""Database models."""

from .enums import (
    ProjectRole, ApprovalStatus, Decision, RevisionType,
    SuggestionAnchor, SuggestionStatus, ArtifactType,
)
from .project import User, Project, ProjectMember
from .artifact import Artifact
from .approval import ApprovalStep, ApprovalDecision, ProjectApprover, ApprovalDelegation
from .suggestion import ArtifactSuggestion
from .audit import ArtifactAuditLog

__all__ = [
    "ProjectRole", "ApprovalStatus", "Decision", "RevisionType",
    "SuggestionAnchor", "SuggestionStatus", "ArtifactType",
    "User", "Project", "ProjectMember",
    "Artifact",
    "ApprovalStep", "ApprovalDecision", "ProjectApprover", "ApprovalDelegation",
    "ArtifactSuggestion",
    "ArtifactAuditLog",
]
