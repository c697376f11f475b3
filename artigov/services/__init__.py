"""Business logic services."""

from .artifact_service import ArtifactService
from .approval_service import ApprovalService
from .baseline_service import BaselineService
from .suggestion_service import SuggestionService
from .delegation_service import DelegationService
from .permission_service import PermissionService

__all__ = [
    "ArtifactService",
    "ApprovalService",
    "BaselineService",
    "SuggestionService",
    "DelegationService",
    "PermissionService",
]
