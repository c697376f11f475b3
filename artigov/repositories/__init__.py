"""Data access repositories."""

from .base import BaseRepository
from .artifact_repository import ArtifactRepository
from .approval_repository import ApprovalRepository
from .delegation_repository import DelegationRepository
from .suggestion_repository import SuggestionRepository
from .membership_repository import MembershipRepository

__all__ = [
    "BaseRepository",
    "ArtifactRepository",
    "ApprovalRepository",
    "DelegationRepository",
    "SuggestionRepository",
    "MembershipRepository",
]
