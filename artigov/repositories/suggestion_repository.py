"""Suggestion repository."""

from typing import List, Optional

from ..models import ArtifactSuggestion, SuggestionStatus
from ..exceptions import SuggestionNotFoundError
from .base import BaseRepository


class SuggestionRepository(BaseRepository[ArtifactSuggestion]):
    """Repository for artifact suggestions."""

    model_class = ArtifactSuggestion
    not_found_error = SuggestionNotFoundError

    def get_for_artifact(self, artifact_id: str, suggestion_id: str) -> ArtifactSuggestion:
        """Get a suggestion that must belong to *artifact_id*, locked for update."""
        suggestion = self.db.query(ArtifactSuggestion).filter(
            ArtifactSuggestion.id == suggestion_id,
            ArtifactSuggestion.artifact_id == artifact_id,
        ).with_for_update().first()
        if suggestion is None:
            raise SuggestionNotFoundError(suggestion_id)
        return suggestion

    def list_for_artifact(
        self, artifact_id: str, status: Optional[SuggestionStatus] = None
    ) -> List[ArtifactSuggestion]:
        query = self.db.query(ArtifactSuggestion).filter(ArtifactSuggestion.artifact_id == artifact_id)
        if status is not None:
            query = query.filter(ArtifactSuggestion.status == status)
        return query.order_by(ArtifactSuggestion.created_at.asc()).all()

    def create(self, **fields) -> ArtifactSuggestion:
        suggestion = ArtifactSuggestion(**fields)
        self.db.add(suggestion)
        self.db.flush()
        return suggestion
