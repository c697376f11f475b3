"""Artifact repository — lineage and current/baseline queries."""

from typing import List, Optional

from sqlalchemy import func

from ..models import Artifact, ArtifactType
from ..exceptions import ArtifactNotFoundError
from .base import BaseRepository


class ArtifactRepository(BaseRepository[Artifact]):
    """Repository for artifact rows."""

    model_class = Artifact
    not_found_error = ArtifactNotFoundError

    def get_in_project(self, project_id: str, artifact_id: str, for_update: bool = False) -> Artifact:
        """Get an artifact that must belong to *project_id*.

        A row from another project is reported exactly like a missing one.
        """
        query = self.db.query(Artifact).filter(
            Artifact.id == artifact_id,
            Artifact.project_id == project_id,
        )
        if for_update:
            query = query.with_for_update()
        artifact = query.first()
        if artifact is None:
            raise ArtifactNotFoundError(artifact_id)
        return artifact

    def get_current(
        self, project_id: str, artifact_type: ArtifactType, for_update: bool = False
    ) -> Optional[Artifact]:
        """The single current row of a type in a project, if any."""
        query = self.db.query(Artifact).filter(
            Artifact.project_id == project_id,
            Artifact.type == artifact_type,
            Artifact.is_current.is_(True),
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_current(self, project_id: str) -> List[Artifact]:
        return self.db.query(Artifact).filter(
            Artifact.project_id == project_id,
            Artifact.is_current.is_(True),
        ).order_by(Artifact.type).all()

    def list_lineage(self, root_id: str) -> List[Artifact]:
        """Every version of one logical document, oldest first."""
        return self.db.query(Artifact).filter(
            Artifact.root_artifact_id == root_id
        ).order_by(Artifact.version.asc()).all()

    def max_version(self, root_id: str) -> int:
        """Highest version in the lineage (0 for an empty lineage)."""
        value = self.db.query(func.max(Artifact.version)).filter(
            Artifact.root_artifact_id == root_id
        ).scalar()
        return int(value or 0)

    def get_baseline(self, root_id: str) -> Optional[Artifact]:
        return self.db.query(Artifact).filter(
            Artifact.root_artifact_id == root_id,
            Artifact.is_baseline.is_(True),
        ).first()

    def demote_current(self, project_id: str, artifact_type: ArtifactType) -> List[Artifact]:
        """Clear ``is_current`` on the (project, type) slot and flush.

        The flush must land before the replacement row is inserted, or the
        partial unique index would see two current rows.
        """
        rows = self.db.query(Artifact).filter(
            Artifact.project_id == project_id,
            Artifact.type == artifact_type,
            Artifact.is_current.is_(True),
        ).with_for_update().all()
        for row in rows:
            row.is_current = False
        self.db.flush()
        return rows

    def retire_baselines(self, project_id: str, artifact_type: ArtifactType) -> List[Artifact]:
        """Clear ``is_baseline`` on every baseline row of a type and flush."""
        rows = self.db.query(Artifact).filter(
            Artifact.project_id == project_id,
            Artifact.type == artifact_type,
            Artifact.is_baseline.is_(True),
        ).with_for_update().all()
        for row in rows:
            row.is_baseline = False
        self.db.flush()
        return rows

    def insert(self, **fields) -> Artifact:
        artifact = Artifact(**fields)
        self.db.add(artifact)
        self.db.flush()
        return artifact
