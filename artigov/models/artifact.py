"""Artifact model — one row per version of a governed project document.

Rows are append-only per lineage. The only in-place flips on history are
the ``is_current`` and ``is_baseline`` demotions, which the two partial
unique indexes below turn into database-enforced invariants: a concurrent
writer that loses the race fails at flush instead of leaving two current
rows behind.
"""

from sqlalchemy import (
    Column, Index, String, Text, Integer, DateTime, Boolean, Enum, ForeignKey, JSON, text,
)
from sqlalchemy.sql import func

from ..database import Base
from .enums import ApprovalStatus, ArtifactType, RevisionType, enum_values
from .project import new_id


class Artifact(Base):
    """Artifacts table (every version of every document type)."""

    __tablename__ = "artifacts"
    __table_args__ = (
        Index("ix_artifacts_project_type", "project_id", "type"),
        Index("ix_artifacts_root", "root_artifact_id"),
        # At most one current row per (project, type).
        Index(
            "uq_artifacts_one_current_per_type",
            "project_id", "type",
            unique=True,
            sqlite_where=text("is_current = 1"),
            postgresql_where=text("is_current"),
        ),
        # At most one baseline row per lineage.
        Index(
            "uq_artifacts_one_baseline_per_lineage",
            "root_artifact_id",
            unique=True,
            sqlite_where=text("is_baseline = 1"),
            postgresql_where=text("is_baseline"),
        ),
        # Version numbers never repeat inside a lineage.
        Index("uq_artifacts_lineage_version", "root_artifact_id", "version", unique=True),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), ForeignKey("users.user_id"), nullable=False)  # author of this row

    type = Column(
        Enum(ArtifactType, native_enum=False, values_callable=enum_values, length=50),
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    content_json = Column(JSON, nullable=True)

    # Lineage
    version = Column(Integer, nullable=False, default=1)
    root_artifact_id = Column(String(36), ForeignKey("artifacts.id"), nullable=True)  # backfilled on v1
    parent_artifact_id = Column(String(36), ForeignKey("artifacts.id"), nullable=True)
    revision_type = Column(
        Enum(RevisionType, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=RevisionType.CREATE,
    )
    revision_reason = Column(Text, nullable=True)

    # Workflow state
    approval_status = Column(
        Enum(ApprovalStatus, native_enum=False, values_callable=enum_values, length=30),
        nullable=False,
        default=ApprovalStatus.DRAFT,
    )
    is_locked = Column(Boolean, nullable=False, default=False)
    is_current = Column(Boolean, nullable=False, default=True)
    is_baseline = Column(Boolean, nullable=False, default=False)

    locked_at = Column(DateTime(timezone=True), nullable=True)
    locked_by = Column(String(50), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    submitted_by = Column(String(50), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(50), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(50), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def lineage_root(self) -> str:
        """Root of this row's lineage (its own id before the backfill lands)."""
        return self.root_artifact_id or self.id
