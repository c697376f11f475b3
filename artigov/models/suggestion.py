"""Artifact suggestion model — inline edit proposals awaiting apply or dismiss."""

from sqlalchemy import Column, Index, String, Text, Integer, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.sql import func

from ..database import Base
from .enums import SuggestionAnchor, SuggestionStatus, enum_values
from .project import new_id

DEFAULT_STYLE = {"color": "#2563eb", "bold": False, "italic": False}


class ArtifactSuggestion(Base):
    """Artifact suggestions table.

    ``range_start``/``range_end`` are either both set (a validated
    half-open range into the content at creation time) or both NULL, in
    which case applying appends a stamped block instead of splicing.
    """

    __tablename__ = "artifact_suggestions"
    __table_args__ = (
        Index("ix_artifact_suggestions_artifact", "artifact_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    artifact_id = Column(String(36), ForeignKey("artifacts.id", ondelete="CASCADE"), nullable=False)
    actor_user_id = Column(String(50), nullable=False)

    anchor = Column(
        Enum(SuggestionAnchor, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=SuggestionAnchor.CONTENT,
    )
    range_start = Column(Integer, nullable=True)
    range_end = Column(Integer, nullable=True)
    suggested_text = Column(Text, nullable=False)
    style = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_STYLE))

    status = Column(
        Enum(SuggestionStatus, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=SuggestionStatus.OPEN,
    )
    applied_at = Column(DateTime(timezone=True), nullable=True)
    applied_by = Column(String(50), nullable=True)
    dismissed_at = Column(DateTime(timezone=True), nullable=True)
    dismissed_by = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def has_range(self) -> bool:
        return self.range_start is not None and self.range_end is not None
