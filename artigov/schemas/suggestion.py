"""Suggestion schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..models import SuggestionAnchor, SuggestionStatus


class SuggestionStyle(BaseModel):
    color: str = "#2563eb"
    bold: bool = False
    italic: bool = False


class SuggestionCreate(BaseModel):
    suggested_text: str
    anchor: Optional[str] = "content"  # title | content | general
    range_start: Optional[int] = None
    range_end: Optional[int] = None
    style: Optional[SuggestionStyle] = None


class SuggestionResponse(BaseModel):
    id: str
    project_id: str
    artifact_id: str
    actor_user_id: str
    anchor: SuggestionAnchor
    range_start: Optional[int] = None
    range_end: Optional[int] = None
    suggested_text: str
    style: SuggestionStyle
    status: SuggestionStatus
    applied_at: Optional[datetime] = None
    applied_by: Optional[str] = None
    dismissed_at: Optional[datetime] = None
    dismissed_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
