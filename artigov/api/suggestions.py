"""Suggestion endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.suggestion import SuggestionCreate, SuggestionResponse
from ..services import SuggestionService

router = APIRouter(
    prefix="/api/projects/{project_id}/artifacts/{artifact_id}/suggestions",
    tags=["suggestions"],
)


@router.get("", response_model=List[SuggestionResponse])
def list_suggestions(
    project_id: str,
    artifact_id: str,
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return SuggestionService(db).list_suggestions(project_id, artifact_id, auth.user_id, status)


@router.post("", response_model=SuggestionResponse, status_code=201)
def add_suggestion(
    project_id: str,
    artifact_id: str,
    body: SuggestionCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Propose an edit. Owners, editors and active approvers."""
    return SuggestionService(db).add_suggestion(
        project_id,
        artifact_id,
        auth.user_id,
        body.suggested_text,
        anchor=body.anchor,
        range_start=body.range_start,
        range_end=body.range_end,
        style=body.style.model_dump() if body.style else None,
    )


@router.post("/{suggestion_id}/apply", response_model=SuggestionResponse)
def apply_suggestion(
    project_id: str,
    artifact_id: str,
    suggestion_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Write the suggestion into the artifact (range splice, title, or appended block)."""
    return SuggestionService(db).apply_suggestion(project_id, artifact_id, suggestion_id, auth.user_id)


@router.post("/{suggestion_id}/dismiss", response_model=SuggestionResponse)
def dismiss_suggestion(
    project_id: str,
    artifact_id: str,
    suggestion_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return SuggestionService(db).dismiss_suggestion(project_id, artifact_id, suggestion_id, auth.user_id)
