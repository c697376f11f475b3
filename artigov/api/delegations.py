"""Delegation (holiday cover) endpoints. Owners manage, members read."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.delegation import DelegationCreate, DelegationResponse
from ..services import DelegationService

router = APIRouter(prefix="/api/projects/{project_id}/delegations", tags=["delegations"])


@router.get("", response_model=List[DelegationResponse])
def list_delegations(
    project_id: str,
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return DelegationService(db).list_delegations(project_id, auth.user_id, include_inactive)


@router.post("", response_model=DelegationResponse, status_code=201)
def create_delegation(
    project_id: str,
    body: DelegationCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return DelegationService(db).create_delegation(
        project_id,
        auth.user_id,
        body.from_user_id,
        body.to_user_id,
        body.starts_at,
        body.ends_at,
        reason=body.reason,
    )


@router.delete("/{delegation_id}", response_model=DelegationResponse)
def delete_delegation(
    project_id: str,
    delegation_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Disable a delegation; the row is kept for the audit trail."""
    return DelegationService(db).delete_delegation(project_id, delegation_id, auth.user_id)
