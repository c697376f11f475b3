"""Approval workflow endpoints: submit and decide, step and approver setup."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.approval import (
    ApprovalStatusResponse,
    ApproverCreate,
    ApproverResponse,
    DecisionRequest,
    StepProgressResponse,
    StepResponse,
    StepsUpdate,
)
from ..schemas.artifact import ArtifactResponse
from ..services import ApprovalService
from ..services.approval_service import StepDefinition

router = APIRouter(prefix="/api/projects/{project_id}", tags=["approvals"])


@router.post("/artifacts/{artifact_id}/submit", response_model=ArtifactResponse)
def submit_for_approval(
    project_id: str,
    artifact_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Lock the draft and open an approval round (resubmission re-opens voting)."""
    return ApprovalService(db).submit(project_id, artifact_id, auth.user_id)


@router.post("/artifacts/{artifact_id}/approve", response_model=ArtifactResponse)
def approve(
    project_id: str,
    artifact_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Approve at the current step; the final approval promotes a baseline."""
    return ApprovalService(db).approve(project_id, artifact_id, auth.user_id)


@router.post("/artifacts/{artifact_id}/request-changes", response_model=ArtifactResponse)
def request_changes(
    project_id: str,
    artifact_id: str,
    body: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApprovalService(db).request_changes(project_id, artifact_id, auth.user_id, body.reason if body else None)


@router.post("/artifacts/{artifact_id}/reject", response_model=ArtifactResponse)
def reject_final(
    project_id: str,
    artifact_id: str,
    body: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApprovalService(db).reject_final(project_id, artifact_id, auth.user_id, body.reason if body else None)


@router.get("/artifacts/{artifact_id}/approval", response_model=ApprovalStatusResponse)
def get_approval_status(
    project_id: str,
    artifact_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Step progress, current step and recorded decisions of an artifact."""
    status = ApprovalService(db).get_status(project_id, artifact_id, auth.user_id)
    status["steps"] = [
        StepProgressResponse(
            **StepResponse.model_validate(p.step).model_dump(),
            approved_count=p.approved_count,
            required=p.required,
            complete=p.complete,
        )
        for p in status["steps"]
    ]
    return status


@router.get("/approval-steps", response_model=List[StepResponse])
def list_steps(
    project_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApprovalService(db).list_steps(project_id, auth.user_id)


@router.put("/approval-steps", response_model=List[StepResponse])
def configure_steps(
    project_id: str,
    body: StepsUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Replace the ordered step list (owner only)."""
    definitions = [
        StepDefinition(step_name=s.step_name, requires_all=s.requires_all, min_approvals=s.min_approvals)
        for s in body.steps
    ]
    return ApprovalService(db).configure_steps(project_id, auth.user_id, definitions)


@router.get("/approvers", response_model=List[ApproverResponse])
def list_approvers(
    project_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApprovalService(db).list_approvers(project_id, auth.user_id)


@router.post("/approvers", response_model=ApproverResponse, status_code=201)
def add_approver(
    project_id: str,
    body: ApproverCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApprovalService(db).add_approver(project_id, auth.user_id, body.user_id)


@router.delete("/approvers/{user_id}", status_code=204)
def remove_approver(
    project_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    ApprovalService(db).remove_approver(project_id, auth.user_id, user_id)
