"""Approval workflow schemas: decisions, steps, approvers, status view."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from ..models import ApprovalStatus, Decision


class DecisionRequest(BaseModel):
    """Body of request-changes / reject."""
    reason: Optional[str] = None


class StepConfig(BaseModel):
    step_name: str = Field(min_length=1, max_length=255)
    requires_all: bool = True
    min_approvals: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_quorum(self):
        if not self.requires_all and self.min_approvals is None:
            self.min_approvals = 1
        return self


class StepsUpdate(BaseModel):
    steps: List[StepConfig] = Field(min_length=1)


class StepResponse(BaseModel):
    id: str
    project_id: str
    step_order: int
    step_name: str
    requires_all: bool
    min_approvals: Optional[int] = None
    is_active: bool

    model_config = {"from_attributes": True}


class StepProgressResponse(StepResponse):
    approved_count: int
    required: int
    complete: bool


class DecisionResponse(BaseModel):
    id: str
    artifact_id: str
    step_id: str
    approver_user_id: str
    decided_by_user_id: str
    decision: Decision
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ApprovalStatusResponse(BaseModel):
    """Where an artifact stands in its approval chain."""
    artifact_id: str
    approval_status: ApprovalStatus
    is_locked: bool
    approver_count: int
    steps: List[StepProgressResponse]
    current_step_id: Optional[str] = None
    final_complete: bool
    decisions: List[DecisionResponse]
    can_decide: bool


class ApproverCreate(BaseModel):
    user_id: str = Field(min_length=1)


class ApproverResponse(BaseModel):
    project_id: str
    user_id: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
