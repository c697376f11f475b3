"""Delegation schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DelegationCreate(BaseModel):
    """Holiday cover: *to_user_id* holds *from_user_id*'s approver seat."""
    from_user_id: str
    to_user_id: str
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None


class DelegationResponse(BaseModel):
    id: str
    project_id: str
    from_user_id: str
    to_user_id: str
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None
    is_active: bool
    created_by: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
