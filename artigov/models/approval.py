"""Approval workflow tables: steps, decisions, approvers and delegations."""

from sqlalchemy import (
    Column, Index, String, Text, Integer, DateTime, Boolean, Enum, ForeignKey, UniqueConstraint,
)
from sqlalchemy.sql import func

from ..database import Base
from .enums import Decision, enum_values
from .project import new_id


class ApprovalStep(Base):
    """One ordered gate of a project's approval chain.

    Quorum:
        requires_all=True  — every active project approver must approve
        requires_all=False — ``max(1, min_approvals)`` approvals suffice
    """

    __tablename__ = "approval_steps"
    __table_args__ = (
        Index("ix_approval_steps_project_order", "project_id", "step_order"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    step_order = Column(Integer, nullable=False, default=1)
    step_name = Column(String(255), nullable=False)
    requires_all = Column(Boolean, nullable=False, default=True)
    min_approvals = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ApprovalDecision(Base):
    """A single approver's vote on one step of one artifact.

    Unique per (artifact, step, approver); a re-vote overwrites. When a
    delegate votes under holiday cover, ``approver_user_id`` is the covered
    approver and ``decided_by_user_id`` the delegate who actually acted.
    """

    __tablename__ = "approval_decisions"
    __table_args__ = (
        UniqueConstraint(
            "artifact_id", "step_id", "approver_user_id",
            name="uq_approval_decisions_artifact_step_approver",
        ),
        Index("ix_approval_decisions_artifact", "artifact_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    artifact_id = Column(String(36), ForeignKey("artifacts.id", ondelete="CASCADE"), nullable=False)
    step_id = Column(String(36), ForeignKey("approval_steps.id", ondelete="CASCADE"), nullable=False)
    approver_user_id = Column(String(50), nullable=False)
    decided_by_user_id = Column(String(50), nullable=False)
    decision = Column(
        Enum(Decision, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
    )
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ProjectApprover(Base):
    """Membership of the approver pool; active rows form the quorum denominator."""

    __tablename__ = "project_approvers"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_approvers_project_user"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ApprovalDelegation(Base):
    """Holiday cover: ``to_user_id`` holds ``from_user_id``'s approver seat
    for ``[starts_at, ends_at]``. Deleting a delegation only deactivates it.
    """

    __tablename__ = "approval_delegations"
    __table_args__ = (
        Index("ix_approval_delegations_project_to", "project_id", "to_user_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    from_user_id = Column(String(50), nullable=False)
    to_user_id = Column(String(50), nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    reason = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
