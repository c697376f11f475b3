"""User, Project and ProjectMember models.

Rows here are provisioned by the external administration surface; the
workflow only reads them to resolve who may do what in a project.
"""

import uuid

from sqlalchemy import Column, String, DateTime, Boolean, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .enums import ProjectRole, enum_values


def new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """An identity known to the engine (issued externally)."""

    __tablename__ = "users"

    user_id = Column(String(50), primary_key=True)
    display_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), unique=True, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Project(Base):
    """A project owns every artifact, step, approver and delegation."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")


class ProjectMember(Base):
    """Membership row carrying the caller's role inside one project.

    Roles:
        owner  — full control, including approval configuration and delegations
        editor — may author, edit, submit and apply suggestions
        viewer — read only
    """

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    role = Column(
        Enum(ProjectRole, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=ProjectRole.VIEWER,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="members")
