"""Membership repository — projects, users and per-project roles."""

from typing import List, Optional

from ..models import Project, ProjectMember, ProjectRole, User
from ..exceptions import ProjectNotFoundError
from .base import BaseRepository


class MembershipRepository(BaseRepository[Project]):
    """Read access to projects and their members."""

    model_class = Project
    not_found_error = ProjectNotFoundError

    def get_member(self, project_id: str, user_id: str) -> Optional[ProjectMember]:
        return self.db.query(ProjectMember).filter(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        ).first()

    def user_ids_with_role(self, project_id: str, role: ProjectRole) -> List[str]:
        rows = self.db.query(ProjectMember.user_id).filter(
            ProjectMember.project_id == project_id,
            ProjectMember.role == role,
        ).all()
        return [user_id for (user_id,) in rows]

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.user_id == user_id).first()
