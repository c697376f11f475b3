"""API routes."""

from .artifacts import router as artifacts_router, project_artifacts_router
from .approvals import router as approvals_router
from .suggestions import router as suggestions_router
from .delegations import router as delegations_router

__all__ = [
    "artifacts_router",
    "project_artifacts_router",
    "approvals_router",
    "suggestions_router",
    "delegations_router",
]
