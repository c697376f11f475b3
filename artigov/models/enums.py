"""Closed value sets used across the workflow.

Stored as plain strings in the database; every service compares against
these members, never against string literals.
"""

from enum import Enum


class ProjectRole(str, Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class ApprovalStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CHANGES_REQUESTED = "changes_requested"


class Decision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class RevisionType(str, Enum):
    CREATE = "create"
    REVISE = "revise"
    MATERIAL = "material"
    MINOR = "minor"
    RESTORE = "restore"
    BASELINE = "baseline"


class SuggestionAnchor(str, Enum):
    TITLE = "title"
    CONTENT = "content"
    GENERAL = "general"


class SuggestionStatus(str, Enum):
    OPEN = "open"
    APPLIED = "applied"
    DISMISSED = "dismissed"


class ArtifactType(str, Enum):
    """Document types a project can hold one current artifact of."""

    PROJECT_CHARTER = "PROJECT_CHARTER"
    CLOSURE_REPORT = "CLOSURE_REPORT"
    WBS = "WBS"
    CHANGE_REQUEST = "CHANGE_REQUEST"
    STAKEHOLDER_REGISTER = "STAKEHOLDER_REGISTER"
    RAID_LOG = "RAID_LOG"
    WEEKLY_REPORT = "WEEKLY_REPORT"
    FINANCIAL_PLAN = "FINANCIAL_PLAN"
    SCHEDULE = "SCHEDULE"
    LESSONS_LEARNED = "LESSONS_LEARNED"


def enum_values(enum_cls) -> list[str]:
    """Column ``values_callable`` so the database stores member values, not names."""
    return [member.value for member in enum_cls]
