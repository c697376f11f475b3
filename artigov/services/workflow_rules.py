"""Pure workflow rules shared by the engines.

No database access here: every function takes plain values or an already
loaded row and either returns or raises. Status checks go through the
tables below so a new ApprovalStatus member has to be placed in each
table explicitly before any command accepts it.
"""

from datetime import datetime, timezone
from typing import Optional

from ..exceptions import NotEditableError, StateError, ValidationError
from ..models import ApprovalStatus, Artifact, ArtifactType, RevisionType

# Statuses whose content may be edited (and suggestions applied).
EDITABLE_STATUSES = frozenset({ApprovalStatus.DRAFT, ApprovalStatus.CHANGES_REQUESTED})

# Status transitions the approval workflow may perform.
TRANSITIONS: dict[str, dict[ApprovalStatus, ApprovalStatus]] = {
    "submit": {
        ApprovalStatus.DRAFT: ApprovalStatus.SUBMITTED,
        ApprovalStatus.CHANGES_REQUESTED: ApprovalStatus.SUBMITTED,
    },
    "approve": {ApprovalStatus.SUBMITTED: ApprovalStatus.APPROVED},
    "request_changes": {ApprovalStatus.SUBMITTED: ApprovalStatus.CHANGES_REQUESTED},
    "reject_final": {ApprovalStatus.SUBMITTED: ApprovalStatus.REJECTED},
}

# Revision types a caller may choose when revising explicitly.
CALLER_REVISION_TYPES = frozenset({RevisionType.REVISE, RevisionType.MATERIAL, RevisionType.MINOR})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_id(value: Optional[str], field: str) -> str:
    """Reject missing or blank identifiers."""
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing {field}", field=field)
    return str(value).strip()


def parse_artifact_type(raw: Optional[str]) -> ArtifactType:
    """Normalise a type string (case-insensitive) to an ArtifactType."""
    value = require_id(raw, "type").upper()
    try:
        return ArtifactType(value)
    except ValueError:
        raise ValidationError(f"Invalid artifact type: {value}", field="type") from None


def parse_revision_type(raw: Optional[str]) -> RevisionType:
    if raw is None or not raw.strip():
        return RevisionType.MATERIAL
    try:
        revision_type = RevisionType(raw.strip().lower())
    except ValueError:
        revision_type = None
    if revision_type not in CALLER_REVISION_TYPES:
        allowed = ", ".join(sorted(t.value for t in CALLER_REVISION_TYPES))
        raise ValidationError(f"revision_type must be one of: {allowed}", field="revision_type")
    return revision_type


def default_title(artifact_type: ArtifactType) -> str:
    """``PROJECT_CHARTER`` → ``Project Charter`` (WBS and RAID stay upper case)."""
    words = artifact_type.value.split("_")
    return " ".join(w if w in ("WBS", "RAID") else w.capitalize() for w in words)


def next_status(artifact: Artifact, action: str) -> ApprovalStatus:
    """Target status of *action*, or StateError if the current status forbids it."""
    current = ApprovalStatus(artifact.approval_status)
    target = TRANSITIONS[action].get(current)
    if target is None:
        allowed = ", ".join(s.value for s in TRANSITIONS[action])
        raise StateError(
            f"Cannot {action.replace('_', ' ')} an artifact in status '{current.value}' "
            f"(allowed: {allowed})",
            details={"artifact_id": artifact.id, "status": current.value, "action": action},
        )
    return target


def ensure_editable(artifact: Artifact) -> None:
    """Content edits need an unlocked, current row in draft/changes_requested."""
    if artifact.is_locked:
        raise NotEditableError(artifact.id, "Artifact is locked.")
    if ApprovalStatus(artifact.approval_status) not in EDITABLE_STATUSES:
        raise NotEditableError(artifact.id, "Only Draft / Changes Requested can be edited.")
    if not artifact.is_current:
        raise NotEditableError(artifact.id, "Only the current version can be edited.")


def ensure_not_under_review(artifact: Artifact) -> None:
    """A submitted (locked) current row cannot be superseded by a new draft."""
    if artifact.is_current and artifact.is_locked and \
            ApprovalStatus(artifact.approval_status) == ApprovalStatus.SUBMITTED:
        raise StateError(
            "The current version is under approval; decide on it before creating a new draft.",
            details={"artifact_id": artifact.id},
        )
