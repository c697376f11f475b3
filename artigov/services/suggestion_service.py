"""Suggestion service — inline edit proposals and their application.

Owners, editors and active approvers propose; only owners and editors
apply or dismiss. Applying writes into the artifact:

    anchor=title              → the title becomes the suggested text
    content/general + range   → ``content[start:end)`` is replaced
    otherwise                 → a stamped block is appended to the content

A range is kept only while both offsets fall inside the current content;
it is checked when stored and again when applied, and a range that no
longer fits falls back to the appended block.
"""

import logging
import math
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..exceptions import ForbiddenError, StateError, ValidationError
from ..models import ArtifactSuggestion, SuggestionAnchor, SuggestionStatus
from ..models.suggestion import DEFAULT_STYLE
from ..repositories import ArtifactRepository, MembershipRepository, SuggestionRepository
from . import audit_service
from .permission_service import PermissionService, role_allows
from .transaction import unit_of_work
from .workflow_rules import ensure_editable, require_id, utcnow

logger = logging.getLogger(__name__)

_RANGE_ANCHORS = frozenset({SuggestionAnchor.CONTENT, SuggestionAnchor.GENERAL})


def checked_offset(value: Any, length: int) -> Optional[int]:
    """*value* truncated to an int if it lies within ``[0, length]``, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    offset = int(number)
    if offset < 0 or offset > length:
        return None
    return offset


def valid_range(anchor: SuggestionAnchor, start: Any, end: Any, content: str) -> Optional[tuple[int, int]]:
    """The ``(start, end)`` to store or splice, or None for append-only suggestions."""
    if anchor not in _RANGE_ANCHORS:
        return None
    rs = checked_offset(start, len(content))
    re_ = checked_offset(end, len(content))
    if rs is None or re_ is None or re_ < rs:
        return None
    return rs, re_


def splice(content: str, start: int, end: int, text: str) -> str:
    """Replace ``content[start:end)`` with *text*."""
    return content[:start] + text + content[end:]


def append_block(content: str, anchor: SuggestionAnchor, actor_id: str,
                 text: str, email: Optional[str] = None) -> str:
    stamp = utcnow().strftime("%Y-%m-%d %H:%M:%S UTC")
    who = f" ({email})" if email else ""
    return f"{content}\n\n---\nAPPLIED SUGGESTION [{anchor.value}] by {actor_id}{who} @ {stamp}\n{text}\n"


def parse_anchor(raw: Optional[str]) -> SuggestionAnchor:
    value = (raw or "content").strip().lower() or "content"
    try:
        return SuggestionAnchor(value)
    except ValueError:
        raise ValidationError(f"Invalid anchor: {value}", field="anchor") from None


def build_style(style: Optional[dict]) -> dict:
    merged = dict(DEFAULT_STYLE)
    if style:
        color = str(style.get("color") or "").strip()
        if color:
            merged["color"] = color
        merged["bold"] = bool(style.get("bold", False))
        merged["italic"] = bool(style.get("italic", False))
    return merged


class SuggestionService:
    """Deep module for suggestion add / apply / dismiss."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SuggestionRepository(db)
        self.artifacts = ArtifactRepository(db)
        self.members = MembershipRepository(db)
        self.permissions = PermissionService(db)

    def add_suggestion(
        self,
        project_id: str,
        artifact_id: str,
        actor_id: str,
        suggested_text: str,
        anchor: Optional[str] = None,
        range_start: Any = None,
        range_end: Any = None,
        style: Optional[dict] = None,
    ) -> ArtifactSuggestion:
        project_id = require_id(project_id, "project_id")
        artifact_id = require_id(artifact_id, "artifact_id")
        text = (suggested_text or "").strip()
        if not text:
            raise ValidationError("suggested_text is required.", field="suggested_text")
        parsed_anchor = parse_anchor(anchor)

        role = self.permissions.get_role(project_id, actor_id)
        if not (role_allows(role, "edit") or self.permissions.is_active_approver(project_id, actor_id)):
            raise ForbiddenError("Only owners, editors or active approvers can add suggestions.")
        artifact = self.artifacts.get_in_project(project_id, artifact_id)

        bounds = valid_range(parsed_anchor, range_start, range_end, artifact.content or "")
        with unit_of_work(self.db, artifact_id):
            suggestion = self.repo.create(
                project_id=project_id,
                artifact_id=artifact_id,
                actor_user_id=actor_id,
                anchor=parsed_anchor,
                range_start=bounds[0] if bounds else None,
                range_end=bounds[1] if bounds else None,
                suggested_text=text,
                style=build_style(style),
                status=SuggestionStatus.OPEN,
            )
            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=artifact_id,
                actor_id=actor_id,
                action="suggestion_add",
                after={
                    "suggestion_id": suggestion.id,
                    "anchor": parsed_anchor.value,
                    "range": list(bounds) if bounds else None,
                    "style": suggestion.style,
                },
            )

        logger.info(
            "Suggestion added",
            extra={"artifact_id": artifact_id, "suggestion_id": suggestion.id, "anchor": parsed_anchor.value},
        )
        return suggestion

    def apply_suggestion(
        self, project_id: str, artifact_id: str, suggestion_id: str, actor_id: str
    ) -> ArtifactSuggestion:
        """Write the suggestion into the artifact and mark it applied (no-op if already applied)."""
        project_id = require_id(project_id, "project_id")
        self.permissions.require(project_id, actor_id, "edit")

        with unit_of_work(self.db, suggestion_id):
            artifact = self.artifacts.get_in_project(project_id, artifact_id, for_update=True)
            suggestion = self.repo.get_for_artifact(artifact.id, suggestion_id)
            previous_status = SuggestionStatus(suggestion.status)
            if previous_status == SuggestionStatus.APPLIED:
                return suggestion
            ensure_editable(artifact)

            anchor = SuggestionAnchor(suggestion.anchor)
            before = {"title": artifact.title, "content": artifact.content}
            if anchor == SuggestionAnchor.TITLE:
                artifact.title = suggestion.suggested_text
                mode = "replace_title"
            else:
                content = artifact.content or ""
                bounds = (
                    valid_range(anchor, suggestion.range_start, suggestion.range_end, content)
                    if suggestion.has_range else None
                )
                if bounds is not None:
                    artifact.content = splice(content, bounds[0], bounds[1], suggestion.suggested_text)
                    mode = "range_replace"
                else:
                    user = self.members.get_user(actor_id)
                    artifact.content = append_block(
                        content, anchor, actor_id, suggestion.suggested_text,
                        email=user.email if user else None,
                    )
                    mode = "append"

            suggestion.status = SuggestionStatus.APPLIED
            suggestion.applied_at = utcnow()
            suggestion.applied_by = actor_id
            self.db.flush()

            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action="suggestion_apply",
                before={"suggestion_id": suggestion.id, "suggestion_status": previous_status.value,
                        "artifact": before},
                after={"suggestion_id": suggestion.id, "suggestion_status": SuggestionStatus.APPLIED.value,
                       "applied_mode": mode},
            )

        logger.info(
            "Suggestion applied",
            extra={"artifact_id": artifact_id, "suggestion_id": suggestion_id, "mode": mode},
        )
        return suggestion

    def dismiss_suggestion(
        self, project_id: str, artifact_id: str, suggestion_id: str, actor_id: str
    ) -> ArtifactSuggestion:
        """Mark a suggestion dismissed (no-op if already dismissed)."""
        project_id = require_id(project_id, "project_id")
        self.permissions.require(project_id, actor_id, "edit")

        with unit_of_work(self.db, suggestion_id):
            artifact = self.artifacts.get_in_project(project_id, artifact_id)
            suggestion = self.repo.get_for_artifact(artifact.id, suggestion_id)
            status = SuggestionStatus(suggestion.status)
            if status == SuggestionStatus.DISMISSED:
                return suggestion
            if status == SuggestionStatus.APPLIED:
                raise StateError(
                    "An applied suggestion cannot be dismissed.",
                    details={"suggestion_id": suggestion_id},
                )

            suggestion.status = SuggestionStatus.DISMISSED
            suggestion.dismissed_at = utcnow()
            suggestion.dismissed_by = actor_id
            self.db.flush()
            audit_service.record(
                self.db,
                project_id=project_id,
                artifact_id=artifact.id,
                actor_id=actor_id,
                action="suggestion_dismiss",
                before={"suggestion_id": suggestion.id, "status": status.value},
                after={"suggestion_id": suggestion.id, "status": SuggestionStatus.DISMISSED.value},
            )
        return suggestion

    def list_suggestions(
        self, project_id: str, artifact_id: str, actor_id: str, status: Optional[str] = None
    ) -> List[ArtifactSuggestion]:
        self.permissions.require(project_id, actor_id, "read")
        artifact = self.artifacts.get_in_project(project_id, artifact_id)
        parsed = None
        if status:
            try:
                parsed = SuggestionStatus(status.strip().lower())
            except ValueError:
                raise ValidationError(f"Invalid status: {status}", field="status") from None
        return self.repo.list_for_artifact(artifact.id, parsed)
