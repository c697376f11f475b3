"""Tests for holiday-cover delegations and seat resolution."""

from datetime import datetime, timedelta, timezone

import pytest

from artigov.exceptions import DelegationNotFoundError, ForbiddenError, ValidationError
from artigov.models import ApprovalDecision, ApprovalStatus
from artigov.services import ApprovalService, ArtifactService, DelegationService, PermissionService
from artigov.services.delegation_service import validate_window
from artigov.services.approval_service import StepDefinition
from tests.conftest import APPROVERS, EDITOR, OWNER, VIEWER


def _window(start_days=-1, end_days=1):
    now = datetime.now(timezone.utc)
    return now + timedelta(days=start_days), now + timedelta(days=end_days)


class TestValidateWindow:

    def test_self_delegation_rejected(self):
        starts, ends = _window()
        with pytest.raises(ValidationError):
            validate_window("appr-1", "appr-1", starts, ends)

    def test_inverted_window_rejected(self):
        starts, ends = _window()
        with pytest.raises(ValidationError):
            validate_window("appr-1", "viewer", ends, starts)

    def test_naive_datetimes_treated_as_utc(self):
        validate_window("appr-1", "viewer", datetime(2026, 1, 1), datetime(2026, 1, 2, tzinfo=timezone.utc))


class TestCreateDelegation:

    def test_owner_creates_cover(self, db, project_id):
        starts, ends = _window()
        delegation = DelegationService(db).create_delegation(
            project_id, OWNER, APPROVERS[0], VIEWER, starts, ends, reason="Holiday"
        )
        assert delegation.is_active is True
        assert delegation.created_by == OWNER
        assert delegation.reason == "Holiday"

    def test_editor_cannot_manage_delegations(self, db, project_id):
        starts, ends = _window()
        with pytest.raises(ForbiddenError):
            DelegationService(db).create_delegation(project_id, EDITOR, APPROVERS[0], VIEWER, starts, ends)

    def test_delegator_must_be_approver(self, db, project_id):
        starts, ends = _window()
        with pytest.raises(ValidationError):
            DelegationService(db).create_delegation(project_id, OWNER, EDITOR, VIEWER, starts, ends)

    def test_delegate_must_be_member(self, db, project_id):
        starts, ends = _window()
        with pytest.raises(ValidationError):
            DelegationService(db).create_delegation(project_id, OWNER, APPROVERS[0], "outsider", starts, ends)


class TestSeatResolution:

    def test_cover_active_inside_window(self, db, project_id):
        starts, ends = _window()
        DelegationService(db).create_delegation(project_id, OWNER, APPROVERS[0], VIEWER, starts, ends)

        seat = PermissionService(db).resolve_seat(project_id, VIEWER)
        assert seat.approver_user_id == APPROVERS[0]
        assert seat.on_behalf_of == APPROVERS[0]

    def test_cover_inactive_outside_window(self, db, project_id):
        starts, ends = _window(start_days=2, end_days=5)
        DelegationService(db).create_delegation(project_id, OWNER, APPROVERS[0], VIEWER, starts, ends)
        assert PermissionService(db).resolve_seat(project_id, VIEWER) is None

        inside = datetime.now(timezone.utc) + timedelta(days=3)
        assert PermissionService(db).resolve_seat(project_id, VIEWER, now=inside) is not None

    def test_direct_seat_wins(self, db, project_id):
        starts, ends = _window()
        DelegationService(db).create_delegation(project_id, OWNER, APPROVERS[0], APPROVERS[1], starts, ends)
        seat = PermissionService(db).resolve_seat(project_id, APPROVERS[1])
        assert seat.approver_user_id == APPROVERS[1]
        assert seat.on_behalf_of is None


class TestDelegatedVote:

    def test_delegate_votes_in_delegators_seat(self, db, project_id):
        ApprovalService(db).configure_steps(
            project_id, OWNER, [StepDefinition("Review", requires_all=False, min_approvals=1)]
        )
        starts, ends = _window()
        DelegationService(db).create_delegation(project_id, OWNER, APPROVERS[0], VIEWER, starts, ends)
        art = ArtifactService(db).create_artifact(project_id, EDITOR, "WBS")
        ApprovalService(db).submit(project_id, art.id, EDITOR)

        approved = ApprovalService(db).approve(project_id, art.id, VIEWER)

        assert approved.approval_status == ApprovalStatus.APPROVED
        decision = db.query(ApprovalDecision).filter(ApprovalDecision.artifact_id == art.id).one()
        assert decision.approver_user_id == APPROVERS[0]
        assert decision.decided_by_user_id == VIEWER

    def test_deleted_delegation_no_longer_covers(self, db, project_id):
        starts, ends = _window()
        svc = DelegationService(db)
        delegation = svc.create_delegation(project_id, OWNER, APPROVERS[0], VIEWER, starts, ends)

        disabled = svc.delete_delegation(project_id, delegation.id, OWNER)

        assert disabled.is_active is False
        assert PermissionService(db).resolve_seat(project_id, VIEWER) is None
        assert svc.list_delegations(project_id, VIEWER) == []
        assert len(svc.list_delegations(project_id, VIEWER, include_inactive=True)) == 1

    def test_delete_unknown_delegation(self, db, project_id):
        with pytest.raises(DelegationNotFoundError):
            DelegationService(db).delete_delegation(project_id, "missing", OWNER)
