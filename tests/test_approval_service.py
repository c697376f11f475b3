"""Unit tests for ApprovalService — steps, quorum, decisions and baselines."""

import pytest

from artigov.core.config import settings
from artigov.exceptions import ForbiddenError, NotFoundError, SelfApprovalError, StateError, ValidationError
from artigov.models import ApprovalDecision, ApprovalStatus, Artifact, ArtifactAuditLog, Decision, RevisionType
from artigov.services import ApprovalService, ArtifactService
from artigov.services.approval_service import StepDefinition, evaluate_steps, required_approvals
from tests.conftest import APPROVERS, EDITOR, OWNER, VIEWER, make_project


def _draft(db, project_id, author=EDITOR, artifact_type="PROJECT_CHARTER"):
    return ArtifactService(db).create_artifact(project_id, author, artifact_type, content="Goals")


def _submitted(db, project_id, author=EDITOR):
    art = _draft(db, project_id, author)
    ApprovalService(db).submit(project_id, art.id, author)
    return art


def _baselines(db, root_id):
    return db.query(Artifact).filter(
        Artifact.root_artifact_id == root_id, Artifact.is_baseline.is_(True)
    ).all()


class _Step:
    """Stand-in for an ApprovalStep row in the pure evaluation tests."""

    def __init__(self, id, requires_all=True, min_approvals=None):
        self.id = id
        self.requires_all = requires_all
        self.min_approvals = min_approvals


class TestEvaluateSteps:
    """Pure quorum evaluation, no database."""

    def test_requires_all_needs_every_approver(self):
        assert required_approvals(_Step("s1"), 3) == 3

    def test_min_approvals_floor_is_one(self):
        assert required_approvals(_Step("s1", requires_all=False, min_approvals=None), 5) == 1
        assert required_approvals(_Step("s1", requires_all=False, min_approvals=2), 5) == 2

    def test_current_is_first_incomplete_step(self):
        steps = [_Step("s1", requires_all=False, min_approvals=1), _Step("s2")]
        evaluation = evaluate_steps(steps, {"s1": 1, "s2": 1}, approver_count=3)
        assert evaluation.current.step.id == "s2"
        assert evaluation.final_complete is False

    def test_all_complete(self):
        steps = [_Step("s1", requires_all=False, min_approvals=1), _Step("s2")]
        evaluation = evaluate_steps(steps, {"s1": 1, "s2": 3}, approver_count=3)
        assert evaluation.current is None
        assert evaluation.final_complete is True


class TestSubmit:

    def test_submit_locks_and_creates_default_step(self, db, project_id):
        art = _submitted(db, project_id)
        assert art.approval_status == ApprovalStatus.SUBMITTED
        assert art.is_locked is True
        assert art.submitted_by == EDITOR

        steps = ApprovalService(db).list_steps(project_id, VIEWER)
        assert [s.step_name for s in steps] == [settings.default_step_name]
        assert steps[0].requires_all is True

    def test_double_submit_rejected(self, db, project_id):
        art = _submitted(db, project_id)
        with pytest.raises(StateError):
            ApprovalService(db).submit(project_id, art.id, EDITOR)

    def test_approver_cannot_submit(self, db, project_id):
        art = _draft(db, project_id)
        with pytest.raises(ForbiddenError):
            ApprovalService(db).submit(project_id, art.id, APPROVERS[0])

    def test_viewer_author_may_submit(self, db, project_id):
        # Authorship alone is enough to submit.
        art = _draft(db, project_id, author=OWNER)
        art.user_id = VIEWER
        db.commit()
        assert ApprovalService(db).submit(project_id, art.id, VIEWER).is_locked is True


class TestApprove:

    def test_all_approvers_needed(self, db, project_id):
        art = _submitted(db, project_id)
        svc = ApprovalService(db)

        svc.approve(project_id, art.id, APPROVERS[0])
        svc.approve(project_id, art.id, APPROVERS[1])
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.SUBMITTED

        svc.approve(project_id, art.id, APPROVERS[2])
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.APPROVED
        assert art.approved_by == APPROVERS[2]

    def test_repeat_approval_does_not_double_count(self, db, project_id):
        art = _submitted(db, project_id)
        svc = ApprovalService(db)
        svc.approve(project_id, art.id, APPROVERS[0])
        svc.approve(project_id, art.id, APPROVERS[0])
        svc.approve(project_id, art.id, APPROVERS[0])

        db.refresh(art)
        assert art.approval_status == ApprovalStatus.SUBMITTED
        assert db.query(ApprovalDecision).filter(ApprovalDecision.artifact_id == art.id).count() == 1

    def test_min_approvals_quorum(self, db, project_id):
        svc = ApprovalService(db)
        svc.configure_steps(project_id, OWNER, [StepDefinition("Review", requires_all=False, min_approvals=2)])
        art = _submitted(db, project_id)

        svc.approve(project_id, art.id, APPROVERS[0])
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.SUBMITTED
        svc.approve(project_id, art.id, APPROVERS[1])
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.APPROVED

    def test_self_approval_blocked(self, db, project_id):
        art = _draft(db, project_id, author=OWNER)
        art.user_id = APPROVERS[0]
        db.commit()
        ApprovalService(db).submit(project_id, art.id, OWNER)
        with pytest.raises(SelfApprovalError):
            ApprovalService(db).approve(project_id, art.id, APPROVERS[0])

    def test_non_approver_cannot_decide(self, db, project_id):
        art = _submitted(db, project_id)
        with pytest.raises(ForbiddenError):
            ApprovalService(db).approve(project_id, art.id, VIEWER)

    def test_approve_draft_is_state_error(self, db, project_id):
        art = _draft(db, project_id)
        with pytest.raises(StateError):
            ApprovalService(db).approve(project_id, art.id, APPROVERS[0])

    def test_editors_count_as_approvers_when_enabled(self, db, monkeypatch):
        monkeypatch.setattr(settings, "include_editors_as_approvers", True)
        project_id = make_project(db, approvers=APPROVERS[:1])
        art = _submitted(db, project_id, author=OWNER)
        svc = ApprovalService(db)

        svc.approve(project_id, art.id, APPROVERS[0])
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.SUBMITTED
        svc.approve(project_id, art.id, EDITOR)
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.APPROVED


class TestRequestChangesAndReject:

    def test_request_changes_unlocks(self, db, project_id):
        art = _submitted(db, project_id)
        result = ApprovalService(db).request_changes(project_id, art.id, APPROVERS[0], "Add budget")
        assert result.approval_status == ApprovalStatus.CHANGES_REQUESTED
        assert result.is_locked is False
        assert result.rejection_reason == "Add budget"
        assert result.rejected_by == APPROVERS[0]

        ArtifactService(db).update_content(art.id, EDITOR, "Goals and budget")

    def test_resubmission_clears_decisions(self, db, project_id):
        art = _submitted(db, project_id)
        svc = ApprovalService(db)
        svc.approve(project_id, art.id, APPROVERS[0])
        svc.request_changes(project_id, art.id, APPROVERS[1])

        resubmitted = svc.submit(project_id, art.id, EDITOR)
        assert resubmitted.approval_status == ApprovalStatus.SUBMITTED
        assert resubmitted.rejection_reason is None
        assert db.query(ApprovalDecision).filter(ApprovalDecision.artifact_id == art.id).count() == 0

        actions = [e.action for e in db.query(ArtifactAuditLog).filter(
            ArtifactAuditLog.artifact_id == art.id).order_by(ArtifactAuditLog.id)]
        assert actions[-1] == "resubmit"

    def test_reject_is_final(self, db, project_id):
        art = _submitted(db, project_id)
        svc = ApprovalService(db)
        rejected = svc.reject_final(project_id, art.id, APPROVERS[0], "Out of scope")
        assert rejected.approval_status == ApprovalStatus.REJECTED
        assert rejected.is_locked is False
        with pytest.raises(StateError):
            svc.submit(project_id, art.id, EDITOR)

    def test_decision_recorded_as_rejected(self, db, project_id):
        art = _submitted(db, project_id)
        ApprovalService(db).request_changes(project_id, art.id, APPROVERS[0], "Typo")
        decision = db.query(ApprovalDecision).filter(ApprovalDecision.artifact_id == art.id).one()
        assert decision.decision == Decision.REJECTED
        assert decision.reason == "Typo"


class TestBaseline:

    def test_two_step_chain_promotes_baseline(self, db, project_id):
        svc = ApprovalService(db)
        svc.configure_steps(project_id, OWNER, [
            StepDefinition("PMO check", requires_all=False, min_approvals=1),
            StepDefinition("Sponsor sign-off"),
        ])
        art = _submitted(db, project_id)

        svc.approve(project_id, art.id, APPROVERS[0])
        status = svc.get_status(project_id, art.id, VIEWER)
        assert status["current_step_id"] == status["steps"][1].step.id
        assert status["final_complete"] is False

        # Approvers may vote again at the next step.
        for approver in APPROVERS:
            svc.approve(project_id, art.id, approver)

        db.refresh(art)
        assert art.approval_status == ApprovalStatus.APPROVED
        assert art.is_current is False

        baseline = ArtifactService(db).get_diff(art.id, VIEWER)["baseline"]
        assert baseline.version == art.version + 1
        assert baseline.parent_artifact_id == art.id
        assert baseline.is_current is True
        assert baseline.is_locked is True
        assert baseline.revision_type == RevisionType.BASELINE
        assert baseline.content == art.content
        assert baseline.user_id == art.user_id

    def test_end_to_end_all_then_minimum(self, db):
        project_id = make_project(db, approvers=APPROVERS[:2])
        svc = ApprovalService(db)
        svc.configure_steps(project_id, OWNER, [
            StepDefinition("Core team"),
            StepDefinition("Sponsor", requires_all=False, min_approvals=1),
        ])
        art = _submitted(db, project_id)

        svc.approve(project_id, art.id, APPROVERS[0])
        svc.approve(project_id, art.id, APPROVERS[1])
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.SUBMITTED

        svc.approve(project_id, art.id, APPROVERS[0])
        db.refresh(art)
        assert art.approval_status == ApprovalStatus.APPROVED
        baselines = _baselines(db, art.id)
        assert len(baselines) == 1
        assert baselines[0].version == art.version + 1

    def test_reapproval_keeps_single_baseline(self, db, project_id):
        svc = ApprovalService(db)
        svc.configure_steps(project_id, OWNER, [StepDefinition("Quick", requires_all=False, min_approvals=1)])
        art = _submitted(db, project_id)
        svc.approve(project_id, art.id, APPROVERS[0])
        first = _baselines(db, art.id)[0]

        v3 = ArtifactService(db).revise_artifact(first.id, EDITOR, reason="Phase 2")
        svc.submit(project_id, v3.id, EDITOR)
        svc.approve(project_id, v3.id, APPROVERS[1])

        baselines = _baselines(db, art.id)
        assert len(baselines) == 1
        assert baselines[0].parent_artifact_id == v3.id
        assert baselines[0].version == 4


class TestConfiguration:

    def test_only_owner_configures(self, db, project_id):
        with pytest.raises(ForbiddenError):
            ApprovalService(db).configure_steps(project_id, EDITOR, [StepDefinition("X")])

    def test_empty_step_list_rejected(self, db, project_id):
        with pytest.raises(ValidationError):
            ApprovalService(db).configure_steps(project_id, OWNER, [])

    def test_reconfigure_keeps_steps_with_votes(self, db, project_id):
        svc = ApprovalService(db)
        art = _submitted(db, project_id)
        svc.approve(project_id, art.id, APPROVERS[0])

        steps = svc.configure_steps(project_id, OWNER, [StepDefinition("New")])
        assert [s.step_order for s in steps] == [1]
        assert db.query(ApprovalDecision).filter(ApprovalDecision.artifact_id == art.id).count() == 1

    def test_add_and_remove_approver(self, db, project_id):
        svc = ApprovalService(db)
        approver = svc.add_approver(project_id, OWNER, EDITOR)
        assert approver.is_active is True
        svc.remove_approver(project_id, OWNER, EDITOR)
        assert EDITOR not in {a.user_id for a in svc.list_approvers(project_id, VIEWER) if a.is_active}

    def test_approver_must_be_member(self, db, project_id):
        with pytest.raises(ValidationError):
            ApprovalService(db).add_approver(project_id, OWNER, "outsider")

    def test_remove_unknown_approver(self, db, project_id):
        with pytest.raises(NotFoundError):
            ApprovalService(db).remove_approver(project_id, OWNER, VIEWER)
