from __future__ import annotations

from uuid import uuid4

import pytest

from learnhub.core.errors import AccessDeniedError, NotFoundError
from learnhub.models.enrollment import Enrollment, Submission
from learnhub.models.group import GroupMember
from learnhub.repos.bundle import Repos
from learnhub.services import (
    activity_service,
    cascade_service,
    group_service,
    progress_service,
)
from tests.conftest import import_project, run, sample


def _owned_enrollment(repos: Repos, user_id) -> Enrollment:
    project = import_project(repos)
    e = Enrollment.new(
        project_id=project.id,
        email="ada@example.com",
        name="Ada",
        school="Hill School",
        class_num=6,
        user_id=user_id,
    )
    run(repos.enrollments.add(e))
    step = run(repos.projects.list_steps(project.id))[0]
    item = run(repos.projects.list_checklist([step.id]))[0]
    run(progress_service.set_step_completion(repos, e.id, step.id, True))
    run(progress_service.set_checklist_completion(repos, e.id, item.id, True))
    run(repos.submissions.add(Submission.new(enrollment_id=e.id, url_or_text="https://x.io")))
    run(activity_service.log_activity(repos, e.id, "PAGE_VIEW"))
    return e


def test_delete_enrollment_removes_everything(repos: Repos) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)

    run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert run(repos.enrollments.get(e.id)) is None
    assert run(repos.progress.list_for_enrollment(e.id)) == []
    assert run(repos.submissions.list_for_enrollment(e.id)) == []
    assert run(repos.activities.list_for_enrollment(e.id)) == []


def test_delete_enrollment_unknown(repos: Repos) -> None:
    with pytest.raises(NotFoundError, match="Enrollment not found"):
        run(cascade_service.delete_enrollment(repos, uuid4(), uuid4()))


def test_delete_enrollment_other_user_is_denied(repos: Repos) -> None:
    e = _owned_enrollment(repos, uuid4())

    with pytest.raises(AccessDeniedError):
        run(cascade_service.delete_enrollment(repos, e.id, uuid4()))

    assert run(repos.enrollments.get(e.id)) is not None
    assert len(run(repos.progress.list_for_enrollment(e.id))) == 2


def test_delete_enrollment_without_owner_is_denied(repos: Repos) -> None:
    e = _owned_enrollment(repos, None)
    with pytest.raises(AccessDeniedError):
        run(cascade_service.delete_enrollment(repos, e.id, uuid4()))


def test_purge_runs_in_fixed_order(repos: Repos, monkeypatch: pytest.MonkeyPatch) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)
    calls: list[str] = []

    def spy(name: str, target, attr: str) -> None:
        original = getattr(target, attr)

        async def wrapped(*args, **kwargs):
            calls.append(name)
            return await original(*args, **kwargs)

        monkeypatch.setattr(target, attr, wrapped)

    spy("progress", repos.progress, "delete_for_enrollment")
    spy("submissions", repos.submissions, "delete_for_enrollment")
    spy("activities", repos.activities, "delete_for_enrollment")
    spy("enrollment", repos.enrollments, "delete")

    run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert calls == ["progress", "submissions", "activities", "enrollment"]


def test_activity_deletion_failure_does_not_stop_purge(
    repos: Repos, monkeypatch: pytest.MonkeyPatch
) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)

    async def boom(_enrollment_id):
        raise RuntimeError("activity store down")

    monkeypatch.setattr(repos.activities, "delete_for_enrollment", boom)
    before = sample("best_effort_failures_total", {"operation": "delete_activities"})

    run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert run(repos.enrollments.get(e.id)) is None
    assert run(repos.progress.list_for_enrollment(e.id)) == []
    after = sample("best_effort_failures_total", {"operation": "delete_activities"})
    assert after == before + 1


def test_progress_deletion_failure_aborts_purge(
    repos: Repos, monkeypatch: pytest.MonkeyPatch
) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)

    async def boom(_enrollment_id):
        raise RuntimeError("progress store down")

    monkeypatch.setattr(repos.progress, "delete_for_enrollment", boom)

    with pytest.raises(RuntimeError):
        run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert run(repos.enrollments.get(e.id)) is not None


def test_orphaned_group_is_deleted(repos: Repos) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)
    group = run(
        group_service.add_member_to_enrollment(repos, e.id, user_id, GroupMember(name="Bo"))
    )

    run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert run(repos.groups.get(group.id)) is None


def test_shared_group_survives(repos: Repos) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)
    group = run(
        group_service.add_member_to_enrollment(repos, e.id, user_id, GroupMember(name="Bo"))
    )
    other = Enrollment.new(
        project_id=e.project_id,
        email="bo@example.com",
        name="Bo",
        school="Hill School",
        class_num=6,
    )
    run(repos.enrollments.add(other))
    run(repos.enrollments.set_group(other.id, group.id))

    run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert run(repos.groups.get(group.id)) is not None


def test_group_deletion_failure_is_best_effort(
    repos: Repos, monkeypatch: pytest.MonkeyPatch
) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)
    run(group_service.add_member_to_enrollment(repos, e.id, user_id, GroupMember(name="Bo")))

    async def boom(_group_id):
        raise RuntimeError("group store down")

    monkeypatch.setattr(repos.groups, "delete", boom)

    run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert run(repos.enrollments.get(e.id)) is None


def test_purge_counts_by_reason(repos: Repos) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)
    before = sample("enrollments_purged_total", {"reason": "unassign"})

    run(cascade_service.delete_enrollment(repos, e.id, user_id))

    assert sample("enrollments_purged_total", {"reason": "unassign"}) == before + 1


def test_purge_can_be_rerun(repos: Repos) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)
    group = run(
        group_service.add_member_to_enrollment(repos, e.id, user_id, GroupMember(name="Bo"))
    )
    e = run(repos.enrollments.get(e.id))

    run(cascade_service.purge_enrollment(repos, e, reason="unassign"))
    run(cascade_service.purge_enrollment(repos, e, reason="unassign"))

    assert run(repos.enrollments.get(e.id)) is None
    assert run(repos.groups.get(group.id)) is None
    assert run(repos.progress.list_for_enrollment(e.id)) == []
    assert run(repos.submissions.list_for_enrollment(e.id)) == []
    assert run(repos.activities.list_for_enrollment(e.id)) == []


def test_purge_finishes_an_interrupted_purge(repos: Repos) -> None:
    user_id = uuid4()
    e = _owned_enrollment(repos, user_id)
    group = run(
        group_service.add_member_to_enrollment(repos, e.id, user_id, GroupMember(name="Bo"))
    )
    e = run(repos.enrollments.get(e.id))
    run(repos.progress.delete_for_enrollment(e.id))
    run(repos.submissions.delete_for_enrollment(e.id))

    run(cascade_service.purge_enrollment(repos, e, reason="reconcile"))

    assert run(repos.enrollments.get(e.id)) is None
    assert run(repos.groups.get(group.id)) is None
    assert run(repos.activities.list_for_enrollment(e.id)) == []
