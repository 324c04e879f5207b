from __future__ import annotations

import datetime
from uuid import uuid4

import pytest

from learnhub.core.errors import NotFoundError
from learnhub.models.enrollment import Enrollment
from learnhub.repos.bundle import Repos
from learnhub.services import enrollment_service, progress_service
from tests.conftest import import_project, make_draft, run


def _enroll(repos: Repos, slug: str = "bridge-build", **kw) -> Enrollment:
    return run(
        enrollment_service.create_enrollment(
            repos,
            project_slug=slug,
            email=kw.pop("email", "ada@example.com"),
            name="Ada",
            school="Hill School",
            class_num=6,
            **kw,
        )
    )


def _steps(repos: Repos, enrollment: Enrollment):
    return run(repos.projects.list_steps(enrollment.project_id))


# ---- round_half_up / percentage ----


@pytest.mark.parametrize(
    ("done", "total", "expected"),
    [(0, 4, 0), (1, 4, 25), (1, 8, 13), (3, 8, 38), (1, 3, 33), (2, 3, 67), (4, 4, 100)],
)
def test_percentage_rounds_half_up(done: int, total: int, expected: int) -> None:
    assert progress_service.percentage(done, total) == expected


def test_percentage_is_zero_without_steps() -> None:
    assert progress_service.percentage(0, 0) == 0


# ---- set_step_completion ----


def test_set_step_completion_is_idempotent(repos: Repos) -> None:
    import_project(repos)
    e = _enroll(repos)
    step = _steps(repos, e)[0]

    run(progress_service.set_step_completion(repos, e.id, step.id, True))
    run(progress_service.set_step_completion(repos, e.id, step.id, True))

    rows = run(repos.progress.list_for_enrollment(e.id))
    assert len(rows) == 1
    assert rows[0].completed is True
    assert rows[0].checklist_id is None


def test_set_step_completion_can_be_undone(repos: Repos) -> None:
    import_project(repos)
    e = _enroll(repos)
    step = _steps(repos, e)[0]

    run(progress_service.set_step_completion(repos, e.id, step.id, True))
    run(progress_service.set_step_completion(repos, e.id, step.id, False))

    rows = run(repos.progress.list_for_enrollment(e.id))
    assert [r.completed for r in rows] == [False]
    assert run(progress_service.compute_completion_percentage(repos, e.id)) == 0


def test_set_step_completion_unknown_enrollment(repos: Repos) -> None:
    with pytest.raises(NotFoundError, match="Enrollment not found"):
        run(progress_service.set_step_completion(repos, uuid4(), uuid4(), True))


def test_set_step_completion_rejects_step_of_other_project(repos: Repos) -> None:
    import_project(repos)
    other = import_project(repos, make_draft("kite-flight"))
    e = _enroll(repos)
    foreign_step = run(repos.projects.list_steps(other.id))[0]

    with pytest.raises(NotFoundError, match="Step not found"):
        run(progress_service.set_step_completion(repos, e.id, foreign_step.id, True))


# ---- set_checklist_completion ----


def test_checklist_completion_keeps_one_row_per_item(repos: Repos) -> None:
    import_project(repos)
    e = _enroll(repos)
    step = _steps(repos, e)[0]
    item = run(repos.projects.list_checklist([step.id]))[0]

    run(progress_service.set_checklist_completion(repos, e.id, item.id, True))
    run(progress_service.set_checklist_completion(repos, e.id, item.id, False))
    run(progress_service.set_checklist_completion(repos, e.id, item.id, True))

    rows = run(repos.progress.list_for_enrollment(e.id))
    assert len(rows) == 1
    assert rows[0].checklist_id == item.id
    assert rows[0].step_id == step.id
    assert rows[0].completed is True


def test_checklist_row_does_not_collide_with_step_row(repos: Repos) -> None:
    import_project(repos)
    e = _enroll(repos)
    step = _steps(repos, e)[0]
    item = run(repos.projects.list_checklist([step.id]))[0]

    run(progress_service.set_step_completion(repos, e.id, step.id, True))
    run(progress_service.set_checklist_completion(repos, e.id, item.id, False))

    rows = run(repos.progress.list_for_enrollment(e.id))
    assert len(rows) == 2
    assert run(progress_service.compute_completion_percentage(repos, e.id)) == 25


def test_checklist_completion_unknown_item(repos: Repos) -> None:
    import_project(repos)
    e = _enroll(repos)
    with pytest.raises(NotFoundError, match="Checklist item not found"):
        run(progress_service.set_checklist_completion(repos, e.id, uuid4(), True))


def test_ticking_every_checklist_item_does_not_complete_the_step(repos: Repos) -> None:
    import_project(repos)
    e = _enroll(repos)
    steps = _steps(repos, e)
    for item in run(repos.projects.list_checklist(s.id for s in steps)):
        run(progress_service.set_checklist_completion(repos, e.id, item.id, True))

    assert run(progress_service.compute_completion_percentage(repos, e.id)) == 0


# ---- compute_completion_percentage ----


def test_completion_percentage_counts_completed_steps(repos: Repos) -> None:
    import_project(repos, make_draft(steps=8))
    e = _enroll(repos)
    steps = _steps(repos, e)

    run(progress_service.set_step_completion(repos, e.id, steps[0].id, True))
    assert run(progress_service.compute_completion_percentage(repos, e.id)) == 13

    for s in steps[1:3]:
        run(progress_service.set_step_completion(repos, e.id, s.id, True))
    assert run(progress_service.compute_completion_percentage(repos, e.id)) == 38


def test_completion_percentage_zero_steps(repos: Repos) -> None:
    import_project(repos, make_draft(steps=0))
    e = _enroll(repos)
    assert run(progress_service.compute_completion_percentage(repos, e.id)) == 0


def test_completion_percentage_unknown_enrollment(repos: Repos) -> None:
    with pytest.raises(NotFoundError):
        run(progress_service.compute_completion_percentage(repos, uuid4()))


def test_summarize_progress_counts_checklists(repos: Repos) -> None:
    import_project(repos, make_draft(steps=2, checklist_per_step=3))
    e = _enroll(repos)
    steps = _steps(repos, e)
    item = run(repos.projects.list_checklist([steps[1].id]))[0]

    run(progress_service.set_step_completion(repos, e.id, steps[0].id, True))
    run(progress_service.set_checklist_completion(repos, e.id, item.id, True))

    summary = run(progress_service.summarize_progress(repos, e))
    assert summary.completed_steps == 1
    assert summary.total_steps == 2
    assert summary.completion_percentage == 50
    assert summary.completed_checklists == 1
    assert summary.total_checklists == 6


# ---- reconcile_duplicate_enrollments ----


def _enroll_at(repos: Repos, project_id, user_id, at: datetime.datetime) -> Enrollment:
    e = Enrollment.new(
        project_id=project_id,
        email="ada@example.com",
        name="Ada",
        school="Hill School",
        class_num=6,
        user_id=user_id,
        created_at=at,
    )
    run(repos.enrollments.add(e))
    return e


def test_reconcile_breaks_created_at_ties_by_id(repos: Repos) -> None:
    project = import_project(repos)
    user_id = uuid4()
    at = datetime.datetime(2026, 3, 1, tzinfo=datetime.UTC)
    twins = [_enroll_at(repos, project.id, user_id, at) for _ in range(3)]

    run(progress_service.reconcile_duplicate_enrollments(repos, user_id))

    (kept,) = run(repos.enrollments.list_for_user(user_id))
    assert kept.id == min(e.id for e in twins)


def test_reconcile_keeps_only_the_newest(repos: Repos) -> None:
    project = import_project(repos)
    user_id = uuid4()
    base = datetime.datetime(2026, 3, 1, tzinfo=datetime.UTC)
    old = _enroll_at(repos, project.id, user_id, base)
    mid = _enroll_at(repos, project.id, user_id, base + datetime.timedelta(days=1))
    new = _enroll_at(repos, project.id, user_id, base + datetime.timedelta(days=2))

    step = run(repos.projects.list_steps(project.id))[0]
    run(progress_service.set_step_completion(repos, old.id, step.id, True))

    purged = run(progress_service.reconcile_duplicate_enrollments(repos, user_id))

    assert set(purged) == {old.id, mid.id}
    remaining = run(repos.enrollments.list_for_user(user_id))
    assert [e.id for e in remaining] == [new.id]
    assert run(repos.progress.list_for_enrollment(old.id)) == []


def test_reconcile_is_idempotent(repos: Repos) -> None:
    project = import_project(repos)
    user_id = uuid4()
    base = datetime.datetime(2026, 3, 1, tzinfo=datetime.UTC)
    _enroll_at(repos, project.id, user_id, base)
    _enroll_at(repos, project.id, user_id, base + datetime.timedelta(hours=1))

    assert len(run(progress_service.reconcile_duplicate_enrollments(repos, user_id))) == 1
    assert run(progress_service.reconcile_duplicate_enrollments(repos, user_id)) == []


def test_reconcile_noop_for_single_or_no_enrollment(repos: Repos) -> None:
    project = import_project(repos)
    user_id = uuid4()
    assert run(progress_service.reconcile_duplicate_enrollments(repos, user_id)) == []

    only = _enroll_at(repos, project.id, user_id, datetime.datetime.now(datetime.UTC))
    assert run(progress_service.reconcile_duplicate_enrollments(repos, user_id)) == []
    assert run(repos.enrollments.get(only.id)) is not None


def test_reconcile_all_users(repos: Repos) -> None:
    project = import_project(repos)
    base = datetime.datetime(2026, 3, 1, tzinfo=datetime.UTC)
    alice, bob = uuid4(), uuid4()
    for i in range(3):
        _enroll_at(repos, project.id, alice, base + datetime.timedelta(hours=i))
    _enroll_at(repos, project.id, bob, base)

    purged = run(progress_service.reconcile_all_users(repos))

    assert set(purged) == {alice}
    assert len(purged[alice]) == 2
    assert len(run(repos.enrollments.list_for_user(bob))) == 1
