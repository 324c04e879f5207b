from __future__ import annotations

from dataclasses import replace

import pytest

from learnhub.core.errors import InvalidInputError, NotFoundError
from learnhub.repos.bundle import Repos
from learnhub.repos.project_repo import ProjectFilter
from learnhub.services import enrollment_service, progress_service, project_service
from learnhub.services.project_service import ResourceDraft, SubmissionDraft
from tests.conftest import import_project, make_draft, run


def test_import_creates_content(repos: Repos) -> None:
    video = ResourceDraft(title="Video", url="https://v.example", type="VIDEO")
    draft = replace(
        make_draft(steps=2, checklist_per_step=3),
        submission=SubmissionDraft(type="FILE", allowed_types=(".PDF",)),
    )
    draft = replace(
        draft, steps=(replace(draft.steps[0], resources=(video,)), draft.steps[1])
    )

    import_project(repos, draft)
    content = run(project_service.get_project(repos, "bridge-build"))

    assert [s.order for s in content.steps] == [1, 2]
    assert len(content.checklist) == 6
    assert [r.type for r in content.resources] == ["VIDEO"]
    assert content.submission_spec.allowed_types == ("pdf",)


def test_get_project_unknown_slug(repos: Repos) -> None:
    with pytest.raises(NotFoundError):
        run(project_service.get_project(repos, "missing"))


def test_import_rejects_inverted_class_range(repos: Repos) -> None:
    with pytest.raises(InvalidInputError):
        import_project(repos, replace(make_draft(), class_min=9, class_max=5))


def test_reimport_keeps_progress_on_surviving_steps(repos: Repos) -> None:
    import_project(repos, make_draft(steps=3))
    e = run(
        enrollment_service.create_enrollment(
            repos,
            project_slug="bridge-build",
            email="ada@example.com",
            name="Ada",
            school="Hill School",
            class_num=6,
        )
    )
    steps = run(repos.projects.list_steps(e.project_id))
    for s in steps:
        run(progress_service.set_step_completion(repos, e.id, s.id, True))

    project = import_project(repos, make_draft(steps=2))

    assert project.id == e.project_id
    kept = run(repos.projects.list_steps(project.id))
    assert [s.id for s in kept] == [s.id for s in steps[:2]]
    rows = run(repos.progress.list_for_enrollment(e.id))
    assert {r.step_id for r in rows} == {steps[0].id, steps[1].id}
    assert run(progress_service.compute_completion_percentage(repos, e.id)) == 100


def test_reimport_drops_progress_on_removed_checklist_items(repos: Repos) -> None:
    import_project(repos, make_draft(steps=1, checklist_per_step=3))
    e = run(
        enrollment_service.create_enrollment(
            repos,
            project_slug="bridge-build",
            email="ada@example.com",
            name="Ada",
            school="Hill School",
            class_num=6,
        )
    )
    step = run(repos.projects.list_steps(e.project_id))[0]
    items = run(repos.projects.list_checklist([step.id]))
    for item in items:
        run(progress_service.set_checklist_completion(repos, e.id, item.id, True))

    import_project(repos, make_draft(steps=1, checklist_per_step=1))

    rows = run(repos.progress.list_for_enrollment(e.id))
    assert [r.checklist_id for r in rows] == [items[0].id]


def test_list_projects_filters(repos: Repos) -> None:
    import_project(repos)
    import_project(
        repos,
        replace(
            make_draft("kite-flight"),
            class_min=10,
            class_max=12,
            level="ADVANCED",
            subjects=("Math",),
            tags=("outdoor",),
        ),
    )

    def slugs(**kw) -> list[str]:
        page = run(project_service.list_projects(repos, ProjectFilter(**kw)))
        return sorted(p.slug for p in page.items)

    assert slugs() == ["bridge-build", "kite-flight"]
    assert slugs(class_num=6) == ["bridge-build"]
    assert slugs(level="ADVANCED") == ["kite-flight"]
    assert slugs(subject="phys") == ["bridge-build"]
    assert slugs(tags=("outdoor", "nothing")) == ["kite-flight"]
    assert slugs(q="KITE") == ["kite-flight"]


def test_list_projects_pagination(repos: Repos) -> None:
    for i in range(3):
        import_project(repos, make_draft(f"project-{i}"))

    page = run(project_service.list_projects(repos, ProjectFilter(), page=2, page_size=2))

    assert page.total == 3
    assert page.total_pages == 2
    assert len(page.items) == 1


def test_sample_project_imports(repos: Repos) -> None:
    project = import_project(repos, project_service.SAMPLE_PROJECT)
    assert run(repos.projects.count_steps(project.id)) == 3
