"""Project catalog: listing, lookup by slug, and import.

Import is an upsert keyed by slug.  Re-importing a project that already
has learners keeps the ids of steps and checklist items that still exist
(matched by position), so their progress survives; progress on steps or
items that disappeared is removed before the content is replaced.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, replace
from uuid import uuid4

from learnhub.core.errors import InvalidInputError, NotFoundError
from learnhub.models.page import Page
from learnhub.models.project import (
    ChecklistItem,
    Project,
    ProjectContent,
    Resource,
    Step,
    SubmissionSpec,
)
from learnhub.repos.bundle import Repos
from learnhub.repos.project_repo import ProjectFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResourceDraft:
    title: str
    url: str
    type: str = "LINK"


@dataclass(frozen=True, slots=True)
class StepDraft:
    title: str
    description: str = ""
    checklist: tuple[str, ...] = ()
    resources: tuple[ResourceDraft, ...] = ()


@dataclass(frozen=True, slots=True)
class SubmissionDraft:
    type: str
    instruction: str = ""
    allowed_types: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ProjectDraft:
    slug: str
    title: str
    short_desc: str
    class_min: int
    class_max: int
    level: str
    guidance: str
    duration_hrs: int
    long_desc: str = ""
    subjects: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    prerequisites: tuple[str, ...] = ()
    steps: tuple[StepDraft, ...] = ()
    submission: SubmissionDraft | None = None


async def list_projects(
    repos: Repos, flt: ProjectFilter, *, page: int = 1, page_size: int = 20
) -> Page[Project]:
    projects, total = await repos.projects.search(
        flt, offset=Page.offset_for(page, page_size), limit=page_size
    )
    return Page(items=projects, page=page, page_size=page_size, total=total)


async def get_project(repos: Repos, slug: str) -> ProjectContent:
    project = await repos.projects.get_by_slug(slug)
    if project is None:
        raise NotFoundError(f"Project with slug '{slug}' not found")
    steps = await repos.projects.list_steps(project.id)
    step_ids = [s.id for s in steps]
    return ProjectContent(
        project=project,
        steps=tuple(steps),
        checklist=tuple(await repos.projects.list_checklist(step_ids)),
        resources=tuple(await repos.projects.list_resources(step_ids)),
        submission_spec=await repos.projects.get_submission_spec(project.id),
    )


async def import_project(repos: Repos, draft: ProjectDraft) -> Project:
    if not draft.slug.strip():
        raise InvalidInputError("Slug is required")
    if draft.class_min > draft.class_max:
        raise InvalidInputError("class_min must not exceed class_max")

    now = datetime.datetime.now(datetime.UTC)
    existing = await repos.projects.get_by_slug(draft.slug)
    attrs = dict(
        title=draft.title,
        short_desc=draft.short_desc,
        long_desc=draft.long_desc,
        class_min=draft.class_min,
        class_max=draft.class_max,
        level=draft.level,
        guidance=draft.guidance,
        duration_hrs=draft.duration_hrs,
        subjects=draft.subjects,
        tags=draft.tags,
        tools=draft.tools,
        prerequisites=draft.prerequisites,
    )

    if existing is None:
        project = Project.new(slug=draft.slug, **attrs)
        await repos.projects.add(project)
        old_steps: list[Step] = []
        old_items: list[ChecklistItem] = []
    else:
        project = replace(existing, updated_at=now, **attrs)
        await repos.projects.update(project)
        old_steps = await repos.projects.list_steps(project.id)
        old_items = await repos.projects.list_checklist(s.id for s in old_steps)

    old_steps_by_order = {s.order: s for s in old_steps}
    steps: list[Step] = []
    checklist: list[ChecklistItem] = []
    resources: list[Resource] = []

    for order, step_draft in enumerate(draft.steps, start=1):
        prev = old_steps_by_order.get(order)
        step = Step(
            id=prev.id if prev is not None else uuid4(),
            project_id=project.id,
            order=order,
            title=step_draft.title,
            description=step_draft.description,
        )
        steps.append(step)

        prev_items = (
            {c.order: c for c in old_items if c.step_id == prev.id} if prev else {}
        )
        for item_order, text in enumerate(step_draft.checklist, start=1):
            prev_item = prev_items.get(item_order)
            checklist.append(
                ChecklistItem(
                    id=prev_item.id if prev_item is not None else uuid4(),
                    step_id=step.id,
                    order=item_order,
                    text=text,
                )
            )
        resources.extend(
            Resource.new(step_id=step.id, title=r.title, url=r.url, type=r.type)
            for r in step_draft.resources
        )

    removed_steps = {s.id for s in old_steps} - {s.id for s in steps}
    removed_items = {c.id for c in old_items} - {c.id for c in checklist}
    if removed_items:
        await repos.progress.delete_for_checklist_items(removed_items)
    if removed_steps:
        await repos.progress.delete_for_steps(removed_steps)

    await repos.projects.replace_content(project.id, steps, checklist, resources)

    spec = None
    if draft.submission is not None:
        spec = SubmissionSpec(
            project_id=project.id,
            type=draft.submission.type,
            instruction=draft.submission.instruction,
            allowed_types=tuple(t.lower().lstrip(".") for t in draft.submission.allowed_types),
        )
    await repos.projects.set_submission_spec(project.id, spec)

    logger.info(
        "Project %s  slug=%s steps=%d",
        "created" if existing is None else "updated",
        project.slug,
        len(steps),
    )
    return project


SAMPLE_PROJECT = ProjectDraft(
    slug="solar-oven",
    title="Build a Solar Oven",
    short_desc="Design, build and test a cardboard oven that cooks with sunlight.",
    long_desc="Learn how insulation, reflection and absorption trap heat.",
    class_min=6,
    class_max=9,
    level="BEGINNER",
    guidance="FULLY_GUIDED",
    duration_hrs=6,
    subjects=("Physics",),
    tags=("energy", "hands-on"),
    tools=("cardboard box", "aluminium foil", "thermometer"),
    steps=(
        StepDraft(
            title="Research",
            description="Read how solar cookers work.",
            checklist=("Watch the intro video", "Note three heat-trapping ideas"),
            resources=(
                ResourceDraft(
                    title="How solar cookers work",
                    url="https://en.wikipedia.org/wiki/Solar_cooker",
                ),
            ),
        ),
        StepDraft(
            title="Build",
            description="Assemble the oven.",
            checklist=("Line the flap with foil", "Seal the window with plastic"),
        ),
        StepDraft(
            title="Test",
            description="Measure the temperature every 10 minutes for an hour.",
            checklist=("Record readings in a table",),
        ),
    ),
    submission=SubmissionDraft(
        type="LINK", instruction="Share a link to photos of your oven and your readings."
    ),
)
