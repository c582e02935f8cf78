"""Queries and writes for projects, milestones and notes.

Functions only flush; the caller owns the transaction and commits once, so a
plan's project row and all of its milestone rows land together or not at all.
"""

from __future__ import annotations

import json
import logging
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from micelion.database.models import Milestone, Note, Project, utcnow
from micelion.schemas import (
    MilestoneResponse,
    MilestoneStatus,
    Plan,
    ProjectDetailResponse,
    ProjectResponse,
    Resource,
    SkillResources,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Projects & Milestones
# =============================================================================

async def save_plan(db: AsyncSession, plan: Plan, user_id: str) -> tuple[Project, list[Milestone]]:
    """Store a validated plan as one project row plus one row per milestone."""
    project = Project(
        user_id=user_id,
        name=plan.project_title,
        briefing=plan.briefing,
        skills_json=json.dumps(plan.skills),
    )
    db.add(project)
    await db.flush()

    milestones = []
    for position, item in enumerate(plan.milestones):
        milestone = Milestone(
            project_id=project.id,
            user_id=user_id,
            position=position,
            title=item.title,
            description=item.description,
            status=MilestoneStatus.PENDING.value,
            skills_json=json.dumps(item.skills),
            resources_json=json.dumps(
                [r.model_dump(mode="json", exclude_unset=True) for r in item.resources]
            ),
        )
        milestones.append(milestone)
    db.add_all(milestones)

    await db.flush()
    logger.info(f"Saved project {project.id} with {len(milestones)} milestones")

    return project, milestones


async def list_projects(db: AsyncSession, user_id: str) -> Sequence[Project]:
    result = await db.execute(
        select(Project)
        .where(Project.user_id == user_id)
        .order_by(Project.created_at.desc())
    )
    return result.scalars().all()


async def get_project(db: AsyncSession, project_id: str, user_id: str) -> Project | None:
    """Return the project if it exists and belongs to ``user_id``."""
    result = await db.execute(
        select(Project)
        .where(Project.id == project_id)
        .where(Project.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_milestones(db: AsyncSession, project_id: str) -> Sequence[Milestone]:
    result = await db.execute(
        select(Milestone)
        .where(Milestone.project_id == project_id)
        .order_by(Milestone.position, Milestone.created_at)
    )
    return result.scalars().all()


async def get_milestone(db: AsyncSession, milestone_id: str, user_id: str) -> Milestone | None:
    result = await db.execute(
        select(Milestone)
        .where(Milestone.id == milestone_id)
        .where(Milestone.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def update_milestone_status(
    db: AsyncSession,
    milestone: Milestone,
    status: MilestoneStatus,
) -> Milestone:
    milestone.status = status.value
    db.add(milestone)
    await db.flush()
    return milestone


def aggregate_skills(milestones: Sequence[Milestone]) -> list[SkillResources]:
    """Group resources by skill across milestones.

    Skills keep the order of first appearance; each skill lists the distinct
    resources of every milestone that teaches it.
    """
    by_skill: dict[str, dict[Resource, None]] = {}
    for milestone in milestones:
        resources = _decode_resources(milestone.resources_json)
        for skill in json.loads(milestone.skills_json or "[]"):
            seen = by_skill.setdefault(skill, {})
            for resource in resources:
                seen.setdefault(resource, None)

    return [
        SkillResources(skill=skill, resources=list(resources))
        for skill, resources in by_skill.items()
    ]


# =============================================================================
# Notes
# =============================================================================

def _scope_filter(statement, milestone_id: str | None, skill: str | None):
    if (milestone_id is None) == (skill is None):
        raise ValueError("A note is scoped to exactly one of a milestone or a skill")
    if milestone_id is not None:
        return statement.where(Note.milestone_id == milestone_id).where(Note.skill.is_(None))
    return statement.where(Note.skill == skill).where(Note.milestone_id.is_(None))


async def get_note(
    db: AsyncSession,
    project_id: str,
    user_id: str,
    milestone_id: str | None = None,
    skill: str | None = None,
) -> Note | None:
    statement = (
        select(Note)
        .where(Note.project_id == project_id)
        .where(Note.user_id == user_id)
    )
    result = await db.execute(_scope_filter(statement, milestone_id, skill))
    return result.scalar_one_or_none()


async def upsert_note(
    db: AsyncSession,
    project_id: str,
    user_id: str,
    content: str,
    milestone_id: str | None = None,
    skill: str | None = None,
) -> Note:
    """Create the note for this scope, or replace its content."""
    note = await get_note(db, project_id, user_id, milestone_id=milestone_id, skill=skill)
    now = utcnow()

    if note is None:
        note = Note(
            project_id=project_id,
            user_id=user_id,
            milestone_id=milestone_id,
            skill=skill,
            content=content,
            created_at=now,
            updated_at=now,
        )
    else:
        note.content = content
        note.updated_at = now

    db.add(note)
    await db.flush()
    return note


# =============================================================================
# Row → Response Conversion
# =============================================================================

def _decode_resources(raw: str | None) -> list[Resource]:
    return [Resource.model_validate(item) for item in json.loads(raw or "[]")]


def milestone_to_response(milestone: Milestone) -> MilestoneResponse:
    return MilestoneResponse(
        id=milestone.id,
        project_id=milestone.project_id,
        position=milestone.position,
        title=milestone.title,
        description=milestone.description,
        status=MilestoneStatus(milestone.status),
        skills=json.loads(milestone.skills_json or "[]"),
        resources=_decode_resources(milestone.resources_json),
        created_at=milestone.created_at,
    )


def project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        briefing=project.briefing,
        skills=json.loads(project.skills_json or "[]"),
        created_at=project.created_at,
    )


def project_to_detail(project: Project, milestones: Sequence[Milestone]) -> ProjectDetailResponse:
    return ProjectDetailResponse(
        **project_to_response(project).model_dump(),
        milestones=[milestone_to_response(m) for m in milestones],
    )
