"""FastAPI routes for the Micelion API.

Endpoints:
- POST /plans/generate       - Generate a plan without storing it
- POST /projects             - Generate a plan and store it as a project
- GET  /projects             - List the caller's projects
- GET  /projects/{id}        - Project with milestones in plan order
- GET  /projects/{id}/skills - Skills with the resources teaching them
- PATCH /milestones/{id}     - Update milestone status
- GET/PUT /projects/{id}/milestones/{mid}/note - Milestone notes
- GET/PUT /projects/{id}/skills/{skill}/note   - Skill notes

Provider proxies:
- POST /prompt               - Free chat, answered in the caller's language
- POST /translate            - Translate a piece of text

The caller is identified by the X-User-Id header set by the auth gateway.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from micelion.agent.planner import PlanPipeline, get_pipeline
from micelion.config import get_settings
from micelion.database import repository
from micelion.database.session import get_db
from micelion.exceptions import TranslationError
from micelion.schemas import (
    MilestoneResponse,
    MilestoneStatusUpdate,
    NoteResponse,
    NoteUpdate,
    Plan,
    PlanRequest,
    ProjectDetailResponse,
    ProjectResponse,
    PromptRequest,
    PromptResponse,
    SkillResources,
    TranslateRequest,
    TranslateResponse,
)


logger = logging.getLogger(__name__)
router = APIRouter()

settings = get_settings()


async def get_current_user(x_user_id: str = Header(...)) -> str:
    """Caller identity, already authenticated upstream."""
    return x_user_id


# =============================================================================
# Health Check
# =============================================================================

@router.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.environment,
    }


# =============================================================================
# Plan Generation
# =============================================================================

@router.post("/plans/generate", response_model=Plan, response_model_exclude_unset=True)
async def generate_plan(
    request: PlanRequest,
    pipeline: PlanPipeline = Depends(get_pipeline),
) -> Plan:
    """Generate a validated plan from a learning goal."""
    return await pipeline.generate_plan(request.idea, request.lang)


@router.post("/projects", response_model=ProjectDetailResponse, status_code=201)
async def create_project(
    request: PlanRequest,
    user_id: str = Depends(get_current_user),
    pipeline: PlanPipeline = Depends(get_pipeline),
    db: AsyncSession = Depends(get_db),
) -> ProjectDetailResponse:
    """Generate a plan and store it as a project with its milestones."""
    plan = await pipeline.generate_plan(request.idea, request.lang)

    project, milestones = await repository.save_plan(db, plan, user_id)
    await db.commit()

    logger.info(f"Created project {project.id} for user {user_id}")

    return repository.project_to_detail(project, milestones)


# =============================================================================
# Projects Endpoints
# =============================================================================

@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ProjectResponse]:
    """List projects for the current user, newest first."""
    projects = await repository.list_projects(db, user_id)
    return [repository.project_to_response(p) for p in projects]


async def _require_project(db: AsyncSession, project_id: str, user_id: str):
    project = await repository.get_project(db, project_id, user_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


async def _require_project_milestone(
    db: AsyncSession, project_id: str, milestone_id: str, user_id: str
):
    await _require_project(db, project_id, user_id)
    milestone = await repository.get_milestone(db, milestone_id, user_id)
    if not milestone or milestone.project_id != project_id:
        raise HTTPException(status_code=404, detail="Milestone not found")
    return milestone


@router.get("/projects/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectDetailResponse:
    """Get a project with its milestones in plan order."""
    project = await _require_project(db, project_id, user_id)
    milestones = await repository.list_milestones(db, project.id)
    return repository.project_to_detail(project, milestones)


@router.get("/projects/{project_id}/skills", response_model=list[SkillResources])
async def get_project_skills(
    project_id: str,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[SkillResources]:
    """Skills across the project's milestones with their resources."""
    project = await _require_project(db, project_id, user_id)
    milestones = await repository.list_milestones(db, project.id)
    return repository.aggregate_skills(milestones)


@router.patch("/milestones/{milestone_id}", response_model=MilestoneResponse)
async def update_milestone(
    milestone_id: str,
    update: MilestoneStatusUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MilestoneResponse:
    """Move a milestone between pending, in_progress and completed."""
    milestone = await repository.get_milestone(db, milestone_id, user_id)
    if not milestone:
        raise HTTPException(status_code=404, detail="Milestone not found")

    milestone = await repository.update_milestone_status(db, milestone, update.status)
    await db.commit()

    return repository.milestone_to_response(milestone)


# =============================================================================
# Notes Endpoints
# =============================================================================

def _note_response(
    project_id: str,
    note,
    milestone_id: str | None = None,
    skill: str | None = None,
) -> NoteResponse:
    if note is None:
        return NoteResponse(project_id=project_id, milestone_id=milestone_id, skill=skill, content="")
    return NoteResponse(
        project_id=note.project_id,
        milestone_id=note.milestone_id,
        skill=note.skill,
        content=note.content,
        updated_at=note.updated_at,
    )


@router.get("/projects/{project_id}/milestones/{milestone_id}/note", response_model=NoteResponse)
async def get_milestone_note(
    project_id: str,
    milestone_id: str,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NoteResponse:
    await _require_project_milestone(db, project_id, milestone_id, user_id)
    note = await repository.get_note(db, project_id, user_id, milestone_id=milestone_id)
    return _note_response(project_id, note, milestone_id=milestone_id)


@router.put("/projects/{project_id}/milestones/{milestone_id}/note", response_model=NoteResponse)
async def put_milestone_note(
    project_id: str,
    milestone_id: str,
    update: NoteUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NoteResponse:
    await _require_project_milestone(db, project_id, milestone_id, user_id)
    note = await repository.upsert_note(
        db, project_id, user_id, update.content, milestone_id=milestone_id
    )
    await db.commit()
    return _note_response(project_id, note)


@router.get("/projects/{project_id}/skills/{skill:path}/note", response_model=NoteResponse)
async def get_skill_note(
    project_id: str,
    skill: str,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NoteResponse:
    await _require_project(db, project_id, user_id)
    note = await repository.get_note(db, project_id, user_id, skill=skill)
    return _note_response(project_id, note, skill=skill)


@router.put("/projects/{project_id}/skills/{skill:path}/note", response_model=NoteResponse)
async def put_skill_note(
    project_id: str,
    skill: str,
    update: NoteUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NoteResponse:
    await _require_project(db, project_id, user_id)
    note = await repository.upsert_note(db, project_id, user_id, update.content, skill=skill)
    await db.commit()
    return _note_response(project_id, note)


# =============================================================================
# Provider Proxies
# =============================================================================

@router.post("/prompt", response_model=PromptResponse)
async def prompt(
    request: PromptRequest,
    pipeline: PlanPipeline = Depends(get_pipeline),
) -> PromptResponse:
    """Free chat: translate in, answer, translate the answer back."""
    answer = await pipeline.chat(request.input, request.lang, system=request.system)
    return PromptResponse(answer=answer)


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    request: TranslateRequest,
    pipeline: PlanPipeline = Depends(get_pipeline),
) -> TranslateResponse:
    """Translate text with the configured translation provider."""
    source = request.source_lang or ("en" if request.target_lang != "en" else "es")
    try:
        text = await pipeline.translator.translate(request.text, source, request.target_lang)
    except TranslationError as e:
        logger.warning(f"Translation failed: {e}")
        raise HTTPException(status_code=502, detail="Translation failed") from e
    return TranslateResponse(text=text)
