"""SQLModel database tables.

Tables:
- Project: One generated plan owned by a user
- Milestone: Steps of a project, in plan order
- Note: Free-text notes scoped to a milestone or to a skill of a project
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, Text, Index
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# Project Model
# =============================================================================

class Project(SQLModel, table=True):
    """A learning project created from a validated plan."""

    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_user_created", "user_id", "created_at"),
    )

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True, description="Authenticated user ID")
    name: str = Field(description="Project title from the plan")
    briefing: str = Field(default="", sa_column=Column(Text))

    # Stored as JSON strings
    skills_json: str = Field(default="[]", sa_column=Column(Text))

    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# Milestone Model
# =============================================================================

class Milestone(SQLModel, table=True):
    """One step of a project."""

    __tablename__ = "milestones"
    __table_args__ = (
        Index("ix_milestones_project_position", "project_id", "position"),
    )

    id: str = Field(default_factory=_new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    user_id: str = Field(index=True)

    position: int = Field(default=0, description="Order in the plan")
    title: str
    description: str = Field(default="", sa_column=Column(Text))
    status: str = Field(default="pending", index=True)  # Use MilestoneStatus enum values

    # Stored as JSON strings
    skills_json: str = Field(default="[]", sa_column=Column(Text))
    resources_json: str = Field(default="[]", sa_column=Column(Text))

    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# Note Model
# =============================================================================

class Note(SQLModel, table=True):
    """User notes on a milestone (milestone_id set) or a skill (skill set)."""

    __tablename__ = "notes"
    __table_args__ = (
        Index("ix_notes_scope", "project_id", "user_id", "milestone_id", "skill"),
    )

    id: str = Field(default_factory=_new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    milestone_id: str | None = Field(default=None, foreign_key="milestones.id")
    skill: str | None = Field(default=None)
    user_id: str = Field(index=True)

    content: str = Field(default="", sa_column=Column(Text))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default=None)
