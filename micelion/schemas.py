"""Pydantic schemas for all I/O contracts.

These schemas define the strict contracts between:
- The language model output and the rest of the system (Plan)
- API endpoints and clients
- LLM provider requests/responses
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================

class ResourceType(str, Enum):
    """Kind of learning resource attached to a milestone."""
    ARTICLE = "article"
    VIDEO = "video"
    COURSE = "course"
    BOOK = "book"
    DOC = "doc"


class MilestoneStatus(str, Enum):
    """Progress of a persisted milestone."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


Language = Literal["en", "es"]


# =============================================================================
# Plan Schemas
# =============================================================================

class Resource(BaseModel):
    """A link-like reference attached to a milestone."""
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    type: ResourceType | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _reject_explicit_null(cls, value: Any) -> Any:
        # Absent is fine; an explicit null is not one of the allowed kinds.
        if value is None:
            raise ValueError(
                "Input should be 'article', 'video', 'course', 'book' or 'doc'"
            )
        return value


class MilestonePlan(BaseModel):
    """One step of a generated plan, before persistence."""
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    skills: list[str]
    resources: list[Resource]


class Plan(BaseModel):
    """Validated learning path produced by the language model."""
    model_config = ConfigDict(frozen=True)

    project_title: str
    briefing: str
    skills: list[str]
    milestones: list[MilestonePlan]

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form, omitting optional fields the model left out."""
        return self.model_dump(mode="json", exclude_unset=True)


# =============================================================================
# LLM Schemas
# =============================================================================

class LLMMessage(BaseModel):
    """A single message in an LLM conversation."""
    role: Literal["system", "user", "assistant"] = Field(...)
    content: str = Field(...)


class LLMResponse(BaseModel):
    """Response from an LLM provider."""
    content: str = ""
    model: str
    usage: dict[str, Any] = Field(default_factory=dict)
    finish_reason: str | None = None
    raw_response: dict[str, Any] | None = None


# =============================================================================
# API Request/Response Schemas
# =============================================================================

class PlanRequest(BaseModel):
    """API request to generate a plan from a learning goal."""
    idea: str = Field(..., min_length=1, description="Free-text learning goal")
    lang: Language = Field(default="en", description="Language the idea is written in")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "idea": "I want to learn backend development",
                "lang": "en",
            }
        }
    )


class PromptRequest(BaseModel):
    """API request for free chat mode."""
    input: str = Field(..., min_length=1)
    lang: Language = Field(default="en")
    system: str | None = Field(default=None, description="Override for the system prompt")


class PromptResponse(BaseModel):
    answer: str


class TranslateRequest(BaseModel):
    """API request to translate a piece of text."""
    text: str = Field(..., min_length=1)
    target_lang: Language
    source_lang: Language | None = Field(
        default=None, description="Defaults to English when translating to Spanish and vice versa"
    )


class TranslateResponse(BaseModel):
    text: str


class MilestoneResponse(BaseModel):
    """API response for a persisted milestone."""
    id: str
    project_id: str
    position: int
    title: str
    description: str
    status: MilestoneStatus
    skills: list[str]
    resources: list[Resource]
    created_at: datetime


class ProjectResponse(BaseModel):
    """API response for a persisted project (without milestones)."""
    id: str
    name: str
    briefing: str
    skills: list[str]
    created_at: datetime


class ProjectDetailResponse(ProjectResponse):
    """API response for a project with its milestones in plan order."""
    milestones: list[MilestoneResponse] = Field(default_factory=list)


class MilestoneStatusUpdate(BaseModel):
    status: MilestoneStatus


class SkillResources(BaseModel):
    """A skill with every distinct resource of the milestones teaching it."""
    skill: str
    resources: list[Resource]


class NoteUpdate(BaseModel):
    content: str


class NoteResponse(BaseModel):
    """API response for a milestone- or skill-scoped note."""
    project_id: str
    milestone_id: str | None = None
    skill: str | None = None
    content: str
    updated_at: datetime | None = None


class ErrorResponse(BaseModel):
    """API error body for failed generations."""
    kind: str
    message: str
