#!/usr/bin/env python3
"""
Entity Models - Read-only views of students and projects.

These mirror the attributes the scoring subsystem consumes from the
entity store. Optional text/list fields are normalized so that a
missing value is always an empty string or empty list, never None.
"""

from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, Field


def _none_to_empty_str(value):
    return "" if value is None else value


def _none_to_empty_list(value):
    return [] if value is None else value


OptionalText = Annotated[str, BeforeValidator(_none_to_empty_str)]
OptionalTextList = Annotated[List[str], BeforeValidator(_none_to_empty_list)]


class ProjectStatus(str, Enum):
    """Lifecycle status of a research project."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    ARCHIVED = "ARCHIVED"


class Student(BaseModel):
    """Student profile as seen by the matcher."""
    id: str
    skills: OptionalTextList = Field(default_factory=list)
    research_interests: OptionalTextList = Field(default_factory=list)
    gpa: float = Field(default=0.0, ge=0.0)
    major: OptionalText = ""
    academic_background: OptionalText = ""
    project_experience_count: int = Field(default=0, ge=0)

    # Prompt-only extras
    grade: Optional[int] = None
    self_introduction: OptionalText = ""
    project_experiences: OptionalTextList = Field(default_factory=list)


class Project(BaseModel):
    """Research project as seen by the matcher."""
    id: str
    required_skills: OptionalTextList = Field(default_factory=list)
    research_field: OptionalText = ""
    description: OptionalText = ""
    requirements: OptionalText = ""
    status: ProjectStatus = ProjectStatus.ACTIVE

    # Prompt-only extras
    title: OptionalText = ""
    duration_months: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE
