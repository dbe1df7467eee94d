"""Typed records for the curriculum catalog (learning paths → topics → subtopics)."""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ArtifactKind(str, Enum):
    """Generated content attached to a subtopic."""

    LESSON = "lesson"
    PRACTICE = "practice"

    @classmethod
    def choices(cls) -> List[str]:
        return [member.value for member in cls]


class LearningPath(BaseModel):
    """A grade or exam track."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    is_active: bool = True
    sort_order: int = 0


class Subtopic(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    topic_id: str
    name: str
    sort_order: int = 0


class Topic(BaseModel):
    """A topic inside one learning path; subtopics are loaded separately."""

    model_config = ConfigDict(frozen=True)

    id: str
    learning_path_id: str
    name: str
    icon: str | None = None
    sort_order: int = 0


class SubtopicStatus(BaseModel):
    """Checklist row: one subtopic plus its live done flag."""

    subtopic: Subtopic
    has_artifact: bool = Field(..., description="Computed from the store at read time, never persisted.")


def sort_subtopics(subtopics: List[Subtopic]) -> List[Subtopic]:
    """Order subtopics by sort order; ties keep their incoming order."""

    return sorted(subtopics, key=lambda sub: sub.sort_order)


__all__ = [
    "ArtifactKind",
    "LearningPath",
    "Subtopic",
    "SubtopicStatus",
    "Topic",
    "sort_subtopics",
]
