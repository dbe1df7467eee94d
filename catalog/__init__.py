"""Curriculum catalog: data model and store backends."""

from .base import ItemStore, has_artifact
from .models import ArtifactKind, LearningPath, Subtopic, SubtopicStatus, Topic
from .storage import CatalogStore

__all__ = [
    "ArtifactKind",
    "CatalogStore",
    "ItemStore",
    "LearningPath",
    "Subtopic",
    "SubtopicStatus",
    "Topic",
    "has_artifact",
]
