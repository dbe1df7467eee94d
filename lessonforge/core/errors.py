"""Exception taxonomy for the bulk generator."""

from __future__ import annotations


class LessonForgeError(Exception):
    """Base class for generator errors."""


class CatalogLoadError(LessonForgeError):
    """Topics or subtopics could not be loaded; nothing can be generated."""

    def __init__(self, message: str, *, learning_path_id: str | None = None, topic_id: str | None = None) -> None:
        super().__init__(message)
        self.learning_path_id = learning_path_id
        self.topic_id = topic_id


class UnknownTopicError(LessonForgeError):
    def __init__(self, topic_id: str) -> None:
        super().__init__(f"Topic {topic_id!r} not found")
        self.topic_id = topic_id


class RunConflictError(LessonForgeError):
    """A start request collided with a run that is already active."""


__all__ = ["CatalogLoadError", "LessonForgeError", "RunConflictError", "UnknownTopicError"]
