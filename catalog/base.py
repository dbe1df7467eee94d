"""Interface the orchestrator consumes from the catalog backend."""

from __future__ import annotations

from typing import Iterable, List, Protocol, Set, runtime_checkable

from .models import ArtifactKind, LearningPath, Subtopic, Topic

# Practice questions generated in bulk are tagged "extended"; lesson-gate
# questions created alongside a lesson are tagged "lesson" and never counted.
EXTENDED_QUESTION_CATEGORY = "extended"


@runtime_checkable
class ItemStore(Protocol):
    """Read access to the catalog plus the destructive delete used by force regenerate.

    Implementations are synchronous; the orchestrator calls them from a worker
    thread so slow network backends do not block the event loop.
    """

    def list_learning_paths(self, *, active_only: bool = True) -> List[LearningPath]: ...

    def list_topics(self, learning_path_id: str) -> List[Topic]: ...

    def get_topic(self, topic_id: str) -> Topic | None: ...

    def list_subtopics(self, topic_id: str) -> List[Subtopic]: ...

    def count_artifacts(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> int: ...

    def artifact_subtopic_ids(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> Set[str]: ...

    def has_lesson(self, subtopic_id: str) -> bool: ...

    def delete_artifacts(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> int: ...


def has_artifact(store: ItemStore, subtopic_id: str, kind: ArtifactKind) -> bool:
    """Live existence check for a single subtopic."""

    if kind is ArtifactKind.LESSON:
        return store.has_lesson(subtopic_id)
    return store.count_artifacts([subtopic_id], kind) > 0


__all__ = ["EXTENDED_QUESTION_CATEGORY", "ItemStore", "has_artifact"]
