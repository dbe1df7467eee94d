"""Done/total views derived live from the catalog store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from catalog.base import ItemStore
from catalog.models import ArtifactKind, Subtopic, SubtopicStatus, Topic, sort_subtopics
from lessonforge.core.errors import CatalogLoadError, UnknownTopicError


@dataclass(frozen=True)
class Completion:
    done: int
    total: int

    @property
    def pending(self) -> int:
        return max(self.total - self.done, 0)

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.done >= self.total

    def __add__(self, other: "Completion") -> "Completion":
        return Completion(done=self.done + other.done, total=self.total + other.total)

    def to_dict(self) -> dict:
        return {"done": self.done, "total": self.total, "pending": self.pending}


class CompletionAggregator:
    """Recomputes completion from the store on every call; nothing is cached."""

    def __init__(self, store: ItemStore, kind: ArtifactKind = ArtifactKind.LESSON) -> None:
        self.store = store
        self.kind = kind

    # -- loading (setup failures surface as CatalogLoadError) ---------------

    def load_topics(self, learning_path_id: str) -> List[Topic]:
        try:
            return list(self.store.list_topics(learning_path_id))
        except Exception as exc:
            raise CatalogLoadError(
                f"Unable to load topics for learning path {learning_path_id}: {exc}",
                learning_path_id=learning_path_id,
            ) from exc

    def load_topic(self, topic_id: str) -> Topic:
        try:
            topic = self.store.get_topic(topic_id)
        except Exception as exc:
            raise CatalogLoadError(f"Unable to load topic {topic_id}: {exc}", topic_id=topic_id) from exc
        if topic is None:
            raise UnknownTopicError(topic_id)
        return topic

    def load_subtopics(self, topic: Topic | str) -> List[Subtopic]:
        topic_id = topic if isinstance(topic, str) else topic.id
        try:
            return sort_subtopics(list(self.store.list_subtopics(topic_id)))
        except Exception as exc:
            raise CatalogLoadError(f"Unable to load subtopics for topic {topic_id}: {exc}", topic_id=topic_id) from exc

    # -- derived views -------------------------------------------------------

    def topic_checklist(self, topic: Topic | str, subtopics: Sequence[Subtopic] | None = None) -> List[SubtopicStatus]:
        subs = list(subtopics) if subtopics is not None else self.load_subtopics(topic)
        done_ids = self.store.artifact_subtopic_ids([sub.id for sub in subs], self.kind) if subs else set()
        return [SubtopicStatus(subtopic=sub, has_artifact=sub.id in done_ids) for sub in subs]

    def pending_subtopics(self, topic: Topic | str, subtopics: Sequence[Subtopic] | None = None) -> List[Subtopic]:
        return [row.subtopic for row in self.topic_checklist(topic, subtopics) if not row.has_artifact]

    def topic_completion(self, topic: Topic | str, subtopics: Sequence[Subtopic] | None = None) -> Completion:
        checklist = self.topic_checklist(topic, subtopics)
        return Completion(done=sum(1 for row in checklist if row.has_artifact), total=len(checklist))

    def path_completion(self, topics: Iterable[Topic]) -> Completion:
        total = Completion(done=0, total=0)
        for topic in topics:
            total = total + self.topic_completion(topic)
        return total

    def practice_question_total(self, topics: Iterable[Topic]) -> int:
        """Extended practice questions across the given topics."""

        ids: List[str] = []
        for topic in topics:
            ids.extend(sub.id for sub in self.load_subtopics(topic))
        return self.store.count_artifacts(ids, ArtifactKind.PRACTICE) if ids else 0


__all__ = ["Completion", "CompletionAggregator"]
