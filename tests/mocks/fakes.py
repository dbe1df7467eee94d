"""In-process doubles for the generation backend plus catalog seeding helpers."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Sequence, Union

from apps.generation.client import GenerationResult
from catalog.models import ArtifactKind, LearningPath, Subtopic, Topic
from catalog.storage import CatalogStore

Script = Union[GenerationResult, Exception, Callable[[str], Awaitable[GenerationResult]]]


class FakeGenerationClient:
    """Records every generate call; successful calls write the artifact into the store."""

    def __init__(self, store: CatalogStore | None = None, *, scripted: Dict[str, Script] | None = None) -> None:
        self.store = store
        self.scripted: Dict[str, Script] = dict(scripted or {})
        self.calls: List[str] = []
        self.counts: List[int | None] = []
        self.before_return: Callable[[str], Awaitable[None]] | None = None

    async def generate(
        self,
        subtopic_id: str,
        *,
        kind: ArtifactKind = ArtifactKind.LESSON,
        count: int | None = None,
    ) -> GenerationResult:
        self.calls.append(subtopic_id)
        self.counts.append(count)
        await asyncio.sleep(0)
        if self.before_return is not None:
            await self.before_return(subtopic_id)

        script = self.scripted.get(subtopic_id)
        if isinstance(script, Exception):
            raise script
        if callable(script):
            result = await script(subtopic_id)
        elif isinstance(script, GenerationResult):
            result = script
        else:
            result = GenerationResult.created(inserted=count if kind is ArtifactKind.PRACTICE else None)

        if result.status == "created" and self.store is not None:
            if kind is ArtifactKind.LESSON:
                self.store.add_lesson(subtopic_id, title=f"Lesson {subtopic_id}")
            else:
                self.store.add_practice_questions(subtopic_id, [f"Q{i}" for i in range(count or 1)])
        return result


class InstantSleeper:
    """Stands in for ``asyncio.sleep``; records requested delays and yields once."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


def seed_topic(
    store: CatalogStore,
    topic_id: str,
    subtopic_names: Sequence[str],
    *,
    learning_path_id: str = "path-1",
    sort_order: int = 1,
) -> tuple[Topic, List[Subtopic]]:
    """Insert a learning path (if needed), a topic and its subtopics ``<topic_id>-s<N>``."""

    store.add_learning_path(LearningPath(id=learning_path_id, name=learning_path_id.title(), sort_order=1))
    topic = Topic(id=topic_id, learning_path_id=learning_path_id, name=topic_id.title(), sort_order=sort_order)
    store.add_topic(topic)
    subtopics = []
    for index, name in enumerate(subtopic_names, start=1):
        subtopic = Subtopic(id=f"{topic_id}-s{index}", topic_id=topic_id, name=name, sort_order=index)
        store.add_subtopic(subtopic)
        subtopics.append(subtopic)
    return topic, subtopics


__all__ = ["FakeGenerationClient", "InstantSleeper", "seed_topic"]
