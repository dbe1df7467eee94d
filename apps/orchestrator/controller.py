"""Public façade for starting, steering and observing bulk generation runs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Coroutine, Dict, List, Set

from apps.generation.client import GenerationBackend
from catalog.base import ItemStore
from catalog.models import ArtifactKind, Topic
from lessonforge.core.config import GenerationConfig
from lessonforge.core.errors import CatalogLoadError, RunConflictError

from .completion import CompletionAggregator
from .ledger import LogKind, ProgressLedger, TopicProgress
from .rate_gate import RateGate
from .run_state import RunContext, RunScope, RunState, RunStatus
from .runner import LOGGER_NAME, SequentialRunner, Sleeper, TopicOutcome

_ARTIFACT_LABELS = {ArtifactKind.LESSON: "lessons", ArtifactKind.PRACTICE: "practice questions"}


@dataclass
class RunSummary:
    """Result of one run-all pass over a learning path."""

    learning_path_id: str
    outcomes: List[TopicOutcome] = field(default_factory=list)
    skipped_topic_ids: List[str] = field(default_factory=list)
    stopped: bool = False

    @property
    def ok(self) -> int:
        return sum(outcome.ok for outcome in self.outcomes)

    @property
    def failed(self) -> int:
        return sum(outcome.failed for outcome in self.outcomes)


@dataclass(frozen=True)
class ControllerSnapshot:
    status: RunStatus
    running_topic_ids: List[str]
    active_runs: int
    topics: Dict[str, TopicProgress]

    @property
    def paused(self) -> bool:
        return self.status is RunStatus.PAUSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "running_topic_ids": list(self.running_topic_ids),
            "active_runs": self.active_runs,
            "paused": self.paused,
            "topics": {topic_id: progress.to_dict() for topic_id, progress in self.topics.items()},
        }


class RunController:
    """Owns the ledger, the run state and the runner for one admin session.

    ``run_topic``/``run_all``/``force_regenerate`` are coroutines that return
    ``None`` when the request is a no-op (topic already running, or another run
    in the way). The ``start_*`` variants schedule the same work as background
    tasks and raise :class:`RunConflictError` instead of silently ignoring.
    """

    def __init__(
        self,
        store: ItemStore,
        client: GenerationBackend,
        *,
        config: GenerationConfig,
        ledger: ProgressLedger | None = None,
        rate_gate: RateGate | None = None,
        sleep: Sleeper = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.config = config
        self.ledger = ledger or ProgressLedger()
        self.state = RunState()
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.aggregator = CompletionAggregator(store, config.artifact_kind)
        gate = rate_gate or RateGate(
            max_concurrent=config.runner.max_concurrent_requests,
            min_interval=config.runner.min_request_interval_seconds,
        )
        self.runner = SequentialRunner(store, client, self.ledger, config=config, rate_gate=gate, sleep=sleep, logger=self.logger)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def kind(self) -> ArtifactKind:
        return self.config.artifact_kind

    # ------------------------------------------------------------------
    # Runs

    async def run_topic(self, topic_id: str) -> TopicOutcome | None:
        if self.state.is_topic_running(topic_id):
            self.logger.info("Topic %s is already running; ignoring start request", topic_id)
            return None
        ctx = self.state.begin(RunScope.TOPIC, topic_id)
        try:
            topic = await asyncio.to_thread(self.aggregator.load_topic, topic_id)
            subtopics = await asyncio.to_thread(self.aggregator.load_subtopics, topic)
            self.ledger.start_topic(topic_id)
            return await self.runner.run_topic(topic, subtopics, ctx)
        finally:
            self.state.end(ctx)

    async def run_all(self, learning_path_id: str) -> RunSummary | None:
        if self.state.active_contexts:
            self.logger.info("A run is already active; ignoring generate-all for %s", learning_path_id)
            return None
        ctx = self.state.begin(RunScope.ALL)
        summary = RunSummary(learning_path_id=learning_path_id)
        try:
            self.ledger.reset()
            topics = await asyncio.to_thread(self.aggregator.load_topics, learning_path_id)
            processed = 0
            for topic in topics:
                if ctx.stop_requested:
                    break
                if self.state.is_topic_running(topic.id):
                    summary.skipped_topic_ids.append(topic.id)
                    continue
                try:
                    subtopics = await asyncio.to_thread(self.aggregator.load_subtopics, topic)
                    pending = await asyncio.to_thread(self.aggregator.pending_subtopics, topic, subtopics)
                except CatalogLoadError as exc:
                    self.logger.error("Skipping topic %s: %s", topic.id, exc)
                    self.ledger.start_topic(topic.id)
                    self.ledger.record(topic.id, LogKind.ERROR, f"❌ Could not load subtopics: {exc}")
                    summary.skipped_topic_ids.append(topic.id)
                    continue
                if ctx.stop_requested:
                    break
                # No await between this check and mark_topic_running.
                if not pending or self.state.is_topic_running(topic.id):
                    summary.skipped_topic_ids.append(topic.id)
                    continue

                self.state.mark_topic_running(ctx, topic.id)
                self.ledger.start_topic(topic.id)
                try:
                    outcome = await self.runner.run_topic(topic, subtopics, ctx, run_offset=processed)
                finally:
                    self.state.mark_topic_finished(ctx, topic.id)
                processed += len(subtopics)
                summary.outcomes.append(outcome)
                if outcome.stopped:
                    break
            summary.stopped = ctx.stop_requested
            return summary
        finally:
            self.state.end(ctx)

    async def force_regenerate(self, topic_id: str) -> TopicOutcome | None:
        """Delete every artifact of the topic, then regenerate from scratch."""

        if self.state.is_topic_running(topic_id):
            self.logger.info("Topic %s is already running; ignoring force regenerate", topic_id)
            return None
        ctx = self.state.begin(RunScope.TOPIC, topic_id)
        try:
            topic = await asyncio.to_thread(self.aggregator.load_topic, topic_id)
            subtopics = await asyncio.to_thread(self.aggregator.load_subtopics, topic)
            deleted = await asyncio.to_thread(self.store.delete_artifacts, [sub.id for sub in subtopics], self.kind)
            self.logger.warning("Force regenerate deleted %s %s rows for topic %s", deleted, self.kind.value, topic_id)
            self.ledger.start_topic(topic_id)
            self.ledger.record(topic_id, LogKind.INFO, f"🗑 Deleted existing {self._label} for {len(subtopics)} subtopics.")
            return await self.runner.run_topic(topic, subtopics, ctx)
        finally:
            self.state.end(ctx)

    async def delete_artifacts(self, topic_id: str) -> int:
        """Delete a topic's artifacts without regenerating them."""

        if self.state.is_topic_running(topic_id):
            raise RunConflictError(f"Topic {topic_id} is running; stop it before deleting its {self._label}")
        topic = await asyncio.to_thread(self.aggregator.load_topic, topic_id)
        subtopics = await asyncio.to_thread(self.aggregator.load_subtopics, topic)
        deleted = await asyncio.to_thread(self.store.delete_artifacts, [sub.id for sub in subtopics], self.kind)
        self.ledger.start_topic(topic_id)
        self.ledger.record(topic_id, LogKind.INFO, f"All {self._label} deleted.")
        return deleted

    # ------------------------------------------------------------------
    # Background variants

    def start_topic(self, topic_id: str) -> asyncio.Task:
        if self.state.is_topic_running(topic_id):
            raise RunConflictError(f"Topic {topic_id} is already running")
        return self._spawn(self.run_topic(topic_id), name=f"topic:{topic_id}")

    def start_all(self, learning_path_id: str) -> asyncio.Task:
        if self.state.active_contexts:
            raise RunConflictError("Another run is active; wait for it to finish or stop it first")
        return self._spawn(self.run_all(learning_path_id), name=f"all:{learning_path_id}")

    def start_force_regenerate(self, topic_id: str) -> asyncio.Task:
        if self.state.is_topic_running(topic_id):
            raise RunConflictError(f"Topic {topic_id} is already running")
        return self._spawn(self.force_regenerate(topic_id), name=f"force:{topic_id}")

    def _spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Background run %s failed: %s", task.get_name(), exc, exc_info=exc)

    # ------------------------------------------------------------------
    # Steering

    def pause(self, topic_id: str | None = None) -> bool:
        return self._apply(topic_id, RunContext.request_pause)

    def resume(self, topic_id: str | None = None) -> bool:
        return self._apply(topic_id, RunContext.request_resume)

    def stop(self, topic_id: str | None = None) -> bool:
        return self._apply(topic_id, RunContext.request_stop)

    def _apply(self, topic_id: str | None, action) -> bool:
        contexts = self.state.contexts_for(topic_id)
        changed = [action(ctx) for ctx in contexts]
        return bool(contexts) and any(changed)

    @property
    def is_running(self) -> bool:
        return bool(self.state.active_contexts)

    def snapshot(self) -> ControllerSnapshot:
        return ControllerSnapshot(
            status=self.state.status,
            running_topic_ids=sorted(self.state.running_topic_ids),
            active_runs=len(self.state.active_contexts),
            topics=self.ledger.snapshot_all(),
        )

    def topic_progress(self, topic: Topic | str) -> TopicProgress:
        return self.ledger.snapshot(topic if isinstance(topic, str) else topic.id)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop every run at its next boundary and return to idle."""

        self.stop()
        await self.wait_idle()
        self.state.reset()

    @property
    def _label(self) -> str:
        return _ARTIFACT_LABELS[self.kind]


__all__ = ["ControllerSnapshot", "RunController", "RunSummary"]
