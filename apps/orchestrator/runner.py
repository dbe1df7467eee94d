"""Sequential per-topic generation loop."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence

from apps.generation.client import GenerationBackend, GenerationResult
from catalog.base import ItemStore, has_artifact
from catalog.models import ArtifactKind, Subtopic, Topic, sort_subtopics
from lessonforge.core.config import GenerationConfig

from .ledger import LogKind, ProgressLedger
from .rate_gate import RateGate
from .run_state import RunContext

LOGGER_NAME = "lessonforge.orchestrator"

Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class WorkItem:
    """One subtopic's pending generation task within a run (positions are 1-based)."""

    topic_id: str
    subtopic_id: str
    subtopic_name: str
    position_in_topic: int
    topic_size: int
    position_in_run: int

    @property
    def progress_label(self) -> str:
        return f"[{self.position_in_topic}/{self.topic_size}]"


@dataclass
class TopicOutcome:
    topic_id: str
    ok: int = 0
    skipped: int = 0
    failed: int = 0
    inserted: int = 0
    stopped: bool = False
    attempted: List[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.ok + self.skipped + self.failed


class SequentialRunner:
    """Walks one topic's subtopics strictly in sort order, one request at a time.

    Before each subtopic the runner waits out a pause, honours a stop, and
    re-reads the store to skip subtopics that already have the artifact. A
    failing subtopic is logged and the loop moves on; nothing raised by the
    generation backend escapes ``run_topic``.
    """

    def __init__(
        self,
        store: ItemStore,
        client: GenerationBackend,
        ledger: ProgressLedger,
        *,
        config: GenerationConfig,
        rate_gate: RateGate | None = None,
        sleep: Sleeper = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.ledger = ledger
        self.config = config
        self.rate_gate = rate_gate or RateGate()
        self._sleep = sleep
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    @property
    def kind(self) -> ArtifactKind:
        return self.config.artifact_kind

    async def run_topic(
        self,
        topic: Topic,
        subtopics: Sequence[Subtopic],
        ctx: RunContext,
        *,
        run_offset: int = 0,
    ) -> TopicOutcome:
        outcome = TopicOutcome(topic_id=topic.id)
        ordered = sort_subtopics(list(subtopics))
        if not ordered:
            self.ledger.record(topic.id, LogKind.SKIP, "No subtopics found for this topic.")
            return outcome

        self.logger.info("Generating %s for topic %s (%s subtopics)", self.kind.value, topic.id, len(ordered))
        delay = self.config.item_delay_seconds
        for index, subtopic in enumerate(ordered):
            await self._wait_while_paused(ctx)
            if ctx.stop_requested:
                self.ledger.record(topic.id, LogKind.DONE, "⏹ Stopped.")
                self.logger.info("Run %s stopped before %s", ctx.run_id, subtopic.id)
                outcome.stopped = True
                return outcome

            item = WorkItem(
                topic_id=topic.id,
                subtopic_id=subtopic.id,
                subtopic_name=subtopic.name,
                position_in_topic=index + 1,
                topic_size=len(ordered),
                position_in_run=run_offset + index + 1,
            )
            await self._process_item(item, ctx, outcome)

            if index < len(ordered) - 1 and delay > 0:
                await self._sleep(delay)

        self.ledger.record(topic.id, LogKind.DONE, self._summary(outcome))
        self.logger.info(
            "Topic %s finished: ok=%s skipped=%s failed=%s",
            topic.id,
            outcome.ok,
            outcome.skipped,
            outcome.failed,
        )
        return outcome

    async def _process_item(self, item: WorkItem, ctx: RunContext, outcome: TopicOutcome) -> None:
        label = item.progress_label
        try:
            exists = await asyncio.to_thread(has_artifact, self.store, item.subtopic_id, self.kind)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Live check failed for %s: %s", item.subtopic_id, exc)
            outcome.failed += 1
            self.ledger.record(
                item.topic_id,
                LogKind.ERROR,
                f"{label} ❌ {item.subtopic_name} — live check failed: {exc}",
                subtopic_id=item.subtopic_id,
            )
            return

        if exists:
            outcome.skipped += 1
            self.ledger.record(
                item.topic_id,
                LogKind.SKIP,
                f"{label} ⏭ Already exists: {item.subtopic_name}",
                subtopic_id=item.subtopic_id,
            )
            return

        self.ledger.record(item.topic_id, LogKind.INFO, f"{label} ⏳ {item.subtopic_name}…", subtopic_id=item.subtopic_id)
        outcome.attempted.append(item.subtopic_id)
        result = await self._generate(item, ctx)

        if result.status == "created":
            outcome.ok += 1
            outcome.inserted += result.inserted or 0
            self.ledger.record(item.topic_id, LogKind.OK, self._ok_message(item, result), subtopic_id=item.subtopic_id)
        elif result.status == "already_exists":
            outcome.skipped += 1
            self.ledger.record(item.topic_id, LogKind.SKIP, self._skip_message(item, result), subtopic_id=item.subtopic_id)
        else:
            outcome.failed += 1
            self.ledger.record(
                item.topic_id,
                LogKind.ERROR,
                f"{label} ❌ {item.subtopic_name} — {result.reason}",
                subtopic_id=item.subtopic_id,
            )

    async def _generate(self, item: WorkItem, ctx: RunContext) -> GenerationResult:
        max_retries = self.config.runner.max_retries
        attempts = max_retries + 1
        result = GenerationResult.failed("not attempted")
        for attempt in range(1, attempts + 1):
            result = await self._attempt(item)
            if not result.is_failure or attempt == attempts or ctx.stop_requested:
                return result
            backoff = self.config.runner.retry_backoff_seconds * (2 ** (attempt - 1))
            self.ledger.record(
                item.topic_id,
                LogKind.INFO,
                f"{item.progress_label} ↻ retry {attempt}/{max_retries} for {item.subtopic_name} in {backoff:g}s — {result.reason}",
                subtopic_id=item.subtopic_id,
            )
            await self._sleep(backoff)
        return result

    async def _attempt(self, item: WorkItem) -> GenerationResult:
        timeout = self.config.endpoint.timeout_seconds
        count = self.config.practice.questions_per_subtopic if self.kind is ArtifactKind.PRACTICE else None
        try:
            async with self.rate_gate.slot():
                return await asyncio.wait_for(
                    self.client.generate(item.subtopic_id, kind=self.kind, count=count),
                    timeout=timeout,
                )
        except asyncio.TimeoutError:
            self.logger.warning("Generation for %s exceeded %ss", item.subtopic_id, timeout)
            return GenerationResult.failed(f"Timed out after {timeout:g}s")
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Generation for %s raised: %s", item.subtopic_id, exc)
            return GenerationResult.failed(str(exc) or exc.__class__.__name__)

    async def _wait_while_paused(self, ctx: RunContext) -> None:
        poll = self.config.runner.pause_poll_seconds
        while ctx.pause_requested and not ctx.stop_requested:
            await self._sleep(poll)

    def _ok_message(self, item: WorkItem, result: GenerationResult) -> str:
        if self.kind is ArtifactKind.PRACTICE:
            return f"{item.progress_label} ✅ {item.subtopic_name} +{result.inserted or 0} questions"
        return f"{item.progress_label} ✅ {item.subtopic_name}"

    def _skip_message(self, item: WorkItem, result: GenerationResult) -> str:
        if self.kind is ArtifactKind.PRACTICE and result.existing is not None:
            return f"{item.progress_label} ⏭ {item.subtopic_name} — already has {result.existing} Qs"
        return f"{item.progress_label} ⏭ Already exists: {item.subtopic_name}"

    def _summary(self, outcome: TopicOutcome) -> str:
        summary = f"✅ {outcome.ok} generated · {outcome.skipped} skipped · {outcome.failed} failed"
        if self.kind is ArtifactKind.PRACTICE:
            summary += f" · +{outcome.inserted} new questions"
        return summary


__all__ = ["SequentialRunner", "TopicOutcome", "WorkItem"]
