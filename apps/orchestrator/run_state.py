"""Run status plus the per-run pause/stop token."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Set


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING_SINGLE_TOPIC = "running_single_topic"
    RUNNING_ALL = "running_all"
    PAUSED = "paused"
    STOPPING = "stopping"


class RunScope(str, Enum):
    TOPIC = "topic"
    ALL = "all"


@dataclass
class RunContext:
    """Cooperative pause/stop flags owned by exactly one run.

    Stop is sticky for the lifetime of the run and cancels any pending pause;
    pause toggles until a stop arrives.
    """

    scope: RunScope
    topic_id: str | None = None
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    pause_requested: bool = False
    stop_requested: bool = False
    topic_ids: Set[str] = field(default_factory=set)

    def request_pause(self) -> bool:
        if self.stop_requested:
            return False
        self.pause_requested = True
        return True

    def request_resume(self) -> bool:
        was_paused = self.pause_requested
        self.pause_requested = False
        return was_paused

    def request_stop(self) -> bool:
        self.stop_requested = True
        self.pause_requested = False
        return True


class RunState:
    """Process-wide view over every active run."""

    def __init__(self) -> None:
        self._contexts: Dict[str, RunContext] = {}

    def begin(self, scope: RunScope, topic_id: str | None = None) -> RunContext:
        ctx = RunContext(scope=scope, topic_id=topic_id)
        if topic_id is not None:
            ctx.topic_ids.add(topic_id)
        self._contexts[ctx.run_id] = ctx
        return ctx

    def end(self, ctx: RunContext) -> None:
        self._contexts.pop(ctx.run_id, None)
        ctx.topic_ids.clear()

    def mark_topic_running(self, ctx: RunContext, topic_id: str) -> None:
        ctx.topic_ids.add(topic_id)

    def mark_topic_finished(self, ctx: RunContext, topic_id: str) -> None:
        ctx.topic_ids.discard(topic_id)

    def reset(self) -> None:
        for ctx in list(self._contexts.values()):
            ctx.topic_ids.clear()
        self._contexts.clear()

    @property
    def active_contexts(self) -> List[RunContext]:
        return list(self._contexts.values())

    @property
    def running_topic_ids(self) -> FrozenSet[str]:
        running: Set[str] = set()
        for ctx in self._contexts.values():
            running.update(ctx.topic_ids)
        return frozenset(running)

    @property
    def is_running_all(self) -> bool:
        return any(ctx.scope is RunScope.ALL for ctx in self._contexts.values())

    def is_topic_running(self, topic_id: str) -> bool:
        return topic_id in self.running_topic_ids

    def contexts_for(self, topic_id: str | None = None) -> List[RunContext]:
        if topic_id is None:
            return self.active_contexts
        return [ctx for ctx in self._contexts.values() if topic_id in ctx.topic_ids]

    @property
    def status(self) -> RunStatus:
        contexts = self.active_contexts
        if not contexts:
            return RunStatus.IDLE
        if any(ctx.stop_requested for ctx in contexts):
            return RunStatus.STOPPING
        if all(ctx.pause_requested for ctx in contexts):
            return RunStatus.PAUSED
        if self.is_running_all:
            return RunStatus.RUNNING_ALL
        return RunStatus.RUNNING_SINGLE_TOPIC


__all__ = ["RunContext", "RunScope", "RunState", "RunStatus"]
