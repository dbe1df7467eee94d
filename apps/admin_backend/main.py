from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from apps.orchestrator.controller import RunController
from apps.orchestrator.runner import TopicOutcome
from catalog.models import ArtifactKind
from lessonforge.core.errors import CatalogLoadError, RunConflictError, UnknownTopicError
from lessonforge.pipeline import GenerationContext, bootstrap_generation

REPO_ROOT = Path(__file__).resolve().parents[2]


@lru_cache
def get_session() -> GenerationContext:
    config_path = os.getenv("LESSONFORGE_CONFIG")
    return bootstrap_generation(
        Path(config_path).expanduser().resolve() if config_path else None,
        repo_root=REPO_ROOT,
        configure_root_logger=True,
    )


def get_controller(session: GenerationContext = Depends(get_session)) -> RunController:
    return session.controller


class HealthResponse(BaseModel):
    status: str
    run_status: str
    artifact_kind: str


class LearningPathItem(BaseModel):
    id: str
    name: str
    sort_order: int


class ChecklistItem(BaseModel):
    subtopic_id: str
    name: str
    done: bool


class TopicStatus(BaseModel):
    id: str
    name: str
    icon: str | None = None
    done: int
    total: int
    running: bool
    can_force_regenerate: bool
    checklist: List[ChecklistItem] = Field(default_factory=list)


class PathTopicsResponse(BaseModel):
    learning_path_id: str
    artifact_kind: str
    done: int
    total: int
    practice_questions: int | None = None
    topics: List[TopicStatus] = Field(default_factory=list)


class RunAccepted(BaseModel):
    status: str = "accepted"
    scope: str
    target_id: str


class OutcomeResponse(BaseModel):
    topic_id: str
    ok: int
    skipped: int
    failed: int
    inserted: int
    stopped: bool

    @classmethod
    def from_outcome(cls, outcome: TopicOutcome) -> "OutcomeResponse":
        return cls(
            topic_id=outcome.topic_id,
            ok=outcome.ok,
            skipped=outcome.skipped,
            failed=outcome.failed,
            inserted=outcome.inserted,
            stopped=outcome.stopped,
        )


class PurgeResponse(BaseModel):
    topic_id: str
    deleted: int


class SteeringResponse(BaseModel):
    action: str
    run_status: str


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    if get_session.cache_info().currsize:
        await get_session().aclose()


app = FastAPI(title="LessonForge Admin API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
def health(controller: RunController = Depends(get_controller)) -> HealthResponse:
    return HealthResponse(status="ok", run_status=controller.state.status.value, artifact_kind=controller.kind.value)


@app.get("/paths", response_model=List[LearningPathItem])
def list_paths(controller: RunController = Depends(get_controller)) -> List[LearningPathItem]:
    try:
        paths = controller.store.list_learning_paths()
    except Exception as exc:
        raise CatalogLoadError(f"Unable to load learning paths: {exc}") from exc
    return [LearningPathItem(id=path.id, name=path.name, sort_order=path.sort_order) for path in paths]


@app.get("/paths/{path_id}/topics", response_model=PathTopicsResponse)
def list_path_topics(path_id: str, controller: RunController = Depends(get_controller)) -> PathTopicsResponse:
    aggregator = controller.aggregator
    topics = aggregator.load_topics(path_id)
    running = controller.state.running_topic_ids
    items: List[TopicStatus] = []
    for topic in topics:
        checklist = aggregator.topic_checklist(topic)
        done = sum(1 for row in checklist if row.has_artifact)
        complete = bool(checklist) and done == len(checklist)
        items.append(
            TopicStatus(
                id=topic.id,
                name=topic.name,
                icon=topic.icon,
                done=done,
                total=len(checklist),
                running=topic.id in running,
                can_force_regenerate=complete and topic.id not in running,
                checklist=[
                    ChecklistItem(subtopic_id=row.subtopic.id, name=row.subtopic.name, done=row.has_artifact)
                    for row in checklist
                ],
            )
        )
    practice_total = None
    if controller.kind is ArtifactKind.PRACTICE:
        practice_total = aggregator.practice_question_total(topics)
    return PathTopicsResponse(
        learning_path_id=path_id,
        artifact_kind=controller.kind.value,
        done=sum(item.done for item in items),
        total=sum(item.total for item in items),
        practice_questions=practice_total,
        topics=items,
    )


@app.post("/topics/{topic_id}/generate", response_model=None)
async def generate_topic(
    topic_id: str,
    wait: bool = Query(False, description="Block until the run finishes and return its outcome."),
    controller: RunController = Depends(get_controller),
) -> RunAccepted | OutcomeResponse:
    if not wait:
        await asyncio.to_thread(controller.aggregator.load_topic, topic_id)
        controller.start_topic(topic_id)
        return RunAccepted(scope="topic", target_id=topic_id)
    outcome = await controller.run_topic(topic_id)
    if outcome is None:
        raise RunConflictError(f"Topic {topic_id} is already running")
    return OutcomeResponse.from_outcome(outcome)


@app.post("/topics/{topic_id}/force-regenerate", response_model=None)
async def force_regenerate_topic(
    topic_id: str,
    wait: bool = Query(False, description="Block until the run finishes and return its outcome."),
    controller: RunController = Depends(get_controller),
) -> RunAccepted | OutcomeResponse:
    if not wait:
        await asyncio.to_thread(controller.aggregator.load_topic, topic_id)
        controller.start_force_regenerate(topic_id)
        return RunAccepted(scope="force", target_id=topic_id)
    outcome = await controller.force_regenerate(topic_id)
    if outcome is None:
        raise RunConflictError(f"Topic {topic_id} is already running")
    return OutcomeResponse.from_outcome(outcome)


@app.post("/topics/{topic_id}/purge", response_model=PurgeResponse)
async def purge_topic(topic_id: str, controller: RunController = Depends(get_controller)) -> PurgeResponse:
    deleted = await controller.delete_artifacts(topic_id)
    return PurgeResponse(topic_id=topic_id, deleted=deleted)


@app.post("/paths/{path_id}/generate-all", response_model=None)
async def generate_all(
    path_id: str,
    wait: bool = Query(False, description="Block until the run finishes and return per-topic outcomes."),
    controller: RunController = Depends(get_controller),
) -> RunAccepted | Dict[str, Any]:
    if not wait:
        controller.start_all(path_id)
        return RunAccepted(scope="all", target_id=path_id)
    summary = await controller.run_all(path_id)
    if summary is None:
        raise RunConflictError("Another run is active; wait for it to finish or stop it first")
    return {
        "learning_path_id": summary.learning_path_id,
        "stopped": summary.stopped,
        "skipped_topic_ids": summary.skipped_topic_ids,
        "topics": [OutcomeResponse.from_outcome(outcome).model_dump() for outcome in summary.outcomes],
    }


def _steer(controller: RunController, action: str, topic_id: str | None) -> SteeringResponse:
    if not controller.is_running:
        raise HTTPException(status_code=409, detail="No run is active")
    getattr(controller, action)(topic_id)
    return SteeringResponse(action=action, run_status=controller.state.status.value)


@app.post("/runs/pause", response_model=SteeringResponse)
def pause_runs(
    topic_id: str | None = Query(None, description="Only pause the run processing this topic."),
    controller: RunController = Depends(get_controller),
) -> SteeringResponse:
    return _steer(controller, "pause", topic_id)


@app.post("/runs/resume", response_model=SteeringResponse)
def resume_runs(
    topic_id: str | None = Query(None, description="Only resume the run processing this topic."),
    controller: RunController = Depends(get_controller),
) -> SteeringResponse:
    return _steer(controller, "resume", topic_id)


@app.post("/runs/stop", response_model=SteeringResponse)
def stop_runs(
    topic_id: str | None = Query(None, description="Only stop the run processing this topic."),
    controller: RunController = Depends(get_controller),
) -> SteeringResponse:
    return _steer(controller, "stop", topic_id)


@app.get("/runs/progress")
def run_progress(controller: RunController = Depends(get_controller)) -> Dict[str, Any]:
    return controller.snapshot().to_dict()


@app.exception_handler(HTTPException)
async def http_error_handler(_: Any, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(CatalogLoadError)
async def catalog_error_handler(_: Any, exc: CatalogLoadError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(UnknownTopicError)
async def unknown_topic_handler(_: Any, exc: UnknownTopicError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(RunConflictError)
async def conflict_handler(_: Any, exc: RunConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})
