"""Shared context objects for a bulk generation session."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from apps.orchestrator.controller import RunController
from lessonforge.core.config import GenerationConfig
from lessonforge.core.provenance import ProvenanceLogger


class SessionPaths(BaseModel):
    """Canonical directories used during a session."""

    repo_root: Path
    logs_dir: Path

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("repo_root", "logs_dir", mode="before")
    @classmethod
    def _expand(cls, value: Path | str) -> Path:
        return Path(value).expanduser().resolve()

    def ensure_directories(self) -> None:
        self.logs_dir.mkdir(parents=True, exist_ok=True)


class GenerationContext(BaseModel):
    """Everything an operator surface needs to drive runs."""

    config: GenerationConfig
    paths: SessionPaths
    store: Any
    client: Any
    controller: RunController
    provenance: ProvenanceLogger
    env: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    async def aclose(self) -> None:
        """Stop active runs and release the HTTP client."""

        await self.controller.shutdown()
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()
