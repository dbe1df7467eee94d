from __future__ import annotations

from pathlib import Path

import pytest

from catalog.storage import CatalogStore
from catalog.models import ArtifactKind
from lessonforge.core.config import GenerationConfig, RunnerConfig


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def catalog_store(tmp_path: Path) -> CatalogStore:
    return CatalogStore(tmp_path / "catalog.sqlite")


@pytest.fixture
def lesson_config() -> GenerationConfig:
    return GenerationConfig(runner=RunnerConfig(pause_poll_seconds=0.01))


@pytest.fixture
def practice_config() -> GenerationConfig:
    return GenerationConfig(artifact_kind=ArtifactKind.PRACTICE, runner=RunnerConfig(pause_poll_seconds=0.01))
