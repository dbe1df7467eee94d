import json
import os
from pathlib import Path

import pytest

from apps.generation.client import GenerationClient
from apps.orchestrator.ledger import LogEntry, LogKind
from catalog.models import ArtifactKind
from catalog.storage import CatalogStore
from lessonforge.pipeline import bootstrap_generation, build_store
from lessonforge.core.config import CatalogConfig
from tests.mocks.fakes import FakeGenerationClient, seed_topic


def test_bootstrap_defaults_build_sqlite_store_and_http_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env = {key: value for key, value in os.environ.items() if not key.startswith(("SUPABASE_", "LESSONFORGE_"))}
    monkeypatch.setattr(os, "environ", env)
    (tmp_path / ".env").write_text("SUPABASE_ANON_KEY=from-dotenv\n", encoding="utf-8")

    ctx = bootstrap_generation(repo_root=tmp_path)

    assert isinstance(ctx.store, CatalogStore)
    assert ctx.store.db_path == (tmp_path / "outputs" / "catalog.sqlite").resolve()
    assert isinstance(ctx.client, GenerationClient)
    assert ctx.config.endpoint.anon_key == "from-dotenv"
    assert ctx.env.get("SUPABASE_ANON_KEY") == "set"
    assert ctx.paths.logs_dir.exists()


def test_bootstrap_logs_bootstrap_event_and_mirrors_ledger(tmp_path: Path, catalog_store) -> None:
    seen: list[LogEntry] = []
    ctx = bootstrap_generation(
        repo_root=tmp_path,
        kind=ArtifactKind.PRACTICE,
        question_count=25,
        store=catalog_store,
        client=FakeGenerationClient(catalog_store),
        on_entry=lambda topic_id, entry: seen.append(entry),
    )
    assert ctx.config.artifact_kind is ArtifactKind.PRACTICE
    assert ctx.config.practice.questions_per_subtopic == 25

    ctx.controller.ledger.record("t1", LogKind.OK, "done it")

    log_files = list(ctx.paths.logs_dir.glob("generation-*.jsonl"))
    assert len(log_files) == 1
    events = [json.loads(line) for line in log_files[0].read_text(encoding="utf-8").splitlines()]
    assert events[0]["stage"] == "bootstrap"
    assert events[0]["payload"]["artifact_kind"] == "practice"
    assert events[1]["topic_id"] == "t1" and events[1]["kind"] == "ok"
    assert [entry.message for entry in seen] == ["done it"]


@pytest.mark.anyio
async def test_context_runs_and_closes(tmp_path: Path, catalog_store) -> None:
    seed_topic(catalog_store, "t1", ["Alpha"])
    client = FakeGenerationClient(catalog_store)
    ctx = bootstrap_generation(repo_root=tmp_path, store=catalog_store, client=client)

    outcome = await ctx.controller.run_topic("t1")
    await ctx.aclose()

    assert outcome.ok == 1
    assert not ctx.controller.is_running


def test_build_store_selects_backend(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = build_store(CatalogConfig(sqlite_path=tmp_path / "c.sqlite"))
    assert isinstance(store, CatalogStore)

    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
    with pytest.raises(ValueError):
        build_store(CatalogConfig(backend="supabase"))
