"""Bootstrap helpers that wire config, store, client and controller together."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

import httpx
from dotenv import load_dotenv

from apps.generation.client import GenerationBackend, GenerationClient
from apps.orchestrator.controller import RunController
from apps.orchestrator.ledger import LedgerListener, LogEntry, ProgressLedger
from catalog.base import ItemStore
from catalog.models import ArtifactKind
from catalog.storage import CatalogStore
from lessonforge.core.config import CatalogConfig, GenerationConfig, load_generation_config
from lessonforge.core.provenance import ProvenanceEvent, ProvenanceLogger

from .context import GenerationContext, SessionPaths

DEFAULT_CONFIG_PATH = Path("config/generation.yaml")
LOGGER = logging.getLogger(__name__)


def _capture_env(keys: tuple[str, ...]) -> Dict[str, str]:
    """Return which of the given variables are set, without their secret values."""
    snapshot: Dict[str, str] = {}
    for key in keys:
        if os.getenv(key) is not None:
            snapshot[key] = "set"
    return snapshot


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_store(config: CatalogConfig) -> ItemStore:
    if config.backend == "supabase":
        from catalog.supabase_store import SupabaseCatalogStore, build_supabase_client

        client = build_supabase_client(config.supabase_url, os.getenv(config.supabase_key_env))
        return SupabaseCatalogStore(client)
    return CatalogStore(config.sqlite_path)


def provenance_listener(provenance: ProvenanceLogger, forward: LedgerListener | None = None) -> LedgerListener:
    """Mirror every ledger append into the JSONL run log, then hand it to ``forward``."""

    def _listener(topic_id: str, entry: LogEntry) -> None:
        provenance.log(
            ProvenanceEvent(
                timestamp=entry.timestamp,
                stage="generate",
                message=entry.message,
                topic_id=topic_id,
                kind=entry.kind.value,
                payload={"subtopic_id": entry.subtopic_id} if entry.subtopic_id else {},
            )
        )
        if forward is not None:
            forward(topic_id, entry)

    return _listener


def bootstrap_generation(
    config_path: Path | None = None,
    *,
    repo_root: Path | None = None,
    kind: ArtifactKind | None = None,
    question_count: int | None = None,
    store: ItemStore | None = None,
    client: GenerationBackend | None = None,
    http_client: httpx.AsyncClient | None = None,
    env_keys: tuple[str, ...] = ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_KEY", "LESSONFORGE_ACCESS_TOKEN"),
    configure_root_logger: bool = False,
    on_entry: LedgerListener | None = None,
) -> GenerationContext:
    """
    Load configuration and environment, then construct a ready-to-run context.

    Parameters
    ----------
    config_path:
        Generator YAML. Defaults to ``config/generation.yaml`` under the repo
        root when that file exists, otherwise built-in defaults are used.
    repo_root:
        Root of the checkout; its ``.env`` is loaded. Defaults to ``Path.cwd()``.
    kind / question_count:
        Override the configured artifact kind and practice question target.
    store / client / http_client:
        Injection points for tests and embedding applications.
    on_entry:
        Called with every ledger entry after it has been written to the run log.
    """

    repo_root = (repo_root or Path.cwd()).resolve()
    load_dotenv(repo_root / ".env")
    if config_path is None:
        default_path = repo_root / DEFAULT_CONFIG_PATH
        config_path = default_path if default_path.exists() else None

    config: GenerationConfig = load_generation_config(config_path, base_dir=repo_root if config_path is None else None)
    if kind is not None or question_count is not None:
        config = config.with_kind(kind or config.artifact_kind, question_count=question_count)
    if configure_root_logger:
        configure_logging(config.logging.level)

    paths = SessionPaths(repo_root=repo_root, logs_dir=config.logging.logs_dir)
    paths.ensure_directories()
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    provenance = ProvenanceLogger(paths.logs_dir / f"generation-{stamp}.jsonl")

    store = store or build_store(config.catalog)
    client = client or GenerationClient(config.endpoint, client=http_client)
    ledger = ProgressLedger(listener=provenance_listener(provenance, on_entry))
    controller = RunController(store, client, config=config, ledger=ledger)

    ctx = GenerationContext(
        config=config,
        paths=paths,
        store=store,
        client=client,
        controller=controller,
        provenance=provenance,
        env=_capture_env(env_keys),
    )
    ctx.provenance.log(
        ProvenanceEvent(
            stage="bootstrap",
            message="Generation session ready",
            payload={
                "config_path": str(config_path) if config_path else None,
                "artifact_kind": config.artifact_kind.value,
                "catalog_backend": config.catalog.backend,
                "endpoint": config.endpoint.base_url,
                "env": ctx.env,
            },
        )
    )
    LOGGER.info("Bootstrapped %s generation against %s", config.artifact_kind.value, config.endpoint.base_url)
    return ctx


__all__ = ["DEFAULT_CONFIG_PATH", "bootstrap_generation", "build_store", "configure_logging", "provenance_listener"]
