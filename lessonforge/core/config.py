"""
Typed configuration for the bulk lesson/practice generator.

The YAML layout mirrors the sections below; every section is optional and
falls back to the defaults the admin console has always used.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from catalog.models import ArtifactKind

DEFAULT_LESSON_DELAY_SECONDS = 0.7
DEFAULT_PRACTICE_DELAY_SECONDS = 0.8


class EndpointConfig(BaseModel):
    """Where the generation functions live and how to authenticate."""

    model_config = ConfigDict(extra="ignore")

    base_url: str = Field(default="http://localhost:54321", description="Supabase project URL.")
    lesson_path: str = "/functions/v1/generate-lesson"
    practice_path: str = "/functions/v1/generate-practice"
    anon_key: Optional[str] = None
    access_token: Optional[str] = Field(default=None, description="Operator session token; anon key is used when absent.")
    timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def path_for(self, kind: ArtifactKind) -> str:
        return self.lesson_path if kind is ArtifactKind.LESSON else self.practice_path

    @property
    def bearer_token(self) -> Optional[str]:
        return self.access_token or self.anon_key


class RunnerConfig(BaseModel):
    """Pacing, retry and pause knobs for the sequential runner."""

    model_config = ConfigDict(extra="ignore")

    lesson_delay_seconds: float = Field(default=DEFAULT_LESSON_DELAY_SECONDS, ge=0)
    practice_delay_seconds: float = Field(default=DEFAULT_PRACTICE_DELAY_SECONDS, ge=0)
    pause_poll_seconds: float = Field(default=0.3, gt=0)
    max_retries: int = Field(default=0, ge=0, le=5)
    retry_backoff_seconds: float = Field(default=2.0, ge=0)
    max_concurrent_requests: Optional[int] = Field(default=None, ge=1)
    min_request_interval_seconds: float = Field(default=0.0, ge=0)

    def delay_for(self, kind: ArtifactKind) -> float:
        return self.lesson_delay_seconds if kind is ArtifactKind.LESSON else self.practice_delay_seconds


class CatalogConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    backend: Literal["sqlite", "supabase"] = "sqlite"
    sqlite_path: Path = Field(default=Path("outputs/catalog.sqlite"))
    supabase_url: Optional[str] = None
    supabase_key_env: str = "SUPABASE_SERVICE_KEY"

    @field_validator("sqlite_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Path:
        return Path(value).expanduser()


class PracticeConfig(BaseModel):
    """Practice-question variant settings."""

    questions_per_subtopic: int = Field(default=30, ge=1, le=100)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    logs_dir: Path = Field(default=Path("outputs/logs"))

    @field_validator("level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("logs_dir", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Path:
        return Path(value).expanduser()


class GenerationConfig(BaseModel):
    """Top-level configuration for a bulk generation session."""

    artifact_kind: ArtifactKind = ArtifactKind.LESSON
    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    practice: PracticeConfig = Field(default_factory=PracticeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="before")
    @classmethod
    def coerce_kind_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "kind" in data and "artifact_kind" not in data:
            payload = dict(data)
            payload["artifact_kind"] = payload.pop("kind")
            return payload
        return data

    @property
    def item_delay_seconds(self) -> float:
        return self.runner.delay_for(self.artifact_kind)

    def with_kind(self, kind: ArtifactKind, *, question_count: int | None = None) -> "GenerationConfig":
        """Return a copy targeting another artifact kind (and optional question count)."""

        updates: Dict[str, Any] = {"artifact_kind": kind}
        if question_count is not None:
            updates["practice"] = PracticeConfig(questions_per_subtopic=question_count)
        return self.model_copy(update=updates)


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at root of {path}, received {type(data)}")
    return data


def _resolve_config_path(value: Any, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    else:
        path = path.resolve()
    return str(path)


def _absolutize_paths(data: Dict[str, Any], base_dir: Path) -> None:
    catalog = data.get("catalog")
    if isinstance(catalog, dict) and catalog.get("sqlite_path"):
        catalog["sqlite_path"] = _resolve_config_path(catalog["sqlite_path"], base_dir)

    logging_cfg = data.get("logging")
    if isinstance(logging_cfg, dict) and logging_cfg.get("logs_dir"):
        logging_cfg["logs_dir"] = _resolve_config_path(logging_cfg["logs_dir"], base_dir)


def apply_env_overrides(data: Dict[str, Any], env: Dict[str, str] | None = None) -> Dict[str, Any]:
    """Fill endpoint credentials from the environment when the YAML leaves them blank."""

    env = dict(os.environ) if env is None else env
    endpoint = data.setdefault("endpoint", {})
    if not isinstance(endpoint, dict):
        return data
    if env.get("SUPABASE_URL") and not endpoint.get("base_url"):
        endpoint["base_url"] = env["SUPABASE_URL"]
    if env.get("SUPABASE_ANON_KEY") and not endpoint.get("anon_key"):
        endpoint["anon_key"] = env["SUPABASE_ANON_KEY"]
    if env.get("LESSONFORGE_ACCESS_TOKEN") and not endpoint.get("access_token"):
        endpoint["access_token"] = env["LESSONFORGE_ACCESS_TOKEN"]

    catalog = data.get("catalog")
    if isinstance(catalog, dict) and catalog.get("backend") == "supabase" and not catalog.get("supabase_url"):
        if env.get("SUPABASE_URL"):
            catalog["supabase_url"] = env["SUPABASE_URL"]
    return data


def load_generation_config(
    path: Path | None = None,
    *,
    base_dir: Path | None = None,
    env: Dict[str, str] | None = None,
) -> GenerationConfig:
    """Load the generator config; a missing path yields defaults plus env overrides."""

    if path is None:
        data: Dict[str, Any] = {}
        anchor = (base_dir or Path.cwd()).resolve()
    else:
        path = path.expanduser().resolve()
        data = read_yaml_file(path)
        anchor = (base_dir or path.parent).resolve()
    _absolutize_paths(data, base_dir=anchor)
    apply_env_overrides(data, env)
    try:
        config = GenerationConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid generation config in {path or '<defaults>'}") from exc

    # Defaults are relative; anchor them like YAML-provided paths.
    return config.model_copy(
        update={
            "catalog": config.catalog.model_copy(update={"sqlite_path": (anchor / config.catalog.sqlite_path).resolve()}),
            "logging": config.logging.model_copy(update={"logs_dir": (anchor / config.logging.logs_dir).resolve()}),
        }
    )


__all__ = [
    "CatalogConfig",
    "EndpointConfig",
    "GenerationConfig",
    "LoggingConfig",
    "PracticeConfig",
    "RunnerConfig",
    "apply_env_overrides",
    "load_generation_config",
    "read_yaml_file",
]
