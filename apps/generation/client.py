"""HTTP client wrapper for the lesson/practice generation functions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Protocol

import httpx

from catalog.models import ArtifactKind
from lessonforge.core.config import EndpointConfig

LOGGER = logging.getLogger("lessonforge.generation")
REASON_BODY_LIMIT = 80
_ALREADY_EXISTS = re.compile(r"already\s+exists", re.IGNORECASE)

GenerationStatus = Literal["created", "already_exists", "failed"]


@dataclass(frozen=True)
class GenerationResult:
    """Tagged outcome of one generation request."""

    status: GenerationStatus
    reason: str | None = None
    inserted: int | None = None
    existing: int | None = None
    artifact_id: str | None = None

    @classmethod
    def created(cls, *, inserted: int | None = None, artifact_id: str | None = None) -> "GenerationResult":
        return cls(status="created", inserted=inserted, artifact_id=artifact_id)

    @classmethod
    def already_exists(cls, *, existing: int | None = None, artifact_id: str | None = None) -> "GenerationResult":
        return cls(status="already_exists", existing=existing, artifact_id=artifact_id)

    @classmethod
    def failed(cls, reason: str) -> "GenerationResult":
        return cls(status="failed", reason=reason)

    @property
    def is_failure(self) -> bool:
        return self.status == "failed"


class GenerationBackend(Protocol):
    """Anything the runner can ask to generate an artifact."""

    async def generate(
        self,
        subtopic_id: str,
        *,
        kind: ArtifactKind = ArtifactKind.LESSON,
        count: int | None = None,
    ) -> GenerationResult: ...


class GenerationClient:
    """One POST per call; no retries here (the runner owns retry policy)."""

    def __init__(
        self,
        config: EndpointConfig,
        *,
        client: httpx.AsyncClient | None = None,
        token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._config = config
        self._token_provider = token_provider
        if client is None:
            self._client = httpx.AsyncClient(
                base_url=config.base_url,
                timeout=config.timeout_seconds,
            )
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    async def generate(
        self,
        subtopic_id: str,
        *,
        kind: ArtifactKind = ArtifactKind.LESSON,
        count: int | None = None,
    ) -> GenerationResult:
        """Ask the endpoint to build one subtopic's artifact."""

        payload: Dict[str, Any] = {"subtopic_id": subtopic_id}
        if count is not None:
            payload["count"] = count
        try:
            response = await self._client.post(
                self._config.path_for(kind),
                json=payload,
                headers=self._build_headers(),
            )
        except httpx.TimeoutException:
            LOGGER.warning("Generation request for %s timed out", subtopic_id)
            return GenerationResult.failed(f"Timed out after {self._config.timeout_seconds:g}s")
        except httpx.HTTPError as exc:
            LOGGER.warning("Generation request for %s failed: %s", subtopic_id, exc)
            return GenerationResult.failed(str(exc) or exc.__class__.__name__)
        return parse_generation_response(response)

    async def aclose(self) -> None:
        if getattr(self, "_owns_client", False):
            await self._client.aclose()

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.anon_key:
            headers["apikey"] = self._config.anon_key
        token = self._token_provider() if self._token_provider else None
        token = token or self._config.bearer_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def __aenter__(self) -> "GenerationClient":  # pragma: no cover - convenience
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - convenience
        await self.aclose()


def parse_generation_response(response: httpx.Response) -> GenerationResult:
    """Collapse the endpoint envelope into created / already_exists / failed."""

    data = _safe_json(response)
    if not response.is_success:
        detail = data.get("error") if isinstance(data, dict) else None
        detail = str(detail) if detail else response.text
        reason = f"HTTP {response.status_code}"
        if detail:
            reason += f": {detail[:REASON_BODY_LIMIT]}"
        return GenerationResult.failed(reason)

    if not isinstance(data, dict):
        return GenerationResult.failed(f"HTTP {response.status_code}: non-JSON payload")

    if data.get("ok") is False or data.get("error"):
        return GenerationResult.failed(str(data.get("error") or f"HTTP {response.status_code}"))

    artifact_id = data.get("lesson_id")
    artifact_id = str(artifact_id) if artifact_id is not None else None
    if data.get("skipped") or _ALREADY_EXISTS.search(str(data.get("message") or "")):
        return GenerationResult.already_exists(existing=_optional_int(data.get("existing")), artifact_id=artifact_id)
    return GenerationResult.created(inserted=_optional_int(data.get("inserted")), artifact_id=artifact_id)


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _optional_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


__all__ = [
    "GenerationBackend",
    "GenerationClient",
    "GenerationResult",
    "parse_generation_response",
]
