"""FastAPI mock of the lesson/practice generation functions used in integration tests."""

from __future__ import annotations

from typing import Dict, List, Optional

import httpx
from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from httpx import ASGITransport
from pydantic import BaseModel

from catalog.base import EXTENDED_QUESTION_CATEGORY
from catalog.models import ArtifactKind
from catalog.storage import CatalogStore


class GeneratePayload(BaseModel):
    subtopic_id: str
    count: Optional[int] = None


class GenerationFunctionsMock:
    """Behaves like the deployed functions: checks existence server-side and writes rows."""

    def __init__(
        self,
        store: CatalogStore,
        *,
        base_url: str = "http://functions-mock.local",
        token: str = "test-token",
    ) -> None:
        self.store = store
        self.base_url = base_url
        self.token = token
        self.calls: List[tuple[str, Dict[str, object]]] = []
        self.failures: Dict[str, int] = {}
        self.app = self._build_app()

    def fail(self, subtopic_id: str, status_code: int = 500) -> None:
        self.failures[subtopic_id] = status_code

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=ASGITransport(app=self.app), base_url=self.base_url)

    def called_ids(self) -> List[str]:
        return [payload["subtopic_id"] for _, payload in self.calls]  # type: ignore[misc]

    def _authorize(self, authorization: Optional[str]) -> None:
        if authorization != f"Bearer {self.token}":
            raise HTTPException(status_code=401, detail="Missing or invalid token")

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.post("/functions/v1/generate-lesson")
        def generate_lesson(payload: GeneratePayload, authorization: Optional[str] = Header(None)):
            self._authorize(authorization)
            self.calls.append(("lesson", payload.model_dump(exclude_none=True)))
            if payload.subtopic_id in self.failures:
                status = self.failures[payload.subtopic_id]
                return JSONResponse(status_code=status, content={"error": "model overloaded"})
            if self.store.has_lesson(payload.subtopic_id):
                return {"message": "Lesson already exists", "lesson_id": "existing"}
            lesson_id = self.store.add_lesson(payload.subtopic_id, title=f"Lesson for {payload.subtopic_id}")
            return {"success": True, "lesson_id": lesson_id}

        @app.post("/functions/v1/generate-practice")
        def generate_practice(payload: GeneratePayload, authorization: Optional[str] = Header(None)):
            self._authorize(authorization)
            self.calls.append(("practice", payload.model_dump(exclude_none=True)))
            if payload.subtopic_id in self.failures:
                status = self.failures[payload.subtopic_id]
                return JSONResponse(status_code=status, content={"error": "model overloaded"})
            existing = self.store.count_artifacts([payload.subtopic_id], ArtifactKind.PRACTICE)
            if existing:
                return {"ok": True, "skipped": True, "existing": existing}
            count = payload.count or 30
            inserted = self.store.add_practice_questions(
                payload.subtopic_id,
                [f"Q{i} for {payload.subtopic_id}" for i in range(1, count + 1)],
                category=EXTENDED_QUESTION_CATEGORY,
            )
            return {"ok": True, "inserted": inserted}

        return app


__all__ = ["GenerationFunctionsMock"]
