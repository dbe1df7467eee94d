"""Supabase-backed catalog store (the hosted tables the admin console reads)."""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, List, Optional, Set

from supabase import Client, create_client

from .base import EXTENDED_QUESTION_CATEGORY
from .models import ArtifactKind, LearningPath, Subtopic, Topic

LOGGER = logging.getLogger(__name__)


def build_supabase_client(url: str | None = None, key: str | None = None) -> Client:
    """Create a client from explicit values or SUPABASE_URL / SUPABASE_SERVICE_KEY."""

    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY (or SUPABASE_ANON_KEY) must be set")
    return create_client(url, key)


class SupabaseCatalogStore:
    """ItemStore over the `learning_paths`, `topics`, `subtopics`, `lessons`
    and `practice_questions` tables.

    Existence checks use head-only count queries so no rows are transferred.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    def list_learning_paths(self, *, active_only: bool = True) -> List[LearningPath]:
        query = self._client.table("learning_paths").select("id,name,is_active,sort_order")
        if active_only:
            query = query.eq("is_active", True)
        rows = query.order("sort_order").execute().data or []
        return [
            LearningPath(
                id=str(row["id"]),
                name=row.get("name") or "",
                is_active=bool(row.get("is_active", True)),
                sort_order=row.get("sort_order") or 0,
            )
            for row in rows
        ]

    def list_topics(self, learning_path_id: str) -> List[Topic]:
        rows = (
            self._client.table("topics")
            .select("id,learning_path_id,name,icon,sort_order")
            .eq("learning_path_id", learning_path_id)
            .order("sort_order")
            .execute()
            .data
            or []
        )
        return [_topic_from_row(row, learning_path_id) for row in rows]

    def get_topic(self, topic_id: str) -> Optional[Topic]:
        rows = (
            self._client.table("topics")
            .select("id,learning_path_id,name,icon,sort_order")
            .eq("id", topic_id)
            .limit(1)
            .execute()
            .data
            or []
        )
        if not rows:
            return None
        return _topic_from_row(rows[0], str(rows[0].get("learning_path_id", "")))

    def list_subtopics(self, topic_id: str) -> List[Subtopic]:
        rows = (
            self._client.table("subtopics")
            .select("id,name,sort_order")
            .eq("topic_id", topic_id)
            .order("sort_order")
            .execute()
            .data
            or []
        )
        return [
            Subtopic(id=str(row["id"]), topic_id=topic_id, name=row.get("name") or "", sort_order=row.get("sort_order") or 0)
            for row in rows
        ]

    def count_artifacts(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> int:
        ids = list(subtopic_ids)
        if not ids:
            return 0
        query = self._artifact_query(ids, kind, "id", count="exact", head=True)
        response = query.execute()
        return int(response.count or 0)

    def artifact_subtopic_ids(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> Set[str]:
        # One head-only count per subtopic; row selects are capped server-side.
        return {sub_id for sub_id in dict.fromkeys(subtopic_ids) if self.count_artifacts([sub_id], kind) > 0}

    def has_lesson(self, subtopic_id: str) -> bool:
        return self.count_artifacts([subtopic_id], ArtifactKind.LESSON) > 0

    def delete_artifacts(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> int:
        ids = list(subtopic_ids)
        if not ids:
            return 0
        table = _artifact_table(kind)
        query = self._client.table(table).delete().in_("subtopic_id", ids)
        if kind is ArtifactKind.PRACTICE:
            query = query.eq("category", EXTENDED_QUESTION_CATEGORY)
        deleted = len(query.execute().data or [])
        LOGGER.info("Deleted %s %s rows for %s subtopics", deleted, table, len(ids))
        return deleted

    def _artifact_query(self, ids: List[str], kind: ArtifactKind, columns: str, **select_kwargs: Any):
        query = self._client.table(_artifact_table(kind)).select(columns, **select_kwargs).in_("subtopic_id", ids)
        if kind is ArtifactKind.PRACTICE:
            query = query.eq("category", EXTENDED_QUESTION_CATEGORY)
        return query


def _artifact_table(kind: ArtifactKind) -> str:
    return "lessons" if kind is ArtifactKind.LESSON else "practice_questions"


def _topic_from_row(row: dict, learning_path_id: str) -> Topic:
    return Topic(
        id=str(row["id"]),
        learning_path_id=str(row.get("learning_path_id") or learning_path_id),
        name=row.get("name") or "",
        icon=row.get("icon"),
        sort_order=row.get("sort_order") or 0,
    )


__all__ = ["SupabaseCatalogStore", "build_supabase_client"]
