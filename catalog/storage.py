"""Lightweight SQLite-backed catalog store."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable, List, Set

from .base import EXTENDED_QUESTION_CATEGORY
from .models import ArtifactKind, LearningPath, Subtopic, Topic


class CatalogStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        """Create a connection, ensuring the parent directory exists."""

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        con = sqlite3.connect(self.db_path)
        con.execute("PRAGMA foreign_keys = ON;")
        return con

    def _ensure_schema(self) -> None:
        schema_sql = Path(__file__).with_name("schema.sql").read_text(encoding="utf-8")
        with self._connect() as con:
            con.executescript(schema_sql)

    def execute(self, sql: str, params: tuple | None = None) -> int:
        """Execute a single SQL statement and return the last row id (if any)."""

        with self._connect() as con:
            cur = con.execute(sql, params or tuple())
            con.commit()
            return int(cur.lastrowid or 0)

    def execute_many(self, sql: str, rows: Iterable[tuple]) -> None:
        buffered_rows = list(rows)
        if not buffered_rows:
            return
        with self._connect() as con:
            con.executemany(sql, buffered_rows)
            con.commit()

    def query(self, sql: str, params: tuple | None = None) -> list[tuple]:
        with self._connect() as con:
            cur = con.execute(sql, params or tuple())
            return cur.fetchall()

    # ------------------------------------------------------------------
    # Catalog reads

    def list_learning_paths(self, *, active_only: bool = True) -> List[LearningPath]:
        sql = "SELECT id, name, is_active, sort_order FROM learning_paths"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY sort_order, id"
        return [
            LearningPath(id=row[0], name=row[1], is_active=bool(row[2]), sort_order=row[3])
            for row in self.query(sql)
        ]

    def list_topics(self, learning_path_id: str) -> List[Topic]:
        rows = self.query(
            "SELECT id, learning_path_id, name, icon, sort_order FROM topics "
            "WHERE learning_path_id = ? ORDER BY sort_order, rowid",
            (learning_path_id,),
        )
        return [_topic_from_row(row) for row in rows]

    def get_topic(self, topic_id: str) -> Topic | None:
        rows = self.query(
            "SELECT id, learning_path_id, name, icon, sort_order FROM topics WHERE id = ?",
            (topic_id,),
        )
        return _topic_from_row(rows[0]) if rows else None

    def list_subtopics(self, topic_id: str) -> List[Subtopic]:
        rows = self.query(
            "SELECT id, topic_id, name, sort_order FROM subtopics "
            "WHERE topic_id = ? ORDER BY sort_order, rowid",
            (topic_id,),
        )
        return [Subtopic(id=row[0], topic_id=row[1], name=row[2], sort_order=row[3]) for row in rows]

    def count_artifacts(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> int:
        ids = list(subtopic_ids)
        if not ids:
            return 0
        sql, params = _artifact_filter(ids, kind, select="COUNT(*)")
        return int(self.query(sql, params)[0][0])

    def artifact_subtopic_ids(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> Set[str]:
        ids = list(subtopic_ids)
        if not ids:
            return set()
        sql, params = _artifact_filter(ids, kind, select="DISTINCT subtopic_id")
        return {row[0] for row in self.query(sql, params)}

    def has_lesson(self, subtopic_id: str) -> bool:
        return self.count_artifacts([subtopic_id], ArtifactKind.LESSON) > 0

    def delete_artifacts(self, subtopic_ids: Iterable[str], kind: ArtifactKind) -> int:
        ids = list(subtopic_ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        if kind is ArtifactKind.LESSON:
            sql = f"DELETE FROM lessons WHERE subtopic_id IN ({placeholders})"
            params: tuple = tuple(ids)
        else:
            sql = f"DELETE FROM practice_questions WHERE subtopic_id IN ({placeholders}) AND category = ?"
            params = (*ids, EXTENDED_QUESTION_CATEGORY)
        with self._connect() as con:
            cur = con.execute(sql, params)
            con.commit()
            return int(cur.rowcount)

    # ------------------------------------------------------------------
    # Writes used by seeding and local fakes

    def add_learning_path(self, path: LearningPath) -> None:
        self.execute(
            "INSERT OR REPLACE INTO learning_paths(id, name, is_active, sort_order) VALUES (?, ?, ?, ?)",
            (path.id, path.name, int(path.is_active), path.sort_order),
        )

    def add_topic(self, topic: Topic) -> None:
        self.execute(
            "INSERT OR REPLACE INTO topics(id, learning_path_id, name, icon, sort_order) VALUES (?, ?, ?, ?, ?)",
            (topic.id, topic.learning_path_id, topic.name, topic.icon, topic.sort_order),
        )

    def add_subtopic(self, subtopic: Subtopic) -> None:
        self.execute(
            "INSERT OR REPLACE INTO subtopics(id, topic_id, name, sort_order) VALUES (?, ?, ?, ?)",
            (subtopic.id, subtopic.topic_id, subtopic.name, subtopic.sort_order),
        )

    def add_lesson(self, subtopic_id: str, *, title: str | None = None) -> int:
        return self.execute(
            "INSERT INTO lessons(subtopic_id, title) VALUES (?, ?)",
            (subtopic_id, title),
        )

    def add_practice_questions(
        self,
        subtopic_id: str,
        questions: Iterable[str],
        *,
        category: str = EXTENDED_QUESTION_CATEGORY,
    ) -> int:
        rows = [(subtopic_id, category, question) for question in questions]
        self.execute_many(
            "INSERT INTO practice_questions(subtopic_id, category, question) VALUES (?, ?, ?)",
            rows,
        )
        return len(rows)


def _topic_from_row(row: tuple) -> Topic:
    return Topic(id=row[0], learning_path_id=row[1], name=row[2], icon=row[3], sort_order=row[4])


def _artifact_filter(ids: List[str], kind: ArtifactKind, *, select: str) -> tuple[str, tuple]:
    placeholders = ", ".join("?" for _ in ids)
    if kind is ArtifactKind.LESSON:
        return f"SELECT {select} FROM lessons WHERE subtopic_id IN ({placeholders})", tuple(ids)
    return (
        f"SELECT {select} FROM practice_questions WHERE subtopic_id IN ({placeholders}) AND category = ?",
        (*ids, EXTENDED_QUESTION_CATEGORY),
    )
