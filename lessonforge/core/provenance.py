"""Lightweight JSONL run log for bulk generation sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, Field


class ProvenanceEvent(BaseModel):
    """Structured record for generator activity."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stage: str = Field(..., description="High-level stage, e.g. 'bootstrap' or 'generate'.")
    message: str = Field(..., description="Human-readable description of the event.")
    topic_id: str | None = None
    kind: str | None = Field(default=None, description="Ledger entry kind when the event mirrors one.")
    payload: Dict[str, Any] = Field(default_factory=dict)


class ProvenanceLogger:
    """Append-only JSONL logger for auditing what a run did."""

    def __init__(self, output_path: Path):
        self.output_path = output_path
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, event: ProvenanceEvent | Dict[str, Any]) -> ProvenanceEvent:
        """Write a single event to disk and return the normalized object."""
        if not isinstance(event, ProvenanceEvent):
            event = ProvenanceEvent(**event)
        line = event.model_dump_json()
        with self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        return event


__all__ = ["ProvenanceEvent", "ProvenanceLogger"]
