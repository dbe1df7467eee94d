"""Session bootstrap utilities for the bulk generator."""

from __future__ import annotations

from .bootstrap import bootstrap_generation, build_store
from .context import GenerationContext, SessionPaths

__all__ = [
    "GenerationContext",
    "SessionPaths",
    "bootstrap_generation",
    "build_store",
]
