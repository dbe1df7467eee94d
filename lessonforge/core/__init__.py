"""
Foundational configuration, error and logging utilities for the generator.

Higher layers (the orchestrator, CLI and admin API) depend on these modules;
nothing here imports from them.
"""

from .config import GenerationConfig, RunnerConfig, load_generation_config
from .errors import CatalogLoadError, LessonForgeError, RunConflictError, UnknownTopicError
from .provenance import ProvenanceEvent, ProvenanceLogger

__all__ = [
    "CatalogLoadError",
    "GenerationConfig",
    "LessonForgeError",
    "ProvenanceEvent",
    "ProvenanceLogger",
    "RunConflictError",
    "RunnerConfig",
    "UnknownTopicError",
    "load_generation_config",
]
