"""Client for the external content-generation endpoint."""

from .client import GenerationBackend, GenerationClient, GenerationResult, parse_generation_response

__all__ = ["GenerationBackend", "GenerationClient", "GenerationResult", "parse_generation_response"]
