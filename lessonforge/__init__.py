"""
Core package for the LessonForge bulk content generator.

This module is intentionally lightweight so the package can be imported
without pulling in the orchestrator or any network clients.
"""

from importlib import metadata


def get_version() -> str:
    """Return the installed project version."""
    try:
        return metadata.version("lessonforge")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
