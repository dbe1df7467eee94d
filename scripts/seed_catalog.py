"""Load a curriculum YAML (paths → topics → subtopics) into the SQLite catalog."""
from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from catalog.models import LearningPath, Subtopic, Topic  # noqa: E402
from catalog.storage import CatalogStore  # noqa: E402

LOGGER = logging.getLogger("seed_catalog")
_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG.sub("-", value.lower()).strip("-")


def load_curriculum(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    paths = data.get("learning_paths") if isinstance(data, dict) else None
    if not isinstance(paths, list):
        raise ValueError(f"{path} must define a 'learning_paths' list")
    return paths


def seed(source: Path, dest_path: Path, *, replace: bool = False) -> Dict[str, int]:
    """Insert every learning path, topic and subtopic from ``source``.

    Subtopics may be plain strings (id derived from the topic id and name) or
    mappings with ``id``/``name``/``sort_order``. Missing sort orders follow
    the list position.
    """

    source = source.resolve()
    if not source.exists():
        raise FileNotFoundError(f"Curriculum file {source} does not exist")

    dest_path = dest_path.resolve()
    if replace and dest_path.exists():
        dest_path.unlink()
    store = CatalogStore(dest_path)

    counts = {"learning_paths": 0, "topics": 0, "subtopics": 0}
    for path_index, raw_path in enumerate(load_curriculum(source), start=1):
        learning_path = LearningPath(
            id=str(raw_path["id"]),
            name=raw_path.get("name") or str(raw_path["id"]),
            is_active=bool(raw_path.get("active", True)),
            sort_order=int(raw_path.get("sort_order", path_index)),
        )
        store.add_learning_path(learning_path)
        counts["learning_paths"] += 1

        for topic_index, raw_topic in enumerate(raw_path.get("topics") or [], start=1):
            topic_id = str(raw_topic.get("id") or f"{learning_path.id}-{slugify(raw_topic['name'])}")
            store.add_topic(
                Topic(
                    id=topic_id,
                    learning_path_id=learning_path.id,
                    name=raw_topic["name"],
                    icon=raw_topic.get("icon"),
                    sort_order=int(raw_topic.get("sort_order", topic_index)),
                )
            )
            counts["topics"] += 1

            for sub_index, raw_sub in enumerate(raw_topic.get("subtopics") or [], start=1):
                if isinstance(raw_sub, str):
                    raw_sub = {"name": raw_sub}
                store.add_subtopic(
                    Subtopic(
                        id=str(raw_sub.get("id") or f"{topic_id}-{slugify(raw_sub['name'])}"),
                        topic_id=topic_id,
                        name=raw_sub["name"],
                        sort_order=int(raw_sub.get("sort_order", sub_index)),
                    )
                )
                counts["subtopics"] += 1

    LOGGER.info("Seeded %s from %s", dest_path, source)
    return counts


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the SQLite catalog from a curriculum YAML")
    parser.add_argument("source", type=Path, help="Curriculum YAML (e.g., data/curriculum/sample.yaml)")
    parser.add_argument(
        "dest",
        type=Path,
        nargs="?",
        default=PROJECT_ROOT / "outputs" / "catalog.sqlite",
        help="Destination SQLite file (default: outputs/catalog.sqlite)",
    )
    parser.add_argument("--replace", action="store_true", help="Delete the destination file before seeding")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    summary = seed(args.source, args.dest, replace=args.replace)
    LOGGER.info("Seed summary: %s", summary)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
