import pytest

from catalog.base import ItemStore, has_artifact
from catalog.models import ArtifactKind
from catalog.supabase_store import SupabaseCatalogStore, build_supabase_client
from tests.mocks.supabase import FakeSupabaseClient


@pytest.fixture()
def client() -> FakeSupabaseClient:
    return FakeSupabaseClient(
        {
            "learning_paths": [
                {"id": "p2", "name": "Class 10", "is_active": True, "sort_order": 2},
                {"id": "p1", "name": "JEE", "is_active": True, "sort_order": 1},
                {"id": "p3", "name": "Retired", "is_active": False, "sort_order": 0},
            ],
            "topics": [
                {"id": "t2", "learning_path_id": "p1", "name": "Vectors", "icon": None, "sort_order": 2},
                {"id": "t1", "learning_path_id": "p1", "name": "Limits", "icon": "∞", "sort_order": 1},
            ],
            "subtopics": [
                {"id": "s2", "topic_id": "t1", "name": "One-sided", "sort_order": 2},
                {"id": "s1", "topic_id": "t1", "name": "Intro", "sort_order": 1},
            ],
            "lessons": [{"id": 1, "subtopic_id": "s1"}],
            "practice_questions": [
                {"id": 1, "subtopic_id": "s1", "category": "extended"},
                {"id": 2, "subtopic_id": "s1", "category": "extended"},
                {"id": 3, "subtopic_id": "s2", "category": "lesson"},
            ],
        }
    )


def test_store_satisfies_item_store_protocol(client) -> None:
    assert isinstance(SupabaseCatalogStore(client), ItemStore)


def test_catalog_reads_are_sorted(client) -> None:
    store = SupabaseCatalogStore(client)

    assert [path.id for path in store.list_learning_paths()] == ["p1", "p2"]
    assert [path.id for path in store.list_learning_paths(active_only=False)] == ["p3", "p1", "p2"]
    assert [topic.id for topic in store.list_topics("p1")] == ["t1", "t2"]
    assert [sub.id for sub in store.list_subtopics("t1")] == ["s1", "s2"]
    assert store.get_topic("t1").icon == "∞"
    assert store.get_topic("nope") is None


def test_existence_checks_use_head_only_counts(client) -> None:
    store = SupabaseCatalogStore(client)

    assert store.has_lesson("s1") is True
    assert has_artifact(store, "s2", ArtifactKind.LESSON) is False
    assert store.count_artifacts(["s1", "s2"], ArtifactKind.PRACTICE) == 2
    assert has_artifact(store, "s2", ArtifactKind.PRACTICE) is False

    count_queries = [query for query in client.executed if query.count == "exact"]
    assert count_queries and all(query.head for query in count_queries)


def test_artifact_subtopic_ids_and_delete(client) -> None:
    store = SupabaseCatalogStore(client)

    assert store.artifact_subtopic_ids(["s1", "s2"], ArtifactKind.PRACTICE) == {"s1"}
    assert store.delete_artifacts(["s1", "s2"], ArtifactKind.PRACTICE) == 2
    assert [row["category"] for row in client.tables["practice_questions"]] == ["lesson"]
    assert store.delete_artifacts([], ArtifactKind.LESSON) == 0


def test_artifact_subtopic_ids_ignore_response_row_cap() -> None:
    questions = [
        {"id": index, "subtopic_id": f"s{index // 60}", "category": "extended"}
        for index in range(60 * 20)
    ]
    client = FakeSupabaseClient({"practice_questions": questions}, max_rows=1000)
    store = SupabaseCatalogStore(client)
    subtopic_ids = [f"s{index}" for index in range(21)]

    found = store.artifact_subtopic_ids(subtopic_ids, ArtifactKind.PRACTICE)

    assert found == {f"s{index}" for index in range(20)}
    assert all(query.head for query in client.executed)


def test_build_supabase_client_requires_credentials(monkeypatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)

    with pytest.raises(ValueError):
        build_supabase_client()
