import json
import tempfile
import textwrap
import unittest
from pathlib import Path

from catalog.models import ArtifactKind
from lessonforge.core.config import GenerationConfig, apply_env_overrides, load_generation_config
from lessonforge.core.provenance import ProvenanceEvent, ProvenanceLogger


class GenerationConfigTests(unittest.TestCase):
    def _write_yaml(self, data: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "generation.yaml"
        path.write_text(textwrap.dedent(data), encoding="utf-8")
        return path

    def test_defaults_match_admin_console(self) -> None:
        config = load_generation_config(env={}, base_dir=Path("/srv/app"))
        self.assertEqual(config.artifact_kind, ArtifactKind.LESSON)
        self.assertEqual(config.item_delay_seconds, 0.7)
        self.assertEqual(config.runner.delay_for(ArtifactKind.PRACTICE), 0.8)
        self.assertEqual(config.runner.pause_poll_seconds, 0.3)
        self.assertEqual(config.runner.max_retries, 0)
        self.assertEqual(config.endpoint.timeout_seconds, 60)
        self.assertEqual(config.practice.questions_per_subtopic, 30)
        self.assertEqual(config.catalog.sqlite_path, Path("/srv/app/outputs/catalog.sqlite").resolve())
        self.assertTrue(config.logging.logs_dir.is_absolute())

    def test_yaml_paths_are_anchored_to_the_config_file(self) -> None:
        path = self._write_yaml(
            """
            kind: practice
            endpoint:
              base_url: https://project.supabase.co/
            catalog:
              sqlite_path: data/catalog.sqlite
            practice:
              questions_per_subtopic: 40
            """
        )
        config = load_generation_config(path, env={})
        self.assertEqual(config.artifact_kind, ArtifactKind.PRACTICE)
        self.assertEqual(config.endpoint.base_url, "https://project.supabase.co")
        self.assertEqual(config.catalog.sqlite_path, (path.parent / "data" / "catalog.sqlite").resolve())
        self.assertEqual(config.logging.logs_dir, (path.parent / "outputs" / "logs").resolve())
        self.assertEqual(config.item_delay_seconds, 0.8)
        self.assertEqual(config.practice.questions_per_subtopic, 40)

    def test_invalid_values_raise_value_error(self) -> None:
        path = self._write_yaml(
            """
            practice:
              questions_per_subtopic: 500
            """
        )
        with self.assertRaises(ValueError) as ctx:
            load_generation_config(path, env={})
        self.assertIn("Invalid generation config", str(ctx.exception))

    def test_non_mapping_yaml_is_rejected(self) -> None:
        path = self._write_yaml("- just\n- a list\n")
        with self.assertRaises(ValueError):
            load_generation_config(path, env={})

    def test_env_fills_missing_credentials_only(self) -> None:
        env = {
            "SUPABASE_URL": "https://env.supabase.co",
            "SUPABASE_ANON_KEY": "anon",
            "LESSONFORGE_ACCESS_TOKEN": "session",
        }
        data = apply_env_overrides({"endpoint": {"anon_key": "yaml-anon"}, "catalog": {"backend": "supabase"}}, env)
        config = GenerationConfig.model_validate(data)

        self.assertEqual(config.endpoint.base_url, "https://env.supabase.co")
        self.assertEqual(config.endpoint.anon_key, "yaml-anon")
        self.assertEqual(config.endpoint.bearer_token, "session")
        self.assertEqual(config.catalog.supabase_url, "https://env.supabase.co")

    def test_bearer_token_falls_back_to_anon_key(self) -> None:
        config = GenerationConfig.model_validate({"endpoint": {"anon_key": "anon"}})
        self.assertEqual(config.endpoint.bearer_token, "anon")
        self.assertEqual(config.endpoint.path_for(ArtifactKind.PRACTICE), "/functions/v1/generate-practice")

    def test_with_kind_overrides_question_count(self) -> None:
        config = GenerationConfig().with_kind(ArtifactKind.PRACTICE, question_count=50)
        self.assertEqual(config.artifact_kind, ArtifactKind.PRACTICE)
        self.assertEqual(config.practice.questions_per_subtopic, 50)

    def test_shipped_sample_config_loads(self) -> None:
        sample = Path(__file__).resolve().parents[1] / "config" / "generation.yaml"
        config = load_generation_config(sample, env={})
        self.assertEqual(config.artifact_kind, ArtifactKind.LESSON)
        self.assertEqual(config.catalog.backend, "sqlite")
        self.assertEqual(config.catalog.sqlite_path.name, "catalog.sqlite")


class ProvenanceLoggerTests(unittest.TestCase):
    def test_writes_one_json_line_per_event(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "logs" / "generation.jsonl"
            logger = ProvenanceLogger(path)
            logger.log(ProvenanceEvent(stage="bootstrap", message="ready"))
            logger.log({"stage": "generate", "message": "ok", "topic_id": "t1", "kind": "ok"})

            lines = path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(len(lines), 2)
            second = json.loads(lines[1])
            self.assertEqual(second["topic_id"], "t1")
            self.assertEqual(second["kind"], "ok")


if __name__ == "__main__":
    unittest.main()
