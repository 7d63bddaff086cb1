from __future__ import annotations

import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from PHARMABASE.server.utils.configurations import get_server_settings
from PHARMABASE.server.utils.constants import DATABASE_FILENAME, RELEASE_REPOSITORY


class ServerSettingsTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def test_missing_file_falls_back_to_defaults(self) -> None:
        with TemporaryDirectory() as directory:
            settings = get_server_settings(str(Path(directory) / "absent.json"))
        self.assertEqual(settings.database.filename, DATABASE_FILENAME)
        self.assertEqual(settings.database.build_journal_mode, "wal")
        self.assertEqual(settings.query.default_limit, 20)
        self.assertEqual(settings.query.max_limit, 100)
        self.assertEqual(settings.query.similarity_candidate_limit, 500)
        self.assertAlmostEqual(
            settings.query.target_weight
            + settings.query.category_weight
            + settings.query.atc_weight,
            1.0,
        )
        self.assertEqual(settings.external_data.release_repository, RELEASE_REPOSITORY)

    # ------------------------------------------------------------------
    def test_values_are_coerced_and_clamped(self) -> None:
        payload = {
            "database": {"build_journal_mode": "bogus", "cache_size": "12"},
            "ingestion": {
                "max_protein_entities": 500,
                "max_drug_interactions": 5,
                "show_progress_bar": "off",
            },
            "query": {"default_limit": "50", "max_limit": 10, "score_precision": 99},
        }
        with TemporaryDirectory() as directory:
            path = Path(directory) / "server_configurations.json"
            path.write_text(json.dumps(payload), encoding="utf-8")
            settings = get_server_settings(str(path))

        self.assertEqual(settings.database.build_journal_mode, "wal")
        self.assertEqual(settings.database.cache_size, 100)
        self.assertEqual(settings.ingestion.max_protein_entities, 50)
        self.assertEqual(settings.ingestion.max_drug_interactions, 50)
        self.assertFalse(settings.ingestion.show_progress_bar)
        self.assertEqual(settings.query.default_limit, 50)
        self.assertEqual(settings.query.max_limit, 50)
        self.assertEqual(settings.query.score_precision, 10)

    # ------------------------------------------------------------------
    def test_non_object_configuration_is_rejected(self) -> None:
        with TemporaryDirectory() as directory:
            path = Path(directory) / "server_configurations.json"
            path.write_text("[1, 2, 3]", encoding="utf-8")
            with self.assertRaises(RuntimeError):
                get_server_settings(str(path))


if __name__ == "__main__":
    unittest.main()
