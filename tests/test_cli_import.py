"""Regression tests for importing the data layer without the web stack."""

from __future__ import annotations

import importlib
import sys
import types
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _package_module_names() -> list[str]:
    return [m for m in list(sys.modules.keys()) if m == "peerledger" or m.startswith("peerledger.")]


class DataLayerImportTests(unittest.TestCase):
    def setUp(self) -> None:
        # Classes imported by other test modules resolve their annotations
        # through these entries, so the originals must come back afterwards.
        self._saved_package = {name: sys.modules.pop(name) for name in _package_module_names()}

    def tearDown(self) -> None:
        for name in _package_module_names():
            sys.modules.pop(name, None)
        sys.modules.update(self._saved_package)

    def test_import_database_without_web_or_yaml_packages(self) -> None:
        """Importing peerledger.database should not pull in fastapi or PyYAML."""

        saved: dict[str, types.ModuleType | None] = {
            name: sys.modules.pop(name, None) for name in ("fastapi", "yaml")
        }
        sys.modules["fastapi"] = None
        sys.modules["yaml"] = None
        try:
            database_module = importlib.import_module("peerledger.database")
            self.assertTrue(hasattr(database_module, "Database"))

            package = sys.modules.get("peerledger")
            self.assertIsNotNone(package)
            self.assertTrue(hasattr(package, "Database"))
        finally:
            for name, module in saved.items():
                sys.modules.pop(name, None)
                if module is not None:
                    sys.modules[name] = module


class PackageModuleRestoreTests(unittest.TestCase):
    def test_isolated_import_leaves_loaded_modules_in_place(self) -> None:
        from peerledger.database import Database

        before = sys.modules["peerledger.models"]
        result = unittest.TestResult()
        DataLayerImportTests("test_import_database_without_web_or_yaml_packages").run(result)
        self.assertTrue(result.wasSuccessful(), result.errors + result.failures)

        self.assertIs(sys.modules["peerledger.models"], before)
        user = Database.in_memory().create_user(
            {"username": "alice", "email": "alice@example.com", "password": "pw", "first_name": "Alice"}
        )
        self.assertEqual(user.id, 1)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
