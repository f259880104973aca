"""Tests for response and token caches."""

from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from PrimoSearch.config import parse_config_dict
from PrimoSearch.connectors.cache import MemoryCacheStorage, ResponseCache
from PrimoSearch.connectors.token import MemoryTokenCache
from PrimoSearch.storage import create_response_cache
from PrimoSearch.storage.db import DatabaseManager
from PrimoSearch.storage.response_cache import SqliteCacheStorage
from stubs import StubClient


class TestResponseCache(unittest.TestCase):
    def test_key_depends_on_method_and_uri(self) -> None:
        client = StubClient().set_uri("http://primo.example/a").set_method("GET")
        key = ResponseCache.get_cache_key(client)

        self.assertTrue(key.startswith("primo_"))
        self.assertEqual(key, ResponseCache.get_cache_key(client))
        self.assertNotEqual(key, ResponseCache.get_cache_key(client.set_uri("http://primo.example/b")))

    def test_memory_storage_expires(self) -> None:
        storage = MemoryCacheStorage(ttl=10)
        with patch("PrimoSearch.connectors.cache.time.time", return_value=1000.0):
            storage.put("k", "v")
        with patch("PrimoSearch.connectors.cache.time.time", return_value=1005.0):
            self.assertEqual(storage.get("k"), "v")
        with patch("PrimoSearch.connectors.cache.time.time", return_value=1011.0):
            self.assertIsNone(storage.get("k"))

    def test_token_cache_expires_and_clears(self) -> None:
        tokens = MemoryTokenCache(ttl=60)
        with patch("PrimoSearch.connectors.token.time.time", return_value=0.0):
            tokens.set("INST", "tok")
        with patch("PrimoSearch.connectors.token.time.time", return_value=30.0):
            self.assertEqual(tokens.get("INST"), "tok")
        with patch("PrimoSearch.connectors.token.time.time", return_value=61.0):
            self.assertIsNone(tokens.get("INST"))
        tokens.set("INST", "tok2")
        tokens.clear("INST")
        self.assertIsNone(tokens.get("INST"))


class TestSqliteCacheStorage(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db = DatabaseManager(Path(self.tmpdir.name) / "nested" / "cache.db")

    def tearDown(self) -> None:
        self.db.close()
        self.tmpdir.cleanup()

    def test_put_get_replace(self) -> None:
        storage = SqliteCacheStorage(self.db)
        self.assertIsNone(storage.get("k"))
        storage.put("k", "one")
        storage.put("k", "two")
        self.assertEqual(storage.get("k"), "two")

    def test_expired_entries_dropped(self) -> None:
        storage = SqliteCacheStorage(self.db, ttl=60)
        with patch("PrimoSearch.storage.response_cache.time.time", return_value=1000):
            storage.put("old", "body")
            storage.put("new", "body")
        with patch("PrimoSearch.storage.response_cache.time.time", return_value=1050):
            storage.put("new", "body")
        with patch("PrimoSearch.storage.response_cache.time.time", return_value=1100):
            self.assertIsNone(storage.get("old"))
            self.assertEqual(storage.get("new"), "body")
            self.assertEqual(storage.purge_expired(), 0)

        count = self.db.get_connection().execute("SELECT COUNT(*) FROM response_cache").fetchone()[0]
        self.assertEqual(count, 1)

    def test_purge_expired(self) -> None:
        storage = SqliteCacheStorage(self.db, ttl=10)
        with patch("PrimoSearch.storage.response_cache.time.time", return_value=100):
            storage.put("a", "x")
        with patch("PrimoSearch.storage.response_cache.time.time", return_value=200):
            storage.put("b", "y")
            self.assertEqual(storage.purge_expired(), 1)
        self.assertEqual(SqliteCacheStorage(self.db).get("b"), "y")

    def test_closed_manager(self) -> None:
        self.db.close()
        with self.assertRaises(RuntimeError):
            self.db.get_connection()


class TestCreateResponseCache(unittest.TestCase):
    def _config(self, cache: dict):
        return parse_config_dict(
            {
                "log": {"level": "INFO", "to_file": False, "dir": "log"},
                "primo": {"inst_code": "INST", "rest": {"search_url": "https://primo.example/search"}},
                "cache": cache,
            }
        )

    def test_disabled(self) -> None:
        self.assertEqual(create_response_cache(self._config({"enabled": False})), (None, None))

    def test_memory_backend(self) -> None:
        db_manager, cache = create_response_cache(self._config({"enabled": True, "backend": "memory"}))
        self.assertIsNone(db_manager)
        self.assertIsInstance(cache.storage, MemoryCacheStorage)

    def test_sqlite_backend(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = self._config({"enabled": True, "backend": "sqlite", "db_path": f"{tmpdir}/c.db"})
            db_manager, cache = create_response_cache(config)
            with db_manager:
                self.assertIsInstance(cache.storage, SqliteCacheStorage)
                cache.put_cached_data("k", "v")
                self.assertEqual(cache.get_cached_data("k"), "v")


if __name__ == "__main__":
    unittest.main()
