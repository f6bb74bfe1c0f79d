import json
import sys
import tempfile
import unittest
from pathlib import Path

_TEST_ROOT = Path(__file__).resolve().parent
if str(_TEST_ROOT) not in sys.path:
    sys.path.insert(0, str(_TEST_ROOT))

from stubs import make_user  # noqa: E402


class TestJsonFileCredentialStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "nested" / "credentials.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_loads_as_none(self) -> None:
        from media_tracker.infrastructure.persistence import JsonFileCredentialStore

        store = JsonFileCredentialStore(self.path)
        self.assertIsNone(store.load())
        self.assertIsNone(store.token())

    def test_save_then_reload_from_disk(self) -> None:
        from media_tracker.infrastructure.persistence import JsonFileCredentialStore

        JsonFileCredentialStore(self.path).save("tok", make_user())
        document = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(document["token"], "tok")
        self.assertEqual(document["user"]["email"], "u@x.com")

        reloaded = JsonFileCredentialStore(self.path).load()
        self.assertEqual(reloaded.token, "tok")
        self.assertEqual(reloaded.user.first_name, "Una")

    def test_clear_removes_both_keys(self) -> None:
        from media_tracker.infrastructure.persistence import JsonFileCredentialStore

        store = JsonFileCredentialStore(self.path)
        store.save("tok", make_user())
        store.clear()
        self.assertFalse(self.path.exists())
        self.assertIsNone(store.token())
        store.clear()

    def test_partial_document_is_treated_as_absent(self) -> None:
        from media_tracker.infrastructure.persistence import JsonFileCredentialStore

        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"token": "tok"}), encoding="utf-8")
        self.assertIsNone(JsonFileCredentialStore(self.path).load())

    def test_corrupt_file_raises_on_load_only(self) -> None:
        from media_tracker.domain import CredentialStoreError
        from media_tracker.infrastructure.persistence import JsonFileCredentialStore

        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        store = JsonFileCredentialStore(self.path)
        with self.assertRaises(CredentialStoreError):
            store.load()
        self.assertIsNone(store.token())


class TestCredentialStoreFactory(unittest.TestCase):
    def test_kinds(self) -> None:
        from media_tracker.infrastructure.persistence import (
            InMemoryCredentialStore,
            JsonFileCredentialStore,
            create_credential_store,
        )

        self.assertIsInstance(create_credential_store("memory", "/unused"), InMemoryCredentialStore)
        self.assertIsInstance(create_credential_store("FILE", "/tmp/x.json"), JsonFileCredentialStore)
        with self.assertRaises(ValueError):
            create_credential_store("redis", "/unused")

    def test_in_memory_round_trip(self) -> None:
        from media_tracker.infrastructure.persistence import InMemoryCredentialStore

        store = InMemoryCredentialStore()
        store.save("t", make_user())
        self.assertEqual(store.token(), "t")
        store.clear()
        self.assertIsNone(store.load())


if __name__ == "__main__":
    unittest.main()
