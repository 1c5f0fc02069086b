"""Unit tests for the storage backends."""

import pytest

from resonance_touch.errors import PrivacyError
from resonance_touch.modules.personalization import PersonalizationStore
from resonance_touch.modules.storage import (
    EncryptedStorage,
    MemoryStorage,
    SqliteStorage,
)


class TestMemoryStorage:
    async def test_get_set_delete(self):
        storage = MemoryStorage()
        assert await storage.get("missing") is None

        await storage.set("key", "value")
        assert await storage.get("key") == "value"

        await storage.delete("key")
        await storage.delete("key")
        assert await storage.get("key") is None


class TestSqliteStorage:
    """Test the SQLite backend."""

    async def test_get_set_delete(self, tmp_path):
        storage = SqliteStorage(tmp_path / "nested" / "profiles.db")

        assert await storage.get("key") is None
        await storage.set("key", "first")
        await storage.set("key", "second")
        assert await storage.get("key") == "second"

        await storage.delete("key")
        assert await storage.get("key") is None
        assert (tmp_path / "nested" / "profiles.db").exists()

    async def test_values_survive_new_instance(self, tmp_path):
        path = tmp_path / "profiles.db"
        await SqliteStorage(path).set("key", "kept")
        assert await SqliteStorage(path).get("key") == "kept"


class TestEncryptedStorage:
    """Test the encrypting wrapper."""

    async def test_values_are_encrypted_at_rest(self):
        backend = MemoryStorage()
        storage = EncryptedStorage(backend, EncryptedStorage.generate_key())

        await storage.set("key", "secret profile")

        assert "secret profile" not in backend.data["key"]
        assert await storage.get("key") == "secret profile"

    async def test_wrong_key_raises_privacy_error(self):
        backend = MemoryStorage()
        await EncryptedStorage(backend, EncryptedStorage.generate_key()).set("key", "data")

        with pytest.raises(PrivacyError) as exc_info:
            await EncryptedStorage(backend, EncryptedStorage.generate_key()).get("key")
        assert exc_info.value.code == "ENCRYPTION_FAILED"

    async def test_store_round_trip_through_encryption(self, clock):
        backend = MemoryStorage()
        key = EncryptedStorage.generate_key()
        store = PersonalizationStore("ada", storage=EncryptedStorage(backend, key), clock=clock)
        store.update_resonance_preferences({"response_speed": "slow"})
        await store.save()

        assert "response_speed" not in backend.data["profile_ada"]

        reloaded = PersonalizationStore(
            "ada", storage=EncryptedStorage(backend, key), clock=clock
        )
        assert await reloaded.load() is True
        assert reloaded.resonance_preferences.response_speed == "slow"
