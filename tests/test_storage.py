"""Tests for key-value blob stores."""

import pytest

from content_enhancer.storage import InMemoryStore, JsonFileStore, StorageError


class TestInMemoryStore:
    """Tests for the dictionary-backed store."""

    def test_get_set_delete(self):
        """Test basic operations and missing keys."""
        store = InMemoryStore()
        assert store.get("k") is None

        store.set("k", "v")
        assert store.get("k") == "v"
        assert store.keys() == ["k"]

        store.delete("k")
        store.delete("k")
        assert store.get("k") is None

    def test_initial_data_copied(self):
        """Test that the initial mapping is not shared."""
        initial = {"a": "1"}
        store = InMemoryStore(initial)
        store.set("b", "2")
        assert initial == {"a": "1"}


class TestJsonFileStore:
    """Tests for the directory-backed store."""

    def test_round_trip(self, tmp_path):
        """Test that values are written to <key>.json files."""
        store = JsonFileStore(tmp_path / "metrics")

        store.set("performance_metrics", "[1, 2]")

        assert (tmp_path / "metrics" / "performance_metrics.json").read_text() == "[1, 2]"
        assert store.get("performance_metrics") == "[1, 2]"
        assert not list((tmp_path / "metrics").glob("*.tmp"))

    def test_missing_key(self, tmp_path):
        """Test that absent files read as None."""
        assert JsonFileStore(tmp_path).get("nothing") is None

    def test_delete(self, tmp_path):
        """Test that delete removes the file and tolerates absence."""
        store = JsonFileStore(tmp_path)
        store.set("k", "v")
        store.delete("k")
        store.delete("k")
        assert store.get("k") is None

    def test_unsafe_key_rejected(self, tmp_path):
        """Test that keys with path separators are refused."""
        store = JsonFileStore(tmp_path)
        with pytest.raises(StorageError):
            store.set("../escape", "v")

    def test_write_failure_wrapped(self, tmp_path):
        """Test that OS errors surface as StorageError."""
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        store = JsonFileStore(blocker)

        with pytest.raises(StorageError):
            store.set("k", "v")
