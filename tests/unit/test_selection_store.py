"""Tests for the provider selection slot."""

import json

from yieldbridge.infrastructure.adapters.wallets import FileSelectionStore, MemorySelectionStore


class TestFileSelectionStore:

    def test_missing_file_is_empty(self, tmp_path):
        assert FileSelectionStore(tmp_path / "selection.json").load() is None

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "wallets" / "selection.json"
        store = FileSelectionStore(path)

        store.save("keplr")

        assert store.load() == "keplr"
        data = json.loads(path.read_text())
        assert data["provider"] == "keplr"
        assert "saved_at" in data
        assert not path.with_suffix(".json.tmp").exists()

    def test_save_overwrites_single_slot(self, tmp_path):
        store = FileSelectionStore(tmp_path / "selection.json")

        store.save("keplr")
        store.save("plug")

        assert store.load() == "plug"

    def test_clear(self, tmp_path):
        path = tmp_path / "selection.json"
        store = FileSelectionStore(path)
        store.save("leap")

        store.clear()
        store.clear()

        assert not path.exists()
        assert store.load() is None

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "selection.json"
        path.write_text("{not json")

        assert FileSelectionStore(path).load() is None

    def test_unexpected_shape_reads_empty(self, tmp_path):
        path = tmp_path / "selection.json"
        path.write_text(json.dumps(["keplr"]))

        assert FileSelectionStore(path).load() is None


class TestMemorySelectionStore:

    def test_round_trip(self):
        store = MemorySelectionStore(initial="leap")
        assert store.load() == "leap"

        store.save("plug")
        assert store.load() == "plug"

        store.clear()
        assert store.load() is None
