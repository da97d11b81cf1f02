"""Tests for secretline.core.store - JSON snapshots of coordinator state."""

from __future__ import annotations

import json
import threading

import pytest

from secretline.core.exceptions import AlreadyMemberError, StoreException
from secretline.core.store import SNAPSHOT_VERSION, load_state, locked_state, restore, save_state, snapshot

DOMAIN = (10_000_000, 99_999_999)


@pytest.fixture
def populated(coordinator, alice, bob):
    line_id = coordinator.create_line("Night Shift", alice.address)
    coordinator.join_line(line_id, bob.address)
    coordinator.send_message(line_id, alice.address, "0xdeadbeef")
    coordinator.create_line("Shadow Loop", bob.address)
    return coordinator


class TestSnapshot:
    def test_contains_committed_lines(self, populated, alice, bob):
        data = snapshot(populated)
        assert data["version"] == SNAPSHOT_VERSION
        assert [line["name"] for line in data["lines"]] == ["Night Shift", "Shadow Loop"]
        first = data["lines"][0]
        assert [m["identity"] for m in first["members"]] == [alice.address, bob.address]
        assert first["grants"] == sorted([alice.address, bob.address])
        assert first["messages"][0]["ciphertext"] == "0xdeadbeef"

    def test_engine_section_present(self, populated):
        data = snapshot(populated)
        assert len(data["engine"]["secrets"]) == 2


class TestRestore:
    def test_round_trip_preserves_reads(self, populated, alice, bob):
        restored = restore(json.loads(json.dumps(snapshot(populated))), domain=(10_000_000, 99_999_999))
        assert restored.line_count() == 2
        info = restored.get_line(1)
        assert info.member_count == 2
        assert info.secret_handle == populated.secret_handle(1)
        assert restored.get_message(1, 0).sender == alice.address
        assert restored.is_member(1, bob.address)

    def test_restored_secret_still_decryptable(self, populated, bob):
        original_handle = populated.secret_handle(1)
        original = populated.engine.decrypt(original_handle, bob.address, bob.prove(original_handle))
        restored = restore(snapshot(populated), domain=(10_000_000, 99_999_999))
        handle = restored.secret_handle(1)
        assert restored.engine.decrypt(handle, bob.address, bob.prove(handle)) == original

    def test_ids_continue_after_restore(self, populated, alice):
        restored = restore(snapshot(populated), domain=(10_000_000, 99_999_999))
        assert restored.create_line("Third", alice.address) == 3
        assert restored.send_message(1, alice.address, "0x01") == 1

    def test_invariants_hold_after_restore(self, populated, bob):
        restored = restore(snapshot(populated), domain=(10_000_000, 99_999_999))
        with pytest.raises(AlreadyMemberError):
            restored.join_line(1, bob.address)

    def test_wrong_version(self):
        with pytest.raises(StoreException):
            restore({"version": 99, "lines": []})

    def test_malformed_line(self, populated):
        data = snapshot(populated)
        del data["lines"][0]["members"]
        with pytest.raises(StoreException):
            restore(data)

    def test_non_sequential_ids(self, populated):
        data = snapshot(populated)
        data["lines"] = data["lines"][1:]
        with pytest.raises(StoreException):
            restore(data)

    def test_shared_secret_handle(self, populated):
        data = snapshot(populated)
        data["lines"][1]["secret_handle"] = data["lines"][0]["secret_handle"]
        with pytest.raises(StoreException):
            restore(data, domain=DOMAIN)

    def test_message_from_non_member(self, populated, carol):
        data = snapshot(populated)
        data["lines"][0]["messages"][0]["sender"] = carol.address
        with pytest.raises(StoreException):
            restore(data, domain=DOMAIN)


class TestFiles:
    def test_save_and_load(self, populated, tmp_path):
        path = tmp_path / "nested" / "state.json"
        save_state(populated, path)
        loaded = load_state(path, domain=(10_000_000, 99_999_999))
        assert loaded.line_count() == 2
        assert not list(path.parent.glob(".state-*"))

    def test_missing_file_starts_empty(self, tmp_path):
        coordinator = load_state(tmp_path / "absent.json", domain=(10_000_000, 99_999_999))
        assert coordinator.line_count() == 0

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(StoreException) as exc_info:
            load_state(path)
        assert exc_info.value.path == str(path)

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_bytes(b"\xff\xfe{garbage")
        with pytest.raises(StoreException) as exc_info:
            load_state(path)
        assert exc_info.value.path == str(path)


class TestStateLock:
    """load-mutate-save cycles under locked_state() apply one at a time."""

    @pytest.fixture
    def path(self, tmp_path, alice):
        path = tmp_path / "state.json"
        with locked_state(path):
            coordinator = load_state(path, domain=DOMAIN)
            coordinator.create_line("Night Shift", alice.address)
            save_state(coordinator, path)
        return path

    def run_locked(self, path, action, results, barrier):
        barrier.wait()
        with locked_state(path):
            coordinator = load_state(path, domain=DOMAIN)
            try:
                results.append(action(coordinator))
            except AlreadyMemberError as e:
                results.append(type(e).__name__)
            save_state(coordinator, path)

    def run_pair(self, path, action):
        results: list = []
        barrier = threading.Barrier(2)
        threads = [
            threading.Thread(target=self.run_locked, args=(path, action, results, barrier)) for _ in range(2)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        return results

    def test_lock_file_beside_state(self, path):
        assert (path.parent / "state.lock").exists()

    def test_second_holder_waits(self, path, bob):
        done = threading.Event()

        def join():
            with locked_state(path):
                coordinator = load_state(path, domain=DOMAIN)
                coordinator.join_line(1, bob.address)
                save_state(coordinator, path)
            done.set()

        with locked_state(path):
            worker = threading.Thread(target=join)
            worker.start()
            assert not done.wait(timeout=0.2)
        worker.join(timeout=10)
        assert done.is_set()
        assert load_state(path, domain=DOMAIN).is_member(1, bob.address)

    def test_concurrent_joins_one_wins(self, path, bob):
        results = self.run_pair(path, lambda c: c.join_line(1, bob.address).identity)
        assert sorted(results) == sorted([bob.address, "AlreadyMemberError"])
        assert load_state(path, domain=DOMAIN).get_line(1).member_count == 2

    def test_concurrent_sends_keep_both(self, path, alice):
        results = self.run_pair(path, lambda c: c.send_message(1, alice.address, "0x01"))
        assert sorted(results) == [0, 1]
        assert load_state(path, domain=DOMAIN).message_count(1) == 2
