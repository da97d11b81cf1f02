"""Concurrency tests for LineCoordinator.

Mutations are serialized: racing joins by one identity produce exactly
one success, racing creates never share an id, and readers running
alongside writers only ever see fully committed lines.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from secretline.core.exceptions import AlreadyMemberError, NotFoundError

THREADS = 16


class TestConcurrentMutations:
    def test_racing_joins_single_winner(self, coordinator):
        line_id = coordinator.create_line("Night Shift", "0xalice")
        barrier = threading.Barrier(THREADS)

        def join():
            barrier.wait()
            try:
                coordinator.join_line(line_id, "0xbob")
                return "joined"
            except AlreadyMemberError:
                return "already"

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            results = list(pool.map(lambda _: join(), range(THREADS)))

        assert results.count("joined") == 1
        assert results.count("already") == THREADS - 1
        assert coordinator.get_line(line_id).member_count == 2

    def test_racing_creates_unique_ids(self, coordinator):
        barrier = threading.Barrier(THREADS)

        def create(i):
            barrier.wait()
            return coordinator.create_line(f"line {i}", f"0x{i:02x}")

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            ids = list(pool.map(create, range(THREADS)))

        assert sorted(ids) == list(range(1, THREADS + 1))
        handles = {coordinator.secret_handle(i) for i in ids}
        assert len(handles) == THREADS

    def test_racing_posts_dense_sequence(self, coordinator):
        line_id = coordinator.create_line("Night Shift", "0xalice")
        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            ids = list(pool.map(lambda i: coordinator.send_message(line_id, "0xalice", f"0x{i:04x}"), range(64)))
        assert sorted(ids) == list(range(64))
        assert coordinator.message_count(line_id) == 64


@pytest.mark.slow
class TestReadersDuringWrites:
    def test_readers_never_see_partial_lines(self, coordinator):
        stop = threading.Event()
        problems: list[str] = []

        def reader():
            while not stop.is_set():
                count = coordinator.line_count()
                for line_id in range(1, count + 1):
                    try:
                        info = coordinator.get_line(line_id)
                    except NotFoundError:
                        problems.append(f"line {line_id} counted but missing")
                        continue
                    if info.member_count < 1 or not coordinator.is_member(line_id, info.creator):
                        problems.append(f"line {line_id} visible without its creator")

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        try:
            for i in range(200):
                coordinator.create_line(f"line {i}", f"0xcreator{i}")
        finally:
            stop.set()
            for t in threads:
                t.join()

        assert problems == []
        assert coordinator.line_count() == 200
