"""
Inclusion Registry Tests
"""

import threading

from nsregistry import InclusionRegistry


class TestInclusionRegistry:

    def test_mark_is_idempotent(self):
        included = InclusionRegistry()

        assert included.mark("app.util") is True
        assert included.mark("app.util") is False

        assert "app.util" in included
        assert len(included) == 1

    def test_iterates_in_mark_order(self):
        included = InclusionRegistry()
        for identifier in ("c", "a", "b"):
            included.mark(identifier)

        assert list(included) == ["c", "a", "b"]

    def test_concurrent_marks_win_once(self):
        included = InclusionRegistry()
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(included.mark("app.util"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
        assert len(included) == 1
