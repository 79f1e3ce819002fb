import copy
import unittest

from client import query_keys
from client.api import ApiError
from client.cache import QueryCache


def _tasks():
    return [
        {"id": "a", "profileId": "p1", "status": "PENDING", "sortOrder": 0},
        {"id": "b", "profileId": "p1", "status": "PENDING", "sortOrder": 1},
    ]


class QueryKeysTestCase(unittest.TestCase):
    def test_filter_order_does_not_change_key(self):
        self.assertEqual(
            query_keys.profile_tasks_key("p1", {"status": "PENDING", "priority": "HIGH"}),
            query_keys.profile_tasks_key("p1", {"priority": "HIGH", "status": "PENDING"}),
        )
        self.assertEqual(query_keys.profile_tasks_key("p1", {}), ("tasks", "profile", "p1", None))


class QueryCacheTestCase(unittest.TestCase):
    def setUp(self):
        self.cache = QueryCache()

    def test_query_fetches_once_until_invalidated(self):
        calls = []

        def fetch():
            calls.append(1)
            return _tasks()

        key = query_keys.profile_tasks_key("p1")
        self.cache.query(key, fetch)
        self.cache.query(key, fetch)
        self.assertEqual(len(calls), 1)

        refetched = self.cache.invalidate(query_keys.profile_tasks_prefix("p1"))
        self.assertEqual(refetched, [key])
        self.assertEqual(len(calls), 2)

    def test_prefix_matching(self):
        self.cache.set(query_keys.profile_tasks_key("p1"), _tasks())
        self.cache.set(query_keys.profile_tasks_key("p1", {"status": "PENDING"}), _tasks())
        self.cache.set(query_keys.profile_tasks_key("p2"), [])
        self.cache.set(query_keys.profile_key("p1"), {"id": "p1"})

        self.assertEqual(len(self.cache.keys_matching(query_keys.TASKS)), 3)
        self.assertEqual(len(self.cache.keys_matching(query_keys.profile_tasks_prefix("p1"))), 2)

    def test_rollback_restores_snapshot_exactly(self):
        first = query_keys.profile_tasks_key("p1")
        second = query_keys.profile_tasks_key("p1", {"status": "PENDING"})
        self.cache.set(first, _tasks())
        self.cache.set(second, _tasks())
        self.cache.set(query_keys.task_key("a"), _tasks()[0])
        before = copy.deepcopy(
            {key: self.cache.get(key) for key in self.cache.keys_matching(query_keys.TASKS)}
        )

        snapshot = self.cache.snapshot(query_keys.TASKS)
        lookup = {"a": 1, "b": 0}

        def reorder(data):
            if not isinstance(data, list):
                return data
            for task in data:
                task["sortOrder"] = lookup[task["id"]]
            return data

        self.assertEqual(self.cache.patch(query_keys.TASKS, reorder), 3)
        self.assertEqual(self.cache.get(first)[0]["sortOrder"], 1)

        self.cache.rollback(snapshot)
        after = {key: self.cache.get(key) for key in self.cache.keys_matching(query_keys.TASKS)}
        self.assertEqual(after, before)
        self.assertEqual(self.cache.get(first)[0]["sortOrder"], 0)

    def test_cancelled_fetch_is_discarded(self):
        key = query_keys.profile_tasks_key("p1")
        self.cache.set(key, ["optimistic"])

        token = self.cache.begin_fetch(key)
        self.cache.cancel(query_keys.TASKS)
        stored = self.cache.complete_fetch(key, token, ["stale server copy"])

        self.assertFalse(stored)
        self.assertEqual(self.cache.get(key), ["optimistic"])

    def test_invalidate_without_fetcher_only_marks_stale(self):
        key = query_keys.profile_tasks_key("p1")
        self.cache.set(key, _tasks())

        self.assertEqual(self.cache.invalidate(query_keys.TASKS), [])
        self.assertTrue(self.cache.is_stale(key))
        self.assertEqual(self.cache.get(key), _tasks())

    def test_failed_refetch_keeps_previous_value(self):
        key = query_keys.profile_tasks_key("p1")
        self.cache.set(key, _tasks())

        def failing_fetch():
            raise ApiError("Request failed", status_code=500)

        self.cache.query(key, failing_fetch)
        with self.assertLogs(level="WARNING"):
            refetched = self.cache.invalidate(key)
        self.assertEqual(refetched, [])
        self.assertEqual(self.cache.get(key), _tasks())

    def test_remove(self):
        self.cache.set(query_keys.task_key("a"), {"id": "a"})
        self.cache.set(query_keys.task_key("b"), {"id": "b"})
        self.assertEqual(self.cache.remove(query_keys.task_key("a")), 1)
        self.assertIsNone(self.cache.get(query_keys.task_key("a")))
        self.assertEqual(self.cache.get(query_keys.task_key("b")), {"id": "b"})
