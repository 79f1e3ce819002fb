import unittest

from client.api import ApiError
from client.transitions import (
    DragGesture,
    Noop,
    PartitionTarget,
    Reorder,
    StatusChange,
    TaskTarget,
    TransitionCoordinator,
    classify,
    compute_reorder,
)
from models.partition import PartitionKey, TaskStatus

PROFILE = "profile-1"
PENDING = PartitionKey(PROFILE, "PENDING")
IN_PROGRESS = PartitionKey(PROFILE, "IN_PROGRESS")
COMPLETED = PartitionKey(PROFILE, "COMPLETED")


def _task(task_id, sort_order, status="PENDING", profile_id=PROFILE):
    return {"id": task_id, "profileId": profile_id, "status": status, "sortOrder": sort_order}


class FakeBoard:
    def __init__(self, tasks):
        self.tasks = tasks

    def find_task(self, task_id):
        return next((task for task in self.tasks if task["id"] == task_id), None)

    def partition_tasks(self, partition):
        return [task for task in self.tasks if partition.contains(task)]


class RecordingBackend:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def bulk_reorder(self, task_updates):
        self.calls.append(("bulk_reorder", list(task_updates)))
        if self.error:
            raise self.error

    def change_status(self, task_id, status):
        self.calls.append(("change_status", task_id, status))
        if self.error:
            raise self.error


class PartitionKeyTestCase(unittest.TestCase):
    def test_keys_from_strings_and_enums_are_equal(self):
        self.assertEqual(PartitionKey(PROFILE, "PENDING"), PartitionKey(PROFILE, TaskStatus.PENDING))
        self.assertEqual(len({PENDING, PartitionKey(PROFILE, TaskStatus.PENDING)}), 1)
        self.assertEqual(PartitionKey.from_payload(_task("a", 0)), PENDING)

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(ValueError):
            PartitionKey(PROFILE, "ARCHIVED")


class ClassifyTestCase(unittest.TestCase):
    def setUp(self):
        self.gesture = DragGesture("a", PENDING)

    def test_task_in_same_partition_reorders(self):
        transition = classify(self.gesture, [TaskTarget("b", PENDING)])
        self.assertEqual(transition, Reorder(PENDING, "a", "b"))

    def test_task_in_other_partition_changes_status(self):
        transition = classify(self.gesture, [TaskTarget("x", COMPLETED)])
        self.assertEqual(transition, StatusChange("a", PENDING, TaskStatus.COMPLETED))
        self.assertEqual(transition.target, COMPLETED)

    def test_marker_with_other_status_changes_status(self):
        transition = classify(self.gesture, [PartitionTarget(IN_PROGRESS)])
        self.assertIsInstance(transition, StatusChange)
        self.assertEqual(transition.status, TaskStatus.IN_PROGRESS)

    def test_marker_with_same_status_is_noop(self):
        self.assertIsInstance(classify(self.gesture, [PartitionTarget(PENDING)]), Noop)

    def test_task_collision_wins_over_container_collision(self):
        collisions = [PartitionTarget(COMPLETED), TaskTarget("b", PENDING)]
        self.assertIsInstance(classify(self.gesture, collisions), Reorder)

        collisions = [PartitionTarget(IN_PROGRESS), TaskTarget("x", COMPLETED)]
        transition = classify(self.gesture, collisions)
        self.assertEqual(transition.status, TaskStatus.COMPLETED)

    def test_dropping_on_itself_or_nowhere_is_noop(self):
        self.assertIsInstance(classify(self.gesture, [TaskTarget("a", PENDING)]), Noop)
        self.assertIsInstance(classify(self.gesture, []), Noop)

    def test_other_profile_targets_are_ignored(self):
        foreign = PartitionKey("profile-2", "COMPLETED")
        collisions = [TaskTarget("z", foreign), PartitionTarget(foreign)]
        self.assertIsInstance(classify(self.gesture, collisions), Noop)


class ComputeReorderTestCase(unittest.TestCase):
    def test_first_task_moved_after_last(self):
        tasks = [_task("A", 0), _task("B", 1), _task("C", 2)]
        self.assertEqual(
            compute_reorder(tasks, "A", "C"),
            [{"id": "B", "sortOrder": 0}, {"id": "C", "sortOrder": 1}, {"id": "A", "sortOrder": 2}],
        )

    def test_last_task_moved_to_front(self):
        tasks = [_task("C", 9), _task("A", 2), _task("B", 4)]
        self.assertEqual(
            [update["id"] for update in compute_reorder(tasks, "C", "A")],
            ["C", "A", "B"],
        )

    def test_renumbering_closes_gaps_and_ties(self):
        tasks = [_task("A", 0), _task("B", 0), _task("C", 5), _task("D", 7)]
        updates = compute_reorder(tasks, "B", "C")
        self.assertEqual([update["sortOrder"] for update in updates], [0, 1, 2, 3])
        self.assertEqual([update["id"] for update in updates], ["A", "C", "B", "D"])

    def test_unknown_task_gives_no_updates(self):
        self.assertEqual(compute_reorder([_task("A", 0)], "A", "missing"), [])


class TransitionCoordinatorTestCase(unittest.TestCase):
    def setUp(self):
        self.board = FakeBoard(
            [
                _task("A", 0),
                _task("B", 1),
                _task("C", 2),
                _task("X", 4),
                _task("D", 0, status="COMPLETED"),
            ]
        )
        self.backend = RecordingBackend()
        self.notices = []
        self.coordinator = TransitionCoordinator(self.backend, self.board, notify=self.notices.append)

    def test_reorder_submits_whole_partition(self):
        gesture = self.coordinator.start("A")
        self.assertEqual(gesture.origin, PENDING)

        self.coordinator.drop(gesture, [TaskTarget("C", PENDING)])

        self.assertEqual(
            self.backend.calls,
            [
                (
                    "bulk_reorder",
                    [
                        {"id": "B", "sortOrder": 0},
                        {"id": "C", "sortOrder": 1},
                        {"id": "A", "sortOrder": 2},
                        {"id": "X", "sortOrder": 3},
                    ],
                )
            ],
        )

    def test_drop_on_empty_section_changes_status_only(self):
        gesture = self.coordinator.start("X")
        transition = self.coordinator.drop(gesture, [PartitionTarget(IN_PROGRESS)])

        self.assertIsInstance(transition, StatusChange)
        self.assertEqual(self.backend.calls, [("change_status", "X", "IN_PROGRESS")])

    def test_drop_on_task_of_other_section_changes_status(self):
        gesture = self.coordinator.start("B")
        self.coordinator.drop(gesture, [TaskTarget("D", COMPLETED), PartitionTarget(COMPLETED)])
        self.assertEqual(self.backend.calls, [("change_status", "B", "COMPLETED")])

    def test_cancel_and_noop_issue_no_calls(self):
        gesture = self.coordinator.start("A")
        self.assertIsInstance(self.coordinator.cancel(gesture), Noop)
        self.assertIsInstance(self.coordinator.drop(gesture, []), Noop)
        self.assertIsInstance(self.coordinator.drop(gesture, [PartitionTarget(PENDING)]), Noop)
        self.assertEqual(self.backend.calls, [])

    def test_backend_failure_is_reported(self):
        self.backend.error = ApiError("Error updating task order", status_code=500)
        gesture = self.coordinator.start("A")

        with self.assertLogs(level="WARNING"):
            transition = self.coordinator.drop(gesture, [TaskTarget("B", PENDING)])

        self.assertIsInstance(transition, Reorder)
        self.assertEqual(self.notices, ["Error updating task order"])

    def test_start_unknown_task(self):
        with self.assertRaises(LookupError):
            self.coordinator.start("missing")
