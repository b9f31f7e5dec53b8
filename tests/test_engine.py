import unittest
from datetime import datetime, timedelta

from planner.dependencies import encode_dependency_ids, parse_dependency_ids
from planner.engine import (
    all_earliest_starts,
    critical_path,
    earliest_start,
    format_date,
    project_duration,
)
from planner.errors import CycleError, ScheduleDepthError
from planner.models import Task, index_tasks

BASELINE = datetime(2024, 3, 4, 9, 0)


def make_tasks(*rows):
    """rows: (id, duration, dependency ids or a raw encoded string)"""
    tasks = []
    for task_id, duration, deps in rows:
        raw = deps if isinstance(deps, str) or deps is None else encode_dependency_ids(deps)
        tasks.append(Task(id=task_id, title=f"Task {task_id}", duration=duration, dependency_ids=raw))
    return index_tasks(tasks)


def days(n):
    return BASELINE + timedelta(days=n)


class TestEarliestStart(unittest.TestCase):
    def test_root_task_starts_at_baseline(self):
        tasks = make_tasks((1, 4, []))
        self.assertEqual(earliest_start(tasks, 1, BASELINE), BASELINE)

    def test_simple_chain(self):
        tasks = make_tasks((1, 1, []), (2, 1, [1]), (3, 1, [2]))
        self.assertEqual(earliest_start(tasks, 2, BASELINE), days(1))
        self.assertEqual(earliest_start(tasks, 3, BASELINE), days(2))

    def test_waits_for_latest_dependency(self):
        tasks = make_tasks((1, 2, []), (2, 5, []), (3, 1, [1]), (4, 1, [3, 2]))
        self.assertEqual(earliest_start(tasks, 3, BASELINE), days(2))
        self.assertEqual(earliest_start(tasks, 4, BASELINE), days(5))

    def test_unreadable_dependencies_make_a_root_task(self):
        tasks = make_tasks((1, 3, []), (2, 2, "{oops"))
        self.assertEqual(earliest_start(tasks, 2, BASELINE), BASELINE)

    def test_missing_dependency_counts_as_one_day_root(self):
        tasks = make_tasks((1, 3, [42]))
        self.assertEqual(earliest_start(tasks, 1, BASELINE), days(1))

    def test_unknown_task_starts_at_baseline(self):
        self.assertEqual(earliest_start({}, 5, BASELINE), BASELINE)

    def test_non_positive_duration_counts_as_one_day(self):
        tasks = make_tasks((1, 0, []), (2, -3, [1]), (3, 1, [2]))
        self.assertEqual(earliest_start(tasks, 3, BASELINE), days(2))

    def test_cycle_raises(self):
        tasks = make_tasks((1, 1, [3]), (2, 1, [1]), (3, 1, [2]))
        with self.assertRaises(CycleError) as ctx:
            earliest_start(tasks, 1, BASELINE)
        self.assertEqual(ctx.exception.task_ids, [1, 3, 2, 1])

    def test_self_dependency_raises(self):
        tasks = make_tasks((1, 1, [1]))
        with self.assertRaises(CycleError):
            earliest_start(tasks, 1, BASELINE)

    def test_depth_guard(self):
        tasks = make_tasks(*[(i, 1, [i - 1] if i > 1 else []) for i in range(1, 6)])
        self.assertEqual(earliest_start(tasks, 5, BASELINE, max_depth=5), days(4))
        with self.assertRaises(ScheduleDepthError):
            earliest_start(tasks, 5, BASELINE, max_depth=3)

    def test_long_chain_does_not_recurse(self):
        n = 5000
        tasks = make_tasks(*[(i, 1, [i - 1] if i > 1 else []) for i in range(1, n + 1)])
        self.assertEqual(earliest_start(tasks, n, BASELINE), days(n - 1))


class TestAllEarliestStarts(unittest.TestCase):
    def test_empty_task_set(self):
        self.assertEqual(all_earliest_starts({}, BASELINE), {})

    def test_every_task_is_scheduled(self):
        tasks = make_tasks((1, 2, []), (2, 3, [1]), (3, 1, [1]), (4, 2, [2, 3]))
        starts = all_earliest_starts(tasks, BASELINE)
        self.assertEqual(starts, {1: BASELINE, 2: days(2), 3: days(2), 4: days(5)})

    def test_start_follows_dependencies(self):
        tasks = make_tasks(
            (1, 3, []), (2, 1, []), (3, 2, [1, 2]), (4, 4, [2]), (5, 1, [3, 4]), (6, 2, [5, 1])
        )
        starts = all_earliest_starts(tasks, BASELINE)
        for task_id, task in tasks.items():
            deps = parse_dependency_ids(task.dependency_ids)
            if not deps:
                self.assertEqual(starts[task_id], BASELINE)
                continue
            finishes = [starts[d] + timedelta(days=tasks[d].effective_duration) for d in deps]
            self.assertEqual(starts[task_id], max(finishes))

    def test_cycle_falls_back_to_baseline(self):
        tasks = make_tasks((1, 2, []), (2, 1, [1]), (3, 1, [4]), (4, 1, [3]), (5, 1, [3]))
        with self.assertLogs("planner.engine", level="ERROR") as logs:
            starts = all_earliest_starts(tasks, BASELINE)

        self.assertEqual(set(starts), {1, 2, 3, 4, 5})
        self.assertEqual(starts[1], BASELINE)
        self.assertEqual(starts[2], days(2))
        self.assertEqual(starts[3], BASELINE)
        self.assertEqual(starts[4], BASELINE)
        self.assertEqual(starts[5], BASELINE)
        self.assertEqual(len(logs.records), 3)

    def test_depth_guard_falls_back_to_baseline(self):
        tasks = make_tasks((3, 1, [2]), (2, 1, [1]), (1, 1, []))
        with self.assertLogs("planner.engine", level="ERROR") as logs:
            starts = all_earliest_starts(tasks, BASELINE, max_depth=2)
        self.assertEqual(starts, {1: BASELINE, 2: days(1), 3: BASELINE})
        self.assertEqual(len(logs.records), 1)

    def test_depth_guard_ignores_task_order(self):
        ascending = make_tasks((1, 1, []), (2, 1, [1]), (3, 1, [2]))
        descending = make_tasks((3, 1, [2]), (2, 1, [1]), (1, 1, []))
        for max_depth in (1, 2):
            with self.subTest(max_depth=max_depth):
                with self.assertLogs("planner.engine", level="ERROR"):
                    first = all_earliest_starts(ascending, BASELINE, max_depth=max_depth)
                with self.assertLogs("planner.engine", level="ERROR"):
                    second = all_earliest_starts(descending, BASELINE, max_depth=max_depth)
                self.assertEqual(first, second)

        self.assertEqual(
            all_earliest_starts(ascending, BASELINE, max_depth=3),
            all_earliest_starts(descending, BASELINE, max_depth=3),
        )

    def test_depth_guard_counts_memoised_chain(self):
        tasks = make_tasks((1, 1, []), (2, 1, [1]), (3, 1, [2]))
        memo = {}
        self.assertEqual(earliest_start(tasks, 2, BASELINE, 2, memo), days(1))
        with self.assertRaises(ScheduleDepthError):
            earliest_start(tasks, 3, BASELINE, 2, memo)
        self.assertEqual(earliest_start(tasks, 3, BASELINE, 3, memo), days(2))

    def test_idempotent(self):
        tasks = make_tasks((1, 2, []), (2, 3, [1]), (3, 1, [2]))
        self.assertEqual(all_earliest_starts(tasks, BASELINE), all_earliest_starts(tasks, BASELINE))


class TestCriticalPath(unittest.TestCase):
    def test_empty_task_set(self):
        self.assertEqual(critical_path({}), [])
        self.assertEqual(project_duration({}), 0)

    def test_longest_branch_wins(self):
        tasks = make_tasks((1, 2, []), (2, 3, [1]), (3, 1, [1]))
        self.assertEqual(critical_path(tasks), [1, 2])
        self.assertEqual(project_duration(tasks), 5)

    def test_chain(self):
        tasks = make_tasks((1, 1, []), (2, 1, [1]), (3, 1, [2]))
        self.assertEqual(critical_path(tasks), [1, 2, 3])
        self.assertEqual(project_duration(tasks), 3)

    def test_single_task(self):
        tasks = make_tasks((7, 4, []))
        self.assertEqual(critical_path(tasks), [7])

    def test_independent_tasks(self):
        tasks = make_tasks((1, 2, []), (2, 6, []), (3, 6, []))
        # Equal end offsets keep the first terminus found.
        self.assertEqual(critical_path(tasks), [2])

    def test_tie_goes_to_last_processed_predecessor(self):
        tasks = make_tasks((1, 2, []), (2, 2, []), (3, 1, [1, 2]))
        self.assertEqual(critical_path(tasks), [2, 3])

    def test_merge_picks_longer_predecessor(self):
        tasks = make_tasks((1, 5, []), (2, 2, []), (3, 1, [2]), (4, 3, [1, 3]))
        self.assertEqual(critical_path(tasks), [1, 4])
        self.assertEqual(project_duration(tasks), 8)

    def test_path_duration_matches_project_duration(self):
        tasks = make_tasks(
            (1, 3, []), (2, 1, []), (3, 2, [1, 2]), (4, 4, [2]), (5, 1, [3, 4]), (6, 2, [5, 1])
        )
        path = critical_path(tasks)
        self.assertEqual(sum(tasks[t].effective_duration for t in path), project_duration(tasks))
        for prev, nxt in zip(path, path[1:]):
            self.assertIn(prev, parse_dependency_ids(tasks[nxt].dependency_ids))

    def test_unreadable_dependencies_make_a_root_task(self):
        tasks = make_tasks((1, 1, []), (2, 4, "[1,"))
        self.assertEqual(critical_path(tasks), [2])

    def test_missing_dependency_is_ignored(self):
        tasks = make_tasks((1, 3, [99]), (2, 1, [1]))
        self.assertEqual(critical_path(tasks), [1, 2])

    def test_cycle_is_silently_excluded(self):
        tasks = make_tasks((1, 1, []), (2, 5, [3]), (3, 5, [2]))
        with self.assertLogs("planner.engine", level="WARNING"):
            self.assertEqual(critical_path(tasks), [1])
        self.assertEqual(project_duration(tasks), 1)

    def test_cycle_raises_in_strict_mode(self):
        tasks = make_tasks((1, 1, []), (2, 5, [3]), (3, 5, [2]))
        with self.assertRaises(CycleError) as ctx:
            critical_path(tasks, strict=True)
        self.assertEqual(ctx.exception.task_ids, [2, 3])

    def test_idempotent(self):
        tasks = make_tasks((1, 2, []), (2, 2, []), (3, 1, [1, 2]), (4, 2, [3]))
        self.assertEqual(critical_path(tasks), critical_path(tasks))


class TestFormatDate(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_date(datetime(2024, 1, 5)), "Fri, Jan 5")


if __name__ == "__main__":
    unittest.main()
