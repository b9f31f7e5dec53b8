from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
import logging

import pandas as pd

from .config import SchedulerConfig
from .dependencies import (
    available_dependencies,
    dependencies_of,
    encode_dependency_ids,
    parse_dependency_ids,
    validate_dependencies,
)
from .errors import CycleError, DependencyValidationError, ScheduleDepthError, SchedulingError
from .models import Task

logger = logging.getLogger(__name__)


def format_date(value: datetime) -> str:
    """Short display form, e.g. 'Mon, Jan 5'."""
    return f"{value:%a, %b} {value.day}"


def _finish(start: datetime, task: Optional[Task]) -> datetime:
    days = task.effective_duration if task is not None else 1
    return start + timedelta(days=days)


def earliest_start(
    tasks: Mapping[int, Task],
    task_id: int,
    baseline: datetime,
    max_depth: Optional[int] = None,
    _memo: Optional[Dict[int, Tuple[datetime, int]]] = None,
) -> datetime:
    """
    Earliest date `task_id` can begin.

    A task without dependencies starts at `baseline`; otherwise it starts when
    the last of its dependencies finishes. Dependencies that are not in the
    task set count as root tasks of one day.

    Raises:
        CycleError: the dependency chain loops back on itself
        ScheduleDepthError: the chain is longer than `max_depth` tasks
    """
    memo: Dict[int, Tuple[datetime, int]] = {} if _memo is None else _memo
    if task_id not in tasks:
        return baseline
    if task_id in memo:
        start, depth = memo[task_id]
        if max_depth is not None and depth > max_depth:
            raise ScheduleDepthError(task_id, max_depth)
        return start

    # Each frame: [task id, dependency iterator, latest finish seen so far,
    # longest chain of tasks below this one]
    stack: List[List[Any]] = [[task_id, iter(dependencies_of(tasks, task_id)), baseline, 0]]
    on_path = {task_id}

    while stack:
        frame = stack[-1]
        node = frame[0]
        dep = next(frame[1], None)

        if dep is None:
            memo[node] = (frame[2], frame[3] + 1)
            stack.pop()
            on_path.discard(node)
            if stack:
                parent = stack[-1]
                parent[2] = max(parent[2], _finish(frame[2], tasks[node]))
                parent[3] = max(parent[3], frame[3] + 1)
            continue

        if dep not in tasks:
            frame[2] = max(frame[2], _finish(baseline, None))
            continue
        if dep in memo:
            dep_start, dep_depth = memo[dep]
            # The chain through a memoised task is as long as if it were walked again.
            if max_depth is not None and len(stack) + dep_depth > max_depth:
                raise ScheduleDepthError(task_id, max_depth)
            frame[2] = max(frame[2], _finish(dep_start, tasks[dep]))
            frame[3] = max(frame[3], dep_depth)
            continue
        if dep in on_path:
            path = [f[0] for f in stack]
            raise CycleError(path[path.index(dep):] + [dep])
        if max_depth is not None and len(stack) >= max_depth:
            raise ScheduleDepthError(task_id, max_depth)

        on_path.add(dep)
        stack.append([dep, iter(dependencies_of(tasks, dep)), baseline, 0])

    return memo[task_id][0]


def all_earliest_starts(
    tasks: Mapping[int, Task],
    baseline: datetime,
    max_depth: Optional[int] = None,
) -> Dict[int, datetime]:
    """Earliest start of every task; tasks that cannot be scheduled get `baseline`."""
    memo: Dict[int, Tuple[datetime, int]] = {}
    starts: Dict[int, datetime] = {}
    for task_id in tasks:
        try:
            starts[task_id] = earliest_start(tasks, task_id, baseline, max_depth, memo)
        except SchedulingError as e:
            logger.error(f"Error calculating start date for task {task_id}: {e}")
            starts[task_id] = baseline
    return starts


def _longest_path(tasks: Mapping[int, Task]) -> Tuple[Optional[int], Dict[int, int], int, List[int]]:
    """
    Kahn topological sort tracking the longest duration-weighted path.

    Returns the terminus task, predecessor links, the largest end offset
    and the tasks that were never dequeued.
    """
    successors: Dict[int, List[int]] = {task_id: [] for task_id in tasks}
    in_degree: Dict[int, int] = {task_id: 0 for task_id in tasks}

    for task_id, task in tasks.items():
        for dep in parse_dependency_ids(task.dependency_ids):
            if dep not in tasks:
                continue
            successors[dep].append(task_id)
            in_degree[task_id] += 1

    start: Dict[int, int] = {}
    parent: Dict[int, int] = {}
    queue = deque()
    for task_id in tasks:
        if in_degree[task_id] == 0:
            queue.append(task_id)
            start[task_id] = 0

    max_end = 0
    terminus: Optional[int] = None

    while queue:
        node = queue.popleft()
        end = start[node] + tasks[node].effective_duration
        if end > max_end:
            max_end = end
            terminus = node

        for succ in successors[node]:
            in_degree[succ] -= 1
            new_start = max(start.get(succ, 0), end)
            start[succ] = new_start
            if in_degree[succ] == 0:
                queue.append(succ)
            # Overwritten on ties too: the last predecessor processed wins.
            if new_start == end:
                parent[succ] = node

    starved = [task_id for task_id, degree in in_degree.items() if degree > 0]
    return terminus, parent, max_end, starved


def _trace_path(
    terminus: Optional[int], parent: Dict[int, int], starved: List[int], strict: bool
) -> List[int]:
    """Walk predecessor links back from the terminus, reporting starved tasks."""
    if starved:
        if strict:
            raise CycleError(starved, f"Tasks stuck in a dependency cycle: {starved}")
        logger.warning(f"Critical path ignores tasks stuck in a dependency cycle: {starved}")

    path: List[int] = []
    current = terminus
    while current is not None:
        path.append(current)
        current = parent.get(current)
    path.reverse()
    return path


def critical_path(tasks: Mapping[int, Task], strict: bool = False) -> List[int]:
    """
    Ordered task ids from a root task to the task that finishes last.

    Tasks caught in a dependency cycle never become ready and are left out
    of the result. With `strict` set they raise CycleError instead.
    """
    terminus, parent, _, starved = _longest_path(tasks)
    return _trace_path(terminus, parent, starved, strict)


def project_duration(tasks: Mapping[int, Task]) -> int:
    """Largest end offset in days reached by any schedulable task."""
    return _longest_path(tasks)[2]


class TaskScheduler:
    """
    In-memory todo list with dependency scheduling.

    Keeps the task set, validates new dependencies and recomputes earliest
    start dates and the critical path from scratch on every calculation.
    """

    def __init__(self, config: Optional[SchedulerConfig] = None):
        self.config = config or SchedulerConfig()
        self.tasks: Dict[int, Task] = {}
        self.calculation_log: List[str] = []
        self.earliest_starts: Dict[int, datetime] = {}
        self.critical_path: List[int] = []
        self.project_duration: int = 0
        self.baseline: Optional[datetime] = None
        self._last_id = 0

    def clear(self) -> None:
        """Clear all tasks and calculations."""
        self.tasks.clear()
        self.calculation_log.clear()
        self.earliest_starts = {}
        self.critical_path = []
        self.project_duration = 0
        self.baseline = None
        self._last_id = 0

    def _next_id(self) -> int:
        # Ids are never reused, even after the newest task is removed.
        self._last_id = max(self._last_id, max(self.tasks, default=0)) + 1
        return self._last_id

    def _normalize_dependencies(self, dependency_ids: Optional[Sequence[int]]) -> List[int]:
        seen = set()
        deps: List[int] = []
        for dep in dependency_ids or []:
            dep = int(dep)
            if dep in seen:
                continue
            seen.add(dep)
            deps.append(dep)
        return deps

    def add_task(
        self,
        title: str,
        duration: Optional[int] = None,
        dependency_ids: Optional[Sequence[int]] = None,
        due_date: Optional[datetime] = None,
        image_url: Optional[str] = None,
    ) -> Tuple[bool, str]:
        """
        Add a task to the list.

        Args:
            title: Task title (must not be blank)
            duration: Duration in days, defaults to the configured default
            dependency_ids: Ids of existing tasks that must finish first

        Returns:
            Tuple of (success, message)
        """
        title = (title or "").strip()
        if not title:
            return False, "Title is required."

        if duration is None:
            duration = self.config.default_duration
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            return False, "Duration must be a whole number of days."
        if duration < 1:
            return False, "Duration must be at least 1 day."

        try:
            deps = self._normalize_dependencies(dependency_ids)
        except (TypeError, ValueError):
            return False, "Dependencies must be task ids."

        try:
            validate_dependencies(self.tasks, None, deps)
        except DependencyValidationError as e:
            logger.info(f"Rejected task '{title}' ({e.reason}): {e}")
            return False, str(e)

        task = Task(
            id=self._next_id(),
            title=title,
            duration=duration,
            dependency_ids=encode_dependency_ids(deps),
            due_date=due_date,
            image_url=image_url,
        )
        self.tasks[task.id] = task
        return True, f"Task '{title}' added successfully."

    def set_dependencies(self, task_id: int, dependency_ids: Sequence[int]) -> Tuple[bool, str]:
        """Replace the dependencies of an existing task."""
        task = self.tasks.get(task_id)
        if task is None:
            return False, f"Task {task_id} not found."
        try:
            deps = self._normalize_dependencies(dependency_ids)
        except (TypeError, ValueError):
            return False, "Dependencies must be task ids."

        try:
            validate_dependencies(self.tasks, task_id, deps)
        except DependencyValidationError as e:
            logger.info(f"Rejected dependencies for task {task_id} ({e.reason}): {e}")
            return False, str(e)

        task.dependency_ids = encode_dependency_ids(deps)
        return True, f"Dependencies of '{task.title}' updated."

    def remove_task(self, task_id: int) -> Tuple[bool, str]:
        """Remove a task from the list."""
        if task_id not in self.tasks:
            return False, f"Task {task_id} not found."

        for task in self.tasks.values():
            if task_id in parse_dependency_ids(task.dependency_ids):
                return (
                    False,
                    f"Cannot remove task {task_id}: '{task.title}' depends on it.",
                )

        del self.tasks[task_id]
        self.earliest_starts.pop(task_id, None)
        return True, f"Task {task_id} removed."

    def available_dependencies(self, task_id: Optional[int] = None) -> List[Task]:
        """Tasks `task_id` may depend on; None stands for a task not yet created."""
        return available_dependencies(self.tasks, task_id)

    def is_critical(self, task_id: int) -> bool:
        return task_id in self.critical_path

    def _log(self, message: str) -> None:
        self.calculation_log.append(message)

    def calculate(self, baseline: Optional[datetime] = None) -> Tuple[bool, str]:
        """
        Recompute earliest start dates and the critical path.
        """
        self.baseline = baseline or datetime.now()
        self.calculation_log.clear()
        self._log("=" * 70)
        self._log("SCHEDULE CALCULATION")
        self._log(f"Baseline: {self.baseline:%Y-%m-%d %H:%M}")
        self._log("=" * 70)

        self.earliest_starts = all_earliest_starts(
            self.tasks, self.baseline, self.config.max_depth
        )
        self._log("\nEARLIEST START DATES")
        self._log("-" * 50)
        for task_id, start in self.earliest_starts.items():
            task = self.tasks[task_id]
            deps = parse_dependency_ids(task.dependency_ids)
            if deps:
                self._log(
                    f"{task_id} {task.title!r} (after {', '.join(str(d) for d in deps)}): "
                    f"starts {format_date(start)}"
                )
            else:
                self._log(f"{task_id} {task.title!r} (no dependencies): starts {format_date(start)}")

        terminus, parent, self.project_duration, starved = _longest_path(self.tasks)
        try:
            self.critical_path = _trace_path(
                terminus, parent, starved, self.config.strict_cycles
            )
        except CycleError as e:
            self.critical_path = []
            self._log(f"\nERROR: {e}")
            return False, str(e)

        self._log("\nCRITICAL PATH")
        self._log("-" * 50)
        if self.critical_path:
            self._log(" -> ".join(str(task_id) for task_id in self.critical_path))
        else:
            self._log("(none)")
        self._log(f"Project Duration: {self.project_duration} days")

        if not self.tasks:
            return True, "No tasks to schedule."
        return True, "Calculation completed successfully."

    def _ordered_tasks(self) -> List[Task]:
        return sorted(self.tasks.values(), key=lambda t: (t.created_at, t.id), reverse=True)

    def get_tasks_dataframe(self) -> pd.DataFrame:
        """Get the task list as a pandas DataFrame, newest first."""
        data = []
        for task in self._ordered_tasks():
            deps = parse_dependency_ids(task.dependency_ids)
            data.append(
                {
                    "ID": task.id,
                    "Title": task.title,
                    "Duration": task.effective_duration,
                    "Dependencies": ", ".join(str(d) for d in deps),
                    "Due": task.due_date.strftime("%Y-%m-%d") if task.due_date else "",
                }
            )
        return pd.DataFrame(data)

    def get_results_dataframe(self) -> pd.DataFrame:
        """Get calculation results as a pandas DataFrame, newest first."""
        data = []
        for task in self._ordered_tasks():
            start = self.earliest_starts.get(task.id)
            data.append(
                {
                    "ID": task.id,
                    "Title": task.title,
                    "Duration": task.effective_duration,
                    "Earliest Start": format_date(start) if start else "-",
                    "Earliest Finish": format_date(_finish(start, task)) if start else "-",
                    "Critical": "Yes" if self.is_critical(task.id) else "No",
                }
            )
        return pd.DataFrame(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks": [
                {
                    "id": task.id,
                    "title": task.title,
                    "duration": task.effective_duration,
                    "dependencies": parse_dependency_ids(task.dependency_ids),
                    "due_date": task.due_date,
                    "image_url": task.image_url,
                    "earliest_start": self.earliest_starts.get(task.id),
                    "critical": self.is_critical(task.id),
                }
                for task in self.tasks.values()
            ],
            "critical_path": list(self.critical_path),
            "project_duration": self.project_duration,
            "baseline": self.baseline,
        }
