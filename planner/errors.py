from __future__ import annotations

from typing import Iterable, List


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling engine."""


class CycleError(SchedulingError):
    """A dependency cycle was found while walking the task graph."""

    def __init__(self, task_ids: Iterable[int], message: str = ""):
        self.task_ids: List[int] = list(task_ids)
        if not message:
            message = "Circular dependency detected: " + " -> ".join(
                str(task_id) for task_id in self.task_ids
            )
        super().__init__(message)


class ScheduleDepthError(SchedulingError):
    """A dependency chain is deeper than the configured limit."""

    def __init__(self, task_id: int, max_depth: int):
        self.task_id = task_id
        self.max_depth = max_depth
        super().__init__(
            f"Dependency chain of task {task_id} exceeds the maximum depth of {max_depth}."
        )


class DependencyValidationError(SchedulingError):
    """A proposed dependency list was rejected."""

    reason = "invalid"

    def __init__(self, task_ids: Iterable[int], message: str):
        self.task_ids: List[int] = list(task_ids)
        super().__init__(message)


class MissingDependencyError(DependencyValidationError):
    reason = "missing"

    def __init__(self, task_ids: Iterable[int]):
        task_ids = list(task_ids)
        super().__init__(
            task_ids,
            "One or more dependencies do not exist: "
            + ", ".join(str(task_id) for task_id in task_ids),
        )


class CircularDependencyError(DependencyValidationError):
    reason = "cycle"

    def __init__(self, task_ids: Iterable[int]):
        task_ids = list(task_ids)
        super().__init__(
            task_ids,
            "Adding dependency "
            + ", ".join(str(task_id) for task_id in task_ids)
            + " would create a circular dependency.",
        )
