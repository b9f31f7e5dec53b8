from __future__ import annotations

import json
import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from .errors import CircularDependencyError, MissingDependencyError
from .models import Task

logger = logging.getLogger(__name__)


def parse_dependency_ids(raw: Optional[str]) -> List[int]:
    """
    Decode a task's stored dependency list.

    Args:
        raw: JSON array of task ids, e.g. "[1, 4]"

    Returns:
        The ids in stored order. Missing or unreadable data gives an empty
        list, so the task is treated as a root task.
    """
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug(f"Unreadable dependency data {raw!r}, treating as empty")
        return []
    if not isinstance(value, list):
        logger.debug(f"Dependency data {raw!r} is not a list, treating as empty")
        return []
    ids: List[int] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            logger.debug(f"Dependency data {raw!r} holds a non-integer id, treating as empty")
            return []
        ids.append(item)
    return ids


def encode_dependency_ids(ids: Optional[Sequence[int]]) -> Optional[str]:
    if not ids:
        return None
    return json.dumps([int(task_id) for task_id in ids])


def dependencies_of(tasks: Mapping[int, Task], task_id: Optional[int]) -> List[int]:
    task = tasks.get(task_id) if task_id is not None else None
    if task is None:
        return []
    return parse_dependency_ids(task.dependency_ids)


def would_create_cycle(
    tasks: Mapping[int, Task], source_id: Optional[int], proposed_id: int
) -> bool:
    """
    Check whether making `source_id` depend on `proposed_id` closes a cycle.

    Walks dependencies depth-first from `source_id` as if the proposed edge
    already existed. A source that is not in the task set (None for a task
    that has not been created yet) only has the proposed edge.
    """
    if source_id == proposed_id:
        return True

    WHITE, GRAY, BLACK = 0, 1, 2
    color = {}

    def successors(node: Optional[int]) -> List[int]:
        deps = dependencies_of(tasks, node)
        if node == source_id:
            deps = deps + [proposed_id]
        return deps

    color[source_id] = GRAY
    stack = [(source_id, iter(successors(source_id)))]
    while stack:
        node, deps = stack[-1]
        dep = next(deps, None)
        if dep is None:
            color[node] = BLACK
            stack.pop()
            continue
        state = color.get(dep, WHITE)
        if state == GRAY:
            return True
        if state == WHITE:
            color[dep] = GRAY
            stack.append((dep, iter(successors(dep))))
    return False


def available_dependencies(tasks: Mapping[int, Task], task_id: Optional[int]) -> List[Task]:
    """Tasks that `task_id` could depend on without creating a cycle."""
    return [
        candidate
        for candidate in tasks.values()
        if candidate.id != task_id and not would_create_cycle(tasks, task_id, candidate.id)
    ]


def validate_dependencies(
    tasks: Mapping[int, Task], task_id: Optional[int], dependency_ids: Iterable[int]
) -> None:
    """
    Validate a proposed dependency list before it is stored.

    Raises:
        MissingDependencyError: some ids are not in the task set
        CircularDependencyError: some ids would close a cycle with `task_id`
    """
    dependency_ids = list(dependency_ids)
    missing = [dep for dep in dependency_ids if dep not in tasks]
    if missing:
        raise MissingDependencyError(missing)

    cyclic = [dep for dep in dependency_ids if would_create_cycle(tasks, task_id, dep)]
    if cyclic:
        raise CircularDependencyError(cyclic)
