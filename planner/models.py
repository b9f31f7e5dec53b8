from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional


@dataclass
class Task:
    """Represents a todo item with the attributes the scheduler reads."""

    id: int
    title: str
    duration: int = 1  # days
    dependency_ids: Optional[str] = None  # JSON array, e.g. "[1, 4]"
    due_date: Optional[datetime] = None
    image_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def effective_duration(self) -> int:
        """Duration in days, falling back to 1 for absent or non-positive values."""
        if isinstance(self.duration, bool):
            return 1
        try:
            days = int(self.duration)
        except (TypeError, ValueError):
            return 1
        return days if days > 0 else 1

    def is_overdue(self, now: datetime) -> bool:
        if self.due_date is None:
            return False
        return self.due_date < now


def index_tasks(tasks: Iterable[Task]) -> Dict[int, Task]:
    """Build a task set keyed by task id."""
    return {task.id: task for task in tasks}
