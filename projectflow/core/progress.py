"""Project progress — derived from task completion.

progress = round(100 * completed / total), 0 for a project without tasks.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from projectflow.core.billing import round_half_up
from projectflow.data.models import Project, Task, TaskStatus


def project_progress(project_id: str, tasks: Iterable[Task]) -> int:
    total = 0
    completed = 0
    for task in tasks:
        if task.project_id != project_id:
            continue
        total += 1
        if task.status == TaskStatus.COMPLETED:
            completed += 1
    if total == 0:
        return 0
    return round_half_up(100 * completed / total)


def recompute_progress(
    projects: list[Project], tasks: list[Task],
) -> tuple[list[Project], list[Project]]:
    """Recompute every project's progress.

    Returns (projects, changed): the full list with fresh values, and the
    subset whose progress differs from what it carried before.
    """
    totals: Counter[str] = Counter()
    completed: Counter[str] = Counter()
    for task in tasks:
        totals[task.project_id] += 1
        if task.status == TaskStatus.COMPLETED:
            completed[task.project_id] += 1

    result: list[Project] = []
    changed: list[Project] = []
    for project in projects:
        total = totals[project.id]
        value = round_half_up(100 * completed[project.id] / total) if total else 0
        if value != project.progress:
            project = project.model_copy(update={"progress": value})
            changed.append(project)
        result.append(project)
    return result, changed
