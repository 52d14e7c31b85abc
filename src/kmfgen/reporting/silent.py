from __future__ import annotations

from typing import Any, List, Tuple

from .base import Reporter, TaskStatus


class SilentReporter(Reporter):
    """Quiet reporter; keeps warnings and errors for later inspection."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, str]] = []

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        pass

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        pass

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        if status is TaskStatus.FAILED:
            self.records.append(("failed", task_id))

    def status(self, message: str, **fields: Any) -> None:
        pass

    def error(self, message: str, **fields: Any) -> None:
        self.records.append(("error", message))

    def warning(self, message: str, **fields: Any) -> None:
        self.records.append(("warning", message))

    def section(self, title: str) -> None:
        pass

    @property
    def errors(self) -> List[str]:
        return [m for level, m in self.records if level == "error"]

    @property
    def warnings(self) -> List[str]:
        return [m for level, m in self.records if level == "warning"]
