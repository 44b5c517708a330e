from .signals import (
    SoftSignal,
    task_init,
    task_execution_start,
    task_execution_skipped,
    task_execution_end,
    task_execution_failed,
)

__all__ = [
    "SoftSignal",
    "task_init",
    "task_execution_start",
    "task_execution_skipped",
    "task_execution_end",
    "task_execution_failed",
]
