import logging
import threading
import time
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from sci_pipeline.mixins.identity import ObjectIdentityMixin

logger = logging.getLogger(__name__)


@dataclass
class TaskMetrics(ObjectIdentityMixin):
    """Metrics for a single task execution"""

    task_name: str
    task_id: str
    start_time: float
    end_time: typing.Optional[float] = None
    status: str = "running"
    error: typing.Optional[str] = None
    skip_reasons: typing.List[str] = field(default_factory=list)

    def duration(self) -> float:
        """Calculate execution duration in seconds"""
        if not self.end_time:
            return 0
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        """Convert to dictionary format"""
        return {
            "task_name": self.task_name,
            "task_id": self.task_id,
            "start_time": datetime.fromtimestamp(self.start_time).isoformat(),
            "end_time": (
                datetime.fromtimestamp(self.end_time).isoformat()
                if self.end_time
                else None
            ),
            "duration": f"{self.duration():.3f}s",
            "status": self.status,
            "error": self.error,
            "skip_reasons": list(self.skip_reasons),
        }


class AbstractTelemetryLogger(ABC):
    """Abstract telemetry logger"""

    @abstractmethod
    def start_task(self, task_name: str, task_id: str) -> None:
        """Record the start of a task execution"""
        pass

    @abstractmethod
    def record_skip(self, task_id: str, reasons: typing.List[str]) -> None:
        """Record that a task skipped execution and why"""
        pass

    @abstractmethod
    def end_task(self, task_id: str, error: typing.Optional[str] = None) -> None:
        """Record the end of a task execution"""
        pass

    @abstractmethod
    def get_metrics(self, task_id: str) -> typing.Optional[TaskMetrics]:
        """Get metrics for a specific task"""
        pass

    @abstractmethod
    def get_all_metrics(self) -> typing.Dict[str, TaskMetrics]:
        """Get all collected metrics"""
        pass


class StandardTelemetryLogger(AbstractTelemetryLogger):
    """
    Thread-safe telemetry logger for task monitoring. A single instance may be
    shared by every task of a run, each task recording under its own id.
    """

    def __init__(self):
        self._metrics: typing.Dict[str, TaskMetrics] = {}
        self._lock = threading.Lock()

    def start_task(self, task_name: str, task_id: str) -> None:
        with self._lock:
            self._metrics[task_id] = TaskMetrics(
                task_name=task_name, task_id=task_id, start_time=time.time()
            )
            logger.debug(f"Started tracking task: {task_name} (task_id: {task_id})")

    def record_skip(self, task_id: str, reasons: typing.List[str]) -> None:
        with self._lock:
            metric = self._metrics[task_id]
            metric.status = "skipped"
            metric.skip_reasons.extend(reasons)

    def end_task(self, task_id: str, error: typing.Optional[str] = None) -> None:
        with self._lock:
            metric = self._metrics[task_id]
            metric.end_time = time.time()
            if error:
                metric.status = "failed"
                metric.error = error
            elif metric.status != "skipped":
                metric.status = "completed"

            logger.debug(
                f"Task {metric.task_name} {metric.status} "
                f"in {metric.duration():.2f}s (task_id: {task_id})"
            )

    def get_metrics(self, task_id: str) -> typing.Optional[TaskMetrics]:
        with self._lock:
            return self._metrics.get(task_id)

    def get_all_metrics(self) -> typing.Dict[str, TaskMetrics]:
        with self._lock:
            return self._metrics.copy()

    def get_failed_tasks(self) -> typing.List[TaskMetrics]:
        with self._lock:
            return [m for m in self._metrics.values() if m.status == "failed"]

    def get_skipped_tasks(self) -> typing.List[TaskMetrics]:
        with self._lock:
            return [m for m in self._metrics.values() if m.status == "skipped"]
