import os
import json
import typing
from datetime import datetime
from dataclasses import asdict
from pydantic_mini import BaseModel, MiniAnnotated, Attrib

__all__ = ["TaskResult"]

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


class TaskResult(BaseModel):
    """Outcome of a single task execution, delivered through the task's completion signal."""

    task_name: str
    task_id: str
    command: str
    status: str
    skip_reasons: MiniAnnotated[list, Attrib(default_factory=list)]
    error: MiniAnnotated[typing.Optional[str], Attrib(default=None)]
    start_time: MiniAnnotated[
        float, Attrib(default_factory=lambda: datetime.now().timestamp())
    ]
    end_time: MiniAnnotated[
        float, Attrib(default_factory=lambda: datetime.now().timestamp())
    ]
    process_id: MiniAnnotated[int, Attrib(default_factory=lambda: os.getpid())]

    class Config:
        unsafe_hash = False
        frozen = False
        eq = True

    def duration(self) -> float:
        return max(self.end_time - self.start_time, 0.0)

    def is_skipped(self) -> bool:
        return self.status == STATUS_SKIPPED

    def is_error(self) -> bool:
        return self.status == STATUS_FAILED

    def as_dict(self) -> typing.Dict[str, typing.Any]:
        return asdict(self)

    def as_json(self) -> str:
        return json.dumps(self.as_dict())
