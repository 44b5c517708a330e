__version__ = "0.1.dev1"

from .target import FileTarget, TargetProtocol
from .formatter import format_command, find_placeholders
from .strategies import ExecutionStrategy, ShellCommandStrategy, FunctionStrategy
from .task import SciTask, TaskState
from .result import TaskResult
from .runners import ConcurrentTaskRunner
from .decorators import task_strategy, listener
from .exceptions import (
    PipelineError,
    ConfigurationError,
    ExecutionError,
    TargetError,
    StateError,
    ResourceStateWarning,
)
