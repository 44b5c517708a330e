import abc
import typing
import logging
import subprocess

from .conf import ConfigLoader
from .constants import DEFAULT_SHELL
from .exceptions import ExecutionError, ImproperlyConfigured

if typing.TYPE_CHECKING:
    from .task import SciTask

__all__ = ["ExecutionStrategy", "ShellCommandStrategy", "FunctionStrategy"]

logger = logging.getLogger(__name__)

conf = ConfigLoader.get_lazily_loaded_config()


class ExecutionStrategy(abc.ABC):
    """
    Produces a task's declared outputs.

    Strategies write non-streaming outputs to their temporary paths (or to the
    FIFO path for streaming outputs); the task atomizes the results once the
    strategy returns. Any exception raised aborts the task.
    """

    @abc.abstractmethod
    def execute(self, task: "SciTask") -> None:
        raise NotImplementedError

    def __call__(self, task: "SciTask") -> None:
        return self.execute(task)


class ShellCommandStrategy(ExecutionStrategy):
    """
    Runs the task's formatted command through a shell, synchronously.

    Args:
        shell: Shell executable, defaults to the TASK_SHELL setting ("bash").
        env: Environment for the command. Inherits the current one when None.
        cwd: Working directory for the command.
    """

    def __init__(
        self,
        shell: typing.Optional[str] = None,
        env: typing.Optional[typing.Dict[str, str]] = None,
        cwd: typing.Optional[str] = None,
    ):
        self.shell = shell or conf.get("TASK_SHELL", default=DEFAULT_SHELL)
        self.env = env
        self.cwd = cwd

    def execute(self, task: "SciTask") -> None:
        params = {"task_name": task.name, "command": task.command, "shell": self.shell}
        logger.info(f"[SciTask: {task.name}] Executing command: {task.command}")
        try:
            process = subprocess.run(
                [self.shell, "-c", task.command],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.env,
                cwd=self.cwd,
            )
        except OSError as e:
            raise ExecutionError(
                f"[SciTask: {task.name}] Could not start command '{task.command}': {e}",
                code="start_failed",
                params=params,
                exception=e,
            ) from e

        stderr = process.stderr.decode(errors="replace")
        if process.stdout:
            logger.debug(
                f"[SciTask: {task.name}] stdout: {process.stdout.decode(errors='replace')}"
            )
        if process.returncode != 0:
            params.update({"returncode": process.returncode, "stderr": stderr})
            raise ExecutionError(
                f"[SciTask: {task.name}] Command '{task.command}' failed "
                f"with exit code {process.returncode}: {stderr.strip()}",
                code="non_zero_exit",
                params=params,
            )

    def __repr__(self):
        return f"{self.__class__.__name__}(shell={self.shell!r})"


class FunctionStrategy(ExecutionStrategy):
    """
    Wraps a plain callable taking the task as its only argument.

    Example:
        def count_lines(task):
            text = task.in_targets["in"].read()
            task.out_targets["out"].write(str(len(text.splitlines())))

        SciTask("count", "", ..., custom_execute=FunctionStrategy(count_lines))
    """

    def __init__(self, func: typing.Callable[["SciTask"], typing.Any]):
        if not callable(func):
            raise ImproperlyConfigured(f"Custom execute '{func}' must be callable")
        self.func = func

    def execute(self, task: "SciTask") -> None:
        logger.info(
            f"[SciTask: {task.name}] Executing task with custom execute "
            f"{getattr(self.func, '__name__', self.func)!r}"
        )
        self.func(task)

    def __repr__(self):
        return f"{self.__class__.__name__}({getattr(self.func, '__name__', self.func)})"


def get_strategy(
    custom_execute: typing.Union[
        ExecutionStrategy, typing.Callable[["SciTask"], typing.Any], None
    ],
) -> ExecutionStrategy:
    """Resolve the strategy a task runs with: custom when given, shell otherwise."""
    if custom_execute is None:
        return ShellCommandStrategy()
    if isinstance(custom_execute, ExecutionStrategy):
        return custom_execute
    return FunctionStrategy(custom_execute)
