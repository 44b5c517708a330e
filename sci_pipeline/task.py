import os
import typing
import logging
from enum import Enum
from concurrent.futures import Future
from datetime import datetime

from .exceptions import StateError, ResourceStateWarning
from .formatter import format_command
from .mixins import ObjectIdentityMixin
from .result import TaskResult, STATUS_COMPLETED, STATUS_SKIPPED
from .strategies import ExecutionStrategy, get_strategy
from .target import FileTarget, TargetProtocol
from .telemetry import AbstractTelemetryLogger, StandardTelemetryLogger
from .signals import (
    task_init,
    task_execution_start,
    task_execution_skipped,
    task_execution_end,
    task_execution_failed,
)

__all__ = ["SciTask", "TaskState"]

OutPathFunc = typing.Callable[["SciTask"], typing.Union[str, os.PathLike]]
CustomExecute = typing.Union[ExecutionStrategy, typing.Callable[["SciTask"], typing.Any]]


class TaskState(Enum):
    CREATED = "created"
    SKIPPED = "skipped"
    RUNNING = "running"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


class SciTask(ObjectIdentityMixin):
    """
    A single execution of a shell command (or custom strategy) over a set of
    input files, producing a set of output files.

    The command is formatted once, at construction, from ``command_pattern``:
    ``{i:name}`` input paths, ``{o:name}`` temporary output paths,
    ``{os:name}`` output FIFO paths and ``{p:name}`` parameter values.

    ``execute`` skips the work when an output (or its temporary file) already
    exists, or when a streaming output's FIFO is missing. Otherwise it runs the
    strategy and renames every non-streaming output into place. Either way the
    ``done`` future is resolved exactly once.

    Args:
        name: Name of the task, used in diagnostics.
        command_pattern: The command with placeholders.
        in_targets: Input targets keyed by port name.
        out_path_funcs: Functions building each output's final path from the task.
            Each is called once, during construction.
        out_ports_do_stream: Output ports backed by a named pipe.
        params: Parameter values keyed by name.
        prepend: Prefix put in front of the formatted command e.g. "srun".
        custom_execute: Strategy (or callable taking the task) replacing the shell command.
        logger: Logger for diagnostics. Defaults to this module's logger.
        telemetry: Telemetry logger recording the task's metrics.
    Raises:
        ConfigurationError: If the command pattern cannot be fully resolved.
    """

    def __init__(
        self,
        name: str,
        command_pattern: str,
        in_targets: typing.Optional[typing.Dict[str, TargetProtocol]] = None,
        out_path_funcs: typing.Optional[typing.Dict[str, OutPathFunc]] = None,
        out_ports_do_stream: typing.Optional[typing.Dict[str, bool]] = None,
        params: typing.Optional[typing.Dict[str, str]] = None,
        prepend: str = "",
        custom_execute: typing.Optional[CustomExecute] = None,
        logger: typing.Optional[logging.Logger] = None,
        telemetry: typing.Optional[AbstractTelemetryLogger] = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.command_pattern = command_pattern
        self.prepend = prepend
        self.in_targets: typing.Dict[str, TargetProtocol] = dict(in_targets or {})
        self.out_targets: typing.Dict[str, TargetProtocol] = {}
        self.params: typing.Dict[str, str] = dict(params or {})
        self.custom_execute = custom_execute
        self.strategy: ExecutionStrategy = get_strategy(custom_execute)
        self.logger = logger or logging.getLogger(__name__)
        self.telemetry = telemetry or StandardTelemetryLogger()
        self.done: "Future[TaskResult]" = Future()
        self._state = TaskState.CREATED
        self._command = ""

        out_ports_do_stream = out_ports_do_stream or {}
        self.logger.debug(f"[SciTask: {self.name}] Creating out targets now ...")
        for port, out_path_func in (out_path_funcs or {}).items():
            out_path = out_path_func(self)
            self.logger.debug(
                f"[SciTask: {self.name}] Creating out target '{port}' with path {out_path} ..."
            )
            self.out_targets[port] = FileTarget(
                out_path, do_stream=bool(out_ports_do_stream.get(port))
            )

        self._command = format_command(
            command_pattern, self.in_targets, self.out_targets, self.params, prepend
        )
        self.logger.debug(
            f"[SciTask: {self.name}] Created formatted command: {self._command}"
        )

        task_init.emit(
            sender=self.__class__,
            task=self,
            command=self._command,
            in_targets=self.in_targets,
            out_targets=self.out_targets,
        )

    @property
    def command(self) -> str:
        return self._command

    @property
    def state(self) -> TaskState:
        return self._state

    def get_in_path(self, port: str) -> str:
        return self.in_targets[port].path

    def get_out_path(self, port: str) -> str:
        return self.out_targets[port].path

    def wait(self, timeout: typing.Optional[float] = None) -> TaskResult:
        """Block until the task reaches a terminal state. Re-raises its error, if any."""
        return self.done.result(timeout=timeout)

    def execute(self) -> TaskResult:
        """
        Run the task, unless its outputs already exist or its FIFOs are missing.

        Returns:
            The result, also delivered through ``done``.
        Raises:
            StateError: If the task was already executed.
            ExecutionError: If the command fails. ``done`` carries the same error.
            TargetError: If an output cannot be atomized.
        """
        if self._state is not TaskState.CREATED:
            raise StateError(
                f"[SciTask: {self.name}] Task already executed (state: {self._state.value})",
                params={"task_name": self.name, "state": self._state.value},
            )

        start_time = datetime.now().timestamp()
        try:
            self.telemetry.start_task(self.name, self.id)
            skip_reasons = [
                str(warning)
                for warning in self._existing_outputs() + self._missing_fifos()
            ]
            if skip_reasons:
                self._state = TaskState.SKIPPED
                self.telemetry.record_skip(self.id, skip_reasons)
                task_execution_skipped.emit(
                    sender=self.__class__, task=self, reasons=skip_reasons
                )
            else:
                self._state = TaskState.RUNNING
                task_execution_start.emit(
                    sender=self.__class__, task=self, command=self._command
                )
                self.strategy.execute(self)
                self._state = TaskState.FINALIZING
                self.atomize_targets()

            result = TaskResult(
                task_name=self.name,
                task_id=self.id,
                command=self._command,
                status=STATUS_SKIPPED if skip_reasons else STATUS_COMPLETED,
                skip_reasons=skip_reasons,
                start_time=start_time,
                end_time=datetime.now().timestamp(),
            )
            self.telemetry.end_task(self.id)
        except Exception as e:
            self._state = TaskState.FAILED
            # before telemetry, which may raise
            self.done.set_exception(e)
            self.logger.error(f"[SciTask: {self.name}] Failed: {e}")
            task_execution_failed.emit(sender=self.__class__, task=self, exception=e)
            self.telemetry.end_task(self.id, error=str(e))
            raise

        self._state = TaskState.COMPLETED
        self.logger.debug(f"[SciTask: {self.name}] Signalling done ...")
        self.done.set_result(result)
        task_execution_end.emit(sender=self.__class__, task=self, result=result)
        return result

    def _existing_outputs(self) -> typing.List[ResourceStateWarning]:
        warnings = []
        for target in self.out_targets.values():
            if target.is_streaming:
                continue
            if os.path.exists(target.path):
                warnings.append(
                    ResourceStateWarning(
                        f"Output file already exists: {target.path}", path=target.path
                    )
                )
            if os.path.exists(target.temp_path):
                warnings.append(
                    ResourceStateWarning(
                        f"Temporary output file already exists: {target.temp_path}",
                        path=target.temp_path,
                    )
                )
        for warning in warnings:
            self.logger.warning(f"[SciTask: {self.name}] {warning}, so skipping...")
        return warnings

    def _missing_fifos(self) -> typing.List[ResourceStateWarning]:
        warnings = []
        for target in self.out_targets.values():
            if target.is_streaming and not os.path.exists(target.fifo_path):
                warning = ResourceStateWarning(
                    f"FIFO output file missing, for streaming output: {target.fifo_path}",
                    path=target.fifo_path,
                )
                self.logger.warning(
                    f"[SciTask: {self.name}] {warning}. Check your workflow for correctness!"
                )
                warnings.append(warning)
        return warnings

    def any_output_exists(self) -> bool:
        """Check if any output file target, or temporary file target, exists."""
        return bool(self._existing_outputs())

    def fifos_in_out_targets_missing(self) -> bool:
        """Make sure that FIFOs that are supposed to exist, really exist."""
        return bool(self._missing_fifos())

    def any_fifos_exist(self) -> bool:
        """Check if any FIFO of a streaming out-port already exists."""
        exists = False
        for target in self.out_targets.values():
            if target.is_streaming and os.path.exists(target.fifo_path):
                self.logger.warning(
                    f"[SciTask: {self.name}] Output FIFO already exists: {target.fifo_path}. "
                    "Check your workflow for correctness!"
                )
                exists = True
        return exists

    def create_fifos(self) -> None:
        """
        Create the named pipe of every streaming out-port. Must be called before
        this task, or any task reading from it, executes. A FIFO left over from an
        earlier run is reported and reused.
        """
        self.logger.debug(f"[SciTask: {self.name}] Now creating fifos for task")
        for target in self.out_targets.values():
            if not target.is_streaming:
                continue
            if os.path.exists(target.fifo_path):
                self.logger.warning(
                    f"[SciTask: {self.name}] Output FIFO already exists: {target.fifo_path}. "
                    "Check your workflow for correctness!"
                )
                continue
            target.create_fifo()

    def clean_up_fifos(self) -> None:
        """Remove the named pipes of streaming out-ports, once producer and consumer are done."""
        for target in self.out_targets.values():
            if target.is_streaming:
                self.logger.debug(
                    f"[SciTask: {self.name}] Cleaning up FIFO for output target: {target.fifo_path}"
                )
                target.remove_fifo()
            else:
                self.logger.debug(
                    f"[SciTask: {self.name}] Output target is not FIFO, so not removing any FIFO: {target.path}"
                )

    def atomize_targets(self) -> None:
        """Rename temporary output files to their proper file names."""
        for target in self.out_targets.values():
            if target.is_streaming:
                self.logger.debug(
                    f"[SciTask: {self.name}] Target is streaming, so not atomizing: {target.path}"
                )
                continue
            target.atomize()

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.name} [{self._state.value}]>"
