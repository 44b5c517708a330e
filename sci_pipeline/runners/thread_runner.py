import typing
import logging
from concurrent.futures import ThreadPoolExecutor, Future, wait

from sci_pipeline.conf import ConfigLoader
from sci_pipeline.constants import MAX_TASK_WORKERS
from sci_pipeline.exceptions import PipelineError, ImproperlyConfigured
from sci_pipeline.result import TaskResult

if typing.TYPE_CHECKING:
    from sci_pipeline.task import SciTask

__all__ = ["ConcurrentTaskRunner", "topo_sort"]

logger = logging.getLogger(__name__)

conf = ConfigLoader.get_lazily_loaded_config()

Dependencies = typing.Mapping["SciTask", typing.Iterable["SciTask"]]


def topo_sort(
    tasks: typing.Sequence["SciTask"], depends_on: Dependencies
) -> typing.List["SciTask"]:
    """
    Order tasks so that every task comes after the tasks it depends on.
    Tasks without dependencies between them keep their given order.
    Dependencies on tasks outside ``tasks`` are ignored for ordering.
    """
    nodes = list(tasks)
    members = set(nodes)
    incoming = {n: set() for n in nodes}
    outgoing = {n: [] for n in nodes}
    for task, upstreams in depends_on.items():
        if task not in members:
            raise ImproperlyConfigured(f"Dependencies given for unknown task: {task!r}")
        for upstream in upstreams:
            if upstream in members and upstream not in incoming[task]:
                incoming[task].add(upstream)
                outgoing[upstream].append(task)

    ordered = []
    roots = [n for n in nodes if not incoming[n]]
    while roots:
        n = roots.pop(0)
        ordered.append(n)
        for m in outgoing[n]:
            incoming[m].discard(n)
            if not incoming[m]:
                roots.append(m)
    if any(incoming[n] for n in nodes):
        raise ImproperlyConfigured("Cycle detected in task dependencies")
    return ordered


class ConcurrentTaskRunner:
    """
    Runs tasks on a thread pool, one worker per task.

    All FIFOs are created before any task starts and removed once every task is
    done. A task listed in ``depends_on`` waits for the completion signal of its
    upstream tasks before it executes; tasks joined by a FIFO must not depend on
    each other since both ends of a pipe have to run at the same time.

    The runner does not cancel anything: if a task fails, tasks independent of
    it still run to completion. Tasks depending on it, directly or through
    another task, are never executed and stay CREATED. Once every task is
    done the first error is raised.

    Args:
        max_workers: Size of the thread pool. Defaults to one worker per task,
            capped by the MAX_TASK_WORKERS setting.
    """

    def __init__(self, max_workers: typing.Optional[int] = None):
        self.max_workers = max_workers

    def _get_max_workers(self, tasks: typing.Sequence["SciTask"]) -> int:
        if self.max_workers:
            workers = self.max_workers
        else:
            workers = min(
                len(tasks), conf.get_int("MAX_TASK_WORKERS", default=MAX_TASK_WORKERS)
            )
        streaming = any(
            target.is_streaming
            for task in tasks
            for target in list(task.out_targets.values()) + list(task.in_targets.values())
        )
        if streaming and workers < len(tasks):
            logger.warning(
                f"Running {len(tasks)} tasks with streaming ports on {workers} workers. "
                "Tasks sharing a FIFO may block each other forever."
            )
        return max(workers, 1)

    @staticmethod
    def _execute(
        task: "SciTask", upstreams: typing.Sequence[typing.Tuple["SciTask", Future]]
    ) -> TaskResult:
        # tasks blocked by a failed upstream never resolve their own done
        for upstream, future in upstreams:
            try:
                future.result()
            except Exception as e:
                raise PipelineError(
                    f"[SciTask: {task.name}] Not executed, upstream task "
                    f"'{upstream.name}' failed: {e}",
                    code="upstream_failed",
                    params={"task_name": task.name, "upstream": upstream.name},
                ) from e
        return task.execute()

    def run(
        self,
        tasks: typing.Iterable["SciTask"],
        depends_on: typing.Optional[Dependencies] = None,
    ) -> typing.List[TaskResult]:
        """
        Execute the tasks and wait for all of them.

        Args:
            tasks: Tasks to execute, each at most once.
            depends_on: Upstream tasks each task waits for before executing.
        Returns:
            The task results, in the order the tasks were given.
        Raises:
            PipelineError: The first error raised by a task.
        """
        tasks = list(tasks)
        if not tasks:
            return []
        depends_on = depends_on or {}
        ordered = topo_sort(tasks, depends_on)

        futures: typing.Dict["SciTask", Future] = {}
        try:
            for task in ordered:
                task.create_fifos()

            with ThreadPoolExecutor(
                max_workers=self._get_max_workers(ordered),
                thread_name_prefix="sci_pipeline",
            ) as executor:
                for task in ordered:
                    upstreams = [
                        (upstream, futures.get(upstream, upstream.done))
                        for upstream in depends_on.get(task, ())
                    ]
                    futures[task] = executor.submit(self._execute, task, upstreams)
                wait(futures.values())
        finally:
            for task in ordered:
                task.clean_up_fifos()

        errors = [
            futures[task].exception()
            for task in ordered
            if futures[task].exception() is not None
        ]
        if errors:
            for error in errors[1:]:
                logger.error(f"Additional task failure: {error}")
            raise errors[0]
        return [futures[task].result() for task in tasks]
