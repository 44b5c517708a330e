import typing
from .strategies import ExecutionStrategy

if typing.TYPE_CHECKING:
    from .signals import SoftSignal
    from .task import SciTask


F = typing.TypeVar("F", bound=typing.Callable[..., typing.Any])


def task_strategy(
    name: typing.Optional[str] = None,
) -> typing.Callable[[F], typing.Type[ExecutionStrategy]]:
    """
    Decorator to create an ExecutionStrategy class from a function.

    Args:
        name: Custom name for the strategy class (defaults to function name)

    Returns:
        Strategy class; instances can be passed as a task's custom_execute.

    Example:
        @task_strategy()
        def count_lines(task):
            text = task.in_targets["in"].read()
            task.out_targets["out"].write(str(len(text.splitlines())))

        SciTask("count", "", {"in": infile}, {"out": out_path},
                custom_execute=count_lines())
    """

    def decorator(func: F) -> typing.Type[ExecutionStrategy]:
        strategy_name = name or func.__name__

        class GeneratedStrategy(ExecutionStrategy):
            """Dynamically generated strategy class."""

            def execute(self, task: "SciTask") -> None:
                func(task)

        GeneratedStrategy.__name__ = f"{strategy_name}"
        GeneratedStrategy.__qualname__ = f"{strategy_name}"
        GeneratedStrategy.__module__ = func.__module__
        GeneratedStrategy.__doc__ = func.__doc__

        GeneratedStrategy._original_func = func

        return GeneratedStrategy

    return decorator


def listener(
    signal: typing.Union["SoftSignal", typing.Iterable["SoftSignal"]],
    sender: typing.Type = None,
):
    """
    A decorator to connect a callback function to a specified signal or signals.

    Usage:

        @listener(task_execution_skipped, sender=SciTask)
        def on_skip(sender, signal, task, reasons, **kwargs):
            ...

        @listener([task_execution_end, task_execution_failed], sender=SciTask)
        def on_finish(sender, signal, task, **kwargs):
            ...

    Args:
        signal: A single signal or a list of signals to which the callback
                function will be connected.
        sender: The sender of this event. ``None`` listens to every sender.

    Returns:
        function: The original callback function.
    """

    def wrapper(func):
        if isinstance(signal, (list, tuple)):
            for s in signal:
                s.connect(listener=func, sender=sender)
        else:
            signal.connect(listener=func, sender=sender)
        return func

    return wrapper
