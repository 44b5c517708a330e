from sci_pipeline import SciTask, FileTarget, TaskState
from sci_pipeline.decorators import task_strategy, listener
from sci_pipeline.signals import SoftSignal, task_execution_end
from sci_pipeline.strategies import ExecutionStrategy


@task_strategy()
def upper_case(task):
    """Upper-case the input."""
    text = task.in_targets["in"].read()
    task.out_targets["out"].write(text.upper())


@task_strategy(name="CustomNamed")
def named(task):
    pass


def test_task_strategy_generates_strategy_class():
    assert issubclass(upper_case, ExecutionStrategy)
    assert upper_case.__name__ == "upper_case"
    assert upper_case.__doc__ == "Upper-case the input."
    assert named.__name__ == "CustomNamed"
    assert named._original_func.__name__ == "named"


def test_task_strategy_runs_as_custom_execute(tmp_path):
    source = tmp_path / "in.txt"
    source.write_text("hello")
    out = str(tmp_path / "out.txt")

    task = SciTask(
        "upper",
        "",
        in_targets={"in": FileTarget(str(source))},
        out_path_funcs={"out": lambda t: out},
        custom_execute=upper_case(),
    )
    task.execute()

    assert task.state is TaskState.COMPLETED
    with open(out) as f:
        assert f.read() == "HELLO"


def test_listener_connects_to_every_signal():
    first = SoftSignal(provide_args=["value"])
    second = SoftSignal(provide_args=["value"])

    @listener([first, second], sender=SciTask)
    def handler(sender, signal, value):
        return value

    assert first.emit(sender=SciTask, value=1) == [(handler, 1)]
    assert second.emit(sender=SciTask, value=2) == [(handler, 2)]
    assert first.emit(sender=FileTarget, value=3) == []


def test_listener_receives_task_results():
    finished = []

    @listener(task_execution_end, sender=SciTask)
    def on_end(sender, signal, task, result, **kwargs):
        finished.append((task.name, result.status))

    try:
        SciTask("listened", "true").execute()
    finally:
        task_execution_end.disconnect(sender=SciTask, listener=on_end)

    assert ("listened", "completed") in finished


def test_listener_returns_function():
    signal = SoftSignal()

    def handler(sender, signal):
        return "ok"

    assert listener(signal)(handler) is handler
    assert signal.emit(sender=object()) == [(handler, "ok")]

