import os
import tempfile

import pytest

from sci_pipeline import SciTask
from sci_pipeline.exceptions import ExecutionError, ImproperlyConfigured
from sci_pipeline.strategies import (
    ExecutionStrategy,
    FunctionStrategy,
    ShellCommandStrategy,
    get_strategy,
)


def test_get_strategy_defaults_to_shell():
    assert isinstance(get_strategy(None), ShellCommandStrategy)


def test_get_strategy_keeps_strategy_instances():
    strategy = ShellCommandStrategy(shell="sh")
    assert get_strategy(strategy) is strategy


def test_get_strategy_wraps_callables():
    def noop(task):
        pass

    strategy = get_strategy(noop)
    assert isinstance(strategy, FunctionStrategy)
    assert strategy.func is noop


def test_function_strategy_requires_callable():
    with pytest.raises(ImproperlyConfigured):
        FunctionStrategy("not callable")


def test_execution_strategy_is_abstract():
    with pytest.raises(TypeError):
        ExecutionStrategy()


def test_shell_strategy_runs_command():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "env.out")
        task = SciTask(
            "env",
            "echo $GREETING > {o:out}",
            out_path_funcs={"out": lambda t: path},
            custom_execute=ShellCommandStrategy(
                shell="sh", env={"GREETING": "hello", "PATH": os.environ["PATH"]}
            ),
        )
        task.execute()
        with open(path) as f:
            assert f.read() == "hello\n"


def test_shell_strategy_runs_in_cwd():
    with tempfile.TemporaryDirectory() as tmp:
        task = SciTask(
            "cwd",
            "pwd > {o:out}",
            out_path_funcs={"out": lambda t: "cwd.out"},
        )
        ShellCommandStrategy(cwd=tmp).execute(task)
        with open(os.path.join(tmp, "cwd.out.tmp")) as f:
            assert os.path.realpath(f.read().strip()) == os.path.realpath(tmp)


def test_shell_strategy_non_zero_exit():
    task = SciTask("fail", "echo oops >&2; exit 7")
    with pytest.raises(ExecutionError) as exc_info:
        ShellCommandStrategy().execute(task)
    error = exc_info.value
    assert error.code == "non_zero_exit"
    assert error.returncode == 7
    assert error.stderr.strip() == "oops"
    assert "fail" in str(error)


def test_shell_strategy_cannot_start():
    task = SciTask("noshell", "true")
    with pytest.raises(ExecutionError) as exc_info:
        ShellCommandStrategy(shell="/nonexistent/shell").execute(task)
    assert exc_info.value.code == "start_failed"
    assert isinstance(exc_info.value.exception, OSError)
