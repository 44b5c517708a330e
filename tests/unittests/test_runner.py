import os
import stat
import tempfile
import unittest

from sci_pipeline import SciTask, FileTarget, TaskState
from sci_pipeline.exceptions import ExecutionError, ImproperlyConfigured, TargetError
from sci_pipeline.runners import ConcurrentTaskRunner, topo_sort


class TestTopoSort(unittest.TestCase):
    def setUp(self):
        self.a = SciTask("a", "true")
        self.b = SciTask("b", "true")
        self.c = SciTask("c", "true")

    def test_keeps_given_order_without_dependencies(self):
        self.assertEqual(
            topo_sort([self.a, self.b, self.c], {}), [self.a, self.b, self.c]
        )

    def test_upstreams_come_first(self):
        ordered = topo_sort(
            [self.c, self.b, self.a], {self.c: [self.b], self.b: [self.a]}
        )
        self.assertEqual(ordered, [self.a, self.b, self.c])

    def test_ignores_upstreams_outside_tasks(self):
        self.assertEqual(topo_sort([self.a, self.b], {self.b: [self.c]}), [self.a, self.b])

    def test_cycle(self):
        with self.assertRaises(ImproperlyConfigured):
            topo_sort([self.a, self.b], {self.a: [self.b], self.b: [self.a]})

    def test_unknown_task(self):
        with self.assertRaises(ImproperlyConfigured):
            topo_sort([self.a], {self.c: [self.a]})


class TestConcurrentTaskRunner(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def path(self, name):
        return os.path.join(self.dir, name)

    def test_empty_run(self):
        self.assertEqual(ConcurrentTaskRunner().run([]), [])

    def test_streaming_producer_and_consumer(self):
        producer = SciTask(
            "producer",
            "echo hello > {os:out}",
            out_path_funcs={"out": lambda t: self.path("hello.txt")},
            out_ports_do_stream={"out": True},
        )
        consumer = SciTask(
            "consumer",
            "cat {i:in} > {o:out}",
            in_targets={"in": producer.out_targets["out"]},
            out_path_funcs={"out": lambda t: self.path("copy.txt")},
        )
        self.assertEqual(
            consumer.command,
            f"cat {self.path('hello.txt.fifo')} > {self.path('copy.txt.tmp')}",
        )

        results = ConcurrentTaskRunner().run([consumer, producer])

        self.assertEqual([r.task_name for r in results], ["consumer", "producer"])
        self.assertTrue(all(r.status == "completed" for r in results))
        with open(self.path("copy.txt")) as f:
            self.assertEqual(f.read(), "hello\n")
        self.assertFalse(os.path.exists(self.path("hello.txt.fifo")))
        self.assertFalse(os.path.exists(self.path("hello.txt")))

    def test_fifos_exist_while_tasks_run(self):
        seen = {}

        def inspect_fifo(task):
            mode = os.stat(task.out_targets["out"].fifo_path).st_mode
            seen["is_fifo"] = stat.S_ISFIFO(mode)

        task = SciTask(
            "inspect",
            "",
            out_path_funcs={"out": lambda t: self.path("stream")},
            out_ports_do_stream={"out": True},
            custom_execute=inspect_fifo,
        )
        ConcurrentTaskRunner().run([task])

        self.assertTrue(seen["is_fifo"])
        self.assertFalse(os.path.exists(self.path("stream.fifo")))

    def test_dependent_tasks_run_in_order(self):
        first = SciTask(
            "first",
            "echo one > {o:out}",
            out_path_funcs={"out": lambda t: self.path("one.txt")},
        )
        second = SciTask(
            "second",
            "cat {i:in} {i:in} > {o:out}",
            in_targets={"in": first.out_targets["out"]},
            out_path_funcs={"out": lambda t: self.path("two.txt")},
        )

        results = ConcurrentTaskRunner(max_workers=1).run(
            [second, first], depends_on={second: [first]}
        )

        self.assertEqual([r.task_name for r in results], ["second", "first"])
        with open(self.path("two.txt")) as f:
            self.assertEqual(f.read(), "one\none\n")

    def test_upstream_failure(self):
        failing = SciTask(
            "failing",
            "exit 1",
            out_path_funcs={"out": lambda t: self.path("never.txt")},
        )
        downstream = SciTask(
            "downstream",
            "cat {i:in} > {o:out}",
            in_targets={"in": failing.out_targets["out"]},
            out_path_funcs={"out": lambda t: self.path("after.txt")},
        )

        with self.assertLogs("sci_pipeline.runners.thread_runner", level="ERROR"):
            with self.assertRaises(ExecutionError):
                ConcurrentTaskRunner().run(
                    [failing, downstream], depends_on={downstream: [failing]}
                )

        self.assertIs(failing.state, TaskState.FAILED)
        self.assertIs(downstream.state, TaskState.CREATED)
        self.assertFalse(os.path.exists(self.path("after.txt")))

    def test_failure_stops_transitive_downstream_tasks(self):
        failing = SciTask("failing", "exit 1")
        middle = SciTask("middle", "true")
        last = SciTask("last", "true")

        with self.assertLogs("sci_pipeline.runners.thread_runner", level="ERROR"):
            with self.assertRaises(ExecutionError):
                ConcurrentTaskRunner().run(
                    [failing, middle, last],
                    depends_on={middle: [failing], last: [middle]},
                )

        self.assertIs(middle.state, TaskState.CREATED)
        self.assertIs(last.state, TaskState.CREATED)

    def test_fifos_are_removed_when_fifo_creation_fails(self):
        first = SciTask(
            "first",
            "echo a > {os:out}",
            out_path_funcs={"out": lambda t: self.path("a")},
            out_ports_do_stream={"out": True},
        )
        second = SciTask(
            "second",
            "echo b > {os:out}",
            out_path_funcs={"out": lambda t: self.path(os.path.join("missing", "b"))},
            out_ports_do_stream={"out": True},
        )

        with self.assertRaises(TargetError):
            ConcurrentTaskRunner().run([first, second])

        self.assertFalse(os.path.exists(self.path("a.fifo")))
        self.assertIs(first.state, TaskState.CREATED)

    def test_independent_tasks_still_run_after_failure(self):
        failing = SciTask("failing", "exit 2")
        other = SciTask(
            "other",
            "echo ok > {o:out}",
            out_path_funcs={"out": lambda t: self.path("ok.txt")},
        )

        with self.assertRaises(ExecutionError):
            ConcurrentTaskRunner().run([failing, other])

        self.assertIs(other.state, TaskState.COMPLETED)
        self.assertTrue(os.path.exists(self.path("ok.txt")))

    def test_skipped_tasks_are_reported(self):
        existing = self.path("existing.txt")
        with open(existing, "w") as f:
            f.write("done")
        task = SciTask(
            "cached",
            "echo again > {o:out}",
            out_path_funcs={"out": lambda t: existing},
        )

        with self.assertLogs("sci_pipeline.task", level="WARNING"):
            (result,) = ConcurrentTaskRunner().run([task])

        self.assertTrue(result.is_skipped())
        with open(existing) as f:
            self.assertEqual(f.read(), "done")

    def test_reads_from_file_target(self):
        source = self.path("source.txt")
        with open(source, "w") as f:
            f.write("a\nb\n")
        task = SciTask(
            "count",
            "wc -l < {i:in} | tr -d ' ' > {o:out}",
            in_targets={"in": FileTarget(source)},
            out_path_funcs={"out": lambda t: self.path("count.txt")},
        )
        ConcurrentTaskRunner().run([task])
        with open(self.path("count.txt")) as f:
            self.assertEqual(f.read().strip(), "2")


if __name__ == "__main__":
    unittest.main()
