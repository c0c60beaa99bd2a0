import io
import threading
import unittest
from collections import Counter

from wpdump.decoder import Page
from wpdump.errors import RecordError
from wpdump.pool import STOP, PoolState, WorkerPool, run_pipeline
from wpdump.sink import LineSink
from wpdump.strategies import CategoryStrategy, Strategy, WikidataStrategy


def _pages(n=200):
    pages = []
    for i in range(n):
        if i % 7 == 0:
            pages.append(Page(title=f"Talk:Page {i}", text="[[Category:Hidden]]"))
        elif i % 11 == 0:
            pages.append(Page(title=f"Page {i}", redirect_title="Elsewhere", text="[[Category:Hidden]]"))
        else:
            pages.append(Page(title=f"Page {i}", text=f"[[Category:C{i % 5}|sort]] [[Category:All]]"))
    return pages


def _run(pages, strategy, workers):
    out = io.StringIO()
    sink = LineSink(stream=out)
    summary = run_pipeline(iter(pages), strategy, workers, sink)
    return out.getvalue().splitlines(), summary


class RecordingSink:
    """Sink stand-in remembering what happened and in which order."""

    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def put(self, line):
        with self._lock:
            self.events.append(("line", line))

    def close(self):
        with self._lock:
            self.events.append(("close", None))
        return sum(1 for kind, _ in self.events if kind == "line")


class AckCountingQueue:
    def __init__(self, inner):
        self.inner = inner
        self.gets = 0

    def put(self, item):
        self.inner.put(item)

    def get(self):
        item = self.inner.get()
        self.gets += 1
        return item


class FailingStrategy(Strategy):
    def extract(self, page):
        if page.title.endswith("3"):
            raise RecordError("INVALID_JSON", "boom")
        if page.title.endswith("5"):
            raise KeyError("unexpected")
        return [page.title]


class RunPipelineTests(unittest.TestCase):
    def test_output_multiset_independent_of_workers(self) -> None:
        pages = _pages()
        single, _ = _run(pages, CategoryStrategy("Category"), 1)
        many, _ = _run(_pages(), CategoryStrategy("Category"), 8)
        self.assertEqual(Counter(single), Counter(many))
        self.assertTrue(single)

    def test_single_worker_keeps_input_order(self) -> None:
        pages = [Page(title=f"P{i}", text=f"[[Category:C{i}]]") for i in range(50)]
        lines, _ = _run(pages, CategoryStrategy("Category"), 1)
        self.assertEqual(lines, [f"P{i}\tC{i}" for i in range(50)])

    def test_filtered_pages_never_reach_output(self) -> None:
        lines, summary = _run(_pages(), CategoryStrategy("Category"), 4)
        self.assertFalse(any("Talk:" in line or "Hidden" in line for line in lines))
        self.assertEqual(summary.pages_read, 200)
        self.assertEqual(summary.pages_processed, 200)
        self.assertEqual(summary.lines, len(lines))
        self.assertEqual(summary.lines_written, len(lines))

    def test_record_failures_do_not_stop_pipeline(self) -> None:
        pages = [Page(title=f"P{i}") for i in range(20)]
        with self.assertLogs("wpdump.pool", level="WARNING"):
            lines, summary = _run(pages, FailingStrategy(), 3)
        expected = [f"P{i}" for i in range(20) if not str(i).endswith(("3", "5"))]
        self.assertEqual(sorted(lines), sorted(expected))
        self.assertEqual(summary.failures, 4)

    def test_wikidata_parse_failure_is_skipped(self) -> None:
        pages = [
            Page(title="Q1", text='{"id":"Q1"}'),
            Page(title="Q2", text="{broken"),
            Page(title="Q3", text='{"id":"Q3"}'),
        ]
        with self.assertLogs("wpdump.pool", level="WARNING"):
            lines, summary = _run(pages, WikidataStrategy(), 2)
        self.assertEqual(len(lines), 2)
        self.assertEqual(summary.failures, 1)

    def test_ascii_destination_does_not_hang(self) -> None:
        pages = [Page(title="Über", text="[[Category:Umlaut]]")]
        pages += [Page(title=f"P{i}", text="[[Category:Plain]]") for i in range(50)]
        raw = io.BytesIO()
        sink = LineSink(stream=io.TextIOWrapper(raw, encoding="ascii"), maxsize=4)
        result = {}

        def target():
            result["summary"] = run_pipeline(iter(pages), CategoryStrategy("Category"), 2, sink)

        with self.assertLogs("wpdump.sink", level="WARNING"):
            thread = threading.Thread(target=target)
            thread.start()
            thread.join(timeout=30)
        self.assertFalse(thread.is_alive())
        self.assertEqual(result["summary"].acknowledgments, 2)
        self.assertEqual(result["summary"].lines_written, 50)
        self.assertEqual(sink.lines_dropped, 1)

    def test_empty_input(self) -> None:
        lines, summary = _run([], CategoryStrategy("Category"), 4)
        self.assertEqual(lines, [])
        self.assertEqual(summary.acknowledgments, 4)

    def test_source_error_still_drains(self) -> None:
        def broken():
            yield Page(title="A", text="[[Category:X]]")
            raise RuntimeError("source failed")

        out = io.StringIO()
        sink = LineSink(stream=out)
        with self.assertRaises(RuntimeError):
            run_pipeline(broken(), CategoryStrategy("Category"), 2, sink)
        self.assertEqual(out.getvalue(), "A\tX\n")


class ShutdownTests(unittest.TestCase):
    def test_exactly_n_acknowledgments(self) -> None:
        for workers in (1, 3, 8):
            sink = RecordingSink()
            pool = WorkerPool(CategoryStrategy("Category"), workers, sink)
            pool.acks = AckCountingQueue(pool.acks)
            pool.start()
            for page in _pages(50):
                pool.submit(page)
            summary = pool.drain()
            self.assertEqual(pool.acks.gets, workers)
            self.assertEqual(summary.acknowledgments, workers)
            self.assertEqual(sorted(r.worker for r in summary.reports), list(range(workers)))
            self.assertEqual(pool.acks.inner.qsize(), 0)

    def test_no_writes_after_close(self) -> None:
        sink = RecordingSink()
        pool = WorkerPool(CategoryStrategy("Category"), 4, sink)
        pool.start()
        for page in _pages(100):
            pool.submit(page)
        summary = pool.drain()
        self.assertEqual(sink.events[-1], ("close", None))
        self.assertEqual([kind for kind, _ in sink.events].count("close"), 1)
        self.assertEqual(summary.lines_written, summary.lines)

    def test_state_machine(self) -> None:
        pool = WorkerPool(CategoryStrategy("Category"), 2, RecordingSink())
        self.assertIs(pool.state, PoolState.RUNNING)
        pool.start()
        pool.drain()
        self.assertIs(pool.state, PoolState.STOPPED)
        with self.assertRaises(RuntimeError):
            pool.submit(Page(title="late"))
        with self.assertRaises(RuntimeError):
            pool.drain()

    def test_workers_exit(self) -> None:
        pool = WorkerPool(CategoryStrategy("Category"), 4, RecordingSink())
        pool.start()
        pool.drain()
        self.assertFalse(any(t.is_alive() for t in pool._threads))

    def test_invalid_worker_count(self) -> None:
        with self.assertRaises(ValueError):
            WorkerPool(CategoryStrategy("Category"), 0, RecordingSink())

    def test_stop_pill_repr(self) -> None:
        self.assertEqual(repr(STOP), "STOP")


if __name__ == "__main__":
    unittest.main()
