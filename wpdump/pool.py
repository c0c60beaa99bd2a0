import enum
import logging
import queue
import threading
from dataclasses import dataclass, field

from tqdm import tqdm

from . import config
from .errors import RecordError

logger = logging.getLogger(__name__)


class _Stop:
    """Poison pill telling one worker that no more pages will come."""

    def __repr__(self):
        return "STOP"


STOP = _Stop()


class PoolState(enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass
class WorkerReport:
    """Tallies of a single worker, handed over with its acknowledgment."""

    worker: int
    pages: int = 0
    with_output: int = 0
    lines: int = 0
    failures: int = 0


@dataclass
class RunSummary:
    pages_read: int = 0
    pages_processed: int = 0
    pages_with_output: int = 0
    lines: int = 0
    failures: int = 0
    lines_written: int = 0
    acknowledgments: int = 0
    reports: list = field(default_factory=list)

    def add(self, report):
        self.pages_processed += report.pages
        self.pages_with_output += report.with_output
        self.lines += report.lines
        self.failures += report.failures
        self.acknowledgments += 1
        self.reports.append(report)


def _worker(index, strategy, intake, sink, acks):
    report = WorkerReport(worker=index)
    while True:
        page = intake.get()
        if page is STOP:
            break
        report.pages += 1
        try:
            lines = strategy.process(page)
        except RecordError as exc:
            report.failures += 1
            logger.warning("[!] Skipping page %r: %s", page.title, exc)
            continue
        except Exception as exc:
            report.failures += 1
            logger.exception("[!] Unexpected failure on page %r: %s", page.title, exc)
            continue
        if lines:
            report.with_output += 1
        for line in lines:
            sink.put(line)
            report.lines += 1
    acks.put(report)


class WorkerPool:
    """
    N identical workers bound to one strategy, plus the shutdown handshake.

    RUNNING:  submit() hands pages to the shared intake queue.
    DRAINING: drain() sends one STOP per worker and waits for exactly N
              acknowledgments.
    STOPPED:  every worker has exited and the sink has been closed.
    """

    def __init__(self, strategy, workers, sink, intake_size=None):
        if workers < 1:
            raise ValueError(f"Worker count must be positive, got {workers}.")
        self.strategy = strategy
        self.workers = workers
        self.sink = sink
        if intake_size is None:
            intake_size = workers * config.INTAKE_QUEUE_FACTOR
        self.intake = queue.Queue(maxsize=intake_size)
        self.acks = queue.Queue()
        self.state = PoolState.RUNNING
        self.submitted = 0
        self._threads = []

    def start(self):
        for idx in range(self.workers):
            thread = threading.Thread(
                target=_worker,
                args=(idx, self.strategy, self.intake, self.sink, self.acks),
                name=f"wpdump-worker-{idx}",
            )
            thread.start()
            self._threads.append(thread)
        logger.debug("[*] Started %s %s workers.", self.workers, type(self.strategy).__name__)

    def submit(self, page):
        if self.state is not PoolState.RUNNING:
            raise RuntimeError(f"Cannot submit pages while {self.state.value}.")
        self.intake.put(page)
        self.submitted += 1

    def drain(self):
        """Stop the workers, wait for all of them, then close the sink."""
        if self.state is not PoolState.RUNNING:
            raise RuntimeError(f"Pool already {self.state.value}.")
        self.state = PoolState.DRAINING
        for _ in range(self.workers):
            self.intake.put(STOP)

        summary = RunSummary(pages_read=self.submitted)
        for _ in range(len(self._threads)):
            summary.add(self.acks.get())
        for thread in self._threads:
            thread.join()

        summary.lines_written = self.sink.close()
        self.state = PoolState.STOPPED
        return summary


def run_pipeline(pages, strategy, workers, sink, progress=False):
    """Push every page through the pool and return the run summary."""
    pool = WorkerPool(strategy, workers, sink)
    sink.start()
    pool.start()
    stream = tqdm(
        pages,
        desc="Reading pages",
        unit=" page",
        miniters=config.PROGRESS_MINITERS,
        bar_format=config.PROGRESS_BAR_FORMAT,
        disable=not progress,
    )
    try:
        for page in stream:
            pool.submit(page)
    finally:
        stream.close()
        summary = pool.drain()

    logger.info(
        "[+] Extraction complete. %s pages read, %s with output, %s lines written, %s skipped.",
        summary.pages_read,
        summary.pages_with_output,
        summary.lines_written,
        summary.failures,
    )
    return summary
