import logging
import queue
import sys
import threading

from . import config

logger = logging.getLogger(__name__)

# Marks the end of the outtake queue
CLOSE = object()


class LineSink:
    """
    Single consumer that writes output lines to stdout or a file.

    The destination is opened in the constructor so that a bad output path
    fails before any page is read. Lines are written in the order they
    arrive on the outtake queue.
    """

    def __init__(self, path=None, stream=None, maxsize=config.OUTTAKE_QUEUE_SIZE):
        self.path = path
        self.outtake = queue.Queue(maxsize=maxsize)
        self.lines_written = 0
        self.lines_dropped = 0
        self.error = None
        self._thread = None
        self._closed = False
        if path:
            self._fh = open(path, "w", encoding="utf-8", newline="\n")
            self._owns_fh = True
        else:
            self._fh = stream if stream is not None else sys.stdout
            self._owns_fh = False

    def start(self):
        """Launch the collector thread."""
        if self._thread is not None:
            raise RuntimeError("Collector already started.")
        self._thread = threading.Thread(target=self._collect, name="wpdump-collector")
        self._thread.start()

    def put(self, line):
        self.outtake.put(line)

    def _collect(self):
        while True:
            line = self.outtake.get()
            if line is CLOSE:
                break
            if self.error is not None:
                # Keep draining so workers never block on a dead collector
                continue
            try:
                self._fh.write(line + "\n")
            except UnicodeEncodeError as exc:
                # Destination encoding cannot hold this line; the rest still can
                logger.warning("[!] Dropping line the output encoding cannot represent: %s", exc)
                self.lines_dropped += 1
                continue
            except Exception as exc:
                logger.error("[!] Writing output failed, discarding further lines: %s", exc)
                self.error = exc
                continue
            self.lines_written += 1

    def close(self):
        """Drain the outtake, flush and release the destination."""
        if self._closed:
            return self.lines_written
        self._closed = True
        if self._thread is not None:
            self.outtake.put(CLOSE)
            self._thread.join()
        try:
            self._fh.flush()
        finally:
            if self._owns_fh:
                self._fh.close()
        if self.error is not None:
            raise self.error
        target = self.path or "stdout"
        logger.debug("[*] Collector wrote %s lines to %s.", self.lines_written, target)
        return self.lines_written
