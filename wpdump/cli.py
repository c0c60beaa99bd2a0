"""
cli.py -- extract and convert things from Wikipedia/Wikidata XML dumps.

Reads:
  - a MediaWiki pages-articles dump (.xml, .xml.gz or .xml.bz2)
Writes:
  - one JSON document or TSV pair per line, to stdout or --output
"""

import argparse
import cProfile
import logging
import sys

from . import config
from .decoder import iter_pages, open_dump
from .errors import ConfigurationError
from .pool import run_pipeline
from .sink import LineSink
from .strategies import Mode, build_strategy, select_mode
from .titles import PageFilter

logger = logging.getLogger(__name__)


def _positive_int(raw):
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid worker count: {raw!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"worker count must be positive, got {value}")
    return value


def build_parser():
    parser = argparse.ArgumentParser(
        prog="wpdump",
        description="Extract and convert things from wikipedia/wikidata XML dumps.",
        epilog=f"Version: {config.APP_VERSION}",
    )
    parser.add_argument("dump", help="Path to the XML dump (plain, .gz or .bz2).")
    parser.add_argument(
        "-c",
        "--categories",
        metavar="MARKER",
        default=None,
        help="Only extract categories TSV(page, category); MARKER is the prefix, e.g. Kategorie or Category.",
    )
    parser.add_argument(
        "-a",
        "--authority",
        metavar="MARKER",
        default=None,
        help="Only extract authority data (Normdaten, Authority control, ...).",
    )
    parser.add_argument("-d", "--decode", action="store_true", help="Decode the page text as JSON (Wikidata dumps).")
    parser.add_argument(
        "-w",
        "--workers",
        type=_positive_int,
        default=config.DEFAULT_WORKERS,
        help="Number of workers (default: number of CPUs).",
    )
    parser.add_argument("-o", "--output", default=None, help="Write output to file (stdout if omitted).")
    parser.add_argument(
        "-f",
        "--title-filter",
        default="",
        help="Only keep pages whose title contains the given text (no regex).",
    )
    parser.add_argument("--progress", action="store_true", help="Show a progress bar on stderr.")
    parser.add_argument("--cpuprofile", default=None, help="Write a cProfile dump of the run to this file.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity on stderr.",
    )
    parser.add_argument("-v", "--version", action="version", version=config.APP_VERSION)
    return parser


def _configure_logging(level):
    logging.basicConfig(
        level=getattr(logging, level),
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATE_FORMAT,
        stream=sys.stderr,
    )


def run(args):
    """Run one extraction described by parsed arguments; returns an exit code."""
    try:
        mode = select_mode(args.categories, args.authority, args.decode)
        marker = {Mode.CATEGORY: args.categories, Mode.AUTHORITY: args.authority}.get(mode)
        strategy = build_strategy(mode, marker, PageFilter(args.title_filter))
    except ConfigurationError as exc:
        logger.error("[!] %s", exc)
        return 1

    try:
        dump = open_dump(args.dump)
    except OSError as exc:
        logger.error("[!] Error opening dump %s: %s", args.dump, exc)
        return 1

    with dump:
        try:
            sink = LineSink(args.output)
        except OSError as exc:
            logger.error("[!] Error opening output %s: %s", args.output, exc)
            return 1
        logger.info("[*] Converting %s with %s workers (%s).", args.dump, args.workers, mode.value)
        try:
            run_pipeline(iter_pages(dump), strategy, args.workers, sink, progress=args.progress)
        except OSError as exc:
            logger.error("[!] I/O error during extraction: %s", exc)
            return 1
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    profiler = None
    if args.cpuprofile:
        profiler = cProfile.Profile()
        profiler.enable()
    try:
        return run(args)
    except KeyboardInterrupt:
        logger.warning("[!] Interrupted.")
        return 130
    finally:
        if profiler is not None:
            profiler.disable()
            profiler.dump_stats(args.cpuprofile)


if __name__ == "__main__":
    raise SystemExit(main())
