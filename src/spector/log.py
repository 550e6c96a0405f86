"""Logging setup of the spector library and command line.

Modules get their logger with :func:`getLogger`; log calls accept an extra
``document`` keyword naming the document being processed, which ends up as
a field of JSON logs::

    logger = spector.log.getLogger("validate")
    logger.debug("schema mode", document="provenance.json")

Nothing is output until :func:`activate` (or :func:`activate_with_args`
for programs using :class:`spector.main.Main`) installs the handlers.
"""

from __future__ import annotations
from dataclasses import dataclass

import logging
import os
import re
import sys
import time
import json
from typing import TYPE_CHECKING, ClassVar

from colorama import Fore, Style
from tqdm import tqdm

from spector.config import ConfigSection

if TYPE_CHECKING:
    from typing import (
        Any,
        Optional,
        Iterator,
        Sequence,
        TypeVar,
        Tuple,
        Mapping,
        MutableMapping,
    )
    from argparse import ArgumentParser, _ArgumentGroup, Namespace

    T = TypeVar("T")


@dataclass
class LogConfig(ConfigSection):
    title: ClassVar[str] = "log"

    pretty: bool = True
    stream_fmt: str = "%(levelname)-8s %(message)s"
    file_fmt: str = "%(asctime)s: %(name)-24s: %(levelname)-8s %(message)s"


log_config = LogConfig.load()

# Colors and progress bars are only used on a terminal
if sys.stdout.isatty():  # all: no cover
    pretty_cli = log_config.pretty
else:
    pretty_cli = False

# Prefix of the console lines set by --console-logs
console_logs: Optional[str] = None


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line.

    Empty attributes are omitted.

    :param date_fmt: format of the ``asctime`` field
    :param context: fields added to every record
    """

    FIELDS = ("asctime", "levelname", "name", "message", "module", "exc_text")
    EXTRA_FIELDS = ("document",)

    def __init__(
        self,
        date_fmt: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        # asctime is only computed when the format references it
        super().__init__(fmt="%(asctime)s", datefmt=date_fmt)
        self.context = dict(context) if context else {}

    def format(self, record: logging.LogRecord) -> str:
        super().format(record)
        fields = {
            name: getattr(record, name, None)
            for name in self.FIELDS + self.EXTRA_FIELDS
        }
        fields.update(self.context)
        return json.dumps({name: value for name, value in fields.items() if value})


class SpectorLoggerAdapter(logging.LoggerAdapter):
    """Logger accepting a ``document`` keyword in its log methods."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        document = kwargs.pop("document", None)
        if document:
            kwargs.setdefault("extra", {})["document"] = document
        return msg, kwargs


def progress_bar(it: Iterator[T] | Sequence[T], **kwargs: Any) -> Iterator[T]:
    """Iterate over *it* with a tqdm progress bar on the standard error.

    The bar is disabled when the output is not a terminal, or with
    ``--nocolor``.

    :param kwargs: see tqdm documentation
    """
    return tqdm(it, disable=not pretty_cli, file=sys.stderr, **kwargs)


__null_handler_set = set()


class TqdmHandler(logging.StreamHandler):  # all: no cover
    """Colored console handler writing through tqdm.

    Log lines do not break the progress bars being displayed.
    """

    level_colors = (
        (re.compile(r"^(DEBUG)"), Fore.CYAN),
        (re.compile(r"^(INFO)"), Style.DIM),
        (re.compile(r"^(WARNING)"), Fore.YELLOW),
        (re.compile(r"^(ERROR)"), Fore.RED),
        (re.compile(r"^(CRITICAL)"), Fore.RED + Style.BRIGHT),
    )

    def emit(self, record: logging.LogRecord) -> None:
        msg = self.format(record)

        # Align continuation lines on the message of the first one
        header = len(msg.split("\n")[0]) - len(record.message)
        msg = msg.replace("\n", "\n_" + " " * (header - 1))

        for regexp, color in self.level_colors:
            msg = regexp.sub(color + r"\1" + Fore.RESET + Style.RESET_ALL, msg)
        tqdm.write(msg, file=sys.stderr)


def getLogger(
    name: Optional[str] = None, prefix: str = "spector"
) -> SpectorLoggerAdapter:
    """Return the logger *prefix*.*name*.

    A handler doing nothing is attached to the *prefix* logger so that
    logging before :func:`activate` does not emit warnings.

    :param name: logger name, if not specified return the *prefix* logger
    :param prefix: application prefix, will be prepended to the name
    """
    logger = logging.getLogger(f"{prefix}.{name}" if name else prefix)

    if prefix not in __null_handler_set:
        logging.getLogger(prefix).addHandler(logging.NullHandler())
        __null_handler_set.add(prefix)
    return SpectorLoggerAdapter(logger, {})


def add_log_handlers(
    level: int,
    log_format: str,
    datefmt: Optional[str] = None,
    filename: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """Add a root handler with timestamps in GMT.

    :param level: level of the handler
    :param log_format: format of the log lines (ignored for JSON logs)
    :param datefmt: date/time format
    :param filename: log to this file instead of the standard error
    :param json_format: output JSON objects (see :class:`JSONFormatter`)
    """
    handler: logging.Handler
    if filename is not None:
        handler = logging.FileHandler(filename)
    elif pretty_cli:  # all: no cover
        handler = TqdmHandler()
    else:
        handler = logging.StreamHandler()

    fmt: logging.Formatter
    if json_format:
        fmt = JSONFormatter(datefmt, {"context": console_logs})
    else:
        fmt = logging.Formatter(log_format, datefmt)
    fmt.converter = time.gmtime  # type: ignore

    handler.setFormatter(fmt)
    handler.setLevel(level)
    logging.getLogger("").addHandler(handler)


def add_logging_argument_group(
    argument_parser: ArgumentParser,
    default_level: int = logging.WARNING,
) -> _ArgumentGroup:
    """Add the logging switches to a command line parser.

    The parsed arguments are given to :func:`activate_with_args`.

    :param argument_parser: the parser in which the group will be created
    :param default_level: the console log level without ``-v``
    """
    log_group = argument_parser.add_argument_group(title="logging arguments")
    log_group.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="make the log output to the console more verbose",
    )
    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        default=None,
        help="also write all the logs (debug included) to FILE",
    )
    log_group.add_argument(
        "--loglevel",
        default=default_level,
        type=lambda name: logging.getLevelName(name.upper()),
        help="set the console log level",
        choices=[
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
            logging.CRITICAL,
        ],
    )
    log_group.add_argument(
        "--nocolor",
        default=False,
        action="store_true",
        help="disable color and progress bars",
    )
    log_group.add_argument(
        "--json-logs",
        default="json-logs" in os.environ.get("SPECTOR_ENABLE_FEATURE", "").split(","),
        action="store_true",
        help="output the logs as JSON objects, also enabled by"
        " SPECTOR_ENABLE_FEATURE=json-logs",
    )
    log_group.add_argument(
        "--console-logs",
        metavar="LINE_PREFIX",
        help="disable color and progress bars, and start the console log"
        " lines with LINE_PREFIX",
    )
    return log_group


def activate_with_args(args: Namespace, default_level: int = logging.WARNING) -> None:
    """Install the log handlers requested on the command line.

    :param args: arguments parsed with the group of
        :func:`add_logging_argument_group`
    :param default_level: the console log level without ``-v``
    """
    global console_logs
    global pretty_cli

    level = default_level - 10 * args.verbose if args.verbose else args.loglevel
    if args.console_logs:
        console_logs = args.console_logs
    if args.nocolor:
        pretty_cli = False

    activate(
        level=level,
        filename=args.log_file,
        json_format=args.json_logs,
        spector_debug=level <= logging.DEBUG,
    )


def activate(
    stream_format: str = log_config.stream_fmt,
    file_format: str = log_config.file_fmt,
    datefmt: Optional[str] = None,
    level: int = logging.INFO,
    filename: Optional[str] = None,
    spector_debug: bool = False,
    json_format: bool = False,
) -> None:
    """Install the console handler, and the file handler if *filename* is set.

    :param stream_format: format of the console lines
    :param file_format: format of the log file lines
    :param datefmt: date/time format
    :param level: console log level
    :param filename: also log to this file, at least at debug level
    :param spector_debug: enable the :func:`debug` traces
    :param json_format: output JSON objects
    """
    # Filtering is done by the handlers
    logging.getLogger("").setLevel(logging.DEBUG)
    if console_logs:
        stream_format = f"{console_logs}: {file_format}"

    add_log_handlers(
        level=level, log_format=stream_format, datefmt=datefmt, json_format=json_format
    )
    if filename is not None:
        add_log_handlers(
            level=min(level, logging.DEBUG),
            log_format=file_format,
            datefmt=datefmt,
            filename=filename,
            json_format=json_format,
        )

    if spector_debug:
        spector_debug_logger.setLevel(logging.DEBUG)


# Internal traces, only shown with -v -v
spector_debug_logger = getLogger("debug")
spector_debug_logger.setLevel(logging.CRITICAL + 1)

debug = spector_debug_logger.debug
