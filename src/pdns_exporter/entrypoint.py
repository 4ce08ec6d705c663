"""``pdns_exporter.entrypoint`` contains argparse stuff and ``pdns_exporter`` script entrypoint.

This module is mostly boilerplate code for command-line argument handling, config file loading and logging.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
import typing as t
import warnings
from http.server import ThreadingHTTPServer
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from pdns_exporter.exceptions import CleanupAndExit, ConfigError
from pdns_exporter.exporter import PowerDNSExporter
from pdns_exporter.poller import PowerDNSPoller
from pdns_exporter.scheduler import Scheduler
from pdns_exporter.typesdb import TypeRegistry

if TYPE_CHECKING:
    from types import FrameType

# get logger
logger = logging.getLogger(f"pdns_exporter.{__name__}")

DEFAULT_INTERVAL = 10.0


def get_parser() -> argparse.ArgumentParser:
    """Create and return the argparse object."""
    parser = argparse.ArgumentParser(
        description=f"pdns_exporter version {PowerDNSExporter.__version__}.",
    )

    # optional arguments
    parser.add_argument(
        "-c",
        "--config-file",
        dest="config-file",
        help="The path to the yaml config file to use. The keys 'targets', 'types', 'interval' and 'local_socket' are read.",  # noqa: E501
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_const",
        dest="log-level",
        const="DEBUG",
        help="Debug mode. Equal to setting --log-level=DEBUG.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        help=f"Seconds between reads of the PowerDNS control sockets. Overrides the config file. Default: {DEFAULT_INTERVAL}",  # noqa: E501
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-L",
        "--listen-ip",
        type=str,
        help="Listen IP. Defaults to 127.0.0.1. Set to :: to listen on all v6 IPs.",
        default="127.0.0.1",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        dest="log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level. One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.",
        default="INFO",
    )
    parser.add_argument(
        "--local-socket",
        dest="local_socket",
        type=str,
        help="The path the exporter binds to when talking to a recursor. Overrides the config file.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-p",
        "--port",
        dest="port",
        type=int,
        help="The port the exporter should listen for requests on. Default: 15354",
        default=15354,
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_const",
        dest="log-level",
        const="WARNING",
        help="Quiet mode. No output at all if no errors are encountered. Equal to setting --log-level=WARNING.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-v",
        "--version",
        dest="version",
        action="store_true",
        help="Show version and exit.",
        default=argparse.SUPPRESS,
    )
    return parser


def parse_args(
    mockargs: list[str] | None = None,
) -> tuple[argparse.ArgumentParser, argparse.Namespace]:
    """Create an argparse monster and parse mockargs or sys.argv[1:]."""
    parser = get_parser()
    args = parser.parse_args(mockargs or sys.argv[1:])
    return parser, args


def configure_logging(args: argparse.Namespace) -> None:
    """Configure the log format and level."""
    console_logformat = "%(asctime)s %(levelname)s %(name)s.%(funcName)s():%(lineno)i:  %(message)s"
    level = getattr(args, "log-level")
    logging.basicConfig(
        level=level,
        format=console_logformat,
        datefmt="%Y-%m-%d %H:%M:%S %z",
    )
    logger.setLevel(level)
    # also configure the root logger
    rootlogger = logging.getLogger("")
    rootlogger.setLevel(level)
    logger.info(
        f"pdns_exporter v{PowerDNSExporter.__version__} starting up - logging at level {level}",
    )


def load_config_file(path: str) -> dict[str, t.Any]:
    """Read and sanity check the YAML config file. Exits if the file is unusable."""
    try:
        with Path(path).open() as f:
            configfile = yaml.load(f, Loader=yaml.SafeLoader)
    except OSError:
        logger.exception(f"Unable to read config file {path} - bailing out.")
        sys.exit(1)
    except yaml.YAMLError:
        logger.exception(f"Unable to parse YAML config file {path} - bailing out.")
        sys.exit(1)
    if (
        not configfile
        or not isinstance(configfile, dict)
        or "targets" not in configfile
        or not isinstance(configfile["targets"], list)
        or not configfile["targets"]
    ):
        # configfile is empty, missing "targets" key, or targets is empty or not a list
        logger.error(
            f"Invalid config file {path} - yaml was valid but no targets found",
        )
        sys.exit(1)
    logger.debug(f"Read {len(configfile['targets'])} target declaration(s) from config file {path}")
    return configfile


def build_poller(args: argparse.Namespace, configfile: dict[str, t.Any]) -> PowerDNSPoller:
    """Create the type registry and poller and load the targets."""
    types = TypeRegistry()
    if configfile.get("types"):
        try:
            if not isinstance(configfile["types"], dict):
                raise ConfigError("invalid_type")  # noqa: TRY301
            types.load(configfile["types"])
        except ConfigError:
            logger.exception("Invalid types in config file - bailing out.")
            sys.exit(1)

    poller = PowerDNSPoller(types=types)
    local_socket = getattr(args, "local_socket", configfile.get("local_socket"))
    if not poller.configure(declarations=configfile.get("targets", []), local_socket=local_socket):
        logger.warning("One or more target declarations were rejected, see errors above. Continuing anyway.")
    return poller


def main(mockargs: list[str] | None = None) -> None:
    """Read config and start exporter."""
    # suppress warnings at runtime
    if not sys.warnoptions:
        warnings.simplefilter("ignore")

    # get arpparser and parse args
    _, args = parse_args(mockargs)

    # handle version check
    if hasattr(args, "version"):
        print(f"pdns_exporter version {PowerDNSExporter.__version__}")  # noqa: T201
        sys.exit(0)

    # configure logging
    configure_logging(args=args)
    logger.debug(f"pdns_exporter parsed command-line arguments: {mockargs or sys.argv[1:]}")

    if hasattr(args, "config-file"):
        configfile = load_config_file(getattr(args, "config-file"))
    else:
        # there is no config file
        configfile = {"targets": []}
        logger.warning(
            "No -c / --config-file found so a config file will not be used. No targets loaded.",
        )

    try:
        interval = float(getattr(args, "interval", configfile.get("interval", DEFAULT_INTERVAL)))
    except (TypeError, ValueError):
        logger.exception("Unable to validate float for key interval - bailing out.")
        sys.exit(1)
    if interval <= 0:
        logger.error(f"Invalid interval {interval} - bailing out.")
        sys.exit(1)

    # build the poller and hand it to the exporter
    poller = build_poller(args=args, configfile=configfile)
    PowerDNSExporter.configure(poller=poller)

    # Usually main() runs in the main Python thread. Skip configuring signal handler if it does not.
    if threading.current_thread() is threading.main_thread():
        logger.debug("Running in main thread, connecting signal handlers...")
        # this is the main thread, it is safe to do signal handling
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
    else:
        logger.warning("Not running in main thread, skipping signal handlers...")

    # start reading the control sockets
    scheduler = Scheduler(poller=poller, interval=interval)
    scheduler.start()

    logger.info(
        f"Reading {len(poller.registry)} target(s) every {interval} seconds. "
        f"Starting listener on {args.listen_ip} port {args.port}...",
    )
    try:
        ThreadingHTTPServer((args.listen_ip, args.port), PowerDNSExporter).serve_forever()
    except OSError:
        logger.exception(
            f"Unable to start listener, maybe port {args.port} is in use? bailing out",
        )
        sys.exit(1)
    except CleanupAndExit:
        logger.info("Signal received, cleaning up before exit...")
    finally:
        scheduler.stop()
        logger.info("Clean exit - goodbye for now :)")


def signal_handler(sig: int, frame: FrameType | None) -> None:
    """This signal handler raises CleanupAndExit to allow cleanup before exit."""
    logger.debug(f"Signal {sig} received in frame {frame}, raising CleanupAndExit to trigger cleanup and exit...")
    raise CleanupAndExit


if __name__ == "__main__":  # pragma: no cover
    main()
