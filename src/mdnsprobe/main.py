from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from .browser import ServiceBrowser
from .cancel import CancellationWatcher
from .config.config_parser import load_config, parse_duration
from .config.logging_config import init_logging
from .query import EncodingError
from .transports.multicast import MulticastTransport, TransportError


def _duration_arg(text: str) -> float:
    try:
        return parse_duration(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdnsprobe",
        description="Query the local network for mDNS/DNS-SD services",
    )
    parser.add_argument(
        "--timeout",
        type=_duration_arg,
        default=None,
        help="how long to wait for answers (e.g. 2s, 500ms), 0 means indefinitely",
    )
    parser.add_argument("--config", default=None, help="Path to optional YAML config")
    parser.add_argument(
        "--addresses",
        action="store_true",
        default=None,
        help="append resolved A/AAAA addresses as a fifth column",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="debug, info, warn, error or crit (default: warn)",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    """
    Main entry point for the mdnsprobe CLI.
    Parses arguments, loads configuration, sends the service enumeration
    query and prints one line per service response until the timeout.

    Args:
        argv: Command-line arguments.

    Returns:
        An exit code: 0 on normal completion (deadline, SIGTERM or Ctrl-C),
        1 on configuration errors or fatal query/transport failures.

    Example use:
        CLI:
            mdnsprobe --timeout 5s
            PYTHONPATH=src python -m mdnsprobe --timeout 0 --addresses
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(
            args.config,
            {"timeout": args.timeout, "show_addresses": args.addresses},
        )
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    log_cfg = dict(cfg.logging)
    if args.log_level:
        log_cfg["level"] = args.log_level
    init_logging(log_cfg)
    logger = logging.getLogger("mdnsprobe.main")
    logger.debug("timeout=%ss destination=%s:%d", cfg.timeout, *cfg.destination)

    try:
        transport = MulticastTransport(cfg.bind_host)
    except TransportError as exc:
        logger.error("could not query: %s", exc)
        return 1

    watcher = CancellationWatcher(transport, cfg.timeout)
    previous_sigterm = None
    if threading.current_thread() is threading.main_thread():
        previous_sigterm = signal.signal(
            signal.SIGTERM, lambda signum, frame: watcher.stop()
        )

    browser = ServiceBrowser(
        transport, group=cfg.destination, show_addresses=cfg.show_addresses
    )
    exit_code = 0
    watcher.start()
    try:
        browser.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")
    except (EncodingError, TransportError) as exc:
        logger.error("could not query: %s", exc)
        exit_code = 1
    finally:
        watcher.stop()
        watcher.join(timeout=1.0)
        transport.close()
        if previous_sigterm is not None:
            signal.signal(signal.SIGTERM, previous_sigterm)

    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover
