"""Provides a raw console to test module and demonstrate usage."""
import argparse
import logging

from pyiscp.exceptions import ISCPError
from pyiscp.session import Session

__all__ = ("console", "monitor")

log = logging.getLogger(__name__)


def parse_args(argv=None):
    """Connect to a receiver, send messages and show messages as they occur."""
    parser = argparse.ArgumentParser(description=parse_args.__doc__)
    parser.add_argument(
        "--device",
        default="discover",
        help="tty device, host[:port] or 'discover' (default)",
    )
    parser.add_argument("--type", choices=("ISCP", "eISCP"), help="protocol to speak")
    parser.add_argument("--timeout", type=float, help="stop after this many idle seconds")
    parser.add_argument("--verbose", "-v", action="count")
    parser.add_argument("messages", nargs="*", help="phrases or raw commands to send")
    return parser.parse_args(argv)


def console(session, messages, timeout=None):
    """Write ``messages`` and log every message read until ``timeout`` idles."""
    for message in messages:
        session.write(message, callback=lambda message=message: log.debug("done: %s", message))

    while True:
        message = session.read(timeout)
        if message is None:
            return
        log.info("%s: %s", message.command, message.argument)


def monitor(argv=None):
    """Entry point of the ``onkyo_monitor`` script."""
    args = parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(level=level)

    try:
        with Session.open(device=args.device, type=args.type) as session:
            console(session, args.messages, timeout=args.timeout)
    except KeyboardInterrupt:
        pass
    except (ISCPError, OSError) as error:
        log.error("%s", error)
        return 1
    return 0
