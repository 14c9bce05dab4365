"""Smart plug controller: command-line entry point.

Usage:
    python3 main.py status
    python3 main.py on
    python3 main.py off
    python3 main.py alias
    python3 main.py --host 192.168.2.102 --port 9999 status

Host, port and timeout default to PLUG_HOST, PLUG_PORT and PLUG_TIMEOUT from
the environment (or a .env file in the working directory).
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

import config
from devices.smart_plug import PlugError, plug_from_env

log = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Control an HS100-family smart plug")
    parser.add_argument("--host", help="plug hostname or IP (default: $PLUG_HOST)")
    parser.add_argument("--port", type=int, help="plug TCP port (default: $PLUG_PORT or 9999)")
    parser.add_argument("--timeout", type=float, help="socket timeout in seconds (default: none)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("command", choices=["on", "off", "status", "alias"])
    return parser


def run(args):
    """Execute one command. Returns the text to print. Raises PlugError."""
    plug = plug_from_env()
    if args.host is not None:
        plug.set_host(args.host)
    if args.port is not None:
        plug.set_port(args.port)
    if args.timeout is not None:
        plug.timeout = args.timeout

    if args.command == "on":
        plug.turn_on()
        return f"{plug.name}: turned ON"
    if args.command == "off":
        plug.turn_off()
        return f"{plug.name}: turned OFF"
    if args.command == "status":
        return "ON" if plug.is_on() else "OFF"
    return plug.retrieve_alias()


def main(argv=None):
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=config.LOG_FORMAT,
    )

    try:
        print(run(args))
    except PlugError as e:
        log.error("%s failed (%s): %s", args.command, e.kind.value, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
