"""Command-line entry point: ``python -m patchscript`` / ``patchscript``.

Binds one session, runs a script against the remote graph server and exits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import SessionConfig, default_session_config, load_session_config, resolve_session_config
from .errors import BridgeError
from .session import Session

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

DEMO_SCRIPT = """\
sine = sine_oscillator(220)
mix = sine * 0.1
dac(mix)
dac(mix)

play()
sleep(1)
sine.replace(bl_saw_oscillator(110))
sleep(1)
stop()
"""


def build_parser() -> argparse.ArgumentParser:
    defaults = default_session_config()
    parser = argparse.ArgumentParser(prog="patchscript", description=__doc__.splitlines()[0])
    parser.add_argument("-l", "--local-addr", default=None, help=f"local bind address (default {defaults['local_addr']})")
    parser.add_argument(
        "-r", "--remote-addr", default=None, help=f"graph server address (default {defaults['remote_addr']})"
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML session config file")
    parser.add_argument("--timeout", type=float, default=None, help="seconds to wait for each response")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("script", nargs="?", default=None, help="script file to run ('-' reads stdin)")
    source.add_argument("-c", dest="code", default=None, help="script source given on the command line")
    source.add_argument("--demo", action="store_true", help="run the bundled demo script")
    return parser


def read_source(args: argparse.Namespace) -> tuple[str, str]:
    """Return ``(source, filename)`` for the script selected on the command line."""
    if args.code is not None:
        return args.code, "<command line>"
    if args.demo:
        return DEMO_SCRIPT, "<demo>"
    if args.script is None or args.script == "-":
        return sys.stdin.read(), "<stdin>"
    path = Path(args.script)
    return path.read_text(), str(path)


def session_config(args: argparse.Namespace) -> SessionConfig:
    config = load_session_config(args.config) if args.config else default_session_config()
    if args.local_addr:
        config["local_addr"] = args.local_addr
    if args.remote_addr:
        config["remote_addr"] = args.remote_addr
    if args.timeout is not None:
        config["request_timeout"] = args.timeout
    return resolve_session_config(config)


async def run(config: SessionConfig, source: str, filename: str) -> None:
    async with await Session.bind(config) as session:
        logger.info("[patchscript] Running %s against %s", filename, config["remote_addr"])
        await session.execute(source, filename)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    try:
        config = session_config(args)
        source, filename = read_source(args)
    except (OSError, ValueError) as e:
        logger.error("[patchscript] %s", e)
        return 2

    try:
        asyncio.run(run(config, source, filename))
    except BridgeError as e:
        logger.error("[patchscript] %s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
