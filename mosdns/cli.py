"""Command line entry point: start the server or print the version."""

from __future__ import annotations

import argparse
import os
import signal
import sys
from typing import List, Optional

from mosdns import mlog
from mosdns.config import load_config
from mosdns.core import Mosdns

VERSION = "dev/unknown"

_STOP_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)) if sig
)


def _limit_cpus(cpu: int) -> None:
    """Restrict the process to at most ``cpu`` processors where supported."""
    if not hasattr(os, "sched_setaffinity"):
        return
    available = sorted(os.sched_getaffinity(0))
    if cpu < len(available):
        os.sched_setaffinity(0, available[:cpu])


def new_server(config_path: str = "", working_dir: str = "", cpu: int = 0) -> Mosdns:
    """Change to ``working_dir``, load the config and build an instance.

    An empty ``config_path`` searches the working directory for a file
    named "config". Raises RuntimeError if any step fails.
    """
    if cpu > 0:
        _limit_cpus(cpu)

    if working_dir:
        try:
            os.chdir(working_dir)
        except OSError as exc:
            raise RuntimeError(
                f"failed to change the current working directory, {exc}"
            ) from exc
        mlog.logger().info("working directory changed path=%s", working_dir)

    try:
        config, used = load_config(config_path)
    except (OSError, ValueError) as exc:
        raise RuntimeError(f"fail to load config, {exc}") from exc
    mlog.logger().info("main config loaded file=%s", used)

    return Mosdns(config)


def _wait(server: Mosdns) -> Optional[BaseException]:
    try:
        result = server.safe_close.wait_closed()
    except Exception as exc:
        return exc
    return result if isinstance(result, BaseException) else None


def _run_start(args: argparse.Namespace) -> int:
    try:
        server = new_server(args.config, args.dir, args.cpu)
    except Exception as exc:
        mlog.logger().error("%s", exc)
        return 1

    def on_signal(signum: int, _frame: object) -> None:
        server.logger.warning("signal received signal=%s", signal.Signals(signum).name)
        server.close_with_err(None)

    previous = {}
    for sig in _STOP_SIGNALS:
        try:
            previous[sig] = signal.signal(sig, on_signal)
        except ValueError:
            break  # not in the main thread; signals cannot be caught here
    try:
        err = _wait(server)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if err is not None:
        mlog.logger().error("%s", err)
        return 1
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mosdns")
    commands = parser.add_subparsers(dest="command")

    start = commands.add_parser("start", help="Start mosdns main program.")
    start.add_argument("-c", "--config", default="", help="config file")
    start.add_argument("-d", "--dir", default="", help="working dir")
    start.add_argument("--cpu", type=int, default=0, help="limit the number of cpus used")

    commands.add_parser("version", help="Print out version info and exit.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line and return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.command == "version":
        print(VERSION)
        return 0
    if args.command == "start":
        return _run_start(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())