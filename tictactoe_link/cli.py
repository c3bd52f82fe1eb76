"""
Command-line entry point.

    tictactoe-link host [--port 7000] [--bind ADDR]
    tictactoe-link join [--host localhost] [--port 7000]
"""
import argparse
import logging
import sys

from .config import SessionConfig
from .network import Role
from .session import Session
from .ui.console import ConsolePlayer

log = logging.getLogger("cli")


def _parse_log_level(name):
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.WARNING


def build_parser():
    ap = argparse.ArgumentParser(prog="tictactoe-link", description="Two-player network tic-tac-toe.")
    ap.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING, ERROR")
    sub = ap.add_subparsers(dest="command", required=True)

    host = sub.add_parser("host", help="listen for an opponent and move first")
    host.add_argument("--port", type=int, default=None)
    host.add_argument("--bind", dest="bind_host", default=None, help="interface to listen on (default: all)")

    join = sub.add_parser("join", help="connect to a hosting opponent")
    join.add_argument("--host", default=None)
    join.add_argument("--port", type=int, default=None)
    join.add_argument("--timeout", dest="connect_timeout", type=float, default=None)
    return ap


def main(argv=None):  # pragma: no cover - interactive loop
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=_parse_log_level(args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    overrides = {k: v for k, v in vars(args).items()
                 if k in ("host", "port", "bind_host", "connect_timeout")}
    try:
        config = SessionConfig.from_env().with_overrides(**overrides)
    except ValueError as e:
        print(f"[!] Bad configuration: {e}", file=sys.stderr)
        return 2

    role = Role.INITIATOR if args.command == "host" else Role.RESPONDER
    print("--- Welcome to Network Tic-Tac-Toe ---")
    session = Session(role, config)
    player = ConsolePlayer(session)
    player.play()
    return 0 if session.error is None else 1


if __name__ == "__main__":
    sys.exit(main())
