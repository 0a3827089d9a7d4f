#!/usr/bin/env python3
"""
TaskGate -- token-authenticated task service pair.

Usage:
  python main.py auth
  python main.py tasks
  python main.py auth --port 9080
  python main.py tasks --host 0.0.0.0 --reload

Environment variables (see core/config.py for the full list):
  JWT_SECRET          Token signing key (auth service). Falls back to an insecure
                      development key with a warning when unset.
  AUTH_SERVICE_URL    Base URL of the auth service (tasks service).
                      Default: http://localhost:8080
  AUTH_DB_URL         SQLAlchemy URL of the credential store.
  TASKS_DB_URL        SQLAlchemy URL of the task store.
"""

import argparse

import uvicorn

_SERVICES = {
    "auth": ("asgi:auth_app", 8080),
    "tasks": ("asgi:tasks_app", 8082),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskgate",
        description="Run one of the TaskGate HTTP services.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py auth
  python main.py tasks --port 9082
  JWT_SECRET=$(openssl rand -hex 32) python main.py auth
        """,
    )
    parser.add_argument(
        "service",
        choices=sorted(_SERVICES),
        help="Which service to run: auth (default port 8080) or tasks (default port 8082)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind (default: the service's standard port)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only)",
    )
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    target, default_port = _SERVICES[args.service]
    uvicorn.run(target, host=args.host, port=args.port or default_port, reload=args.reload)


if __name__ == "__main__":
    main()
