"""
AccessiList CLI - Command-line interface for the checklist session service.

Commands:
- accessilist info: Show version, checklist types and configuration
- accessilist serve: Start the HTTP API server
- accessilist generate-demo: Write the demo sessions for the reserved keys
- accessilist report: System-wide status report over stored sessions
"""

import argparse
import json
import os
import sys

from accessilist.config.checklist_types import load_type_registry
from accessilist.config.runtime import get_runtime_config, print_runtime_config
from accessilist.utils.errors import AccessiListError


def _get_env_port(default: int = 8000) -> int:
    """Get port from PORT environment variable with safe parsing."""
    port_str = os.environ.get("PORT")
    if port_str is None:
        return default
    try:
        return int(port_str)
    except ValueError:
        return default


def _open_store(args: argparse.Namespace):
    from accessilist.state.session_store import SessionStore

    config = get_runtime_config()
    sessions_dir = args.sessions_dir or config.storage.sessions_dir
    registry = load_type_registry(config.storage.types_file)
    return SessionStore(sessions_dir, registry=registry)


def cmd_info(args: argparse.Namespace) -> int:
    """Show version, checklist types and configuration."""
    from accessilist import __version__

    try:
        config = get_runtime_config()
        registry = load_type_registry(config.storage.types_file)
    except AccessiListError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print("=" * 60)
    print("AccessiList - Accessibility Checklist Sessions")
    print("=" * 60)
    print()
    print(f"Version:     {__version__}")
    print(
        f"Python:      {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    )
    print()

    print("Checklist Types:")
    for checklist_type in registry:
        marker = " (default)" if checklist_type.slug == registry.default_slug else ""
        demo = checklist_type.demo_key or "---"
        print(f"  {checklist_type.slug:<12} {demo}  {checklist_type.display_name}{marker}")
    print()

    print_runtime_config(config)
    print()

    print("HTTP Endpoints:")
    print("  /api/csrf-token      - Issue CSRF token and cookie")
    print("  /api/generate-key    - Generate a new session key")
    print("  /api/instantiate     - Create a session if absent")
    print("  /api/save            - Save session state")
    print("  /api/restore         - Restore session state")
    print("  /api/delete          - Delete a session")
    print("  /api/list            - List sessions")
    print("  /api/list-detailed   - List sessions with state and progress")
    print("  /api/types           - Checklist type registry")
    print("  /health              - Health check")
    print("  /health/ready        - Readiness probe")
    print("  /health/metrics      - Prometheus metrics")
    print()

    print("=" * 60)
    print("Run 'accessilist serve' to start the HTTP API server")
    print("Run 'accessilist generate-demo' to write the demo sessions")
    print("=" * 60)

    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP API server.

    Environment variables HOST and PORT are the defaults for --host and
    --port. Flags that change app configuration are passed on through the
    environment, since each worker builds its own app.
    """
    from accessilist.entrypoints.serve import serve

    if args.sessions_dir:
        os.environ["ACCESSILIST_SESSIONS_DIR"] = args.sessions_dir

    if args.disable_rate_limit:
        os.environ["DISABLE_RATE_LIMIT"] = "1"

    print("=" * 60)
    print("AccessiList HTTP API Server")
    print("=" * 60)
    print(f"Starting server on {args.host}:{args.port}")
    print(f"Mode: {os.environ.get('ACCESSILIST_RUNTIME_MODE', 'local')}")
    print(f"Sessions: {get_runtime_config().storage.sessions_dir}")

    if args.host == "0.0.0.0":
        print()
        print("SECURITY NOTICE: Binding to 0.0.0.0 exposes the server to all")
        print("   network interfaces. For local development, consider using 127.0.0.1.")

    print()

    return serve(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
    )


def cmd_generate_demo(args: argparse.Namespace) -> int:
    """Write one demo session per reserved key."""
    from accessilist.demo import generate_demo_sessions

    try:
        store = _open_store(args)
        sessions = generate_demo_sessions(store)
    except AccessiListError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print("=" * 60)
    print("Generating Demo Sessions")
    print("=" * 60)
    for session in sessions:
        print(
            f"  {session.session_key}  {session.type_slug:<12} "
            f"done={session.done} active={session.active} ready={session.ready} "
            f"manual={session.manual_rows}"
        )
    print()
    print(f"Wrote {len(sessions)} demo sessions to {store.sessions_dir}")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    """Summarize status and progress over every stored session."""
    from accessilist.reports import summarize

    try:
        store = _open_store(args)
        report = summarize(store.list(detailed=True))
    except AccessiListError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return 0

    print("=" * 60)
    print("AccessiList Systemwide Report")
    print("=" * 60)
    print(f"Sessions:          {report.total}")
    print(f"Average progress:  {report.average_progress:.0%}")
    print()
    print("By status:")
    for status, count in report.by_status.items():
        print(f"  {status:<14} {count}")
    print()
    print("By type:")
    for type_slug, count in report.by_type.items():
        print(f"  {type_slug:<14} {count}")
    print("=" * 60)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    from accessilist import __version__

    parser = argparse.ArgumentParser(
        prog="accessilist",
        description="AccessiList - accessibility checklist session service",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Info command
    subparsers.add_parser("info", help="Show version, checklist types and configuration")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start HTTP API server")
    serve_parser.add_argument(
        "--host",
        type=str,
        default=os.environ.get("HOST", "0.0.0.0"),
        help="Host to bind to (default: 0.0.0.0, or HOST env var)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=_get_env_port(8000),
        help="Port to bind to (default: 8000, or PORT env var)",
    )
    serve_parser.add_argument(
        "--sessions-dir",
        type=str,
        help="Directory holding session files",
    )
    serve_parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    serve_parser.add_argument(
        "--disable-rate-limit",
        action="store_true",
        help="Disable rate limiting (for testing)",
    )

    # Generate-demo command
    demo_parser = subparsers.add_parser("generate-demo", help="Write demo sessions")
    demo_parser.add_argument(
        "--sessions-dir",
        type=str,
        help="Directory holding session files",
    )

    # Report command
    report_parser = subparsers.add_parser("report", help="Systemwide session report")
    report_parser.add_argument(
        "--sessions-dir",
        type=str,
        help="Directory holding session files",
    )
    report_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON",
    )

    args = parser.parse_args(argv)

    if args.command == "info":
        return cmd_info(args)
    elif args.command == "serve":
        return cmd_serve(args)
    elif args.command == "generate-demo":
        return cmd_generate_demo(args)
    elif args.command == "report":
        return cmd_report(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
