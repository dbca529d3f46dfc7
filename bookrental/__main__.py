"""CLI entry point for bookrental."""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from .config import Config, load_config
from .document import count_records
from .library import Library, rental_report, rental_status, sample_document
from .sync import HttpBlobStore, LocalState, StateChange, SyncManager, TransportError

logger = logging.getLogger(__name__)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        try:
            return json.dumps(log_data, ensure_ascii=False)
        except (TypeError, ValueError):
            log_data["message"] = str(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = str(log_data["exception"])
            return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def _make_store(config: Config) -> HttpBlobStore:
    return HttpBlobStore(
        config.sync.server_url,
        timeout=config.sync.request_timeout_seconds,
    )


async def _load_library(config: Config) -> Library:
    """Read the document once and wrap it in a Library."""
    store = _make_store(config)
    try:
        doc = await store.read()
    finally:
        await store.close()
    return Library(LocalState(config.collections, initial=doc))


async def cmd_serve(args: argparse.Namespace) -> int:
    """Run the document server."""
    config = load_config(args.config)

    from .server import create_app

    import uvicorn

    host = args.host or config.server.host
    port = args.port or config.server.port

    print("Starting bookrental data server")
    print(f"Data file: {Path(config.server.data_path).expanduser()}")
    print(f"URL: http://{host}:{port}")

    app = create_app(config)
    verbose = getattr(args, "verbose", False)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level="info" if verbose else "warning",
        )
    )
    await server.serve()
    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    """Show what the server currently holds."""
    config = load_config(args.config)
    store = _make_store(config)

    try:
        doc = await store.read()
        reachable, error = True, None
    except TransportError as e:
        doc, reachable, error = {}, False, str(e)
    finally:
        await store.close()

    status_data = {
        "timestamp": datetime.now().isoformat(),
        "server_url": config.sync.server_url,
        "reachable": reachable,
        "error": error,
        "collections": count_records(doc),
    }

    if args.json:
        print(json.dumps(status_data, indent=2))
    else:
        print("Bookrental Status")
        print("=================")
        print(f"Server: {config.sync.server_url}")
        if reachable:
            print("  Status: Reachable")
            for name, count in status_data["collections"].items():
                print(f"  {name}: {count}")
        else:
            print("  Status: Not reachable")
            print(f"  {error}")

    return 0 if reachable else 1


async def cmd_seed(args: argparse.Namespace) -> int:
    """Write the sample catalog and roster to the server."""
    config = load_config(args.config)
    store = _make_store(config)

    try:
        current = await store.read()
        if any(count_records(current).values()) and not args.force:
            print("Server already holds data; use --force to overwrite", file=sys.stderr)
            return 1

        doc = sample_document()
        await store.write(doc)
    except TransportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await store.close()

    counts = count_records(doc)
    print(f"Seeded {counts['books']} books and {counts['members']} members")
    return 0


async def cmd_books(args: argparse.Namespace) -> int:
    """List the catalog."""
    config = load_config(args.config)
    try:
        library = await _load_library(config)
    except TransportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    books = library.books()
    if not books:
        print("No books in the catalog.")
        return 0

    for book in books:
        holder = f" ({book.reserved_by})" if book.reserved_by else ""
        print(f"  {book.id:<20} {book.status.value:<10} {book.title} - {book.author}{holder}")
    return 0


async def cmd_borrow(args: argparse.Namespace) -> int:
    """Borrow or return a book in a short sync session."""
    config = load_config(args.config)
    store = _make_store(config)
    state = LocalState(config.collections)
    manager = SyncManager(
        state,
        store,
        pull_interval=config.sync.pull_interval_seconds,
        debounce=config.sync.debounce_seconds,
    )

    await manager.start()
    try:
        if not await manager.wait_for_first_pull(timeout=config.sync.request_timeout_seconds):
            print("Error: could not load data from server", file=sys.stderr)
            return 1

        try:
            book = Library(state).toggle_borrow(args.book_id, args.email)
        except (KeyError, PermissionError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        if not await manager.flush():
            print("Error: failed to save change to server", file=sys.stderr)
            return 1
    finally:
        await manager.stop()
        await store.close()

    action = "Borrowed" if book.reserved_by else "Returned"
    print(f"{action}: {book.title}")
    if book.due_date:
        print(f"Due: {book.due_date.isoformat()}")
    return 0


async def cmd_rentals(args: argparse.Namespace) -> int:
    """Print books currently out."""
    config = load_config(args.config)
    try:
        library = await _load_library(config)
    except TransportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    rows = rental_status(library)

    if args.json:
        print(json.dumps([r.to_dict() for r in rows], indent=2, ensure_ascii=False))
        return 0

    if not rows:
        print("No books are currently out.")
        return 0

    for row in rows:
        print(f"  {row.member_name:<20} {row.title:<30} {row.status:<10} due {row.due_date}")
    return 0


async def cmd_report(args: argparse.Namespace) -> int:
    """Print rental volume per period."""
    config = load_config(args.config)
    try:
        library = await _load_library(config)
    except TransportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report = rental_report(library.rentals(), args.period)
    if not report:
        print("No rentals recorded.")
        return 0

    print(f"Rental volume ({args.period})")
    for entry in report:
        print(f"  {entry['name']:<8} {entry['rentals']:>4} {'#' * entry['rentals']}")
    return 0


async def cmd_watch(args: argparse.Namespace) -> int:
    """Run a headless sync client and log every change."""
    config = load_config(args.config)
    store = _make_store(config)
    state = LocalState(config.collections)
    manager = SyncManager(
        state,
        store,
        pull_interval=config.sync.pull_interval_seconds,
        debounce=config.sync.debounce_seconds,
        pause_when_hidden=config.sync.pause_when_hidden,
    )

    def on_change(change: StateChange) -> None:
        counts = count_records(state.snapshot())
        logger.info(
            f"State v{change.version} ({change.source}): "
            f"changed {', '.join(change.collections)}; {counts}"
        )

    unsubscribe = state.subscribe(on_change)
    await manager.start()
    print(f"Watching {config.sync.server_url} (Ctrl+C to stop)")

    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        unsubscribe()
        await manager.stop()
        await store.close()
        logger.info(f"Final sync stats: {manager.get_stats()}")

    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="bookrental",
        description="Book rental tracker with a shared JSON document store",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: built-in defaults)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the data server")
    serve_parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Port to listen on (default: from config, 8080)",
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind to (default: from config, 0.0.0.0)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show server contents")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    # Seed command
    seed_parser = subparsers.add_parser("seed", help="Write sample books and members")
    seed_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing data",
    )
    seed_parser.set_defaults(func=cmd_seed)

    # Books command
    books_parser = subparsers.add_parser("books", help="List the catalog")
    books_parser.set_defaults(func=cmd_books)

    # Borrow command
    borrow_parser = subparsers.add_parser("borrow", help="Borrow or return a book")
    borrow_parser.add_argument("book_id", help="Book id")
    borrow_parser.add_argument("email", help="Member email")
    borrow_parser.set_defaults(func=cmd_borrow)

    # Rentals command
    rentals_parser = subparsers.add_parser("rentals", help="Show books currently out")
    rentals_parser.add_argument(
        "--json",
        action="store_true",
        help="Output rentals as JSON",
    )
    rentals_parser.set_defaults(func=cmd_rentals)

    # Report command
    report_parser = subparsers.add_parser("report", help="Show rental volume")
    report_parser.add_argument(
        "--period",
        choices=["monthly", "yearly"],
        default="monthly",
        help="Aggregation period (default: monthly)",
    )
    report_parser.set_defaults(func=cmd_report)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Run a headless sync client")
    watch_parser.set_defaults(func=cmd_watch)

    args = parser.parse_args()

    setup_logging(args.verbose, args.log_level, args.json_logs)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
