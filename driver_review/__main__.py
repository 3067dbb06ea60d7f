"""
CLI entry point for driver review.

Parses arguments, validates config, and wires components around a local
JSON database.
"""

import argparse
import os
import sys
import time
from argparse import Namespace
from pathlib import Path
from typing import TypedDict

from prettytable import PrettyTable

from .config import ServiceConfig
from .demo import run_demo
from .exceptions import ConfigurationError
from .host.memory import OfflineTransport, StaticRoster
from .host.notifiers import LoggingNotifier
from .logging_config import DEBUG_CATEGORIES, get_logger, setup_logging
from .models import GivenRatingKey, Rating, ReceivedRatingKey, make_identity
from .rating_store import RatingStore
from .service import ReviewService
from .storage.json_storage import JSONStorage


class CLIArgs(TypedDict):
    """Typed representation of the global CLI arguments."""
    command: str
    db: str
    player: str | None
    realm: str | None
    prefix: str
    debug: bool
    log_level: str
    debug_categories: list[str] | None
    log_file: str | None


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Driver Review - peer-to-peer driver ratings"
    )

    _ = parser.add_argument(
        "--db",
        default="driver_review_db.json",
        help="Path to the JSON database (default: driver_review_db.json)"
    )
    _ = parser.add_argument(
        "--player",
        default=os.environ.get("DRIVER_REVIEW_PLAYER"),
        help="Local player name (default: $DRIVER_REVIEW_PLAYER)"
    )
    _ = parser.add_argument(
        "--realm",
        default=os.environ.get("DRIVER_REVIEW_REALM"),
        help="Local realm (default: $DRIVER_REVIEW_REALM)"
    )
    _ = parser.add_argument(
        "--prefix",
        default="DriverReview",
        help="Message prefix registered with the channel (default: DriverReview)"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING)"
    )
    _ = parser.add_argument(
        "--debug-categories",
        nargs="+",
        choices=list(DEBUG_CATEGORIES),
        help="Only show debug output for these categories"
    )
    _ = parser.add_argument(
        "--log-file",
        help="Also log INFO and above to this rotating file"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    rate = commands.add_parser("rate", help="Rate a driver")
    _ = rate.add_argument("target", help="Driver identity (Name or Name-Realm)")
    _ = rate.add_argument("score", type=int, help="Stars from 1 to 5")
    _ = rate.add_argument("-c", "--comment", default="", help="Optional comment")

    _ = commands.add_parser("given", help="List ratings you have given")

    received = commands.add_parser("received", help="List ratings you have received")
    _ = received.add_argument("--identity", help="Show ratings received by another identity")

    search = commands.add_parser("search", help="Search for a driver")
    _ = search.add_argument("token", help="Part of a player name")
    _ = search.add_argument("--select", type=int, help="Remember result N (1-based) in the search history")

    delete_given = commands.add_parser("delete-given", help="Delete a rating you gave")
    _ = delete_given.add_argument("driver", help="Driver identity")
    _ = delete_given.add_argument("timestamp", type=int, help="Timestamp of the rating")

    delete_received = commands.add_parser("delete-received", help="Delete a rating you received")
    _ = delete_received.add_argument("reviewer", help="Reviewer identity")
    _ = delete_received.add_argument("timestamp", type=int, help="Timestamp of the rating")

    receive = commands.add_parser("receive", help="Route a raw frame as if it arrived from SENDER")
    _ = receive.add_argument("sender", help="Sender identity")
    _ = receive.add_argument("frame", help="Wire frame")
    _ = receive.add_argument("--frame-prefix", help="Prefix the frame arrived under (default: --prefix)")

    _ = commands.add_parser("state", help="Show the size of every stored collection")
    _ = commands.add_parser("demo", help="Run a simulated party exchange in memory")

    return parser.parse_args(argv)


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    return CLIArgs(
        command=ns.command,
        db=ns.db,
        player=ns.player,
        realm=ns.realm,
        prefix=ns.prefix,
        debug=ns.debug,
        log_level=ns.log_level,
        debug_categories=ns.debug_categories,
        log_file=ns.log_file,
    )


def validate_config(args: CLIArgs) -> ServiceConfig:
    """Validate configuration parameters."""
    logger = get_logger("validate_config")

    if args["command"] != "demo" and (not args["player"] or not args["realm"]):
        logger.error("Local identity is not configured")
        print("Error: --player and --realm (or DRIVER_REVIEW_PLAYER / DRIVER_REVIEW_REALM) are required")
        sys.exit(1)

    try:
        return ServiceConfig(message_prefix=args["prefix"])
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)


def wire_service(args: CLIArgs, config: ServiceConfig) -> ReviewService:
    """Wire a service for the local player outside any group."""
    logger = get_logger("wire_service")

    assert args["player"] and args["realm"], "Identity must be checked by validate_config"
    identity = make_identity(args["player"], args["realm"])

    logger.info(f"Creating store for {identity} at {args['db']}")
    store = RatingStore(identity, JSONStorage(Path(args["db"])))

    return ReviewService(
        store=store,
        transport=OfflineTransport(),
        roster=StaticRoster(),
        notifier=LoggingNotifier(),
        config=config,
    )


def format_time(timestamp: int) -> str:
    return time.strftime("%Y-%m-%d %H:%M", time.localtime(timestamp))


def ratings_table(ratings: list[Rating], who: str) -> PrettyTable:
    """Render ratings with either the driver or the reviewer as the first column."""
    table = PrettyTable()
    table.field_names = ["Driver" if who == "driver" else "Reviewer", "Stars", "Comment", "Date", "Timestamp"]
    table.align["Comment"] = "l"
    table.align["Stars"] = "r"
    for rating in ratings:
        name = rating.driver_name if who == "driver" else rating.reviewer
        table.add_row([
            name,
            "*" * rating.rating,
            rating.comment,
            format_time(rating.timestamp),
            rating.timestamp,
        ])
    return table


def run_command(args: CLIArgs, ns: Namespace, service: ReviewService) -> int:
    """Execute one subcommand; returns the process exit code."""
    command = args["command"]

    if command == "rate":
        result = service.submit_rating(ns.target, ns.score, ns.comment)
        if not result.accepted:
            print(f"Rejected: {result.reason}")
            return 1
        assert result.rating is not None and result.delivery is not None
        print(f"Rated {result.rating.driver} {result.rating.rating}/5 (delivery: {result.delivery.value})")
        return 0

    if command == "given":
        print(ratings_table(service.given_ratings(), "driver"))
        return 0

    if command == "received":
        identity = ns.identity or service.local_identity
        summary = service.get_summary(identity)
        print(ratings_table(service.received_ratings(identity), "reviewer"))
        print(f"Average rating for {identity}: {summary.average:.1f} from {summary.count} reviews")
        return 0

    if command == "search":
        candidates = service.search(ns.token)
        if not candidates:
            print("Please enter a player name to search")
            return 1
        table = PrettyTable()
        table.field_names = ["#", "Name", "Identity", "Source"]
        table.align["#"] = "r"
        for i, candidate in enumerate(candidates, 1):
            table.add_row([i, candidate.name, candidate.full_name, candidate.source])
        print(table)
        if ns.select is not None:
            if not 1 <= ns.select <= len(candidates):
                print(f"Error: --select must be between 1 and {len(candidates)}")
                return 1
            service.select_candidate(candidates[ns.select - 1])
            print(f"Selected {candidates[ns.select - 1].full_name}")
        return 0

    if command == "delete-given":
        deleted = service.delete_given_rating(GivenRatingKey(ns.timestamp, ns.driver))
        print("Deleted" if deleted else "No matching rating")
        return 0 if deleted else 1

    if command == "delete-received":
        deleted = service.delete_received_rating(ReceivedRatingKey(ns.timestamp, ns.reviewer))
        print("Deleted" if deleted else "No matching review")
        return 0 if deleted else 1

    if command == "receive":
        prefix = ns.frame_prefix or service.config.message_prefix
        outcome = service.handle_frame(prefix, ns.frame, "WHISPER", ns.sender)
        print(f"Frame {outcome.value}")
        return 0

    if command == "state":
        table = PrettyTable()
        table.field_names = ["Collection", "Entries"]
        table.align["Entries"] = "r"
        for name, count in service.state_report().items():
            table.add_row([name, count])
        print(f"Driver Review state for {service.local_identity}")
        print(table)
        return 0

    raise ValueError(f"Unknown command: {command}")


def print_demo(config: ServiceConfig) -> None:
    report = run_demo(config)

    deliveries = PrettyTable()
    deliveries.field_names = ["Rating", "Delivery"]
    for label, status in report.deliveries:
        deliveries.add_row([label, status.value])
    print(deliveries)

    summaries = PrettyTable()
    summaries.field_names = ["Participant", "Average", "Reviews"]
    summaries.align["Average"] = "r"
    summaries.align["Reviews"] = "r"
    for identity, summary in report.summaries.items():
        summaries.add_row([identity, f"{summary.average:.1f}", summary.count])
    print(summaries)
    print(f"Frames broadcast: {report.frames_sent}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    try:
        raw_args = parse_args(argv)
        args = args_to_typed(raw_args)

        setup_logging(
            level=args["log_level"],
            debug=args["debug"],
            categories=args["debug_categories"],
            log_file=args["log_file"],
        )
        logger = get_logger("main")
        logger.info(f"Starting Driver Review command: {args['command']}")

        config = validate_config(args)
        if args["command"] == "demo":
            print_demo(config)
            return

        service = wire_service(args, config)
        sys.exit(run_command(args, raw_args, service))

    except KeyboardInterrupt:
        logger = get_logger("main")
        logger.warning("Interrupted by user")
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
