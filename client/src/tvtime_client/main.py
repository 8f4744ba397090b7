"""Entry point for the TV time tracker."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from tvtime_shared import CHORE_TIMES

from .app import TVTimeApp, create_app
from .config import load_config
from .errors import ValidationError
from .family import set_family_id
from .ledger import Direction, format_duration
from .persistence import SyncStatus
from .store import LocalStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def render_children(app: TVTimeApp) -> str:
    if not app.ledger.children:
        return "No children yet. Add one with: tvtime add-child NAME"
    width = max(len(child.name) for child in app.ledger.children)
    return "\n".join(
        f"{child.name:<{width}}  {format_duration(child.time_balance)}"
        for child in app.ledger.children
    )


def render_status(app: TVTimeApp) -> str:
    if app.gateway.sync_status is SyncStatus.SYNCING:
        return "Syncing across devices"
    return "Local mode"


def _open_app(args: argparse.Namespace) -> TVTimeApp:
    setup_logging(args.verbose, args.log_file)
    config = load_config(args.config)
    app = create_app(config)
    app.load(app.gateway.fetch_remote())
    return app


def _require_child(app: TVTimeApp, name: str):
    child = app.ledger.find_by_name(name)
    if child is None:
        raise ValidationError(f"No child named {name!r}")
    return child


def _require_chore(app: TVTimeApp, name: str):
    chore = app.chores.find_by_name(name)
    if chore is None:
        raise ValidationError(f"No chore named {name!r}")
    return chore


def cmd_run(args: argparse.Namespace) -> None:
    """Run the tracker: bonus checks plus live sync, printing on every change."""
    app = _open_app(args)
    app.context.add_listener(lambda: print(render_children(app), flush=True))
    logger.info("Family ID: %s", app.family_id)

    from .loop import run_tracker_loop

    try:
        asyncio.run(run_tracker_loop(app))
    except KeyboardInterrupt:
        logger.info("Tracker interrupted")


def cmd_list(args: argparse.Namespace) -> None:
    app = _open_app(args)
    print(render_children(app))


def cmd_status(args: argparse.Namespace) -> None:
    app = _open_app(args)
    print(f"Family ID: {app.family_id}")
    print(f"Sync: {render_status(app)}")
    print(f"Last daily bonus: {app.context.last_midnight_check or 'never'}")


def cmd_add_child(args: argparse.Namespace) -> None:
    app = _open_app(args)
    child = app.ledger.add_person(args.name)
    print(f"Added {child.name}")


def cmd_remove_child(args: argparse.Namespace) -> None:
    app = _open_app(args)
    child = _require_child(app, args.name)
    app.ledger.remove_person(child.id)
    print(f"Removed {child.name}")


def cmd_adjust(args: argparse.Namespace) -> None:
    app = _open_app(args)
    child = _require_child(app, args.name)
    app.ledger.adjust_time(child.id, Direction(args.direction), args.minutes)
    print(f"{child.name}: {format_duration(child.time_balance)}")


def cmd_check_bonus(args: argparse.Namespace) -> None:
    app = _open_app(args)
    granted = app.scheduler.check_daily_bonus()
    if granted:
        print(f"Granted {format_duration(granted)} to every child")
    else:
        print("No bonus owed")
    print(render_children(app))


def cmd_chores_list(args: argparse.Namespace) -> None:
    app = _open_app(args)
    if not app.chores.chores:
        print("No chores yet. Add one with: tvtime chores add NAME MINUTES")
        return
    for chore in app.chores.chores:
        print(f"{chore.name}  +{chore.time} min")


def cmd_chores_add(args: argparse.Namespace) -> None:
    app = _open_app(args)
    chore = app.chores.add(args.name, args.minutes)
    print(f"Saved chore {chore.name} (+{chore.time} min)")


def cmd_chores_edit(args: argparse.Namespace) -> None:
    app = _open_app(args)
    chore = _require_chore(app, args.name)
    new_name = args.new_name or chore.name
    minutes = args.minutes if args.minutes is not None else chore.time
    app.chores.edit(chore.id, new_name, minutes)
    print(f"Updated chore {new_name} (+{minutes} min)")


def cmd_chores_delete(args: argparse.Namespace) -> None:
    app = _open_app(args)
    chore = _require_chore(app, args.name)
    app.chores.delete(chore.id)
    print(f"Deleted chore {chore.name}")


def cmd_grant_chore(args: argparse.Namespace) -> None:
    app = _open_app(args)
    child = _require_child(app, args.child)
    chore = _require_chore(app, args.chore)
    app.chores.grant(chore.id, child.id)
    print(f"{child.name}: {format_duration(child.time_balance)} (+{chore.time} min for {chore.name})")


def cmd_family_show(args: argparse.Namespace) -> None:
    app = _open_app(args)
    print(app.family_id)


def cmd_family_set(args: argparse.Namespace) -> None:
    setup_logging(args.verbose, args.log_file)
    config = load_config(args.config)
    family_id = set_family_id(LocalStore(config.data_dir), args.family_id)
    print(f"Family ID set to {family_id}. Restart the tracker to connect.")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config.json"),
        help="Path to configuration file",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    common.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file",
    )

    parser = argparse.ArgumentParser(
        description="TV time tracker for the whole family",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[common],
        epilog="""
Examples:
  tvtime                             Run the tracker with live sync
  tvtime add-child Emma              Start tracking a child
  tvtime adjust Emma add 30          Give Emma 30 minutes
  tvtime chores add "Dishes" 15      Create a chore worth 15 minutes
  tvtime grant-chore Emma Dishes     Credit Emma for doing the dishes
  tvtime family set family_123_abc   Join another family's shared record
""",
    )
    parser.set_defaults(func=cmd_run)
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", parents=[common], help="Run the tracker (default)")
    run_parser.set_defaults(func=cmd_run)

    list_parser = subparsers.add_parser("list", parents=[common], help="Show time balances")
    list_parser.set_defaults(func=cmd_list)

    status_parser = subparsers.add_parser("status", parents=[common], help="Show sync status")
    status_parser.set_defaults(func=cmd_status)

    add_parser = subparsers.add_parser("add-child", parents=[common], help="Add a child")
    add_parser.add_argument("name")
    add_parser.set_defaults(func=cmd_add_child)

    remove_parser = subparsers.add_parser("remove-child", parents=[common], help="Remove a child")
    remove_parser.add_argument("name")
    remove_parser.set_defaults(func=cmd_remove_child)

    adjust_parser = subparsers.add_parser("adjust", parents=[common], help="Add or subtract time")
    adjust_parser.add_argument("name")
    adjust_parser.add_argument("direction", choices=[d.value for d in Direction])
    adjust_parser.add_argument("minutes", type=int)
    adjust_parser.set_defaults(func=cmd_adjust)

    bonus_parser = subparsers.add_parser(
        "check-bonus", parents=[common], help="Apply any owed daily bonus now"
    )
    bonus_parser.set_defaults(func=cmd_check_bonus)

    grant_parser = subparsers.add_parser(
        "grant-chore", parents=[common], help="Credit a child for a chore"
    )
    grant_parser.add_argument("child")
    grant_parser.add_argument("chore")
    grant_parser.set_defaults(func=cmd_grant_chore)

    chores_parser = subparsers.add_parser("chores", help="Manage custom chores")
    chores_sub = chores_parser.add_subparsers(dest="chores_command", required=True)

    chores_list = chores_sub.add_parser("list", parents=[common], help="List chores")
    chores_list.set_defaults(func=cmd_chores_list)

    chores_add = chores_sub.add_parser("add", parents=[common], help="Add a chore")
    chores_add.add_argument("name")
    chores_add.add_argument("minutes", type=int, choices=CHORE_TIMES)
    chores_add.set_defaults(func=cmd_chores_add)

    chores_edit = chores_sub.add_parser("edit", parents=[common], help="Edit a chore")
    chores_edit.add_argument("name")
    chores_edit.add_argument("--new-name", default=None)
    chores_edit.add_argument("--minutes", type=int, choices=CHORE_TIMES, default=None)
    chores_edit.set_defaults(func=cmd_chores_edit)

    chores_delete = chores_sub.add_parser("delete", parents=[common], help="Delete a chore")
    chores_delete.add_argument("name")
    chores_delete.set_defaults(func=cmd_chores_delete)

    family_parser = subparsers.add_parser("family", help="Show or change the family ID")
    family_sub = family_parser.add_subparsers(dest="family_command", required=True)

    family_show = family_sub.add_parser("show", parents=[common], help="Print the family ID")
    family_show.set_defaults(func=cmd_family_show)

    family_set = family_sub.add_parser("set", parents=[common], help="Join another family")
    family_set.add_argument("family_id")
    family_set.set_defaults(func=cmd_family_set)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        args.func(args)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
