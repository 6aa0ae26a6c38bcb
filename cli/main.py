"""TaskRunner CLI -- the `taskrunner` command.

Usage:
    taskrunner run                     Run all pending tasks
    taskrunner run <name> [--force]    Run a single task file
    taskrunner run --tag install       Only run tasks with this tag
    taskrunner list [--status pending] List tasks and their status
    taskrunner make                    Create a new task file interactively
    taskrunner status                  Show home, database and pool status
    taskrunner logs [<name>] [--failed] Show recent execution logs
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from core.config import HOME_ENV_VAR, AppConfig, get_home_dir, load_config
from core.errors import ConfigurationError, TaskNotFoundError


def _load(args: argparse.Namespace) -> AppConfig:
    """Load the config and set up logging; exits 2 on a bad config."""
    from main import setup_logging

    if args.home:
        os.environ[HOME_ENV_VAR] = str(Path(args.home).expanduser())

    try:
        config = load_config(config_path=args.config, env_path=args.env)
    except ConfigurationError as exc:
        print(f"  {exc}")
        sys.exit(2)

    setup_logging(args.log_level or config.logging.level)
    return config


def cmd_run(args: argparse.Namespace) -> None:
    """Run pending tasks, or a single task by name."""
    from main import build_runner

    config = _load(args)

    try:
        runner, store = build_runner(config)
    except ConfigurationError as exc:
        print(f"  {exc}")
        sys.exit(2)

    try:
        if args.force:
            runner.force()
        if args.no_track:
            runner.track_executions(False)

        if args.name:
            summary = runner.run_by_name(args.name)
        else:
            summary = runner.run(tag=args.tag)
    except TaskNotFoundError as exc:
        print(f"  {exc}")
        sys.exit(2)
    finally:
        store.close()

    if args.json:
        print(summary.model_dump_json(indent=2))
    else:
        print()
        print(f"  Executed: {summary.executed_count}")
        for name in summary.executed_files:
            print(f"    {name}")
        print(f"  Skipped:  {summary.skipped_count}")
        print(f"  Errors:   {summary.error_count}")
        for error in summary.errors:
            line = f" (line {error.line})" if error.line is not None else ""
            print(f"    {Path(error.file).name}{line}: {error.message}")
        print()

    sys.exit(0 if summary.success else 1)


def cmd_list(args: argparse.Namespace) -> None:
    """List tasks across pools with their execution status."""
    from cli.listing import HEADERS, apply_filters, build_rows, collect_tasks, format_table
    from core.data.store import Store
    from core.loader import ModuleTaskLoader
    from scheduler.pool import TaskPool

    config = _load(args)

    try:
        pool = TaskPool(config.pools)
    except ConfigurationError as exc:
        print(f"  {exc}")
        sys.exit(2)

    store = Store(config.home_path)
    try:
        loader = ModuleTaskLoader(attribute=config.runner.task_attribute)
        entries = collect_tasks(pool, loader, store)
    finally:
        store.close()

    entries = apply_filters(entries, tag=args.tag, type=args.type, status=args.status)
    if not entries:
        print("  No tasks found.")
        return

    print()
    print(format_table(HEADERS, build_rows(entries)))
    print()
    executed = sum(1 for e in entries if e.executed)
    print(f"  Total: {len(entries)}  Executed: {executed}  Pending: {len(entries) - executed}")
    print()


def cmd_make(args: argparse.Namespace) -> None:
    """Create a new task file interactively."""
    from cli.make import run_make

    config = _load(args)
    run_make(pools=config.pool_paths, home_dir=config.home_path)


def cmd_status(args: argparse.Namespace) -> None:
    """Show home directory, database and pool status."""
    from cli.banner import print_banner
    from core.data.store import Store
    from scheduler.pool import TaskPool

    config = _load(args)
    home = config.home_path
    config_path = Path(args.config) if args.config else get_home_dir() / "config.yaml"
    db_path = home / "db.sqlite"

    print_banner()
    print(f"  Home:     {home}")
    print(f"  Config:   {config_path} ({'exists' if config_path.exists() else 'NOT FOUND'})")
    print(f"  Database: {db_path} ({'exists' if db_path.exists() else 'NOT FOUND'})")
    print(f"  Timezone: {config.scheduler.timezone}")
    print()

    if not config.pools:
        print("  Pools: none configured")
        print()
        return

    store = Store(home)
    try:
        print("  Pools:")
        for path in config.pool_paths:
            if not path.is_dir():
                print(f"    {path} (NOT FOUND)")
                continue
            files = TaskPool([path]).collect()
            pending = sum(1 for f in files if not store.has_executed(f.name))
            print(f"    {path}: {len(files)} files, {pending} pending")

        records = store.list_records()
        failed = store.failed_logs(limit=1)
        print()
        print(f"  Recorded executions: {len(records)}")
        if failed:
            print(f"  Last failure: {failed[0].task_name} at {failed[0].completed_at}")
    finally:
        store.close()
    print()


def cmd_logs(args: argparse.Namespace) -> None:
    """Show recent execution logs."""
    from core.data.store import Store

    config = _load(args)

    store = Store(config.home_path)
    try:
        if args.failed:
            logs = store.failed_logs(limit=args.limit)
            if args.name:
                logs = [log for log in logs if log.task_name == _filename(args.name)]
        elif args.name:
            logs = store.recent_logs(_filename(args.name), limit=args.limit)
        else:
            logs = store.all_logs(limit=args.limit)
    finally:
        store.close()

    if not logs:
        print("  No execution logs.")
        return

    print()
    for log in logs:
        started = log.started_at.strftime("%Y-%m-%d %H:%M:%S") if log.started_at else "-"
        seconds = log.execution_time_seconds
        duration = f"{seconds:.3f}s" if seconds is not None else "-"
        print(f"  [{log.status:9s}] {started}  {log.task_name}  ({duration})")
        if log.error:
            print(f"      {log.error}")
    print()


def _filename(name: str) -> str:
    name = name.strip()
    return name if name.endswith(".py") else f"{name}.py"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="taskrunner",
        description="TaskRunner -- run once and scheduled tasks from task pools",
    )
    parser.add_argument("--home", type=str, default=None, help="TaskRunner home directory")
    parser.add_argument("--config", "-c", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--env", type=str, default=None, help="Path to .env file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default from config)")

    sub = parser.add_subparsers(dest="command")

    # run
    run_parser = sub.add_parser("run", help="Run pending tasks")
    run_parser.add_argument("name", type=str, nargs="?", default=None, help="Task filename (extension optional)")
    run_parser.add_argument("--tag", type=str, default=None, help="Only run tasks with this tag")
    run_parser.add_argument("--force", action="store_true", help="Re-run 'once' tasks that already ran")
    run_parser.add_argument("--no-track", action="store_true", help="Do not read or write execution history")
    run_parser.add_argument("--json", action="store_true", help="Print the run summary as JSON")

    # list
    list_parser = sub.add_parser("list", help="List tasks and their status")
    list_parser.add_argument("--tag", type=str, default=None, help="Filter by tag")
    list_parser.add_argument("--type", type=str, default=None, help="Filter by type (once/always)")
    list_parser.add_argument(
        "--status",
        type=str,
        choices=["executed", "pending"],
        default=None,
        help="Filter by execution status",
    )

    # make
    sub.add_parser("make", help="Create a new task file interactively")

    # status
    sub.add_parser("status", help="Show system status")

    # logs
    logs_parser = sub.add_parser("logs", help="Show recent execution logs")
    logs_parser.add_argument("name", type=str, nargs="?", default=None, help="Task filename")
    logs_parser.add_argument("--failed", action="store_true", help="Only failed executions")
    logs_parser.add_argument("--limit", type=int, default=20, help="Maximum entries to show")

    return parser


def main() -> None:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    commands = {
        "run": cmd_run,
        "list": cmd_list,
        "make": cmd_make,
        "status": cmd_status,
        "logs": cmd_logs,
    }

    handler = commands.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
