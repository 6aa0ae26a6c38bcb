"""TaskRunner entrypoint -- wires config, history store, loader and runner.

Usage:
    python main.py
    python main.py --config /path/to/config.yaml --tag install
    python main.py --name 2024_11_01_120000_seed --force
"""

from __future__ import annotations

import argparse
import logging
import sys

from core.config import AppConfig, load_config
from core.data.store import Store
from core.errors import ConfigurationError, TaskNotFoundError
from core.loader import ModuleTaskLoader
from core.models.tasks import RunSummary
from scheduler.runner import TaskRunner


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run pending tasks from the configured pools")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.taskrunner/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.taskrunner/.env)",
    )
    parser.add_argument("--tag", type=str, default=None, help="Only run tasks with this tag")
    parser.add_argument("--name", type=str, default=None, help="Run a single task file by name")
    parser.add_argument("--force", action="store_true", help="Re-run 'once' tasks that already ran")
    return parser.parse_args()


def build_runner(config: AppConfig, store: Store | None = None) -> tuple[TaskRunner, Store]:
    """Create the Store and TaskRunner described by the config.

    The caller owns the returned Store and must close it.
    """
    store = store or Store(config.home_path)
    try:
        runner = TaskRunner(
            pools=config.pools,
            history=store,
            loader=ModuleTaskLoader(attribute=config.runner.task_attribute),
            timezone=config.scheduler.timezone,
            capture_output=config.runner.capture_output,
        )
    except ConfigurationError:
        store.close()
        raise

    runner.track_executions(config.runner.track_executions)
    runner.force(config.runner.force)
    return runner, store


def run(
    config_path: str | None = None,
    env_path: str | None = None,
    tag: str | None = None,
    name: str | None = None,
    force: bool | None = None,
    track: bool | None = None,
) -> RunSummary:
    """Load config, run the tasks, and return the summary."""
    config = load_config(config_path=config_path, env_path=env_path)
    logger = logging.getLogger("taskrunner")
    logger.info("Configuration loaded from %s", config.home_path)

    runner, store = build_runner(config)
    try:
        if force is not None:
            runner.force(force)
        if track is not None:
            runner.track_executions(track)

        if name:
            return runner.run_by_name(name)
        return runner.run(tag=tag)
    finally:
        store.close()


def main() -> None:
    args = parse_args()
    setup_logging("INFO")
    try:
        summary = run(
            config_path=args.config,
            env_path=args.env,
            tag=args.tag,
            name=args.name,
            force=args.force or None,
        )
    except (ConfigurationError, TaskNotFoundError) as exc:
        logging.getLogger("taskrunner").error("%s", exc)
        sys.exit(2)

    sys.exit(0 if summary.success else 1)


if __name__ == "__main__":
    main()
