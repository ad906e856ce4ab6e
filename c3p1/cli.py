"""CLI interface for c3p1."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from c3p1.agent.history import conversation_key
from c3p1.app import C3P1App
from c3p1.core.config import Config, load_config_or_default
from c3p1.core.errors import TaskNotFoundError
from c3p1.core.logging import setup_logging
from c3p1.core.timezone import format_for_display
from c3p1.db.database import init_db_manager
from c3p1.db.models import TaskRunStatus

logger = logging.getLogger(__name__)

DEFAULT_CHAT_CHANNEL = "cli"


async def run_init_db(config: Config) -> None:
    """Create all tables."""
    logger.info("Initializing database...")
    db = init_db_manager(config.database.path, echo=config.database.echo)
    try:
        await db.init_db()
        logger.info(f"Database initialized successfully at {config.database.path}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)
    finally:
        await db.close()


async def run_serve(config: Config) -> None:
    """Run the scheduler until SIGINT or SIGTERM."""
    app = C3P1App(config)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler() -> None:
        stop_event.set()

    loop.add_signal_handler(signal.SIGINT, signal_handler)
    loop.add_signal_handler(signal.SIGTERM, signal_handler)

    await app.start()
    try:
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
    finally:
        await app.stop()


async def run_task(config: Config, task_name: str) -> int:
    """Run one registered task now and report its terminal state.

    Returns:
        Process exit code: 0 when the run completed, 1 otherwise.
    """
    app = C3P1App(config)
    await app.db.init_db()
    try:
        run = await app.scheduler.run_now(task_name)
    except TaskNotFoundError as e:
        available = ", ".join(t.name for t in app.scheduler.registered_tasks) or "none"
        logger.error(f"{e} (registered: {available})")
        return 1
    finally:
        await app.stop()

    if run.completed_at:
        finished = format_for_display(run.completed_at, config.scheduler.timezone)
        logger.info(f"Run {run.id} of {task_name} finished at {finished}")
    print(f"Run {run.id} {run.status}: {run.result_summary}")
    return 0 if run.status == TaskRunStatus.COMPLETED else 1


async def run_chat(config: Config, key: str | None) -> None:
    """Answer lines from stdin until EOF."""
    app = C3P1App(config)
    await app.db.init_db()
    key = key or conversation_key(None, DEFAULT_CHAT_CHANNEL, is_dm=True)
    logger.info(f"Chatting in conversation {key}")

    try:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            text = line.strip()
            if not text:
                continue
            reply = await app.assistant.respond(key, text)
            print(reply, flush=True)
    finally:
        await app.stop()


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(description="c3p1 - project-tracking assistant")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file (defaults apply when missing)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("serve", help="Run scheduled tasks until interrupted")

    run_task_parser = subparsers.add_parser("run-task", help="Run a scheduled task immediately")
    run_task_parser.add_argument("name", help="Registered task name")

    chat_parser = subparsers.add_parser("chat", help="Chat with the assistant over stdin")
    chat_parser.add_argument(
        "--key",
        type=str,
        help="Conversation key (default: dm:cli)",
    )

    return parser


async def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    config = load_config_or_default(args.config)
    level = "DEBUG" if args.verbose else config.logging.level
    setup_logging(
        level=level,
        directory=config.logging.directory,
        max_size_mb=config.logging.max_size_mb,
        backup_count=config.logging.backup_count,
    )

    if args.command == "init-db":
        await run_init_db(config)
    elif args.command == "serve":
        await run_serve(config)
    elif args.command == "run-task":
        return await run_task(config, args.name)
    elif args.command == "chat":
        await run_chat(config, args.key)
    return 0


def run() -> None:
    """Entry point for console scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
