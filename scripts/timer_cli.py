"""Drive an owner's timer from the command line.

Every invocation recovers the owner's active entry from MongoDB first, so
commands issued by separate processes behave like one long-lived engine.

Usage:
    python scripts/timer_cli.py <owner_id> start --project <project_id> [--task ID] [--description TEXT]
    python scripts/timer_cli.py <owner_id> pause
    python scripts/timer_cli.py <owner_id> resume
    python scripts/timer_cli.py <owner_id> stop
    python scripts/timer_cli.py <owner_id> status
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from worklog.config import settings
from worklog.models.time_entry import EntryType, TimerStart
from worklog.timer.activity import MongoActivityRecorder
from worklog.timer.engine import TimerEngine
from worklog.timer.errors import TimerError
from worklog.timer.gateway import MongoTimeEntryGateway
from worklog.utils.duration import format_duration_label

logger = logging.getLogger("timer_cli")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Control the live time tracking session")
    parser.add_argument("owner_id", help="Owner whose timer to control")
    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Start a timer (stops the current one)")
    start.add_argument("--project", required=True, help="Project ID")
    start.add_argument("--task", default=None, help="Task ID")
    start.add_argument("--description", default="", help="What you are working on")
    start.add_argument(
        "--type",
        default=EntryType.NORMAL.value,
        choices=[t.value for t in EntryType],
        help="Entry type",
    )
    start.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")

    sub.add_parser("pause", help="Pause the running timer")
    sub.add_parser("resume", help="Resume the paused timer")
    sub.add_parser("stop", help="Stop the timer")
    sub.add_parser("status", help="Show the timer")

    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    client = AsyncIOMotorClient(settings.mongodb_url)
    db = client[settings.mongodb_db_name]
    engine = TimerEngine(MongoTimeEntryGateway(db), MongoActivityRecorder(db))

    try:
        await engine.load(args.owner_id)

        if args.command == "start":
            await engine.start(
                args.owner_id,
                TimerStart(
                    project_id=args.project,
                    task_id=args.task,
                    description=args.description,
                    entry_type=args.type,
                    tags=args.tag,
                ),
            )
        elif args.command == "pause":
            await engine.pause()
        elif args.command == "resume":
            await engine.resume()
        elif args.command == "stop":
            entry = await engine.stop()
            if entry is None:
                print("No timer running")
            else:
                print(f"Stopped {entry.id}: {format_duration_label(entry.duration)}")
            return 0

        snapshot = engine.snapshot()
        if not snapshot.is_running:
            print("No timer running")
        else:
            state = "paused" if snapshot.is_paused else "running"
            print(f"{snapshot.session_id} {state} {snapshot.elapsed_clock} (project {snapshot.project_id})")
        return 0
    except TimerError as e:
        logger.error("%s", e)
        return 1
    finally:
        await engine.close()
        client.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    sys.exit(asyncio.run(run(parse_args())))
