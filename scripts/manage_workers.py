"""
Worker management utilities for ``SCHEDULER_MODE=celery``.
"""

import asyncio
import json
import subprocess
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

CELERY_APP = "engagehub.core.celery_app"


def start_worker(concurrency: int = 2, queues: str = "engagement"):
    """Start Celery worker."""
    cmd = [
        "celery", "-A", CELERY_APP,
        "worker",
        "--loglevel=info",
        f"--concurrency={concurrency}",
        f"--queues={queues}",
    ]

    print(f"Starting worker with command: {' '.join(cmd)}")
    subprocess.run(cmd)


def start_beat():
    """Start Celery beat (sync-comments, auto-reply, generate-leads)."""
    cmd = [
        "celery", "-A", CELERY_APP,
        "beat",
        "--loglevel=info",
    ]

    print(f"Starting beat scheduler: {' '.join(cmd)}")
    subprocess.run(cmd)


def purge_queue(queue: str = "engagement"):
    """Purge all pending sweeps from a queue."""
    cmd = [
        "celery", "-A", CELERY_APP,
        "purge",
        "-Q", queue,
        "-f",  # Force, no confirmation
    ]

    print(f"Purging queue: {queue}")
    subprocess.run(cmd)


def run_once(job_name: str):
    """Run one sweep in this process, without a broker."""
    from engagehub.features.scheduling.tasks import _run_job

    result = asyncio.run(_run_job(job_name))
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage engagement workers")
    parser.add_argument("command", choices=["worker", "beat", "purge", "run"])
    parser.add_argument("--concurrency", type=int, default=2)
    parser.add_argument("--queues", default="engagement")
    parser.add_argument("--queue", default="engagement", help="Queue to purge")
    parser.add_argument(
        "--job",
        default="auto_reply",
        choices=["sync_comments", "auto_reply", "generate_leads"],
        help="Job to run with the 'run' command",
    )

    args = parser.parse_args()

    if args.command == "worker":
        start_worker(args.concurrency, args.queues)
    elif args.command == "beat":
        start_beat()
    elif args.command == "purge":
        purge_queue(args.queue)
    elif args.command == "run":
        run_once(args.job)
