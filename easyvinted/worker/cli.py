"""Command-line interface for the EasyVinted publisher.

Usage:
    python -m easyvinted.worker.cli run
    python -m easyvinted.worker.cli publish <article_id>
    python -m easyvinted.worker.cli setup-session
"""

import argparse
import asyncio
import sys
from collections import Counter
from pathlib import Path
from typing import Optional, Sequence

from easyvinted.domain.entities.credentials import VintedCredentials
from easyvinted.infrastructure.database import (
    SupabaseArticleRepository,
    SupabaseCredentialStore,
    SupabaseJobRepository,
    create_supabase_client,
)
from easyvinted.infrastructure.security import PasswordCipher
from easyvinted.publisher import (
    BrowserSessionManager,
    ListingSubmissionEngine,
    PublicationThrottle,
)
from easyvinted.utils import get_config, get_logger, log_execution_time, parse_timestamp, set_package_log_level
from easyvinted.utils.config import AppConfig
from easyvinted.utils.exceptions import AppException, ConfigError, SessionError

from .job_processor import JobProcessor
from .scheduler import PublicationScheduler

logger = get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="easyvinted",
        description="Publish EasyVinted articles to the Vinted marketplace",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process every due publication job now
  easyvinted run

  # Publish one article immediately, with a visible browser
  easyvinted publish 3f1c9a4e-... --no-headless

  # Log in by hand once and keep the session for later runs
  easyvinted setup-session

  # Queue an article for tomorrow morning
  easyvinted enqueue 3f1c9a4e-... --run-at 2026-10-20T08:00:00+02:00
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to configuration file (default: auto-detect)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Override log level'
    )
    parser.add_argument(
        '--headless',
        dest='headless',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Run the browser without a window (overrides config)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('run', help='Process due publication jobs')

    publish = subparsers.add_parser('publish', help='Publish one article now')
    publish.add_argument('article_id', help='Article identifier')

    subparsers.add_parser('setup-session', help='Log in interactively and save the session')

    enqueue = subparsers.add_parser('enqueue', help='Create a publication job for an article')
    enqueue.add_argument('article_id', help='Article identifier')
    enqueue.add_argument(
        '--run-at',
        type=str,
        default=None,
        help='ISO-8601 time the job becomes due (default: now)'
    )

    subparsers.add_parser('schedule', help='Create jobs for due scheduled articles')

    status = subparsers.add_parser('status', help='Show recent publication jobs')
    status.add_argument('--limit', type=int, default=20, help='Number of jobs to show (default: 20)')

    return parser.parse_args(argv)


# =========================================
# Wiring
# =========================================


def configured_credentials(config: AppConfig) -> Optional[VintedCredentials]:
    """The marketplace account from configuration, if complete."""
    credentials = VintedCredentials(
        email=config.credentials.email or "",
        password=config.credentials.password or "",
    )
    return credentials if credentials.is_complete else None


def build_job_processor(config: AppConfig, client) -> JobProcessor:
    """Assemble a JobProcessor over Supabase repositories and Playwright."""
    credential_store = None
    if config.credentials.encryption_key:
        credential_store = SupabaseCredentialStore(
            client,
            PasswordCipher(config.credentials.encryption_key),
            table=config.queue.settings_table,
        )

    return JobProcessor(
        job_repository=SupabaseJobRepository(client, table=config.queue.jobs_table),
        article_repository=SupabaseArticleRepository(
            client,
            table=config.queue.articles_table,
            logs_table=config.queue.logs_table,
        ),
        session_factory=lambda: BrowserSessionManager(config.vinted),
        publisher_factory=lambda session: ListingSubmissionEngine(session, config.publisher),
        credentials=configured_credentials(config),
        config=config,
        throttle=PublicationThrottle.from_config(config.publisher),
        credential_store=credential_store,
    )


def build_scheduler(config: AppConfig, client) -> PublicationScheduler:
    return PublicationScheduler(
        job_repository=SupabaseJobRepository(client, table=config.queue.jobs_table),
        article_repository=SupabaseArticleRepository(
            client,
            table=config.queue.articles_table,
            logs_table=config.queue.logs_table,
        ),
    )


# =========================================
# Commands
# =========================================


async def cmd_run(args: argparse.Namespace, config: AppConfig) -> int:
    config.require_credentials()
    config.require_queue()

    client = await create_supabase_client(config.queue)
    processor = build_job_processor(config, client)

    with log_execution_time(logger, "publication batch"):
        summary = await processor.run()

    print("\n" + "=" * 60)
    print("PUBLICATION SUMMARY")
    print("=" * 60)
    print(f"Processed: {summary.processed}")
    print(f"Succeeded: {summary.succeeded}")
    print(f"Failed:    {summary.failed}")
    if summary.skipped:
        print(f"Skipped:   {summary.skipped}")
    for outcome in summary.outcomes:
        detail = outcome.vinted_url or outcome.error or ""
        print(f"  [{outcome.status.value}] job {outcome.job_id}: {detail}")
    print("=" * 60)
    return 0


async def cmd_publish(args: argparse.Namespace, config: AppConfig) -> int:
    config.require_queue()
    if not config.credentials.encryption_key:
        config.require_credentials()

    client = await create_supabase_client(config.queue)
    processor = build_job_processor(config, client)
    result = await processor.publish_article(args.article_id)

    if result.success:
        print(f"Published: {result.vinted_url}")
        return 0
    print(f"Publication failed: {result.error}")
    return 1


async def cmd_setup_session(args: argparse.Namespace, config: AppConfig) -> int:
    session = BrowserSessionManager(config.vinted, headless=False)
    async with session:
        saved = await session.capture_session_interactively()

    if saved:
        print(f"Session saved to {session.session_store.path}")
        return 0
    print("Session not saved: still signed out")
    return 1


async def cmd_enqueue(args: argparse.Namespace, config: AppConfig) -> int:
    config.require_queue()
    run_at = parse_timestamp(args.run_at) if args.run_at else None

    client = await create_supabase_client(config.queue)
    job = await build_scheduler(config, client).enqueue_article(args.article_id, run_at=run_at)
    if job is None:
        print(f"Article {args.article_id} not enqueued")
        return 1
    print(f"Created job {job.id} (run_at={job.run_at.isoformat()})")
    return 0


async def cmd_schedule(args: argparse.Namespace, config: AppConfig) -> int:
    config.require_queue()

    client = await create_supabase_client(config.queue)
    jobs = await build_scheduler(config, client).enqueue_scheduled_articles()
    print(f"Enqueued {len(jobs)} job(s)")
    return 0


async def cmd_status(args: argparse.Namespace, config: AppConfig) -> int:
    config.require_queue()

    client = await create_supabase_client(config.queue)
    jobs = await SupabaseJobRepository(client, table=config.queue.jobs_table).list_recent_jobs(limit=args.limit)

    counts = Counter(job.status.value for job in jobs)
    print("=" * 60)
    print(f"LAST {len(jobs)} JOBS: " + ", ".join(f"{status}={count}" for status, count in sorted(counts.items())))
    print("=" * 60)
    for job in jobs:
        detail = job.vinted_url or job.error_message or ""
        print(f"{job.run_at.isoformat()}  {job.status.value:<8} {job.id}  article={job.article_id}  {detail}")
    return 0


COMMANDS = {
    'run': cmd_run,
    'publish': cmd_publish,
    'setup-session': cmd_setup_session,
    'enqueue': cmd_enqueue,
    'schedule': cmd_schedule,
    'status': cmd_status,
}


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        config = get_config(args.config).model_copy(deep=True)
    except (FileNotFoundError, ValueError, ConfigError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    set_package_log_level(args.log_level or config.log_level)
    if args.headless is not None:
        config.vinted.headless = args.headless

    try:
        return await COMMANDS[args.command](args, config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e.message}")
        return 1
    except SessionError as e:
        logger.error(f"Batch aborted, due jobs left pending: {e.message}")
        return 1
    except AppException as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
