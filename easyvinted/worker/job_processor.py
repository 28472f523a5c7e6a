"""
Batch orchestration of due publication jobs.

One run:
1. Fetch pending jobs whose run time has arrived, earliest first
2. Start one browser session and authenticate it once for the batch
3. For each job, strictly one after another: claim it, load its article,
   publish, then record success or failure on the job and the article
4. Close the browser, whatever happened

A failing job never stops the batch. A session that cannot be established
stops the batch before any job is claimed, so untouched jobs stay pending.

Example:
    >>> processor = JobProcessor(jobs, articles, session_factory, publisher_factory,
    ...                          credentials=credentials, config=config)
    >>> summary = await processor.run()
    >>> print(summary)
    BatchSummary(processed=3, succeeded=2, failed=1, skipped=0, duration=95.2s)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from tqdm import tqdm

from easyvinted.domain.entities.article import Article
from easyvinted.domain.entities.credentials import VintedCredentials
from easyvinted.domain.entities.publication_job import PublicationJob
from easyvinted.domain.interfaces.publisher_interface import ListingPublisherInterface
from easyvinted.domain.interfaces.repository_interface import (
    ArticleRepositoryInterface,
    CredentialStoreInterface,
    JobRepositoryInterface,
)
from easyvinted.publisher.browser_session import BrowserSessionManager
from easyvinted.publisher.models import PublicationResult
from easyvinted.publisher.throttle import PublicationThrottle
from easyvinted.utils.config import AppConfig, FailurePolicy
from easyvinted.utils.exceptions import (
    ArticleNotFoundError,
    CredentialError,
    PublicationFailedError,
    RepositoryError,
    SessionError,
    describe_error,
)
from easyvinted.utils.logger import get_logger, log_exception
from easyvinted.utils.timestamps import get_utc_now

logger = get_logger(__name__)

SessionFactory = Callable[[], BrowserSessionManager]
PublisherFactory = Callable[[BrowserSessionManager], ListingPublisherInterface]

JOB_WRITE_ATTEMPTS = 3


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class JobOutcome:
    """What happened to one job during a run."""
    job_id: str
    article_id: str
    status: OutcomeStatus
    vinted_url: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchSummary:
    """
    Aggregate counts for one worker run.

    ``processed`` counts jobs that reached a terminal state in this run;
    ``skipped`` counts jobs another run claimed first.
    """
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: List[JobOutcome] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def start(self) -> None:
        """Mark the start of the run."""
        self.start_time = datetime.now()

    def stop(self) -> None:
        """Mark the end of the run."""
        self.end_time = datetime.now()

    @property
    def duration_seconds(self) -> float:
        """Get run duration in seconds."""
        if not self.start_time:
            return 0.0
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    def record(self, outcome: JobOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
            return
        self.processed += 1
        if outcome.status == OutcomeStatus.SUCCESS:
            self.succeeded += 1
        else:
            self.failed += 1

    def __str__(self) -> str:
        return (
            f"BatchSummary(processed={self.processed}, "
            f"succeeded={self.succeeded}, "
            f"failed={self.failed}, "
            f"skipped={self.skipped}, "
            f"duration={self.duration_seconds:.1f}s)"
        )


class JobProcessor:
    """
    Publish due jobs through one shared browser session.

    Attributes:
        job_repository: The publication job queue.
        article_repository: Article storage.
        credentials: Marketplace account used when the saved session is stale.
        config: Application configuration.
        throttle: Pause between two publications, or None.
    """

    def __init__(
        self,
        job_repository: JobRepositoryInterface,
        article_repository: ArticleRepositoryInterface,
        session_factory: SessionFactory,
        publisher_factory: PublisherFactory,
        credentials: Optional[VintedCredentials] = None,
        config: Optional[AppConfig] = None,
        throttle: Optional[PublicationThrottle] = None,
        credential_store: Optional[CredentialStoreInterface] = None,
        clock: Callable[[], datetime] = get_utc_now,
    ):
        self.job_repository = job_repository
        self.article_repository = article_repository
        self.credentials = credentials
        self.config = config or AppConfig()
        self.throttle = throttle
        self.credential_store = credential_store
        self._session_factory = session_factory
        self._publisher_factory = publisher_factory
        self._clock = clock

    # =========================================
    # Batch
    # =========================================

    async def run(self) -> BatchSummary:
        """
        Process every due job once.

        Raises:
            SessionError: If the browser session cannot be established.
            RepositoryError: If the due jobs cannot be fetched.
        """
        summary = BatchSummary()
        summary.start()

        limit = self.config.publisher.max_articles_per_run
        jobs = await self.job_repository.fetch_due_jobs(self._clock(), limit)
        if not jobs:
            logger.info("No pending jobs found")
            summary.stop()
            return summary

        logger.info(f"Found {len(jobs)} due job(s)")
        session = self._session_factory()
        try:
            await self._open_session(session, self.credentials)
            publisher = self._publisher_factory(session)

            progress = tqdm(
                jobs,
                desc="Publishing",
                unit="job",
                disable=not self.config.publisher.show_progress,
            )
            for index, job in enumerate(progress):
                outcome = await self.process_job(job, publisher)
                summary.record(outcome)

                is_last = index == len(jobs) - 1
                if self.throttle is not None and not is_last and outcome.status != OutcomeStatus.SKIPPED:
                    await self.throttle.wait()
        finally:
            await session.close()
            summary.stop()

        logger.info(f"Batch finished: {summary}")
        return summary

    async def _open_session(
        self,
        session: BrowserSessionManager,
        credentials: Optional[VintedCredentials],
    ) -> None:
        """Initialize and authenticate the session, or fail the whole batch."""
        try:
            await session.initialize()
            await session.ensure_authenticated(credentials)
        except SessionError:
            raise
        except Exception as e:
            raise SessionError(
                f"Could not establish marketplace session: {describe_error(e)}"
            ) from e

    # =========================================
    # Single job
    # =========================================

    async def process_job(
        self,
        job: PublicationJob,
        publisher: ListingPublisherInterface,
    ) -> JobOutcome:
        """
        Claim, publish and record one job. Never raises for per-job problems.
        """
        logger.info(f"Processing job {job.id} (article {job.article_id})")

        try:
            claimed = await self.job_repository.claim_job(job.id)
        except RepositoryError as e:
            log_exception(logger, f"claim job {job.id}", e)
            return JobOutcome(job.id, job.article_id, OutcomeStatus.SKIPPED, error=describe_error(e))

        if not claimed:
            logger.warning(f"Job {job.id} was claimed by another run, skipping")
            return JobOutcome(job.id, job.article_id, OutcomeStatus.SKIPPED)

        try:
            article = await self._load_article(job.article_id)
            logger.info(f"Article loaded: {article.title!r} ({' > '.join(article.category_path) or 'no category'})")
            result = await publisher.publish(article)
            if not result.success:
                raise PublicationFailedError(result.error or "Unknown publication error", article_id=article.id)
        except Exception as e:
            message = describe_error(e)
            logger.error(f"Job {job.id} failed: {message}")
            await self._record_failure(job, message)
            return JobOutcome(job.id, job.article_id, OutcomeStatus.FAILED, error=message)

        await self._record_success(job, result.vinted_url)
        logger.info(f"Job {job.id} completed successfully")
        return JobOutcome(job.id, job.article_id, OutcomeStatus.SUCCESS, vinted_url=result.vinted_url)

    async def _load_article(self, article_id: str) -> Article:
        article = await self.article_repository.get_article(article_id)
        if article is None:
            raise ArticleNotFoundError(article_id=article_id)
        return article

    async def _record_success(self, job: PublicationJob, vinted_url: str) -> None:
        # The listing exists on the marketplace; a failed write only loses bookkeeping
        try:
            await self.article_repository.mark_published(job.article_id, vinted_url, self._clock())
        except RepositoryError as e:
            log_exception(logger, f"mark article {job.article_id} as published at {vinted_url}", e)

        await self._finish_published_job(job, vinted_url)
        await self.article_repository.log_publication_attempt(job.article_id, True, vinted_url)

    async def _finish_published_job(self, job: PublicationJob, vinted_url: str) -> None:
        """Move a published job out of ``running``, falling back to ``failed`` when success cannot be written."""
        for attempt in range(1, JOB_WRITE_ATTEMPTS + 1):
            try:
                await self.job_repository.mark_succeeded(job.id, vinted_url)
                return
            except RepositoryError as e:
                logger.warning(
                    f"Recording success of job {job.id} failed "
                    f"(attempt {attempt}/{JOB_WRITE_ATTEMPTS}): {describe_error(e)}"
                )

        message = f"Published as {vinted_url} but the success could not be recorded"
        try:
            await self.job_repository.mark_failed(job.id, message)
            logger.error(f"Job {job.id}: {message}")
        except RepositoryError as e:
            log_exception(logger, f"close job {job.id} published at {vinted_url}", e)

    async def _record_failure(self, job: PublicationJob, message: str) -> None:
        try:
            await self.job_repository.mark_failed(job.id, message)
        except RepositoryError as e:
            log_exception(logger, f"mark job {job.id} as failed", e)

        await self._apply_failure_policy(job.article_id, message)
        await self.article_repository.log_publication_attempt(job.article_id, False, message)

    async def _apply_failure_policy(self, article_id: str, message: str) -> None:
        if self.config.publisher.failure_policy != FailurePolicy.REVERT_TO_DRAFT:
            logger.debug(f"Article {article_id} left unchanged after failure")
            return
        try:
            await self.article_repository.mark_failed(article_id, message)
        except RepositoryError as e:
            log_exception(logger, f"revert article {article_id} to draft", e)

    # =========================================
    # Single article (no job row)
    # =========================================

    async def publish_article(self, article_id: str) -> PublicationResult:
        """
        Publish one article immediately, outside the job queue.

        Credentials come from the credential store for the article's owner
        when available, otherwise from the configured account.

        Raises:
            ArticleNotFoundError: If the article does not exist.
            SessionError: If the browser session cannot be established.
        """
        article = await self._load_article(article_id)
        credentials = await self._credentials_for(article)

        session = self._session_factory()
        try:
            await self._open_session(session, credentials)
            result = await self._publisher_factory(session).publish(article)
        finally:
            await session.close()

        if result.success:
            try:
                await self.article_repository.mark_published(article.id, result.vinted_url, self._clock())
            except RepositoryError as e:
                log_exception(logger, f"record publication of article {article.id} at {result.vinted_url}", e)
            await self.article_repository.log_publication_attempt(article.id, True, result.vinted_url)
        else:
            await self._apply_failure_policy(article.id, result.error)
            await self.article_repository.log_publication_attempt(article.id, False, result.error)

        return result

    async def _credentials_for(self, article: Article) -> Optional[VintedCredentials]:
        if self.credential_store is not None and article.user_id:
            try:
                stored = await self.credential_store.get_credentials(article.user_id)
            except (CredentialError, RepositoryError) as e:
                logger.warning(f"Stored credentials of user {article.user_id} unusable: {describe_error(e)}")
                stored = None
            if stored is not None:
                logger.info(f"Using stored credentials of user {article.user_id}")
                return stored
        return self.credentials
