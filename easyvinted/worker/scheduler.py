"""
Creation of publication jobs.

Jobs come from two places: a manual trigger for one article, and the
periodic sweep turning due ``scheduled`` articles into pending jobs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

from easyvinted.domain.entities.article import ArticleStatus
from easyvinted.domain.entities.publication_job import PublicationJob
from easyvinted.domain.interfaces.repository_interface import (
    ArticleRepositoryInterface,
    JobRepositoryInterface,
)
from easyvinted.utils.exceptions import ArticleNotFoundError
from easyvinted.utils.logger import get_logger
from easyvinted.utils.timestamps import get_utc_now

logger = get_logger(__name__)


class PublicationScheduler:
    """Enqueue publication jobs without duplicating open ones."""

    def __init__(
        self,
        job_repository: JobRepositoryInterface,
        article_repository: ArticleRepositoryInterface,
        clock: Callable[[], datetime] = get_utc_now,
    ):
        self.job_repository = job_repository
        self.article_repository = article_repository
        self._clock = clock

    async def enqueue_article(
        self,
        article_id: str,
        run_at: Optional[datetime] = None,
    ) -> Optional[PublicationJob]:
        """
        Create a pending job for one article.

        Returns:
            The new job, or None when the article is already listed or
            already has a pending or running job.

        Raises:
            ArticleNotFoundError: If the article does not exist.
        """
        article = await self.article_repository.get_article(article_id)
        if article is None:
            raise ArticleNotFoundError(article_id=article_id)

        if article.status.carries_listing_url:
            logger.warning(f"Article {article_id} is already {article.status.value}, not enqueued")
            return None

        if await self.job_repository.has_open_job(article_id):
            logger.warning(f"Article {article_id} already has an open job, not enqueued")
            return None

        return await self.job_repository.create_job(article_id, run_at or self._clock())

    async def enqueue_scheduled_articles(self, now: Optional[datetime] = None) -> List[PublicationJob]:
        """
        Create jobs for scheduled articles whose time has come.

        Each job runs at the article's ``scheduled_for`` time.
        """
        now = now or self._clock()
        articles = await self.article_repository.list_scheduled_articles(now)
        if not articles:
            logger.info("No articles scheduled for publication at this time")
            return []

        created = []
        for article in articles:
            if article.status != ArticleStatus.SCHEDULED:
                continue
            if await self.job_repository.has_open_job(article.id):
                logger.debug(f"Article {article.id} already queued")
                continue
            job = await self.job_repository.create_job(article.id, article.scheduled_for or now)
            created.append(job)

        logger.info(f"Enqueued {len(created)} of {len(articles)} scheduled article(s)")
        return created
