"""
Abstract interfaces for the job queue, article storage and credential store.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from easyvinted.domain.entities.article import Article
from easyvinted.domain.entities.credentials import VintedCredentials
from easyvinted.domain.entities.publication_job import JobStatus, PublicationJob


class JobRepositoryInterface(ABC):
    """
    Abstract base class for the publication job queue.

    Status writes are conditional on the current status so that terminal
    states are set once and concurrent runs cannot claim the same job.
    """

    @abstractmethod
    async def fetch_due_jobs(self, now: datetime, limit: int) -> List[PublicationJob]:
        """
        Fetch pending jobs whose run time has arrived.

        Args:
            now: Reference time.
            limit: Maximum number of jobs to return.

        Returns:
            Jobs ordered by run_at ascending.
        """
        pass

    @abstractmethod
    async def claim_job(self, job_id: str) -> bool:
        """
        Atomically flip a job from pending to running.

        Returns:
            True if this caller claimed the job, False if it was no longer pending.
        """
        pass

    @abstractmethod
    async def mark_succeeded(self, job_id: str, vinted_url: str) -> bool:
        """
        Move a running job to success with its listing URL.

        Returns:
            True if the row was updated.
        """
        pass

    @abstractmethod
    async def mark_failed(self, job_id: str, error_message: str) -> bool:
        """
        Move a running job to failed with a human-readable message.

        Returns:
            True if the row was updated.
        """
        pass

    @abstractmethod
    async def create_job(self, article_id: str, run_at: datetime) -> PublicationJob:
        """Insert a new pending job for an article."""
        pass

    @abstractmethod
    async def has_open_job(self, article_id: str) -> bool:
        """Return True if the article already has a pending or running job."""
        pass

    @abstractmethod
    async def list_recent_jobs(
        self,
        limit: int = 20,
        status: Optional[JobStatus] = None,
    ) -> List[PublicationJob]:
        """List jobs, most recently created first."""
        pass


class ArticleRepositoryInterface(ABC):
    """
    Abstract base class for article storage.

    The publisher only reads articles and writes publication outcomes.
    """

    @abstractmethod
    async def get_article(self, article_id: str) -> Optional[Article]:
        """
        Retrieve an article by ID.

        Returns:
            The Article if found, None otherwise.
        """
        pass

    @abstractmethod
    async def mark_published(
        self,
        article_id: str,
        vinted_url: str,
        published_at: datetime,
    ) -> None:
        """Record a successful publication on the article."""
        pass

    @abstractmethod
    async def mark_failed(self, article_id: str, error_message: str) -> None:
        """Revert the article to draft and record the failure message."""
        pass

    @abstractmethod
    async def list_scheduled_articles(self, now: datetime) -> List[Article]:
        """Articles in status scheduled whose scheduled time has arrived."""
        pass

    @abstractmethod
    async def log_publication_attempt(
        self,
        article_id: str,
        success: bool,
        details: str,
    ) -> None:
        """Append an entry to the publication history. Must not raise."""
        pass


class CredentialStoreInterface(ABC):
    """Abstract base class for per-user marketplace credentials."""

    @abstractmethod
    async def get_credentials(self, user_id: str) -> Optional[VintedCredentials]:
        """
        Fetch and decrypt the marketplace credentials of a user.

        Returns:
            The credentials, or None if the user has none stored.
        """
        pass
