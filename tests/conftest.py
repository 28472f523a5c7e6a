"""Pytest fixtures and in-memory doubles for EasyVinted tests."""

import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from easyvinted.domain.entities.article import Article, ArticleStatus
from easyvinted.domain.entities.credentials import VintedCredentials
from easyvinted.domain.entities.publication_job import JobStatus, PublicationJob
from easyvinted.domain.interfaces.publisher_interface import ListingPublisherInterface
from easyvinted.domain.interfaces.repository_interface import (
    ArticleRepositoryInterface,
    JobRepositoryInterface,
)
from easyvinted.publisher.models import PublicationResult
from easyvinted.utils.config import (
    AppConfig,
    CredentialsConfig,
    PublisherConfig,
    QueueConfig,
    VintedConfig,
    reset_config,
)


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


# ============================================
# In-memory queue doubles
# ============================================


class InMemoryJobRepository(JobRepositoryInterface):
    """Job queue kept in a dict, with the same conditional transitions."""

    def __init__(self, jobs: Optional[List[PublicationJob]] = None):
        self.jobs: Dict[str, PublicationJob] = {job.id: job for job in jobs or []}
        self.fetch_calls = 0
        self._ids = itertools.count(1)

    def status_of(self, job_id: str) -> JobStatus:
        return self.jobs[job_id].status

    async def fetch_due_jobs(self, now, limit):
        self.fetch_calls += 1
        due = [job for job in self.jobs.values() if job.is_due(now)]
        due.sort(key=lambda job: job.run_at)
        return [PublicationJob(**vars(job)) for job in due[:limit]]

    def _transition(self, job_id, expected, target, **fields):
        job = self.jobs.get(job_id)
        if job is None or job.status != expected:
            return False
        job.status = target
        for key, value in fields.items():
            setattr(job, key, value)
        job.updated_at = NOW
        return True

    async def claim_job(self, job_id):
        return self._transition(job_id, JobStatus.PENDING, JobStatus.RUNNING)

    async def mark_succeeded(self, job_id, vinted_url):
        return self._transition(job_id, JobStatus.RUNNING, JobStatus.SUCCESS, vinted_url=vinted_url)

    async def mark_failed(self, job_id, error_message):
        return self._transition(job_id, JobStatus.RUNNING, JobStatus.FAILED, error_message=error_message)

    async def create_job(self, article_id, run_at):
        job = PublicationJob(id=f"job-new-{next(self._ids)}", article_id=article_id, run_at=run_at)
        self.jobs[job.id] = job
        return job

    async def has_open_job(self, article_id):
        return any(
            job.article_id == article_id and job.status in (JobStatus.PENDING, JobStatus.RUNNING)
            for job in self.jobs.values()
        )

    async def list_recent_jobs(self, limit=20, status=None):
        jobs = [job for job in self.jobs.values() if status is None or job.status == status]
        return jobs[:limit]


class InMemoryArticleRepository(ArticleRepositoryInterface):
    """Article storage kept in a dict, plus the publication history."""

    def __init__(self, articles: Optional[List[Article]] = None):
        self.articles: Dict[str, Article] = {article.id: article for article in articles or []}
        self.history: List[tuple] = []

    async def get_article(self, article_id):
        return self.articles.get(article_id)

    async def mark_published(self, article_id, vinted_url, published_at):
        article = self.articles[article_id]
        article.vinted_url = vinted_url
        article.status = ArticleStatus.PUBLISHED
        article.published_at = published_at
        article.error_message = None

    async def mark_failed(self, article_id, error_message):
        article = self.articles.get(article_id)
        if article is None or article.status.carries_listing_url:
            return
        article.status = ArticleStatus.DRAFT
        article.vinted_url = None
        article.error_message = error_message

    async def list_scheduled_articles(self, now):
        return [
            article for article in self.articles.values()
            if article.status == ArticleStatus.SCHEDULED
            and article.scheduled_for is not None
            and article.scheduled_for <= now
        ]

    async def log_publication_attempt(self, article_id, success, details):
        self.history.append((article_id, success, details))


class ScriptedPublisher(ListingPublisherInterface):
    """Publisher whose outcome per article is scripted by the test."""

    def __init__(self, script: Optional[Dict[str, object]] = None):
        self.script = script or {}
        self.calls: List[str] = []

    async def publish(self, article):
        self.calls.append(article.id)
        outcome = self.script.get(article.id, f"https://www.vinted.fr/items/{len(self.calls)}00")
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, PublicationResult):
            return outcome
        return PublicationResult.succeeded(article.id, outcome)


def make_session_double(
    authenticated: bool = True,
    initialize_error: Optional[BaseException] = None,
) -> MagicMock:
    """BrowserSessionManager stand-in recording lifecycle calls."""
    session = MagicMock(name="BrowserSessionManager")
    session.initialize = AsyncMock(side_effect=initialize_error)
    session.ensure_authenticated = AsyncMock(return_value=authenticated)
    session.close = AsyncMock()
    return session


# ============================================
# Fixtures
# ============================================


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Keep environment overrides and cached config out of tests."""
    for name in (
        "VINTED_EMAIL", "VINTED_PASSWORD", "ENCRYPTION_KEY", "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY", "HEADLESS", "VINTED_SESSION_PATH",
        "MAX_ARTICLES_PER_RUN", "DELAY_BETWEEN_POSTS_MS", "LOG_LEVEL", "EASYVINTED_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def test_config(tmp_path) -> AppConfig:
    """Configuration with no delays, no progress bar and a temp session file."""
    return AppConfig(
        vinted=VintedConfig(session_file=str(tmp_path / "session.json")),
        publisher=PublisherConfig(
            delay_between_posts_ms=0,
            form_settle_ms=0,
            upload_settle_ms=0,
            readiness_timeout_ms=0,
            temp_dir=str(tmp_path / "photos"),
            validate_photos=False,
            show_progress=False,
        ),
        queue=QueueConfig(supabase_url="https://example.supabase.co", supabase_key="service-key"),
        credentials=CredentialsConfig(email="seller@example.com", password="s3cret"),
        log_level="DEBUG",
    )


@pytest.fixture
def credentials() -> VintedCredentials:
    return VintedCredentials(email="seller@example.com", password="s3cret")


@pytest.fixture
def make_article() -> Callable[..., Article]:
    """Factory for valid articles."""
    def _make(article_id: str = "article-1", **overrides) -> Article:
        fields = dict(
            id=article_id,
            user_id="user-1",
            title="Robe Zara fleurie",
            description="Robe légère portée deux fois",
            price=Decimal("12.50"),
            brand="Zara",
            size="M",
            condition="very_good",
            main_category="Femmes",
            subcategory="Robes",
            color="Bleu",
            photos=["https://cdn.example.com/photos/robe-1.jpg"],
            status=ArticleStatus.READY,
        )
        fields.update(overrides)
        return Article(**fields)
    return _make


@pytest.fixture
def make_job() -> Callable[..., PublicationJob]:
    """Factory for pending jobs due at NOW unless told otherwise."""
    def _make(job_id: str, article_id: str, run_at: Optional[datetime] = None, **overrides) -> PublicationJob:
        return PublicationJob(
            id=job_id,
            article_id=article_id,
            run_at=run_at or NOW - timedelta(minutes=5),
            created_at=NOW - timedelta(hours=1),
            **overrides,
        )
    return _make


@pytest.fixture
def sample_photo_bytes(tmp_path) -> bytes:
    """A small valid JPEG."""
    path = tmp_path / "sample.jpg"
    Image.new("RGB", (200, 200), color=(200, 30, 30)).save(path, format="JPEG")
    return path.read_bytes()
