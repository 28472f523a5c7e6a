"""
Supabase implementation of article storage.

The publisher only writes publication outcomes: published (URL and
timestamp) or reverted to draft with an error message. Every attempt is
also appended to ``publication_logs``.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from supabase import AsyncClient

from easyvinted.domain.entities.article import Article, ArticleStatus
from easyvinted.domain.interfaces.repository_interface import ArticleRepositoryInterface
from easyvinted.utils.exceptions import RepositoryError
from easyvinted.utils.logger import get_logger
from easyvinted.utils.timestamps import format_timestamp, get_utc_now

from .supabase_client import SupabaseRepository

logger = get_logger(__name__)


class SupabaseArticleRepository(SupabaseRepository, ArticleRepositoryInterface):
    """Articles over the ``articles`` table, history over ``publication_logs``."""

    def __init__(
        self,
        client: AsyncClient,
        table: str = "articles",
        logs_table: str = "publication_logs",
    ):
        super().__init__(client, table)
        self.logs_table = logs_table

    async def get_article(self, article_id: str) -> Optional[Article]:
        rows = await self._execute(
            self.table().select("*").eq("id", article_id).limit(1),
            f"fetch article {article_id}",
        )
        if not rows:
            return None
        return Article.from_record(rows[0])

    async def mark_published(
        self,
        article_id: str,
        vinted_url: str,
        published_at: datetime,
    ) -> None:
        await self._execute(
            self.table().update({
                "status": ArticleStatus.PUBLISHED.value,
                "vinted_url": vinted_url,
                "published_at": format_timestamp(published_at),
                "error_message": None,
                "updated_at": format_timestamp(get_utc_now()),
            }).eq("id", article_id),
            f"mark article {article_id} as published",
        )
        logger.info(f"Article {article_id} marked as published")

    async def mark_failed(self, article_id: str, error_message: str) -> None:
        # Published or sold articles keep their listing
        await self._execute(
            self.table().update({
                "status": ArticleStatus.DRAFT.value,
                "vinted_url": None,
                "error_message": error_message,
                "updated_at": format_timestamp(get_utc_now()),
            })
            .eq("id", article_id)
            .neq("status", ArticleStatus.PUBLISHED.value)
            .neq("status", ArticleStatus.SOLD.value),
            f"mark article {article_id} as failed",
        )
        logger.info(f"Article {article_id} reverted to draft")

    async def list_scheduled_articles(self, now: datetime) -> List[Article]:
        rows = await self._execute(
            self.table()
            .select("*")
            .eq("status", ArticleStatus.SCHEDULED.value)
            .lte("scheduled_for", format_timestamp(now))
            .order("scheduled_for", desc=False),
            "list scheduled articles",
        )
        return [Article.from_record(row) for row in rows]

    async def log_publication_attempt(
        self,
        article_id: str,
        success: bool,
        details: str,
    ) -> None:
        query = self.client.table(self.logs_table).insert({
            "article_id": article_id,
            "success": success,
            "details": details,
            "attempted_at": format_timestamp(get_utc_now()),
        })
        try:
            await self._execute(query, f"log publication attempt for article {article_id}")
        except RepositoryError as e:
            logger.warning(f"Publication history not recorded: {e}")
