"""
Construction of the Supabase client shared by the repositories.

One client is created by the caller and injected into every repository;
there is no module-level client instance.
"""

from __future__ import annotations

from typing import Any, Dict, List

from supabase import AsyncClient, acreate_client

from easyvinted.utils.config import QueueConfig
from easyvinted.utils.exceptions import ConfigurationError, RepositoryError
from easyvinted.utils.logger import get_logger

logger = get_logger(__name__)


async def create_supabase_client(config: QueueConfig) -> AsyncClient:
    """
    Create an async Supabase client from the queue settings.

    Raises:
        ConfigurationError: If the URL or service role key is missing.
    """
    missing = []
    if not config.supabase_url:
        missing.append("SUPABASE_URL")
    if not config.supabase_key:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")
    if missing:
        raise ConfigurationError(
            f"Missing job queue connection settings: {', '.join(missing)}",
            missing=missing,
        )

    client = await acreate_client(config.supabase_url, config.supabase_key)
    logger.info("Supabase client initialized")
    return client


class SupabaseRepository:
    """Shared plumbing for table-backed repositories."""

    def __init__(self, client: AsyncClient, table: str):
        self.client = client
        self.table_name = table

    def table(self):
        return self.client.table(self.table_name)

    async def _execute(self, query: Any, operation: str) -> List[Dict[str, Any]]:
        """
        Run a PostgREST query and return its rows.

        Raises:
            RepositoryError: If the request fails.
        """
        try:
            response = await query.execute()
        except Exception as e:
            raise RepositoryError(
                f"Failed to {operation}: {e}",
                context={"table": self.table_name},
            ) from e
        return list(response.data or [])
