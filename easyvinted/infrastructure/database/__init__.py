# Database Package
"""
Supabase (PostgREST) implementations of the storage interfaces.

Example:
    >>> client = await create_supabase_client(config.queue)
    >>> jobs = SupabaseJobRepository(client, config.queue.jobs_table)
    >>> due = await jobs.fetch_due_jobs(get_utc_now(), limit=5)
"""

from .article_repository import SupabaseArticleRepository
from .credential_store import SupabaseCredentialStore
from .job_repository import SupabaseJobRepository
from .supabase_client import SupabaseRepository, create_supabase_client

__all__ = [
    "SupabaseArticleRepository",
    "SupabaseCredentialStore",
    "SupabaseJobRepository",
    "SupabaseRepository",
    "create_supabase_client",
]
