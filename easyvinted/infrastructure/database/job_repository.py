"""
Supabase implementation of the publication job queue.

Table ``publication_jobs``: id, article_id, status, run_at, vinted_url,
error_message, created_at, updated_at.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from supabase import AsyncClient

from easyvinted.domain.entities.publication_job import JobStatus, PublicationJob
from easyvinted.domain.interfaces.repository_interface import JobRepositoryInterface
from easyvinted.utils.exceptions import RepositoryError
from easyvinted.utils.logger import get_logger
from easyvinted.utils.timestamps import format_timestamp, get_utc_now

from .supabase_client import SupabaseRepository

logger = get_logger(__name__)


class SupabaseJobRepository(SupabaseRepository, JobRepositoryInterface):
    """Job queue over the ``publication_jobs`` table."""

    def __init__(self, client: AsyncClient, table: str = "publication_jobs"):
        super().__init__(client, table)

    async def fetch_due_jobs(self, now: datetime, limit: int) -> List[PublicationJob]:
        rows = await self._execute(
            self.table()
            .select("*")
            .eq("status", JobStatus.PENDING.value)
            .lte("run_at", format_timestamp(now))
            .order("run_at", desc=False)
            .limit(limit),
            "fetch due jobs",
        )
        jobs = [PublicationJob.from_record(row) for row in rows]
        logger.debug(f"Fetched {len(jobs)} due job(s)")
        return jobs

    async def _transition(
        self,
        job_id: str,
        expected: JobStatus,
        target: JobStatus,
        **fields,
    ) -> bool:
        """Conditional status update; True if the row was in ``expected``."""
        payload = {"status": target.value, "updated_at": format_timestamp(get_utc_now())}
        payload.update(fields)
        rows = await self._execute(
            self.table().update(payload).eq("id", job_id).eq("status", expected.value),
            f"move job {job_id} to {target.value}",
        )
        if not rows:
            logger.warning(f"Job {job_id} was not {expected.value}, left unchanged")
            return False
        logger.info(f"Job {job_id} updated to status: {target.value}")
        return True

    async def claim_job(self, job_id: str) -> bool:
        return await self._transition(job_id, JobStatus.PENDING, JobStatus.RUNNING)

    async def mark_succeeded(self, job_id: str, vinted_url: str) -> bool:
        return await self._transition(
            job_id,
            JobStatus.RUNNING,
            JobStatus.SUCCESS,
            vinted_url=vinted_url,
            error_message=None,
        )

    async def mark_failed(self, job_id: str, error_message: str) -> bool:
        return await self._transition(
            job_id,
            JobStatus.RUNNING,
            JobStatus.FAILED,
            error_message=error_message,
        )

    async def create_job(self, article_id: str, run_at: datetime) -> PublicationJob:
        now = format_timestamp(get_utc_now())
        rows = await self._execute(
            self.table().insert({
                "article_id": article_id,
                "status": JobStatus.PENDING.value,
                "run_at": format_timestamp(run_at),
                "created_at": now,
                "updated_at": now,
            }),
            f"create job for article {article_id}",
        )
        if not rows:
            raise RepositoryError(
                f"Job insert for article {article_id} returned no row",
                context={"table": self.table_name},
            )
        job = PublicationJob.from_record(rows[0])
        logger.info(f"Created job {job.id} for article {article_id} (run_at={job.run_at.isoformat()})")
        return job

    async def has_open_job(self, article_id: str) -> bool:
        rows = await self._execute(
            self.table()
            .select("id")
            .eq("article_id", article_id)
            .in_("status", [JobStatus.PENDING.value, JobStatus.RUNNING.value])
            .limit(1),
            f"look up open jobs of article {article_id}",
        )
        return bool(rows)

    async def list_recent_jobs(
        self,
        limit: int = 20,
        status: Optional[JobStatus] = None,
    ) -> List[PublicationJob]:
        query = self.table().select("*")
        if status is not None:
            query = query.eq("status", status.value)
        rows = await self._execute(
            query.order("created_at", desc=True).limit(limit),
            "list recent jobs",
        )
        return [PublicationJob.from_record(row) for row in rows]
