"""
PublicationJob entity: one request to publish an article at or after a given time.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from easyvinted.utils.timestamps import parse_timestamp


class JobStatus(str, Enum):
    """pending -> running -> success | failed. Terminal states never change."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.FAILED)


@dataclass
class PublicationJob:
    """A row of the publication job queue."""

    id: str
    article_id: str
    run_at: datetime
    status: JobStatus = JobStatus.PENDING
    vinted_url: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("PublicationJob id cannot be empty")
        if not self.article_id:
            raise ValueError("PublicationJob article_id cannot be empty")
        if not isinstance(self.status, JobStatus):
            self.status = JobStatus(self.status)

    def is_due(self, now: datetime) -> bool:
        """A job is due when it is pending and its scheduled time has arrived."""
        return self.status == JobStatus.PENDING and self.run_at <= now

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PublicationJob":
        """Build a job from a ``publication_jobs`` row."""
        return cls(
            id=str(record["id"]),
            article_id=str(record["article_id"]),
            run_at=parse_timestamp(record["run_at"]),
            status=JobStatus(record.get("status") or JobStatus.PENDING.value),
            vinted_url=record.get("vinted_url"),
            error_message=record.get("error_message"),
            created_at=parse_timestamp(record.get("created_at")),
            updated_at=parse_timestamp(record.get("updated_at")),
        )
