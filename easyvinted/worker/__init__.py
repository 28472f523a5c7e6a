"""Publication worker: batch job processing, scheduling and the command line."""

from .job_processor import BatchSummary, JobOutcome, JobProcessor, OutcomeStatus
from .scheduler import PublicationScheduler

__all__ = [
    "BatchSummary",
    "JobOutcome",
    "JobProcessor",
    "OutcomeStatus",
    "PublicationScheduler",
]
