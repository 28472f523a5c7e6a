# Domain Entities Package
"""
Core business entities of the publication pipeline.
"""

from .article import Article, ArticleStatus, Condition
from .credentials import VintedCredentials
from .publication_job import JobStatus, PublicationJob

__all__ = [
    "Article",
    "ArticleStatus",
    "Condition",
    "JobStatus",
    "PublicationJob",
    "VintedCredentials",
]
