# Domain Interfaces Package
"""
Abstract base classes defining contracts for infrastructure implementations.
"""

from .publisher_interface import ListingPublisherInterface
from .repository_interface import (
    ArticleRepositoryInterface,
    CredentialStoreInterface,
    JobRepositoryInterface,
)

__all__ = [
    "ArticleRepositoryInterface",
    "CredentialStoreInterface",
    "JobRepositoryInterface",
    "ListingPublisherInterface",
]
