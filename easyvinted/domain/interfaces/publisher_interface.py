"""
Abstract interface for listing publishers.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from easyvinted.domain.entities.article import Article

if TYPE_CHECKING:
    from easyvinted.publisher.models import PublicationResult


class ListingPublisherInterface(ABC):
    """
    Abstract base class for components that publish one article.

    Implementations never raise for per-article problems; they report them
    in the returned result instead.
    """

    @abstractmethod
    async def publish(self, article: Article) -> "PublicationResult":
        """
        Publish an article to the marketplace.

        Args:
            article: The article to publish.

        Returns:
            A PublicationResult carrying the listing URL or the error message.
        """
        pass
