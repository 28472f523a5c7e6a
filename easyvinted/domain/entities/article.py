"""
Article entity: one second-hand item listing, published or not.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from easyvinted.utils.timestamps import format_timestamp, parse_timestamp


class ArticleStatus(str, Enum):
    """Lifecycle of an article: draft -> ready -> (scheduled) -> published -> sold."""

    DRAFT = "draft"
    READY = "ready"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    SOLD = "sold"

    @property
    def carries_listing_url(self) -> bool:
        return self in (ArticleStatus.PUBLISHED, ArticleStatus.SOLD)


class Condition(str, Enum):
    """Item condition, from new with tag down to satisfactory."""

    NEW_WITH_TAG = "new_with_tag"
    NEW_WITHOUT_TAG = "new_without_tag"
    VERY_GOOD = "very_good"
    GOOD = "good"
    SATISFACTORY = "satisfactory"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Condition"]:
        """Parse a stored condition, accepting the plural ``*_tags`` spellings."""
        if value is None or value == "":
            return None
        normalized = value.strip().lower().replace("-", "_")
        aliases = {
            "new_with_tags": cls.NEW_WITH_TAG.value,
            "new_without_tags": cls.NEW_WITHOUT_TAG.value,
        }
        return cls(aliases.get(normalized, normalized))


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid article price: {value!r}") from e


@dataclass
class Article:
    """A listing record consumed by the publisher.

    ``photos`` keeps the upload order; entries are expected to be remote URLs.
    ``price`` is None when the row has no price; such an article cannot be listed.
    """

    id: str
    user_id: str
    title: str
    price: Optional[Decimal]
    description: str = ""
    brand: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[Condition] = None
    main_category: Optional[str] = None
    subcategory: Optional[str] = None
    item_category: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    photos: List[str] = field(default_factory=list)
    status: ArticleStatus = ArticleStatus.DRAFT
    vinted_url: Optional[str] = None
    published_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        """Normalize field types and check the listing URL invariant."""
        if not self.id:
            raise ValueError("Article id cannot be empty")
        if self.price is not None:
            self.price = _to_decimal(self.price)
        if self.price is not None and self.price < 0:
            raise ValueError("Article price cannot be negative")
        if not isinstance(self.status, ArticleStatus):
            self.status = ArticleStatus(self.status)
        if self.condition is not None and not isinstance(self.condition, Condition):
            self.condition = Condition.parse(self.condition)

        if self.status == ArticleStatus.PUBLISHED and not self.vinted_url:
            raise ValueError(f"Published article {self.id} must have a vinted_url")
        if not self.status.carries_listing_url and self.vinted_url:
            raise ValueError(
                f"Article {self.id} with status '{self.status.value}' cannot carry a vinted_url"
            )

    @property
    def category_path(self) -> List[str]:
        """Non-empty category levels, from main category to item category."""
        levels = [self.main_category, self.subcategory, self.item_category]
        return [level for level in levels if level]

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Article":
        """Build an article from an ``articles`` row."""
        return cls(
            id=str(record["id"]),
            user_id=str(record.get("user_id") or ""),
            title=record.get("title") or "",
            price=record.get("price"),
            description=record.get("description") or "",
            brand=record.get("brand"),
            size=record.get("size"),
            condition=Condition.parse(record.get("condition")),
            main_category=record.get("main_category"),
            subcategory=record.get("subcategory"),
            item_category=record.get("item_category"),
            color=record.get("color"),
            material=record.get("material"),
            photos=list(record.get("photos") or []),
            status=ArticleStatus(record.get("status") or ArticleStatus.DRAFT.value),
            vinted_url=record.get("vinted_url"),
            published_at=parse_timestamp(record.get("published_at")),
            scheduled_for=parse_timestamp(record.get("scheduled_for")),
            error_message=record.get("error_message"),
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the ``articles`` row format."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "brand": self.brand,
            "size": self.size,
            "condition": self.condition.value if self.condition else None,
            "main_category": self.main_category,
            "subcategory": self.subcategory,
            "item_category": self.item_category,
            "price": str(self.price) if self.price is not None else None,
            "color": self.color,
            "material": self.material,
            "photos": list(self.photos),
            "status": self.status.value,
            "vinted_url": self.vinted_url,
            "published_at": format_timestamp(self.published_at),
            "scheduled_for": format_timestamp(self.scheduled_for),
            "error_message": self.error_message,
        }
