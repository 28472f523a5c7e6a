"""
Declarative mapping from article attributes to the Vinted listing form.

Each entry names the marketplace form field, the article attribute feeding
it, the locator candidates tried in order, and how the value is written.
The listing engine executes the mapping top to bottom; category levels
come before size because the size list depends on the chosen category.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from easyvinted.domain.entities.article import Article, Condition

from .utils import format_price


class FieldAction(str, Enum):
    """How a value is written into a located element."""

    FILL = "fill"
    SELECT_LABEL = "select_label"
    # <select> gets select-by-label, anything else gets fill
    AUTO = "auto"


# Labels shown by the French marketplace for each condition
CONDITION_LABELS = {
    Condition.NEW_WITH_TAG: "Neuf avec étiquette",
    Condition.NEW_WITHOUT_TAG: "Neuf sans étiquette",
    Condition.VERY_GOOD: "Très bon état",
    Condition.GOOD: "Bon état",
    Condition.SATISFACTORY: "Satisfaisant",
}


def condition_label(condition: Optional[Condition]) -> Optional[str]:
    if condition is None:
        return None
    return CONDITION_LABELS[condition]


@dataclass(frozen=True)
class FieldMapping:
    """
    One form field of the listing page.

    Attributes:
        name: Marketplace form field name.
        attribute: Article attribute providing the value.
        selectors: Locator candidates, first visible one wins.
        action: How the value is written.
        required: Whether a missing field fails the publication.
        transform: Converts the attribute value to the text written.
        settle_ms: Pause after writing, for fields that re-render the form.
    """

    name: str
    attribute: str
    selectors: Tuple[str, ...]
    action: FieldAction = FieldAction.FILL
    required: bool = False
    transform: Optional[Callable[[Any], Optional[str]]] = None
    settle_ms: int = 0

    def value_for(self, article: Article) -> Optional[str]:
        """Text to write for this article, or None when there is nothing to write."""
        raw = getattr(article, self.attribute)
        value = self.transform(raw) if self.transform and raw is not None else raw
        if value is None:
            return None
        text = str(value)
        return text if text.strip() else None


VINTED_FORM_FIELDS: Tuple[FieldMapping, ...] = (
    FieldMapping(
        name="title",
        attribute="title",
        selectors=('input[name="title"]', 'input[id*="title"]', 'input[placeholder*="Titre"]'),
        required=True,
    ),
    FieldMapping(
        name="description",
        attribute="description",
        selectors=(
            'textarea[name="description"]',
            'textarea[id*="description"]',
            'textarea[placeholder*="Description"]',
        ),
    ),
    FieldMapping(
        name="brand",
        attribute="brand",
        selectors=('input[name="brand"]', 'input[id*="brand"]', 'input[placeholder*="Marque"]'),
    ),
    FieldMapping(
        name="catalog_id",
        attribute="main_category",
        selectors=(
            'select[name="catalog_id"]',
            'select[id*="catalog"]',
            'select[name="category"]',
            '[data-testid="category-select"]',
        ),
        action=FieldAction.SELECT_LABEL,
        settle_ms=1000,
    ),
    FieldMapping(
        name="category_id",
        attribute="subcategory",
        selectors=(
            'select[name="category_id"]',
            'select[id*="subcategory"]',
            '[data-testid="subcategory-select"]',
        ),
        action=FieldAction.SELECT_LABEL,
        settle_ms=500,
    ),
    FieldMapping(
        name="item_category_id",
        attribute="item_category",
        selectors=(
            'select[name="item_category_id"]',
            'select[id*="item_category"]',
            '[data-testid="item-category-select"]',
        ),
        action=FieldAction.SELECT_LABEL,
        settle_ms=500,
    ),
    FieldMapping(
        name="size",
        attribute="size",
        selectors=('select[name="size"]', 'input[name="size"]', 'input[id*="size"]'),
        action=FieldAction.AUTO,
    ),
    FieldMapping(
        name="status",
        attribute="condition",
        selectors=('select[name="status"]', 'select[id*="status"]', 'select[name="item_status"]'),
        action=FieldAction.SELECT_LABEL,
        transform=condition_label,
    ),
    FieldMapping(
        name="color",
        attribute="color",
        selectors=('select[name="color"]', 'input[name="color"]', 'input[id*="color"]'),
        action=FieldAction.AUTO,
    ),
    FieldMapping(
        name="material",
        attribute="material",
        selectors=('select[name="material"]', 'input[name="material"]', 'input[id*="material"]'),
        action=FieldAction.AUTO,
    ),
    FieldMapping(
        name="price",
        attribute="price",
        selectors=('input[name="price"]', 'input[id*="price"]', 'input[type="number"]'),
        required=True,
        transform=format_price,
    ),
)
