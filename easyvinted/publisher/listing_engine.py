"""
Listing submission engine.

Drives an authenticated BrowserSessionManager through the marketplace's
"new listing" flow for one article:
- Open the listing form and wait for it to render
- Download each photo URL to a temp file, attach it, delete the file
- Populate the form from the declarative field mapping
- Submit and wait for the canonical item URL

Per-article problems never escape publish(); they come back as a failed
PublicationResult carrying a human-readable message.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from easyvinted.domain.entities.article import Article
from easyvinted.domain.interfaces.publisher_interface import ListingPublisherInterface
from easyvinted.utils.config import PublisherConfig, VintedConfig
from easyvinted.utils.exceptions import (
    FormFillError,
    PhotoUploadError,
    SubmissionError,
    UnsupportedPhotoError,
    describe_error,
)
from easyvinted.utils.logger import get_logger, log_execution_time

from .browser_session import BrowserSessionManager
from .form_mapping import VINTED_FORM_FIELDS, FieldAction, FieldMapping
from .models import PublicationResult
from .photos import PhotoDownloader
from .readiness import Predicate, ReadinessConfig, ReadinessWaiter
from .utils import extract_item_id_from_url, is_item_url, is_remote_url

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = get_logger(__name__)


PHOTO_INPUT_SELECTOR = 'input[type="file"][accept*="image"], input[type="file"]'
PHOTO_THUMBNAIL_SELECTOR = '[data-testid*="photo-uploader"] img, [data-testid*="media-select"] img'
SUBMIT_SELECTOR = 'button[type="submit"]'
ITEM_URL_REGEX = re.compile(r"/items/\d+")

ManualConfirm = Callable[[Article], Awaitable[object]]


class ListingSubmissionEngine(ListingPublisherInterface):
    """
    Publish articles through the marketplace listing form.

    Attributes:
        session: The authenticated browser session.
        config: Publisher settings (settle delays, readiness budget, manual mode).
        vinted_config: Marketplace URLs and submission timeout.
        downloader: Fetches photo URLs to temp files.
        readiness: Polls the page for readiness predicates.
        field_mappings: Form fields written, in order.

    Example:
        >>> engine = ListingSubmissionEngine(session, config.publisher)
        >>> result = await engine.publish(article)
        >>> result.vinted_url
        'https://www.vinted.fr/items/1234567890-robe-zara'
    """

    def __init__(
        self,
        session: BrowserSessionManager,
        config: Optional[PublisherConfig] = None,
        vinted_config: Optional[VintedConfig] = None,
        downloader: Optional[PhotoDownloader] = None,
        readiness: Optional[ReadinessWaiter] = None,
        field_mappings: Sequence[FieldMapping] = VINTED_FORM_FIELDS,
        manual_confirm: Optional[ManualConfirm] = None,
    ):
        self.session = session
        self.config = config or PublisherConfig()
        self.vinted_config = vinted_config or session.config
        self.downloader = downloader or PhotoDownloader(
            temp_dir=self.config.temp_dir,
            validate=self.config.validate_photos,
            user_agent=self.vinted_config.user_agent,
        )
        self.readiness = readiness or ReadinessWaiter(
            config=ReadinessConfig(timeout_ms=self.config.readiness_timeout_ms)
        )
        self.field_mappings = tuple(field_mappings)
        self._manual_confirm = manual_confirm

    @property
    def page(self) -> "Page":
        return self.session.page

    # =========================================
    # Publication
    # =========================================

    async def publish(self, article: Article) -> PublicationResult:
        """
        Create a live listing for an article.

        Returns:
            Success with the listing URL, or failure with the error message.
        """
        logger.info(f"Publishing article {article.id}: {article.title!r}")

        try:
            with log_execution_time(logger, f"publication of article {article.id}"):
                self._check_photo_references(article.photos)
                await self.open_listing_form()
                await self.upload_photos(article.photos)
                if self.config.manual_form_fill:
                    await self.wait_for_manual_fill(article)
                else:
                    await self.fill_form(article)
                vinted_url = await self.submit()
        except Exception as e:
            message = describe_error(e)
            logger.error(f"Failed to publish article {article.id}: {message}")
            return PublicationResult.failed(article.id, message)

        logger.info(f"Article {article.id} published as item {extract_item_id_from_url(vinted_url)}: {vinted_url}")
        return PublicationResult.succeeded(article.id, vinted_url)

    def _check_photo_references(self, photos: Sequence[str]) -> None:
        """Reject local paths before any browser work starts."""
        for photo in photos:
            if not is_remote_url(photo):
                raise UnsupportedPhotoError(photo=photo)
        if not photos:
            logger.warning("Article has no photos; the marketplace will likely refuse it")

    async def open_listing_form(self) -> None:
        """Navigate to the new listing page and wait until the form is rendered."""
        await self.session.navigate(self.vinted_config.new_item_url)
        await self.readiness.wait_until(
            self._element_present(PHOTO_INPUT_SELECTOR),
            "listing form",
            fallback_delay_ms=self.config.form_settle_ms,
        )

    # =========================================
    # Photos
    # =========================================

    async def upload_photos(self, photos: Sequence[str]) -> int:
        """
        Upload photos one by one, in order.

        Each temp file is deleted after its upload step, whatever the outcome.

        Returns:
            Number of photos uploaded.
        """
        for index, url in enumerate(photos, start=1):
            path: Optional[Path] = None
            try:
                path = await self.downloader.download(url)
                await self._attach_photo(path, url)
                await self.readiness.wait_until(
                    self._element_count_at_least(PHOTO_THUMBNAIL_SELECTOR, index),
                    f"photo {index}/{len(photos)} upload",
                    fallback_delay_ms=self.config.upload_settle_ms,
                )
            finally:
                self.downloader.cleanup(path)

        if photos:
            logger.info(f"Uploaded {len(photos)} photos")
        return len(photos)

    async def _attach_photo(self, path: Path, url: str) -> None:
        file_input = self.page.locator(PHOTO_INPUT_SELECTOR).first
        try:
            await file_input.set_input_files(str(path))
        except PlaywrightError as e:
            raise PhotoUploadError(f"Photo upload failed: {e}", photo_url=url) from e

    # =========================================
    # Form
    # =========================================

    async def fill_form(self, article: Article) -> None:
        """
        Write every mapped article attribute into the listing form.

        Raises:
            FormFillError: If a required field has no value or cannot be set.
        """
        logger.info("Filling article form...")
        for mapping in self.field_mappings:
            value = mapping.value_for(article)
            if value is None:
                if mapping.required:
                    raise FormFillError(
                        f"Article has no value for required field '{mapping.name}'",
                        field=mapping.name,
                    )
                continue

            try:
                filled = await self._fill_field(mapping, value)
            except PlaywrightError as e:
                if mapping.required:
                    raise FormFillError(
                        f"Could not set required field '{mapping.name}': {e}",
                        field=mapping.name,
                    ) from e
                logger.warning(f"Could not set field '{mapping.name}': {e}")
                continue

            if not filled:
                if mapping.required:
                    raise FormFillError(
                        f"Could not find required field '{mapping.name}'",
                        field=mapping.name,
                        selectors=list(mapping.selectors),
                    )
                logger.warning(f"Field '{mapping.name}' not found on the form, skipped")
                continue

            logger.debug(f"Set field '{mapping.name}'")
            if mapping.settle_ms:
                await self.page.wait_for_timeout(mapping.settle_ms)

        logger.info("Form filled")

    async def _fill_field(self, mapping: FieldMapping, value: str) -> bool:
        """Write one value. Returns False when no candidate element is visible."""
        element = await self._locate(mapping.selectors)
        if element is None:
            return False

        action = mapping.action
        if action == FieldAction.AUTO:
            tag_name = await element.evaluate("el => el.tagName.toLowerCase()")
            action = FieldAction.SELECT_LABEL if tag_name == "select" else FieldAction.FILL

        if action == FieldAction.SELECT_LABEL:
            await element.select_option(label=value)
        else:
            await element.fill(value)
        return True

    async def _locate(self, selectors: Sequence[str]) -> Optional["Locator"]:
        """First visible element among the candidate selectors."""
        for selector in selectors:
            try:
                element = self.page.locator(selector).first
                if await element.is_visible():
                    return element
            except PlaywrightError:
                continue
        return None

    async def wait_for_manual_fill(self, article: Article) -> None:
        """
        MANUAL OVERRIDE: pause so an operator completes the form in the browser.

        Only used when ``publisher.manual_form_fill`` is enabled, with a
        visible browser.
        """
        logger.warning(f"Manual form fill enabled: waiting for operator on article {article.id}")
        if self._manual_confirm is not None:
            await self._manual_confirm(article)
        else:
            await asyncio.to_thread(
                input,
                f"Complete the listing form for '{article.title}' in the browser, then press Enter to submit... ",
            )

    # =========================================
    # Submission
    # =========================================

    async def submit(self) -> str:
        """
        Click the submit button and wait for the item page.

        Returns:
            The canonical listing URL.

        Raises:
            SubmissionError: If no item page is reached in time.
        """
        logger.info("Submitting article...")
        timeout_ms = self.vinted_config.submit_timeout_ms

        try:
            await self.page.locator(SUBMIT_SELECTOR).last.click()
            await self.page.wait_for_url(ITEM_URL_REGEX, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise SubmissionError(
                f"Listing page not reached within {timeout_ms}ms after submitting",
                current_url=self.page.url,
            ) from e

        vinted_url = self.page.url
        if not is_item_url(vinted_url):
            raise SubmissionError(
                f"Unexpected page after submitting: {vinted_url}",
                current_url=vinted_url,
            )
        return vinted_url

    # =========================================
    # Readiness predicates
    # =========================================

    def _element_present(self, selector: str) -> Predicate:
        async def predicate() -> bool:
            return await self.page.locator(selector).count() > 0
        return predicate

    def _element_count_at_least(self, selector: str, expected: int) -> Predicate:
        async def predicate() -> bool:
            return await self.page.locator(selector).count() >= expected
        return predicate
