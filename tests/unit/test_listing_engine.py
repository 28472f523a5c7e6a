"""Unit tests for the listing submission engine against a fake listing page."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from easyvinted.publisher.form_mapping import VINTED_FORM_FIELDS, condition_label
from easyvinted.publisher.listing_engine import (
    PHOTO_INPUT_SELECTOR,
    SUBMIT_SELECTOR,
    ListingSubmissionEngine,
)
from easyvinted.domain.entities.article import Condition
from easyvinted.utils.exceptions import PhotoDownloadError


ITEM_URL = "https://www.vinted.fr/items/4815162342-robe-zara-fleurie"

# First selector of each field, with the tag name the page reports
FORM_ELEMENTS = {
    'input[name="title"]': "input",
    'textarea[name="description"]': "textarea",
    'input[name="brand"]': "input",
    'select[name="catalog_id"]': "select",
    'select[name="category_id"]': "select",
    'select[name="size"]': "select",
    'select[name="status"]': "select",
    'input[name="color"]': "input",
    'input[name="price"]': "input",
}


def make_element(tag="input"):
    element = MagicMock(name=f"<{tag}>")
    element.is_visible = AsyncMock(return_value=True)
    element.fill = AsyncMock()
    element.select_option = AsyncMock()
    element.evaluate = AsyncMock(return_value=tag)
    element.set_input_files = AsyncMock()
    element.click = AsyncMock()
    return element


class FakeListingPage:
    """The new listing page: a file input, the form fields and a submit button."""

    def __init__(self, missing=()):
        self.url = "https://www.vinted.fr/items/new"
        self.elements = {
            selector: make_element(tag)
            for selector, tag in FORM_ELEMENTS.items()
            if selector not in missing
        }
        self.elements[PHOTO_INPUT_SELECTOR] = make_element("input")
        self.elements[SUBMIT_SELECTOR] = make_element("button")
        self.hidden = make_element()
        self.hidden.is_visible.return_value = False

        self.wait_for_url = AsyncMock(side_effect=self._reach_item_page)
        self.wait_for_timeout = AsyncMock()

    async def _reach_item_page(self, pattern, timeout=None):
        self.url = ITEM_URL

    def locator(self, selector):
        element = self.elements.get(selector, self.hidden)
        locator = MagicMock(name=f"locator({selector})")
        locator.first = element
        locator.last = element
        locator.count = AsyncMock(return_value=1 if selector in self.elements else 0)
        return locator

    def element(self, selector):
        return self.elements[selector]


def make_engine(test_config, page, **kwargs):
    session = MagicMock(name="BrowserSessionManager")
    session.page = page
    session.config = test_config.vinted
    session.navigate = AsyncMock()
    engine = ListingSubmissionEngine(session, test_config.publisher, **kwargs)
    return engine, session


@pytest.fixture
def fetch_photo(sample_photo_bytes):
    return AsyncMock(return_value=(sample_photo_bytes, "image/jpeg"))


class TestPublish:
    """Test the full publication flow."""

    @pytest.mark.asyncio
    async def test_success(self, test_config, make_article, fetch_photo):
        """Test a complete listing returns the item URL."""
        page = FakeListingPage()
        engine, session = make_engine(test_config, page)
        article = make_article()

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(article)

        assert result.success
        assert result.vinted_url == ITEM_URL
        session.navigate.assert_awaited_once_with(test_config.vinted.new_item_url)
        page.element('input[name="title"]').fill.assert_awaited_once_with("Robe Zara fleurie")
        page.element('input[name="price"]').fill.assert_awaited_once_with("12.50")
        page.element('select[name="status"]').select_option.assert_awaited_once_with(label="Très bon état")
        page.element('select[name="size"]').select_option.assert_awaited_once_with(label="M")
        page.element('input[name="color"]').fill.assert_awaited_once_with("Bleu")
        page.element(SUBMIT_SELECTOR).click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_category_fields_settle(self, test_config, make_article, fetch_photo):
        """Test category selects pause for the form to re-render."""
        page = FakeListingPage()
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            await engine.publish(make_article())

        page.wait_for_timeout.assert_any_await(1000)

    @pytest.mark.asyncio
    async def test_local_photo_fails_before_navigation(self, test_config, make_article):
        """Test a local path is refused before the browser does anything."""
        page = FakeListingPage()
        engine, session = make_engine(test_config, page)
        article = make_article(photos=["/home/seller/photos/robe.jpg"])

        result = await engine.publish(article)

        assert not result.success
        assert "Unsupported photo reference '/home/seller/photos/robe.jpg'" in result.error
        session.navigate.assert_not_awaited()
        page.element(PHOTO_INPUT_SELECTOR).set_input_files.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_temp_file_removed_when_upload_fails(self, test_config, make_article, fetch_photo, tmp_path):
        """Test the downloaded file is deleted even when the upload throws."""
        page = FakeListingPage()
        page.element(PHOTO_INPUT_SELECTOR).set_input_files.side_effect = PlaywrightError("detached")
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(make_article())

        assert not result.success
        assert "Photo upload failed" in result.error
        assert list((tmp_path / "photos").iterdir()) == []
        page.element(SUBMIT_SELECTOR).click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_temp_files_removed_after_success(self, test_config, make_article, fetch_photo, tmp_path):
        """Test no temp file outlives its upload."""
        page = FakeListingPage()
        engine, _ = make_engine(test_config, page)
        article = make_article(photos=[
            "https://cdn.example.com/photos/robe-1.jpg",
            "https://cdn.example.com/photos/robe-2.jpg",
        ])

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            await engine.publish(article)

        uploads = [call.args[0] for call in page.element(PHOTO_INPUT_SELECTOR).set_input_files.await_args_list]
        assert len(uploads) == 2
        assert uploads[0].endswith("robe-1.jpg")
        assert uploads[1].endswith("robe-2.jpg")
        assert list((tmp_path / "photos").iterdir()) == []

    @pytest.mark.asyncio
    async def test_download_failure(self, test_config, make_article):
        """Test an unreachable photo fails the publication."""
        page = FakeListingPage()
        engine, _ = make_engine(test_config, page)
        error = PhotoDownloadError("Failed to download photo: HTTP 404", status_code=404)

        with patch.object(engine.downloader, "_fetch", AsyncMock(side_effect=error)):
            result = await engine.publish(make_article())

        assert result.error == "Failed to download photo: HTTP 404"

    @pytest.mark.asyncio
    async def test_required_field_not_found(self, test_config, make_article, fetch_photo):
        """Test a missing price input fails without submitting."""
        page = FakeListingPage(missing={'input[name="price"]'})
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(make_article())

        assert not result.success
        assert result.error == "Could not find required field 'price'"
        page.element(SUBMIT_SELECTOR).click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_price_not_submitted(self, test_config, make_article, fetch_photo):
        """Test an article without a price is refused instead of listed at 0.00."""
        page = FakeListingPage()
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(make_article(price=None))

        assert not result.success
        assert result.error == "Article has no value for required field 'price'"
        page.element('input[name="price"]').fill.assert_not_awaited()
        page.element(SUBMIT_SELECTOR).click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_optional_field_not_found(self, test_config, make_article, fetch_photo):
        """Test a missing brand input is skipped."""
        page = FakeListingPage(missing={'input[name="brand"]'})
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(make_article())

        assert result.success

    @pytest.mark.asyncio
    async def test_optional_field_error(self, test_config, make_article, fetch_photo):
        """Test an optional field the browser refuses is skipped."""
        page = FakeListingPage()
        page.element('textarea[name="description"]').fill.side_effect = PlaywrightError("not editable")
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(make_article())

        assert result.success

    @pytest.mark.asyncio
    async def test_empty_title(self, test_config, make_article, fetch_photo):
        """Test an article without title fails on the required field."""
        page = FakeListingPage()
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(make_article(title="  "))

        assert result.error == "Article has no value for required field 'title'"

    @pytest.mark.asyncio
    async def test_submit_timeout(self, test_config, make_article, fetch_photo):
        """Test no redirect to an item page is a failure."""
        page = FakeListingPage()
        page.wait_for_url.side_effect = PlaywrightTimeoutError("timeout")
        engine, _ = make_engine(test_config, page)

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(make_article())

        assert not result.success
        assert "Listing page not reached" in result.error

    @pytest.mark.asyncio
    async def test_manual_fill(self, test_config, make_article, fetch_photo):
        """Test manual mode waits for the operator instead of filling."""
        test_config.publisher.manual_form_fill = True
        page = FakeListingPage()
        confirm = AsyncMock()
        engine, _ = make_engine(test_config, page, manual_confirm=confirm)
        article = make_article()

        with patch.object(engine.downloader, "_fetch", fetch_photo):
            result = await engine.publish(article)

        assert result.success
        confirm.assert_awaited_once_with(article)
        page.element('input[name="title"]').fill.assert_not_awaited()


class TestFormMapping:
    """Test the declarative field mapping."""

    def test_categories_before_size(self):
        """Test the size field comes after every category level."""
        names = [mapping.name for mapping in VINTED_FORM_FIELDS]
        assert names.index("size") > names.index("item_category_id") > names.index("catalog_id")

    def test_required_fields(self):
        """Test title and price are the required fields."""
        assert {m.name for m in VINTED_FORM_FIELDS if m.required} == {"title", "price"}

    def test_condition_labels(self):
        """Test every condition has a marketplace label."""
        assert all(condition_label(condition) for condition in Condition)
        assert condition_label(None) is None
