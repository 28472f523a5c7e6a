"""Unit tests for session models and the session file store."""

import json

import pytest
from pydantic import ValidationError

from easyvinted.publisher.models import PublicationResult, SessionCookie
from easyvinted.publisher.session_store import FileSessionStore


COOKIE = {
    "name": "_vinted_fr_session",
    "value": "abc123",
    "domain": ".vinted.fr",
    "path": "/",
    "expires": 1893456000,
    "httpOnly": True,
    "secure": True,
    "sameSite": "Lax",
}


class TestSessionCookie:
    """Test the cookie model."""

    def test_aliases_round_trip(self):
        """Test Playwright field names are read and written."""
        cookie = SessionCookie.model_validate(COOKIE)
        assert cookie.http_only is True
        assert cookie.to_playwright()["httpOnly"] is True

    @pytest.mark.parametrize("raw, expected", [
        ("lax", "Lax"),
        ("STRICT", "Strict"),
        ("None", "None"),
        ("unspecified", None),
    ])
    def test_same_site_normalized(self, raw, expected):
        """Test sameSite spellings are normalized."""
        cookie = SessionCookie.model_validate({**COOKIE, "sameSite": raw})
        assert cookie.same_site == expected

    def test_unknown_same_site_omitted(self):
        """Test dropped values do not reach the browser."""
        cookie = SessionCookie.model_validate({**COOKIE, "sameSite": "weird"})
        assert "sameSite" not in cookie.to_playwright()

    def test_empty_domain_rejected(self):
        """Test cookies must be bound to a domain."""
        with pytest.raises(ValidationError):
            SessionCookie.model_validate({**COOKIE, "domain": ""})


class TestPublicationResult:
    """Test the publication outcome model."""

    def test_succeeded(self):
        """Test successful results carry the URL."""
        result = PublicationResult.succeeded("a1", "https://www.vinted.fr/items/1")
        assert result.success
        assert result.error is None

    def test_failed(self):
        """Test failed results carry the error."""
        result = PublicationResult.failed("a1", "Timed out")
        assert not result.success
        assert result.error == "Timed out"
        assert result.vinted_url is None

    def test_failed_without_message(self):
        """Test an empty error gets a placeholder."""
        assert PublicationResult.failed("a1", "").error == "Unknown error"

    def test_success_requires_url(self):
        """Test a success without URL is invalid."""
        with pytest.raises(ValidationError, match="vinted_url"):
            PublicationResult(success=True, article_id="a1")


class TestFileSessionStore:
    """Test the session file store."""

    def test_missing_file(self, tmp_path):
        """Test a missing file loads as None."""
        store = FileSessionStore(tmp_path / "session.json")
        assert not store.exists()
        assert store.load() is None

    def test_save_and_load(self, tmp_path):
        """Test cookies are written under a 'cookies' key."""
        path = tmp_path / "state" / "session.json"
        store = FileSessionStore(path)

        store.save([COOKIE])

        assert json.loads(path.read_text())["cookies"][0]["name"] == "_vinted_fr_session"
        session = store.load()
        assert len(session.cookies) == 1
        assert session.cookies[0].domain == ".vinted.fr"

    def test_save_overwrites(self, tmp_path):
        """Test the newest save wins."""
        store = FileSessionStore(tmp_path / "session.json")
        store.save([COOKIE, {**COOKIE, "name": "other"}])
        store.save([{**COOKIE, "value": "fresh"}])

        session = store.load()
        assert [c.value for c in session.cookies] == ["fresh"]

    @pytest.mark.parametrize("content", [
        "not json",
        '{"cookies": [{"name": "x"}]}',
    ])
    def test_unreadable_file(self, tmp_path, content):
        """Test corrupt files are ignored rather than fatal."""
        path = tmp_path / "session.json"
        path.write_text(content)
        assert FileSessionStore(path).load() is None
