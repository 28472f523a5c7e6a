"""Pydantic data models for the marketplace session and publication outcomes.

This module defines the on-disk session file format (a list of browser
cookies) and the result returned by the listing engine.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


SAME_SITE_VALUES = {"strict": "Strict", "lax": "Lax", "none": "None"}


class SessionCookie(BaseModel):
    """One browser cookie, in the shape Playwright reads and writes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., description="Cookie name")
    value: str = Field(..., description="Cookie value")
    domain: str = Field(..., description="Cookie domain")
    path: str = Field(default="/", description="Cookie path")
    expires: Optional[float] = Field(default=None, description="Unix expiry, -1 for session cookies")
    http_only: Optional[bool] = Field(default=None, alias="httpOnly")
    secure: Optional[bool] = Field(default=None)
    same_site: Optional[str] = Field(default=None, alias="sameSite")

    @field_validator('same_site', mode='before')
    @classmethod
    def normalize_same_site(cls, v: Any) -> Optional[str]:
        """Map sameSite spellings onto Strict/Lax/None; unknown values are dropped."""
        if v is None:
            return None
        return SAME_SITE_VALUES.get(str(v).strip().lower())

    @field_validator('domain')
    @classmethod
    def validate_domain(cls, v: str) -> str:
        """Ensure the cookie is bound to a domain."""
        if not v:
            raise ValueError("Cookie domain cannot be empty")
        return v

    def to_playwright(self) -> dict[str, Any]:
        """Serialize for ``BrowserContext.add_cookies``."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SessionFile(BaseModel):
    """Persisted marketplace session: ``{"cookies": [...]}``."""

    cookies: list[SessionCookie] = Field(default_factory=list)


class PublicationResult(BaseModel):
    """Outcome of one publication attempt."""

    success: bool
    article_id: str
    vinted_url: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode='after')
    def validate_outcome(self) -> 'PublicationResult':
        """A success carries a URL, a failure carries an error message."""
        if self.success and not self.vinted_url:
            raise ValueError("Successful publication requires a vinted_url")
        if not self.success and not self.error:
            raise ValueError("Failed publication requires an error message")
        return self

    @classmethod
    def succeeded(cls, article_id: str, vinted_url: str) -> 'PublicationResult':
        return cls(success=True, article_id=article_id, vinted_url=vinted_url)

    @classmethod
    def failed(cls, article_id: str, error: str) -> 'PublicationResult':
        return cls(success=False, article_id=article_id, error=error or "Unknown error")
