"""
Custom exception hierarchy for the EasyVinted publisher.

Provides a structured exception hierarchy for the failure classes of a
publication run:
- AppException: Base for all application errors
- ConfigError: Missing or invalid configuration (fatal before the batch)
- PublisherError: Browser session and listing form errors
- RepositoryError: Job queue and article storage errors
- CredentialError: Stored marketplace credential errors

Each exception includes:
- Descriptive message
- Optional error code for programmatic handling
- Optional context dictionary for debugging

Example:
    >>> from easyvinted.utils.exceptions import NavigationError
    >>> raise NavigationError("Timed out loading page", url="https://www.vinted.fr/items/new")
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


# ============================================
# Base Exception
# ============================================


class AppException(Exception):
    """
    Base exception for all EasyVinted application errors.

    Attributes:
        message: Human-readable error description.
        code: Optional error code for programmatic handling.
        context: Optional dictionary with debugging context.

    Example:
        >>> try:
        ...     raise AppException("Something went wrong", code="APP_001")
        ... except AppException as e:
        ...     print(f"Error {e.code}: {e.message}")
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            code: Optional error code (e.g., "CONFIG_INVALID").
            context: Optional dict with additional debugging info.
        """
        self.message = message
        self.code = code or self._default_code()
        self.context = context or {}
        super().__init__(self.message)

    def _default_code(self) -> str:
        """Generate default error code from class name."""
        # Convert CamelCase to UPPER_SNAKE_CASE
        name = self.__class__.__name__
        code = ""
        for i, char in enumerate(name):
            if char.isupper() and i > 0:
                code += "_"
            code += char.upper()
        return code

    def __str__(self) -> str:
        """String representation with code if available."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


# ============================================
# Configuration Errors
# ============================================


class ConfigError(AppException):
    """
    Base exception for configuration-related errors.

    Raised when there are issues with:
    - Loading configuration files
    - Missing credentials or queue connection settings
    """

    pass


class ConfigurationError(ConfigError):
    """
    Raised when required settings are missing or invalid.

    Example:
        >>> raise ConfigurationError(
        ...     "Missing marketplace credentials",
        ...     missing=["VINTED_EMAIL", "VINTED_PASSWORD"]
        ... )
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        missing: Optional[List[str]] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if missing:
            context["missing"] = list(missing)
        super().__init__(message, code="CONFIG_INVALID", context=context, **kwargs)


# ============================================
# Publisher Errors
# ============================================


class PublisherError(AppException):
    """
    Base exception for browser automation errors.

    Raised when there are issues with:
    - Launching or restoring the browser session
    - Navigating the marketplace
    - Uploading photos or filling the listing form
    - Submitting the listing
    """

    pass


class NavigationError(PublisherError):
    """
    Raised when a page navigation or wait exceeds its timeout.

    Example:
        >>> raise NavigationError(
        ...     "Timed out loading page",
        ...     url="https://www.vinted.fr/items/new",
        ...     timeout_ms=30000
        ... )
    """

    def __init__(
        self,
        message: str = "Navigation failed",
        url: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if url:
            context["url"] = url
        if timeout_ms:
            context["timeout_ms"] = timeout_ms
        super().__init__(message, code="NAVIGATION_ERROR", context=context, **kwargs)


class AuthenticationError(PublisherError):
    """Raised when the marketplace session cannot be authenticated."""

    def __init__(
        self,
        message: str = "Authentication failed",
        email: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if email:
            context["email"] = email
        super().__init__(message, code="AUTHENTICATION_FAILED", context=context, **kwargs)


class SessionError(PublisherError):
    """
    Raised when a browser session cannot be established for a batch.

    Wraps the underlying launch, navigation or authentication failure so the
    batch can abort with one error type.
    """

    def __init__(
        self,
        message: str = "Browser session unavailable",
        **kwargs,
    ) -> None:
        super().__init__(message, code="SESSION_ERROR", **kwargs)


class UnsupportedPhotoError(PublisherError):
    """
    Raised when an article photo reference is not a fetchable URL.

    Example:
        >>> raise UnsupportedPhotoError(photo="/home/user/photo.jpg")
    """

    def __init__(
        self,
        message: Optional[str] = None,
        photo: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if photo:
            context["photo"] = photo
        if message is None:
            message = (
                f"Unsupported photo reference '{photo}': photos must be http(s) URLs"
            )
        super().__init__(message, code="UNSUPPORTED_PHOTO", context=context, **kwargs)


class PhotoDownloadError(PublisherError):
    """Raised when a remote photo cannot be downloaded."""

    def __init__(
        self,
        message: str = "Failed to download photo",
        photo_url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if photo_url:
            context["photo_url"] = photo_url
        if status_code:
            context["status_code"] = status_code
        super().__init__(message, code="PHOTO_DOWNLOAD", context=context, **kwargs)


class PhotoUploadError(PublisherError):
    """Raised when a downloaded photo cannot be attached to the form."""

    def __init__(
        self,
        message: str = "Failed to upload photo",
        photo_url: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if photo_url:
            context["photo_url"] = photo_url
        super().__init__(message, code="PHOTO_UPLOAD", context=context, **kwargs)


class ImageValidationError(PublisherError):
    """Raised when a downloaded file is not a usable image."""

    def __init__(
        self,
        message: str = "Invalid image",
        path: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(message, code="IMAGE_INVALID", context=context, **kwargs)


class FormFillError(PublisherError):
    """
    Raised when a required listing form field cannot be populated.

    Example:
        >>> raise FormFillError(
        ...     "Could not locate field",
        ...     field="price",
        ...     selectors=['input[name="price"]']
        ... )
    """

    def __init__(
        self,
        message: str = "Failed to fill listing form",
        field: Optional[str] = None,
        selectors: Optional[List[str]] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if selectors:
            context["selectors"] = list(selectors)
        super().__init__(message, code="FORM_FILL", context=context, **kwargs)


class SubmissionError(PublisherError):
    """Raised when the listing form submission does not reach an item page."""

    def __init__(
        self,
        message: str = "Listing submission failed",
        current_url: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if current_url:
            context["current_url"] = current_url
        super().__init__(message, code="SUBMISSION_FAILED", context=context, **kwargs)


class PublicationFailedError(PublisherError):
    """Raised when the listing engine reports an unsuccessful publication."""

    def __init__(
        self,
        message: str = "Publication failed",
        article_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if article_id:
            context["article_id"] = article_id
        super().__init__(message, code="PUBLICATION_FAILED", context=context, **kwargs)


# ============================================
# Repository Errors
# ============================================


class RepositoryError(AppException):
    """
    Base exception for job queue and article storage errors.

    Example:
        >>> raise RepositoryError(
        ...     "Update failed",
        ...     context={"table": "publication_jobs"}
        ... )
    """

    pass


class ArticleNotFoundError(RepositoryError):
    """Raised when a job references an article that does not exist."""

    def __init__(
        self,
        message: Optional[str] = None,
        article_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if article_id:
            context["article_id"] = article_id
        if message is None:
            message = f"Article not found: {article_id}"
        super().__init__(message, code="ARTICLE_NOT_FOUND", context=context, **kwargs)


# ============================================
# Credential Errors
# ============================================


class CredentialError(AppException):
    """Base exception for stored marketplace credential errors."""

    pass


class DecryptionError(CredentialError):
    """Raised when an encrypted password cannot be decrypted."""

    def __init__(
        self,
        message: str = "Failed to decrypt password",
        **kwargs,
    ) -> None:
        super().__init__(message, code="DECRYPTION_FAILED", **kwargs)


# ============================================
# Helpers
# ============================================


def describe_error(error: BaseException) -> str:
    """Return the human-readable text recorded in ``error_message`` columns.

    Application errors contribute their message without the code prefix;
    other exceptions fall back to ``str()`` or the class name.
    """
    if isinstance(error, AppException):
        return error.message
    text = str(error).strip()
    return text or error.__class__.__name__
