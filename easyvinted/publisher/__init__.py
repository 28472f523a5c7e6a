"""Browser automation for the Vinted marketplace: session and listing form."""

from .browser_session import BrowserSessionManager
from .listing_engine import ListingSubmissionEngine
from .models import PublicationResult, SessionCookie, SessionFile
from .photos import PhotoDownloader
from .readiness import ReadinessConfig, ReadinessWaiter
from .session_store import FileSessionStore
from .throttle import PublicationThrottle

__all__ = [
    "BrowserSessionManager",
    "FileSessionStore",
    "ListingSubmissionEngine",
    "PhotoDownloader",
    "PublicationResult",
    "PublicationThrottle",
    "ReadinessConfig",
    "ReadinessWaiter",
    "SessionCookie",
    "SessionFile",
]
