"""Persistence of the marketplace session cookies.

The session file holds ``{"cookies": [...]}`` and is overwritten on every
save so the newest authenticated cookies win.
"""

import json
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from easyvinted.utils.logger import get_logger

from .models import SessionCookie, SessionFile

logger = get_logger(__name__)


class FileSessionStore:
    """Load and save the session file on local disk."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[SessionFile]:
        """Load the persisted session.

        Returns:
            The session, or None when the file is absent or unreadable.
        """
        if not self.path.is_file():
            logger.info(f"No saved session at {self.path}")
            return None

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            session = SessionFile.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

        logger.info(f"Loaded {len(session.cookies)} cookies from {self.path}")
        return session

    def save(self, cookies: Iterable[dict[str, Any] | SessionCookie]) -> SessionFile:
        """Overwrite the session file with the given cookies.

        Raises:
            OSError: If the file cannot be written
        """
        session = SessionFile(cookies=[
            cookie if isinstance(cookie, SessionCookie) else SessionCookie.model_validate(cookie)
            for cookie in cookies
        ])
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"cookies": [cookie.to_playwright() for cookie in session.cookies]}
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        logger.info(f"Saved {len(session.cookies)} cookies to {self.path}")
        return session
