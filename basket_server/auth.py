"""Authentication manager for the grocery store API."""

import json
import os
from pathlib import Path
from typing import Any, Optional
import logging

from .models import SessionData

logger = logging.getLogger(__name__)


class AuthManager:
    """Manages the customer bearer token and its persistence."""

    def __init__(self, session_file: Optional[str] = None) -> None:
        """
        Initialize the authentication manager.

        Args:
            session_file: Path to store session data. Defaults to
                BASKET_SESSION_FILE or ~/.basket_session.json
        """
        if session_file is None:
            session_file = os.environ.get(
                "BASKET_SESSION_FILE", str(Path.home() / ".basket_session.json")
            )
        self.session_file = session_file
        self.session: SessionData = self._load_session()

        # Token from environment takes precedence over the saved one
        self._load_token_from_env()

    def _load_session(self) -> SessionData:
        """Load session data from file if it exists."""
        if os.path.exists(self.session_file):
            try:
                with open(self.session_file, "r") as f:
                    data = json.load(f)
                    return SessionData(**data)
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Ignoring corrupted session file {self.session_file}: {e}")
        return SessionData()

    def _save_session(self) -> None:
        """Save session data to file."""
        try:
            with open(self.session_file, "w") as f:
                json.dump(self.session.model_dump(), f, default=str)
            os.chmod(self.session_file, 0o600)
        except OSError as e:
            logger.error(f"Could not save session: {e}")

    def save_session(self, token: str, user: Optional[dict[str, Any]] = None) -> None:
        """
        Save authentication session.

        Args:
            token: Bearer token returned by the login endpoint
            user: User record returned alongside the token
        """
        user = user or {}
        self.session = SessionData(
            token=token,
            user_id=str(user["id"]) if user.get("id") is not None else None,
            user_email=user.get("email"),
            user_name=user.get("name"),
            is_authenticated=True,
        )
        self._save_session()
        logger.info(f"Session saved for {self.session.user_email or 'customer'}")

    def get_session(self) -> SessionData:
        return self.session

    def clear_session(self) -> None:
        """Clear the current session."""
        self.session = SessionData()
        if os.path.exists(self.session_file):
            os.remove(self.session_file)
        logger.info("Session cleared")

    def is_authenticated(self) -> bool:
        """Check if there's an active authenticated session."""
        return self.session.is_authenticated and bool(self.session.token)

    def get_token(self) -> Optional[str]:
        return self.session.token

    def _load_token_from_env(self) -> None:
        """Load a pre-issued token from BASKET_TOKEN."""
        token = os.environ.get("BASKET_TOKEN")
        if token:
            logger.info("Loaded bearer token from environment")
            self.session = SessionData(token=token, is_authenticated=True)
        else:
            logger.debug("No token found in environment variables")
