# client/session.py
"""
Client session persistence.

`SessionStore` keeps a single session document on disk. `AppContext` owns
the in-memory copy and is the only thing the rest of the client asks about
login state; nothing else reads the session file directly.
"""
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

from authenledger.client.config import ClientConfig

logger = logging.getLogger(__name__)


def is_expired(session: Optional[Dict[str, Any]], now: Optional[float] = None) -> bool:
    """A session is usable only while expires_at is strictly in the future."""
    if not session or not session.get("expires_at"):
        return True
    now = time.time() if now is None else now
    return session["expires_at"] <= int(now)


def _write_private(path: str, data: Any) -> None:
    """Writes JSON readable by the owner only; the session holds a bearer token."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    # O_CREAT leaves the mode of an existing file untouched.
    os.chmod(path, 0o600)


class SessionStore:
    def __init__(self, path: str = ClientConfig.SESSION_FILE):
        self.path = path

    def load(self, now: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Returns the stored session, removing it first if it has expired or is unreadable."""
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                session = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable session file '{self.path}': {e}")
            self.clear()
            return None
        if not isinstance(session, dict) or is_expired(session, now):
            logger.info("Stored session has expired; removing it")
            self.clear()
            return None
        return session

    def save(self, session: Dict[str, Any]) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        _write_private(self.path, session)

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
        demo_history = self.demo_history_path
        if os.path.exists(demo_history):
            os.remove(demo_history)

    @property
    def demo_history_path(self) -> str:
        return os.path.join(os.path.dirname(self.path) or ".", "demo_validations.json")

    def load_demo_history(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.demo_history_path):
            return []
        with open(self.demo_history_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def append_demo_history(self, validations: List[Dict[str, Any]]) -> None:
        history = self.load_demo_history() + validations
        _write_private(self.demo_history_path, history)


class AppContext:
    """Explicit holder of the current session with an init/refresh/clear lifecycle."""

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store or SessionStore()
        self.session: Optional[Dict[str, Any]] = None

    def init(self, now: Optional[float] = None) -> "AppContext":
        self.session = self.store.load(now)
        return self

    def login(self, session: Dict[str, Any]) -> None:
        self.session = session
        self.store.save(session)

    def refresh(self, now: Optional[float] = None) -> bool:
        """Re-checks expiry; clears the session and returns False once it has lapsed."""
        if self.session is not None and is_expired(self.session, now):
            self.clear()
        return self.session is not None

    def clear(self) -> None:
        self.session = None
        self.store.clear()

    @property
    def is_logged_in(self) -> bool:
        return self.session is not None

    @property
    def access_token(self) -> Optional[str]:
        return self.session["access_token"] if self.session else None

    @property
    def is_demo(self) -> bool:
        token = self.access_token or ""
        return token.startswith(ClientConfig.DEMO_TOKEN_PREFIX)

    @property
    def user(self) -> Dict[str, Any]:
        return (self.session or {}).get("user") or {}

    @property
    def role(self) -> str:
        metadata = self.user.get("user_metadata") or {}
        return "admin" if metadata.get("role") == "administrator" else "user"
