"""
Aizen Local Store - key-value persistence per conversation

Each session id owns one JSON file under the data directory holding a flat
key → value mapping. Keys mirror what the browser UI keeps in its own local
storage (chat history, preferences, TTS settings, onboarding flag) so a
session can be restored from either side.
"""

import json
import logging
import os
import re
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Session ID validation pattern: alphanumeric, hyphens, underscores, max 64 chars
SESSION_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

CHAT_HISTORY_KEY = "aizen_chat_history"
USER_PREFERENCES_KEY = "aizen_user_preferences"
QUIZ_COMPLETED_KEY = "aizen_quiz_completed"
TTS_SETTINGS_KEY = "aizen_tts_settings"


def is_valid_session_id(session_id: str) -> bool:
    return bool(session_id) and bool(SESSION_ID_PATTERN.match(session_id))


class LocalStore:
    """JSON-file backed key-value store, one file per session."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self._lock = Lock()

    def _path(self, session_id: str) -> Path:
        # Sanitize session_id to prevent path traversal
        safe_id = "".join(c for c in session_id if c.isalnum() or c in "_-")
        return self.base_dir / f"{safe_id}.json"

    def _read(self, session_id: str) -> Dict[str, Any]:
        path = self._path(session_id)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load store for session {session_id}: {e}")
            return {}

    def _write(self, session_id: str, data: Dict[str, Any]) -> bool:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(session_id)
        tmp_path = path.with_suffix(".json.tmp")
        # Replace the file in one step so a failed write keeps the previous state
        try:
            payload = json.dumps(data, indent=2)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save store for session {session_id}: {e}")
            tmp_path.unlink(missing_ok=True)
            return False

    def get_item(self, session_id: str, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._read(session_id).get(key, default)

    def set_item(self, session_id: str, key: str, value: Any) -> bool:
        with self._lock:
            data = self._read(session_id)
            data[key] = value
            return self._write(session_id, data)

    def remove_item(self, session_id: str, key: str) -> bool:
        with self._lock:
            data = self._read(session_id)
            if key not in data:
                return True
            del data[key]
            return self._write(session_id, data)

    def delete(self, session_id: str) -> bool:
        """Delete all keys for a session."""
        path = self._path(session_id)
        with self._lock:
            if not path.exists():
                return True
            try:
                path.unlink()
                return True
            except OSError as e:
                logger.error(f"Failed to delete store for session {session_id}: {e}")
                return False
