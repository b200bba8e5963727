# navigator/preferences.py
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

from navigator.i18n import is_supported

logger = logging.getLogger(__name__)

DEFAULT_PREFS_PATH = Path(
    os.getenv("NAVIGATOR_PREFS_PATH", str(Path.home() / ".rural_health_navigator" / "preferences.json"))
)


def _load_json(path: Path, default):
    if not path.exists():
        return default
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable preferences file %s", path)
        return default


def _save_json(path: Path, obj) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)


class LanguagePreference:
    """
    Chosen language per account, kept across sessions.
    Stored as {"languages": {user_id: code}} so one user's choice never applies to another.
    """

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path) if path else DEFAULT_PREFS_PATH

    def _languages(self) -> Dict[str, str]:
        data = _load_json(self.path, {})
        languages = data.get("languages") if isinstance(data, dict) else None
        return dict(languages) if isinstance(languages, dict) else {}

    def get(self, user_id: str) -> Optional[str]:
        code = self._languages().get(user_id)
        return code if is_supported(code) else None

    def set(self, user_id: str, code: str) -> None:
        if not is_supported(code):
            raise ValueError(f"Unsupported language: {code!r}")
        languages = self._languages()
        languages[user_id] = code.strip().lower()
        _save_json(self.path, {"languages": languages})

    def clear(self, user_id: str) -> None:
        languages = self._languages()
        if languages.pop(user_id, None) is not None:
            _save_json(self.path, {"languages": languages})
