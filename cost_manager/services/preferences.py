"""
User Preferences Store

Keeps the small amount of user-editable state that lives outside the
cost database, currently just the exchange rates URL. Stored as one
JSON document next to the databases.
"""

from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from cost_manager.config import get_settings
from cost_manager.exceptions import CostManagerError


logger = structlog.get_logger(__name__)

PREFERENCES_FILENAME = "preferences.json"


class PreferencesError(CostManagerError):
    """The preferences file exists but cannot be read or written."""
    pass


class Preferences(BaseModel):
    rates_url: str = ""


class PreferencesStore:
    """JSON-file backed preferences."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        if path is None:
            path = get_settings().storage.data_dir / PREFERENCES_FILENAME
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Preferences:
        if not self._path.exists():
            return Preferences()
        try:
            return Preferences.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise PreferencesError(f"Cannot read preferences at {self._path}: {e}") from e

    def save(self, preferences: Preferences) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(preferences.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise PreferencesError(f"Cannot write preferences at {self._path}: {e}") from e

    def get_rates_url(self) -> str:
        """Saved exchange rates URL, or an empty string if none is set."""
        return self.load().rates_url

    def set_rates_url(self, url: str) -> None:
        """Save the exchange rates URL (whitespace is stripped)."""
        url = (url or "").strip()
        if not url:
            raise ValueError("Exchange rates URL is required")
        self.save(self.load().model_copy(update={"rates_url": url}))
        logger.info("rates_url_saved", url=url)
