"""
Preference Store Module - Small key-value store for user preferences

The viewer only reads the default namespace from here; the store is
injected into the entry point rather than being a global.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE_KEY = "defaultNamespace"


class PreferenceStore(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...


class JsonPreferenceStore:
    """JSON file backed preference store (~/.kfc-config.json by default)"""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path.home() / ".kfc-config.json"

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}

    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        try:
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save preferences to {self.path}: {e}")
