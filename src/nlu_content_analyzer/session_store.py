"""
Session state storage.

Credentials, model selection, cost history and budgets live in a
SessionStore that is injected into the orchestrators. Values are
JSON-serializable. Two implementations are provided: an in-memory store
(one process, one session) and a JSON file store (survives restarts).
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


# Storage keys
WATSON_API_KEY = "watson_api_key"
WATSON_URL = "watson_url"
WATSON_REGION = "watson_region"
WATSON_INSTANCE_ID = "watson_instance_id"
WATSON_AUTH_TYPE = "watson_auth_type"
GOOGLE_NLP_API_KEY = "google_nlp_api_key"
ANALYSIS_PROVIDER = "analysis_provider"
CORS_PROXY_URL = "cors_proxy_url"
AI_MODEL = "ai_model"
OPENAI_API_KEY = "openai_api_key"
ANTHROPIC_API_KEY = "anthropic_api_key"
COST_HISTORY = "ai_cost_history"
REMAINING_BUDGET = "ai_remaining_budget"
TOTAL_COST = "ai_total_cost"

# Bump when the shape of any stored value changes.
SCHEMA_VERSION = 1


class SessionStore(ABC):
    """Key/value store for session state."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Get a value, or default if the key is not set."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Set a JSON-serializable value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """List stored keys."""

    def clear(self) -> None:
        for key in self.keys():
            self.delete(key)


class InMemorySessionStore(SessionStore):
    """Session store backed by a dict."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        # Round-trip through JSON so callers never share mutable state
        return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())


class JsonFileSessionStore(SessionStore):
    """
    Session store persisted to a single JSON file.

    File layout: {"version": SCHEMA_VERSION, "values": {key: value}}.
    A file written with a different version is ignored (logged) and the
    session starts empty; it is overwritten on the next write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._values: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}

        version = raw.get("version") if isinstance(raw, dict) else None
        if version != SCHEMA_VERSION:
            logger.warning(
                f"Ignoring session file {self.path}: schema version {version!r} != {SCHEMA_VERSION}"
            )
            return {}

        return dict(raw.get("values") or {})

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"version": SCHEMA_VERSION, "values": self._values}
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._values:
                return default
            return json.loads(json.dumps(self._values[key]))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = json.loads(json.dumps(value))
            self._flush()

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._values:
                del self._values[key]
                self._flush()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._values.keys())
