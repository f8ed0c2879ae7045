"""SuggestionCache: explicit memo of rule suggestions keyed by data summary.

Entries expire after a TTL (two hours by default). When a *path* is given the
cache is mirrored to a JSON file so suggestions survive a restart; expired
entries are dropped on load.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable

_log = logging.getLogger(__name__)

DEFAULT_TTL = 2 * 60 * 60  # seconds


def make_key(summary: dict) -> str:
    """sha256 of the canonical JSON form of *summary* (list order ignored)."""
    canonical = {
        k: sorted(v, key=str) if isinstance(v, list) else v for k, v in summary.items()
    }
    payload = json.dumps(canonical, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(payload.encode()).hexdigest()


class SuggestionCache:
    """Thread-safe TTL cache. Pass one instance to whoever needs it."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        path: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl
        self._path = Path(path) if path else None
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, Any]] = self._load()

    make_key = staticmethod(make_key)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, tuple[float, Any]]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            _log.warning("Ignoring unreadable suggestion cache %s: %s", self._path, exc)
            return {}
        now = self._clock()
        return {
            key: (entry["expires_at"], entry["value"])
            for key, entry in raw.items()
            if isinstance(entry, dict) and entry.get("expires_at", 0) > now
        }

    def _save(self) -> None:
        if self._path is None:
            return
        data = {k: {"expires_at": exp, "value": v} for k, (exp, v) in self._entries.items()}
        try:
            self._path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2, default=str), encoding="utf-8"
            )
        except OSError as exc:
            _log.warning("Cannot write suggestion cache %s: %s", self._path, exc)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                self._save()
                return None
            return value

    def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + (self._ttl if ttl is None else ttl), value)
            self._save()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            if self._path is not None and self._path.exists():
                self._path.unlink()

    def get_or_compute(self, key: str, compute: Callable[[], Any], ttl: float | None = None) -> Any:
        cached = self.get(key)
        if cached is not None:
            _log.debug("Suggestion cache hit %s", key[:12])
            return cached
        value = compute()
        self.put(key, value, ttl)
        return value

    def __len__(self) -> int:
        return len(self._entries)
