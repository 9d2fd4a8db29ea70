"""Persisted slot store: the client-visible state of the game.

Each slot is an independently observable named value. Persisted slots are
rehydrated from their backend on construction and written back on every
``set``. Slots share nothing; writing one never touches another.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from suspects.engine.models import ErrorMessage, Game, Player

logger = logging.getLogger(__name__)

T = TypeVar("T")

GAME_KEY = "currentGame"
PLAYER_KEY = "player"
SELECTED_MODEL_KEY = "selectedModel"


# ── storage backends ──────────────────────────────────────

class MemoryBackend:
    """Raw JSON strings kept in a dict. Survives as long as the object does."""

    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, raw: str) -> None:
        self.data[key] = raw


class FileBackend:
    """One ``<key>.json`` file per slot inside ``directory``."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, raw: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(raw, encoding="utf-8")
        os.replace(tmp, path)


# ── slot ──────────────────────────────────────────────────

class Slot(Generic[T]):
    """A named value with subscribers and an optional persistence backend.

    ``version`` increases by one on every write; ``compare_and_set`` only
    writes when the caller saw the latest version.
    """

    def __init__(
        self,
        key: str,
        value_type: Any,
        default_factory: Callable[[], T],
        backend: Any = None,
    ) -> None:
        self.key = key
        self._adapter: TypeAdapter = TypeAdapter(value_type)
        self._default_factory = default_factory
        self._backend = backend
        self._subscribers: List[Callable[[T], None]] = []
        self._version = 0
        self._value: T = self._rehydrate()

    def _rehydrate(self) -> T:
        if self._backend is None:
            return self._default_factory()
        try:
            raw = self._backend.read(self.key)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Slot %s could not be read (%s) – using default.", self.key, exc)
            return self._default_factory()
        if raw is None:
            return self._default_factory()
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Slot %s holds an invalid value – using default. %s", self.key, exc)
            return self._default_factory()

    @property
    def version(self) -> int:
        return self._version

    @property
    def persisted(self) -> bool:
        return self._backend is not None

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> int:
        """Persist the whole value, then replace it and notify subscribers.

        A failed write raises and leaves value and version untouched.
        Returns the new version.
        """
        if self._backend is not None:
            raw = self._adapter.dump_json(value, by_alias=True).decode("utf-8")
            self._backend.write(self.key, raw)
        self._value = value
        self._version += 1
        logger.debug("Slot %s written (version %d)", self.key, self._version)
        for callback in list(self._subscribers):
            callback(value)
        return self._version

    def compare_and_set(self, expected_version: int, value: T) -> bool:
        if self._version != expected_version:
            return False
        self.set(value)
        return True

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback``; it is called now and after every write."""
        self._subscribers.append(callback)
        callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


# ── store ─────────────────────────────────────────────────

class SlotStore:
    """The process-wide set of slots handed to the session client."""

    def __init__(self, backend: Any = None) -> None:
        if backend is None:
            from config import settings

            backend = FileBackend(settings.DATA_DIR)
        self.backend = backend

        # persisted
        self.game: Slot[Game] = Slot(GAME_KEY, Game, Game.empty, backend)
        self.player: Slot[Optional[Player]] = Slot(PLAYER_KEY, Optional[Player], lambda: None, backend)
        self.selected_model: Slot[Optional[str]] = Slot(
            SELECTED_MODEL_KEY, Optional[str], lambda: None, backend
        )

        # transient
        self.error_message: Slot[ErrorMessage] = Slot("errorMessage", ErrorMessage, ErrorMessage)
        self.hint: Slot[str] = Slot("hint", str, str)

    def reset_game(self) -> None:
        self.game.set(Game.empty())

    def clear_error(self) -> None:
        self.error_message.set(ErrorMessage())
