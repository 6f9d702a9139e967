"""Keyed storage for game state with all-or-nothing transactions."""
import fcntl
import json
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from loguru import logger

from .records import WagerState


class StateStore:
    """Serializes every operation against a single ``WagerState``.

    ``transaction()`` hands out a deep copy of the state under a lock and
    only swaps it in when the block finishes without raising, so a
    rejected operation never leaves partial writes behind.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._state = self._load()

    def _load(self) -> WagerState:
        return WagerState()

    def _save(self, state: WagerState) -> None:
        pass

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the lock guarding the committed state."""
        with self._lock:
            yield

    def snapshot(self) -> WagerState:
        """Read-only copy of the committed state."""
        with self._exclusive():
            return self._state.model_copy(deep=True)

    @contextmanager
    def transaction(self) -> Iterator[WagerState]:
        with self._exclusive():
            working = self._state.model_copy(deep=True)
            yield working
            self._save(working)
            self._state = working


class MemoryStore(StateStore):
    """State kept in process memory only."""


class JsonFileStore(StateStore):
    """State persisted as a JSON document after every committed transaction.

    Every read and transaction holds an exclusive ``flock`` on a sibling
    ``.lock`` file and reloads the document first, so separate handles and
    separate processes sharing one path see and extend each other's writes.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        super().__init__()

    def _load(self) -> WagerState:
        """Load state from disk."""
        if not self.path.exists():
            return WagerState()
        with open(self.path, 'r') as f:
            data = json.load(f)
        logger.debug(f"Loaded wager state from {self.path}")
        return WagerState.model_validate(data)

    def _save(self, state: WagerState) -> None:
        """Save state to disk, replacing the previous file atomically."""
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, 'w') as f:
            json.dump(state.model_dump(mode="json"), f, indent=2)
        os.replace(tmp_path, self.path)

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.lock_path, 'a') as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    self._state = self._load()
                    yield
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
