"""
Beacon - Persisted Keyed Store
==============================

Generic load-at-startup / mutate-in-memory / rewrite-on-change store.

DESIGN:
    Each store owns exactly one JSON snapshot file holding its full
    mapping under a single top-level object. Nothing else writes that
    file.

    - load(): read the snapshot if present. A missing file is an empty
      store; a corrupt one is logged and also treated as empty, so the
      bot runs with cold state instead of refusing to start.
    - get()/set()/delete()/update(): in-memory dict operations.
    - persist(): serialize everything and overwrite the file, called
      after every mutation (write-through). Output is sorted and
      indented so two persists with no mutation in between produce the
      same bytes.

    Writes go straight to the target path without a temp-file rename; a
    crash mid-write can leave a corrupt snapshot, which load() then
    treats as empty.

    All mutating methods are synchronous. In an asyncio program that
    makes each read-modify-write-persist atomic per key: no other task
    can run between the read and the write.

    Subclasses override encode_value()/decode_value() to turn
    non-JSON types (sets, dataclasses) into primitives and back.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar, Union

from beacon.core.errors import PersistenceError
from beacon.core.logger import logger

T = TypeVar("T")


class PersistedKeyedStore(Generic[T]):
    """
    String-keyed mapping mirrored to a JSON snapshot file.

    Attributes:
        path: Snapshot file location.
        name: Label used in log messages.
    """

    def __init__(self, path: Union[str, Path], name: Optional[str] = None) -> None:
        self.path = Path(path)
        self.name = name or self.path.stem
        self._data: Dict[str, T] = {}

    # =========================================================================
    # Value Codec (override in subclasses)
    # =========================================================================

    def encode_value(self, value: T) -> Any:
        """Convert a value into JSON-safe primitives."""
        return value

    def decode_value(self, raw: Any) -> T:
        """Rebuild a value from its JSON form."""
        return raw

    # =========================================================================
    # Snapshot I/O
    # =========================================================================

    def load(self) -> int:
        """
        Replace in-memory contents with the snapshot file's.

        Returns:
            Number of records loaded.
        """
        if not self.path.exists():
            self._data = {}
            logger.info(f"No snapshot for {self.name}, starting empty")
            return 0

        try:
            self._data = self._read_snapshot()
        except PersistenceError as e:
            logger.error("Snapshot Load Failed", [
                ("Store", self.name),
                ("Path", str(self.path)),
                ("Error", str(e)[:100]),
                ("Fallback", "Empty store"),
            ])
            self._data = {}
            return 0

        logger.tree("Snapshot Loaded", [
            ("Store", self.name),
            ("Records", str(len(self._data))),
        ], emoji="💾")
        return len(self._data)

    def persist(self) -> bool:
        """
        Overwrite the snapshot file with the full mapping.

        Returns:
            True if written, False if the write failed (already logged;
            in-memory state is kept).
        """
        try:
            self._write_snapshot()
        except PersistenceError as e:
            logger.error("Snapshot Write Failed", [
                ("Store", self.name),
                ("Path", str(self.path)),
                ("Error", str(e)[:100]),
            ])
            return False
        return True

    def serialize(self) -> str:
        """Render the full mapping exactly as persist() writes it."""
        payload = {key: self.encode_value(value) for key, value in self._data.items()}
        return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n"

    def _read_snapshot(self) -> Dict[str, T]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PersistenceError(self.path, f"unreadable snapshot: {e}") from e

        if not isinstance(raw, dict):
            raise PersistenceError(self.path, f"expected an object, got {type(raw).__name__}")

        try:
            return {str(key): self.decode_value(value) for key, value in raw.items()}
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(self.path, f"bad record: {e}") from e

    def _write_snapshot(self) -> None:
        try:
            content = self.serialize()
        except (TypeError, ValueError) as e:
            raise PersistenceError(self.path, f"cannot serialize: {e}") from e

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise PersistenceError(self.path, f"write failed: {e}") from e

    # =========================================================================
    # Mapping Operations
    # =========================================================================

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        return self._data.get(key, default)

    def set(self, key: str, value: T) -> None:
        """Store a value and persist."""
        self._data[key] = value
        self.persist()

    def delete(self, key: str) -> bool:
        """
        Remove a key and persist.

        Returns:
            True if the key existed.
        """
        if key not in self._data:
            return False
        del self._data[key]
        self.persist()
        return True

    def update(self, key: str, mutate: Callable[[Optional[T]], T]) -> T:
        """
        Read-modify-write a single key in one synchronous step, then persist.

        Args:
            key: Record key.
            mutate: Receives the current value (None if absent) and returns
                the new value. Must not await.

        Returns:
            The new value.
        """
        value = mutate(self._data.get(key))
        self._data[key] = value
        self.persist()
        return value

    def items(self) -> Iterator[Tuple[str, T]]:
        return iter(list(self._data.items()))

    def keys(self) -> Iterator[str]:
        return iter(list(self._data.keys()))

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


__all__ = [
    "PersistedKeyedStore",
]
