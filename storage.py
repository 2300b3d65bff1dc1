"""Local persistent state for the procurement ledger.

``LocalStorage`` keeps named JSON slots in a single SQLite file, the way a
browser keeps ``localStorage`` items per origin. ``PersistentState`` wraps one
slot with an in-memory value, a one-time hydration read and write-back on
every committed change.

Every storage failure is non-fatal: it is logged and the caller keeps working
with its in-memory value.

``LocalStorage`` is shared between Streamlit sessions, each running in its own
thread, so every operation opens and closes its own connection.
"""

import json
import logging
import os
import sqlite3
from contextlib import closing
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]


class LocalStorage:
    def __init__(self, db_path="dairy_procurement.db"):
        """Open the storage file and create the slot table if it doesn't exist."""
        self.db_path = db_path
        self.available = self.initialize_storage()

    def connect(self) -> sqlite3.Connection:
        """Open a new connection to the storage file."""
        return sqlite3.connect(self.db_path)

    def initialize_storage(self) -> bool:
        """Create the slot table; report whether the medium is usable."""
        if not self.db_path:
            logger.warning("No storage path configured; running in-memory only")
            return False

        directory = os.path.dirname(os.path.abspath(self.db_path))
        if not os.path.isdir(directory):
            logger.warning("Storage directory %s does not exist; running in-memory only", directory)
            return False

        try:
            with closing(self.connect()) as conn, conn:
                conn.execute('''
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                ''')
        except sqlite3.Error as e:
            logger.warning("Storage at %s is unavailable: %s", self.db_path, e)
            return False
        return True

    def get_item(self, key: str) -> Optional[str]:
        """Return the raw text stored under ``key``, or None."""
        with closing(self.connect()) as conn:
            row = conn.execute("SELECT value FROM storage WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str):
        """Store raw text under ``key``, replacing any previous value."""
        with closing(self.connect()) as conn, conn:
            conn.execute(
                "INSERT OR REPLACE INTO storage (key, value) VALUES (?, ?)",
                (key, value)
            )

    def remove_item(self, key: str):
        """Delete the slot ``key`` if present."""
        with closing(self.connect()) as conn, conn:
            conn.execute("DELETE FROM storage WHERE key = ?", (key,))

    def load(self, key: str, default: Any, decode: Optional[Decoder] = None) -> Tuple[Any, bool]:
        """Read and deserialize a slot.

        Returns ``(value, hydrated)``. The value is ``default`` when the slot is
        absent, unreadable, corrupt or the storage is unavailable. ``hydrated``
        is True once the read attempt has completed, whatever its outcome.
        """
        if not self.available:
            return default, True

        try:
            stored = self.get_item(key)
        except (sqlite3.Error, OSError) as e:
            logger.warning('Failed to read storage item "%s": %s', key, e)
            return default, True

        if not stored:
            return default, True

        try:
            data = json.loads(stored)
            value = decode(data) if decode else data
        except (ValueError, KeyError, TypeError) as e:
            logger.warning('Failed to parse storage item "%s": %s', key, e)
            return default, True

        return value, True

    def save(self, key: str, value: Any, encode: Optional[Encoder] = None) -> bool:
        """Serialize and write a slot. Returns False when the write failed."""
        if not self.available:
            return False

        try:
            payload = json.dumps(encode(value) if encode else value)
            self.set_item(key, payload)
        except (sqlite3.Error, OSError, TypeError, ValueError) as e:
            logger.warning('Failed to write storage item "%s": %s', key, e)
            return False
        return True

    def reset(self, key: str, default: Any) -> Any:
        """Remove the slot and hand back the default value."""
        if self.available:
            try:
                self.remove_item(key)
            except (sqlite3.Error, OSError) as e:
                logger.warning('Failed to remove storage item "%s": %s', key, e)
        return default


class PersistentState:
    """One named slot: in-memory value, hydration flag and write-back.

    The first write never happens before the initial read: ``set_value`` on a
    state that has not hydrated yet performs the read first, so stored data is
    not clobbered by the default the state was created with.
    """

    def __init__(self, key: str, default: Any, storage: Optional[LocalStorage] = None,
                 encode: Optional[Encoder] = None, decode: Optional[Decoder] = None):
        self.key = key
        self.default = default
        self.storage = storage
        self.encode = encode
        self.decode = decode
        self.value = self._fresh_default()
        # Nothing to wait for without a storage medium
        self.hydrated = storage is None or not storage.available

    def _fresh_default(self):
        if isinstance(self.default, list):
            return list(self.default)
        return self.default

    def hydrate(self):
        """Load the slot once; later calls are no-ops."""
        if self.hydrated:
            return self.value
        self.value, self.hydrated = self.storage.load(self.key, self._fresh_default(), self.decode)
        logger.debug('Hydrated storage item "%s"', self.key)
        return self.value

    def set_value(self, value):
        """Commit a new value in memory and write it back."""
        if not self.hydrated:
            self.hydrate()
        self.value = value
        if self.storage is not None:
            self.storage.save(self.key, value, self.encode)
        return self.value

    def update(self, func: Callable[[Any], Any]):
        """Commit ``func(current_value)``."""
        if not self.hydrated:
            self.hydrate()
        return self.set_value(func(self.value))

    def reset(self):
        """Restore the default value and clear the stored slot."""
        default = self._fresh_default()
        if self.storage is not None:
            default = self.storage.reset(self.key, default)
        self.value = default
        self.hydrated = True
        return self.value
