"""Flat record store

Every collection is a JSON array stored under its own key in a string-to-string
backend. Reads and writes always move the whole collection; there are no
partial updates and no transactions, so the last writer wins.
"""

import json
import logging
import sqlite3
from contextlib import closing
from typing import Callable, Dict, Generic, List, Optional, Type, TypeVar

from .constants import (
    INSTITUTIONS_KEY, INDICATORS_KEY, EVALUATIONS_KEY, RESPONSES_KEY,
    COMPLIANCE_KEY, IMPROVEMENTS_KEY, RISKS_KEY, SETTINGS_KEY, ALL_KEYS,
)
from .exceptions import BackupError
from .models import (
    Institution, Indicator, Evaluation, Response, ComplianceRecord,
    RiskRegisterItem, ImprovementItem, Settings,
)
from .scoring import classify_risk

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MemoryBackend:
    """Key/value backend held in a dict"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class SqliteBackend:
    """Key/value backend in a single SQLite table.

    A connection is opened per call, so the backend can be shared freely
    within one process.
    """

    def __init__(self, path: str):
        self.path = path
        self.init_db()

    def _connect(self):
        return sqlite3.connect(self.path)

    def init_db(self):
        with closing(self._connect()) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            ''')
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with closing(self._connect()) as conn:
            row = conn.execute('SELECT value FROM storage WHERE key = ?', (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        with closing(self._connect()) as conn:
            conn.execute(
                'INSERT INTO storage (key, value) VALUES (?, ?) '
                'ON CONFLICT(key) DO UPDATE SET value = excluded.value',
                (key, value)
            )
            conn.commit()

    def delete(self, key: str):
        with closing(self._connect()) as conn:
            conn.execute('DELETE FROM storage WHERE key = ?', (key,))
            conn.commit()

    def keys(self) -> List[str]:
        with closing(self._connect()) as conn:
            return [row[0] for row in conn.execute('SELECT key FROM storage ORDER BY key')]


class Collection(Generic[T]):
    """A named list of records keyed by ``id``"""

    def __init__(self, backend, key: str, record_type: Type[T]):
        self.backend = backend
        self.key = key
        self.record_type = record_type

    def _load_raw(self) -> List[dict]:
        stored = self.backend.get(self.key)
        return json.loads(stored) if stored else []

    def _save_raw(self, items: List[dict]):
        self.backend.set(self.key, json.dumps(items, ensure_ascii=False))
        logger.debug("Saved %d records under %s", len(items), self.key)

    def list(self) -> List[T]:
        return [self.record_type.from_dict(item) for item in self._load_raw()]

    def get(self, record_id: str) -> Optional[T]:
        for item in self._load_raw():
            if item.get("id") == record_id:
                return self.record_type.from_dict(item)
        return None

    def upsert(self, record: T) -> T:
        """Replace the record with the same id in place, or append it"""
        items = self._load_raw()
        data = record.to_dict()
        for index, item in enumerate(items):
            if item.get("id") == data["id"]:
                items[index] = data
                break
        else:
            items.append(data)
        self._save_raw(items)
        return record

    def extend(self, records: List[T]):
        if not records:
            return
        items = self._load_raw()
        items.extend(record.to_dict() for record in records)
        self._save_raw(items)

    def delete(self, record_id: str) -> bool:
        items = self._load_raw()
        remaining = [item for item in items if item.get("id") != record_id]
        self._save_raw(remaining)
        return len(remaining) != len(items)

    def replace_all(self, records: List[T]):
        self._save_raw([record.to_dict() for record in records])

    def __len__(self):
        return len(self._load_raw())


class RecordStore:
    """All collections of the application over one backend"""

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else MemoryBackend()
        self.institutions: Collection[Institution] = Collection(self.backend, INSTITUTIONS_KEY, Institution)
        self.indicators: Collection[Indicator] = Collection(self.backend, INDICATORS_KEY, Indicator)
        self.evaluations: Collection[Evaluation] = Collection(self.backend, EVALUATIONS_KEY, Evaluation)
        self.responses: Collection[Response] = Collection(self.backend, RESPONSES_KEY, Response)
        self.compliance: Collection[ComplianceRecord] = Collection(self.backend, COMPLIANCE_KEY, ComplianceRecord)
        self.risks: Collection[RiskRegisterItem] = Collection(self.backend, RISKS_KEY, RiskRegisterItem)
        self.improvements: Collection[ImprovementItem] = Collection(self.backend, IMPROVEMENTS_KEY, ImprovementItem)
        self.collections: Dict[str, Collection] = {
            c.key: c for c in (
                self.institutions, self.indicators, self.evaluations, self.responses,
                self.compliance, self.risks, self.improvements,
            )
        }
        self._listeners: List[Callable[[Settings], None]] = []

    # --- Settings ---

    def get_settings(self) -> Settings:
        stored = self.backend.get(SETTINGS_KEY)
        return Settings.from_dict(json.loads(stored)) if stored else Settings()

    def save_settings(self, settings: Settings) -> Settings:
        self.backend.set(SETTINGS_KEY, json.dumps(settings.to_dict(), ensure_ascii=False))
        self._notify(settings)
        return settings

    def subscribe(self, listener: Callable[[Settings], None]) -> Callable[[], None]:
        """Register a settings listener; returns a callable that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, settings: Settings):
        for listener in list(self._listeners):
            listener(settings)

    # --- Backup ---

    def export_backup(self) -> Dict[str, str]:
        """Every stored key as a flat string-to-string map"""
        backup = {}
        for key in self.backend.keys():
            value = self.backend.get(key)
            if value is not None:
                backup[key] = value
        return backup

    def export_backup_json(self) -> str:
        return json.dumps(self.export_backup(), ensure_ascii=False)

    def import_backup(self, payload) -> List[str]:
        """Restore keys from a backup document (text or already-parsed map).

        The whole document is validated before anything is written; a bad
        document raises BackupError and leaves the store untouched. Keys absent
        from the backup keep their current value.
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except (ValueError, UnicodeDecodeError) as e:
                raise BackupError(f"Backup is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise BackupError("Backup must be a JSON object")

        for key, value in payload.items():
            if not isinstance(value, str):
                raise BackupError(f"Value for {key!r} must be a string")
            if key in ALL_KEYS:
                self._check_backup_value(key, value)

        for key, value in payload.items():
            self.backend.set(key, value)
        logger.info("Restored %d keys from backup", len(payload))

        if SETTINGS_KEY in payload:
            self._notify(self.get_settings())
        return list(payload)

    def _check_backup_value(self, key: str, value: str):
        """Raise BackupError unless the value reads back as the stored type"""
        try:
            data = json.loads(value)
        except ValueError as e:
            raise BackupError(f"Value for {key!r} is not valid JSON: {e}") from e

        if key == SETTINGS_KEY:
            if not isinstance(data, dict):
                raise BackupError("Settings must be a JSON object")
            return

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise BackupError(f"Value for {key!r} must be a list of objects")
        record_type = self.collections[key].record_type
        try:
            records = [record_type.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise BackupError(f"Invalid record under {key!r}: {e}") from e

        if key == RISKS_KEY:
            for risk in records:
                try:
                    classify_risk(risk.probability, risk.impact)
                except ValueError as e:
                    raise BackupError(f"Invalid risk {risk.id!r}: {e}") from e

    def clear(self):
        """Remove every collection and the settings"""
        for key in self.backend.keys():
            self.backend.delete(key)
        logger.info("Cleared all stored data")
        self._notify(self.get_settings())
