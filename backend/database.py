"""
Document store for calendar events

Events are stored as wire-form dictionaries keyed by their id. The default
repository keeps them in memory; ``JsonFileEventRepository`` persists them
to a JSON file so they survive restarts.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from errors import CalendarError, ConflictError, ValidationError
from models import FIELD_NAMES, event_errors

logger = logging.getLogger(__name__)

DOCUMENT_KEYS = list(FIELD_NAMES.values())
DEFAULTS = {'repeatType': 'none', 'isRecurring': False}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep schema keys only, as a strict document schema would"""
    return {key: data[key] for key in DOCUMENT_KEYS if key in data}


class EventRepository:
    """In-memory event documents, newest-created last"""

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def _persist(self) -> None:
        """Hook for durable subclasses; called after every write"""

    def close(self) -> None:
        pass

    def all(self) -> List[Dict[str, Any]]:
        """Every event, newest-created first"""
        with self._lock:
            return [dict(doc) for doc in reversed(list(self._documents.values()))]

    def get(self, event_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._documents.get(event_id)
            return dict(doc) if doc is not None else None

    def existing_ids(self, event_ids: Iterable[str]) -> Set[str]:
        with self._lock:
            return {event_id for event_id in event_ids if event_id in self._documents}

    def _insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(DEFAULTS)
        doc.update({k: v for k, v in _clean(data).items() if v is not None})
        errors = event_errors(doc)
        if errors:
            raise ValidationError('; '.join(errors))
        if doc['id'] in self._documents:
            raise ConflictError('Event with this ID already exists')
        doc['createdAt'] = doc['updatedAt'] = _now()
        self._documents[doc['id']] = doc
        return dict(doc)

    def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Store a new event document

        Raises:
            ValidationError: if the document breaks the schema
            ConflictError: if the id is already taken
        """
        with self._lock:
            doc = self._insert(data)
            self._persist()
        return doc

    def insert_many(self, documents: Iterable[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Unordered bulk insert: a failing document does not stop the rest

        Returns:
            (inserted documents, error messages)
        """
        inserted = []
        failures = []
        with self._lock:
            for data in documents:
                try:
                    inserted.append(self._insert(data))
                except CalendarError as exc:
                    failures.append(f"{data.get('id')}: {exc}")
            if inserted:
                self._persist()
        return inserted, failures

    def update(self, event_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply changes to a stored event; ``None`` values clear a field

        Returns:
            The updated document, or None when the id is unknown
        """
        changes = _clean(changes)
        changes.pop('id', None)
        with self._lock:
            current = self._documents.get(event_id)
            if current is None:
                return None
            doc = dict(current)
            for key, value in changes.items():
                if value is None:
                    doc.pop(key, None)
                else:
                    doc[key] = value
            for key, value in DEFAULTS.items():
                doc.setdefault(key, value)
            errors = event_errors(doc)
            if errors:
                raise ValidationError('; '.join(errors))
            doc['updatedAt'] = _now()
            self._documents[event_id] = doc
            self._persist()
            return dict(doc)

    def delete(self, event_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._documents.pop(event_id, None)
            if doc is not None:
                self._persist()
            return doc


class JsonFileEventRepository(EventRepository):
    """Event documents persisted to a JSON file"""

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        with open(self.path, 'r') as f:
            documents = json.load(f)
        # File order is oldest first
        self._documents = {doc['id']: doc for doc in documents}
        logger.info("Loaded %d events from %s", len(self._documents), self.path)

    def _persist(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        with tempfile.NamedTemporaryFile('w', dir=directory, suffix='.tmp', delete=False) as tmp_file:
            json.dump(list(self._documents.values()), tmp_file, indent=2)
            tmp_path = tmp_file.name
        os.replace(tmp_path, self.path)


class Database:
    """
    Lazily opened handle on the event repository

    ``connect`` opens the repository on first use and hands back the same
    one afterwards; concurrent first calls open it only once. A failed open
    is not cached, so the next call tries again. ``close`` releases it.
    """

    def __init__(self, store_path: Optional[str] = None):
        self.store_path = store_path
        self._repository: Optional[EventRepository] = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._repository is not None

    def _open(self) -> EventRepository:
        if self.store_path:
            return JsonFileEventRepository(self.store_path)
        return EventRepository()

    def connect(self) -> EventRepository:
        if self._repository is not None:
            return self._repository
        with self._lock:
            if self._repository is None:
                repository = self._open()
                logger.info("Event store ready (%s)", self.store_path or 'in-memory')
                self._repository = repository
        return self._repository

    def close(self) -> None:
        with self._lock:
            if self._repository is not None:
                self._repository.close()
                self._repository = None
                logger.info("Event store closed")
