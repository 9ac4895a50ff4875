# trading_erp/db/interface.py
import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from trading_erp.db.connection import session_scope
from trading_erp.exceptions import DatabaseError
from trading_erp.models import KeyValueEntry

class KeyValueStore(ABC):
    """Synchronous key-value storage for JSON documents."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Read the document stored under a key."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a document under a key."""
        pass

    def set_many(self, values: Dict[str, Any]) -> None:
        """Store several documents at once."""
        for key, value in values.items():
            self.set(key, value)

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List the stored keys."""
        pass

class InMemoryKeyValueStore(KeyValueStore):
    """Key-value store kept in a dictionary.

    Documents are held as JSON text so callers never share mutable state
    with the store.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    def _encode(self, key: str, value: Any) -> str:
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise DatabaseError(f"Value for {key} is not serializable: {str(e)}")

    def set(self, key: str, value: Any) -> None:
        self._data[key] = self._encode(key, value)

    def set_many(self, values: Dict[str, Any]) -> None:
        # Encode everything first so a bad value stores nothing
        encoded = {key: self._encode(key, value) for key, value in values.items()}
        self._data.update(encoded)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)

class SqlKeyValueStore(KeyValueStore):
    """Key-value store backed by the ``kv_store`` table."""

    def __init__(self, engine=None):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine; the global connection when omitted
        """
        self._session_factory = sessionmaker(bind=engine) if engine is not None else None

    def _run(self, action):
        try:
            with session_scope(self._session_factory) as session:
                return action(session)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Key-value storage failed: {str(e)}")

    def get(self, key: str, default: Any = None) -> Any:
        def action(session):
            entry = session.get(KeyValueEntry, key)
            return None if entry is None else entry.value

        text = self._run(action)
        if text is None:
            return default
        return json.loads(text)

    def _upsert(self, session, key: str, value: Any) -> None:
        try:
            text = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise DatabaseError(f"Value for {key} is not serializable: {str(e)}")

        entry = session.get(KeyValueEntry, key)
        if entry is None:
            session.add(KeyValueEntry(key=key, value=text, updated_at=datetime.now()))
        else:
            entry.value = text
            entry.updated_at = datetime.now()

    def set(self, key: str, value: Any) -> None:
        self._run(lambda session: self._upsert(session, key, value))

    def set_many(self, values: Dict[str, Any]) -> None:
        # One commit for the whole batch
        def action(session):
            for key, value in values.items():
                self._upsert(session, key, value)
        self._run(action)

    def delete(self, key: str) -> None:
        def action(session):
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
        self._run(action)

    def keys(self) -> List[str]:
        rows = self._run(lambda session: session.query(KeyValueEntry.key).order_by(KeyValueEntry.key).all())
        return [row[0] for row in rows]
