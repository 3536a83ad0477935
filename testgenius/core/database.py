# testgenius/core/database.py
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Dict, Any, Optional
import pymongo
from pydantic import ValidationError
from .config import config
from .errors import PersistenceError
from .schemas import HistoryEntry

logger = logging.getLogger(__name__)

def _serialize(entry: HistoryEntry) -> Dict[str, Any]:
    return entry.model_dump(mode="json", by_alias=True)

def _deserialize(records: Any) -> List[HistoryEntry]:
    """Rebuild entries, skipping records that no longer validate"""
    if not isinstance(records, list):
        logger.warning("History record is not a list, ignoring it")
        return []

    entries = []
    for record in records:
        try:
            entries.append(HistoryEntry.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable history entry: {e.error_count()} validation errors")
    return entries

class HistoryStore:
    """Capped log of completed tests, most recent first.

    Subclasses persist the whole log as one record; ``append`` is atomic from
    the point of view of ``list`` and ``get``.
    """
    backend = "base"

    def __init__(self, capacity: int = None):
        self.capacity = capacity or config.HISTORY_CAPACITY
        self._lock = threading.Lock()

    def append(self, entry: HistoryEntry) -> None:
        raise NotImplementedError

    def list(self) -> List[HistoryEntry]:
        raise NotImplementedError

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        return next((e for e in self.list() if e.id == entry_id), None)

    def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "backend": self.backend, "capacity": self.capacity}

    def close(self):
        pass

class InMemoryHistoryStore(HistoryStore):
    """Process-local history, used in tests and when durability is not wanted"""
    backend = "memory"

    def __init__(self, capacity: int = None):
        super().__init__(capacity)
        self._entries: List[HistoryEntry] = []

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries = ([entry.model_copy(deep=True)] + self._entries)[:self.capacity]

    def list(self) -> List[HistoryEntry]:
        with self._lock:
            return [e.model_copy(deep=True) for e in self._entries]

class JsonFileHistoryStore(HistoryStore):
    """History kept as a JSON array in a single file, loaded once at start"""
    backend = "file"

    def __init__(self, path: str = None, capacity: int = None):
        super().__init__(capacity)
        self.path = Path(path or config.HISTORY_FILE)
        self._entries: List[HistoryEntry] = self._load()
        logger.info(f"✅ History loaded: {len(self._entries)} entries from {self.path}")

    def _load(self) -> List[HistoryEntry]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"❌ Failed to read history file {self.path}: {e}")
            return []
        return _deserialize(records)[:self.capacity]

    def _write(self, entries: List[HistoryEntry]):
        """Replace the file in one step so readers never see a partial log"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".history-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([_serialize(e) for e in entries], f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            entries = ([entry.model_copy(deep=True)] + self._entries)[:self.capacity]
            try:
                self._write(entries)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"❌ History write failed: {e}")
                raise PersistenceError(f"Could not save test to history: {e}")
            self._entries = entries
        logger.info(f"✅ History entry saved: {entry.id} ({len(entries)}/{self.capacity})")

    def list(self) -> List[HistoryEntry]:
        with self._lock:
            return [e.model_copy(deep=True) for e in self._entries]

    def health_check(self) -> Dict[str, Any]:
        status = super().health_check()
        status.update({"path": str(self.path), "entries": len(self._entries)})
        return status

class MongoHistoryStore(HistoryStore):
    """History kept as one MongoDB document holding the capped entry array"""
    backend = "mongo"

    def __init__(self, collection=None, capacity: int = None):
        super().__init__(capacity)
        self.mongo_client = None
        self.collection = collection
        self.record_key = config.HISTORY_RECORD_KEY

        if self.collection is None:
            self._init_mongodb()

    def _init_mongodb(self):
        """Initialize MongoDB connection"""
        try:
            self.mongo_client = pymongo.MongoClient(
                config.MONGO_URI,
                serverSelectionTimeoutMS=5000,
                maxPoolSize=10,
                minPoolSize=1
            )
            self.mongo_client.admin.command('ping')
            self.collection = self.mongo_client[config.MONGO_DB_NAME][config.HISTORY_COLLECTION]
            logger.info("✅ MongoDB connection established for history")
        except Exception as e:
            logger.error(f"❌ MongoDB connection failed: {e}")
            raise PersistenceError(f"MongoDB connection failure: {e}")

    def append(self, entry: HistoryEntry) -> None:
        # $position/$slice keep insert-at-head and truncation in one atomic update
        try:
            self.collection.update_one(
                {"_id": self.record_key},
                {"$push": {"entries": {
                    "$each": [_serialize(entry)],
                    "$position": 0,
                    "$slice": self.capacity
                }}},
                upsert=True
            )
        except Exception as e:
            logger.error(f"❌ History save to MongoDB failed: {e}")
            raise PersistenceError(f"Could not save test to history: {e}")
        logger.info(f"✅ History entry saved to MongoDB: {entry.id}")

    def list(self) -> List[HistoryEntry]:
        try:
            doc = self.collection.find_one({"_id": self.record_key})
        except Exception as e:
            logger.error(f"❌ History read from MongoDB failed: {e}")
            raise PersistenceError(f"Could not read history: {e}")
        if not doc:
            return []
        return _deserialize(doc.get("entries", []))[:self.capacity]

    def health_check(self) -> Dict[str, Any]:
        status = super().health_check()
        try:
            if self.mongo_client:
                self.mongo_client.admin.command('ping')
        except Exception as e:
            status.update({"status": "error", "message": str(e)})
        return status

    def close(self):
        """Close database connections"""
        if self.mongo_client:
            self.mongo_client.close()
            logger.info("✅ Database connections closed")

def create_history_store(backend: str = None) -> HistoryStore:
    backend = (backend or config.HISTORY_BACKEND).lower()
    if backend == "mongo":
        return MongoHistoryStore()
    if backend == "memory":
        return InMemoryHistoryStore()
    return JsonFileHistoryStore()

# Singleton pattern for history store
_history_store = None

def get_history_store() -> HistoryStore:
    """Get history store instance (singleton)"""
    global _history_store
    if _history_store is None:
        _history_store = create_history_store()
    return _history_store

def close_history_store():
    """Close history store instance"""
    global _history_store
    if _history_store:
        _history_store.close()
        _history_store = None
