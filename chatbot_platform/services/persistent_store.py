import json
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine

from chatbot_platform.core.config import Settings, settings as default_settings
from chatbot_platform.core.database import create_db_engine, create_session_factory, init_db
from chatbot_platform.core.exceptions import RecordDecodeError
from chatbot_platform.models.store import StoreEntry
from chatbot_platform.utils.logger import get_logger

logger = get_logger("chatbot_platform.services.persistent_store")

USERS_KEY = "users"
PROJECTS_KEY = "projects"
MESSAGES_PREFIX = "messages_"


def message_log_key(project_id: str) -> str:
    return f"{MESSAGES_PREFIX}{project_id}"


class PersistentStore:
    """
    Durable key -> collection store.

    Each key holds a whole JSON list. Callers read the full collection,
    mutate it in memory and write the full collection back; the last
    writer wins. Every put/delete is committed before returning.
    """

    def __init__(self, engine: Optional[Engine] = None, config: Optional[Settings] = None):
        config = config or default_settings
        self.engine = engine or create_db_engine(config.DATABASE_URL)
        init_db(self.engine)
        self.Session = create_session_factory(self.engine)

    def get(self, key: str) -> List[Any]:
        """Return the collection stored at ``key``, or an empty list."""
        with self.Session() as db:
            entry = db.get(StoreEntry, key)
            if entry is None:
                return []
            raw = entry.value
        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.error("Stored value is not valid JSON", extra={"key": key})
            raise RecordDecodeError() from e
        if not isinstance(value, list):
            logger.warning("Stored value is not a collection", extra={"key": key})
            return []
        return value

    def put(self, key: str, collection: List[Any]) -> None:
        payload = json.dumps(list(collection), ensure_ascii=False)
        with self.Session() as db:
            try:
                entry = db.get(StoreEntry, key)
                if entry is None:
                    db.add(StoreEntry(key=key, value=payload))
                else:
                    entry.value = payload
                db.commit()
            except Exception:
                db.rollback()
                logger.error("Failed to persist collection", extra={"key": key})
                raise
        logger.debug("Collection persisted", extra={"key": key, "size": len(collection)})

    def delete(self, key: str) -> None:
        with self.Session() as db:
            try:
                entry = db.get(StoreEntry, key)
                if entry is not None:
                    db.delete(entry)
                    db.commit()
            except Exception:
                db.rollback()
                logger.error("Failed to delete collection", extra={"key": key})
                raise
        logger.debug("Collection deleted", extra={"key": key})

    def keys(self, prefix: str = "") -> List[str]:
        with self.Session() as db:
            stmt = select(StoreEntry.key)
            if prefix:
                stmt = stmt.filter(StoreEntry.key.startswith(prefix, autoescape=True))
            return list(db.scalars(stmt.order_by(StoreEntry.key)))

    def close(self) -> None:
        self.engine.dispose()
