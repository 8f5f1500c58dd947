"""
user_store.py - Per-user verbosity state backed by TinyDB.

One document per user in the "users" table:

    {"user_id": "<normalized id>", "count": 3, "length": 2}

The store is created once at startup and shared by every invocation.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping

from pydantic import ValidationError
from tinydb import Query, TinyDB
from tinydb.storages import MemoryStorage

from models import UserRecord, UserRecordUpdate

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
USER_ID_SEPARATOR = "."
USER_ID_COMPONENT = 3


class StoreUnavailableError(Exception):
    """The store could not be read or written."""


class InvalidUserIdError(ValueError):
    pass


def normalize_user_id(raw_user_id: str) -> str:
    """Return the store key for a platform user id.

    Platform ids look like ``amzn1.ask.account.<opaque>``; the key is the
    fourth dot-separated component.
    """
    parts = raw_user_id.split(USER_ID_SEPARATOR)
    if len(parts) <= USER_ID_COMPONENT or not parts[USER_ID_COMPONENT]:
        raise InvalidUserIdError(f"malformed user id: {raw_user_id!r}")
    return parts[USER_ID_COMPONENT]


class UserStateStore:
    def __init__(self, db: TinyDB, label: str = "tinydb") -> None:
        self._db = db
        self._table = db.table(USERS_TABLE)
        self._lock = threading.RLock()
        self.label = label

    @classmethod
    def open(cls, path: str | Path) -> "UserStateStore":
        path = Path(path)
        try:
            db = TinyDB(str(path), create_dirs=True)
        except (OSError, ValueError) as exc:
            raise StoreUnavailableError(f"cannot open user store at {path}") from exc
        logger.info("User store opened at %s", path)
        return cls(db, label=str(path))

    @classmethod
    def in_memory(cls) -> "UserStateStore":
        return cls(TinyDB(storage=MemoryStorage), label="memory")

    @contextmanager
    def transaction(self) -> Iterator["UserStateStore"]:
        """Hold the store lock across a read-modify-write sequence."""
        with self._lock:
            yield self

    def get(self, user_id: str) -> UserRecord | None:
        """Return the user's record, or None if the user has never been seen."""
        with self._lock:
            try:
                doc = self._table.get(Query().user_id == user_id)
            except (OSError, ValueError) as exc:
                logger.error("User store read failed for user_id=%r: %s", user_id, exc)
                raise StoreUnavailableError("user store read failed") from exc

        if doc is None:
            return None

        try:
            return UserRecord.model_validate(
                {"count": doc.get("count"), "length": doc.get("length")}
            )
        except ValidationError as exc:
            logger.error("Stored record for user_id=%r is invalid: %s", user_id, exc)
            raise StoreUnavailableError("stored user record is invalid") from exc

    def put(
        self,
        user_id: str,
        record: UserRecord | Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        """Write a record.

        merge=True updates only the given fields (creating the document if
        needed); merge=False replaces the document with a full record.
        """
        if isinstance(record, UserRecord):
            fields = record.model_dump()
        elif merge:
            fields = UserRecordUpdate.model_validate(record).model_dump(exclude_none=True)
        else:
            fields = UserRecord.model_validate(record).model_dump()

        cond = Query().user_id == user_id
        with self._lock:
            try:
                if merge:
                    self._table.upsert({**fields, "user_id": user_id}, cond)
                else:
                    self._table.remove(cond)
                    self._table.insert({**fields, "user_id": user_id})
            except (OSError, ValueError) as exc:
                logger.error("User store write failed for user_id=%r: %s", user_id, exc)
                raise StoreUnavailableError("user store write failed") from exc

    def close(self) -> None:
        self._db.close()
