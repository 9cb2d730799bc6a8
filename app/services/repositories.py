"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Firestore).

Both stores speak in plain dict records and report unique-index conflicts and
connectivity failures as the domain errors from app.core.errors.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from google.api_core import exceptions as google_exceptions
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import session_factory
from app.core.errors import StoreConnectionError, UniqueConstraintViolation
from app.models import Booking, Event
from app.services.firebase_client import get_firestore_client

logger = logging.getLogger(__name__)

EVENTS = "events"
BOOKINGS = "bookings"

Record = Dict[str, Any]

# Firestore rejects ids of the form __name__
RESERVED_ID = re.compile(r"^__.*__$")


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


class DocumentStore(ABC):
    """Interface for record persistence, one collection per entity."""

    @abstractmethod
    def find_one(self, collection: str, filter: Record) -> Optional[Record]:
        """Return the first record matching every field of filter, or None."""
        ...

    @abstractmethod
    def find(self, collection: str, filter: Optional[Record] = None, order_by: Optional[str] = None) -> List[Record]:
        """Return matching records; order_by is a field name, "-" prefix for descending."""
        ...

    @abstractmethod
    def insert(self, collection: str, record: Record) -> Record:
        """Persist a new record, assigning id and timestamps.

        Raises:
            UniqueConstraintViolation: a unique field already holds the value.
            StoreConnectionError: the store is unreachable.
        """
        ...

    @abstractmethod
    def update(self, collection: str, record_id: Any, changes: Record) -> Optional[Record]:
        """Apply changes to a record and refresh updated_at; None if absent."""
        ...

    @abstractmethod
    def delete(self, collection: str, record_id: Any) -> bool:
        """Delete a record; False if it did not exist."""
        ...

    @abstractmethod
    def count(self, collection: str, filter: Record) -> int:
        ...


# -------- SQLAlchemy store --------

class SqlDocumentStore(DocumentStore):
    MODELS = {EVENTS: Event, BOOKINGS: Booking}

    def __init__(self, db: Session):
        self.db = db

    def _model(self, collection: str):
        try:
            return self.MODELS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    @staticmethod
    def _to_record(obj) -> Record:
        return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}

    @staticmethod
    def _unique_column(model, exc: IntegrityError) -> Optional[str]:
        message = str(exc.orig)
        for column in model.__table__.columns:
            if column.unique and column.name in message:
                return column.name
        return None

    def _commit(self, model) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            field = self._unique_column(model, exc)
            if field is None:
                raise
            logger.warning("Unique constraint on %s.%s rejected write", model.__tablename__, field)
            raise UniqueConstraintViolation(field) from exc
        except OperationalError as exc:
            self.db.rollback()
            logger.error("Database unavailable: %s", exc.orig)
            raise StoreConnectionError() from exc

    def _query(self, collection: str, filter: Optional[Record]):
        return self.db.query(self._model(collection)).filter_by(**(filter or {}))

    def _fetch(self, query, method: str = "first"):
        try:
            return getattr(query, method)()
        except OperationalError as exc:
            self.db.rollback()
            logger.error("Database unavailable: %s", exc.orig)
            raise StoreConnectionError() from exc

    def find_one(self, collection: str, filter: Record) -> Optional[Record]:
        obj = self._fetch(self._query(collection, filter))
        return self._to_record(obj) if obj else None

    def find(self, collection: str, filter: Optional[Record] = None, order_by: Optional[str] = None) -> List[Record]:
        model = self._model(collection)
        query = self._query(collection, filter)
        if order_by:
            column = getattr(model, order_by.lstrip("-"))
            if order_by.startswith("-"):
                query = query.order_by(column.desc(), model.id.desc())
            else:
                query = query.order_by(column, model.id)
        return [self._to_record(obj) for obj in self._fetch(query, "all")]

    def insert(self, collection: str, record: Record) -> Record:
        model = self._model(collection)
        obj = model(**record)
        self.db.add(obj)
        self._commit(model)
        self.db.refresh(obj)
        return self._to_record(obj)

    def update(self, collection: str, record_id: Any, changes: Record) -> Optional[Record]:
        model = self._model(collection)
        obj = self._fetch(self._query(collection, {"id": record_id}))
        if not obj:
            return None
        for field, value in changes.items():
            setattr(obj, field, value)
        obj.updated_at = datetime.utcnow()
        self._commit(model)
        self.db.refresh(obj)
        return self._to_record(obj)

    def delete(self, collection: str, record_id: Any) -> bool:
        model = self._model(collection)
        obj = self._fetch(self._query(collection, {"id": record_id}))
        if not obj:
            return False
        self.db.delete(obj)
        self._commit(model)
        return True

    def count(self, collection: str, filter: Record) -> int:
        return self._fetch(self._query(collection, filter), "count")


# -------- Firestore store --------

def _slug_key(value: Any) -> str:
    # Prefixed so empty or dunder-shaped slugs are still valid document ids
    return f"slug-{value}"


class FirestoreDocumentStore(DocumentStore):
    """Firestore shape: one collection per entity with auto ids.

    Firestore has no unique indexes, so each unique field value gets a
    reservation document in "<collection>_<field>" written in the same batch
    as the record; a second create of the same reservation fails the batch.
    """

    UNIQUE_FIELDS = {EVENTS: ("slug",)}

    def __init__(self, client):
        self.fs = client

    def _reservation(self, collection: str, field: str, value: Any):
        return self.fs.collection(f"{collection}_{field}").document(_slug_key(value))

    @staticmethod
    def _snapshot(doc) -> Record:
        data = doc.to_dict()
        data["id"] = doc.id
        return data

    def _commit(self, collection: str, batch) -> None:
        try:
            batch.commit()
        except google_exceptions.Conflict as exc:
            fields = self.UNIQUE_FIELDS.get(collection, ("id",))
            logger.warning("Reservation on %s.%s rejected write", collection, fields[0])
            raise UniqueConstraintViolation(fields[0]) from exc
        except (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded) as exc:
            raise StoreConnectionError() from exc

    def _get(self, collection: str, record_id: Any):
        """Snapshot of a document, or None when record_id cannot name one"""
        doc_id = str(record_id)
        if not doc_id or "/" in doc_id or doc_id in (".", "..") or RESERVED_ID.match(doc_id):
            return None
        try:
            ref = self.fs.collection(collection).document(doc_id)
        except ValueError:
            return None
        try:
            return ref.get()
        except (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded) as exc:
            raise StoreConnectionError() from exc

    def _query(self, collection: str, filter: Optional[Record]):
        query = self.fs.collection(collection)
        for field, value in (filter or {}).items():
            query = query.where(field, "==", value)
        return query

    def _run(self, query) -> list:
        try:
            return query.get()
        except (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded) as exc:
            raise StoreConnectionError() from exc

    def find_one(self, collection: str, filter: Record) -> Optional[Record]:
        filter = dict(filter)
        if "id" in filter:
            doc = self._get(collection, filter.pop("id"))
            if doc is None or not doc.exists:
                return None
            data = self._snapshot(doc)
            return data if all(data.get(k) == v for k, v in filter.items()) else None

        docs = self._run(self._query(collection, filter).limit(1))
        return self._snapshot(docs[0]) if docs else None

    def find(self, collection: str, filter: Optional[Record] = None, order_by: Optional[str] = None) -> List[Record]:
        query = self._query(collection, filter)
        if order_by:
            direction = "DESCENDING" if order_by.startswith("-") else "ASCENDING"
            query = query.order_by(order_by.lstrip("-"), direction=direction)
        return [self._snapshot(d) for d in self._run(query)]

    def insert(self, collection: str, record: Record) -> Record:
        now = datetime.utcnow().isoformat()
        data = {**record, "created_at": now, "updated_at": now}
        ref = self.fs.collection(collection).document()

        batch = self.fs.batch()
        for field in self.UNIQUE_FIELDS.get(collection, ()):
            batch.create(self._reservation(collection, field, data[field]), {"doc_id": ref.id})
        batch.create(ref, data)
        self._commit(collection, batch)

        data["id"] = ref.id
        return data

    def update(self, collection: str, record_id: Any, changes: Record) -> Optional[Record]:
        doc = self._get(collection, record_id)
        if doc is None or not doc.exists:
            return None
        current = doc.to_dict()
        changes = {**changes, "updated_at": datetime.utcnow().isoformat()}

        batch = self.fs.batch()
        for field in self.UNIQUE_FIELDS.get(collection, ()):
            if field in changes and changes[field] != current.get(field):
                batch.create(self._reservation(collection, field, changes[field]), {"doc_id": doc.id})
                batch.delete(self._reservation(collection, field, current.get(field)))
        batch.set(doc.reference, changes, merge=True)
        self._commit(collection, batch)

        data = {**current, **changes}
        data["id"] = doc.id
        return data

    def delete(self, collection: str, record_id: Any) -> bool:
        doc = self._get(collection, record_id)
        if doc is None or not doc.exists:
            return False
        current = doc.to_dict()

        batch = self.fs.batch()
        for field in self.UNIQUE_FIELDS.get(collection, ()):
            batch.delete(self._reservation(collection, field, current.get(field)))
        batch.delete(doc.reference)
        self._commit(collection, batch)
        return True

    def count(self, collection: str, filter: Record) -> int:
        return len(self._run(self._query(collection, filter)))


def get_store() -> Iterator[DocumentStore]:
    """FastAPI dependency yielding the configured document store"""
    if use_firestore():
        yield FirestoreDocumentStore(get_firestore_client())
        return

    try:
        db = session_factory()()
    except OperationalError as exc:
        raise StoreConnectionError() from exc
    try:
        yield SqlDocumentStore(db)
    finally:
        db.close()
