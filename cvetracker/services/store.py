"""Vulnerability storage.

Two media implement the same contract: ``SqlVulnerabilityStore`` keeps
records in a database table with opaque UUID identifiers, and
``InMemoryVulnerabilityStore`` keeps them in a list owned by the instance
with integer identifiers counting up from 1.
"""
import abc
import logging
import threading
import uuid
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from cvetracker.errors import InvalidIdentifier, MediumUnavailable, NotFound, ValidationError
from cvetracker.models import Vulnerability
from cvetracker.services.validator import as_utc, parse_severity, parse_timestamp

logger = logging.getLogger(__name__)

# Fields an update may replace; _id and dateLogged are fixed at creation
UPDATABLE_FIELDS = ("name", "severity", "description", "status")


class VulnerabilityStore(abc.ABC):
    backend = None

    @abc.abstractmethod
    def insert(self, record: dict) -> dict:
        """Store ``record`` under a fresh identifier and return it with ``_id``."""

    @abc.abstractmethod
    def list_all(self) -> list:
        """Return every record, newest ``dateLogged`` first."""

    @abc.abstractmethod
    def get(self, identifier) -> dict:
        ...

    @abc.abstractmethod
    def update(self, identifier, fields: dict) -> None:
        """Apply ``fields`` except ``_id`` and ``dateLogged``."""

    @abc.abstractmethod
    def delete(self, identifier) -> None:
        ...

    @abc.abstractmethod
    def count(self) -> int:
        ...

    @staticmethod
    def _changes(fields: dict) -> dict:
        """Keep the updatable fields of ``fields`` and check their values.

        Raises ``ValidationError`` for a non-numeric severity or a non-text field.
        """
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if "severity" in changes:
            changes["severity"] = parse_severity(changes["severity"])
            if changes["severity"] is None:
                raise ValidationError()
        for field in ("name", "description", "status"):
            if field in changes and not isinstance(changes[field], str):
                raise ValidationError()
        return changes


class InMemoryVulnerabilityStore(VulnerabilityStore):
    backend = "memory"

    def __init__(self, initial=None):
        self._lock = threading.Lock()
        self._records = []
        for record in initial or []:
            stored = dict(record)
            stored["_id"] = int(stored["_id"])
            stored["dateLogged"] = parse_timestamp(stored["dateLogged"])
            self._records.append(stored)
        self._next_id = max((r["_id"] for r in self._records), default=0) + 1

    @staticmethod
    def _parse_id(identifier) -> int:
        if isinstance(identifier, bool):
            raise InvalidIdentifier()
        try:
            return int(identifier)
        except (TypeError, ValueError):
            raise InvalidIdentifier()

    def _index_of(self, identifier: int) -> int:
        for i, record in enumerate(self._records):
            if record["_id"] == identifier:
                return i
        raise NotFound()

    def insert(self, record):
        with self._lock:
            stored = {"_id": self._next_id, **strip_id(record)}
            self._next_id += 1
            self._records.append(stored)
            return dict(stored)

    def list_all(self):
        with self._lock:
            snapshot = [dict(r) for r in self._records]
        return sorted(snapshot, key=lambda r: r["dateLogged"], reverse=True)

    def get(self, identifier):
        vid = self._parse_id(identifier)
        with self._lock:
            return dict(self._records[self._index_of(vid)])

    def update(self, identifier, fields):
        vid = self._parse_id(identifier)
        changes = self._changes(fields)
        with self._lock:
            self._records[self._index_of(vid)].update(changes)

    def delete(self, identifier):
        vid = self._parse_id(identifier)
        with self._lock:
            del self._records[self._index_of(vid)]

    def count(self):
        with self._lock:
            return len(self._records)


class SqlVulnerabilityStore(VulnerabilityStore):
    backend = "database"

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, action: str):
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("store: %s failed: %s", action, e)
            raise MediumUnavailable(f"Failed to {action} vulnerability.") from e
        finally:
            db.close()

    @staticmethod
    def _parse_id(identifier) -> str:
        try:
            return uuid.UUID(str(identifier)).hex
        except ValueError:
            raise InvalidIdentifier()

    @staticmethod
    def _to_dict(row: Vulnerability) -> dict:
        return {
            "_id": row.id,
            "name": row.name,
            "severity": row.severity,
            "description": row.description,
            "status": row.status,
            "dateLogged": as_utc(row.date_logged),
        }

    def insert(self, record):
        with self._session("create") as db:
            row = Vulnerability(id=uuid.uuid4().hex, date_logged=record["dateLogged"])
            for field in UPDATABLE_FIELDS:
                setattr(row, field, record[field])
            db.add(row)
            db.commit()
            return self._to_dict(row)

    def list_all(self):
        with self._session("retrieve") as db:
            rows = db.query(Vulnerability).order_by(Vulnerability.date_logged.desc()).all()
            return [self._to_dict(r) for r in rows]

    def get(self, identifier):
        vid = self._parse_id(identifier)
        with self._session("retrieve") as db:
            row = db.get(Vulnerability, vid)
            if row is None:
                raise NotFound()
            return self._to_dict(row)

    def update(self, identifier, fields):
        vid = self._parse_id(identifier)
        changes = {getattr(Vulnerability, k): v for k, v in self._changes(fields).items()}
        with self._session("update") as db:
            if not changes:
                if db.get(Vulnerability, vid) is None:
                    raise NotFound()
                return
            matched = db.query(Vulnerability).filter(Vulnerability.id == vid).update(
                changes, synchronize_session=False
            )
            if matched == 0:
                db.rollback()
                raise NotFound()
            db.commit()

    def delete(self, identifier):
        vid = self._parse_id(identifier)
        with self._session("delete") as db:
            deleted = db.query(Vulnerability).filter(Vulnerability.id == vid).delete(
                synchronize_session=False
            )
            if deleted == 0:
                db.rollback()
                raise NotFound()
            db.commit()

    def count(self):
        with self._session("count") as db:
            return db.query(Vulnerability).count()


def strip_id(record: dict) -> dict:
    return {k: v for k, v in record.items() if k != "_id"}
