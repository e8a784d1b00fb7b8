"""
Record store - load/save and per-record atomic update of workflow requests
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List, Optional, Protocol

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hrportal.core.errors import ConcurrentUpdateError, NotFoundError
from hrportal.models.workflow import WorkflowRequest


class RecordStore(Protocol):
    def load(self, record_id: int) -> Optional[WorkflowRequest]:
        ...

    def load_many(self, record_ids: List[int]) -> List[WorkflowRequest]:
        ...

    def save(self, record: WorkflowRequest) -> WorkflowRequest:
        ...

    def atomic_update(self, record_id: int):
        """Context manager yielding the record; commits on clean exit, discards every change otherwise"""
        ...


class KeyedLocks:
    """Mutex per key; entries are dropped once no thread holds or waits on them"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, list] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every store in the process so decisions on one record never interleave
record_locks = KeyedLocks()


class SqlAlchemyRecordStore:
    """
    RecordStore over a SQLAlchemy session.

    atomic_update serializes writers on the same record id with an in-process
    mutex, takes a row lock where the dialect has one, and relies on the
    version_id column so a writer in another process cannot commit over a
    stale read.
    """

    def __init__(self, db: Session, locks: KeyedLocks = record_locks):
        self.db = db
        self.locks = locks

    def load(self, record_id: int) -> Optional[WorkflowRequest]:
        return self.db.get(WorkflowRequest, record_id)

    def load_many(self, record_ids: List[int]) -> List[WorkflowRequest]:
        records = []
        for record_id in record_ids:
            record = self.load(record_id)
            if record is None:
                raise NotFoundError(f"Request with id {record_id} not found", record_id=record_id)
            records.append(record)
        return records

    def save(self, record: WorkflowRequest) -> WorkflowRequest:
        self.db.add(record)
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConcurrentUpdateError(
                f"Request {record.id} was changed by another writer", record_id=record.id
            )
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return record

    @contextmanager
    def atomic_update(self, record_id: int) -> Iterator[WorkflowRequest]:
        with self.locks.hold(record_id):
            # Drop cached state so the check runs against the committed row
            self.db.expire_all()
            record = (
                self.db.query(WorkflowRequest)
                .filter(WorkflowRequest.id == record_id)
                .with_for_update()
                .first()
            )
            if record is None:
                self.db.rollback()
                raise NotFoundError(f"Request with id {record_id} not found", record_id=record_id)
            try:
                yield record
                self.db.commit()
            except StaleDataError:
                self.db.rollback()
                raise ConcurrentUpdateError(
                    f"Request {record_id} was changed by another writer", record_id=record_id
                )
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(record)
