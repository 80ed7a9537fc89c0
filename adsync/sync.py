# adsync/sync.py
"""Batch synchronization of device records against the server copy.

A device sends the records it changed while offline together with the
watermark of its last successful sync. Each record is merged on its own:

* unknown ``(owner, id)``: the record is inserted, keeping the client's
  ``createdAt``/``updatedAt`` when it sent them;
* known record: last-write-wins on ``updatedAt``. The client copy replaces
  the server copy only when its timestamp is strictly newer; ties and
  older copies leave the server untouched. Accepted writes are re-stamped
  with the server time, so replaying the same batch is a no-op.

Records are committed one at a time. A bad record produces a ``Failed``
outcome and the rest of the batch carries on; store connectivity errors
are not caught and fail the whole call.

After the batch, when a watermark was given, every record of the owner
modified after it is returned (deleted ones included, and including rows
this call just wrote) so the device can converge.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, List, Optional, Union
from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.orm import Session
from . import crud, schemas
from .errors import InvalidInput, from_validation_error
from .models import Advertisement
from .utils import logger, as_utc, utc_now


@dataclass(frozen=True)
class _Outcome:
    record_id: Any
    status: ClassVar[str] = ""

    def as_dict(self):
        return {"id": self.record_id, "status": self.status}


@dataclass(frozen=True)
class Created(_Outcome):
    status: ClassVar[str] = "created"


@dataclass(frozen=True)
class Updated(_Outcome):
    status: ClassVar[str] = "updated"


@dataclass(frozen=True)
class Skipped(_Outcome):
    """Server copy kept: the client timestamp was missing, equal or older."""
    status: ClassVar[str] = "skipped"


@dataclass(frozen=True)
class Failed(_Outcome):
    error: str = ""
    status: ClassVar[str] = "failed"

    def as_dict(self):
        return {"id": self.record_id, "status": self.status, "error": self.error}


Outcome = Union[Created, Updated, Skipped, Failed]


@dataclass
class SyncResult:
    outcomes: List[Outcome]
    server_changes: List[Advertisement]
    sync_time: datetime

    def _count(self, kind) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, kind))

    @property
    def created(self) -> int:
        return self._count(Created)

    @property
    def updated(self) -> int:
        return self._count(Updated)

    @property
    def skipped(self) -> int:
        return self._count(Skipped)

    @property
    def errors(self) -> List[dict]:
        return [{"id": o.record_id, "error": o.error} for o in self.outcomes if isinstance(o, Failed)]


def reconcile(db: Session, owner_id: str, device_id: str, batch,
              watermark: Optional[datetime] = None, clock=utc_now) -> SyncResult:
    if not owner_id:
        raise InvalidInput("owner identity is required")
    if not isinstance(batch, (list, tuple)):
        raise InvalidInput("advertisements must be an array")

    now = as_utc(clock())
    outcomes = [_merge_one(db, owner_id, device_id, raw, now) for raw in batch]

    server_changes = []
    if watermark is not None:
        server_changes = crud.changed_since(db, owner_id, as_utc(watermark))

    result = SyncResult(outcomes=outcomes, server_changes=server_changes, sync_time=now)
    logger.info(
        "Sync for %s from %s: %d created, %d updated, %d skipped, %d failed, %d server changes",
        owner_id, device_id, result.created, result.updated, result.skipped,
        len(result.errors), len(server_changes),
    )
    return result


def _merge_one(db: Session, owner_id: str, device_id: str, raw, now: datetime) -> Outcome:
    record_id = raw.get("id") if isinstance(raw, dict) else None
    try:
        if not isinstance(raw, dict):
            raise InvalidInput("record must be an object")
        candidate = schemas.SyncCandidate.model_validate(raw)
        existing = crud.get_advertisement(db, owner_id, candidate.id)
        if existing is None:
            _insert(db, owner_id, device_id, candidate, now)
            return Created(candidate.id)

        client_ts = as_utc(candidate.updated_at)
        if client_ts is None or client_ts <= as_utc(existing.updated_at):
            return Skipped(candidate.id)

        updates = candidate.changes()
        updates.update(owner_id=owner_id, device_id=device_id, updated_at=now, synced_at=now)
        crud.update_advertisement(db, existing, updates)
        return Updated(candidate.id)
    except ValidationError as e:
        error = from_validation_error(e).message
    except InvalidInput as e:
        error = e.message
    except DBAPIError as e:
        # a lost connection fails the whole call, anything else only this record
        if e.connection_invalidated or isinstance(e, (OperationalError, InterfaceError)):
            raise
        db.rollback()
        error = str(e.orig or e)
    except Exception as e:
        db.rollback()
        error = str(e) or type(e).__name__
    logger.warning("Sync record %r rejected: %s", record_id, error)
    return Failed(record_id, error)


def _insert(db: Session, owner_id: str, device_id: str, candidate: schemas.SyncCandidate, now: datetime):
    missing = candidate.missing_fields()
    if missing:
        raise InvalidInput("missing required fields: " + ", ".join(missing))
    data = candidate.model_dump(include=set(schemas.MUTABLE_FIELDS))
    data["images"] = data["images"] or []
    data.update(
        ad_id=candidate.id,
        owner_id=owner_id,
        device_id=device_id,
        created_at=as_utc(candidate.created_at) or now,
        updated_at=as_utc(candidate.updated_at) or now,
        synced_at=now,
        is_deleted=bool(candidate.is_deleted),
    )
    return crud.insert_advertisement(db, data)
