# adsync/services.py
from uuid import uuid4
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from . import crud, schemas
from .errors import Conflict, NotFound
from .utils import logger, as_utc, utc_now
from typing import Any, Dict, Optional

def new_ad_id() -> str:
    return uuid4().hex

def register_device(db: Session, owner_id: str, device_id: str, platform: Optional[str] = None, clock=utc_now):
    crud.upsert_device(db, device_id, owner_id, platform, as_utc(clock()))

def create_advertisement(db: Session, owner_id: str, device_id: str,
                         payload: schemas.AdvertisementCreate, clock=utc_now):
    ad_id = payload.id or new_ad_id()
    if crud.get_advertisement(db, owner_id, ad_id) is not None:
        raise Conflict()
    now = as_utc(clock())
    data = payload.model_dump(include=set(schemas.MUTABLE_FIELDS))
    data.update(
        ad_id=ad_id,
        owner_id=owner_id,
        device_id=device_id,
        created_at=now,
        updated_at=now,
        is_deleted=False,
    )
    try:
        obj = crud.insert_advertisement(db, data)
    except IntegrityError:
        # lost a race against another create for the same id
        db.rollback()
        raise Conflict()
    logger.info("Created advertisement %s for %s", ad_id, owner_id)
    return obj

def get_advertisement(db: Session, owner_id: str, ad_id: str):
    obj = crud.get_advertisement(db, owner_id, ad_id, include_deleted=False)
    if obj is None:
        raise NotFound()
    return obj

def list_advertisements(db: Session, owner_id: str, since=None):
    return crud.list_advertisements(db, owner_id, since=as_utc(since))

def update_advertisement(db: Session, owner_id: str, ad_id: str,
                         payload: schemas.AdvertisementUpdate, clock=utc_now):
    obj = crud.get_advertisement(db, owner_id, ad_id, include_deleted=False)
    if obj is None:
        raise NotFound()
    updates = payload.changes()
    updates["updated_at"] = as_utc(clock())
    return crud.update_advertisement(db, obj, updates)

def delete_advertisement(db: Session, owner_id: str, ad_id: str, clock=utc_now):
    """Soft-delete; deleting an already deleted record succeeds again."""
    obj = crud.get_advertisement(db, owner_id, ad_id)
    if obj is None:
        raise NotFound()
    crud.update_advertisement(db, obj, {"is_deleted": True, "updated_at": as_utc(clock())})
    logger.info("Deleted advertisement %s for %s", ad_id, owner_id)
    return obj

def advertisement_stats(db: Session, owner_id: str) -> Dict[str, Any]:
    return crud.category_stats(db, owner_id)
