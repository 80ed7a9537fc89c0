# adsync/crud.py
"""Record store queries for `Advertisement` and `Device` entities.

Every query is scoped to an owner. Writes commit immediately so that a
batch sync is applied record by record.
"""
from datetime import timedelta
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy import select, update, func
from sqlalchemy.orm import Session
from .models import Advertisement, Device
from typing import Any, Dict, List, Optional

MAX_PAGE_SIZE = 1000

def get_advertisement(db: Session, owner_id: str, ad_id: str, include_deleted: bool = True):
    stmt = select(Advertisement).where(
        Advertisement.owner_id == owner_id, Advertisement.ad_id == ad_id
    )
    if not include_deleted:
        stmt = stmt.where(Advertisement.is_deleted.is_(False))
    return db.scalars(stmt).first()

def list_advertisements(db: Session, owner_id: str, since=None, limit: int = MAX_PAGE_SIZE) -> List[Advertisement]:
    stmt = select(Advertisement).where(
        Advertisement.owner_id == owner_id, Advertisement.is_deleted.is_(False)
    )
    if since is not None:
        stmt = stmt.where(Advertisement.updated_at > since)
    stmt = stmt.order_by(Advertisement.created_at.desc(), Advertisement.id.desc())
    return list(db.scalars(stmt.limit(min(limit, MAX_PAGE_SIZE))))

def changed_since(db: Session, owner_id: str, watermark) -> List[Advertisement]:
    # deleted rows are part of the delta so devices learn about deletes
    stmt = (
        select(Advertisement)
        .where(Advertisement.owner_id == owner_id, Advertisement.updated_at > watermark)
        .order_by(Advertisement.updated_at.desc(), Advertisement.id.desc())
    )
    return list(db.scalars(stmt))

def insert_advertisement(db: Session, data: Dict[str, Any]) -> Advertisement:
    obj = Advertisement(**data)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def update_advertisement(db: Session, obj: Advertisement, updates: Dict[str, Any]) -> Advertisement:
    for k, v in updates.items():
        setattr(obj, k, v)
    db.commit()
    db.refresh(obj)
    return obj

def category_stats(db: Session, owner_id: str) -> Dict[str, Any]:
    active = (Advertisement.owner_id == owner_id, Advertisement.is_deleted.is_(False))
    rows = db.execute(
        select(Advertisement.category, func.count(Advertisement.id))
        .where(*active)
        .group_by(Advertisement.category)
        .order_by(func.count(Advertisement.id).desc(), Advertisement.category)
    ).all()
    total = db.scalar(select(func.count(Advertisement.id)).where(*active))
    return {"total": total or 0, "by_category": [{"category": c, "count": n} for c, n in rows]}

def _insert_for(db: Session):
    return pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert

def upsert_device(db: Session, device_id: str, owner_id: str, platform: Optional[str], now):
    table = Device.__table__
    insert = _insert_for(db)
    values = {
        "device_id": device_id,
        "owner_id": owner_id,
        "platform": platform or "android",
        "last_sync": now,
        "is_active": True,
    }
    stmt = insert(table).values(device_name="Mobile device", **values)
    # refresh ownership and liveness on every request from the device
    refreshed = {k: stmt.excluded[k] for k in values if k != "device_id"}
    refreshed["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(index_elements=["device_id"], set_=refreshed)
    db.execute(stmt)
    db.commit()

def get_device(db: Session, device_id: str):
    return db.scalars(select(Device).where(Device.device_id == device_id)).first()

def deactivate_stale_devices(db: Session, now, stale_after: timedelta) -> int:
    result = db.execute(
        update(Device)
        .where(Device.is_active.is_(True), Device.last_sync < now - stale_after)
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount
