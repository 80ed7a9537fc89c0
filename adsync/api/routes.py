# adsync/api/routes.py
import time
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
from .. import schemas, services
from ..auth import DeviceHeaders, get_device_headers, get_owner_id, require_device_id
from ..db import get_db
from ..errors import InvalidInput
from ..sync import reconcile
from ..utils import isoformat

router = APIRouter()

PLATFORMS = {p.value for p in schemas.Platform}


def get_clock(request: Request):
    return request.app.state.clock


def touch_device(db: Session, owner_id: str, device_id: Optional[str], platform: Optional[str],
                 headers: DeviceHeaders, clock) -> str:
    device_id = require_device_id(device_id, headers.device_id)
    platform = platform or headers.platform
    if platform is not None and platform not in PLATFORMS:
        raise InvalidInput("platform must be one of: " + ", ".join(sorted(PLATFORMS)))
    services.register_device(db, owner_id, device_id, platform, clock=clock)
    return device_id


@router.get("/health")
def health(request: Request, clock=Depends(get_clock)):
    connected = request.app.state.database.ping()
    return {
        "status": "ok",
        "timestamp": isoformat(clock()),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "database": "connected" if connected else "disconnected",
    }


@router.get("/advertisements")
def list_advertisements(
    last_sync: Optional[datetime] = Query(None, alias="lastSync"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
):
    items = [schemas.to_app_format(ad) for ad in services.list_advertisements(db, owner_id, since=last_sync)]
    return {"success": True, "data": items, "count": len(items), "syncTime": isoformat(clock())}


@router.get("/advertisements/stats")
def advertisement_stats(
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
):
    stats = services.advertisement_stats(db, owner_id)
    return {
        "success": True,
        "data": {"total": stats["total"], "byCategory": stats["by_category"], "lastUpdate": isoformat(clock())},
    }


@router.post("/advertisements/sync")
def sync_advertisements(
    payload: schemas.SyncRequest,
    headers: DeviceHeaders = Depends(get_device_headers),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
):
    device_id = touch_device(db, owner_id, payload.device_id, payload.platform, headers, clock)
    result = reconcile(db, owner_id, device_id, payload.advertisements,
                       watermark=payload.last_sync, clock=clock)
    return {
        "success": True,
        "results": {
            "created": result.created,
            "updated": result.updated,
            "skipped": result.skipped,
            "errors": result.errors,
        },
        "outcomes": [o.as_dict() for o in result.outcomes],
        "serverChanges": [schemas.to_app_format(ad) for ad in result.server_changes],
        "syncTime": isoformat(result.sync_time),
    }


@router.get("/advertisements/{ad_id}")
def get_advertisement(ad_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    obj = services.get_advertisement(db, owner_id, ad_id)
    return {"success": True, "data": schemas.to_app_format(obj)}


@router.post("/advertisements", status_code=201)
def create_advertisement(
    payload: schemas.AdvertisementCreate,
    headers: DeviceHeaders = Depends(get_device_headers),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
):
    device_id = touch_device(db, owner_id, payload.device_id, payload.platform, headers, clock)
    obj = services.create_advertisement(db, owner_id, device_id, payload, clock=clock)
    return {"success": True, "data": schemas.to_app_format(obj)}


@router.put("/advertisements/{ad_id}")
def update_advertisement(
    ad_id: str,
    payload: schemas.AdvertisementUpdate,
    headers: DeviceHeaders = Depends(get_device_headers),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
):
    touch_device(db, owner_id, payload.device_id, payload.platform, headers, clock)
    obj = services.update_advertisement(db, owner_id, ad_id, payload, clock=clock)
    return {"success": True, "data": schemas.to_app_format(obj)}


@router.delete("/advertisements/{ad_id}")
def delete_advertisement(
    ad_id: str,
    headers: DeviceHeaders = Depends(get_device_headers),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
):
    touch_device(db, owner_id, None, None, headers, clock)
    services.delete_advertisement(db, owner_id, ad_id, clock=clock)
    return {"success": True, "message": "Advertisement deleted"}
