# adsync/models.py
"""SQLAlchemy ORM models for persisted entities.

`Advertisement` rows are keyed by (owner_id, ad_id) and are never physically
removed; deletes only set `is_deleted`. `Device` rows record which device
last talked to the service on behalf of an owner.
"""
from sqlalchemy import (
    Column, Integer, Text, Boolean, TIMESTAMP, JSON, func, Index, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from .db import Base

class Advertisement(Base):
    __tablename__ = "advertisements"
    __table_args__ = (
        UniqueConstraint("owner_id", "ad_id", name="uq_advertisements_owner_ad"),
    )
    id = Column(Integer, primary_key=True, index=True)
    ad_id = Column(Text, nullable=False)
    owner_id = Column(Text, nullable=False, index=True)
    device_id = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    contact = Column(Text, nullable=False)
    images = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False)
    synced_at = Column(TIMESTAMP(timezone=True))
    is_deleted = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Advertisement {self.owner_id}/{self.ad_id}>"

Index("idx_advertisements_owner_created", Advertisement.owner_id, Advertisement.created_at.desc())
Index("idx_advertisements_owner_updated", Advertisement.owner_id, Advertisement.updated_at.desc())
Index("idx_advertisements_category", Advertisement.category, Advertisement.created_at.desc())
Index("idx_advertisements_deleted", Advertisement.is_deleted)


class Device(Base):
    __tablename__ = "devices"
    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(Text, nullable=False, unique=True, index=True)
    owner_id = Column(Text, nullable=False, index=True)
    device_name = Column(Text, nullable=False, default="Mobile device")
    platform = Column(Text, nullable=False, default="android")
    last_sync = Column(TIMESTAMP(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

Index("idx_devices_owner_last_sync", Device.owner_id, Device.last_sync.desc())
