# adsync/schemas.py
from enum import Enum
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from typing import Annotated, Any, List, Optional
from datetime import datetime
from .utils import as_utc

# wire values are shared with the mobile clients
class Category(str, Enum):
    VEHICLES = "Veículos"
    REAL_ESTATE = "Imóveis"
    ELECTRONICS = "Eletrônicos"
    FURNITURE = "Móveis"
    CLOTHING = "Roupas"
    SERVICES = "Serviços"
    OTHER = "Outros"

class Platform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"

MUTABLE_FIELDS = ("title", "description", "price", "category", "contact", "images")


def _none_to_list(value):
    return [] if value is None else value


ImageList = Annotated[List[str], BeforeValidator(_none_to_list)]


class DeviceFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True, use_enum_values=True)

    device_id: Optional[str] = Field(None, alias="deviceId", min_length=1, max_length=255)
    platform: Optional[Platform] = None

class AdvertisementCreate(DeviceFields):
    id: Optional[str] = Field(None, min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    price: str = Field(..., min_length=1)
    category: Category
    contact: str = Field(..., min_length=1)
    images: ImageList = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _blank_id_is_absent(cls, value):
        # an empty id means the server picks one
        if isinstance(value, str) and not value.strip():
            return None
        return value

class AdvertisementUpdate(DeviceFields):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    price: Optional[str] = Field(None, min_length=1)
    category: Optional[Category] = None
    contact: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = None

    def changes(self):
        return self.model_dump(include=set(MUTABLE_FIELDS), exclude_unset=True, exclude_none=True)

class SyncCandidate(BaseModel):
    """A client-side record proposed in a sync batch.

    Only `id` is mandatory here; creating a record from a candidate still
    needs the full set of required fields, updating one does not.
    `userId`/`deviceId` sent by the client are ignored.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True, use_enum_values=True,
                              coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1, max_length=255)
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    price: Optional[str] = Field(None, min_length=1)
    category: Optional[Category] = None
    contact: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = None
    created_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("createdAt", "created_at"))
    updated_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("updatedAt", "lastModified", "updated_at"))
    is_deleted: Optional[bool] = Field(
        None, validation_alias=AliasChoices("isDeleted", "is_deleted"))

    def changes(self):
        fields = set(MUTABLE_FIELDS) | {"is_deleted"}
        return self.model_dump(include=fields, exclude_unset=True, exclude_none=True)

    def missing_fields(self):
        return [name for name in MUTABLE_FIELDS if name != "images" and getattr(self, name) is None]

class SyncRequest(DeviceFields):
    advertisements: List[Any]
    last_sync: Optional[datetime] = Field(None, alias="lastSync")

class AdvertisementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias="ad_id", serialization_alias="id")
    title: str
    description: str
    price: str
    category: str
    contact: str
    images: ImageList = Field(default_factory=list)
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")
    is_deleted: bool = Field(False, serialization_alias="isDeleted")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value):
        return as_utc(value)


def to_app_format(ad) -> dict:
    return AdvertisementOut.model_validate(ad).model_dump(mode="json", by_alias=True)
