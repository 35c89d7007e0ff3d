"""
Pydantic schemas for the heritage content API.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class LocationCoordinatesModel(BaseModel):
    lat: float
    lng: float


class PhotoSpotModel(BaseModel):
    title: str = ""
    description: str = ""
    image_url: str = ""


class CategoryPayload(BaseModel):
    id: Optional[str] = None
    slug: str = ""
    title_en: str = ""
    title_km: str = ""
    description_en: str = ""
    description_km: str = ""
    cover_image: str = ""
    order: Optional[int] = None
    has_map_feature: bool = False


class ItemPayload(BaseModel):
    id: Optional[str] = None
    category_slug: str = ""
    title_en: str = ""
    title_km: str = ""
    summary_en: str = ""
    summary_km: str = ""
    content_en: str = ""
    content_km: str = ""
    images: list[str] = Field(default_factory=list)
    audio: Optional[str] = None
    video: Optional[str] = None
    location_coordinates: Optional[LocationCoordinatesModel] = None
    map_image_url: Optional[str] = None
    photo_spots: Optional[list[PhotoSpotModel]] = None


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=1024)


class LoginResponse(BaseModel):
    access_token: str
    email: str


class DashboardResponse(BaseModel):
    email: str
    categories: list[dict]
    items: list[dict]
    settings: list[dict]


class OpenEditorRequest(BaseModel):
    kind: Literal["category", "item"]
    id: Optional[str] = None


class EditorResponse(BaseModel):
    kind: str
    is_new: bool
    fields: dict[str, Any]


class SettingRequest(BaseModel):
    value: str = Field(..., max_length=4096)


class UploadResponse(BaseModel):
    url: str


class StatusResponse(BaseModel):
    status: Literal["ok"]


class BackgroundMusicResponse(BaseModel):
    url: Optional[str] = None
