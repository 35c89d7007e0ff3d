"""
Read paths between the public pages and the table service.

None of these functions raise: backend failures are logged and turned into
the same empty value a missing row produces. `/api/health` is the place to
tell an outage apart from an empty site.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Optional

from heritage.db import DbClient
from shared.types import (
    Category,
    ContentItem,
    LocationCoordinates,
    PhotoSpot,
    category_from_row,
    content_item_from_row,
)

logger = logging.getLogger(__name__)


class SettingKey(StrEnum):
    HERO_IMAGE = "hero_image"
    BG_MUSIC = "bg_music"


@dataclass
class SiteConfig:
    """Typed view over the site_settings key/value rows."""

    values: dict[str, str] = field(default_factory=dict)

    def get(self, key: SettingKey) -> Optional[str]:
        return self.values.get(key.value) or None

    @property
    def hero_image(self) -> Optional[str]:
        return self.get(SettingKey.HERO_IMAGE)

    @property
    def bg_music(self) -> Optional[str]:
        return self.get(SettingKey.BG_MUSIC)


# Placeholder map data shown while items lack their own (Angkor Wat).
DEMO_COORDINATES = LocationCoordinates(lat=13.4125, lng=103.8670)
DEMO_MAP_IMAGE_URL = (
    "https://media.gettyimages.com/id/165516082/vector/angkor-wat-plan.jpg"
)
DEMO_PHOTO_SPOTS = (
    PhotoSpot(
        title="Reflection Pond at Sunrise",
        description=(
            "Capture the iconic silhouette of the five towers reflected in the "
            "northern lily pond. Best visited between 5:30 AM and 6:00 AM."
        ),
        image_url="https://submit.shutterstock.com/700/1039860268.jpg",
    ),
    PhotoSpot(
        title="The Eastern Gallery",
        description=(
            "Deep bas-reliefs look spectacular when the morning sun strikes "
            "them at a low angle."
        ),
        image_url="https://media.istockphoto.com/id/507005072/photo/bas-reliefs-in-angkor-wat-cambodia.jpg",
    ),
    PhotoSpot(
        title="Upper Level View",
        description=(
            "A commanding view of the causeway and the surrounding jungle from "
            "the Akanistha level."
        ),
        image_url="https://thumbs.dreamstime.com/b/view-angkor-wat-temple-top-level-siem-reap-cambodia-119154743.jpg",
    ),
)


def list_categories(db: DbClient) -> list[Category]:
    try:
        rows = db.list_categories()
    except Exception:
        logger.exception("Error fetching categories")
        return []
    categories = [category_from_row(row) for row in rows or []]
    return sorted(categories, key=lambda category: category.order)


def get_category_by_slug(db: DbClient, slug: str) -> Optional[Category]:
    try:
        row = db.get_category_by_slug(slug)
    except Exception:
        logger.exception("Error fetching category %s", slug)
        return None
    return category_from_row(row) if row else None


def list_items_by_category(db: DbClient, slug: str) -> list[ContentItem]:
    try:
        rows = db.list_items(slug)
    except Exception:
        logger.exception("Error fetching items for %s", slug)
        return []
    return [content_item_from_row(row) for row in rows or []]


def backfill_demo_location(item: ContentItem) -> ContentItem:
    if item.location_coordinates is None:
        item.location_coordinates = replace(DEMO_COORDINATES)
    if not item.map_image_url:
        item.map_image_url = DEMO_MAP_IMAGE_URL
    if item.photo_spots is None:
        item.photo_spots = [replace(spot) for spot in DEMO_PHOTO_SPOTS]
    return item


def get_item_detail(
    db: DbClient, item_id: str, *, backfill_demo: bool = False
) -> Optional[ContentItem]:
    try:
        row = db.get_item(item_id)
    except Exception:
        logger.exception("Error fetching item %s", item_id)
        return None
    if not row:
        return None
    item = content_item_from_row(row)
    if backfill_demo:
        backfill_demo_location(item)
    return item


def get_site_settings(db: DbClient) -> dict[str, str]:
    try:
        rows = db.list_site_settings()
    except Exception:
        logger.exception("Error fetching site settings")
        return {}
    return {row["key"]: row["value"] for row in rows or []}


def get_site_config(db: DbClient) -> SiteConfig:
    return SiteConfig(get_site_settings(db))
