"""
View-models for the public pages: home, category timeline and item detail.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from heritage import content
from heritage.db import DbClient
from heritage.events import SettingsNotifier
from shared.types import Category, ContentItem

logger = logging.getLogger(__name__)


@dataclass
class HomePage:
    hero_image: str
    categories: list[Category]
    featured_item: Optional[ContentItem]


@dataclass
class TimelineEntry:
    side: str
    item: ContentItem


@dataclass
class CategoryPage:
    category: Category
    entries: list[TimelineEntry]


@dataclass
class ItemPage:
    item: ContentItem
    category: Optional[Category]
    cover_image: Optional[str]
    gallery: list[str]
    show_map: bool


async def build_home(
    db: DbClient,
    *,
    category_limit: int,
    featured_slug: str,
    default_hero_image: str,
) -> HomePage:
    categories, settings, featured = await asyncio.gather(
        asyncio.to_thread(content.list_categories, db),
        asyncio.to_thread(content.get_site_config, db),
        asyncio.to_thread(content.list_items_by_category, db, featured_slug),
    )
    return HomePage(
        hero_image=settings.hero_image or default_hero_image,
        categories=categories[:category_limit],
        featured_item=featured[0] if featured else None,
    )


def build_category_page(db: DbClient, slug: str) -> Optional[CategoryPage]:
    category = content.get_category_by_slug(db, slug)
    if category is None:
        return None
    items = content.list_items_by_category(db, slug)
    entries = [
        TimelineEntry(side="left" if index % 2 == 0 else "right", item=item)
        for index, item in enumerate(items)
    ]
    return CategoryPage(category=category, entries=entries)


def build_item_page(
    db: DbClient, item_id: str, *, backfill_demo: bool = False
) -> Optional[ItemPage]:
    item = content.get_item_detail(db, item_id, backfill_demo=backfill_demo)
    if item is None:
        return None
    # Orphaned items (no matching category) still render, without map data.
    category = content.get_category_by_slug(db, item.category_slug)
    has_location = bool(item.location_coordinates or item.photo_spots)
    return ItemPage(
        item=item,
        category=category,
        cover_image=item.cover_image,
        gallery=item.gallery,
        show_map=bool(category and category.has_map_feature and has_location),
    )


def to_payload(page) -> dict:
    return asdict(page)


class BackgroundMusic:
    """Holds the site-wide background track; re-fetches on settings refresh."""

    def __init__(self, db: DbClient, notifier: SettingsNotifier):
        self.db = db
        self._lock = threading.Lock()
        self._url: Optional[str] = None
        self._loaded = False
        self._unsubscribe: Callable[[], None] = notifier.subscribe(self.refresh)

    def refresh(self) -> None:
        logger.info("Refreshing background music setting")
        url = content.get_site_config(self.db).bg_music
        with self._lock:
            self._url = url
            self._loaded = True

    @property
    def url(self) -> Optional[str]:
        if not self._loaded:
            self.refresh()
        return self._url

    def close(self) -> None:
        self._unsubscribe()
