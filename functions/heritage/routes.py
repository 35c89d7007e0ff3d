"""
HTTP routes for the public site.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from heritage.config import Settings, get_settings
from heritage.db import DbClient
from heritage.dependencies import get_background_music, get_db_client
from heritage.schemas import BackgroundMusicResponse, StatusResponse
from heritage.views import (
    BackgroundMusic,
    build_category_page,
    build_home,
    build_item_page,
    to_payload,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/home")
async def home(
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    page = await build_home(
        db,
        category_limit=settings.home_category_limit,
        featured_slug=settings.featured_category_slug,
        default_hero_image=settings.default_hero_image,
    )
    return to_payload(page)


@router.get("/category/{slug}")
def category_page(slug: str, db: DbClient = Depends(get_db_client)):
    page = build_category_page(db, slug)
    if page is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return to_payload(page)


@router.get("/item/{item_id}")
def item_page(
    item_id: str,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    page = build_item_page(
        db, item_id, backfill_demo=settings.demo_location_backfill
    )
    if page is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return to_payload(page)


@router.get("/site/background-music", response_model=BackgroundMusicResponse)
def background_music(music: BackgroundMusic = Depends(get_background_music)):
    return BackgroundMusicResponse(url=music.url)


@router.get("/health", response_model=StatusResponse)
def health(db: DbClient = Depends(get_db_client)):
    try:
        db.ping()
    except Exception as exc:
        logger.error("Health check failed: %s", exc)
        raise HTTPException(status_code=503, detail="Backend unavailable")
    return StatusResponse(status="ok")
