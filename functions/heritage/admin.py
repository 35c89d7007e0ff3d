"""
Admin mutations: validation, upserts, verified deletes, settings and uploads.

Every call that changes a table checks the affected-row count the backend
reports; zero rows is a policy rejection, not a success.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

from heritage.db import DbClient
from heritage.errors import (
    AdminError,
    BackendError,
    NotFoundError,
    PolicyRejectedError,
    ValidationError,
)
from heritage.events import SettingsNotifier
from heritage.storage import StorageClient

logger = logging.getLogger(__name__)

CATEGORY_REQUIRED = ("slug", "title_en", "title_km")
ITEM_REQUIRED = ("category_slug", "title_en", "title_km")

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


@dataclass
class Dashboard:
    categories: list[dict]
    items: list[dict]
    settings: list[dict]


def _missing(draft: dict, required: tuple[str, ...]) -> list[str]:
    return [name for name in required if not str(draft.get(name) or "").strip()]


def validate_category(draft: dict) -> None:
    missing = _missing(draft, CATEGORY_REQUIRED)
    if missing:
        raise ValidationError(
            "Slug, English Title, and Khmer Title are required.", missing
        )


def validate_item(draft: dict) -> None:
    missing = _missing(draft, ITEM_REQUIRED)
    if missing:
        raise ValidationError(
            "Category, English Title, and Khmer Title are required.", missing
        )


def _call(action: str, fn, *args, **kwargs):
    """Run a backend call, reporting unexpected failures with their raw message."""
    try:
        return fn(*args, **kwargs)
    except AdminError:
        raise
    except Exception as exc:
        logger.exception("%s failed", action)
        raise BackendError(f"{action}: {exc}") from exc


def load_dashboard(db: DbClient) -> Dashboard:
    return Dashboard(
        categories=_call("Error loading categories", db.list_categories),
        items=_call("Error loading items", db.list_items, newest_first=True),
        settings=_call("Error loading settings", db.list_site_settings),
    )


def save_category(db: DbClient, draft: dict) -> dict:
    validate_category(draft)
    payload = dict(draft)
    try:
        payload["order"] = int(payload.get("order") or 0)
    except (TypeError, ValueError):
        raise ValidationError("Order must be a whole number.", ["order"])
    payload["has_map_feature"] = bool(payload.get("has_map_feature", False))

    if payload.get("id"):
        existing = _call("Error saving category", db.get_category, payload["id"])
        if existing and existing["slug"] != payload["slug"]:
            raise ValidationError(
                "Slug cannot be changed once a category is created.", ["slug"]
            )
    saved = _call("Error saving category", db.upsert_category, payload)
    logger.info("Saved category %s (%s)", saved["slug"], saved["id"])
    return saved


def save_item(db: DbClient, draft: dict) -> dict:
    validate_item(draft)
    payload = dict(draft)
    payload["images"] = [url for url in payload.get("images") or [] if url]
    saved = _call("Error saving item", db.upsert_item, payload)
    logger.info("Saved item %s in %s", saved["id"], saved["category_slug"])
    return saved


def delete_item(db: DbClient, item_id: str) -> None:
    count = _call("Failed to delete item", db.delete_item, item_id)
    if count == 0:
        logger.warning("Delete of item %s affected 0 rows", item_id)
        raise PolicyRejectedError(
            "Item was not deleted (0 rows affected). Row level security is "
            "likely blocking the DELETE for this account."
        )
    logger.info("Deleted item %s", item_id)


def delete_category(db: DbClient, category_id: str) -> int:
    """
    Deletes a category together with every item filed under its slug.

    Both deletes happen as one unit: on any failure neither table changes.
    Returns the number of items removed with the category.
    """
    category = _call("Failed to delete category", db.get_category, category_id)
    if not category:
        raise NotFoundError("Category not found. Try refreshing.")
    logger.info("Deleting category %s and its items", category["slug"])
    try:
        items, _ = _call(
            "Failed to delete category",
            db.delete_category_cascade,
            category_id,
            category["slug"],
        )
    except PolicyRejectedError:
        logger.warning("Delete of category %s was rejected", category["slug"])
        raise
    return items


def save_setting(
    db: DbClient,
    key: str,
    value: str,
    notifier: Optional[SettingsNotifier] = None,
) -> None:
    """Update-by-key when the row exists, insert otherwise."""
    existing = {
        row["key"] for row in _call("Error saving setting", db.list_site_settings)
    }
    if key in existing:
        count = _call("Error saving setting", db.update_setting, key, value)
        if count == 0:
            raise PolicyRejectedError(
                f"Setting {key} was not updated (0 rows affected)."
            )
    else:
        _call("Error saving setting", db.insert_setting, key, value, key)
    logger.info("Saved setting %s", key)
    if notifier is not None:
        notifier.publish()


def make_storage_key(filename: str, now_ms: Optional[int] = None) -> str:
    """`<epoch ms>_<name with non-alphanumerics as _>.<extension>`."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    extension = filename.rsplit(".", 1)[-1]
    clean_name = _UNSAFE_NAME_CHARS.sub("_", filename)
    return f"{now_ms}_{clean_name}.{extension}"


def upload_media(
    storage: StorageClient,
    filename: str,
    data: bytes,
    content_type: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> str:
    """Stores the bytes and returns their public URL."""
    if not filename:
        raise ValidationError("A file is required.", ["file"])
    path = make_storage_key(filename, now_ms)
    try:
        storage.upload(path, data, content_type or "application/octet-stream")
    except Exception as exc:
        logger.exception("Upload of %s failed", filename)
        raise BackendError(
            f"Upload failed: {exc}. Check that the media bucket exists and "
            "allows inserts."
        ) from exc
    url = storage.get_public_url(path)
    logger.info("Uploaded %s as %s", filename, path)
    return url
