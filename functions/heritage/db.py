"""
Table access for categories, content items and site settings.

`PostgresDbClient` talks to the hosted Postgres through SQLAlchemy;
`InMemoryDbClient` is the development/test double. Rows cross this boundary
as plain dicts so callers stay independent of the ORM.
"""

from __future__ import annotations

import copy
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    text,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from heritage.errors import BackendError, PolicyRejectedError

CATEGORIES = "categories"
CONTENT_ITEMS = "content_items"
SITE_SETTINGS = "site_settings"

CATEGORY_FIELDS = (
    "id",
    "slug",
    "title_en",
    "title_km",
    "description_en",
    "description_km",
    "cover_image",
    "order",
    "has_map_feature",
)

ITEM_FIELDS = (
    "id",
    "category_slug",
    "title_en",
    "title_km",
    "summary_en",
    "summary_km",
    "content_en",
    "content_km",
    "images",
    "audio",
    "video",
    "created_at",
    "location_coordinates",
    "map_image_url",
    "photo_spots",
)


class DbClient(Protocol):
    """Interface for the hosted table service."""

    def ping(self) -> None:
        ...

    def list_categories(self) -> list[dict]:
        ...

    def get_category(self, category_id: str) -> Optional[dict]:
        ...

    def get_category_by_slug(self, slug: str) -> Optional[dict]:
        ...

    def upsert_category(self, row: dict) -> dict:
        ...

    def delete_category(self, category_id: str) -> int:
        ...

    def delete_category_cascade(self, category_id: str, slug: str) -> tuple[int, int]:
        ...

    def list_items(
        self, category_slug: Optional[str] = None, *, newest_first: bool = False
    ) -> list[dict]:
        ...

    def get_item(self, item_id: str) -> Optional[dict]:
        ...

    def upsert_item(self, row: dict) -> dict:
        ...

    def delete_item(self, item_id: str) -> int:
        ...

    def delete_items_by_category(self, slug: str) -> int:
        ...

    def list_site_settings(self) -> list[dict]:
        ...

    def update_setting(self, key: str, value: str) -> int:
        ...

    def insert_setting(self, key: str, value: str, label: str) -> dict:
        ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


def _pick(row: dict, fields: tuple[str, ...]) -> dict:
    return {name: row[name] for name in fields if name in row}


def _category_rejected(category_id: str) -> PolicyRejectedError:
    return PolicyRejectedError(
        f"0 categories were deleted for id {category_id}. Row level security "
        "is likely blocking DELETE for this account."
    )


def _items_rejected(slug: str, remaining: int) -> PolicyRejectedError:
    return PolicyRejectedError(
        f"Failed to delete items: {remaining} items of category {slug} "
        "could not be deleted."
    )


class InMemoryDbClient:
    """Simple in-memory table store for development and tests."""

    def __init__(self):
        self.categories: Dict[str, dict] = {}
        self.items: Dict[str, dict] = {}
        self.settings: Dict[str, dict] = {}
        # Tables whose deletes silently affect zero rows, the way a
        # row-level-security policy rejects them.
        self.deny_deletes: set[str] = set()
        self.available = True
        self.calls = 0

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.categories.clear()
        self.items.clear()
        self.settings.clear()
        self.deny_deletes.clear()
        self.available = True
        self.calls = 0

    def _check(self) -> None:
        self.calls += 1
        if not self.available:
            raise BackendError("backend service unreachable")

    def ping(self) -> None:
        self._check()

    def list_categories(self) -> list[dict]:
        self._check()
        rows = sorted(self.categories.values(), key=lambda row: row.get("order") or 0)
        return copy.deepcopy(rows)

    def get_category(self, category_id: str) -> Optional[dict]:
        self._check()
        row = self.categories.get(category_id)
        return copy.deepcopy(row) if row else None

    def get_category_by_slug(self, slug: str) -> Optional[dict]:
        self._check()
        for row in self.categories.values():
            if row["slug"] == slug:
                return copy.deepcopy(row)
        return None

    def upsert_category(self, row: dict) -> dict:
        self._check()
        data = _pick(row, CATEGORY_FIELDS)
        category_id = data.get("id") or _new_id()
        data["id"] = category_id
        for other in self.categories.values():
            if other["slug"] == data.get("slug") and other["id"] != category_id:
                raise BackendError(
                    'duplicate key value violates unique constraint "categories_slug_key"'
                )
        stored = self.categories.setdefault(category_id, {})
        stored.update(copy.deepcopy(data))
        return copy.deepcopy(stored)

    def delete_category(self, category_id: str) -> int:
        self._check()
        if CATEGORIES in self.deny_deletes:
            return 0
        return 1 if self.categories.pop(category_id, None) else 0

    def delete_category_cascade(self, category_id: str, slug: str) -> tuple[int, int]:
        self._check()
        removed = {
            item_id: row
            for item_id, row in self.items.items()
            if row["category_slug"] == slug
        }
        if removed and CONTENT_ITEMS in self.deny_deletes:
            raise _items_rejected(slug, len(removed))
        for item_id in removed:
            del self.items[item_id]
        deleted = self.delete_category(category_id)
        if deleted == 0:
            # Compensate: put the dependent items back.
            self.items.update(removed)
            raise _category_rejected(category_id)
        return len(removed), deleted

    def list_items(
        self, category_slug: Optional[str] = None, *, newest_first: bool = False
    ) -> list[dict]:
        self._check()
        rows = [
            row
            for row in self.items.values()
            if category_slug is None or row["category_slug"] == category_slug
        ]
        if newest_first:
            rows.sort(key=lambda row: row.get("created_at") or "", reverse=True)
        return copy.deepcopy(rows)

    def get_item(self, item_id: str) -> Optional[dict]:
        self._check()
        row = self.items.get(item_id)
        return copy.deepcopy(row) if row else None

    def upsert_item(self, row: dict) -> dict:
        self._check()
        data = _pick(row, ITEM_FIELDS)
        item_id = data.get("id") or _new_id()
        data["id"] = item_id
        stored = self.items.setdefault(item_id, {"created_at": _now_iso()})
        if not data.get("created_at"):
            data.pop("created_at", None)
        stored.update(copy.deepcopy(data))
        return copy.deepcopy(stored)

    def delete_item(self, item_id: str) -> int:
        self._check()
        if CONTENT_ITEMS in self.deny_deletes:
            return 0
        return 1 if self.items.pop(item_id, None) else 0

    def delete_items_by_category(self, slug: str) -> int:
        self._check()
        if CONTENT_ITEMS in self.deny_deletes:
            return 0
        doomed = [i for i, row in self.items.items() if row["category_slug"] == slug]
        for item_id in doomed:
            del self.items[item_id]
        return len(doomed)

    def list_site_settings(self) -> list[dict]:
        self._check()
        return copy.deepcopy(list(self.settings.values()))

    def update_setting(self, key: str, value: str) -> int:
        self._check()
        row = self.settings.get(key)
        if not row:
            return 0
        row["value"] = value
        return 1

    def insert_setting(self, key: str, value: str, label: str) -> dict:
        self._check()
        if key in self.settings:
            raise BackendError(
                'duplicate key value violates unique constraint "site_settings_pkey"'
            )
        self.settings[key] = {"key": key, "value": value, "label": label}
        return dict(self.settings[key])


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Session scope that reports driver failures as BackendError."""
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            raise BackendError(str(getattr(exc, "orig", None) or exc)) from exc

    @staticmethod
    def _row_dict(row, fields: tuple[str, ...]) -> dict:
        return {name: getattr(row, name) for name in fields}

    def ping(self) -> None:
        with self._session() as session:
            session.execute(text("SELECT 1"))

    def list_categories(self) -> list[dict]:
        with self._session() as session:
            rows = session.execute(
                select(CategoryRow).order_by(CategoryRow.order.asc())
            ).scalars()
            return [self._row_dict(row, CATEGORY_FIELDS) for row in rows]

    def get_category(self, category_id: str) -> Optional[dict]:
        with self._session() as session:
            row = session.get(CategoryRow, category_id)
            return self._row_dict(row, CATEGORY_FIELDS) if row else None

    def get_category_by_slug(self, slug: str) -> Optional[dict]:
        with self._session() as session:
            row = session.execute(
                select(CategoryRow).where(CategoryRow.slug == slug)
            ).scalar_one_or_none()
            return self._row_dict(row, CATEGORY_FIELDS) if row else None

    def upsert_category(self, row: dict) -> dict:
        data = _pick(row, CATEGORY_FIELDS)
        with self._session() as session:
            existing = session.get(CategoryRow, data["id"]) if data.get("id") else None
            if existing:
                for name, value in data.items():
                    setattr(existing, name, value)
            else:
                data["id"] = data.get("id") or _new_id()
                existing = CategoryRow(**data)
                session.add(existing)
            session.commit()
            return self._row_dict(existing, CATEGORY_FIELDS)

    def delete_category(self, category_id: str) -> int:
        with self._session() as session:
            result = session.execute(
                delete(CategoryRow).where(CategoryRow.id == category_id)
            )
            session.commit()
            return result.rowcount or 0

    def delete_category_cascade(self, category_id: str, slug: str) -> tuple[int, int]:
        with self._session() as session:
            with session.begin():
                items = session.execute(
                    delete(ContentItemRow).where(ContentItemRow.category_slug == slug)
                ).rowcount or 0
                remaining = session.execute(
                    select(func.count())
                    .select_from(ContentItemRow)
                    .where(ContentItemRow.category_slug == slug)
                ).scalar_one()
                if remaining:
                    raise _items_rejected(slug, remaining)
                deleted = session.execute(
                    delete(CategoryRow).where(CategoryRow.id == category_id)
                ).rowcount or 0
                if deleted == 0:
                    # Leaving the block by exception rolls the item delete back.
                    raise _category_rejected(category_id)
            return items, deleted

    def list_items(
        self, category_slug: Optional[str] = None, *, newest_first: bool = False
    ) -> list[dict]:
        stmt = select(ContentItemRow)
        if category_slug is not None:
            stmt = stmt.where(ContentItemRow.category_slug == category_slug)
        if newest_first:
            stmt = stmt.order_by(ContentItemRow.created_at.desc())
        with self._session() as session:
            rows = session.execute(stmt).scalars()
            return [self._row_dict(row, ITEM_FIELDS) for row in rows]

    def get_item(self, item_id: str) -> Optional[dict]:
        with self._session() as session:
            row = session.get(ContentItemRow, item_id)
            return self._row_dict(row, ITEM_FIELDS) if row else None

    def upsert_item(self, row: dict) -> dict:
        data = _pick(row, ITEM_FIELDS)
        if not data.get("created_at"):
            data.pop("created_at", None)
        with self._session() as session:
            existing = session.get(ContentItemRow, data["id"]) if data.get("id") else None
            if existing:
                for name, value in data.items():
                    setattr(existing, name, value)
            else:
                data["id"] = data.get("id") or _new_id()
                data.setdefault("created_at", _now_iso())
                existing = ContentItemRow(**data)
                session.add(existing)
            session.commit()
            return self._row_dict(existing, ITEM_FIELDS)

    def delete_item(self, item_id: str) -> int:
        with self._session() as session:
            result = session.execute(
                delete(ContentItemRow).where(ContentItemRow.id == item_id)
            )
            session.commit()
            return result.rowcount or 0

    def delete_items_by_category(self, slug: str) -> int:
        with self._session() as session:
            result = session.execute(
                delete(ContentItemRow).where(ContentItemRow.category_slug == slug)
            )
            session.commit()
            return result.rowcount or 0

    def list_site_settings(self) -> list[dict]:
        with self._session() as session:
            rows = session.execute(select(SiteSettingRow)).scalars()
            return [
                {"key": row.key, "value": row.value, "label": row.label}
                for row in rows
            ]

    def update_setting(self, key: str, value: str) -> int:
        with self._session() as session:
            result = session.execute(
                update(SiteSettingRow)
                .where(SiteSettingRow.key == key)
                .values(value=value)
            )
            session.commit()
            return result.rowcount or 0

    def insert_setting(self, key: str, value: str, label: str) -> dict:
        with self._session() as session:
            session.add(SiteSettingRow(key=key, value=value, label=label))
            session.commit()
            return {"key": key, "value": value, "label": label}


Base = declarative_base()


class CategoryRow(Base):
    __tablename__ = CATEGORIES

    id = Column(String, primary_key=True)
    slug = Column(String, nullable=False, unique=True)
    title_en = Column(String, nullable=False)
    title_km = Column(String, nullable=False)
    description_en = Column(Text, nullable=True)
    description_km = Column(Text, nullable=True)
    cover_image = Column(String, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    has_map_feature = Column(Boolean, nullable=False, default=False)


class ContentItemRow(Base):
    __tablename__ = CONTENT_ITEMS

    id = Column(String, primary_key=True)
    category_slug = Column(String, nullable=False, index=True)
    title_en = Column(String, nullable=False)
    title_km = Column(String, nullable=False)
    summary_en = Column(Text, nullable=True)
    summary_km = Column(Text, nullable=True)
    content_en = Column(Text, nullable=True)
    content_km = Column(Text, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    audio = Column(String, nullable=True)
    video = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    location_coordinates = Column(JSON, nullable=True)
    map_image_url = Column(String, nullable=True)
    photo_spots = Column(JSON, nullable=True)


class SiteSettingRow(Base):
    __tablename__ = SITE_SETTINGS

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False, default="")
    label = Column(String, nullable=True)
