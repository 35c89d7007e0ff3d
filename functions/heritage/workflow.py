"""
Admin dashboard state: the sign-in gate, the loaded tables and the editor draft.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, Optional

from heritage import admin
from heritage.auth import SIGNED_IN, SIGNED_OUT, AuthClient, AuthSession
from heritage.db import DbClient
from heritage.errors import (
    AuthError,
    NotFoundError,
    UploadInProgressError,
    ValidationError,
)
from heritage.events import SettingsNotifier
from heritage.storage import StorageClient

logger = logging.getLogger(__name__)


class AuthState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class DraftKind(StrEnum):
    CATEGORY = "category"
    ITEM = "item"


@dataclass
class Draft:
    kind: DraftKind
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def is_new(self) -> bool:
        return not self.fields.get("id")


class AdminWorkflow:
    """
    One operator's view of the admin panel.

    The auth client owns the session; the workflow enters with the session
    its own `login` returns, follows SIGNED_IN/SIGNED_OUT notifications for
    that token only, and reloads every table on entering the authenticated
    state. Editor changes stay local until `save()`.
    """

    def __init__(
        self,
        db: DbClient,
        auth: AuthClient,
        storage: StorageClient,
        notifier: Optional[SettingsNotifier] = None,
        access_token: Optional[str] = None,
    ):
        self.db = db
        self.auth = auth
        self.storage = storage
        self.notifier = notifier
        self.state = AuthState.UNAUTHENTICATED
        self.session: Optional[AuthSession] = None
        self.categories: list[dict] = []
        self.items: list[dict] = []
        self.settings: list[dict] = []
        self.draft: Optional[Draft] = None
        self.uploading = False
        self._unsubscribe: Callable[[], None] = auth.on_auth_state_change(
            self._on_auth_change
        )
        if access_token:
            session = auth.get_session(access_token)
            if session:
                self._enter(session)

    # Auth gate

    def _owns(self, session: Optional[AuthSession]) -> bool:
        return (
            session is not None
            and self.session is not None
            and session.access_token == self.session.access_token
        )

    def _on_auth_change(self, event: str, session: Optional[AuthSession]) -> None:
        # The auth client is shared; only this operator's token moves the gate.
        if event == SIGNED_IN and self._owns(session):
            self.session = session
        elif event == SIGNED_OUT and self.session is not None:
            if session is None or self._owns(session):
                self._leave()

    def _enter(self, session: AuthSession) -> None:
        self.session = session
        self.state = AuthState.AUTHENTICATED
        logger.info("Admin %s signed in", session.email)
        self.refresh()

    def _leave(self) -> None:
        logger.info("Admin signed out")
        self.session = None
        self.state = AuthState.UNAUTHENTICATED
        self.categories, self.items, self.settings = [], [], []
        self.draft = None

    @property
    def is_authenticated(self) -> bool:
        return self.state == AuthState.AUTHENTICATED

    def _require_auth(self) -> None:
        if not self.is_authenticated:
            raise AuthError("Sign in required")

    def login(self, email: str, password: str) -> AuthSession:
        session = self.auth.sign_in_with_password(email, password)
        self._enter(session)
        return session

    def logout(self) -> None:
        if self.session is None:
            return
        self.auth.sign_out(self.session.access_token)
        if self.session is not None:
            self._leave()

    def close(self) -> None:
        self._unsubscribe()

    def refresh(self) -> None:
        self._require_auth()
        dashboard = admin.load_dashboard(self.db)
        self.categories = dashboard.categories
        self.items = dashboard.items
        self.settings = dashboard.settings

    # Editor

    def _find(self, rows: list[dict], record_id: str) -> dict:
        for row in rows:
            if row.get("id") == record_id:
                return copy.deepcopy(row)
        raise NotFoundError("Record not found in local data. Try refreshing.")

    def open_category_editor(self, category_id: Optional[str] = None) -> Draft:
        self._require_auth()
        if category_id:
            fields = self._find(self.categories, category_id)
        else:
            fields = {"order": len(self.categories) + 1}
        self.draft = Draft(DraftKind.CATEGORY, fields)
        return self.draft

    def open_item_editor(self, item_id: Optional[str] = None) -> Draft:
        self._require_auth()
        if item_id:
            fields = self._find(self.items, item_id)
        else:
            fields = {"images": []}
        self.draft = Draft(DraftKind.ITEM, fields)
        return self.draft

    def require_draft(self) -> Draft:
        if self.draft is None:
            raise ValidationError("No record is open for editing.")
        return self.draft

    def edit(self, field_name: str, value: Any) -> Draft:
        return self.edit_many({field_name: value})

    def edit_many(self, changes: dict[str, Any]) -> Draft:
        """Applies every change or none of them."""
        draft = self.require_draft()
        if (
            draft.kind == DraftKind.CATEGORY
            and "slug" in changes
            and not draft.is_new
            and changes["slug"] != draft.fields.get("slug")
        ):
            raise ValidationError(
                "Slug cannot be changed once a category is created.", ["slug"]
            )
        draft.fields.update(changes)
        return draft

    def add_image(self, url: str) -> Draft:
        draft = self.require_draft()
        images = list(draft.fields.get("images") or [])
        images.append(url)
        return self.edit("images", images)

    def remove_image(self, index: int) -> Draft:
        draft = self.require_draft()
        images = list(draft.fields.get("images") or [])
        if 0 <= index < len(images):
            del images[index]
        return self.edit("images", images)

    def cancel_editor(self) -> None:
        self.draft = None

    def save(self) -> dict:
        self._require_auth()
        draft = self.require_draft()
        if draft.kind == DraftKind.CATEGORY:
            saved = admin.save_category(self.db, draft.fields)
        else:
            saved = admin.save_item(self.db, draft.fields)
        self.draft = None
        self.refresh()
        return saved

    # Deletes

    def delete_category(self, category_id: str, *, confirmed: bool = False) -> bool:
        self._require_auth()
        if not confirmed:
            return False
        admin.delete_category(self.db, category_id)
        self.refresh()
        return True

    def delete_item(self, item_id: str, *, confirmed: bool = False) -> bool:
        self._require_auth()
        if not confirmed:
            return False
        admin.delete_item(self.db, item_id)
        self.refresh()
        return True

    # Settings

    def setting_value(self, key: str) -> str:
        for row in self.settings:
            if row["key"] == key:
                return row.get("value") or ""
        return ""

    def edit_setting(self, key: str, value: str) -> None:
        for row in self.settings:
            if row["key"] == key:
                row["value"] = value
                return
        self.settings.append({"key": key, "value": value, "label": key})

    def save_setting(self, key: str, value: Optional[str] = None) -> None:
        self._require_auth()
        if value is None:
            value = self.setting_value(key)
        admin.save_setting(self.db, key, value, self.notifier)
        self.refresh()

    # Uploads

    def upload(
        self, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        self._require_auth()
        if self.uploading:
            raise UploadInProgressError("An upload is already in progress.")
        self.uploading = True
        try:
            return admin.upload_media(self.storage, filename, data, content_type)
        finally:
            self.uploading = False

    def upload_to_field(
        self,
        field_name: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> Draft:
        """Uploads, then sets the draft field to the URL as if it were pasted."""
        self.require_draft()
        url = self.upload(filename, data, content_type)
        if field_name == "images":
            return self.add_image(url)
        return self.edit(field_name, url)

    def upload_setting(
        self, key: str, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        url = self.upload(filename, data, content_type)
        self.save_setting(key, url)
        return url
