import unittest
from unittest.mock import patch

from heritage.auth import SIGNED_IN, InMemoryAuthClient
from heritage.db import CATEGORIES, InMemoryDbClient
from heritage.errors import (
    AuthError,
    BackendError,
    PolicyRejectedError,
    UploadInProgressError,
    ValidationError,
)
from heritage.events import InMemorySettingsNotifier
from heritage.storage import InMemoryStorageClient
from heritage.workflow import AdminWorkflow, AuthState, DraftKind

EMAIL = "admin@example.com"
PASSWORD = "angkor"


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.auth = InMemoryAuthClient(EMAIL, PASSWORD)
        self.storage = InMemoryStorageClient()
        self.notifier = InMemorySettingsNotifier()
        self.workflow = AdminWorkflow(self.db, self.auth, self.storage, self.notifier)
        self.addCleanup(self.workflow.close)

    def sign_in(self):
        return self.workflow.login(EMAIL, PASSWORD)


class AuthGateTests(WorkflowTestCase):
    def test_starts_unauthenticated(self):
        self.assertEqual(self.workflow.state, AuthState.UNAUTHENTICATED)
        with self.assertRaises(AuthError):
            self.workflow.open_category_editor()

    def test_login_loads_dashboard(self):
        self.db.upsert_category({"slug": "temples", "title_en": "T", "title_km": "K"})

        session = self.sign_in()

        self.assertEqual(self.workflow.state, AuthState.AUTHENTICATED)
        self.assertEqual(self.workflow.session, session)
        self.assertEqual(len(self.workflow.categories), 1)

    def test_bad_credentials_stay_unauthenticated(self):
        with self.assertRaises(AuthError):
            self.workflow.login(EMAIL, "wrong")
        self.assertFalse(self.workflow.is_authenticated)

    def test_logout_returns_to_login(self):
        self.sign_in()
        self.workflow.open_item_editor()

        self.workflow.logout()

        self.assertEqual(self.workflow.state, AuthState.UNAUTHENTICATED)
        self.assertIsNone(self.workflow.draft)
        self.assertEqual(self.workflow.categories, [])

    def test_follows_external_sign_out(self):
        session = self.sign_in()
        self.auth.sign_out(session.access_token)
        self.assertFalse(self.workflow.is_authenticated)

    def test_ignores_other_operators_sign_in(self):
        other = AdminWorkflow(self.db, self.auth, self.storage)
        self.addCleanup(other.close)
        other.login(EMAIL, PASSWORD)
        self.assertFalse(self.workflow.is_authenticated)

    def test_sign_in_broadcast_during_login_is_not_adopted(self):
        other = InMemoryAuthClient(EMAIL, PASSWORD)
        foreign = other.sign_in_with_password(EMAIL, PASSWORD)
        sign_in = self.auth.sign_in_with_password

        def sign_in_after_another_operator(email, password):
            self.auth._emit(SIGNED_IN, foreign)
            return sign_in(email, password)

        with patch.object(
            self.auth, "sign_in_with_password", side_effect=sign_in_after_another_operator
        ):
            session = self.sign_in()

        self.assertEqual(self.workflow.session.access_token, session.access_token)
        self.assertNotEqual(session.access_token, foreign.access_token)

    def test_resumes_from_existing_token(self):
        session = self.sign_in()
        resumed = AdminWorkflow(
            self.db, self.auth, self.storage, access_token=session.access_token
        )
        self.addCleanup(resumed.close)
        self.assertTrue(resumed.is_authenticated)


class EditorTests(WorkflowTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in()

    def test_blank_category_template_orders_last(self):
        self.db.upsert_category({"slug": "a", "title_en": "A", "title_km": "A", "order": 1})
        self.workflow.refresh()

        draft = self.workflow.open_category_editor()

        self.assertEqual(draft.kind, DraftKind.CATEGORY)
        self.assertTrue(draft.is_new)
        self.assertEqual(draft.fields, {"order": 2})

    def test_edits_are_local_until_save(self):
        self.workflow.open_category_editor()
        self.workflow.edit("slug", "temples")
        self.workflow.edit("title_en", "Temples")
        self.workflow.edit("title_km", "ប្រាសាទ")
        self.assertEqual(self.db.categories, {})

        saved = self.workflow.save()

        self.assertIsNone(self.workflow.draft)
        self.assertEqual(self.workflow.categories[0]["id"], saved["id"])

    def test_invalid_draft_stays_open(self):
        self.workflow.open_item_editor()
        self.workflow.edit("title_en", "Angkor")
        calls = self.db.calls

        with self.assertRaises(ValidationError):
            self.workflow.save()

        self.assertEqual(self.db.calls, calls)
        self.assertEqual(self.workflow.draft.fields["title_en"], "Angkor")

    def test_existing_category_slug_locked(self):
        saved = self.db.upsert_category({"slug": "temples", "title_en": "T", "title_km": "K"})
        self.workflow.refresh()
        self.workflow.open_category_editor(saved["id"])
        with self.assertRaises(ValidationError):
            self.workflow.edit("slug", "shrines")
        self.workflow.edit("title_en", "Temples")
        self.workflow.save()
        self.assertEqual(self.db.get_category(saved["id"])["title_en"], "Temples")

    def test_rejected_batch_edit_leaves_draft_unchanged(self):
        saved = self.db.upsert_category({"slug": "temples", "title_en": "T", "title_km": "K"})
        self.workflow.refresh()
        self.workflow.open_category_editor(saved["id"])

        with self.assertRaises(ValidationError):
            self.workflow.edit_many({"title_en": "Shrines", "slug": "shrines"})

        self.assertEqual(self.workflow.draft.fields["title_en"], "T")
        self.assertEqual(self.workflow.draft.fields["slug"], "temples")

    def test_editing_copy_does_not_touch_loaded_rows(self):
        saved = self.db.upsert_item(
            {"category_slug": "temples", "title_en": "X", "title_km": "Y", "images": ["a"]}
        )
        self.workflow.refresh()
        self.workflow.open_item_editor(saved["id"])
        self.workflow.add_image("b")
        self.assertEqual(self.workflow.items[0]["images"], ["a"])
        self.workflow.remove_image(0)
        self.assertEqual(self.workflow.draft.fields["images"], ["b"])


class DeleteFlowTests(WorkflowTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in()
        self.category = self.db.upsert_category(
            {"slug": "temples", "title_en": "T", "title_km": "K"}
        )
        self.db.upsert_item({"category_slug": "temples", "title_en": "X", "title_km": "Y"})
        self.workflow.refresh()

    def test_unconfirmed_delete_is_noop(self):
        self.assertFalse(self.workflow.delete_category(self.category["id"]))
        self.assertEqual(len(self.db.categories), 1)

    def test_confirmed_delete_refetches(self):
        self.assertTrue(
            self.workflow.delete_category(self.category["id"], confirmed=True)
        )
        self.assertEqual(self.workflow.categories, [])
        self.assertEqual(self.workflow.items, [])

    def test_rejected_delete_surfaces_message(self):
        self.db.deny_deletes.add(CATEGORIES)
        with self.assertRaises(PolicyRejectedError) as ctx:
            self.workflow.delete_category(self.category["id"], confirmed=True)
        self.assertIn("0 categories were deleted", ctx.exception.message)
        self.assertEqual(len(self.workflow.items), 1)


class SettingsAndUploadTests(WorkflowTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in()

    def test_local_setting_edit_then_save(self):
        self.workflow.edit_setting("hero_image", "https://img/hero.jpg")
        self.assertEqual(self.db.settings, {})

        self.workflow.save_setting("hero_image")

        self.assertEqual(self.db.settings["hero_image"]["value"], "https://img/hero.jpg")
        self.assertEqual(self.notifier.published, 1)
        self.assertEqual(self.workflow.setting_value("hero_image"), "https://img/hero.jpg")

    def test_upload_to_field_sets_url(self):
        self.workflow.open_category_editor()
        draft = self.workflow.upload_to_field("cover_image", "cover.jpg", b"jpeg")
        self.assertTrue(draft.fields["cover_image"].endswith("_cover_jpg.jpg"))
        self.assertFalse(self.workflow.uploading)

    def test_upload_to_images_appends(self):
        self.workflow.open_item_editor()
        self.workflow.add_image("https://pasted/link.jpg")
        draft = self.workflow.upload_to_field("images", "gallery.png", b"png")
        self.assertEqual(len(draft.fields["images"]), 2)
        self.assertEqual(draft.fields["images"][0], "https://pasted/link.jpg")

    def test_failed_upload_leaves_field_unchanged(self):
        self.workflow.open_item_editor()
        self.workflow.edit("audio", "https://old/audio.mp3")
        self.storage.fail_uploads = True

        with self.assertRaises(BackendError):
            self.workflow.upload_to_field("audio", "new.mp3", b"id3")

        self.assertEqual(self.workflow.draft.fields["audio"], "https://old/audio.mp3")
        self.assertFalse(self.workflow.uploading)

    def test_one_upload_at_a_time(self):
        self.workflow.uploading = True
        with self.assertRaises(UploadInProgressError):
            self.workflow.upload("a.jpg", b"x")

    def test_upload_setting_saves_url(self):
        url = self.workflow.upload_setting("bg_music", "theme.mp3", b"id3", "audio/mpeg")
        self.assertEqual(self.db.settings["bg_music"]["value"], url)


if __name__ == "__main__":
    unittest.main()
