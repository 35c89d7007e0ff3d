import unittest

from heritage import admin, content
from heritage.db import CATEGORIES, CONTENT_ITEMS, InMemoryDbClient
from heritage.errors import (
    BackendError,
    NotFoundError,
    PolicyRejectedError,
    ValidationError,
)
from heritage.events import InMemorySettingsNotifier
from heritage.storage import InMemoryStorageClient

TEMPLES = {"slug": "temples", "title_en": "Temples", "title_km": "ប្រាសាទ"}


class ValidationTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_category_missing_fields_rejected_without_backend_call(self):
        for missing in ("slug", "title_en", "title_km"):
            draft = dict(TEMPLES)
            draft[missing] = "  "
            with self.assertRaises(ValidationError) as ctx:
                admin.save_category(self.db, draft)
            self.assertEqual(ctx.exception.missing, [missing])
        self.assertEqual(self.db.calls, 0)

    def test_item_missing_fields_rejected_without_backend_call(self):
        with self.assertRaises(ValidationError) as ctx:
            admin.save_item(self.db, {"title_en": "X", "images": []})
        self.assertEqual(ctx.exception.missing, ["category_slug", "title_km"])
        self.assertEqual(self.db.calls, 0)


class SaveTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_create_category_then_item_scenario(self):
        admin.save_category(self.db, TEMPLES)
        saved = admin.save_item(
            self.db,
            {"category_slug": "temples", "title_en": "X", "title_km": "Y", "images": []},
        )

        items = content.list_items_by_category(self.db, "temples")

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].id, saved["id"])
        self.assertEqual(items[0].title_en, "X")
        self.assertIsNotNone(items[0].created_at)

    def test_category_order_coerced_to_int(self):
        saved = admin.save_category(self.db, dict(TEMPLES, order="4"))
        self.assertEqual(saved["order"], 4)
        saved = admin.save_category(self.db, dict(TEMPLES, id=saved["id"], order=None))
        self.assertEqual(saved["order"], 0)

    def test_category_order_must_be_numeric(self):
        with self.assertRaises(ValidationError):
            admin.save_category(self.db, dict(TEMPLES, order="first"))

    def test_slug_is_immutable_after_creation(self):
        saved = admin.save_category(self.db, TEMPLES)
        with self.assertRaises(ValidationError):
            admin.save_category(self.db, dict(saved, slug="shrines"))
        self.assertIsNotNone(content.get_category_by_slug(self.db, "temples"))

    def test_update_keeps_id(self):
        saved = admin.save_category(self.db, TEMPLES)
        updated = admin.save_category(self.db, dict(saved, title_en="Temples of Angkor"))
        self.assertEqual(updated["id"], saved["id"])
        self.assertEqual(len(self.db.categories), 1)

    def test_duplicate_slug_surfaces_backend_message(self):
        admin.save_category(self.db, TEMPLES)
        with self.assertRaises(BackendError) as ctx:
            admin.save_category(self.db, dict(TEMPLES))
        self.assertIn("categories_slug_key", ctx.exception.message)

    def test_item_images_default_to_empty_list(self):
        saved = admin.save_item(
            self.db, {"category_slug": "temples", "title_en": "X", "title_km": "Y"}
        )
        self.assertEqual(saved["images"], [])


class DeleteTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.category = admin.save_category(self.db, TEMPLES)
        self.item = admin.save_item(
            self.db,
            {"category_slug": "temples", "title_en": "X", "title_km": "Y", "images": []},
        )
        self.other = admin.save_item(
            self.db,
            {"category_slug": "dance", "title_en": "Apsara", "title_km": "Y"},
        )

    def test_delete_item(self):
        admin.delete_item(self.db, self.item["id"])
        self.assertEqual(content.list_items_by_category(self.db, "temples"), [])

    def test_delete_item_zero_rows_is_policy_rejection(self):
        self.db.deny_deletes.add(CONTENT_ITEMS)
        with self.assertRaises(PolicyRejectedError):
            admin.delete_item(self.db, self.item["id"])
        self.assertIsNotNone(self.db.get_item(self.item["id"]))

    def test_delete_missing_item_is_policy_rejection(self):
        with self.assertRaises(PolicyRejectedError):
            admin.delete_item(self.db, "missing")

    def test_delete_category_cascades_to_items(self):
        removed = admin.delete_category(self.db, self.category["id"])

        self.assertEqual(removed, 1)
        self.assertEqual(content.list_items_by_category(self.db, "temples"), [])
        self.assertIsNone(content.get_category_by_slug(self.db, "temples"))
        self.assertIsNotNone(self.db.get_item(self.other["id"]))

    def test_rejected_category_delete_leaves_tables_unchanged(self):
        self.db.deny_deletes.add(CATEGORIES)

        with self.assertRaises(PolicyRejectedError):
            admin.delete_category(self.db, self.category["id"])

        self.assertIsNotNone(content.get_category_by_slug(self.db, "temples"))
        self.assertEqual(len(content.list_items_by_category(self.db, "temples")), 1)

    def test_rejected_item_delete_keeps_category(self):
        self.db.deny_deletes.add(CONTENT_ITEMS)

        with self.assertRaises(PolicyRejectedError):
            admin.delete_category(self.db, self.category["id"])

        self.assertIsNotNone(content.get_category_by_slug(self.db, "temples"))
        self.assertEqual(len(content.list_items_by_category(self.db, "temples")), 1)

    def test_unknown_category(self):
        with self.assertRaises(NotFoundError):
            admin.delete_category(self.db, "missing")


class SettingTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.notifier = InMemorySettingsNotifier()

    def test_insert_then_update_by_key(self):
        admin.save_setting(self.db, "hero_image", "a.jpg", self.notifier)
        admin.save_setting(self.db, "hero_image", "b.jpg", self.notifier)

        rows = self.db.list_site_settings()

        self.assertEqual(rows, [{"key": "hero_image", "value": "b.jpg", "label": "hero_image"}])
        self.assertEqual(self.notifier.published, 2)

    def test_failed_save_does_not_notify(self):
        self.db.available = False
        with self.assertRaises(BackendError):
            admin.save_setting(self.db, "bg_music", "m.mp3", self.notifier)
        self.assertEqual(self.notifier.published, 0)


class UploadTests(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryStorageClient()

    def test_storage_key_format(self):
        key = admin.make_storage_key("Apsara dance (1).jpg", now_ms=1700000000000)
        self.assertEqual(key, "1700000000000_Apsara_dance__1__jpg.jpg")

    def test_upload_returns_public_url(self):
        url = admin.upload_media(
            self.storage, "hero.png", b"\x89PNG", "image/png", now_ms=42
        )
        self.assertEqual(url, "https://example.test/storage/v1/object/public/media/42_hero_png.png")
        self.assertEqual(self.storage.stored_objects["42_hero_png.png"], (b"\x89PNG", "image/png"))

    def test_upload_failure_reports_backend_message(self):
        self.storage.fail_uploads = True
        with self.assertRaises(BackendError) as ctx:
            admin.upload_media(self.storage, "hero.png", b"x")
        self.assertIn("Upload failed", ctx.exception.message)

    def test_uploaded_and_pasted_urls_save_identically(self):
        db = InMemoryDbClient()
        admin.save_category(db, TEMPLES)
        url = admin.upload_media(self.storage, "cover.jpg", b"jpeg", "image/jpeg")

        uploaded = admin.save_item(
            db,
            {"category_slug": "temples", "title_en": "A", "title_km": "B", "images": [url]},
        )
        pasted = admin.save_item(
            db,
            {"category_slug": "temples", "title_en": "A", "title_km": "B", "images": [str(url)]},
        )

        self.assertEqual(
            db.get_item(uploaded["id"])["images"], db.get_item(pasted["id"])["images"]
        )


if __name__ == "__main__":
    unittest.main()
