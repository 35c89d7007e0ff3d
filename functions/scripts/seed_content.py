"""
CLI helper to seed the starter categories and articles into the configured backend.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from heritage import admin
from heritage.db import DbClient
from heritage.dependencies import get_db_client

logger = logging.getLogger(__name__)

SEED_CATEGORIES = [
    {
        "slug": "temples-architecture",
        "title_en": "Temples & Architecture",
        "title_km": "ប្រាសាទ និង ស្ថាបត្យកម្ម",
        "description_en": "The divine engineering of the Khmer Empire.",
        "description_km": "វិស្វកម្មដ៏អស្ចារ្យនៃចក្រភពខ្មែរ",
        "cover_image": "https://toursbyjeeps.com/wp-content/uploads/2021/07/Untitled-6.jpg",
        "order": 1,
        "has_map_feature": True,
    },
    {
        "slug": "dance-performance",
        "title_en": "Dance & Performance",
        "title_km": "របាំ និង ការសម្តែង",
        "description_en": "Graceful movements telling ancient legends.",
        "description_km": "កាយវិការដ៏ទន់ភ្លន់ដែលរៀបរាប់ពីរឿងព្រេងបុរាណ",
        "cover_image": "https://media-cdn.tripadvisor.com/media/attractions-splice-spp-720x480/11/8c/9f/2c.jpg",
        "order": 2,
    },
    {
        "slug": "traditional-instruments",
        "title_en": "Traditional Instruments",
        "title_km": "ឧបករណ៍តន្ត្រីបុរាណ",
        "description_en": "The sounds of the ancestors.",
        "description_km": "សម្លេងនៃបុព្វបុរស",
        "cover_image": "https://files.intocambodia.org/wp-content/uploads/2024/08/10093327/Chapei-Dang-Veng-7-960x611.jpg",
        "order": 3,
    },
    {
        "slug": "clothing-textiles",
        "title_en": "Clothing & Textiles",
        "title_km": "សម្លៀកបំពាក់ និង វាយនភណ្ឌ",
        "description_en": "Silk, krama, and royal attire.",
        "description_km": "សូត្រ ក្រមា និងសម្លៀកបំពាក់រាជវង្ស",
        "cover_image": "https://www.asiakingtravel.com/cuploads/files/Traditional-Cambodian-costumes-2.jpg",
        "order": 4,
    },
    {
        "slug": "food-cuisine",
        "title_en": "Food & Cuisine",
        "title_km": "ម្ហូបអាហារ",
        "description_en": "A balance of salty, sweet, sour, and bitter.",
        "description_km": "ការលាយបញ្ចូលគ្នានៃរសជាតិប្រៃ ផ្អែម ជូរ និងល្វីង",
        "cover_image": "https://image.cookly.me/images/Siem-Reap-Food-Amok.cover.jpg",
        "order": 5,
    },
    {
        "slug": "festivals-rituals",
        "title_en": "Festivals & Rituals",
        "title_km": "ពិធីបុណ្យ និង ទំនៀមទម្លាប់",
        "description_en": "Celebrating life, harvest, and spirits.",
        "description_km": "ការអបអរសាទរជីវិត ការប្រមូលផល និងវិញ្ញាណក្ខន្ធ",
        "cover_image": "https://cambodiatravel.com/images/2025/07/Meak-Bochea-Festival-in-Cambodia3.jpg",
        "order": 6,
    },
]

SEED_ITEMS = [
    {
        "category_slug": "temples-architecture",
        "title_en": "Angkor Wat",
        "title_km": "អង្គរវត្ត",
        "summary_en": "The largest religious monument in the world.",
        "summary_km": "វិមានសាសនាដ៏ធំបំផុតនៅលើពិភពលោក",
        "content_en": (
            "Angkor Wat is a temple complex in Cambodia and is the largest "
            "religious monument in the world, on a site measuring 162.6 hectares."
        ),
        "content_km": "អង្គរវត្តគឺជាប្រាសាទមួយនៅក្នុងប្រទេសកម្ពុជា",
        "images": [
            "https://toursbyjeeps.com/wp-content/uploads/2021/07/Untitled-6.jpg",
            "https://www.cambodia-images.com/wp-content/uploads/2018/05/Angkor-sunset_1.jpg",
        ],
        "location_coordinates": {"lat": 13.4125, "lng": 103.8670},
    },
    {
        "category_slug": "dance-performance",
        "title_en": "Apsara Dance",
        "title_km": "របាំអប្សរា",
        "summary_en": "A classical dance form dating back to the Angkorian era.",
        "summary_km": "ទម្រង់របាំបុរាណដែលមានតាំងពីសម័យអង្គរ",
        "images": [
            "https://media-cdn.tripadvisor.com/media/attractions-splice-spp-720x480/11/8c/9f/2c.jpg"
        ],
    },
]


SEED_SETTINGS = [
    (
        "hero_image",
        "https://upload.wikimedia.org/wikipedia/commons/4/41/Angkor_Wat.jpg",
        "Hero Image",
    ),
    ("bg_music", "", "Background Music"),
]


def seed_settings(db: DbClient) -> int:
    existing = {row["key"] for row in db.list_site_settings()}
    created = 0
    for key, value, label in SEED_SETTINGS:
        if key not in existing:
            db.insert_setting(key, value, label)
            created += 1
    return created


def seed(db: DbClient, *, with_items: bool = True) -> tuple[int, int]:
    """Inserts missing categories (by slug) and, for new categories, their items."""
    existing = {row["slug"] for row in db.list_categories()}
    created = []
    for category in SEED_CATEGORIES:
        if category["slug"] in existing:
            logger.info("Skipping existing category %s", category["slug"])
            continue
        admin.save_category(db, category)
        created.append(category["slug"])
    items = 0
    if with_items:
        for item in SEED_ITEMS:
            if item["category_slug"] in created:
                admin.save_item(db, item)
                items += 1
    return len(created), items


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed starter heritage content")
    parser.add_argument(
        "--no-items",
        action="store_true",
        help="Only create the categories",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    db = get_db_client()
    categories, items = seed(db, with_items=not args.no_items)
    settings = seed_settings(db)
    logger.info(
        "Seeded %d categories, %d items and %d settings", categories, items, settings
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
