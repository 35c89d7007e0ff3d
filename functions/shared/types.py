# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any, List, Optional

from dacite import Config, from_dict


class Language(StrEnum):
    EN = "en"
    KM = "km"


@dataclass
class Category:
    id: str
    slug: str
    title_en: str
    title_km: str
    description_en: str = ""
    description_km: str = ""
    cover_image: str = ""
    order: int = 0
    has_map_feature: bool = False


@dataclass
class LocationCoordinates:
    lat: float
    lng: float


@dataclass
class PhotoSpot:
    title: str
    description: str
    image_url: str


@dataclass
class ContentItem:
    id: str
    category_slug: str
    title_en: str
    title_km: str
    summary_en: str = ""
    summary_km: str = ""
    content_en: str = ""
    content_km: str = ""
    images: List[str] = field(default_factory=list)
    audio: Optional[str] = None
    video: Optional[str] = None
    created_at: Optional[str] = None
    location_coordinates: Optional[LocationCoordinates] = None
    map_image_url: Optional[str] = None
    photo_spots: Optional[List[PhotoSpot]] = None

    @property
    def cover_image(self) -> Optional[str]:
        """The first image is the cover."""
        return self.images[0] if self.images else None

    @property
    def gallery(self) -> List[str]:
        return list(self.images[1:])


@dataclass
class SiteSetting:
    key: str
    value: str
    label: str = ""


_ROW_CONFIG = Config(check_types=False)


def _clean_row(row: dict) -> dict:
    # Columns that came back as NULL fall through to the dataclass defaults.
    return {key: value for key, value in row.items() if value is not None}


def category_from_row(row: dict) -> Category:
    return from_dict(data_class=Category, data=_clean_row(row), config=_ROW_CONFIG)


def content_item_from_row(row: dict) -> ContentItem:
    return from_dict(
        data_class=ContentItem, data=_clean_row(row), config=_ROW_CONFIG
    )


def site_setting_from_row(row: dict) -> SiteSetting:
    return from_dict(
        data_class=SiteSetting, data=_clean_row(row), config=_ROW_CONFIG
    )


def to_row(record: Any) -> dict:
    """Dataclass -> plain dict suitable for the table clients."""
    return asdict(record)


def localized(record: Any, field_name: str, language: Language) -> str:
    """
    Returns `<field_name>_<language>`, falling back to the English value when
    the Khmer text is missing.
    """
    value = getattr(record, f"{field_name}_{language.value}", "") or ""
    if not value and language != Language.EN:
        value = getattr(record, f"{field_name}_{Language.EN.value}", "") or ""
    return value
