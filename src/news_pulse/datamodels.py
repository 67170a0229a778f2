from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("news_pulse")

CATEGORIES: Tuple[str, ...] = (
    "general",
    "business",
    "entertainment",
    "health",
    "science",
    "sports",
    "technology",
)
ALL_CATEGORIES = "all"
FREQUENCIES: Tuple[str, ...] = ("immediate", "hourly", "daily")
DELIVERY_METHODS: Tuple[str, ...] = ("email", "push", "both")

DEFAULT_FREQUENCY = "immediate"
DEFAULT_METHOD = "email"


class LoadState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


# --- Wire helpers ---
def _record_id(data: Dict[str, Any]) -> str:
    value = data.get("_id", data.get("id"))
    if value is None:
        raise ValueError("record has no id")
    return str(value)


def _source_name(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("name") or "")
    return str(value or "")


def _category(value: Any) -> str:
    category = str(value or "").lower()
    if category not in CATEGORIES:
        logger.debug("Unknown category %r, using 'general'", value)
        return "general"
    return category


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --- Data models ---
@dataclass(frozen=True)
class Article:
    id: str
    title: str
    url: str
    source: str = ""
    category: str = "general"
    description: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    # Only ever set on projected copies, from BookmarkTracker membership.
    bookmarked: bool = field(default=False, compare=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> Article:
        return cls(
            id=_record_id(data),
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
            source=_source_name(data.get("source")),
            category=_category(data.get("category")),
            description=data.get("description") or None,
            image_url=data.get("imageUrl") or data.get("urlToImage") or None,
            published_at=parse_timestamp(data.get("publishedAt")),
        )


@dataclass(frozen=True)
class AlertRecord:
    id: str
    title: str
    url: str
    source: str = ""
    category: str = "general"
    description: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    bookmarked: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> AlertRecord:
        return cls(
            id=_record_id(data),
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
            source=_source_name(data.get("source")),
            category=_category(data.get("category")),
            description=data.get("description") or None,
            image_url=data.get("imageUrl") or None,
            published_at=parse_timestamp(data.get("publishedAt")),
            bookmarked=bool(data.get("bookmarked", False)),
        )


@dataclass(frozen=True)
class Preferences:
    categories: Tuple[str, ...] = ()
    frequency: str = DEFAULT_FREQUENCY
    method: str = DEFAULT_METHOD

    def with_category_toggled(self, category: str) -> Preferences:
        """Return a copy with `category` added, or removed if already selected."""
        if category in self.categories:
            categories = tuple(c for c in self.categories if c != category)
        else:
            categories = self.categories + (category,)
        return Preferences(categories, self.frequency, self.method)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> Preferences:
        return cls(
            categories=tuple(data.get("categories") or ()),
            frequency=data.get("frequency") or DEFAULT_FREQUENCY,
            method=data.get("notificationMethod") or DEFAULT_METHOD,
        )

    def to_api(self, email: str) -> Dict[str, Any]:
        return {
            "email": email,
            "categories": list(self.categories),
            "frequency": self.frequency,
            "notificationMethod": self.method,
        }


@dataclass(frozen=True)
class FilterState:
    query: str = ""
    category: str = ALL_CATEGORIES
