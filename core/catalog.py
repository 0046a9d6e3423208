import logging
import random
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from core.models import ProductRecord

log = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
DEFAULT_RECOMMENDED = 10


class CategoryNotFoundError(LookupError):
    def __init__(self, category: str):
        super().__init__(f"Unknown category: {category}")
        self.category = category


@dataclass
class ProductFilter:
    title: str = ""
    category: str = ""
    subcategory: str = ""
    location: str = ""
    min_price: Decimal | None = None
    max_price: Decimal | None = None

    def __post_init__(self) -> None:
        # blank or padded query values behave like their trimmed form
        for name in ("title", "category", "subcategory", "location"):
            setattr(self, name, (getattr(self, name) or "").strip())

    @property
    def all_categories(self) -> bool:
        return self.category.lower() == ALL_CATEGORIES


@dataclass
class Page:
    page: int
    limit: int
    total: int
    products: list[ProductRecord]


def _contains(haystack: str, needle: str) -> bool:
    return not needle or needle.lower() in haystack.lower()


def matches_title(record: ProductRecord, flt: ProductFilter) -> bool:
    return _contains(record.title, flt.title)


def matches_category(record: ProductRecord, flt: ProductFilter) -> bool:
    return _contains(record.category, flt.category)


def matches_subcategory(record: ProductRecord, flt: ProductFilter) -> bool:
    if not flt.subcategory:
        return True
    return record.subcategory.lower() == flt.subcategory.lower()


def matches_location(record: ProductRecord, flt: ProductFilter) -> bool:
    return _contains(record.location, flt.location)


def matches_price_range(record: ProductRecord, flt: ProductFilter) -> bool:
    if flt.min_price is None and flt.max_price is None:
        return True
    price = record.min_price
    if price is None:
        return False
    if flt.min_price is not None and price < flt.min_price:
        return False
    if flt.max_price is not None and price > flt.max_price:
        return False
    return True


def apply_filters(record: ProductRecord, flt: ProductFilter) -> bool:
    return (
        matches_title(record, flt)
        and matches_category(record, flt)
        and matches_subcategory(record, flt)
        and matches_location(record, flt)
        and matches_price_range(record, flt)
    )


def coerce_positive_int(value: Any, default: int) -> int:
    """Lenient query-string integer: anything unusable becomes ``default``."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


class Catalog:
    """Read-only collection of normalized records served by the query API."""

    def __init__(
        self,
        records: list[ProductRecord],
        rng: random.Random | None = None,
        default_limit: int = DEFAULT_LIMIT,
        lock: "threading.Lock | None" = None,
    ):
        self._records = tuple(records)
        self.default_limit = default_limit
        self._rng = rng or random.Random()
        self.lock = lock or threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> tuple[ProductRecord, ...]:
        return self._records

    def shuffled(self) -> list[ProductRecord]:
        items = list(self._records)
        with self.lock:
            self._rng.shuffle(items)
        return items

    def has_category(self, category: str) -> bool:
        return any(_contains(r.category, category) for r in self._records)

    def filter(self, flt: ProductFilter) -> list[ProductRecord]:
        if flt.all_categories:
            return self.shuffled()
        if flt.category and not self.has_category(flt.category):
            raise CategoryNotFoundError(flt.category)
        return [r for r in self._records if apply_filters(r, flt)]

    def search(self, flt: ProductFilter, page: Any = None, limit: Any = None) -> Page:
        page = coerce_positive_int(page, DEFAULT_PAGE)
        limit = coerce_positive_int(limit, self.default_limit)

        matched = self.filter(flt)
        start = min((page - 1) * limit, len(matched))
        end = min(start + limit, len(matched))

        log.debug(f"Search {flt}: {len(matched)} matched, page {page} ({start}:{end})")
        return Page(page=page, limit=limit, total=len(matched), products=matched[start:end])

    def recommended(self, count: int = DEFAULT_RECOMMENDED) -> list[ProductRecord]:
        return self.shuffled()[:count]

    def categories(self) -> list[dict]:
        summary: dict[str, dict] = {}
        for record in self._records:
            if not record.category:
                continue
            entry = summary.setdefault(record.category, {"name": record.category, "count": 0, "subcategories": []})
            entry["count"] += 1
            if record.subcategory and record.subcategory not in entry["subcategories"]:
                entry["subcategories"].append(record.subcategory)
        return sorted(summary.values(), key=lambda c: c["name"].lower())
