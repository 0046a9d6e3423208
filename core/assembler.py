import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Any, Iterable

from core.logistics import LogisticsParser
from core.models import Color, PriceEntry, ProductRecord
from core.policy import NormalizationPolicy
from core.prices import (
    PriceParseError,
    QuantityParseError,
    ZERO,
    landed_price,
    parse_price,
    parse_quantity,
    strip_currency_markers,
)

log = logging.getLogger(__name__)

# Canonical field -> accepted raw keys. The Spanish keys are what the original
# page scraper wrote to productos.json.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "url": ("url",),
    "category": ("category", "categoria"),
    "subcategory": ("subcategory", "subcategoria"),
    "location": ("location", "ubicacion"),
    "title": ("title", "titulo"),
    "images": ("images", "imagenes"),
    "colors": ("colors", "colores"),
    "sizes": ("sizes", "tamaños", "tamanos"),
    "prices": ("prices", "precios"),
    "logistics": ("logistics", "bloque_logistico"),
    "details": ("details", "detalles"),
}
COLOR_NAME_KEYS = ("name", "nombre")
COLOR_IMAGE_KEYS = ("image_ref", "imageRef", "image", "imagen")
PRICE_LABEL_KEYS = ("quantity_label", "quantityLabel", "quantity", "cantidad")
PRICE_VALUE_KEYS = ("amount", "value", "valor")


def _pick(raw: dict, keys: Iterable[str]) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _colors(value: Any) -> list[Color]:
    if not isinstance(value, list):
        return []
    colors = []
    for item in value:
        if not isinstance(item, dict):
            continue
        colors.append(
            Color(
                name=_text(_pick(item, COLOR_NAME_KEYS)),
                image_ref=_text(_pick(item, COLOR_IMAGE_KEYS)),
            )
        )
    return colors


def _details(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


class RecordAssembler:
    """Builds canonical ProductRecords from raw decoded listing items."""

    def __init__(self, policy: NormalizationPolicy, logistics_parser: LogisticsParser | None = None):
        self.policy = policy
        self.logistics_parser = logistics_parser or LogisticsParser(policy)

    def unit_price(self, raw_value: str) -> Decimal:
        cleaned = strip_currency_markers(raw_value, self.policy.currency_markers)
        try:
            return parse_price(cleaned)
        except PriceParseError as e:
            log.debug(f"Price degraded to zero: {e}")
            return ZERO

    def quantity(self, label: str) -> Decimal:
        try:
            return parse_quantity(label)
        except QuantityParseError as e:
            log.debug(f"Quantity degraded to zero: {e}")
            return ZERO

    def prices(self, value: Any) -> list[PriceEntry]:
        if not isinstance(value, list):
            return []

        entries = []
        for item in value:
            if not isinstance(item, dict):
                continue
            label = _text(_pick(item, PRICE_LABEL_KEYS))
            raw_value = _pick(item, PRICE_VALUE_KEYS)
            if isinstance(raw_value, (int, float)) and not isinstance(raw_value, bool):
                raw_value = str(raw_value)
            entries.append(PriceEntry(quantity_label=label, amount=self.unit_price(_text(raw_value))))

        if entries:
            entries[0] = self.headline(entries[0])
        return entries

    def headline(self, entry: PriceEntry) -> PriceEntry:
        """Scale the headline tier to its landed price; bulk tiers stay per-unit."""
        landed = landed_price(
            self.quantity(entry.quantity_label),
            entry.amount,
            self.policy.landed_surcharge,
        )
        if landed is None:
            return entry
        return entry.model_copy(update={"amount": landed})

    def assemble(self, raw: dict) -> ProductRecord:
        def field(name: str) -> Any:
            return _pick(raw, FIELD_ALIASES[name])

        logistics = None
        raw_logistics = field("logistics")
        if isinstance(raw_logistics, str):
            logistics = self.logistics_parser.parse(raw_logistics)

        return ProductRecord(
            url=_text(field("url")),
            category=_text(field("category")),
            subcategory=_text(field("subcategory")) if self.policy.has_subcategory else "",
            location=_text(field("location")),
            title=_text(field("title")),
            images=_text_list(field("images")),
            colors=_colors(field("colors")),
            sizes=_text_list(field("sizes")),
            prices=self.prices(field("prices")),
            logistics=logistics,
            details=_details(field("details")),
        )


def normalize_batch(
    items: list[dict],
    assembler: RecordAssembler,
    workers: int = 1,
) -> list[ProductRecord]:
    """Normalize a decoded batch, preserving input order."""
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            records = list(pool.map(assembler.assemble, items))
    else:
        records = [assembler.assemble(item) for item in items]

    log.info(f"Normalized {len(records)} records")
    return records
