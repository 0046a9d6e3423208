import random
import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from core.assembler import RecordAssembler
from core.logistics import FeeSampler, LogisticsParser
from core.models import PriceEntry, ProductRecord
from core.policy import FeePolicy, NormalizationPolicy


@pytest.fixture
def policy():
    return NormalizationPolicy(extract_on_time_percentage=True)


@pytest.fixture
def independent_policy():
    return NormalizationPolicy(fee_policy=FeePolicy.INDEPENDENT_RANGES)


@pytest.fixture
def sampler():
    return FeeSampler(random.Random(1234))


@pytest.fixture
def assembler(policy, sampler):
    return RecordAssembler(policy, LogisticsParser(policy, sampler))


@pytest.fixture
def raw_item():
    return {
        "url": "https://example.com/item/1",
        "categoria": "Electronics",
        "subcategoria": "Phones",
        "ubicacion": "Monterrey",
        "titulo": "Rugged Phone X2",
        "imagenes": ["https://img.example.com/1_960x960q80.jpg"],
        "colores": [{"nombre": "Black", "imagen": "https://img.example.com/black.jpg"}],
        "tamaños": ["64GB", "128GB"],
        "precios": [
            {"cantidad": "10 - 49 pieces", "valor": "$2.00"},
            {"cantidad": "50 - 99 pieces", "valor": "$1.50-1.80"},
        ],
        "bloque_logistico": (
            "Premium: Shipping fee $3.10 $31.50 | Guaranteed delivery: Jan 5, 98% delivered on time"
            " || Standard: Shipping fee $9.99 | Guaranteed delivery: Jan 12"
            " || Economy: Shipping fee $4.00 | no guarantee"
        ),
        "detalles": {"Brand": "Acme", "Battery": "5000mAh"},
        "seller_rating": 4.8,
    }


@pytest.fixture
def record_factory():
    return make_record


def make_record(
    url: str,
    title: str = "Item",
    category: str = "Electronics",
    subcategory: str = "",
    location: str = "Monterrey",
    amounts: tuple[str, ...] = ("10.00",),
) -> ProductRecord:
    return ProductRecord(
        url=url,
        title=title,
        category=category,
        subcategory=subcategory,
        location=location,
        prices=[PriceEntry(quantity_label="1 piece", amount=Decimal(a)) for a in amounts],
    )
