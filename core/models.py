from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from core.policy import LogisticsTier
from core.prices import MAX_AMOUNT_DIGITS, ZERO, format_money, price_or_zero, read_decimal, to_money


def _coerce_money(value: Any) -> Decimal:
    if isinstance(value, str):
        return to_money(price_or_zero(value, MAX_AMOUNT_DIGITS))
    if isinstance(value, (Decimal, int, float)) and not isinstance(value, bool):
        amount = read_decimal(str(value), MAX_AMOUNT_DIGITS)
        if amount is not None and amount >= 0:
            return to_money(amount)
    return ZERO


Money = Annotated[
    Decimal,
    BeforeValidator(_coerce_money),
    PlainSerializer(format_money, return_type=str, when_used="json"),
]


class _Frozen(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PriceEntry(_Frozen):
    quantity_label: str = ""
    amount: Money = ZERO


class Color(_Frozen):
    name: str = ""
    image_ref: str = ""


class TierLogistics(_Frozen):
    shipping_fee: Money = ZERO
    guaranteed_delivery_label: str = ""
    on_time_delivery_label: str = ""


LogisticsBlock = dict[LogisticsTier, TierLogistics]


class ProductRecord(_Frozen):
    url: str = ""
    category: str = ""
    subcategory: str = ""
    location: str = ""
    title: str = ""
    images: list[str] = Field(default_factory=list)
    colors: list[Color] = Field(default_factory=list)
    sizes: list[str] = Field(default_factory=list)
    prices: list[PriceEntry] = Field(default_factory=list)
    logistics: LogisticsBlock | None = None
    details: dict[str, str] = Field(default_factory=dict)

    @property
    def min_price(self) -> Decimal | None:
        """Lowest usable price across all tiers; zero amounts mean no price."""
        amounts = [p.amount for p in self.prices if p.amount > 0]
        return min(amounts) if amounts else None

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_json_dict(cls, data: dict) -> "ProductRecord":
        return cls.model_validate(data)
