from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from core.prices import DEFAULT_CURRENCY_MARKERS, DEFAULT_LANDED_SURCHARGE, to_money

if TYPE_CHECKING:
    from config import Settings


class FeePolicy(Enum):
    DERIVED_FROM_PREMIUM = "derived_from_premium"
    INDEPENDENT_RANGES = "independent_ranges"


class LogisticsTier(str, Enum):
    PREMIUM = "premium"
    STANDARD = "standard"
    ECONOMY = "economy"

    @property
    def marker(self) -> str:
        return self.value.capitalize()


# Fixed check order; the first tier whose marker appears in a segment wins.
TIER_CHECK_ORDER = (LogisticsTier.PREMIUM, LogisticsTier.STANDARD, LogisticsTier.ECONOMY)


@dataclass(frozen=True)
class FeeRange:
    low: Decimal
    high: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "low", to_money(self.low))
        object.__setattr__(self, "high", to_money(self.high))

    def contains(self, value: Decimal) -> bool:
        return min(self.low, self.high) <= value <= max(self.low, self.high)


def _default_ranges() -> dict[LogisticsTier, FeeRange]:
    return {
        LogisticsTier.PREMIUM: FeeRange(Decimal("25.00"), Decimal("40.00")),
        LogisticsTier.STANDARD: FeeRange(Decimal("10.00"), Decimal("25.00")),
        LogisticsTier.ECONOMY: FeeRange(Decimal("3.00"), Decimal("10.00")),
    }


@dataclass(frozen=True)
class NormalizationPolicy:
    """Knobs that distinguish the listing page shapes seen over time."""

    fee_policy: FeePolicy = FeePolicy.DERIVED_FROM_PREMIUM
    extract_on_time_percentage: bool = False
    has_subcategory: bool = True
    tier_match_case_sensitive: bool = True
    landed_surcharge: Decimal = DEFAULT_LANDED_SURCHARGE
    premium_markup: Decimal = Decimal("1.20")
    standard_fee_floor: Decimal = Decimal("0.90")
    economy_fee_floor: Decimal = Decimal("0.50")
    fee_ceiling_floor: Decimal = Decimal("0.50")
    independent_ranges: dict[LogisticsTier, FeeRange] = field(default_factory=_default_ranges)
    currency_markers: tuple[str, ...] = DEFAULT_CURRENCY_MARKERS

    def derived_ceiling(self, premium_fee: Decimal) -> Decimal:
        return max(premium_fee - Decimal("0.01"), self.fee_ceiling_floor)

    def derived_range(self, tier: LogisticsTier, premium_fee: Decimal) -> FeeRange:
        """Sampling interval for Standard/Economy under the derived-fee policy."""
        floor = self.standard_fee_floor if tier is LogisticsTier.STANDARD else self.economy_fee_floor
        return FeeRange(floor, self.derived_ceiling(premium_fee))


def policy_from_settings(settings: "Settings") -> NormalizationPolicy:
    return NormalizationPolicy(
        fee_policy=settings.fee_policy,
        extract_on_time_percentage=settings.extract_on_time_percentage,
        has_subcategory=settings.has_subcategory,
        tier_match_case_sensitive=settings.tier_match_case_sensitive,
        landed_surcharge=to_money(settings.landed_surcharge),
        premium_markup=to_money(settings.premium_markup),
        standard_fee_floor=to_money(settings.standard_fee_floor),
        economy_fee_floor=to_money(settings.economy_fee_floor),
        fee_ceiling_floor=to_money(settings.fee_ceiling_floor),
        independent_ranges={
            LogisticsTier.PREMIUM: FeeRange(*map(to_money, settings.premium_fee_range)),
            LogisticsTier.STANDARD: FeeRange(*map(to_money, settings.standard_fee_range)),
            LogisticsTier.ECONOMY: FeeRange(*map(to_money, settings.economy_fee_range)),
        },
        currency_markers=tuple(settings.currency_markers),
    )
