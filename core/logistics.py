"""Parsing of the composite shipping text captured from product pages.

The scraper joins every shipping option of a page into one string::

    Premium: Shipping fee $12.10 $31.50 | Guaranteed delivery: Jan 5, 98% delivered on time || Economy: ...

Each ``||`` segment is attributed to one tier (Premium, Standard, Economy), its
delivery labels are extracted, and a shipping fee is synthesized for it
according to the active FeePolicy. The source pages do not expose the real fee
for every tier, so fees are sampled from bounded intervals.
"""

import logging
import random
import re
import threading
from decimal import Decimal

from core.models import LogisticsBlock, TierLogistics
from core.policy import TIER_CHECK_ORDER, FeePolicy, FeeRange, LogisticsTier, NormalizationPolicy
from core.prices import ZERO, read_decimal, to_money

log = logging.getLogger(__name__)

SEGMENT_SEPARATOR = "||"
GUARANTEED_DELIVERY_MARKER = "Guaranteed delivery:"
ON_TIME_MARKER = "% delivered"
_PRICE_TOKEN = re.compile(r"\$\d[\d,]*(?:\.\d+)?")


def split_segments(text: str) -> list[str]:
    segments = (part.strip() for part in text.split(SEGMENT_SEPARATOR))
    return [s for s in segments if s]


def detect_tier(segment: str, case_sensitive: bool = True) -> LogisticsTier | None:
    haystack = segment if case_sensitive else segment.lower()
    for tier in TIER_CHECK_ORDER:
        marker = tier.marker if case_sensitive else tier.marker.lower()
        if marker in haystack:
            return tier
    return None


def extract_guaranteed_delivery(segment: str) -> str:
    idx = segment.find(GUARANTEED_DELIVERY_MARKER)
    if idx == -1:
        return ""
    tail = segment[idx + len(GUARANTEED_DELIVERY_MARKER):]
    return tail.split(",")[0].strip()


def extract_on_time_delivery(segment: str) -> str:
    for piece in segment.split(","):
        if ON_TIME_MARKER in piece:
            return piece[: piece.index("%")].strip() + "%"
    return ""


def premium_base_fee(segment: str) -> Decimal:
    """Second ``$amount`` token of a Premium segment, or zero when there is none."""
    tokens = _PRICE_TOKEN.findall(segment)
    if len(tokens) < 2:
        return ZERO
    value = read_decimal(tokens[1].replace("$", "").replace(",", ""))
    return value if value is not None else ZERO


class FeeSampler:
    """Draws fees from a shared generator.

    The generator is injected so tests can seed it; access goes through a lock
    because records may be normalized from several worker threads. Pass the
    same lock to every other user of the generator.
    """

    def __init__(self, rng: random.Random | None = None, lock: "threading.Lock | None" = None):
        self._rng = rng or random.Random()
        self.lock = lock or threading.Lock()

    def sample(self, fee_range: FeeRange) -> Decimal:
        with self.lock:
            value = self._rng.uniform(float(fee_range.low), float(fee_range.high))
        return to_money(value)


class LogisticsParser:
    def __init__(self, policy: NormalizationPolicy, sampler: FeeSampler | None = None):
        self.policy = policy
        self.sampler = sampler or FeeSampler()

    def parse(self, text: str) -> LogisticsBlock | None:
        if not text:
            return None

        segments: dict[LogisticsTier, str] = {}
        for segment in split_segments(text):
            tier = detect_tier(segment, self.policy.tier_match_case_sensitive)
            if tier is None:
                log.debug(f"Ignoring logistics segment without tier: {segment[:60]!r}")
                continue
            segments[tier] = segment

        fees = self._synthesize_fees(segments)

        block: LogisticsBlock = {}
        for tier in TIER_CHECK_ORDER:
            if tier not in segments:
                continue
            segment = segments[tier]
            on_time = ""
            if self.policy.extract_on_time_percentage:
                on_time = extract_on_time_delivery(segment)
            block[tier] = TierLogistics(
                shipping_fee=fees[tier],
                guaranteed_delivery_label=extract_guaranteed_delivery(segment),
                on_time_delivery_label=on_time,
            )
        return block

    def fee_range(self, tier: LogisticsTier, premium_fee: Decimal = ZERO) -> FeeRange:
        """Interval a synthesized fee for ``tier`` is drawn from."""
        if self.policy.fee_policy is FeePolicy.INDEPENDENT_RANGES:
            return self.policy.independent_ranges[tier]
        if tier is LogisticsTier.PREMIUM:
            return FeeRange(premium_fee, premium_fee)
        return self.policy.derived_range(tier, premium_fee)

    def premium_fee(self, segments: dict[LogisticsTier, str]) -> Decimal:
        segment = segments.get(LogisticsTier.PREMIUM)
        if segment is None:
            return ZERO
        return to_money(premium_base_fee(segment) + self.policy.premium_markup)

    def _synthesize_fees(self, segments: dict[LogisticsTier, str]) -> dict[LogisticsTier, Decimal]:
        if self.policy.fee_policy is FeePolicy.INDEPENDENT_RANGES:
            return {tier: self.sampler.sample(self.fee_range(tier)) for tier in segments}

        premium_fee = self.premium_fee(segments)
        fees = {}
        for tier in segments:
            if tier is LogisticsTier.PREMIUM:
                fees[tier] = premium_fee
            else:
                fees[tier] = self.sampler.sample(self.fee_range(tier, premium_fee))
        return fees
