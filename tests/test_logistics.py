import random
from decimal import Decimal

import pytest

from core.logistics import (
    FeeSampler,
    LogisticsParser,
    detect_tier,
    extract_guaranteed_delivery,
    extract_on_time_delivery,
    premium_base_fee,
    split_segments,
)
from core.policy import FeePolicy, FeeRange, LogisticsTier, NormalizationPolicy

SAMPLE_SHIPPING_TEXT = "Premium: Guaranteed delivery: Jan 5, 98% delivered on time||Economy: no guarantee"


class TestSegmentHelpers:
    def test_split_skips_blank_segments(self):
        assert split_segments(" a || ||b||") == ["a", "b"]

    def test_detect_tier_fixed_order(self):
        assert detect_tier("Premium or Standard shipping") is LogisticsTier.PREMIUM
        assert detect_tier("Standard / Economy") is LogisticsTier.STANDARD
        assert detect_tier("Economy") is LogisticsTier.ECONOMY
        assert detect_tier("Express") is None

    def test_detect_tier_case(self):
        assert detect_tier("premium shipping") is None
        assert detect_tier("premium shipping", case_sensitive=False) is LogisticsTier.PREMIUM

    def test_guaranteed_delivery_until_comma(self):
        assert extract_guaranteed_delivery("Premium: Guaranteed delivery: Jan 5, 98% delivered") == "Jan 5"
        assert extract_guaranteed_delivery("Economy: no guarantee") == ""

    def test_on_time_percentage(self):
        assert extract_on_time_delivery("Premium: x, 98% delivered on time") == "98%"
        assert extract_on_time_delivery("Premium: x, 98.5 % delivered within 15 days") == "98.5%"
        assert extract_on_time_delivery("Economy: no guarantee") == ""

    def test_premium_base_fee_is_second_amount(self):
        assert premium_base_fee("Premium: $3.10 $31.50 | Guaranteed delivery: Jan 5") == Decimal("31.50")
        assert premium_base_fee("Premium: $1,003.10 $1,200") == Decimal("1200")
        assert premium_base_fee("Premium: $3.10 only") == 0


class TestDerivedFeePolicy:
    def test_example_block(self, policy, sampler):
        block = LogisticsParser(policy, sampler).parse(SAMPLE_SHIPPING_TEXT)

        assert set(block) == {LogisticsTier.PREMIUM, LogisticsTier.ECONOMY}
        premium = block[LogisticsTier.PREMIUM]
        economy = block[LogisticsTier.ECONOMY]
        assert premium.guaranteed_delivery_label == "Jan 5"
        assert premium.on_time_delivery_label == "98%"
        assert economy.guaranteed_delivery_label == ""
        assert economy.on_time_delivery_label == ""

    def test_fees_within_interval(self, policy, sampler):
        parser = LogisticsParser(policy, sampler)
        block = parser.parse(SAMPLE_SHIPPING_TEXT)

        premium_fee = block[LogisticsTier.PREMIUM].shipping_fee
        assert premium_fee == Decimal("1.20")
        economy_fee = block[LogisticsTier.ECONOMY].shipping_fee
        assert parser.fee_range(LogisticsTier.ECONOMY, premium_fee).contains(economy_fee)

    def test_standard_and_economy_below_premium(self, policy):
        text = (
            "Premium: $3.10 $31.50 | Guaranteed delivery: Jan 5"
            "||Standard: Guaranteed delivery: Jan 9||Economy: slow"
        )
        parser = LogisticsParser(policy, FeeSampler(random.Random(7)))
        for _ in range(50):
            block = parser.parse(text)
            premium = block[LogisticsTier.PREMIUM].shipping_fee
            assert premium == Decimal("32.70")
            for tier, floor in ((LogisticsTier.STANDARD, "0.90"), (LogisticsTier.ECONOMY, "0.50")):
                fee = block[tier].shipping_fee
                assert Decimal(floor) <= fee <= Decimal("32.69")

    def test_premium_after_other_tiers_still_bounds_them(self, policy, sampler):
        text = "Standard: ok||Premium: $1.00 $20.00"
        block = LogisticsParser(policy, sampler).parse(text)
        assert block[LogisticsTier.PREMIUM].shipping_fee == Decimal("21.20")
        assert Decimal("0.90") <= block[LogisticsTier.STANDARD].shipping_fee <= Decimal("21.19")

    def test_small_premium_fee_overlaps_ranges(self, policy):
        # Small premium fees push the Standard ceiling under its own floor, so
        # economy <= standard is not guaranteed.
        standard = policy.derived_range(LogisticsTier.STANDARD, Decimal("0.50"))
        economy = policy.derived_range(LogisticsTier.ECONOMY, Decimal("0.50"))
        assert standard.low > standard.high
        assert economy.high == Decimal("0.50")

        parser = LogisticsParser(policy, FeeSampler(random.Random(3)))
        block = parser.parse("Premium: free||Standard: a||Economy: b")
        premium_fee = block[LogisticsTier.PREMIUM].shipping_fee
        for tier in (LogisticsTier.STANDARD, LogisticsTier.ECONOMY):
            assert parser.fee_range(tier, premium_fee).contains(block[tier].shipping_fee)

    def test_seeded_sampler_is_reproducible(self, policy):
        text = "Premium: $1 $10||Standard: a||Economy: b"
        first = LogisticsParser(policy, FeeSampler(random.Random(99))).parse(text)
        second = LogisticsParser(policy, FeeSampler(random.Random(99))).parse(text)
        assert first == second


class TestIndependentRangesPolicy:
    def test_each_tier_in_own_range(self, independent_policy):
        parser = LogisticsParser(independent_policy, FeeSampler(random.Random(5)))
        text = "Premium: a||Standard: b||Economy: c"
        for _ in range(50):
            block = parser.parse(text)
            for tier, info in block.items():
                assert independent_policy.independent_ranges[tier].contains(info.shipping_fee)

    def test_on_time_extraction_off(self, independent_policy, sampler):
        block = LogisticsParser(independent_policy, sampler).parse(SAMPLE_SHIPPING_TEXT)
        assert block[LogisticsTier.PREMIUM].on_time_delivery_label == ""

    def test_custom_ranges(self, sampler):
        ranges = {
            LogisticsTier.PREMIUM: FeeRange(Decimal("5"), Decimal("5")),
            LogisticsTier.STANDARD: FeeRange(Decimal("3"), Decimal("3")),
            LogisticsTier.ECONOMY: FeeRange(Decimal("1"), Decimal("2")),
        }
        policy = NormalizationPolicy(fee_policy=FeePolicy.INDEPENDENT_RANGES, independent_ranges=ranges)
        block = LogisticsParser(policy, sampler).parse("Premium: x||Standard: y")
        assert block[LogisticsTier.PREMIUM].shipping_fee == Decimal("5.00")
        assert block[LogisticsTier.STANDARD].shipping_fee == Decimal("3.00")


class TestBlockShape:
    def test_empty_text_means_no_block(self, policy, sampler):
        assert LogisticsParser(policy, sampler).parse("") is None

    def test_text_without_tiers_gives_empty_block(self, policy, sampler):
        assert LogisticsParser(policy, sampler).parse("No disponible") == {}

    def test_repeated_tier_last_wins(self, policy, sampler):
        text = "Standard: Guaranteed delivery: Jan 1||Standard: Guaranteed delivery: Jan 9"
        block = LogisticsParser(policy, sampler).parse(text)
        assert list(block) == [LogisticsTier.STANDARD]
        assert block[LogisticsTier.STANDARD].guaranteed_delivery_label == "Jan 9"

    @pytest.mark.parametrize("case_sensitive,expected", [(True, 0), (False, 1)])
    def test_case_sensitivity_option(self, sampler, case_sensitive, expected):
        policy = NormalizationPolicy(tier_match_case_sensitive=case_sensitive)
        block = LogisticsParser(policy, sampler).parse("economy: slow boat")
        assert len(block) == expected
