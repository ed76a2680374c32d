"""
Unit tests for merchant normalization.
"""

import pytest

from services.merchant_normalizer import (
    MERCHANT_ALIASES,
    MerchantAliasRule,
    MerchantNormalizer,
    canonicalize_merchant,
    is_same_merchant,
)


class TestMerchantNormalizer:
    """Test suite for MerchantNormalizer."""

    @pytest.fixture
    def normalizer(self):
        return MerchantNormalizer()

    @pytest.mark.parametrize("raw,expected", [
        ("UBER TRIP 8005928996", "Uber"),
        ("UBER EATS", "Uber"),
        ("uber", "Uber"),
        ("DD *DOORDASH BURGERS", "DoorDash"),
        ("AMAZONPRIME*AB12CD", "Amazon"),
        ("GOOGLE *YOUTUBE PREMIUM", "YouTube"),
        ("GOOGLE ONE STORAGE", "Google"),
        ("CLAUDE.AI SUBSCRIPTION", "Anthropic"),
        ("OPENAI *CHATGPT SUBSCR", "OpenAI"),
        ("MONDAY'S BAR", "Monday's"),
        ("ATT MOBILITY PAYMENT", "AT&T"),
    ])
    def test_alias_table(self, normalizer, raw, expected):
        assert normalizer.canonicalize(raw) == expected

    def test_plain_amazon_purchase_is_not_aliased(self, normalizer):
        # Only the bare word or the listed marketplace variants alias to Amazon
        assert normalizer.canonicalize("AMAZON.COM*2X4Y") == "AMAZON.COM*2X4Y"

    def test_processor_prefix_is_stripped(self, normalizer):
        assert normalizer.canonicalize("TST* Blue Bottle Coffee") == "BLUE BOTTLE COFFEE"
        assert normalizer.canonicalize("SQ *CORNER BAKERY") == "CORNER BAKERY"
        assert normalizer.canonicalize("PAYPAL *STEAMGAMES") == "STEAMGAMES"

    def test_trailing_references_are_stripped(self, normalizer):
        assert normalizer.canonicalize("WALGREENS #1234") == "WALGREENS"
        assert normalizer.canonicalize("CITY PARKING 4155551234") == "CITY PARKING"
        assert normalizer.canonicalize("ACME HARDWARE 98765") == "ACME HARDWARE"

    def test_cleanup_upper_cases_and_trims(self, normalizer):
        assert normalizer.canonicalize("  netflix.com ") == "NETFLIX.COM"

    def test_empty_text(self, normalizer):
        assert normalizer.canonicalize("") == ""

    def test_canonicalize_is_idempotent(self, normalizer):
        for raw in ["UBER TRIP 8005928996", "TST* Blue Bottle Coffee", "WALGREENS #1234", "Spotify USA"]:
            once = normalizer.canonicalize(raw)
            assert normalizer.canonicalize(once) == once

    def test_first_matching_rule_wins(self):
        normalizer = MerchantNormalizer([
            MerchantAliasRule([r"COFFEE"], "Generic Coffee"),
            MerchantAliasRule([r"BLUE BOTTLE"], "Blue Bottle"),
        ])
        assert normalizer.canonicalize("BLUE BOTTLE COFFEE") == "Generic Coffee"

    def test_custom_rules_replace_default_table(self):
        normalizer = MerchantNormalizer([])
        assert normalizer.canonicalize("UBER TRIP") == "UBER TRIP"

    def test_find_alias(self, normalizer):
        assert normalizer.find_alias("UBER ONE MEMBERSHIP") == "Uber"
        assert normalizer.find_alias("LOCAL GROCER") is None

    def test_same_merchant(self, normalizer):
        assert normalizer.same_merchant("UBER TRIP", "UBER EATS")
        assert not normalizer.same_merchant("UBER TRIP", "LYFT RIDE")


def test_default_table_is_non_empty():
    assert len(MERCHANT_ALIASES) > 0
    assert all(rule.canonical_name for rule in MERCHANT_ALIASES)


def test_module_helpers_use_default_table():
    assert canonicalize_merchant("UBER EATS") == "Uber"
    assert is_same_merchant("UBER TRIP 8005928996", "UBER ONE")
