"""
Merchant normalization service.

Maps free-text merchant descriptors to a comparable merchant identity so that
"UBER TRIP 8005928996" and "UBER EATS" group as the same payee.

Resolution order:
1. Alias rules, evaluated top to bottom; the first rule with any matching
   pattern wins, so specific rules must precede general ones.
2. Structural cleanup: strip payment-processor prefixes and trailing
   reference numbers, then upper-case and trim.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MerchantAliasRule:
    """A set of case-insensitive regex patterns that resolve to one canonical name."""
    patterns: Sequence[str]
    canonical_name: str
    _compiled: List[Pattern[str]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, '_compiled', [re.compile(p, re.IGNORECASE) for p in self.patterns]
        )

    def matches(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self._compiled)


MERCHANT_ALIASES: List[MerchantAliasRule] = [
    # Ride share and delivery
    MerchantAliasRule([r"^UBER$", r"UBER TRIP", r"UBER EATS", r"UBER ONE"], "Uber"),

    # Airlines
    MerchantAliasRule([r"UNITED AIRLINES"], "United Airlines"),
    MerchantAliasRule([r"DELTA AIR LINES", r"DELTA AIR"], "Delta Air Lines"),
    MerchantAliasRule([r"AMERICAN AIRLINES"], "American Airlines"),
    MerchantAliasRule([r"AIR FRANCE"], "Air France"),

    MerchantAliasRule(
        [r"DOORDASH", r"BT\*DD", r"DD \*DOORDASH", r"DD \*DOORDASHDASHPASS"], "DoorDash"
    ),
    MerchantAliasRule(
        [r"^AMAZON$", r"AMAZON MX MARKETPLACE", r"AMAZON MARKEPLACE", r"AMAZONPRIME"], "Amazon"
    ),
    MerchantAliasRule([r"CANTEEN", r"CTLP\*CANTEEN"], "Canteen"),

    # Google services; YouTube is billed through Google but kept separate
    MerchantAliasRule([r"GOOGLE\*WORKSPACE", r"GOOGLE ONE", r"GOOGLE\*GOOGLE ONE"], "Google"),
    MerchantAliasRule(
        [
            r"YOUTUBE TV",
            r"YOUTUBE VIDEOS",
            r"GOOGLE\*YOUTUBE",
            r"GOOGLE \*YOUTUBE",
            r"GOOGLE\*YT PRIMETIME",
        ],
        "YouTube",
    ),

    # AI tools
    MerchantAliasRule([r"CLAUDE\.AI", r"ANTHROPIC"], "Anthropic"),
    MerchantAliasRule([r"OPENAI", r"CHATGPT"], "OpenAI"),

    MerchantAliasRule([r"TCP\*UWMADISONHSG", r"UW MADISON"], "UW Madison"),
    MerchantAliasRule([r"BILT RENT", r"BILT REWARDS"], "Bilt"),
    MerchantAliasRule([r"INSTACART", r"IC\* INSTACART", r"IC\* COSTCO"], "Instacart"),
    MerchantAliasRule([r"LEVY@"], "Levy"),
    MerchantAliasRule([r"MONDAY[`']S"], "Monday's"),
    MerchantAliasRule([r"ORPHEUM THEATER"], "Orpheum Theater"),

    # Phone carriers
    MerchantAliasRule([r"TELEFONICA.*PEGASO"], "Telefonica"),
    MerchantAliasRule([r"ATT MOB"], "AT&T"),
]

PROCESSOR_PREFIX_PATTERN = re.compile(
    r"^(BT\*DD \*DOORDASH|DD \*DOORDASH|IC\*|TST\*|PAYPAL \*|GOOGLE\*|SQSP\*|CTLP\*|SQ \*)\s*",
    re.IGNORECASE,
)
TRAILING_REFERENCE_PATTERNS = [
    re.compile(r"\s+\d{10}$"),   # phone numbers
    re.compile(r"\s+#\d+$"),     # store numbers
    re.compile(r"\s+\d{4,}$"),   # reference codes
]


class MerchantNormalizer:
    """Canonicalizes merchant text using an ordered alias table and cleanup rules."""

    def __init__(self, alias_rules: Optional[Sequence[MerchantAliasRule]] = None):
        self.alias_rules = list(MERCHANT_ALIASES if alias_rules is None else alias_rules)

    def find_alias(self, raw_text: str) -> Optional[str]:
        """Return the canonical name of the first alias rule matching the text, if any."""
        for rule in self.alias_rules:
            if rule.matches(raw_text):
                return rule.canonical_name
        return None

    def canonicalize(self, raw_text: str) -> str:
        """
        Normalize merchant text to its comparable identity.

        Args:
            raw_text: Merchant descriptor as it appears on the statement

        Returns:
            The alias canonical name, or the cleaned upper-cased text
        """
        if not raw_text:
            return ""

        alias = self.find_alias(raw_text)
        if alias is not None:
            return alias

        cleaned = PROCESSOR_PREFIX_PATTERN.sub("", raw_text)
        for pattern in TRAILING_REFERENCE_PATTERNS:
            cleaned = pattern.sub("", cleaned)
        return cleaned.upper().strip()

    def same_merchant(self, first: str, second: str) -> bool:
        """True when both descriptors normalize to the same identity."""
        return self.canonicalize(first) == self.canonicalize(second)


_default_normalizer = MerchantNormalizer()


def canonicalize_merchant(raw_text: str) -> str:
    """Canonicalize merchant text with the default alias table."""
    return _default_normalizer.canonicalize(raw_text)


def is_same_merchant(first: str, second: str) -> bool:
    """Check whether two descriptors refer to the same merchant."""
    return _default_normalizer.same_merchant(first, second)
