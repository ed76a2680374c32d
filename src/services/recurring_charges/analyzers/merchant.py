"""
Merchant pattern analyzer for recurring charge detection.

Groups transactions by merchant identity.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from models.transaction import Transaction
from services.merchant_normalizer import MerchantNormalizer

logger = logging.getLogger(__name__)


class MerchantPatternAnalyzer:
    """
    Groups transactions by canonical merchant identity.

    Textual variants of the same payee ("UBER TRIP", "UBER EATS") land in one
    group keyed by the identity the normalizer produces.
    """

    def __init__(self, normalizer: Optional[MerchantNormalizer] = None):
        """
        Initialize the merchant pattern analyzer.

        Args:
            normalizer: Merchant normalizer (uses the default alias table if None)
        """
        self.normalizer = normalizer or MerchantNormalizer()

    def extract_pattern(self, transaction: Transaction) -> str:
        """Return the merchant identity of a transaction."""
        return self.normalizer.canonicalize(transaction.merchant)

    def group_by_merchant(
        self,
        transactions: Sequence[Transaction]
    ) -> Dict[str, List[Transaction]]:
        """
        Group transactions by merchant identity.

        Transactions whose merchant text normalizes to an empty identity are
        skipped.

        Args:
            transactions: Transactions in any order

        Returns:
            Dictionary from merchant identity to its transactions, in input order
        """
        groups: Dict[str, List[Transaction]] = defaultdict(list)
        skipped = 0
        for txn in transactions:
            identity = self.extract_pattern(txn)
            if not identity:
                skipped += 1
                continue
            groups[identity].append(txn)

        if skipped:
            logger.warning(f"Skipped {skipped} transactions with empty merchant text")

        return dict(groups)
