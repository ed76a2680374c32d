"""
Transaction model for the spending-analytics engine.

Transactions are supplied already normalized by the transaction source and are
never modified by the engine.
"""
import datetime
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing_extensions import Self

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_ID = "uncategorized"


class Transaction(BaseModel):
    """
    A single dated spend, using Pydantic for validation and serialization.

    Amounts are positive for spend. The purchase date may precede the posting
    date; the reverse is tolerated because bank exports are noisy.
    """
    id: str
    date: datetime.date
    purchase_date: Optional[datetime.date] = Field(default=None, alias="purchaseDate")
    merchant: str = Field(max_length=1000)
    category_id: str = Field(default=DEFAULT_CATEGORY_ID, alias="categoryId")
    amount: Decimal = Field(ge=0)

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True
    )

    @field_validator('amount', mode='before')
    @classmethod
    def ensure_amount_is_decimal(cls, v: Any) -> Decimal:
        if not isinstance(v, Decimal):
            try:
                return Decimal(str(v))
            except Exception as e:
                raise ValueError(f"Invalid amount value: {v}. Could not convert to Decimal.") from e
        return v

    @property
    def month_key(self) -> str:
        """Calendar month of the posting date as YYYY-MM."""
        return f"{self.date.year:04d}-{self.date.month:02d}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys and ISO-8601 dates."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Create a transaction from its serialized form."""
        return cls.model_validate(data)
