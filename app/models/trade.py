"""Trade-related Pydantic models."""
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    """Integer milliseconds since the Unix epoch."""
    return (moment - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: int) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


class TradeType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class TradeCreate(BaseModel):
    """Trade creation request model."""
    type: TradeType
    user_id: int = Field(..., gt=0, strict=True)
    symbol: str = Field(..., min_length=1, max_length=20)
    shares: int = Field(..., ge=1, le=100, strict=True)
    price: float = Field(..., gt=0, allow_inf_nan=False)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("symbol must not be blank")
        return v.upper()


class TradeRecord(BaseModel):
    """Trade as persisted by the trade store."""
    id: int
    type: TradeType
    user_id: int
    symbol: str
    shares: int
    price: float
    timestamp: datetime

    def to_response(self) -> "TradeResponse":
        return TradeResponse(
            id=self.id,
            type=self.type,
            user_id=self.user_id,
            symbol=self.symbol,
            shares=self.shares,
            price=self.price,
            timestamp=to_epoch_ms(self.timestamp),
        )


class TradeResponse(BaseModel):
    """Trade response; ``timestamp`` is epoch milliseconds."""
    id: int
    type: TradeType
    user_id: int
    symbol: str
    shares: int
    price: float
    timestamp: int
