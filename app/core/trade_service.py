"""Trade ledger operations."""
import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from app.core.error_handling import (
    MethodNotAllowedError, ResourceNotFoundError, ValidationFailedError
)
from app.core.stores import TradeStore
from app.models.trade import TradeCreate, TradeRecord, TradeType

logger = logging.getLogger(__name__)

MODIFICATION_NOT_PERMITTED = "Trade modification is not permitted"
DELETION_NOT_PERMITTED = "Trade deletion is not permitted"


def _format_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{' -> '.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


class TradeService:
    """Create and read trades. Trades are never updated or deleted."""

    def __init__(self, trades: TradeStore):
        self.trades = trades

    async def create_trade(self, data: Union[TradeCreate, Mapping[str, Any]]) -> TradeRecord:
        if not isinstance(data, TradeCreate):
            try:
                data = TradeCreate.model_validate(data)
            except ValidationError as e:
                raise ValidationFailedError(details=_format_errors(e)) from e

        trade = await self.trades.create(data)
        logger.info(f"Trade recorded: id={trade.id} {trade.type.value} {trade.shares} {trade.symbol} "
                    f"@ {trade.price} for account {trade.user_id}")
        return trade

    async def list_trades(self, trade_type: Optional[TradeType] = None,
                          user_id: Optional[int] = None) -> List[TradeRecord]:
        return await self.trades.find_many(trade_type=trade_type, user_id=user_id)

    async def get_trade(self, trade_id: int) -> TradeRecord:
        if trade_id <= 0:
            raise ValidationFailedError(details="id: must be a positive integer")
        trade = await self.trades.find_by_id(trade_id)
        if trade is None:
            raise ResourceNotFoundError("Trade not found")
        return trade

    def reject_modification(self, trade_id: Any):
        """Trades are an append-only ledger; corrections are new offsetting trades."""
        logger.warning(f"Rejected modification of trade {trade_id}")
        raise MethodNotAllowedError(MODIFICATION_NOT_PERMITTED)

    def reject_deletion(self, trade_id: Any):
        """Recorded trades are never removed."""
        logger.warning(f"Rejected deletion of trade {trade_id}")
        raise MethodNotAllowedError(DELETION_NOT_PERMITTED)
