"""Trade ledger API routes.

Every route here sits behind the access-token gate. Trades can be created
and read; PUT, PATCH and DELETE are answered with 405.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from app.core.trade_service import TradeService
from app.dependencies import get_current_user, get_trade_service
from app.models.auth import AccessClaims
from app.models.trade import TradeCreate, TradeResponse, TradeType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trades", tags=["Trading"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=TradeResponse, status_code=status.HTTP_201_CREATED)
async def create_trade(
    trade_request: TradeCreate,
    current_user: AccessClaims = Depends(get_current_user),
    trades: TradeService = Depends(get_trade_service)
):
    """Record a new trade."""
    trade = await trades.create_trade(trade_request)
    logger.debug(f"Trade {trade.id} recorded by account {current_user.user_id}")
    return trade.to_response()


@router.get("", response_model=List[TradeResponse])
async def list_trades(
    trade_type: Optional[TradeType] = Query(None, alias="type"),
    user_id: Optional[int] = Query(None, gt=0),
    trades: TradeService = Depends(get_trade_service)
):
    """List trades in creation order, optionally filtered by type and account."""
    records = await trades.list_trades(trade_type=trade_type, user_id=user_id)
    return [record.to_response() for record in records]


@router.get("/{trade_id}", response_model=TradeResponse)
async def get_trade(
    trade_id: int = Path(..., gt=0),
    trades: TradeService = Depends(get_trade_service)
):
    """Fetch a single trade."""
    trade = await trades.get_trade(trade_id)
    return trade.to_response()


@router.put("/{trade_id}", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
@router.patch("/{trade_id}", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
async def modify_trade(
    trade_id: str,
    trades: TradeService = Depends(get_trade_service)
):
    """Trades cannot be modified."""
    trades.reject_modification(trade_id)


@router.delete("/{trade_id}", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
async def delete_trade(
    trade_id: str,
    trades: TradeService = Depends(get_trade_service)
):
    """Trades cannot be deleted."""
    trades.reject_deletion(trade_id)
