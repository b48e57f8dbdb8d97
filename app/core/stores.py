"""Persistent user and trade stores.

Key layout:

    users:next_id            counter
    users:email              hash   email -> user id (unique index)
    user:{id}                hash   email, password_hash
    trades:next_id           counter
    trade:{id}               hash   type, user_id, symbol, shares, price, timestamp (epoch ms)
    trades                   zset   trade id scored by id
    trades:user:{user_id}    zset   per-account index
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from app.core.storage import StorageInterface
from app.models.trade import TradeCreate, TradeRecord, TradeType, from_epoch_ms, to_epoch_ms
from app.models.user import UserRecord

logger = logging.getLogger(__name__)

USER_ID_COUNTER = "users:next_id"
USER_EMAIL_INDEX = "users:email"
TRADE_ID_COUNTER = "trades:next_id"
TRADE_INDEX = "trades"


class DuplicateEmailError(Exception):
    """An account with this email already exists."""
    pass


def _user_key(user_id: int) -> str:
    return f"user:{user_id}"


def _trade_key(trade_id: int) -> str:
    return f"trade:{trade_id}"


def _user_trade_index(user_id: int) -> str:
    return f"trades:user:{user_id}"


class UserStore:
    """Accounts keyed by id with a unique email index."""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    async def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        data = await self.storage.hgetall(_user_key(user_id))
        if not data:
            return None
        return UserRecord(id=user_id, email=data["email"], password_hash=data["password_hash"])

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        user_id = await self.storage.hget(USER_EMAIL_INDEX, email)
        if user_id is None:
            return None
        return await self.find_by_id(int(user_id))

    async def create(self, email: str, password_hash: str) -> UserRecord:
        """Persist a new account.

        The account hash and its email index entry are written in one atomic
        batch guarded on the email, so a duplicate writes nothing at all.
        """
        user_id = await self.storage.incr(USER_ID_COUNTER)
        created = await self.storage.write_batch(
            hashes={
                _user_key(user_id): {"email": email, "password_hash": password_hash},
                USER_EMAIL_INDEX: {email: str(user_id)},
            },
            guard=(USER_EMAIL_INDEX, email),
        )
        if not created:
            raise DuplicateEmailError(email)

        logger.info(f"Account created: id={user_id}")
        return UserRecord(id=user_id, email=email, password_hash=password_hash)

    async def update_password_hash(self, user_id: int, password_hash: str):
        await self.storage.hset(_user_key(user_id), {"password_hash": password_hash})


class TradeStore:
    """Append-only trade records ordered by a monotonic id."""

    def __init__(self, storage: StorageInterface,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.storage = storage
        self.clock = clock

    @staticmethod
    def _from_hash(trade_id: int, data: dict) -> TradeRecord:
        return TradeRecord(
            id=trade_id,
            type=TradeType(data["type"]),
            user_id=int(data["user_id"]),
            symbol=data["symbol"],
            shares=int(data["shares"]),
            price=float(data["price"]),
            timestamp=from_epoch_ms(int(data["timestamp"])),
        )

    async def create(self, trade: TradeCreate) -> TradeRecord:
        """Assign an id and creation instant, then persist and index the trade."""
        trade_id = await self.storage.incr(TRADE_ID_COUNTER)
        timestamp_ms = to_epoch_ms(self.clock())

        # Record and both indexes land together or not at all
        await self.storage.write_batch(
            hashes={
                _trade_key(trade_id): {
                    "type": trade.type.value,
                    "user_id": str(trade.user_id),
                    "symbol": trade.symbol,
                    "shares": str(trade.shares),
                    "price": repr(trade.price),
                    "timestamp": str(timestamp_ms),
                },
            },
            sorted_sets={
                TRADE_INDEX: {str(trade_id): trade_id},
                _user_trade_index(trade.user_id): {str(trade_id): trade_id},
            },
        )

        return TradeRecord(
            id=trade_id,
            type=trade.type,
            user_id=trade.user_id,
            symbol=trade.symbol,
            shares=trade.shares,
            price=trade.price,
            timestamp=from_epoch_ms(timestamp_ms),
        )

    async def find_by_id(self, trade_id: int) -> Optional[TradeRecord]:
        data = await self.storage.hgetall(_trade_key(trade_id))
        if not data:
            return None
        return self._from_hash(trade_id, data)

    async def find_many(self, trade_type: Optional[TradeType] = None,
                        user_id: Optional[int] = None) -> List[TradeRecord]:
        """Matching trades in ascending id order."""
        index = _user_trade_index(user_id) if user_id is not None else TRADE_INDEX
        trade_ids = sorted(int(member) for member in await self.storage.zrange(index))

        trades = []
        for trade_id in trade_ids:
            trade = await self.find_by_id(trade_id)
            if trade is None:
                continue
            if trade_type is not None and trade.type != trade_type:
                continue
            trades.append(trade)
        return trades
