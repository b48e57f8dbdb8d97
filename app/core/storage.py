"""Key/value storage backends used by the user and trade stores."""
import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Mapping, Optional, Tuple

import redis

logger = logging.getLogger(__name__)

# Shared thread pool for blocking Redis calls
_executor = ThreadPoolExecutor(max_workers=10, thread_name_prefix="redis-pool")


class StorageInterface(ABC):
    """Abstract storage interface for database independence."""

    @abstractmethod
    async def ping(self) -> bool:
        pass

    @abstractmethod
    async def close(self):
        pass

    @abstractmethod
    async def hget(self, key: str, field: str) -> Optional[str]:
        pass

    @abstractmethod
    async def hgetall(self, key: str) -> Dict[str, str]:
        pass

    @abstractmethod
    async def hset(self, key: str, mapping: Mapping[str, str]):
        pass

    @abstractmethod
    async def incr(self, key: str) -> int:
        pass

    @abstractmethod
    async def zrange(self, key: str) -> List[str]:
        """All members ordered by ascending score."""
        pass

    @abstractmethod
    async def write_batch(self,
                          hashes: Optional[Mapping[str, Mapping[str, str]]] = None,
                          sorted_sets: Optional[Mapping[str, Mapping[str, float]]] = None,
                          guard: Optional[Tuple[str, str]] = None) -> bool:
        """Apply all hash and sorted-set writes as one atomic unit.

        ``guard`` is a ``(key, field)`` pair; if that hash field already
        exists nothing is written and False is returned.
        """
        pass


class RedisStorage(StorageInterface):
    """Redis storage over a pooled synchronous client run in a thread pool."""

    def __init__(self, host: str, port: int, username: Optional[str] = None,
                 password: Optional[str] = None, ssl: bool = False, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.ssl = ssl
        self.timeout = timeout
        self.redis_client: Optional[redis.Redis] = None
        self._connection_pool: Optional[redis.ConnectionPool] = None

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, lambda: func(*args, **kwargs))

    async def connect(self) -> bool:
        """Create the connection pool and check it with a ping."""
        pool_config = {
            "host": self.host,
            "port": self.port,
            "decode_responses": True,
            "max_connections": 20,
            "retry_on_timeout": True,
            "socket_keepalive": True,
            "health_check_interval": 30,
            "socket_connect_timeout": self.timeout,
            "socket_timeout": self.timeout,
        }
        if self.username:
            pool_config["username"] = self.username
        if self.password:
            pool_config["password"] = self.password
        if self.ssl:
            pool_config["connection_class"] = redis.SSLConnection

        try:
            self._connection_pool = redis.ConnectionPool(**pool_config)
            self.redis_client = redis.Redis(connection_pool=self._connection_pool)
            await self._run(self.redis_client.ping)
        except redis.RedisError as e:
            logger.warning(f"Failed to connect to Redis at {self.host}:{self.port}: {e}")
            await self.close()
            return False

        ssl_status = "SSL" if self.ssl else "no SSL"
        logger.info(f"Connected to Redis at {self.host}:{self.port} ({ssl_status})")
        return True

    async def close(self):
        """Clean connection shutdown."""
        if self._connection_pool is None:
            return
        try:
            await self._run(self._connection_pool.disconnect)
            logger.info("Redis connection pool closed")
        except redis.RedisError as e:
            logger.warning(f"Error closing Redis connection: {e}")
        finally:
            self._connection_pool = None

    async def ping(self) -> bool:
        try:
            return bool(await self._run(self.redis_client.ping))
        except redis.RedisError:
            return False

    async def hget(self, key: str, field: str) -> Optional[str]:
        return await self._run(self.redis_client.hget, key, field)

    async def hgetall(self, key: str) -> Dict[str, str]:
        return await self._run(self.redis_client.hgetall, key)

    async def hset(self, key: str, mapping: Mapping[str, str]):
        return await self._run(self.redis_client.hset, key, mapping=dict(mapping))

    async def incr(self, key: str) -> int:
        return int(await self._run(self.redis_client.incr, key))

    async def zrange(self, key: str) -> List[str]:
        return await self._run(self.redis_client.zrange, key, 0, -1)

    def _write_batch_sync(self, hashes, sorted_sets, guard) -> bool:
        """MULTI/EXEC, with WATCH on the guard key so a racing writer forces a recheck."""
        with self.redis_client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    if guard:
                        pipe.watch(guard[0])
                        if pipe.hexists(*guard):
                            pipe.unwatch()
                            return False
                    pipe.multi()
                    for key, mapping in hashes.items():
                        pipe.hset(key, mapping=dict(mapping))
                    for key, mapping in sorted_sets.items():
                        pipe.zadd(key, dict(mapping))
                    pipe.execute()
                    return True
                except redis.WatchError:
                    continue

    async def write_batch(self, hashes=None, sorted_sets=None, guard=None) -> bool:
        return await self._run(self._write_batch_sync, hashes or {}, sorted_sets or {}, guard)


class InMemoryStorage(StorageInterface):
    """In-memory storage for development and testing."""

    def __init__(self):
        self._hashes: Dict[str, Dict[str, str]] = {}
        self._counters: Dict[str, int] = {}
        self._sorted: Dict[str, Dict[str, float]] = {}
        self._lock = asyncio.Lock()

    async def ping(self) -> bool:
        return True

    async def close(self):
        async with self._lock:
            self._hashes.clear()
            self._counters.clear()
            self._sorted.clear()

    async def hget(self, key: str, field: str) -> Optional[str]:
        async with self._lock:
            return self._hashes.get(key, {}).get(field)

    async def hgetall(self, key: str) -> Dict[str, str]:
        async with self._lock:
            return self._hashes.get(key, {}).copy()

    async def hset(self, key: str, mapping: Mapping[str, str]):
        async with self._lock:
            self._hashes.setdefault(key, {}).update({k: str(v) for k, v in mapping.items()})

    async def incr(self, key: str) -> int:
        async with self._lock:
            self._counters[key] = self._counters.get(key, 0) + 1
            return self._counters[key]

    async def zrange(self, key: str) -> List[str]:
        async with self._lock:
            members = self._sorted.get(key, {})
            return [m for m, _ in sorted(members.items(), key=lambda item: (item[1], item[0]))]

    async def write_batch(self, hashes=None, sorted_sets=None, guard=None) -> bool:
        async with self._lock:
            if guard and guard[1] in self._hashes.get(guard[0], {}):
                return False
            for key, mapping in (hashes or {}).items():
                self._hashes.setdefault(key, {}).update({k: str(v) for k, v in mapping.items()})
            for key, mapping in (sorted_sets or {}).items():
                self._sorted.setdefault(key, {}).update(mapping)
            return True


async def create_storage(backend: str, host: str, port: int, username: Optional[str] = None,
                         password: Optional[str] = None, ssl: bool = False, timeout: float = 5.0,
                         fallback: bool = True) -> StorageInterface:
    """Build the configured backend, optionally falling back to memory."""
    if backend == "memory":
        logger.info("Using in-memory storage")
        return InMemoryStorage()

    redis_storage = RedisStorage(host, port, username, password, ssl=ssl, timeout=timeout)
    if await redis_storage.connect():
        return redis_storage

    if not fallback:
        raise ConnectionError(f"Redis unavailable at {host}:{port}")
    logger.warning("Redis connection failed, using in-memory storage")
    return InMemoryStorage()
