"""Storage layer for Betsettler - MongoDB repositories, audit trail and refund policy.

This package provides:
- Connection management (Motor for MongoDB, redis.asyncio for Redis)
- Bet and market repositories used by the settlement coordinator
- The append-only audit trail ('bet_logs')
- The refund policy provider (limits record in Redis)
"""

from .audit import AuditTrail
from .bets import BetRepository
from .database import (
    close_connections,
    connect_mongo,
    connect_redis,
    get_database,
    get_redis,
    sanitize_mongodb_url,
)
from .exceptions import StoreConnectionError
from .markets import MarketRepository
from .policy import DEFAULT_REFUND_PCT, RefundPolicyProvider

__all__ = [
    "AuditTrail",
    "BetRepository",
    "MarketRepository",
    "RefundPolicyProvider",
    "DEFAULT_REFUND_PCT",
    "StoreConnectionError",
    "connect_mongo",
    "connect_redis",
    "close_connections",
    "get_database",
    "get_redis",
    "sanitize_mongodb_url",
]
