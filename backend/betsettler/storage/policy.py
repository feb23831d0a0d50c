"""Refund percentage loaded from the limits record in Redis."""

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_REFUND_PCT = 95.0


class RefundLimits(BaseModel):
    refund: float = Field(ge=0, le=100)


class LimitsRecord(BaseModel):
    type: str
    limits: RefundLimits


class RefundPolicyProvider:
    """
    Best-effort reader of the current refund percentage.

    The record looks like ``{"type": "limits", "limits": {"refund": 90}}``.
    A missing key, unreachable Redis or malformed payload all fall back to
    the default; loading never raises.
    """

    def __init__(
        self,
        redis: Redis,
        key: str,
        default_pct: float = DEFAULT_REFUND_PCT,
    ):
        self.redis = redis
        self.key = key
        self.default_pct = default_pct

    async def load(self) -> float:
        try:
            raw = await self.redis.get(self.key)
        except Exception as e:
            logger.error(f"Failed to load limits from Redis: {e}")
            logger.info(f"Using default refund percentage: {self.default_pct:g}%")
            return self.default_pct

        if raw is None:
            logger.info(
                f"No limits record at {self.key}; using default refund "
                f"percentage: {self.default_pct:g}%"
            )
            return self.default_pct

        pct = self._parse(raw)
        if pct is None:
            logger.info(f"Using default refund percentage: {self.default_pct:g}%")
            return self.default_pct

        logger.info(f"Refund percentage: {pct:g}%")
        return pct

    def _parse(self, raw: Any) -> float | None:
        try:
            record = LimitsRecord.model_validate(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Malformed limits record at {self.key}: {e}")
            return None

        if record.type != "limits":
            logger.warning(f"Unexpected record type at {self.key}: {record.type!r}")
            return None

        return record.limits.refund
