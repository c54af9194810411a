# craps_api/game/roll_source.py
from __future__ import annotations

import asyncio
import itertools
import logging
import random
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple, Union

import httpx

from craps_api.core.errors import OracleUnavailable

logger = logging.getLogger(__name__)

Dice = Tuple[int, int]


class PendingPolicy(str, Enum):
    WAIT = "wait"
    FAIL = "fail"
    SUBSTITUTE = "substitute"


@dataclass(frozen=True)
class RequestHandle:
    request_id: str
    requested_at: float


@dataclass(frozen=True)
class Fulfilled:
    die1: int
    die2: int
    source_ref: str

    @property
    def total(self) -> int:
        return self.die1 + self.die2


@dataclass(frozen=True)
class Pending:
    request_id: str
    attempts: int


RollOutcome = Union[Fulfilled, Pending]


def valid_die(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and 1 <= v <= 6


# ------------------------------
# oracle boundary
# ------------------------------
class OracleClient(ABC):
    """Randomness oracle: eventual fulfillment, monotonic request ids."""

    @abstractmethod
    async def submit_roll_request(self) -> str: ...

    @abstractmethod
    async def read_roll_result(self, request_id: str) -> Optional[Dice]:
        """Return the dice once fulfilled, ``None`` while not yet fulfilled."""


class HttpOracleClient(OracleClient):
    def __init__(self, base_url: str, timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def submit_roll_request(self) -> str:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(f"{self.base_url}/rolls")
            resp.raise_for_status()
            data = resp.json()
        request_id = data.get("request_id") or data.get("requestId")
        if request_id is None:
            raise ValueError(f"oracle response has no request id: {data!r}")
        return str(request_id)

    async def read_roll_result(self, request_id: str) -> Optional[Dice]:
        ts = int(datetime.now().timestamp() * 1000)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.get(f"{self.base_url}/rolls/{request_id}", params={"_": ts})
            resp.raise_for_status()
            data = resp.json()
        if not data.get("fulfilled"):
            return None
        return int(data["die1"]), int(data["die2"])


class LocalOracleClient(OracleClient):
    """
    In-process oracle for development and tests.

    Dice are drawn when the request is submitted (or taken from ``script``)
    and become readable after ``fulfill_after`` reads.
    """

    def __init__(self, seed=None, fulfill_after: int = 1, script: Iterable[Dice] = ()):
        self._rng = random.Random(seed)
        self.fulfill_after = max(1, int(fulfill_after))
        self._script = deque(script)
        self._ids = itertools.count(1)
        self._requests: Dict[str, list] = {}

    def push(self, *dice: Dice) -> None:
        self._script.extend(dice)

    async def submit_roll_request(self) -> str:
        request_id = str(next(self._ids))
        if self._script:
            dice = self._script.popleft()
        else:
            dice = (self._rng.randint(1, 6), self._rng.randint(1, 6))
        self._requests[request_id] = [dice, 0]
        return request_id

    async def read_roll_result(self, request_id: str) -> Optional[Dice]:
        req = self._requests[request_id]
        req[1] += 1
        if req[1] < self.fulfill_after:
            return None
        return req[0]


# ------------------------------
# roll source
# ------------------------------
class RollSource:
    def __init__(self, client: OracleClient, rng: Optional[random.Random] = None):
        self.client = client
        self._rng = rng or random.Random()

    async def request_roll(self) -> RequestHandle:
        try:
            request_id = await self.client.submit_roll_request()
        except Exception as e:
            raise OracleUnavailable(f"roll request could not be submitted: {e}") from e
        logger.info("roll requested: request_id=%s", request_id)
        return RequestHandle(request_id, time.monotonic())

    async def poll_result(self, handle: RequestHandle, max_attempts: int, interval: float) -> RollOutcome:
        """
        Read the result at most ``max_attempts`` times, ``interval`` seconds
        apart. Failed reads count as attempts and are not raised; only an
        exhausted budget yields ``Pending``.
        """
        for attempt in range(1, max_attempts + 1):
            if interval > 0:
                await asyncio.sleep(interval)
            try:
                dice = await self.client.read_roll_result(handle.request_id)
            except Exception as e:
                logger.debug("read %s/%s for request %s failed: %s", attempt, max_attempts, handle.request_id, e)
                continue
            if dice is None:
                continue
            die1, die2 = dice
            if not (valid_die(die1) and valid_die(die2)):
                logger.error("oracle returned invalid dice %r for request %s", dice, handle.request_id)
                continue
            return Fulfilled(die1, die2, f"oracle:{handle.request_id}")
        return Pending(handle.request_id, max_attempts)

    def substitute(self, pending: Pending) -> Fulfilled:
        """Placeholder roll for the opt-in ``substitute`` policy; never reconciles with the oracle."""
        die1, die2 = self._rng.randint(1, 6), self._rng.randint(1, 6)
        logger.warning(
            "roll %s still pending; substituting placeholder %s + %s", pending.request_id, die1, die2
        )
        return Fulfilled(die1, die2, f"placeholder:{pending.request_id}")
