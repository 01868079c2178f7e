"""
Exchange-rate provider and its single-slot cache.
"""

import asyncio
import time
from typing import Callable, Dict, Optional

import aiohttp

from connectle.common.constants import RATES_TIMEOUT, RATES_CACHE_TTL
from connectle.common.errors import ExternalUnavailableError

SYMBOLS = ('RUB', 'EUR', 'CNY')


class ExchangeRateProvider:
    """Fetches USD-based rates for RUB, EUR and CNY."""

    URL = 'https://api.exchangerate.host/latest?base=USD&symbols=RUB,EUR,CNY'

    def __init__(self, timeout: float = RATES_TIMEOUT):
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch(self) -> Dict[str, float]:
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(self.URL) as response:
                    if response.status != 200:
                        raise ExternalUnavailableError(f"rates service answered {response.status}")
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ExternalUnavailableError(f"rates service unavailable: {e}")

        try:
            rates = {symbol: float(data['rates'][symbol]) for symbol in SYMBOLS}
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalUnavailableError(f"unexpected rates payload: {e}")

        if any(value <= 0 for value in rates.values()):
            raise ExternalUnavailableError("rates service returned a non-positive rate")
        return rates


class RateCache:
    """
    One cached rates string, valid for ttl seconds after the last successful
    fetch. Nothing keys the slot; there is only ever one value.
    """

    def __init__(self, ttl: float = RATES_CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self.rates: Optional[str] = None
        self.updated_at: Optional[float] = None

    @property
    def is_valid(self) -> bool:
        return (self.rates is not None and self.updated_at is not None
                and self.clock() - self.updated_at < self.ttl)

    def update(self, rates: str):
        self.rates = rates
        self.updated_at = self.clock()
