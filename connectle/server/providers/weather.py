"""
Weather provider backed by wttr.in.
"""

import asyncio
from urllib.parse import quote

import aiohttp

from connectle.common.constants import WEATHER_TIMEOUT
from connectle.common.errors import ExternalUnavailableError


class WeatherProvider:
    """Fetches a one-line weather summary for a city."""

    BASE_URL = 'http://wttr.in'

    def __init__(self, timeout: float = WEATHER_TIMEOUT):
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch(self, city: str) -> str:
        url = f"{self.BASE_URL}/{quote(city)}?format=%C+%t+%w"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise ExternalUnavailableError(f"weather service answered {response.status}")
                    text = (await response.text()).strip()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExternalUnavailableError(f"weather service unavailable: {e}")

        if not text:
            raise ExternalUnavailableError("weather service returned an empty answer")
        return text
