"""
Built-in chat commands: weather, time, calculator, jokes, exchange rates,
contacts, online users and help.
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from connectle.common.constants import WEATHER_TIMEOUT, RATES_TIMEOUT
from connectle.common.errors import AuthError, EvaluationError, ExternalUnavailableError
from connectle.server.commands.dispatcher import CommandContext, CommandDispatcher
from connectle.server.commands.evaluator import evaluate, format_number
from connectle.server.providers.exchange_rates import ExchangeRateProvider, RateCache
from connectle.server.providers.weather import WeatherProvider
from connectle.server.store.entity_store import EntityStore
from connectle.server.utils.logger import logger

DEFAULT_WEATHER_CITY = 'Moscow'

# city alias -> (display name, UTC offset in hours)
CITY_OFFSETS: Dict[str, Tuple[str, int]] = {
    'moscow': ('Moscow', 3),
    'москва': ('Moscow', 3),
    'london': ('London', 1),
    'лондон': ('London', 1),
    'new york': ('New York', -4),
    'нью-йорк': ('New York', -4),
    'tokyo': ('Tokyo', 9),
    'токио': ('Tokyo', 9),
    'beijing': ('Beijing', 8),
    'пекин': ('Beijing', 8),
}
DEFAULT_CITY = CITY_OFFSETS['moscow']

JOKES = (
    "🤖 Why do programmers mix up Halloween and Christmas? Because Oct 31 == Dec 25!",
    "💻 How many programmers does it take to change a light bulb? None, that's a hardware problem.",
    "🐛 A programmer goes to a therapist. The therapist says: 'You seem to have trouble debugging your personality.'",
    "📚 There are 10 kinds of people: those who understand binary and those who don't.",
    "🔥 Why did Python get so popular? Its snake hypnotised everyone!",
)

CALC_USAGE = "Usage: /calc 2+2*sin(pi/2)"

WEATHER_FALLBACK = "unavailable right now, try again later"

RATES_FALLBACK = (
    "💵 Exchange rates are unavailable right now.\n"
    "Try /rates again in a few minutes."
)

HELP_TEXT = """📚 Available commands:
🌤️ /weather [city] - Weather
🕐 /time [city] - Time (Moscow, London, New York, Tokyo, Beijing)
🧮 /calc expression - Calculator (+ - * / ^, sin cos tan log ln sqrt, pi, e)
😂 /joke - Random joke
💵 /rates - Exchange rates
📇 /contacts - Your contacts
🟢 /online - Who is online
❓ /help - This help"""


class PluginCommands:
    """Handlers for the built-in commands, bound to their collaborators."""

    def __init__(self, store: EntityStore,
                 weather: Optional[WeatherProvider] = None,
                 rates: Optional[ExchangeRateProvider] = None,
                 rate_cache: Optional[RateCache] = None,
                 weather_timeout: float = WEATHER_TIMEOUT,
                 rates_timeout: float = RATES_TIMEOUT,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.store = store
        self.weather = weather or WeatherProvider(weather_timeout)
        self.rates = rates or ExchangeRateProvider(rates_timeout)
        self.rate_cache = rate_cache or RateCache()
        self.weather_timeout = weather_timeout
        self.rates_timeout = rates_timeout
        self.rng = rng or random.Random()
        self.clock = clock

    def register_all(self, dispatcher: CommandDispatcher):
        dispatcher.register(self.weather_command, 'weather', 'погода')
        dispatcher.register(self.time_command, 'time', 'время')
        dispatcher.register(self.calc_command, 'calc')
        dispatcher.register(self.joke_command, 'joke', 'шутка')
        dispatcher.register(self.rates_command, 'rates', 'курс')
        dispatcher.register(self.contacts_command, 'contacts', 'контакты')
        dispatcher.register(self.online_command, 'online', 'онлайн')
        dispatcher.register(self.help_command, 'help', 'помощь')

    async def weather_command(self, args: List[str], context: CommandContext) -> str:
        city = ' '.join(args) or DEFAULT_WEATHER_CITY
        try:
            summary = await asyncio.wait_for(self.weather.fetch(city), timeout=self.weather_timeout)
        except (ExternalUnavailableError, asyncio.TimeoutError) as e:
            logger.warning(f"Weather lookup for {city} failed: {type(e).__name__} {e}")
            summary = WEATHER_FALLBACK
        return f"🌤️ Weather in {city}: {summary}"

    async def time_command(self, args: List[str], context: CommandContext) -> str:
        name, offset = CITY_OFFSETS.get(' '.join(args).lower(), DEFAULT_CITY)
        now = self.clock() + timedelta(hours=offset)
        return f"🕐 Time ({name}): {now:%H:%M:%S}"

    async def calc_command(self, args: List[str], context: CommandContext) -> str:
        if not args:
            return f"❌ {CALC_USAGE}"

        expression = ''.join(args)
        try:
            result = evaluate(expression)
        except EvaluationError as e:
            return f"❌ Error in expression: {e}. {CALC_USAGE}"
        return f"🧮 {expression} = {format_number(result)}"

    async def joke_command(self, args: List[str], context: CommandContext) -> str:
        return self.rng.choice(JOKES)

    async def rates_command(self, args: List[str], context: CommandContext) -> str:
        if self.rate_cache.is_valid:
            return self.rate_cache.rates

        try:
            rates = await asyncio.wait_for(self.rates.fetch(), timeout=self.rates_timeout)
        except (ExternalUnavailableError, asyncio.TimeoutError) as e:
            logger.warning(f"Exchange rate lookup failed: {type(e).__name__} {e}")
            return self.rate_cache.rates or RATES_FALLBACK

        text = format_rates(rates)
        self.rate_cache.update(text)
        return text

    async def contacts_command(self, args: List[str], context: CommandContext) -> str:
        if context.user is None:
            raise AuthError("Log in to see your contacts")

        contacts = self.store.list_contacts(context.user.id)
        if not contacts:
            return "📇 You have no contacts yet"

        lines = ["📇 Contacts:"]
        for contact in contacts:
            if contact.is_online:
                lines.append(f"🟢 {contact.username}")
            else:
                lines.append(f"⚪ {contact.username} (last seen {contact.last_seen:%Y-%m-%d %H:%M} UTC)")
        return '\n'.join(lines)

    async def online_command(self, args: List[str], context: CommandContext) -> str:
        usernames = sorted(self.store.list_online_usernames())
        if not usernames:
            return "🟢 Nobody is online"
        return f"🟢 Online ({len(usernames)}): {', '.join(usernames)}"

    async def help_command(self, args: List[str], context: CommandContext) -> str:
        return HELP_TEXT


def format_rates(rates: Dict[str, float]) -> str:
    return (
        "💵 Exchange rates:\n"
        f"1 USD = {rates['RUB']:.2f} ₽\n"
        f"1 EUR = {1 / rates['EUR']:.2f} $\n"
        f"1 USD = {rates['CNY']:.2f} ¥"
    )


def build_dispatcher(store: EntityStore, **plugin_options) -> CommandDispatcher:
    """Dispatcher with every built-in command registered."""
    dispatcher = CommandDispatcher()
    PluginCommands(store, **plugin_options).register_all(dispatcher)
    return dispatcher
