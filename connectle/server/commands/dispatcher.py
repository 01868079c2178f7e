"""
Slash-command dispatcher.

Maps the first word of a ``/command`` message to a handler and always returns
a single reply string. Handler failures are rendered as text, never raised.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from connectle.common.constants import COMMAND_PREFIX
from connectle.server.store.models import User
from connectle.server.utils.logger import logger

UNKNOWN_COMMAND_REPLY = "❌ Unknown command. Type /help"


@dataclass
class CommandContext:
    """Who invoked a command. user is None when the connection is not logged in."""
    connection_id: str
    user: Optional[User] = None

    @property
    def username(self) -> str:
        return self.user.username if self.user else 'anonymous'


Handler = Callable[[List[str], CommandContext], Awaitable[str]]


class CommandDispatcher:
    """Case-insensitive command table."""

    def __init__(self, prefix: str = COMMAND_PREFIX):
        self.prefix = prefix
        self.handlers: Dict[str, Handler] = {}

    def register(self, handler: Handler, *names: str):
        for name in names:
            self.handlers[self.prefix + name.lower()] = handler

    def is_command(self, text: str) -> bool:
        return bool(text) and text.startswith(self.prefix)

    async def dispatch(self, text: str, context: CommandContext) -> str:
        parts = text.split()
        if not parts:
            return UNKNOWN_COMMAND_REPLY

        token, args = parts[0].lower(), parts[1:]
        handler = self.handlers.get(token)
        if handler is None:
            logger.debug(f"Unknown command {token} from {context.username}")
            return UNKNOWN_COMMAND_REPLY

        logger.log_command(context.username, token)
        try:
            return await handler(args, context)
        except Exception as e:
            logger.log_error(f"command {token}", e)
            return f"❌ Error: {e}"
