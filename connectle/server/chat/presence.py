"""
Presence broadcaster.

Recomputes who is online from the entity store and pushes the list to every
connected client. Called after each login, logout and disconnect.
"""

from typing import List

from connectle.common.protocol_definitions import create_online_users_message
from connectle.server.store.entity_store import EntityStore
from connectle.server.utils.logger import logger


class PresenceBroadcaster:
    """Pushes the online user list through the transport."""

    def __init__(self, store: EntityStore, transport):
        self.store = store
        self.transport = transport

    async def refresh(self) -> List[str]:
        usernames = sorted(self.store.list_online_usernames())
        logger.debug(f"Presence refresh: {len(usernames)} online")
        await self.transport.broadcast_to_all(create_online_users_message(usernames))
        return usernames
