#!/usr/bin/env python3
"""
Connectle Chat Client - terminal client

Connects to the chat server, prints everything it receives and sends what the
user types. See ClientLogger.show_interactive_mode_info for the commands.
"""

import argparse
import asyncio
import json
import sys

from connectle.client.chat.chat_client import ChatClient, parse_input
from connectle.client.utils.config import ClientConfig
from connectle.client.utils.logger import logger
from connectle.common.constants import (
    MessageTypes, DEFAULT_HOST, DEFAULT_PORT, MAX_RETRY_ATTEMPTS, RECONNECT_ATTEMPTS, RECONNECT_DELAY_BASE
)
from connectle.common.protocol_definitions import create_heartbeat_message, create_logout_message


class ConnectleClient:
    """Main client class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.config = ClientConfig(host, port)
        self.reader = None
        self.writer = None
        self.running = False
        self.chat_client = ChatClient()

    async def connect(self, retry_count: int = MAX_RETRY_ATTEMPTS, base_delay: float = 1.0):
        """Establish connection to the server with retry logic and exponential backoff."""
        attempt = 0
        while attempt < retry_count:
            try:
                info = self.config.get_connection_info()
                self.reader, self.writer = await asyncio.open_connection(info['host'], info['port'])
                logger.log_connection(self.config.host, self.config.port, True)
                self.running = True
                self.chat_client.set_writer(self.writer)
                return True
            except OSError as e:
                attempt += 1
                logger.log_connection(self.config.host, self.config.port, False)
                logger.log_error("connection", e)
                if attempt < retry_count:
                    delay = base_delay * (2 ** (attempt - 1))  # Exponential backoff
                    logger.info(f"[INFO] Retrying connection in {delay}s (attempt {attempt}/{retry_count})...")
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"[ERROR] Failed to connect after {retry_count} attempts")
        return False

    async def send_heartbeat(self):
        """Send periodic heartbeat messages."""
        while self.running:
            await asyncio.sleep(self.config.heartbeat_interval)
            if self.running:
                await self.chat_client.send_message(create_heartbeat_message())

    async def listen_for_messages(self):
        """Listen for incoming messages from server with automatic reconnection."""
        while self.running:
            try:
                data = await self.reader.readline()
                if not data:
                    logger.info("[INFO] Server closed connection, attempting to reconnect...")
                    await self._reconnect()
                    continue

                try:
                    message = json.loads(data.decode('utf-8').strip())
                    await self.handle_message(message)
                except json.JSONDecodeError as e:
                    logger.error(f"[ERROR] Malformed JSON received: {e}")
            except asyncio.CancelledError:
                logger.info("[INFO] Listener cancelled")
                break
            except ConnectionError as e:
                logger.error(f"[ERROR] Connection lost: {e}")
                if self.running and await self._reconnect():
                    continue
                break

    async def _reconnect(self):
        """Reconnect to the server with exponential backoff. The session does not survive."""
        for attempt in range(RECONNECT_ATTEMPTS):
            delay = RECONNECT_DELAY_BASE * (2 ** attempt)
            logger.info(f"[INFO] Attempting to reconnect in {delay}s (attempt {attempt + 1}/{RECONNECT_ATTEMPTS})...")
            await asyncio.sleep(delay)
            if await self.connect(retry_count=1):
                logger.info("[INFO] Reconnected successfully, log in again with :login")
                return True

        logger.error("[ERROR] Failed to reconnect after multiple attempts")
        self.running = False
        return False

    async def handle_message(self, message: dict):
        """Handle different types of messages from server."""
        msg_type = message.get('type', '')

        if msg_type == MessageTypes.LOGIN_SUCCESS:
            self.chat_client.username = message.get('user', {}).get('username')
            logger.show_login_success(self.chat_client.username)
        elif msg_type == MessageTypes.ONLINE_USERS:
            logger.show_online_users(message.get('users', []))
        elif msg_type == MessageTypes.HEARTBEAT_ACK:
            # Silently acknowledge heartbeat
            pass
        elif msg_type == MessageTypes.ERROR:
            logger.error(f"[ERROR] Server error: {message.get('message', 'Unknown error')}")
        else:
            await self.chat_client.handle_message(message)

    async def interactive_mode(self):
        """Run client with interactive chat input."""
        if not await self.connect():
            return

        heartbeat_task = asyncio.create_task(self.send_heartbeat())
        listener_task = asyncio.create_task(self.listen_for_messages())

        logger.show_interactive_mode_info()
        loop = asyncio.get_running_loop()
        try:
            while self.running:
                user_input = await loop.run_in_executor(None, sys.stdin.readline)
                if not user_input:
                    break
                if user_input.strip() == ':quit':
                    break

                request = parse_input(user_input)
                if request is None:
                    if user_input.strip():
                        logger.warning("[WARN] Unrecognised client command")
                    continue
                await self.chat_client.send_message(request)
        except asyncio.CancelledError:
            pass
        finally:
            self.running = False
            await self.chat_client.send_message(create_logout_message())
            await asyncio.sleep(0.5)  # Give server time to process

            listener_task.cancel()
            heartbeat_task.cancel()
            for task in (listener_task, heartbeat_task):
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if self.writer:
                self.writer.close()
                await self.writer.wait_closed()
            logger.info("[INFO] Disconnected from server")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Connectle Chat Client')
    parser.add_argument('--server-ip', type=str, default=DEFAULT_HOST,
                       help=f'Server IP address (default: {DEFAULT_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                       help=f'Server port (default: {DEFAULT_PORT})')

    args = parser.parse_args()

    client = ConnectleClient(host=args.server_ip, port=args.port)
    try:
        asyncio.run(client.interactive_mode())
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")
    except Exception as e:
        logger.log_error("client", e)


if __name__ == "__main__":
    main()
