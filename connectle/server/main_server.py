#!/usr/bin/env python3
"""
Connectle Chat Server - transport layer

Accepts TCP connections, reads newline-delimited JSON requests and routes them
to the chat hub. Implements the delivery primitives the hub needs:
send_to, send_to_caller and broadcast_to_all.
"""

import argparse
import asyncio
import json
import logging
import os
import uuid
from typing import Dict

from connectle.common.constants import MessageTypes, DEFAULT_SERVER_HOST, DEFAULT_PORT, LOG_DIR, BCRYPT_ROUNDS
from connectle.common.protocol_definitions import create_error_message
from connectle.server.chat.chat_hub import ChatHub
from connectle.server.commands.plugins import build_dispatcher
from connectle.server.providers.exchange_rates import RateCache
from connectle.server.store.entity_store import EntityStore
from connectle.server.store.passwords import PasswordHasher
from connectle.server.utils.config import ServerConfig
from connectle.server.utils.logger import logger


class ConnectleServer:
    """Main server class: owns the store and wires the hub to the sockets."""

    def __init__(self, config: ServerConfig = None):
        self.config = config or ServerConfig()
        self.clients: Dict[str, asyncio.StreamWriter] = {}  # connection id -> writer
        self.lock = asyncio.Lock()  # Protect clients

        logger.set_logs_dir(self.config.get_log_settings()['logs_dir'])

        store_settings = self.config.get_store_settings()
        self.store = EntityStore(
            hasher=PasswordHasher(store_settings['bcrypt_rounds']),
            max_history=store_settings['max_chat_history'],
            max_private_history=store_settings['max_private_history']
        )

        command_settings = self.config.get_command_settings()
        self.dispatcher = build_dispatcher(
            self.store,
            weather_timeout=command_settings['weather_timeout'],
            rates_timeout=command_settings['rates_timeout'],
            rate_cache=RateCache(command_settings['rates_cache_ttl'])
        )
        self.hub = ChatHub(self.store, self.dispatcher, self)

    async def send_to(self, connection_id: str, payload: dict) -> bool:
        """Send a JSON message to a specific client."""
        async with self.lock:
            writer = self.clients.get(connection_id)
        if writer is None:
            return False

        try:
            writer.write(json.dumps(payload).encode('utf-8') + b'\n')
            await writer.drain()
            return True
        except Exception as e:
            logger.error(f"Failed to send to connection_id={connection_id}: {e}")
            return False

    async def send_to_caller(self, connection_id: str, payload: dict) -> bool:
        return await self.send_to(connection_id, payload)

    async def broadcast_to_all(self, payload: dict):
        """Send a JSON message to all connected clients; failures are logged and skipped."""
        msg_data = json.dumps(payload).encode('utf-8') + b'\n'
        async with self.lock:
            targets = list(self.clients.items())

        logger.debug(f"[BROADCAST] type={payload.get('type')} to {len(targets)} clients")
        for connection_id, writer in targets:
            try:
                writer.write(msg_data)
                await writer.drain()
            except Exception as e:
                logger.error(f"Failed to broadcast to connection_id={connection_id}: {e}")

    async def dispatch(self, connection_id: str, message: dict):
        """Route one request to the hub."""
        msg_type = message.get('type', '')

        if msg_type == MessageTypes.REGISTER:
            await self.hub.register(connection_id, _text(message, 'username'),
                                    _text(message, 'email'), _text(message, 'password'))
        elif msg_type == MessageTypes.LOGIN:
            await self.hub.login(connection_id, _text(message, 'username'), _text(message, 'password'))
        elif msg_type == MessageTypes.LOGOUT:
            await self.hub.logout(connection_id)
        elif msg_type == MessageTypes.CHAT:
            await self.hub.on_message(connection_id, _text(message, 'text'))
        elif msg_type == MessageTypes.PRIVATE_MESSAGE:
            await self.hub.send_private_message(connection_id, _text(message, 'to'), _text(message, 'text'))
        elif msg_type == MessageTypes.GET_PRIVATE_HISTORY:
            await self.hub.get_private_history(connection_id, _text(message, 'with'))
        elif msg_type == MessageTypes.ADD_CONTACT:
            await self.hub.add_contact(connection_id, _text(message, 'username'))
        elif msg_type == MessageTypes.GET_CONTACTS:
            await self.hub.get_contacts(connection_id)
        elif msg_type == MessageTypes.GET_HISTORY:
            await self.hub.get_history(connection_id)
        elif msg_type == MessageTypes.HEARTBEAT:
            await self.hub.heartbeat(connection_id)
        else:
            logger.warning(f"Unknown message type '{msg_type}' from connection_id={connection_id}")

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Handle individual client connection."""
        addr = writer.get_extra_info('peername')
        connection_id = uuid.uuid4().hex

        async with self.lock:
            self.clients[connection_id] = writer
        logger.log_connection(addr, connection_id)

        try:
            await self.hub.on_connect(connection_id)

            while True:
                # Read line-delimited JSON
                try:
                    data = await reader.readline()
                except ValueError:
                    # Line exceeded the stream limit
                    logger.warning(f"Message too large from connection_id={connection_id}")
                    await self.send_to(connection_id, create_error_message("Message too large"))
                    break
                if not data:
                    break

                try:
                    message = json.loads(data.decode('utf-8').strip())
                    if not isinstance(message, dict) or not isinstance(message.get('type'), str):
                        logger.warning(f"Received message with invalid type from connection_id={connection_id}")
                        continue

                    logger.debug(f"Received from connection_id={connection_id}: {message['type']}")
                    await self.dispatch(connection_id, message)

                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    logger.error(f"Malformed JSON from connection_id={connection_id}: {e}")
                    await self.send_to(connection_id, create_error_message("Malformed JSON"))
                except Exception as e:
                    logger.error(f"Error processing message from connection_id={connection_id}: {e}")

        except asyncio.CancelledError:
            logger.info(f"Connection cancelled for connection_id={connection_id}")
        except Exception as e:
            logger.error(f"Socket error for connection_id={connection_id}: {e}")
        finally:
            await self.disconnect_client(connection_id)

    async def disconnect_client(self, connection_id: str):
        """Drop the writer and run the hub's disconnect hook."""
        async with self.lock:
            writer = self.clients.pop(connection_id, None)

        if writer is not None:
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as e:
                logger.debug(f"Error closing connection_id={connection_id}: {e}")

        await self.hub.on_disconnect(connection_id)

    async def start(self):
        """Start the server."""
        connection_info = self.config.get_connection_info()
        server = await asyncio.start_server(
            self.handle_client,
            connection_info['host'],
            connection_info['port'],
            limit=self.config.max_line_size + 1
        )

        addr = ', '.join(str(sock.getsockname()) for sock in server.sockets)
        logger.info(f"Server listening on {addr}")

        async with server:
            await server.serve_forever()


def _text(message: dict, key: str) -> str:
    value = message.get(key)
    return '' if value is None else str(value)


def main():
    parser = argparse.ArgumentParser(description='Connectle Chat Server')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                       help=f'Host to bind to (default: {DEFAULT_SERVER_HOST})')
    parser.add_argument('--port', type=int, default=int(os.environ.get('PORT', DEFAULT_PORT)),
                       help=f'TCP port (default: $PORT or {DEFAULT_PORT})')
    parser.add_argument('--logs-dir', type=str, default=LOG_DIR,
                       help=f'Directory for chat logs (default: {LOG_DIR})')
    parser.add_argument('--bcrypt-rounds', type=int, default=BCRYPT_ROUNDS,
                       help=f'bcrypt cost factor (default: {BCRYPT_ROUNDS})')
    parser.add_argument('--debug', action='store_true',
                       help='Enable debug logging')

    args = parser.parse_args()

    if args.debug:
        logger.set_level(logging.DEBUG)

    try:
        server = ConnectleServer(ServerConfig(
            host=args.host,
            port=args.port,
            logs_dir=args.logs_dir,
            bcrypt_rounds=args.bcrypt_rounds
        ))
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except Exception as e:
        logger.log_error("server", e)


if __name__ == "__main__":
    main()
