"""
Chat module for server-side messaging functionality.

Handles:
- Connection events and client requests (ChatHub)
- Broadcast and private message delivery
- Presence updates
"""
