"""
Chat module for client-side messaging functionality.

Handles:
- Turning typed lines into protocol requests
- Printing broadcast, private and system messages
- History and contact listings
"""
