"""
Server package for the Connectle chat service.

This package contains all server-side functionality including:
- The in-memory entity store and session directory
- The chat hub and presence broadcasting
- Slash commands and the calculator
- The TCP transport
- Configuration and utilities
"""
