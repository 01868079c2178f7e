"""
Client package for the Connectle chat service.

This package contains the terminal client:
- Chat messaging and private messages
- Account and contact requests
- Configuration and utilities
"""
