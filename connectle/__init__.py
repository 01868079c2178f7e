"""
Connectle - real-time multi-user chat service.

Subpackages:
- common: wire constants, protocol messages, error taxonomy
- server: entity store, chat hub, commands and the TCP transport
- client: terminal client
"""

__version__ = "1.0.0"
