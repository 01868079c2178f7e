#!/usr/bin/env python3
"""
Connectle Chat Server - Main Entry Point

Usage:
    python main_server.py

Optional arguments:
    --host HOST            Bind address (default: 0.0.0.0)
    --port PORT            TCP port (default: $PORT or 5000)
    --logs-dir DIR         Chat log directory (default: logs)
    --bcrypt-rounds N      bcrypt cost factor (default: 12)
    --debug                Enable debug logging
"""

from connectle.server.main_server import main

if __name__ == "__main__":
    main()
