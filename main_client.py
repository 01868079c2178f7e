#!/usr/bin/env python3
"""
Connectle Chat Client - Main Entry Point

Usage:
    python main_client.py [--server-ip HOST] [--port PORT]
"""

from connectle.client.main_client import main

if __name__ == "__main__":
    main()
