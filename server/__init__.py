"""
Automation Panel Core - Server Module

This module contains:
- Server configuration
- Capability registry and built-in tools
- HTTP surface (FastAPI)
"""

from server.config import ServerConfig

__all__ = [
    "ServerConfig",
]
