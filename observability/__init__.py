"""
Automation Panel Core - Observability Module

Logging and metrics:
- Structlog configuration
- Prometheus metrics
"""

from observability.logging_config import get_logger

__all__ = ["get_logger"]
