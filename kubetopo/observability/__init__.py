"""Logging and metrics."""

from kubetopo.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
