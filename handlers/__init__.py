"""Request handlers for nim-proxy."""

from .proxy_handler import proxy_bp
from .service_api import service_bp

__all__ = ['proxy_bp', 'service_bp']
