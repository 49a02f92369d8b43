"""Route modules for the zhaomu server."""

from .auth_routes import register_auth_routes
from .data_routes import register_data_routes
from .proxy_routes import register_proxy_routes
from .share_routes import register_share_routes
from .system_routes import register_system_routes

__all__ = [
    "register_auth_routes",
    "register_data_routes",
    "register_proxy_routes",
    "register_share_routes",
    "register_system_routes",
]
