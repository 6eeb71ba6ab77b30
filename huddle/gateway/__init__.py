"""HTTP and websocket surface."""

from huddle.gateway.api import create_gateway_app

__all__ = ["create_gateway_app"]
