"""Concrete implementations of provider interfaces."""

from .api.http import HttpChatApi
from .transport.websocket import WebSocketTransport

__all__ = [
    "HttpChatApi",
    "WebSocketTransport",
]
