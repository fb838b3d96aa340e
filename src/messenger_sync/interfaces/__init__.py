"""Protocol definitions for pluggable adapters."""

from .api import ChatApi
from .transport import PushConnection, PushTransport

__all__ = ["ChatApi", "PushConnection", "PushTransport"]
