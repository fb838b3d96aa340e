"""Core synchronization components.

This module exports the main classes:
- MessengerClient: Consumer that owns the message cache and open conversation
- ReconnectionEngine: Keeps the push connection alive and authenticated
- PushMessageDecoder: Classifies push frames and routes them
- EventQueue: Cross-thread handoff between connection and consumer
- MessageCache: Deduplicated, ordered messages of the open conversation
- SessionGate: Credential and admission flags
"""

from messenger_sync.core.client import DisplayState, MessengerClient, create_client
from messenger_sync.core.decoder import PushMessageDecoder
from messenger_sync.core.event_queue import EventQueue
from messenger_sync.core.reconnect import ReconnectionEngine, backoff_delay
from messenger_sync.core.session import SessionGate
from messenger_sync.core.sync_cache import MessageCache, is_relevant, merge

__all__ = [
    "DisplayState",
    "EventQueue",
    "MessageCache",
    "MessengerClient",
    "PushMessageDecoder",
    "ReconnectionEngine",
    "SessionGate",
    "backoff_delay",
    "create_client",
    "is_relevant",
    "merge",
]
