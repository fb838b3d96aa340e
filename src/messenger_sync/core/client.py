"""Messenger client: the single-threaded consumer.

This module implements the MessengerClient class that sits between the host
display loop and the synchronization components. It:
- Owns the message cache and the open conversation
- Issues pulls over the request/response API
- Drains pushed events once per tick and raises the refresh signal
- Turns adapter errors into ActionResults and user alerts

Everything here runs on the host's event loop. The push connection runs on
its own thread and only talks to the client through the event queue and the
session gate.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from messenger_sync.config.schema import MessengerConfig
from messenger_sync.core.decoder import PushMessageDecoder
from messenger_sync.core.event_queue import EventQueue
from messenger_sync.core.reconnect import ReconnectionEngine
from messenger_sync.core.session import SessionGate
from messenger_sync.core.sync_cache import MessageCache, is_relevant
from messenger_sync.interfaces.api import ChatApi
from messenger_sync.models.events import BanNotice, ConnectionState, NewMessage
from messenger_sync.models.message import (
    ActionResult,
    ChatMessage,
    ConversationKind,
    ConversationSummary,
    ConversationTarget,
)
from messenger_sync.utils.async_helpers import AdmissionError, ApiError, BannedError
from messenger_sync.utils.logging import (
    LogEventNames,
    bind_context,
    clear_context,
    unbind_context,
)

log = structlog.get_logger()

NOT_LOGGED_IN = "Not logged in"
NO_CONVERSATION = "No conversation open"


@dataclass(frozen=True)
class DisplayState:
    """Snapshot handed to the display surface once per tick."""

    messages: tuple[ChatMessage, ...]
    target: ConversationTarget | None
    conversations: tuple[ConversationSummary, ...]
    connection: ConnectionState
    logged_in: bool
    username: str | None
    banned: bool
    ban_reason: str | None
    outdated: bool
    refresh_requested: bool
    alerts: tuple[str, ...]


class MessengerClient:
    """Consumer-side orchestrator for one chat session.

    Every user operation returns an ActionResult; nothing raises to the host.
    Operations are refused locally, before any network call, while the
    account is banned or the client is outdated.

    Example:
        client = create_client(config)
        await client.start()
        await client.login("alice", "secret")
        while running:
            client.tick()
            render(client.display_state())
        await client.stop()
    """

    def __init__(
        self,
        config: MessengerConfig,
        api: ChatApi,
        gate: SessionGate,
        queue: EventQueue,
        engine: ReconnectionEngine,
    ) -> None:
        """Initialize the client.

        Args:
            config: Application configuration
            api: Request/response API adapter
            gate: Session gate shared with the push connection
            queue: Event queue fed by the push decoder
            engine: Reconnection engine owning the push connection
        """
        self._config = config
        self._api = api
        self._gate = gate
        self._queue = queue
        self._engine = engine

        self._cache = MessageCache()
        self._target: ConversationTarget | None = None
        self._conversations: tuple[ConversationSummary, ...] = ()

        # Consumed by display_state()
        self._refresh_requested = False
        self._alerts: list[str] = []

        # Lifecycle state
        self._running = False
        self._auto_login_attempted = False

        # Statistics
        self._events_processed = 0
        self._errors_count = 0

    @property
    def gate(self) -> SessionGate:
        return self._gate

    @property
    def engine(self) -> ReconnectionEngine:
        return self._engine

    @property
    def cache(self) -> MessageCache:
        return self._cache

    @property
    def target(self) -> ConversationTarget | None:
        return self._target

    @property
    def conversations(self) -> tuple[ConversationSummary, ...]:
        return self._conversations

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict[str, int]:
        """Return processing statistics."""
        return {
            "events_processed": self._events_processed,
            "errors_count": self._errors_count,
            "cached_messages": len(self._cache),
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the push connection and log in with configured credentials.

        Auto-login is attempted at most once per client.
        """
        if self._running:
            log.warning("client_already_running")
            return

        log.info(LogEventNames.CLIENT_STARTING, outdated=self._gate.outdated)
        self._engine.start()
        self._running = True
        log.info(LogEventNames.CLIENT_STARTED)

        credentials = self._config.credentials
        if credentials.complete and not self._auto_login_attempted:
            self._auto_login_attempted = True
            if credentials.username and credentials.password:
                await self.login(credentials.username, credentials.password)

    async def stop(self) -> None:
        """Stop the push connection and release the API client."""
        if not self._running:
            log.warning("client_not_running")
            return

        log.info(LogEventNames.CLIENT_STOPPING)
        await asyncio.to_thread(self._engine.stop)

        try:
            await self._api.aclose()
        except Exception as e:
            log.warning("api_close_error", error=str(e))

        self._running = False
        clear_context()
        log.info(
            LogEventNames.CLIENT_STOPPED,
            events_processed=self._events_processed,
            errors=self._errors_count,
        )

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self) -> int:
        """Drain pushed events and merge them into the cache.

        Returns:
            Number of events processed.
        """
        events = self._queue.drain_pending()
        for event in events:
            if isinstance(event, BanNotice):
                self._alert(f"You have been banned: {event.reason}")
                self._refresh_requested = True
            elif isinstance(event, NewMessage):
                self._on_pushed_message(event.message)

        if events:
            self._events_processed += len(events)
            log.debug(LogEventNames.QUEUE_DRAINED, count=len(events))
        return len(events)

    def _on_pushed_message(self, message: ChatMessage) -> None:
        self._cache.merge(message, pushed=True)
        self._alert(f"New message from {message.sender or 'Someone'}")
        if is_relevant(message, self._target):
            self._refresh_requested = True

    def display_state(self) -> DisplayState:
        """Build the display snapshot.

        The refresh signal and pending alerts are consumed by this call.
        """
        refresh, self._refresh_requested = self._refresh_requested, False
        alerts, self._alerts = tuple(self._alerts), []

        return DisplayState(
            messages=self._cache.messages,
            target=self._target,
            conversations=self._conversations,
            connection=self._engine.state,
            logged_in=self._gate.logged_in,
            username=self._gate.username,
            banned=self._gate.banned,
            ban_reason=self._gate.ban_reason,
            outdated=self._gate.outdated,
            refresh_requested=refresh,
            alerts=alerts,
        )

    # =========================================================================
    # Account
    # =========================================================================

    async def login(self, username: str, password: str) -> ActionResult:
        """Log in and hand the token to the session gate."""

        async def action() -> str:
            token = await self._api.login(username, password)
            if not self._gate.set_credential(token, username):
                raise AdmissionError(self._gate.admission_error() or "Login refused")
            return username

        result = await self._guard("login", action, authenticated=False)
        if result.ok:
            await self.refresh_conversations()
        return result

    async def register(self, username: str, password: str) -> ActionResult:
        """Create an account. Does not log in."""
        result = await self._guard(
            "register",
            lambda: self._api.register(username, password),
            authenticated=False,
        )
        if result.ok:
            self._alert("Registration successful")
        return result

    async def logout(self) -> ActionResult:
        """Drop the credential and close the open conversation.

        An open push connection stays open but is no longer re-authenticated.
        """

        async def action() -> None:
            if not self._gate.set_credential(None):
                raise AdmissionError(self._gate.admission_error() or "Logout refused")

        result = await self._guard("logout", action, authenticated=False)
        if result.ok:
            self._conversations = ()
            self.close_conversation()
        return result

    # =========================================================================
    # Conversations and messages
    # =========================================================================

    async def refresh_conversations(self) -> ActionResult:
        result = await self._guard("refresh_conversations", self._pull_conversations)
        if result.ok:
            self._refresh_requested = True
        return result

    async def _pull_conversations(self) -> list[ConversationSummary]:
        conversations = await self._api.list_conversations(self._require_token())
        self._conversations = tuple(conversations)
        return conversations

    def find_conversation(self, name: str) -> ConversationSummary | None:
        """Look up a listed conversation by name, ignoring case."""
        wanted = name.casefold()
        for conversation in self._conversations:
            if conversation.name.casefold() == wanted:
                return conversation
        return None

    async def open_conversation(self, target: ConversationTarget) -> ActionResult:
        """Switch to a conversation and pull its messages.

        The cache is cleared first, which also discards any pull still in
        flight for the previous conversation.
        """
        self._target = target
        self._cache.clear()
        self._refresh_requested = True
        bind_context(conversation_id=target.id)
        log.info("conversation_opened", conversation_id=target.id, kind=target.kind.value)
        return await self.refresh_messages()

    def close_conversation(self) -> None:
        """Go back to the conversation list."""
        if self._target is not None:
            log.info("conversation_closed", conversation_id=self._target.id)
            unbind_context("conversation_id")
        self._target = None
        self._cache.clear()
        self._refresh_requested = True

    async def refresh_messages(self) -> ActionResult:
        """Pull the open conversation and replace the cache with the result."""
        target = self._target
        if target is None:
            return self._failure("refresh_messages", NO_CONVERSATION, alert=False)

        ticket = self._cache.begin_pull()
        log.debug(LogEventNames.PULL_STARTED, conversation_id=target.id)

        result = await self._guard(
            "refresh_messages",
            lambda: self._api.list_messages(self._require_token(), target.id),
        )
        if not result.ok:
            self._cache.abandon_pull(ticket)
            log.info(LogEventNames.PULL_FAILED, conversation_id=target.id, error=result.error)
            return result

        if not self._cache.complete_pull(ticket, result.value):
            log.info(LogEventNames.PULL_DISCARDED, conversation_id=target.id)
            return ActionResult.failure("Conversation changed during refresh")

        self._refresh_requested = True
        log.info(
            LogEventNames.PULL_COMPLETED,
            conversation_id=target.id,
            count=len(self._cache),
        )
        return ActionResult.success(len(self._cache))

    async def send_message(self, body: str) -> ActionResult:
        """Send to the open conversation, then pull it again."""
        target = self._target
        if target is None:
            return self._failure("send_message", NO_CONVERSATION, alert=False)
        if not body.strip():
            return self._failure("send_message", "Message is empty", alert=False)

        result = await self._guard(
            "send_message",
            lambda: self._api.send_message(self._require_token(), target.id, body),
        )
        if not result.ok:
            return result

        if self._target == target:
            self._cache.merge(result.value)
            self._refresh_requested = True
            await self.refresh_messages()
        return result

    # =========================================================================
    # Users and groups
    # =========================================================================

    async def search_users(self, query: str) -> ActionResult:
        if not query.strip():
            return ActionResult.success([])
        return await self._guard(
            "search_users",
            lambda: self._api.search_users(self._require_token(), query),
        )

    async def open_direct(self, user_id: str, username: str) -> ActionResult:
        """Open a direct conversation with a searched user."""
        return await self.open_conversation(
            ConversationTarget(id=user_id, kind=ConversationKind.DIRECT, display_name=username)
        )

    async def create_group(self, name: str, member_ids: Sequence[str] = ()) -> ActionResult:
        """Create a group and open it."""
        result = await self._guard(
            "create_group",
            lambda: self._api.create_group(self._require_token(), name, list(member_ids)),
        )
        if not result.ok:
            return result

        group_id = result.value
        await self.open_conversation(
            ConversationTarget(id=group_id, kind=ConversationKind.GROUP, display_name=name)
        )
        await self.refresh_conversations()
        return result

    async def add_group_member(self, group_id: str, user_id: str) -> ActionResult:
        result = await self._guard(
            "add_group_member",
            lambda: self._api.add_group_member(self._require_token(), group_id, user_id),
        )
        if result.ok:
            self._alert("Member added successfully")
        return result

    # =========================================================================
    # Error handling
    # =========================================================================

    def _require_token(self) -> str:
        token = self._gate.token
        if token is None:
            raise AdmissionError(NOT_LOGGED_IN)
        return token

    async def _guard(
        self,
        operation: str,
        action: Callable[[], Awaitable[Any]],
        *,
        authenticated: bool = True,
    ) -> ActionResult:
        """Run one API action behind the admission check.

        Args:
            operation: Name used in logs.
            action: Coroutine factory performing the network call.
            authenticated: Refuse locally when no credential is held.
        """
        try:
            self._gate.check_admission()
            if authenticated:
                self._require_token()
            value = await action()
        except AdmissionError as e:
            return self._failure(operation, e.reason)
        except BannedError as e:
            if self._gate.apply_ban(e.reason):
                self._alert(f"You have been banned: {e.reason}")
            self._errors_count += 1
            return ActionResult.failure(str(e))
        except ApiError as e:
            self._errors_count += 1
            return self._failure(operation, str(e))
        return ActionResult.success(value)

    def _failure(self, operation: str, error: str, *, alert: bool = True) -> ActionResult:
        log.info("action_failed", operation=operation, error=error)
        if alert:
            self._alert(error)
        return ActionResult.failure(error)

    def _alert(self, text: str) -> None:
        self._alerts.append(text)


def create_client(config: MessengerConfig) -> MessengerClient:
    """Factory function to create a MessengerClient with all dependencies.

    Builds the HTTP adapter, the push transport, the shared session gate and
    event queue, the decoder and the reconnection engine, and applies the
    configured version check before anything connects.

    Args:
        config: Application configuration

    Returns:
        Configured, not yet started MessengerClient
    """
    # Import here to avoid loading transport libraries for callers that only
    # use the core components
    from messenger_sync.adapters.api.http import HttpChatApi
    from messenger_sync.adapters.transport.websocket import WebSocketTransport

    gate = SessionGate()
    gate.check_version(config.client.version, config.client.required_version)

    queue = EventQueue()
    decoder = PushMessageDecoder(gate, queue)
    transport = WebSocketTransport(
        config.server.push_url,
        open_timeout=config.reconnect.open_timeout,
    )
    engine = ReconnectionEngine(transport, decoder, gate, config.reconnect)
    api = HttpChatApi(config.server, config.retry)

    return MessengerClient(config, api, gate, queue, engine)
