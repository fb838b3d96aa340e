"""HTTP adapter for the chat service's request/response API.

This module implements the ChatApi protocol with httpx. Every response body
is decoded through a single pydantic schema; a body that does not match is
reported as ApiDecodeError. Idempotent reads are retried on timeouts and
network errors with tenacity.
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ...config.schema import RetryConfig, ServerConfig
from ...models.message import ChatMessage, ConversationSummary, UserSummary
from ...models.wire import (
    BanResponse,
    ConversationListResponse,
    CreateGroupResponse,
    LoginResponse,
    MessageListResponse,
    MessageResponse,
    RegisterResponse,
    UserSearchResponse,
)
from ...utils.async_helpers import (
    ApiDecodeError,
    ApiError,
    AuthenticationError,
    BannedError,
    create_retry,
)

log = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class HttpChatApi:
    """ChatApi implementation over HTTP.

    Example:
        api = HttpChatApi(ServerConfig(api_url="https://chat.example"))
        token = await api.login("alice", "secret")
        chats = await api.list_conversations(token)
        await api.aclose()
    """

    def __init__(
        self,
        config: ServerConfig,
        retry_config: RetryConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Server endpoints and request timeout.
            retry_config: Retry policy for idempotent reads.
            client: Preconfigured httpx client (tests inject a MockTransport).
        """
        self._config = config
        retry_config = retry_config or RetryConfig()
        self._client = client or httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.request_timeout,
        )
        self._retrying_get = create_retry(
            max_attempts=retry_config.max_attempts,
            min_wait=retry_config.initial_delay,
            max_wait=retry_config.max_delay,
        )(self._get)

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Plumbing
    # =========================================================================

    @staticmethod
    def _auth_headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _get(
        self,
        path: str,
        token: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self._client.get(path, headers=self._auth_headers(token), params=params)

    async def _read(
        self,
        operation: str,
        path: str,
        token: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            return await self._retrying_get(path, token, params)
        except httpx.HTTPError as e:
            log.error("api_request_failed", operation=operation, error=str(e))
            raise ApiError(f"{operation} failed: {e}") from e

    async def _post(
        self,
        operation: str,
        path: str,
        payload: dict[str, Any],
        token: str | None = None,
    ) -> httpx.Response:
        headers = self._auth_headers(token) if token else None
        try:
            return await self._client.post(path, json=payload, headers=headers)
        except httpx.HTTPError as e:
            log.error("api_request_failed", operation=operation, error=str(e))
            raise ApiError(f"{operation} failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return

        status = response.status_code
        log.error("api_call_failed", operation=operation, status_code=status)
        message = f"{operation} failed: {response.reason_phrase} (Code: {status})"
        if status in (401, 403):
            raise AuthenticationError(message, status)
        raise ApiError(message, status)

    @staticmethod
    def _decode(response: httpx.Response, model: type[ModelT], operation: str) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            log.error("api_response_malformed", operation=operation, errors=e.error_count())
            raise ApiDecodeError(
                f"{operation} returned an unexpected body", response.status_code
            ) from e

    # =========================================================================
    # Account
    # =========================================================================

    async def register(self, username: str, password: str) -> None:
        response = await self._post(
            "register", "/register", {"username": username, "password": password}
        )
        self._raise_for_status(response, "register")

        result = self._decode(response, RegisterResponse, "register")
        if not result.success:
            raise ApiError("Registration failed", response.status_code)

    async def login(self, username: str, password: str) -> str:
        """Log in and return the session token.

        Raises:
            BannedError: If the error body reports a banned account.
            AuthenticationError: If the credentials were rejected.
            ApiError: For any other failure.
        """
        response = await self._post(
            "login", "/login", {"username": username, "password": password}
        )

        if not response.is_success and response.content:
            try:
                ban = BanResponse.model_validate_json(response.content)
            except ValidationError:
                ban = None
            if ban is not None and ban.banned:
                reason = ban.reason or "No reason provided"
                log.error("login_refused_banned", reason=reason)
                raise BannedError(reason, response.status_code)

        self._raise_for_status(response, "login")
        return self._decode(response, LoginResponse, "login").token

    # =========================================================================
    # Conversations and messages
    # =========================================================================

    async def list_conversations(self, token: str) -> list[ConversationSummary]:
        response = await self._read("list_conversations", "/chats", token)
        if response.status_code == 404:
            return []
        self._raise_for_status(response, "list_conversations")

        body = self._decode(response, ConversationListResponse, "list_conversations")
        return [chat.to_summary() for chat in body.chats]

    async def list_messages(self, token: str, conversation_id: str) -> list[ChatMessage]:
        path = f"/chats/{quote(conversation_id, safe='')}/messages"
        response = await self._read("list_messages", path, token)
        if response.status_code == 404:
            return []
        self._raise_for_status(response, "list_messages")

        body = self._decode(response, MessageListResponse, "list_messages")
        return [message.to_message() for message in body.messages]

    async def send_message(self, token: str, recipient_id: str, body: str) -> ChatMessage:
        response = await self._post(
            "send_message", "/messages", {"to": recipient_id, "content": body}, token
        )
        self._raise_for_status(response, "send_message")
        return self._decode(response, MessageResponse, "send_message").message.to_message()

    # =========================================================================
    # Users and groups
    # =========================================================================

    async def search_users(self, token: str, query: str) -> list[UserSummary]:
        response = await self._read("search_users", "/users/search", token, {"q": query})
        if response.status_code == 404:
            return []
        self._raise_for_status(response, "search_users")

        body = self._decode(response, UserSearchResponse, "search_users")
        return [user.to_summary() for user in body.users]

    async def create_group(self, token: str, name: str, member_ids: list[str]) -> str:
        response = await self._post(
            "create_group", "/groups", {"name": name, "members": member_ids}, token
        )
        self._raise_for_status(response, "create_group")
        return self._decode(response, CreateGroupResponse, "create_group").group.id

    async def add_group_member(self, token: str, group_id: str, user_id: str) -> None:
        path = f"/groups/{quote(group_id, safe='')}/members"
        response = await self._post("add_group_member", path, {"userId": user_id}, token)
        self._raise_for_status(response, "add_group_member")
