"""Abstract interface for the request/response chat API."""

from typing import Protocol

from ..models.message import ChatMessage, ConversationSummary, UserSummary


class ChatApi(Protocol):
    """Abstract interface for the chat service's request/response API.

    Implementations raise ``ApiError`` subclasses on failure. List
    operations treat a 404 as an empty result rather than an error.
    """

    async def login(self, username: str, password: str) -> str:
        """
        Exchange credentials for a session token.

        Returns:
            Opaque bearer token

        Raises:
            BannedError: If the server reports the account as banned
            AuthenticationError: If the credentials are rejected
        """
        ...

    async def register(self, username: str, password: str) -> None:
        """
        Create a new account. Does not log in.

        Raises:
            ApiError: If registration fails
        """
        ...

    async def list_conversations(self, token: str) -> list[ConversationSummary]:
        """List the conversations visible to the session."""
        ...

    async def list_messages(self, token: str, conversation_id: str) -> list[ChatMessage]:
        """
        Pull the messages of one conversation.

        Returns:
            Messages in the server's order (newest first)
        """
        ...

    async def send_message(self, token: str, recipient_id: str, body: str) -> ChatMessage:
        """
        Send a message to a user or group.

        Returns:
            The message as stored by the server
        """
        ...

    async def search_users(self, token: str, query: str) -> list[UserSummary]:
        """Search users by name."""
        ...

    async def create_group(self, token: str, name: str, member_ids: list[str]) -> str:
        """
        Create a group conversation.

        Returns:
            The new group's id
        """
        ...

    async def add_group_member(self, token: str, group_id: str, user_id: str) -> None:
        """Add a user to an existing group."""
        ...

    async def aclose(self) -> None:
        """Release the underlying HTTP resources."""
        ...
