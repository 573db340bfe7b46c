"""
Contracts of the messaging-protocol client and its end-to-end encryption machine.

The bot only talks to the homeserver through these. Network failures are reported as TransportError;
encryption failures as EncryptionError / EncryptionSessionError.
"""

from typing import Any, Callable, Protocol

from chessbot.core.models import EventID, RoomID, UserID

Content = dict[str, Any]


class Transport(Protocol):
    """Homeserver client."""

    user_id: UserID

    def add_event_handler(self, handler: Callable[[Content], None]) -> None:
        """Register a callback for every event received by `sync`."""
        ...

    async def login(self, username: UserID, password: str) -> None: ...

    async def sync(self) -> None:
        """One sync round. Received events are pushed to the registered handlers."""
        ...

    async def join_room(self, room_id: RoomID) -> None: ...

    async def send_event(self, room_id: RoomID, event_type: str, content: Content) -> EventID: ...

    async def upload_media(self, data: bytes, mimetype: str, filename: str) -> str:
        """Upload bytes and return their content URI."""
        ...

    async def redact(self, room_id: RoomID, event_id: EventID) -> None: ...

    async def mark_read(self, room_id: RoomID, event_id: EventID) -> None: ...

    async def get_state_event(
        self, room_id: RoomID, event_type: str, state_key: str = ""
    ) -> Content | None:
        """Content of a room state event, or None if the room has no such state."""
        ...

    async def send_state_event(
        self, room_id: RoomID, event_type: str, content: Content, state_key: str = ""
    ) -> EventID: ...

    async def close(self) -> None: ...


class Crypto(Protocol):
    """Olm/Megolm machine plus the room state it needs (encryption flag, members)."""

    def is_encrypted(self, room_id: RoomID) -> bool: ...

    def room_members(self, room_id: RoomID) -> list[UserID]: ...

    async def encrypt(self, room_id: RoomID, event_type: str, content: Content) -> Content:
        """Megolm-encrypt a payload. Raises EncryptionSessionError when the group session must be re-shared."""
        ...

    async def share_group_session(self, room_id: RoomID, members: list[UserID]) -> None: ...

    async def decrypt(self, event: Content) -> Content:
        """Decrypt a raw m.room.encrypted event into the original event. Raises EncryptionError."""
        ...
