"""
In-memory stand-ins for the transport, the encryption machine and the renderer.

They record every call so tests can assert on what the bot put on the wire.
"""

import asyncio
from typing import Any, Callable, Iterable

import chess

from chessbot.core.exceptions import EncryptionError, TransportError

Content = dict[str, Any]


class FakeTransport:
    """Mock the homeserver client."""

    def __init__(self, user_id: str = "@chessbot:example.org") -> None:
        self.user_id = user_id
        self.sent: list[tuple[str, str, Content]] = []
        self.uploads: list[tuple[bytes, str, str]] = []
        self.redactions: list[tuple[str, str]] = []
        self.read_markers: list[tuple[str, str]] = []
        self.joined: list[str] = []
        self.state: dict[tuple[str, str, str], Content] = {}
        self.handlers: list[Callable[[Content], None]] = []
        self.logins: list[tuple[str, str]] = []
        self.sync_calls = 0
        self.closed = False

        # number of upcoming calls that fail with TransportError
        self.failing_sends = 0
        self.failing_uploads = 0
        self.failing_joins = 0
        self.failing_logins = 0
        self.fail_redactions = False
        self.fail_state_reads = False
        self.on_sync: Callable[[], None] | None = None
        # a sync that never returns, like a long poll over a dead connection
        self.hang_sync = False
        self.sync_cancelled = False
        self._next_event = 0

    def _event_id(self) -> str:
        self._next_event += 1
        return f"$event{self._next_event}"

    def add_event_handler(self, handler: Callable[[Content], None]) -> None:
        self.handlers.append(handler)

    async def login(self, username: str, password: str) -> None:
        if self.failing_logins:
            self.failing_logins -= 1
            raise TransportError("homeserver unreachable")
        self.logins.append((username, password))

    async def sync(self) -> None:
        self.sync_calls += 1
        if self.on_sync is not None:
            self.on_sync()
        if self.hang_sync:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.sync_cancelled = True
                raise

    async def join_room(self, room_id: str) -> None:
        if self.failing_joins:
            self.failing_joins -= 1
            raise TransportError("join failed")
        self.joined.append(room_id)

    async def send_event(self, room_id: str, event_type: str, content: Content) -> str:
        if self.failing_sends:
            self.failing_sends -= 1
            raise TransportError("send failed")
        self.sent.append((room_id, event_type, content))
        return self._event_id()

    async def upload_media(self, data: bytes, mimetype: str, filename: str) -> str:
        if self.failing_uploads:
            self.failing_uploads -= 1
            raise TransportError("upload failed")
        self.uploads.append((data, mimetype, filename))
        return f"mxc://example.org/media{len(self.uploads)}"

    async def redact(self, room_id: str, event_id: str) -> None:
        if self.fail_redactions:
            raise TransportError("redaction failed")
        self.redactions.append((room_id, event_id))

    async def mark_read(self, room_id: str, event_id: str) -> None:
        self.read_markers.append((room_id, event_id))

    async def get_state_event(
        self, room_id: str, event_type: str, state_key: str = ""
    ) -> Content | None:
        if self.fail_state_reads:
            raise TransportError("state unavailable")
        return self.state.get((room_id, event_type, state_key))

    async def send_state_event(
        self, room_id: str, event_type: str, content: Content, state_key: str = ""
    ) -> str:
        if self.failing_sends:
            self.failing_sends -= 1
            raise TransportError("send failed")
        self.state[(room_id, event_type, state_key)] = content
        return self._event_id()

    async def close(self) -> None:
        self.closed = True

    # --- helpers for assertions ---
    def images(self, room_id: str | None = None) -> list[Content]:
        return [
            content
            for room, _, content in self.sent
            if content.get("msgtype") == "m.image" and room_id in (None, room)
        ]

    def notices(self) -> list[Content]:
        return [content for _, _, content in self.sent if content.get("msgtype") == "m.notice"]


class FakeCrypto:
    """Mock the encryption machine. Rooms listed in `encrypted_rooms` need encryption."""

    def __init__(self) -> None:
        self.encrypted_rooms: set[str] = set()
        self.members: dict[str, list[str]] = {}
        self.encrypt_errors: list[Exception] = []
        self.shared: list[tuple[str, list[str]]] = []
        self.encrypt_calls = 0

    def is_encrypted(self, room_id: str) -> bool:
        return room_id in self.encrypted_rooms

    def room_members(self, room_id: str) -> list[str]:
        return self.members.get(room_id, [])

    async def encrypt(self, room_id: str, event_type: str, content: Content) -> Content:
        self.encrypt_calls += 1
        if self.encrypt_errors:
            raise self.encrypt_errors.pop(0)
        return {"algorithm": "m.megolm.v1.aes-sha2", "ciphertext": repr(content)}

    async def share_group_session(self, room_id: str, members: list[str]) -> None:
        self.shared.append((room_id, members))

    async def decrypt(self, event: Content) -> Content:
        if "plaintext" not in event:
            raise EncryptionError("unknown session")
        return event["plaintext"]


class FakeRenderer:
    """Records which positions and highlights were drawn instead of producing a real image."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[chess.Square, ...]]] = []

    def __call__(self, board: chess.Board, squares: Iterable[chess.Square] = ()) -> bytes:
        self.calls.append((board.fen(), tuple(squares)))
        return b"\x89PNG fake"
