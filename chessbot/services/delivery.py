"""
Outbound delivery: encryption decision, group-session recovery and bounded retry.

Every send returns the id of the event it produced, or raises DeliveryError.
Redactions and read receipts are best-effort and never raise.
"""

import logging

from chessbot.core.exceptions import (
    ChessBotError,
    DeliveryError,
    EncryptionError,
    EncryptionSessionError,
)
from chessbot.core.models import EventID, RoomID
from chessbot.core.shared_types import ENCRYPTED_EVENT, MESSAGE_EVENT
from chessbot.events.models import DIAGRAM_FILENAME, DIAGRAM_MIMETYPE, image_content
from chessbot.services.retry import RetryPolicy
from chessbot.transport.protocol import Content, Crypto, Transport

logger = logging.getLogger("Delivery")


class DeliveryPipeline:
    def __init__(self, transport: Transport, crypto: Crypto, retry: RetryPolicy) -> None:
        self.transport = transport
        self.crypto = crypto
        self.retry = retry

    async def encrypt_if_needed(self, room_id: RoomID, content: Content) -> tuple[str, Content]:
        """
        Event type and payload to put on the wire for `room_id`.

        An unusable group session is re-shared with the current members once, then encryption is tried again.
        """
        if not self.crypto.is_encrypted(room_id):
            return MESSAGE_EVENT, content

        logger.debug("Encrypting event for %s", room_id)
        try:
            encrypted = await self.crypto.encrypt(room_id, MESSAGE_EVENT, content)
        except EncryptionSessionError as e:
            logger.info("Re-sharing group session in %s: %s", room_id, e)
            await self.crypto.share_group_session(room_id, self.crypto.room_members(room_id))
            encrypted = await self.crypto.encrypt(room_id, MESSAGE_EVENT, content)

        # m.relates_to must stay readable by the server, so it is copied outside the ciphertext
        if "m.relates_to" in content:
            encrypted = {**encrypted, "m.relates_to": content["m.relates_to"]}
        return ENCRYPTED_EVENT, encrypted

    async def send(self, room_id: RoomID, content: Content) -> EventID:
        async def attempt() -> EventID:
            event_type, payload = await self.encrypt_if_needed(room_id, content)
            return await self.transport.send_event(room_id, event_type, payload)

        try:
            return await self.retry.run(f"send message to {room_id}", attempt)
        except EncryptionError as e:
            logger.error("Failed to encrypt message to %s: %s", room_id, e)
            raise DeliveryError(f"Failed to encrypt message to {room_id}: {e}") from e
        except DeliveryError as e:
            logger.error("Failed to send message to %s: %s", room_id, e)
            raise

    async def upload(self, data: bytes, mimetype: str, filename: str) -> str:
        return await self.retry.run(
            f"upload {filename}",
            lambda: self.transport.upload_media(data, mimetype, filename),
        )

    async def send_image(
        self, room_id: RoomID, png: bytes, thread_root: EventID | None = None
    ) -> EventID:
        """Upload a board diagram and post it, optionally threaded under `thread_root`."""
        content_uri = await self.upload(png, DIAGRAM_MIMETYPE, DIAGRAM_FILENAME)
        content = image_content(content_uri, len(png), thread_root=thread_root)
        return await self.send(room_id, content)

    async def join(self, room_id: RoomID) -> None:
        await self.retry.run("join room", lambda: self.transport.join_room(room_id))

    async def redact(self, room_id: RoomID, event_id: EventID | None) -> bool:
        if not event_id:
            return False
        try:
            await self.transport.redact(room_id, event_id)
        except ChessBotError as e:
            logger.warning("Failed to redact %s in %s: %s", event_id, room_id, e)
            return False
        logger.debug("Redacted %s in %s", event_id, room_id)
        return True

    async def mark_read(self, room_id: RoomID, event_id: EventID) -> None:
        try:
            await self.transport.mark_read(room_id, event_id)
        except ChessBotError as e:
            logger.warning("Failed to mark %s read in %s: %s", event_id, room_id, e)
