"""
Entry point for events coming from the transport.

Each message is handled on its own task. A task always ends with the message marked read,
whatever happened to it.
"""

import asyncio
import logging
from typing import Any, Coroutine

from chessbot.core.exceptions import DeliveryError, EncryptionError
from chessbot.core.models import UserID
from chessbot.core.shared_types import ENCRYPTED_EVENT, MESSAGE_EVENT, Membership, Outcome
from chessbot.events.models import MemberEvent, MessageEvent
from chessbot.services.delivery import DeliveryPipeline
from chessbot.services.game_service import GameSessionController
from chessbot.transport.protocol import Content, Crypto

logger = logging.getLogger("EventRouter")

MEMBER_EVENT = "m.room.member"


class EventRouter:
    def __init__(
        self,
        user_id: UserID,
        controller: GameSessionController,
        delivery: DeliveryPipeline,
        crypto: Crypto,
    ) -> None:
        self.user_id = user_id
        self.controller = controller
        self.delivery = delivery
        self.crypto = crypto
        self._tasks: set[asyncio.Task[Any]] = set()

    def dispatch(self, event: Content) -> None:
        """Route a raw event by type. Called by the transport for every timeline/state event."""
        event_type = event.get("type")
        if event_type == MESSAGE_EVENT:
            self.on_message(event)
        elif event_type == ENCRYPTED_EVENT:
            self._spawn(self.on_encrypted(event))
        elif event_type == MEMBER_EVENT:
            self._spawn(self.on_member(event))

    def on_message(self, event: Content) -> None:
        try:
            message = MessageEvent.from_event(event)
        except (KeyError, ValueError) as e:
            logger.warning("Ignoring malformed message event %s: %s", event.get("event_id"), e)
            return
        self._spawn(self.handle_message(message))

    async def handle_message(self, message: MessageEvent) -> Outcome:
        try:
            if message.sender == self.user_id:
                logger.info("Event %s is from us, so not going to respond.", message.event_id)
                outcome = Outcome.SELF
            else:
                outcome = await self.controller.handle_message(message)
            logger.info("%s in %s: %s", message.event_id, message.room_id, outcome)
            return outcome
        finally:
            # Mark the message as read after we've handled it.
            await self.delivery.mark_read(message.room_id, message.event_id)

    async def on_encrypted(self, event: Content) -> None:
        try:
            decrypted = await self.crypto.decrypt(event)
        except EncryptionError as e:
            logger.error(
                "Failed to decrypt message from %s in %s: %s",
                event.get("sender"), event.get("room_id"), e,
            )
            return
        logger.debug("Received encrypted event from %s in %s", event.get("sender"), event.get("room_id"))
        if decrypted.get("type") == MESSAGE_EVENT:
            self.on_message(decrypted)

    async def on_member(self, event: Content) -> None:
        try:
            member = MemberEvent.from_event(event)
        except (KeyError, ValueError) as e:
            logger.debug("Ignoring membership event %s: %s", event.get("event_id"), e)
            return
        if member.state_key != self.user_id:
            return

        if member.membership == Membership.INVITE:
            logger.info("Joining %s", member.room_id)
            try:
                await self.delivery.join(member.room_id)
            except DeliveryError as e:
                logger.error("Could not join room %s: %s", member.room_id, e)
                return
            logger.info("Joined %s successfully", member.room_id)
        elif member.is_leave_or_ban:
            logger.info("Left or banned from %s", member.room_id)

    async def drain(self, timeout: float) -> None:
        """Give in-flight handlers up to `timeout` seconds to finish. Whatever is left is abandoned."""
        if not self._tasks:
            return
        logger.info("Waiting for %d in-flight handlers", len(self._tasks))
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("Abandoning %d handlers still running", len(pending))

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Event handler crashed", exc_info=task.exception())
