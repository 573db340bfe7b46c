"""
Chess bot application shell.

Builds the capability bundle (store, delivery, controller, router) from a BotConfig and a transport,
logs in, runs the sync loop and shuts down cleanly on SIGINT/SIGTERM/SIGHUP/SIGQUIT.
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Callable

from chessbot.board.render import Renderer, render_board
from chessbot.core.config import VERSION, BotConfig, load_config
from chessbot.core.exceptions import ChessBotError
from chessbot.core.logging_setup import configure_logging
from chessbot.core.shared_types import SessionBackend
from chessbot.db.database import make_engine
from chessbot.db.repository import SessionStore
from chessbot.db.room_state_repository import RoomStateSessionStore
from chessbot.db.sql_repository import SQLSessionStore
from chessbot.services.delivery import DeliveryPipeline
from chessbot.services.game_service import GameSessionController
from chessbot.services.retry import RetryPolicy
from chessbot.services.room_locks import RoomLocks
from chessbot.services.router import EventRouter
from chessbot.transport.protocol import Crypto, Transport

logger = logging.getLogger("ChessBot")

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP, signal.SIGQUIT)
DRAIN_TIMEOUT = 5.0


class ChessBot:
    def __init__(
        self,
        config: BotConfig,
        transport: Transport,
        crypto: Crypto,
        renderer: Renderer = render_board,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self.retry = retry or RetryPolicy(
            max_attempts=config.retry_attempts, base_delay=config.retry_base_delay
        )

        sql_store = SQLSessionStore(make_engine(config.database_url))
        self.store: SessionStore = (
            RoomStateSessionStore(transport, sql_store, self.retry)
            if config.session_backend == SessionBackend.ROOM_STATE
            else sql_store
        )
        self.delivery = DeliveryPipeline(transport, crypto, self.retry)
        self.controller = GameSessionController(
            self.store, self.delivery, renderer, config.localpart, locks=RoomLocks()
        )
        self.router = EventRouter(config.username, self.controller, self.delivery, crypto)
        self._stopping = asyncio.Event()
        self._closed = False

    async def start(self) -> None:
        """Log in (with retry) and start receiving events."""
        logger.info("matrix chessbot %s starting...", VERSION)
        password = self.config.get_password()
        logger.info("Logging in %s", self.config.username)
        await self.retry.run(
            "login", lambda: self.transport.login(self.config.username, password)
        )
        logger.info("Logged in as %s", self.transport.user_id)
        self.transport.add_event_handler(self.router.dispatch)

    async def run(self) -> None:
        await self.start()
        self.install_signal_handlers()
        try:
            while not self._stopping.is_set():
                logger.debug("Running sync...")
                try:
                    await self._sync_until_stopped()
                except ChessBotError as e:
                    logger.error("Sync failed. %s", e)
                    await self.retry.sleep(self.retry.base_delay)
        finally:
            await self.shutdown()

    async def _sync_until_stopped(self) -> None:
        """One sync, cancelled as soon as a stop is requested. A sync is a long poll and may hang."""
        sync = asyncio.ensure_future(self.transport.sync())
        stopping = asyncio.ensure_future(self._stopping.wait())
        try:
            await asyncio.wait({sync, stopping}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopping.cancel()
            if not sync.done():
                logger.info("Cancelling sync in progress")
                sync.cancel()
                await asyncio.wait({sync})
        if not sync.cancelled():
            # re-raises whatever the sync failed with
            sync.result()

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.stop)

    def stop(self) -> None:
        logger.info("Stop requested")
        self._stopping.set()

    async def shutdown(self) -> None:
        """Finish what can be finished, then close the store and the transport."""
        if self._closed:
            return
        self._closed = True
        logger.info("Cleaning up")
        await self.router.drain(DRAIN_TIMEOUT)
        self.store.close()
        await self.transport.close()


def main(
    config_path: str | Path,
    make_transport: Callable[[BotConfig], Transport],
    make_crypto: Callable[[Transport], Crypto],
) -> None:
    """Load the config, set up logging and run the bot until it is told to stop."""
    config = load_config(config_path)
    configure_logging(config.log_level, config.log_file)
    transport = make_transport(config)
    asyncio.run(ChessBot(config, transport, make_crypto(transport)).run())
