"""
ModWarden Discord Moderation Bot
================================

Entry point: resolves the base directory, loads the token, opens the
infraction database, discovers handler modules and runs the Discord client
until a signal or a fatal loop error asks it to stop.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.
    Resolution order:
    1. MODWARDEN_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODWARDEN_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import signal
from typing import Any, Dict, Optional

import discord
from dotenv import load_dotenv

from modwarden.bot.client import ModWardenClient
from modwarden.configuration.app_configuration import app_config
from modwarden.database.database import Database
from modwarden.database.infractions import InfractionStoreError
from modwarden.datatypes.handler_datatypes import HandlerServices
from modwarden.registry.dispatcher import Dispatcher
from modwarden.registry.handler_registry import HandlerRegistry, resolve_handler_packages
from modwarden.util.logger import get_logger, handle_exception

logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


class ShutdownControl:
    """Collects the first stop request and the exit code that goes with it."""

    def __init__(self) -> None:
        self.stop_event = asyncio.Event()
        self.exit_code = 0

    def request_stop(self, exit_code: int, reason: str) -> None:
        if self.stop_event.is_set():
            return
        logger.info("Shutdown requested: %s", reason)
        self.exit_code = exit_code
        self.stop_event.set()

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        """Route SIGINT/SIGTERM and unhandled loop exceptions into ``request_stop``."""
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop, 0, f"received {sig.name}")
            except NotImplementedError:
                logger.debug("Signal handlers are not supported on this platform")
                break
        loop.set_exception_handler(self.handle_loop_exception)

    def handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exc = context.get("exception")
        logger.critical("Unhandled exception in event loop: %s", context.get("message"), exc_info=exc)
        self.request_stop(1, "unhandled exception")


def build_runtime(database: Database) -> ModWardenClient:
    """Discover handler modules and build the client around them."""
    services = HandlerServices(store=database.infractions, config=app_config)
    registry = HandlerRegistry()
    registry.discover(resolve_handler_packages(app_config.handler_packages), services)
    return ModWardenClient(registry, Dispatcher(registry))


async def start_bot(client: ModWardenClient, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await client.start(token)
    except asyncio.CancelledError:
        logger.info("Discord client start cancelled; shutting down")
    finally:
        logger.info("Discord client start routine finished.")


async def shutdown_runtime(database: Database, client: Optional[ModWardenClient] = None) -> None:
    """Close the database first, then the Discord connection."""
    try:
        await database.close()
    except InfractionStoreError as exc:
        logger.exception("Error during database shutdown: %s", exc)

    if client is not None and not client.is_closed():
        try:
            await client.close()
        except discord.DiscordException as exc:
            logger.exception("Error closing Discord client: %s", exc)

    logger.info("Shutdown complete.")


async def run_bot_session(client: ModWardenClient, token: str, control: ShutdownControl) -> int:
    """Run the client until it stops on its own or a stop is requested, returning an exit code."""
    start_task = asyncio.create_task(start_bot(client, token), name="modwarden:client")
    stop_task = asyncio.create_task(control.stop_event.wait(), name="modwarden:stop")

    try:
        await asyncio.wait({start_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_task.cancel()

    if start_task.done() and not start_task.cancelled() and start_task.exception() is not None:
        logger.critical("Discord bot runtime error: %s", start_task.exception())
        return 1

    return control.exit_code


async def async_main() -> int:
    """Bootstrap the database, handlers and client, returning an exit code."""
    token = load_environment()

    control = ShutdownControl()
    control.install(asyncio.get_running_loop())

    database = Database(app_config.database_path)
    try:
        logger.info("Initializing database...")
        await database.initialize()
    except (InfractionStoreError, OSError) as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        client = build_runtime(database)
    except Exception as exc:
        logger.critical("Failed to initialize Discord client: %s", exc)
        await shutdown_runtime(database)
        return 1

    try:
        return await run_bot_session(client, token, control)
    finally:
        await shutdown_runtime(database, client)


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting ModWarden…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
