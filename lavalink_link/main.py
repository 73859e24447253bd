"""Run a managed Lavalink connection and log what it receives."""

import asyncio
import logging

from lavalink_link.config import Config, load_config
from lavalink_link.connection import ConnectionManager, RetryExhaustedError
from lavalink_link.rate_limited_logger import RateLimitedLogger

# Setup logging
logging.basicConfig(
    level=Config.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Suppress noisy third-party library logs
logging.getLogger("websockets").setLevel(logging.WARNING)


async def stats_monitor(manager: ConnectionManager) -> None:
    """Log connection statistics periodically."""
    while True:
        await asyncio.sleep(Config.STATS_INTERVAL)

        stats = manager.get_stats()
        status = "✅" if manager.is_connected() else "❌"
        logger.info(
            f"📈 {manager.config.client_name} {status} | "
            f"state: {stats['state']} | "
            f"attempts: {stats['connection_attempts']} | "
            f"messages: {stats['messages_received']} | "
            f"transport errors: {stats['transport_errors']}"
        )


async def main() -> None:
    """Main application entry point."""
    config = load_config()
    stopped = asyncio.Event()

    logger.info(f"🚀 Connecting to {config.address} as {config.user_id}...")
    manager = ConnectionManager.from_config(
        config,
        logger=RateLimitedLogger(config.client_name, logger, window=Config.LOGGER_WINDOW),
    )

    @manager.on("open")
    def on_open() -> None:
        logger.info("🔗 Connected")

    @manager.on("message")
    def on_message(data) -> None:
        logger.info(f"📨 {data[:200]}")

    @manager.on("max-retries-reached")
    def on_max_retries(error: RetryExhaustedError) -> None:
        logger.error(f"🛑 {error}")
        stopped.set()

    monitor = asyncio.create_task(stats_monitor(manager))
    try:
        await stopped.wait()
    finally:
        logger.info("Shutting down...")
        monitor.cancel()
        manager.close(permanent=True)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
